# backend/core/print_client.py

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict
import logging


logger = logging.getLogger(__name__)


@dataclass
class PrinterTarget:
    """Where and how a document should be printed"""

    name: str
    paper_width: int = 80
    copies: int = 1


class PrintClient(ABC):
    """
    Abstract base class for print collaborators

    Implementations turn a structured document (kitchen ticket, receipt)
    into printer output. Returning False or raising reports failure; the
    caller does not retry.
    """

    @abstractmethod
    def print_document(self, document: Dict[str, Any], printer: PrinterTarget) -> bool:
        pass


class LoggingPrintClient(PrintClient):
    """Default client for terminals without an attached printer"""

    def __init__(self, log_level: int = logging.INFO):
        self.log_level = log_level

    def print_document(self, document: Dict[str, Any], printer: PrinterTarget) -> bool:
        logger.log(
            self.log_level,
            f"[PRINT] {printer.copies} copy(ies) to '{printer.name or 'default'}' "
            f"({printer.paper_width}mm)",
            extra={"document": document},
        )
        return True
