# backend/modules/orders/services/kot_dispatch.py

"""
Scheduling of automatic KOT prints after an order is committed.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import logging
import time

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from core.database import SessionLocal
from core.print_client import PrintClient
from ..exceptions.workflow_exceptions import WorkflowError
from .kot_service import KotService

logger = logging.getLogger(__name__)


class KotDispatcher(ABC):
    @abstractmethod
    def dispatch(self, order_id: int, delay_seconds: int = 0) -> None:
        """Arrange for the order's ticket to be printed"""
        pass


def run_kot_print_job(
    order_id: int,
    delay_seconds: int = 0,
    session_factory: Callable[[], Session] = SessionLocal,
    print_client: Optional[PrintClient] = None,
):
    """Print one ticket in a fresh session, after the configured delay"""
    if delay_seconds > 0:
        time.sleep(delay_seconds)

    db = session_factory()
    try:
        result = KotService(db, print_client).print_kot(order_id)
        if result.printed:
            logger.info(f"Auto-printed KOT {result.kot_number}")
    except WorkflowError as e:
        logger.warning(f"Auto-print of KOT for order {order_id} skipped: {e.message}")
    finally:
        db.close()


class BackgroundTaskKotDispatcher(KotDispatcher):
    """Runs the print job after the HTTP response has been sent"""

    def __init__(
        self,
        background_tasks: BackgroundTasks,
        session_factory: Callable[[], Session] = SessionLocal,
        print_client: Optional[PrintClient] = None,
    ):
        self.background_tasks = background_tasks
        self.session_factory = session_factory
        self.print_client = print_client

    def dispatch(self, order_id: int, delay_seconds: int = 0) -> None:
        self.background_tasks.add_task(
            run_kot_print_job,
            order_id,
            delay_seconds,
            self.session_factory,
            self.print_client,
        )
        logger.debug(
            f"Scheduled KOT print for order {order_id} in {delay_seconds}s"
        )
