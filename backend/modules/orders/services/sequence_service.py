# backend/modules/orders/services/sequence_service.py

import logging
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.order_models import SequenceCounter

logger = logging.getLogger(__name__)


def format_number(prefix: str, value: int, padding: int) -> str:
    """``format_number("ORD", 7, 4)`` -> ``"ORD-0007"``"""
    return f"{prefix}-{value:0{padding}d}"


class SequenceService:
    """Transactional counters for human-readable order and KOT numbers"""

    def __init__(self, db: Session):
        self.db = db

    def ensure_counters(self, names: Iterable[str]):
        """
        Create any missing counter rows and commit them.

        Must be called before the caller starts its own changes, since a
        lost creation race rolls the session back.
        """
        names = list(names)
        existing = {
            row.name
            for row in self.db.query(SequenceCounter.name).filter(
                SequenceCounter.name.in_(names)
            )
        }
        missing = [name for name in names if name not in existing]
        if not missing:
            return

        for name in missing:
            self.db.add(SequenceCounter(name=name, value=0))
        try:
            self.db.commit()
        except IntegrityError:
            # Another process created them first
            self.db.rollback()
        else:
            logger.info(f"Created sequence counters: {missing}")

    def next_value(self, name: str) -> int:
        """
        Increment and return a counter within the current transaction.

        The UPDATE takes the row lock, so concurrent creators queue behind
        each other and never draw the same value.
        """
        self.db.execute(
            update(SequenceCounter)
            .where(SequenceCounter.name == name)
            .values(value=SequenceCounter.value + 1)
        )
        return self.db.query(SequenceCounter.value).filter(
            SequenceCounter.name == name
        ).scalar()
