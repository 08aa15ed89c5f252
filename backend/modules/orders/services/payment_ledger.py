# backend/modules/orders/services/payment_ledger.py

"""
Append-only payment ledger.

Payments are never edited or deleted. Paid-to-date is always the exact sum
of an order's payment rows, and an order is settled the first time that sum
reaches its total.
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from modules.settings.models.workflow_settings_models import WorkflowConfiguration
from ..enums.payment_enums import PaymentMethod
from ..exceptions.workflow_exceptions import (
    InvalidAmount,
    PartialPaymentNotAllowed,
    ValidationError,
)
from ..models.order_models import Order, Payment
from .status_flow import is_terminal

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(amount) -> Decimal:
    """Normalise an incoming amount to a two-place Decimal"""
    try:
        return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(amount, f"Invalid payment amount: {amount}")


class PaymentLedger:
    def __init__(self, db: Session):
        self.db = db

    def paid_to_date(self, order: Order) -> Decimal:
        return order.paid_to_date

    def amount_remaining(self, order: Order) -> Decimal:
        return order.amount_remaining

    def _check_order_accepts_payment(self, order: Order):
        if is_terminal(order.status):
            raise ValidationError(
                f"Order {order.id} is {order.status.value} and cannot accept payments",
                {"order_id": order.id, "status": order.status.value},
                error_code="ORDER_CLOSED",
            )

    def _check_split_allowed(self, config: WorkflowConfiguration):
        if not config.allow_split_payment:
            raise ValidationError(
                "Split payments are disabled",
                error_code="SPLIT_PAYMENT_DISABLED",
            )

    def validate_payment(
        self,
        order: Order,
        amount: Decimal,
        config: WorkflowConfiguration,
        split_number: Optional[int] = None,
    ) -> Decimal:
        """
        Check a single payment against the order and the payment policy.

        Returns the normalised amount.
        """
        self._check_order_accepts_payment(order)

        amount = to_money(amount)
        remaining = self.amount_remaining(order)
        if amount <= 0:
            raise InvalidAmount(amount, "Payment amount must be greater than zero", remaining)
        if split_number is not None:
            self._check_split_allowed(config)
            if split_number < 1:
                raise ValidationError(
                    "Split number must be 1 or greater",
                    {"split_number": split_number},
                )
        if amount > remaining:
            raise InvalidAmount(
                amount,
                f"Payment of {amount} exceeds the outstanding balance of {remaining}",
                remaining,
            )
        if (
            not config.allow_partial_payment
            and split_number is None
            and amount < remaining
        ):
            raise PartialPaymentNotAllowed(order.id, amount, remaining)
        return amount

    def validate_split(
        self,
        order: Order,
        parts: Sequence[Tuple[Decimal, PaymentMethod]],
        config: WorkflowConfiguration,
    ) -> List[Decimal]:
        """Check a set of split parts as a whole; returns normalised amounts"""
        self._check_order_accepts_payment(order)
        self._check_split_allowed(config)
        if not parts:
            raise ValidationError("Split payment requires at least one part")

        remaining = self.amount_remaining(order)
        amounts = []
        for amount, _method in parts:
            amount = to_money(amount)
            if amount <= 0:
                raise InvalidAmount(
                    amount, "Every split part must be greater than zero", remaining
                )
            amounts.append(amount)

        combined = sum(amounts, Decimal("0"))
        if combined > remaining:
            raise InvalidAmount(
                combined,
                f"Split payments of {combined} exceed the outstanding balance of {remaining}",
                remaining,
            )
        if not config.allow_partial_payment and combined < remaining:
            raise PartialPaymentNotAllowed(order.id, combined, remaining)
        return amounts

    def next_split_number(self, order: Order) -> int:
        numbers = [p.split_number for p in order.payments if p.split_number is not None]
        return max(numbers) + 1 if numbers else 1

    def append(
        self,
        order: Order,
        amount: Decimal,
        method: PaymentMethod,
        split_number: Optional[int] = None,
        received_by_id: Optional[int] = None,
    ) -> Payment:
        """Add a validated payment to the order's ledger (no commit)"""
        payment = Payment(
            amount=amount,
            method=PaymentMethod(method),
            split_number=split_number,
            received_by_id=received_by_id,
            created_at=datetime.utcnow(),
        )
        order.payments.append(payment)
        self.db.flush()
        logger.info(
            f"Payment {payment.id} of {amount} ({payment.method.value}) "
            f"appended to order {order.id}"
        )
        return payment

    def settle_if_paid(self, order: Order) -> bool:
        """Mark the order settled when paid-to-date first reaches the total"""
        if order.settled_at is not None or not order.payments:
            return False
        if self.paid_to_date(order) >= Decimal(order.total):
            order.settled_at = datetime.utcnow()
            logger.info(f"Order {order.id} settled at {order.total}")
            return True
        return False
