# backend/modules/orders/exceptions/workflow_exceptions.py

from decimal import Decimal
from typing import Dict, Iterable, Optional


def _status_values(statuses: Iterable) -> list:
    return sorted(getattr(s, "value", s) for s in statuses)


class WorkflowError(Exception):
    """Base exception for every recoverable order-workflow failure"""

    status_code = 400

    def __init__(self, message: str, error_code: str, details: Optional[Dict] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict:
        """Convert exception to dictionary for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details
        }


class ValidationError(WorkflowError):
    """Malformed or missing required input"""

    def __init__(self, message: str, details: Optional[Dict] = None,
                 error_code: str = "VALIDATION_ERROR"):
        super().__init__(message, error_code, details)


class InvalidCustomerInfo(ValidationError):
    """Takeaway / delivery order without the required customer fields"""

    def __init__(self, order_type, missing_fields: list):
        order_type_value = getattr(order_type, "value", order_type)
        message = (
            f"{order_type_value} orders require customer "
            f"{', '.join(missing_fields)}"
        )
        super().__init__(
            message,
            {"order_type": order_type_value, "missing_fields": missing_fields},
            error_code="INVALID_CUSTOMER_INFO",
        )


class NotFound(WorkflowError):
    """Unknown order, item, table or menu item id"""

    status_code = 404

    def __init__(self, resource: str, resource_id):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            f"{resource} {resource_id} not found",
            "NOT_FOUND",
            {"resource": resource, "id": resource_id},
        )


class IllegalTransition(WorkflowError):
    """Status change not permitted by the active flow"""

    status_code = 409

    def __init__(self, order_id: int, current_status, requested_status,
                 allowed_statuses: Iterable, reason: Optional[str] = None):
        self.order_id = order_id
        self.current_status = current_status
        self.requested_status = requested_status
        self.allowed_statuses = frozenset(allowed_statuses)

        current = getattr(current_status, "value", current_status)
        requested = getattr(requested_status, "value", requested_status)
        message = reason or (
            f"Invalid status transition from {current} to {requested} "
            f"for order {order_id}"
        )
        super().__init__(
            message,
            "ILLEGAL_TRANSITION",
            {
                "order_id": order_id,
                "current_status": current,
                "requested_status": requested,
                "allowed_next_statuses": _status_values(self.allowed_statuses),
            },
        )


class PaymentRequired(WorkflowError):
    """Creation or transition blocked until the order is settled"""

    status_code = 402

    def __init__(self, order_id: Optional[int], total: Decimal, paid: Decimal,
                 requested_status=None, current_status=None):
        self.order_id = order_id
        self.total = total
        self.paid = paid
        self.amount_remaining = max(total - paid, Decimal("0"))

        if requested_status is not None:
            target = getattr(requested_status, "value", requested_status)
            message = (
                f"Payment of {self.amount_remaining} required before order "
                f"{order_id} can move to {target}"
            )
        else:
            message = (
                f"Payment of {self.amount_remaining} is required when the "
                f"order is placed"
            )
        super().__init__(
            message,
            "PAYMENT_REQUIRED",
            {
                "order_id": order_id,
                "total": str(total),
                "paid_to_date": str(paid),
                "amount_remaining": str(self.amount_remaining),
                "current_status": getattr(current_status, "value", current_status),
                "requested_status": getattr(requested_status, "value", requested_status),
            },
        )


class PartialPaymentNotAllowed(WorkflowError):
    """A payment that leaves a balance while partial payment is disabled"""

    def __init__(self, order_id: int, amount: Decimal, amount_remaining: Decimal):
        self.order_id = order_id
        self.amount = amount
        self.amount_remaining = amount_remaining
        super().__init__(
            f"Partial payment is disabled: payment of {amount} does not cover "
            f"the remaining {amount_remaining} on order {order_id}",
            "PARTIAL_PAYMENT_NOT_ALLOWED",
            {
                "order_id": order_id,
                "amount": str(amount),
                "amount_remaining": str(amount_remaining),
            },
        )


class InvalidAmount(WorkflowError):
    """Non-positive payment or one larger than the outstanding balance"""

    def __init__(self, amount, reason: str, amount_remaining: Optional[Decimal] = None):
        self.amount = amount
        super().__init__(
            reason,
            "INVALID_AMOUNT",
            {
                "amount": str(amount),
                "amount_remaining": (
                    str(amount_remaining) if amount_remaining is not None else None
                ),
            },
        )


class InvalidTable(WorkflowError):
    """Referenced table does not exist"""

    status_code = 404

    def __init__(self, table_id):
        self.table_id = table_id
        super().__init__(
            f"Table {table_id} not found", "INVALID_TABLE", {"table_id": table_id}
        )


class TableUnavailable(WorkflowError):
    """Table cannot take the requested order or reservation"""

    status_code = 409

    def __init__(self, table_id: int, table_number, table_status, reason: Optional[str] = None):
        self.table_id = table_id
        status_value = getattr(table_status, "value", table_status)
        super().__init__(
            reason or f"Table {table_number} is not available. Current status: {status_value}",
            "TABLE_UNAVAILABLE",
            {
                "table_id": table_id,
                "table_number": table_number,
                "table_status": status_value,
            },
        )


class OrderNotOnTable(WorkflowError):
    """Transfer source does not match the order's current table"""

    status_code = 409

    def __init__(self, order_id: int, expected_table_id: int, actual_table_id: Optional[int]):
        super().__init__(
            f"Order {order_id} is not on table {expected_table_id}",
            "ORDER_NOT_ON_TABLE",
            {
                "order_id": order_id,
                "from_table_id": expected_table_id,
                "current_table_id": actual_table_id,
            },
        )


class ConcurrencyConflict(WorkflowError):
    """Lost an optimistic-lock race; reload and retry"""

    status_code = 409

    def __init__(self, resource: str, resource_id, operation: Optional[str] = None):
        super().__init__(
            f"{resource} {resource_id} was modified concurrently; reload and retry",
            "CONCURRENCY_CONFLICT",
            {"resource": resource, "id": resource_id, "operation": operation},
        )
