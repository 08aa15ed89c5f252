from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class StatusFlow(str, Enum):
    PENDING_PREPARING_SERVED_COMPLETED = "pending_preparing_served_completed"
    PENDING_READY_SERVED_COMPLETED = "pending_ready_served_completed"
    PENDING_COMPLETED = "pending_completed"
    CUSTOM = "custom"


class OrderPaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class SequenceName(str, Enum):
    ORDER_NUMBER = "order_number"
    KOT_NUMBER = "kot_number"
