from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from ..enums.order_enums import (
    OrderStatus,
    OrderType,
    OrderPaymentStatus,
)
from ..enums.payment_enums import PaymentMethod


class CustomerInfo(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None


class OrderItemCreate(BaseModel):
    menu_item_id: int
    quantity: int = Field(default=1, ge=1)
    notes: Optional[str] = None


class OrderItemUpdate(BaseModel):
    """Line in an item edit; ``id`` refers to an existing line to keep"""

    id: Optional[int] = None
    menu_item_id: int
    quantity: int = Field(default=1, ge=1)
    notes: Optional[str] = None


class PaymentCreate(BaseModel):
    # Range checks happen in the ledger so they report INVALID_AMOUNT
    amount: Decimal
    method: PaymentMethod = PaymentMethod.CASH
    split_number: Optional[int] = Field(default=None, ge=1)


class SplitPaymentPart(BaseModel):
    amount: Decimal
    method: PaymentMethod = PaymentMethod.CASH


class SplitPaymentRequest(BaseModel):
    parts: List[SplitPaymentPart] = Field(..., min_length=1)


class OrderCreate(BaseModel):
    order_type: OrderType
    items: List[OrderItemCreate]
    table_id: Optional[int] = None
    customer: Optional[CustomerInfo] = None
    notes: Optional[str] = None
    payments: Optional[List[PaymentCreate]] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemsUpdate(BaseModel):
    items: List[OrderItemUpdate]


class ItemPreparedUpdate(BaseModel):
    prepared: bool = True


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    menu_item_id: int
    name: str
    category_name: Optional[str] = None
    quantity: int
    price: Decimal
    line_total: Decimal
    notes: Optional[str] = None
    prepared: bool
    prepared_at: Optional[datetime] = None


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    amount: Decimal
    method: PaymentMethod
    split_number: Optional[int] = None
    received_by_id: Optional[int] = None
    created_at: datetime


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    kot_number: str
    order_type: OrderType
    status: OrderStatus
    total: Decimal
    paid_to_date: Decimal
    amount_remaining: Decimal
    payment_status: OrderPaymentStatus
    table_id: Optional[int] = None
    table_number: Optional[int] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    notes: Optional[str] = None
    kot_printed: bool
    kot_printed_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None
    created_by_id: Optional[int] = None
    created_by_name: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime
    order_items: List[OrderItemOut] = []
    payments: List[PaymentOut] = []


class SideEffectError(BaseModel):
    """Post-commit collaborator failure; the committed change stands"""

    effect: str
    error: str


class OrderOperationResponse(BaseModel):
    order: OrderOut
    side_effect_errors: List[SideEffectError] = []


class ItemPreparedResponse(BaseModel):
    item: OrderItemOut
    order: OrderOut
    side_effect_errors: List[SideEffectError] = []


class PaymentOperationResponse(BaseModel):
    payments: List[PaymentOut]
    order: OrderOut
    side_effect_errors: List[SideEffectError] = []


class AllowedActions(BaseModel):
    order_id: int
    status: OrderStatus
    next_statuses: List[OrderStatus]
    primary_next_status: Optional[OrderStatus] = None
    payment_blocked_statuses: List[OrderStatus] = []
    can_record_payment: bool
    can_toggle_items: bool
    can_edit_items: bool
    paid_to_date: Decimal
    amount_remaining: Decimal


class OrderFilter(BaseModel):
    status: Optional[List[OrderStatus]] = None
    order_type: Optional[OrderType] = None
    table_id: Optional[int] = None
    active_only: bool = False
    limit: int = Field(default=100, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class KitchenStats(BaseModel):
    pending: int = 0
    preparing: int = 0
    ready: int = 0
    served: int = 0
    total_active: int = 0
    unprinted_kots: int = 0


class ReceiptLine(BaseModel):
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class Receipt(BaseModel):
    order_id: int
    order_number: str
    order_type: OrderType
    table_number: Optional[int] = None
    customer_name: Optional[str] = None
    cashier: Optional[str] = None
    date: datetime
    lines: List[ReceiptLine]
    total: Decimal
    payments: List[PaymentOut]
    paid: Decimal
    balance: Decimal
    metadata: Dict[str, Any] = {}
