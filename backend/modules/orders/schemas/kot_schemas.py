from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from ..enums.order_enums import OrderType


class KotItemSnapshot(BaseModel):
    name: str
    quantity: int
    notes: Optional[str] = None
    category: Optional[str] = None


class OrderSnapshot(BaseModel):
    """Everything the kitchen ticket needs, detached from the session"""

    order_id: int
    order_number: str
    kot_number: str
    order_type: OrderType
    table_number: Optional[int] = None
    customer_name: Optional[str] = None
    waiter_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    items: List[KotItemSnapshot]


class KotLine(BaseModel):
    quantity: int
    name: str
    notes: Optional[str] = None


class KotSection(BaseModel):
    category: str
    items: List[KotLine]


class KitchenTicket(BaseModel):
    kot_number: str
    order_number: str
    order_id: int
    banner: str
    timestamp: datetime
    waiter_name: Optional[str] = None
    sections: List[KotSection]
    notes: Optional[str] = None
    total_items: int


class KotQueueEntry(BaseModel):
    order_id: int
    order_number: str
    kot_number: str
    order_type: OrderType
    table_number: Optional[int] = None
    created_at: datetime


class KotPrintResult(BaseModel):
    order_id: int
    kot_number: str
    printed: bool
    printer: Optional[str] = None
    kot_printed_at: Optional[datetime] = None
    ticket: KitchenTicket


class KotPrintRequest(BaseModel):
    """Optional override of the configured kitchen printer"""

    printer_name: Optional[str] = None
