# backend/modules/tables/schemas/table_schemas.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from ..models.table_models import TableStatus
from modules.orders.enums.order_enums import OrderStatus


class TableBase(BaseModel):
    table_number: int = Field(..., ge=1)
    capacity: int = Field(default=4, ge=1, le=50)


class TableCreate(TableBase):
    pass


class TableUpdate(BaseModel):
    table_number: Optional[int] = Field(default=None, ge=1)
    capacity: Optional[int] = Field(default=None, ge=1, le=50)
    status: Optional[TableStatus] = None


class TableOrderSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    status: OrderStatus
    total: Decimal
    paid_to_date: Decimal
    settled_at: Optional[datetime] = None


class TableResponse(TableBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: TableStatus
    version: int
    created_at: datetime
    updated_at: datetime


class TableWithOrders(TableResponse):
    active_orders: List[TableOrderSummary] = []


class TableReservationCreate(BaseModel):
    guest_name: str = Field(..., min_length=1, max_length=100)
    guest_phone: Optional[str] = Field(default=None, max_length=20)
    party_size: Optional[int] = Field(default=None, ge=1)
    reservation_time: Optional[datetime] = None


class TableReservationResponse(TableReservationCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    table_id: int
    created_by_id: Optional[int] = None
    created_at: datetime


class MergeTablesRequest(BaseModel):
    source_table_ids: List[int] = Field(..., min_length=1)
    target_table_id: int


class MergeTablesResponse(BaseModel):
    target_table_id: int
    moved_orders: int
    moved_order_ids: List[int]
    freed_tables: List[int]


class TransferOrderRequest(BaseModel):
    order_id: int
    from_table_id: int
    to_table_id: int


class SwapTablesRequest(BaseModel):
    table_a_id: int
    table_b_id: int


class TableMoveResponse(BaseModel):
    moved_orders: int
    moved_order_ids: List[int]
    tables: List[TableResponse]
