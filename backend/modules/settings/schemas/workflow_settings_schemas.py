# backend/modules/settings/schemas/workflow_settings_schemas.py

from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from modules.orders.enums.order_enums import StatusFlow
from ..models.workflow_settings_models import WorkflowMode


class WorkflowConfigurationBase(BaseModel):
    mode: WorkflowMode = WorkflowMode.FULL_SERVICE
    require_payment_at_order: bool = False
    auto_mark_served_when_paid: bool = False
    auto_print_kot: bool = True
    require_kot_print_confirmation: bool = False
    kot_print_delay_seconds: int = Field(default=0, ge=0, le=60)
    auto_start_preparing: bool = False
    enable_item_wise_preparing: bool = True
    allow_partial_payment: bool = True
    allow_split_payment: bool = True
    require_payment_for_served: bool = False
    auto_occupy_table_on_order: bool = True
    auto_free_table_on_payment: bool = True
    allow_multiple_orders_per_table: bool = False
    status_flow: StatusFlow = StatusFlow.PENDING_PREPARING_SERVED_COMPLETED
    notify_kitchen_on_new_order: bool = True
    notify_waiter_on_ready: bool = True
    play_order_sound: bool = True


class WorkflowConfigurationUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value"""

    mode: Optional[WorkflowMode] = None
    require_payment_at_order: Optional[bool] = None
    auto_mark_served_when_paid: Optional[bool] = None
    auto_print_kot: Optional[bool] = None
    require_kot_print_confirmation: Optional[bool] = None
    kot_print_delay_seconds: Optional[int] = Field(default=None, ge=0, le=60)
    auto_start_preparing: Optional[bool] = None
    enable_item_wise_preparing: Optional[bool] = None
    allow_partial_payment: Optional[bool] = None
    allow_split_payment: Optional[bool] = None
    require_payment_for_served: Optional[bool] = None
    auto_occupy_table_on_order: Optional[bool] = None
    auto_free_table_on_payment: Optional[bool] = None
    allow_multiple_orders_per_table: Optional[bool] = None
    status_flow: Optional[StatusFlow] = None
    notify_kitchen_on_new_order: Optional[bool] = None
    notify_waiter_on_ready: Optional[bool] = None
    play_order_sound: Optional[bool] = None


class WorkflowConfigurationResponse(WorkflowConfigurationBase):
    model_config = ConfigDict(from_attributes=True)

    updated_at: Optional[datetime] = None


class ApplyModePresetRequest(BaseModel):
    mode: WorkflowMode


class PrinterSettingsUpdate(BaseModel):
    printer_name: Optional[str] = Field(default=None, max_length=100)
    kitchen_printer_name: Optional[str] = Field(default=None, max_length=100)
    paper_width: Optional[Literal[58, 80]] = None
    copies: Optional[int] = Field(default=None, ge=1, le=5)
    kot_copies: Optional[int] = Field(default=None, ge=1, le=5)


class PrinterSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    printer_name: str
    kitchen_printer_name: Optional[str] = None
    paper_width: int
    copies: int
    kot_copies: int
