# backend/modules/settings/models/workflow_settings_models.py

"""
Singleton configuration rows read by the order workflow.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Enum as SQLEnum,
    CheckConstraint,
)
from enum import Enum

from core.database import Base
from core.mixins import TimestampMixin
from modules.orders.enums.order_enums import StatusFlow

# Both configuration tables hold exactly one row with this primary key
SINGLETON_ID = 1


class WorkflowMode(str, Enum):
    """Restaurant operating style"""

    FULL_SERVICE = "full_service"
    QUICK_SERVICE = "quick_service"
    CUSTOM = "custom"


class WorkflowConfiguration(Base, TimestampMixin):
    """Active order workflow policy"""

    __tablename__ = "workflow_configuration"

    id = Column(Integer, primary_key=True, default=SINGLETON_ID)
    mode = Column(SQLEnum(WorkflowMode), nullable=False,
                  default=WorkflowMode.FULL_SERVICE)

    # Payment policy
    require_payment_at_order = Column(Boolean, nullable=False, default=False)
    auto_mark_served_when_paid = Column(Boolean, nullable=False, default=False)
    allow_partial_payment = Column(Boolean, nullable=False, default=True)
    allow_split_payment = Column(Boolean, nullable=False, default=True)
    require_payment_for_served = Column(Boolean, nullable=False, default=False)

    # Kitchen ticket policy
    auto_print_kot = Column(Boolean, nullable=False, default=True)
    require_kot_print_confirmation = Column(Boolean, nullable=False, default=False)
    kot_print_delay_seconds = Column(Integer, nullable=False, default=0)

    # Kitchen progress policy
    auto_start_preparing = Column(Boolean, nullable=False, default=False)
    enable_item_wise_preparing = Column(Boolean, nullable=False, default=True)

    # Table policy
    auto_occupy_table_on_order = Column(Boolean, nullable=False, default=True)
    auto_free_table_on_payment = Column(Boolean, nullable=False, default=True)
    allow_multiple_orders_per_table = Column(Boolean, nullable=False, default=False)

    status_flow = Column(SQLEnum(StatusFlow), nullable=False,
                         default=StatusFlow.PENDING_PREPARING_SERVED_COMPLETED)

    # Advisory flags for notification collaborators
    notify_kitchen_on_new_order = Column(Boolean, nullable=False, default=True)
    notify_waiter_on_ready = Column(Boolean, nullable=False, default=True)
    play_order_sound = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "kot_print_delay_seconds >= 0 AND kot_print_delay_seconds <= 60",
            name="chk_kot_print_delay_range",
        ),
    )


class PrinterSettings(Base, TimestampMixin):
    """Receipt and kitchen printer assignment"""

    __tablename__ = "printer_settings"

    id = Column(Integer, primary_key=True, default=SINGLETON_ID)
    printer_name = Column(String(100), nullable=False, default="")
    kitchen_printer_name = Column(String(100), nullable=True)
    paper_width = Column(Integer, nullable=False, default=80)
    copies = Column(Integer, nullable=False, default=1)
    kot_copies = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("paper_width IN (58, 80)", name="chk_paper_width"),
        CheckConstraint("copies >= 1 AND kot_copies >= 1", name="chk_copies"),
    )
