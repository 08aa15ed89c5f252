from sqlalchemy import (Column, Integer, String, ForeignKey, DateTime,
                        Numeric, Text, Enum, Boolean, CheckConstraint)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base
from core.mixins import TimestampMixin
from ..enums.order_enums import OrderStatus, OrderType, OrderPaymentStatus
from ..enums.payment_enums import PaymentMethod
from modules.menu.models.menu_models import MenuItem  # noqa: F401
from modules.tables.models.table_models import Table  # noqa: F401
from decimal import Decimal


class Order(Base, TimestampMixin):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), nullable=False, unique=True, index=True)
    kot_number = Column(String(32), nullable=False, unique=True, index=True)
    order_type = Column(Enum(OrderType), nullable=False, index=True)
    status = Column(Enum(OrderStatus), nullable=False,
                    default=OrderStatus.PENDING, index=True)
    total = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    table_id = Column(Integer, ForeignKey("tables.id"), nullable=True, index=True)

    customer_name = Column(String(100), nullable=True)
    customer_phone = Column(String(20), nullable=True)
    customer_address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    kot_printed = Column(Boolean, nullable=False, default=False, index=True)
    kot_printed_at = Column(DateTime, nullable=True)
    settled_at = Column(DateTime, nullable=True)

    created_by_id = Column(Integer, nullable=True)
    created_by_name = Column(String(100), nullable=True)

    version = Column(Integer, nullable=False, default=1)

    order_items = relationship(
        "OrderItem", back_populates="order",
        order_by="OrderItem.id", cascade="all, delete-orphan"
    )
    payments = relationship(
        "Payment", back_populates="order", order_by="Payment.id"
    )
    table = relationship("Table", back_populates="orders")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("total >= 0", name="chk_order_total"),
    )

    @property
    def paid_to_date(self) -> Decimal:
        return sum((Decimal(p.amount) for p in self.payments), Decimal("0"))

    @property
    def amount_remaining(self) -> Decimal:
        return max(Decimal(self.total) - self.paid_to_date, Decimal("0"))

    @property
    def payment_status(self) -> OrderPaymentStatus:
        paid = self.paid_to_date
        if paid <= 0:
            return OrderPaymentStatus.UNPAID
        if paid < Decimal(self.total):
            return OrderPaymentStatus.PARTIALLY_PAID
        return OrderPaymentStatus.PAID

    @property
    def table_number(self):
        return self.table.table_number if self.table is not None else None

    @property
    def is_settled(self) -> bool:
        return self.settled_at is not None

    def recalculate_total(self) -> Decimal:
        self.total = sum(
            (Decimal(item.price) * item.quantity for item in self.order_items),
            Decimal("0"),
        )
        return self.total

    def __repr__(self):
        return (
            f"<Order(id={self.id}, number={self.order_number}, "
            f"status={self.status})>"
        )


class OrderItem(Base, TimestampMixin):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"),
                      nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Unit price captured when the item was ordered
    price = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)
    prepared = Column(Boolean, nullable=False, default=False)
    prepared_at = Column(DateTime, nullable=True)

    order = relationship("Order", back_populates="order_items")
    menu_item = relationship("MenuItem")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="chk_order_item_quantity"),
    )

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.price) * self.quantity

    @property
    def name(self) -> str:
        return self.menu_item.name if self.menu_item is not None else f"Item {self.menu_item_id}"

    @property
    def category_name(self):
        if self.menu_item is None or self.menu_item.category is None:
            return None
        return self.menu_item.category.name


class Payment(Base):
    """Money received against an order; rows are never updated"""

    __tablename__ = "order_payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"),
                      nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    method = Column(Enum(PaymentMethod), nullable=False)
    split_number = Column(Integer, nullable=True)
    received_by_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    order = relationship("Order", back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_payment_amount"),
    )


class SequenceCounter(Base):
    """Monotonic counters backing order and KOT numbers"""

    __tablename__ = "sequence_counters"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
