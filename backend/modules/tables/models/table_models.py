# backend/modules/tables/models/table_models.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from enum import Enum

from core.database import Base
from core.mixins import TimestampMixin


class TableStatus(str, Enum):
    """Table availability status"""

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"


class Table(Base, TimestampMixin):
    """Dining table and its occupancy state"""

    __tablename__ = "tables"

    id = Column(Integer, primary_key=True)
    table_number = Column(Integer, nullable=False, unique=True, index=True)
    capacity = Column(Integer, nullable=False, default=4)
    status = Column(SQLEnum(TableStatus), nullable=False,
                    default=TableStatus.AVAILABLE)

    # Optimistic lock; bumped on every flush that changes the row
    version = Column(Integer, nullable=False, default=1)

    orders = relationship("Order", back_populates="table")
    reservations = relationship(
        "TableReservation", back_populates="table",
        order_by="TableReservation.reservation_time"
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="chk_table_capacity"),
    )

    def __repr__(self):
        return f"<Table(id={self.id}, number={self.table_number}, status={self.status})>"


class TableReservation(Base, TimestampMixin):
    """Guest booking placed against a table"""

    __tablename__ = "table_reservations"

    id = Column(Integer, primary_key=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False, index=True)
    guest_name = Column(String(100), nullable=False)
    guest_phone = Column(String(20), nullable=True)
    party_size = Column(Integer, nullable=True)
    reservation_time = Column(DateTime, nullable=True)
    created_by_id = Column(Integer, nullable=True)

    table = relationship("Table", back_populates="reservations")
