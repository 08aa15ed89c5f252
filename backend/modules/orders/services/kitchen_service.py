# backend/modules/orders/services/kitchen_service.py

from typing import List
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ..enums.order_enums import OrderStatus
from ..models.order_models import Order, OrderItem
from ..schemas.order_schemas import KitchenStats
from .status_flow import TERMINAL_STATUSES

logger = logging.getLogger(__name__)

# Orders shown on the kitchen display
KITCHEN_VIEW_STATUSES = [
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.SERVED,
]


class KitchenService:
    """Read-only views for the kitchen display"""

    def __init__(self, db: Session):
        self.db = db

    def get_kitchen_orders(self) -> List[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.order_items).selectinload(OrderItem.menu_item))
            .filter(Order.status.in_(KITCHEN_VIEW_STATUSES))
            .order_by(Order.created_at, Order.id)
            .all()
        )

    def get_kitchen_stats(self) -> KitchenStats:
        counts = dict(
            self.db.query(Order.status, func.count(Order.id))
            .filter(Order.status.in_(KITCHEN_VIEW_STATUSES))
            .group_by(Order.status)
            .all()
        )
        unprinted = (
            self.db.query(func.count(Order.id))
            .filter(
                Order.kot_printed.is_(False),
                Order.status.notin_(list(TERMINAL_STATUSES)),
            )
            .scalar()
        )
        return KitchenStats(
            pending=counts.get(OrderStatus.PENDING, 0),
            preparing=counts.get(OrderStatus.PREPARING, 0),
            ready=counts.get(OrderStatus.READY, 0),
            served=counts.get(OrderStatus.SERVED, 0),
            total_active=sum(counts.values()),
            unprinted_kots=unprinted or 0,
        )
