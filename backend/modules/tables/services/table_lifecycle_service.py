# backend/modules/tables/services/table_lifecycle_service.py

"""
Table occupancy lifecycle.

A table stays occupied while any *active* order (neither completed nor
cancelled) references it; the only exception is auto-free on payment, which
releases the table for the order that was just paid. Occupancy changes made
on behalf of an order (auto-occupy, auto-free, re-occupy) are applied inside
the caller's transaction through the helper methods; the public operations
commit their own unit of work.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.auth import Actor, SYSTEM_ACTOR
from core.exceptions import ConflictError
from modules.orders.exceptions.workflow_exceptions import (
    InvalidTable,
    NotFound,
    OrderNotOnTable,
    TableUnavailable,
    ValidationError,
)
from modules.orders.models.order_models import Order
from modules.orders.services.status_flow import TERMINAL_STATUSES
from modules.orders.utils.audit_logger import audit_logger
from modules.orders.utils.database_retry import with_conflict_retry
from modules.orders.utils.order_locks import order_locks, order_key, table_key
from modules.settings.models.workflow_settings_models import WorkflowConfiguration
from modules.settings.services.workflow_settings_service import WorkflowSettingsService
from ..models.table_models import Table, TableReservation, TableStatus
from ..schemas.table_schemas import (
    TableCreate,
    TableUpdate,
    TableReservationCreate,
    TableResponse,
    TableOrderSummary,
    TableWithOrders,
)

logger = logging.getLogger(__name__)


class TableLifecycleService:
    """Service for table occupancy, reservations and order moves"""

    def __init__(self, db: Session, actor: Actor = SYSTEM_ACTOR):
        self.db = db
        self.actor = actor

    # ------------------------------------------------------------------
    # Helpers shared with the order workflow (no commit)
    # ------------------------------------------------------------------

    def get_table(self, table_id: int, for_update: bool = False) -> Table:
        query = self.db.query(Table).filter(Table.id == table_id)
        if for_update:
            query = query.with_for_update()
        table = query.first()
        if table is None:
            raise InvalidTable(table_id)
        return table

    def active_orders(self, table_id: int) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(
                Order.table_id == table_id,
                Order.status.notin_(list(TERMINAL_STATUSES)),
            )
            .order_by(Order.created_at, Order.id)
            .all()
        )

    def admit_dine_in(self, table: Table, config: WorkflowConfiguration):
        """Raise unless ``table`` can take another dine-in order"""
        if table.status == TableStatus.AVAILABLE:
            return
        if (
            table.status == TableStatus.OCCUPIED
            and config.allow_multiple_orders_per_table
        ):
            return
        raise TableUnavailable(table.id, table.table_number, table.status)

    def mark_occupied(self, table: Table):
        if table.status != TableStatus.OCCUPIED:
            logger.info(f"Table {table.table_number} -> occupied")
            table.status = TableStatus.OCCUPIED

    def release_if_vacant(self, table_id: Optional[int],
                          exclude_order_id: Optional[int] = None) -> bool:
        """Free an occupied table once no other active orders remain on it"""
        if table_id is None:
            return False
        self.db.flush()
        table = self.get_table(table_id)
        if table.status != TableStatus.OCCUPIED:
            return False
        if any(o.id != exclude_order_id for o in self.active_orders(table_id)):
            return False
        table.status = TableStatus.AVAILABLE
        logger.info(f"Table {table.table_number} released")
        return True

    def reoccupy_for(self, order: Order, config: WorkflowConfiguration):
        """
        Put an order that owes money again back on its table.

        Raises ``TableUnavailable`` when the table was reserved or handed
        to another order after it was released.
        """
        if order.table_id is None:
            return
        table = self.get_table(order.table_id, for_update=True)
        others = [o for o in self.active_orders(table.id) if o.id != order.id]
        if table.status == TableStatus.RESERVED or (
            others and not config.allow_multiple_orders_per_table
        ):
            raise TableUnavailable(
                table.id, table.table_number, table.status,
                reason=(
                    f"Table {table.table_number} was released and is no longer "
                    f"free for order {order.order_number}"
                ),
            )
        self.mark_occupied(table)

    def describe(self, table: Table) -> TableWithOrders:
        """Table fields plus its active orders, for list views"""
        return TableWithOrders(
            **TableResponse.model_validate(table).model_dump(),
            active_orders=[
                TableOrderSummary.model_validate(order)
                for order in self.active_orders(table.id)
            ],
        )

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def list_tables(self, status: Optional[TableStatus] = None) -> List[Table]:
        query = self.db.query(Table)
        if status is not None:
            query = query.filter(Table.status == status)
        return query.order_by(Table.table_number).all()

    def _ensure_number_free(self, table_number: int, exclude_id: Optional[int] = None):
        query = self.db.query(Table).filter(Table.table_number == table_number)
        if exclude_id is not None:
            query = query.filter(Table.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(
                f"Table number {table_number} already exists",
                error_code="TABLE_NUMBER_EXISTS",
            )

    def create_table(self, data: TableCreate) -> Table:
        self._ensure_number_free(data.table_number)
        table = Table(
            table_number=data.table_number,
            capacity=data.capacity,
            status=TableStatus.AVAILABLE,
        )
        self.db.add(table)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(
                f"Table number {data.table_number} already exists",
                error_code="TABLE_NUMBER_EXISTS",
            )
        self.db.refresh(table)
        logger.info(f"Created table {table.table_number}")
        return table

    @with_conflict_retry("Table")
    def update_table(self, table_id: int, data: TableUpdate) -> Table:
        with order_locks.hold(table_key(table_id)):
            table = self.get_table(table_id, for_update=True)
            changes = data.model_dump(exclude_unset=True, exclude_none=True)

            if "table_number" in changes:
                self._ensure_number_free(changes["table_number"], exclude_id=table_id)
            if "status" in changes and changes["status"] != table.status:
                if self.active_orders(table_id):
                    raise TableUnavailable(
                        table.id, table.table_number, table.status,
                        reason=(
                            f"Table {table.table_number} has active orders; "
                            f"its status cannot be changed"
                        ),
                    )

            for field, value in changes.items():
                setattr(table, field, value)
            self.db.commit()
            self.db.refresh(table)
            return table

    @with_conflict_retry("Table")
    def delete_table(self, table_id: int):
        with order_locks.hold(table_key(table_id)):
            table = self.get_table(table_id, for_update=True)
            if self.active_orders(table_id):
                raise TableUnavailable(
                    table.id, table.table_number, table.status,
                    reason=f"Table {table.table_number} has active orders",
                )

            # Closed orders keep their history without the table link
            self.db.query(Order).filter(Order.table_id == table_id).update(
                {Order.table_id: None}, synchronize_session=False
            )
            self.db.query(TableReservation).filter(
                TableReservation.table_id == table_id
            ).delete(synchronize_session=False)
            self.db.delete(table)
            self.db.commit()

            audit_logger.log_action(
                "delete_table", self.actor.id, "table", table_id,
                {"table_number": table.table_number},
            )

    # ------------------------------------------------------------------
    # Occupancy
    # ------------------------------------------------------------------

    @with_conflict_retry("Table")
    def occupy(self, table_id: int) -> Table:
        with order_locks.hold(table_key(table_id)):
            table = self.get_table(table_id, for_update=True)
            self.mark_occupied(table)
            self.db.commit()
            self.db.refresh(table)
            return table

    @with_conflict_retry("Table")
    def free(self, table_id: int) -> Table:
        """Explicitly clear a table (also drops a reservation hold)"""
        with order_locks.hold(table_key(table_id)):
            table = self.get_table(table_id, for_update=True)
            active = self.active_orders(table_id)
            if active:
                raise TableUnavailable(
                    table.id, table.table_number, table.status,
                    reason=(
                        f"Table {table.table_number} has active orders: "
                        f"{', '.join(o.order_number for o in active)}"
                    ),
                )

            table.status = TableStatus.AVAILABLE
            self.db.commit()
            self.db.refresh(table)

            audit_logger.log_action("clear_table", self.actor.id, "table", table_id)
            return table

    @with_conflict_retry("Table")
    def reserve(self, table_id: int, details: TableReservationCreate) -> TableReservation:
        with order_locks.hold(table_key(table_id)):
            table = self.get_table(table_id, for_update=True)
            if table.status == TableStatus.OCCUPIED:
                raise TableUnavailable(
                    table.id, table.table_number, table.status,
                    reason=f"Table {table.table_number} is occupied and cannot be reserved",
                )

            reservation = TableReservation(
                table_id=table.id,
                guest_name=details.guest_name,
                guest_phone=details.guest_phone,
                party_size=details.party_size,
                reservation_time=details.reservation_time,
                created_by_id=self.actor.id,
            )
            table.status = TableStatus.RESERVED
            self.db.add(reservation)
            self.db.commit()
            self.db.refresh(reservation)

            logger.info(
                f"Table {table.table_number} reserved for {details.guest_name}"
            )
            return reservation

    # ------------------------------------------------------------------
    # Order moves
    # ------------------------------------------------------------------

    @with_conflict_retry("Table")
    def merge(self, source_ids: List[int], target_id: int) -> Dict[str, Any]:
        """
        Move every active order from ``source_ids`` onto ``target_id``.

        Sources are freed and the target marked occupied in one commit.
        """
        source_ids = list(dict.fromkeys(source_ids))
        if target_id in source_ids:
            raise ValidationError(
                "Target table cannot also be a source table",
                {"target_table_id": target_id, "source_table_ids": source_ids},
            )

        keys = [table_key(t) for t in source_ids + [target_id]]
        with order_locks.hold(*keys):
            target = self.get_table(target_id, for_update=True)
            sources = [self.get_table(t, for_update=True) for t in source_ids]

            moved: List[int] = []
            for source in sources:
                for order in self.active_orders(source.id):
                    order.table_id = target.id
                    moved.append(order.id)

            if not moved:
                raise ValidationError(
                    "No active orders on source tables",
                    {"source_table_ids": source_ids},
                )

            for source in sources:
                source.status = TableStatus.AVAILABLE
            self.mark_occupied(target)
            self.db.commit()

            audit_logger.log_action(
                "merge_tables", self.actor.id, "table", target_id,
                {"source_table_ids": source_ids, "moved_orders": moved},
            )
            logger.info(
                f"Merged tables {source_ids} into {target_id}; moved orders {moved}"
            )
            return {
                "target_table_id": target_id,
                "moved_orders": len(moved),
                "moved_order_ids": moved,
                "freed_tables": source_ids,
            }

    @with_conflict_retry("Order")
    def transfer_order(self, order_id: int, from_table_id: int, to_table_id: int) -> Order:
        if from_table_id == to_table_id:
            raise ValidationError("Source and destination tables are the same")

        with order_locks.hold(
            order_key(order_id), table_key(from_table_id), table_key(to_table_id)
        ):
            order = (
                self.db.query(Order).filter(Order.id == order_id)
                .with_for_update().first()
            )
            if order is None:
                raise NotFound("Order", order_id)
            if order.table_id != from_table_id:
                raise OrderNotOnTable(order_id, from_table_id, order.table_id)
            if order.status in TERMINAL_STATUSES:
                raise ValidationError(
                    f"Order {order_id} is {order.status.value} and cannot be moved",
                    {"order_id": order_id, "status": order.status.value},
                )

            self.get_table(from_table_id, for_update=True)
            target = self.get_table(to_table_id, for_update=True)
            config = WorkflowSettingsService(self.db).get_configuration()
            self.admit_dine_in(target, config)

            order.table_id = target.id
            self.mark_occupied(target)
            self.release_if_vacant(from_table_id)
            self.db.commit()
            self.db.refresh(order)

            audit_logger.log_action(
                "transfer_order", self.actor.id, "order", order_id,
                {"from_table_id": from_table_id, "to_table_id": to_table_id},
            )
            return order

    @with_conflict_retry("Table")
    def swap(self, table_a_id: int, table_b_id: int) -> Dict[str, Any]:
        """Exchange the active orders, reservations and statuses of two tables"""
        if table_a_id == table_b_id:
            raise ValidationError("Cannot swap a table with itself")

        with order_locks.hold(table_key(table_a_id), table_key(table_b_id)):
            table_a = self.get_table(table_a_id, for_update=True)
            table_b = self.get_table(table_b_id, for_update=True)

            orders_a = self.active_orders(table_a.id)
            orders_b = self.active_orders(table_b.id)
            for order in orders_a:
                order.table_id = table_b.id
            for order in orders_b:
                order.table_id = table_a.id

            reservations_a = list(table_a.reservations)
            reservations_b = list(table_b.reservations)
            for reservation in reservations_a:
                reservation.table_id = table_b.id
            for reservation in reservations_b:
                reservation.table_id = table_a.id

            table_a.status, table_b.status = table_b.status, table_a.status
            self.db.commit()
            self.db.refresh(table_a)
            self.db.refresh(table_b)

            moved = [o.id for o in orders_a + orders_b]
            audit_logger.log_action(
                "swap_tables", self.actor.id, "table", table_a_id,
                {"other_table_id": table_b_id, "moved_orders": moved},
            )
            return {
                "moved_orders": len(moved),
                "moved_order_ids": moved,
                "tables": [table_a, table_b],
            }
