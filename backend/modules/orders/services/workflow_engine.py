# backend/modules/orders/services/workflow_engine.py

"""
Order workflow engine.

Every public operation loads the active workflow configuration, checks the
request against the status flow and the order's payment state, applies the
change together with its table and ledger consequences, and commits once.
Collaborator calls (kitchen / waiter notifications, KOT auto-print) run
after the commit; their failures are collected in ``side_effect_errors``
and never undo the committed change.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from core.auth import Actor, SYSTEM_ACTOR
from core.config import get_settings
from core.notification_adapter import (
    LoggingAdapter,
    NotificationAdapter,
    NotificationChannel,
    NotificationMessage,
    NotificationPriority,
)
from modules.menu.models.menu_models import MenuItem
from modules.settings.models.workflow_settings_models import WorkflowConfiguration
from modules.settings.services.workflow_settings_service import WorkflowSettingsService
from modules.tables.services.table_lifecycle_service import TableLifecycleService
from ..enums.order_enums import OrderStatus, OrderType, SequenceName
from ..enums.payment_enums import PaymentMethod
from ..exceptions.workflow_exceptions import (
    IllegalTransition,
    InvalidCustomerInfo,
    NotFound,
    PaymentRequired,
    ValidationError,
)
from ..models.order_models import Order, OrderItem, Payment
from ..schemas.order_schemas import (
    AllowedActions,
    CustomerInfo,
    OrderItemCreate,
    OrderItemUpdate,
    PaymentCreate,
)
from ..utils.audit_logger import audit_logger
from ..utils.database_retry import with_conflict_retry
from ..utils.order_locks import order_locks, order_key, table_key
from .kot_dispatch import KotDispatcher
from .payment_ledger import PaymentLedger, to_money
from .sequence_service import SequenceService, format_number
from .side_effects import SideEffectRunner
from .status_flow import (
    is_terminal,
    legal_next_statuses,
    forward_path,
    next_forward_status,
    sort_statuses,
)

logger = logging.getLogger(__name__)


class OrderWorkflowEngine:
    """Applies order intents under the active workflow configuration"""

    def __init__(
        self,
        db: Session,
        actor: Actor = SYSTEM_ACTOR,
        notification_adapter: Optional[NotificationAdapter] = None,
        kot_dispatcher: Optional[KotDispatcher] = None,
    ):
        self.db = db
        self.actor = actor
        self.notifier = notification_adapter or LoggingAdapter()
        self.kot_dispatcher = kot_dispatcher
        self.settings_service = WorkflowSettingsService(db)
        self.ledger = PaymentLedger(db)
        self.tables = TableLifecycleService(db, actor)
        self.side_effects = SideEffectRunner()
        self._status_changes: List[Tuple[int, OrderStatus, OrderStatus, str]] = []

    @property
    def side_effect_errors(self):
        return self.side_effects.errors

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _begin(self):
        self.side_effects.reset()
        self._status_changes = []

    def _config(self) -> WorkflowConfiguration:
        return self.settings_service.get_configuration()

    def _load_order(self, order_id: int, for_update: bool = True) -> Order:
        query = self.db.query(Order).filter(Order.id == order_id)
        if for_update:
            query = query.with_for_update()
        order = query.first()
        if order is None:
            raise NotFound("Order", order_id)
        return order

    def _resolve_menu_item(self, menu_item_id: int) -> MenuItem:
        menu_item = self.db.query(MenuItem).filter(MenuItem.id == menu_item_id).first()
        if menu_item is None:
            raise NotFound("MenuItem", menu_item_id)
        if not menu_item.is_available:
            raise ValidationError(
                f"{menu_item.name} is not available",
                {"menu_item_id": menu_item_id},
                error_code="MENU_ITEM_UNAVAILABLE",
            )
        return menu_item

    def _validate_customer(self, order_type: OrderType, customer: Optional[CustomerInfo]):
        name = (customer.name or "").strip() if customer else ""
        address = (customer.address or "").strip() if customer else ""

        missing = []
        if order_type in (OrderType.TAKEAWAY, OrderType.DELIVERY) and not name:
            missing.append("name")
        if order_type == OrderType.DELIVERY and not address:
            missing.append("address")
        if missing:
            raise InvalidCustomerInfo(order_type, missing)

    def _payment_gate_blocks(self, order: Order, status: OrderStatus,
                             config: WorkflowConfiguration) -> bool:
        """True when entering ``status`` requires more money than has been paid"""
        if status == OrderStatus.COMPLETED or (
            status == OrderStatus.SERVED and config.require_payment_for_served
        ):
            return order.paid_to_date < Decimal(order.total)
        return False

    def _apply_status(self, order: Order, status: OrderStatus, trigger: str):
        previous = order.status
        order.status = status
        self._status_changes.append((order.id, previous, status, trigger))
        logger.info(
            f"Order {order.id} status {previous.value} -> {status.value} ({trigger})"
        )

    def _advance_when_all_prepared(self, order: Order, config: WorkflowConfiguration):
        """Move a fully prepared order on to SERVED along the flow"""
        if not config.enable_item_wise_preparing:
            return
        if not order.order_items or not all(i.prepared for i in order.order_items):
            return

        path = forward_path(config.status_flow, order.status, OrderStatus.SERVED)
        if not path:
            return
        if self._payment_gate_blocks(order, OrderStatus.SERVED, config):
            logger.info(
                f"Order {order.id} fully prepared but payment is required before serving"
            )
            return

        for step in path:
            self._apply_status(order, step, "items_prepared")

    def _after_payment(self, order: Order, config: WorkflowConfiguration):
        """Settlement consequences of a newly recorded payment"""
        if not self.ledger.settle_if_paid(order):
            return

        if config.auto_mark_served_when_paid and OrderStatus.SERVED in legal_next_statuses(
            config.status_flow, order.status
        ):
            self._apply_status(order, OrderStatus.SERVED, "payment")

        if config.auto_free_table_on_payment:
            with order_locks.hold(table_key(order.table_id)):
                self.tables.release_if_vacant(order.table_id, exclude_order_id=order.id)

    def _record_payments(self, order: Order, payments: Sequence[PaymentCreate],
                         config: WorkflowConfiguration) -> List[Payment]:
        if len(payments) == 1 and payments[0].split_number is None:
            payment = payments[0]
            amount = self.ledger.validate_payment(order, payment.amount, config)
            return [
                self.ledger.append(order, amount, payment.method,
                                   received_by_id=self.actor.id)
            ]

        amounts = self.ledger.validate_split(
            order, [(p.amount, p.method) for p in payments], config
        )
        first_number = self.ledger.next_split_number(order)
        recorded = []
        for index, (payment, amount) in enumerate(zip(payments, amounts)):
            recorded.append(
                self.ledger.append(
                    order,
                    amount,
                    payment.method,
                    split_number=payment.split_number or first_number + index,
                    received_by_id=self.actor.id,
                )
            )
        return recorded

    def _commit(self):
        self.db.commit()
        for order_id, previous, status, trigger in self._status_changes:
            audit_logger.log_status_change(
                order_id, previous, status, self.actor.id, trigger
            )

    def _audit_payments(self, order: Order, payments: List[Payment]):
        paid = order.paid_to_date
        for payment in payments:
            audit_logger.log_payment(
                order.id,
                payment.id,
                payment.amount,
                payment.method,
                self.actor.id,
                split_number=payment.split_number,
                paid_to_date=paid,
            )

    # Post-commit collaborator calls

    def _notify_new_order(self, order: Order, play_sound: bool) -> bool:
        where = (
            f" for table {order.table_number}"
            if order.table_number is not None
            else f" ({order.order_type.value})"
        )
        message = NotificationMessage(
            subject="new_order",
            message=f"New order {order.order_number}{where}",
            priority=NotificationPriority.HIGH,
            play_sound=play_sound,
            metadata={
                "order_id": order.id,
                "order_number": order.order_number,
                "kot_number": order.kot_number,
                "order_type": order.order_type.value,
                "table_number": order.table_number,
            },
        )
        return self.notifier.send_to_channel(NotificationChannel.KITCHEN, message)

    def _notify_order_ready(self, order: Order, play_sound: bool) -> bool:
        message = NotificationMessage(
            subject="order_ready",
            message=f"Order {order.order_number} is ready",
            priority=NotificationPriority.NORMAL,
            play_sound=play_sound,
            metadata={
                "order_id": order.id,
                "order_number": order.order_number,
                "table_number": order.table_number,
            },
        )
        return self.notifier.send_to_channel(NotificationChannel.WAITERS, message)

    def _dispatch_kot(self, order_id: int, delay_seconds: int):
        if self.kot_dispatcher is None:
            logger.info(f"No KOT dispatcher configured; order {order_id} left in queue")
            return True
        self.kot_dispatcher.dispatch(order_id, delay_seconds)
        return True

    def _maybe_auto_print(self, order: Order, config: WorkflowConfiguration):
        if config.auto_print_kot and not config.require_kot_print_confirmation:
            self.side_effects.run(
                "kot_auto_print", self._dispatch_kot, order.id,
                config.kot_print_delay_seconds,
            )

    def _notify_ready_if_entered(self, order: Order, config: WorkflowConfiguration):
        entered_ready = any(
            status == OrderStatus.READY for _, _, status, _ in self._status_changes
        )
        if entered_ready and config.notify_waiter_on_ready:
            self.side_effects.run(
                "notify_waiter", self._notify_order_ready, order,
                config.play_order_sound,
            )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @with_conflict_retry("Order", identified=False)
    def create_order(
        self,
        order_type: OrderType,
        items: Sequence[OrderItemCreate],
        table_id: Optional[int] = None,
        customer: Optional[CustomerInfo] = None,
        notes: Optional[str] = None,
        payments: Optional[Sequence[PaymentCreate]] = None,
    ) -> Order:
        self._begin()
        order_type = OrderType(order_type)
        payments = list(payments or [])

        if not items:
            raise ValidationError("Order must contain at least one item")
        if order_type == OrderType.DINE_IN and table_id is None:
            raise ValidationError("Dine-in orders require a table")
        if order_type != OrderType.DINE_IN and table_id is not None:
            raise ValidationError(
                f"{order_type.value} orders cannot be assigned to a table",
                {"table_id": table_id},
            )
        self._validate_customer(order_type, customer)

        settings = get_settings()
        sequences = SequenceService(self.db)
        sequences.ensure_counters(
            [SequenceName.ORDER_NUMBER.value, SequenceName.KOT_NUMBER.value]
        )

        with order_locks.hold(table_key(table_id)):
            config = self._config()

            table = None
            if table_id is not None:
                table = self.tables.get_table(table_id, for_update=True)
                self.tables.admit_dine_in(table, config)

            lines = []
            for item in items:
                if item.quantity < 1:
                    raise ValidationError(
                        "Quantity must be at least 1",
                        {"menu_item_id": item.menu_item_id, "quantity": item.quantity},
                    )
                lines.append((item, self._resolve_menu_item(item.menu_item_id)))

            order = Order(
                order_type=order_type,
                status=OrderStatus.PENDING,
                table_id=table.id if table is not None else None,
                customer_name=(customer.name.strip() if customer and customer.name else None),
                customer_phone=customer.phone if customer else None,
                customer_address=customer.address if customer else None,
                notes=notes,
                kot_printed=False,
                created_by_id=self.actor.id,
                created_by_name=self.actor.display_name,
            )
            for item, menu_item in lines:
                order.order_items.append(
                    OrderItem(
                        menu_item_id=menu_item.id,
                        quantity=item.quantity,
                        price=Decimal(menu_item.price),
                        notes=item.notes,
                        prepared=False,
                    )
                )
            order.recalculate_total()

            if config.require_payment_at_order:
                supplied = sum((to_money(p.amount) for p in payments), Decimal("0"))
                if supplied < order.total:
                    raise PaymentRequired(None, order.total, supplied)

            order.order_number = format_number(
                settings.ORDER_NUMBER_PREFIX,
                sequences.next_value(SequenceName.ORDER_NUMBER.value),
                settings.SEQUENCE_PADDING,
            )
            order.kot_number = format_number(
                settings.KOT_NUMBER_PREFIX,
                sequences.next_value(SequenceName.KOT_NUMBER.value),
                settings.SEQUENCE_PADDING,
            )
            self.db.add(order)
            self.db.flush()

            recorded = []
            if payments:
                recorded = self._record_payments(order, payments, config)
                self.ledger.settle_if_paid(order)

            if table is not None and config.auto_occupy_table_on_order:
                self.tables.mark_occupied(table)

            if config.auto_start_preparing and OrderStatus.PREPARING in legal_next_statuses(
                config.status_flow, order.status
            ):
                self._apply_status(order, OrderStatus.PREPARING, "auto_start")

            self._commit()
            self.db.refresh(order)

            logger.info(
                f"Created order {order.order_number} ({order_type.value}) "
                f"total={order.total} by actor {self.actor.id}"
            )
            audit_logger.log_action(
                "create_order", self.actor.id, "order", order.id,
                {"order_number": order.order_number, "total": order.total},
            )
            self._audit_payments(order, recorded)

            if config.notify_kitchen_on_new_order:
                self.side_effects.run(
                    "notify_kitchen", self._notify_new_order, order,
                    config.play_order_sound,
                )
            self._maybe_auto_print(order, config)
            return order

    @with_conflict_retry("Order")
    def transition_status(self, order_id: int, requested: OrderStatus) -> Order:
        self._begin()
        requested = OrderStatus(requested)

        with order_locks.hold(order_key(order_id)):
            order = self._load_order(order_id)
            config = self._config()

            legal = legal_next_statuses(config.status_flow, order.status)
            if requested not in legal:
                raise IllegalTransition(order.id, order.status, requested, legal)

            if self._payment_gate_blocks(order, requested, config):
                raise PaymentRequired(
                    order.id, Decimal(order.total), order.paid_to_date,
                    requested_status=requested, current_status=order.status,
                )

            self._apply_status(order, requested, "manual")

            if requested == OrderStatus.COMPLETED and config.auto_free_table_on_payment:
                with order_locks.hold(table_key(order.table_id)):
                    self.tables.release_if_vacant(order.table_id)

            self._commit()
            self.db.refresh(order)

            self._notify_ready_if_entered(order, config)
            return order

    def toggle_item_prepared(self, order_item_id: int, prepared: bool = True) -> OrderItem:
        item = self.db.query(OrderItem).filter(OrderItem.id == order_item_id).first()
        if item is None:
            raise NotFound("OrderItem", order_item_id)
        return self._toggle_item_prepared(item.order_id, order_item_id, prepared)

    @with_conflict_retry("Order")
    def _toggle_item_prepared(self, order_id: int, order_item_id: int,
                              prepared: bool) -> OrderItem:
        self._begin()

        with order_locks.hold(order_key(order_id)):
            order = self._load_order(order_id)
            if is_terminal(order.status):
                raise IllegalTransition(
                    order.id, order.status, order.status, frozenset(),
                    reason=(
                        f"Order {order.id} is {order.status.value}; "
                        f"its items can no longer be changed"
                    ),
                )
            config = self._config()

            item = next(i for i in order.order_items if i.id == order_item_id)
            if item.prepared != prepared:
                item.prepared = prepared
                item.prepared_at = datetime.utcnow() if prepared else None
                logger.info(
                    f"Order {order.id} item {item.id} marked "
                    f"{'prepared' if prepared else 'not prepared'}"
                )

            if prepared:
                self._advance_when_all_prepared(order, config)

            self._commit()
            self.db.refresh(item)

            self._notify_ready_if_entered(order, config)
            return item

    @with_conflict_retry("Order")
    def record_payment(
        self,
        order_id: int,
        amount: Decimal,
        method: PaymentMethod = PaymentMethod.CASH,
        split_number: Optional[int] = None,
    ) -> Payment:
        self._begin()

        with order_locks.hold(order_key(order_id)):
            order = self._load_order(order_id)
            config = self._config()

            amount = self.ledger.validate_payment(order, amount, config, split_number)
            payment = self.ledger.append(
                order, amount, method,
                split_number=split_number,
                received_by_id=self.actor.id,
            )
            self._after_payment(order, config)

            self._commit()
            self.db.refresh(order)
            self._audit_payments(order, [payment])
            return payment

    @with_conflict_retry("Order")
    def record_split_payments(
        self,
        order_id: int,
        parts: Sequence[Tuple[Decimal, PaymentMethod]],
    ) -> List[Payment]:
        """Record several numbered payments on one order as a single unit"""
        self._begin()

        with order_locks.hold(order_key(order_id)):
            order = self._load_order(order_id)
            config = self._config()

            amounts = self.ledger.validate_split(order, parts, config)
            first_number = self.ledger.next_split_number(order)
            payments = [
                self.ledger.append(
                    order, amount, method,
                    split_number=first_number + index,
                    received_by_id=self.actor.id,
                )
                for index, (amount, (_, method)) in enumerate(zip(amounts, parts))
            ]
            self._after_payment(order, config)

            self._commit()
            self.db.refresh(order)
            self._audit_payments(order, payments)
            return payments

    @with_conflict_retry("Order")
    def update_order_items(self, order_id: int, items: Sequence[OrderItemUpdate]) -> Order:
        """
        Replace the item set of an open order.

        Lines carrying an ``id`` keep their price snapshot and prepared
        flag; lines without one are priced from the menu now. Lines left
        out are removed. The kitchen ticket is re-queued.
        """
        self._begin()
        if not items:
            raise ValidationError("Order must contain at least one item")

        with order_locks.hold(order_key(order_id)):
            order = self._load_order(order_id)
            if is_terminal(order.status):
                raise IllegalTransition(
                    order.id, order.status, order.status, frozenset(),
                    reason=(
                        f"Order {order.id} is {order.status.value}; "
                        f"its items can no longer be changed"
                    ),
                )
            config = self._config()

            existing = {i.id: i for i in order.order_items}
            seen_ids = set()
            new_lines: List[OrderItem] = []
            for line in items:
                if line.id is not None:
                    if line.id in seen_ids:
                        raise ValidationError(
                            f"Item {line.id} listed more than once",
                            {"order_item_id": line.id},
                        )
                    seen_ids.add(line.id)
                    current = existing.get(line.id)
                    if current is None:
                        raise NotFound("OrderItem", line.id)
                    if current.menu_item_id != line.menu_item_id:
                        raise ValidationError(
                            "An existing line cannot change its menu item",
                            {"order_item_id": line.id},
                        )
                    current.quantity = line.quantity
                    current.notes = line.notes
                    new_lines.append(current)
                else:
                    menu_item = self._resolve_menu_item(line.menu_item_id)
                    new_lines.append(
                        OrderItem(
                            menu_item_id=menu_item.id,
                            quantity=line.quantity,
                            price=Decimal(menu_item.price),
                            notes=line.notes,
                            prepared=False,
                        )
                    )

            order.order_items = new_lines
            order.recalculate_total()

            paid = order.paid_to_date
            if Decimal(order.total) < paid:
                raise ValidationError(
                    f"New total {order.total} is below the {paid} already paid",
                    {"total": str(order.total), "paid_to_date": str(paid)},
                    error_code="TOTAL_BELOW_PAID",
                )

            if order.settled_at is not None and paid < Decimal(order.total):
                order.settled_at = None
                if config.auto_free_table_on_payment:
                    with order_locks.hold(table_key(order.table_id)):
                        self.tables.reoccupy_for(order, config)
            else:
                self._after_payment(order, config)

            order.kot_printed = False
            order.kot_printed_at = None

            self._commit()
            self.db.refresh(order)

            audit_logger.log_action(
                "update_order_items", self.actor.id, "order", order.id,
                {"total": order.total, "line_count": len(new_lines)},
            )
            self._maybe_auto_print(order, config)
            return order

    def get_allowed_actions(self, order_id: int) -> AllowedActions:
        order = self._load_order(order_id, for_update=False)
        config = self._config()

        legal = legal_next_statuses(config.status_flow, order.status)
        terminal = is_terminal(order.status)
        remaining = order.amount_remaining
        return AllowedActions(
            order_id=order.id,
            status=order.status,
            next_statuses=sort_statuses(legal),
            primary_next_status=next_forward_status(config.status_flow, order.status),
            payment_blocked_statuses=sort_statuses(
                s for s in legal if self._payment_gate_blocks(order, s, config)
            ),
            can_record_payment=not terminal and remaining > 0,
            can_toggle_items=not terminal and bool(order.order_items),
            can_edit_items=not terminal,
            paid_to_date=order.paid_to_date,
            amount_remaining=remaining,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_order(self, order_id: int) -> Order:
        return self._load_order(order_id, for_update=False)

    def list_orders(
        self,
        statuses: Optional[Sequence[OrderStatus]] = None,
        order_type: Optional[OrderType] = None,
        table_id: Optional[int] = None,
        active_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Order]:
        query = self.db.query(Order)
        if statuses:
            query = query.filter(Order.status.in_(list(statuses)))
        if active_only:
            query = query.filter(
                Order.status.notin_([OrderStatus.COMPLETED, OrderStatus.CANCELLED])
            )
        if order_type is not None:
            query = query.filter(Order.order_type == order_type)
        if table_id is not None:
            query = query.filter(Order.table_id == table_id)
        return (
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
