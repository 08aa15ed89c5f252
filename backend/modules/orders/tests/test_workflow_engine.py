# backend/modules/orders/tests/test_workflow_engine.py

"""
Order lifecycle through the workflow engine: creation, status transitions,
item preparation and item edits under different workflow configurations.
"""

import pytest
from decimal import Decimal

from core.auth import Actor, ActorRole
from core.notification_adapter import NotificationChannel
from modules.settings.schemas.workflow_settings_schemas import WorkflowConfigurationUpdate
from modules.settings.services.workflow_settings_service import WorkflowSettingsService
from modules.tables.models.table_models import TableStatus
from modules.tables.services.table_lifecycle_service import TableLifecycleService
from ..enums.order_enums import OrderStatus, OrderType, StatusFlow
from ..enums.payment_enums import PaymentMethod
from ..exceptions.workflow_exceptions import (
    IllegalTransition,
    InvalidCustomerInfo,
    InvalidTable,
    NotFound,
    PaymentRequired,
    TableUnavailable,
    ValidationError,
)
from ..schemas.order_schemas import (
    CustomerInfo,
    OrderItemCreate,
    OrderItemUpdate,
    PaymentCreate,
)
from ..services.status_flow import legal_next_statuses
from ..services.workflow_engine import OrderWorkflowEngine
from .factories import MenuCategoryFactory, MenuItemFactory, TableFactory

WAITER = Actor(id=7, display_name="Asha", role=ActorRole.WAITER)


@pytest.fixture
def configure(db_session):
    def _configure(**changes):
        return WorkflowSettingsService(db_session).update_configuration(
            WorkflowConfigurationUpdate(**changes)
        )
    return _configure


@pytest.fixture
def workflow(db_session, notifier, kot_dispatcher):
    return OrderWorkflowEngine(
        db_session,
        actor=WAITER,
        notification_adapter=notifier,
        kot_dispatcher=kot_dispatcher,
    )


@pytest.fixture
def dishes(db_session):
    mains = MenuCategoryFactory(name="Mains")
    drinks = MenuCategoryFactory(name="Drinks")
    return [
        MenuItemFactory(name="Paneer Tikka", price=Decimal("250.00"), category=mains),
        MenuItemFactory(name="Lime Soda", price=Decimal("60.00"), category=drinks),
    ]


@pytest.fixture
def table(db_session):
    return TableFactory(table_number=5)


def lines(*items, quantity=1):
    return [OrderItemCreate(menu_item_id=item.id, quantity=quantity) for item in items]


def assert_total_matches_items(order):
    assert order.total == sum(
        (Decimal(i.price) * i.quantity for i in order.order_items), Decimal("0")
    )


class TestCreateOrder:
    def test_dine_in_order_occupies_available_table(self, workflow, dishes, table,
                                                     notifier, kot_dispatcher):
        order = workflow.create_order(OrderType.DINE_IN, lines(*dishes), table_id=table.id)

        assert order.status == OrderStatus.PENDING
        assert order.total == Decimal("310.00")
        assert order.order_number == "ORD-0001"
        assert order.kot_number == "KOT-0001"
        assert order.created_by_id == WAITER.id
        assert order.table_number == 5
        assert table.status == TableStatus.OCCUPIED
        assert_total_matches_items(order)

        assert notifier.subjects() == ["new_order"]
        channel, message = notifier.sent[0]
        assert channel == NotificationChannel.KITCHEN
        assert message.metadata["table_number"] == 5
        assert kot_dispatcher.dispatched == [(order.id, 0)]
        assert workflow.side_effect_errors == []

    def test_numbers_increase_per_order(self, workflow, dishes):
        customer = CustomerInfo(name="Meera")
        first = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]), customer=customer)
        second = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[1]), customer=customer)

        assert (first.order_number, second.order_number) == ("ORD-0001", "ORD-0002")
        assert (first.kot_number, second.kot_number) == ("KOT-0001", "KOT-0002")

    def test_unit_price_is_snapshotted(self, workflow, dishes, db_session):
        order = workflow.create_order(
            OrderType.TAKEAWAY, lines(dishes[0], quantity=2), customer=CustomerInfo(name="Meera")
        )
        dishes[0].price = Decimal("300.00")
        db_session.commit()

        order = workflow.get_order(order.id)
        assert order.order_items[0].price == Decimal("250.00")
        assert order.total == Decimal("500.00")

    def test_empty_order_rejected(self, workflow):
        with pytest.raises(ValidationError):
            workflow.create_order(OrderType.TAKEAWAY, [], customer=CustomerInfo(name="Meera"))

    def test_dine_in_requires_table(self, workflow, dishes):
        with pytest.raises(ValidationError):
            workflow.create_order(OrderType.DINE_IN, lines(dishes[0]))

    def test_takeaway_cannot_take_a_table(self, workflow, dishes, table):
        with pytest.raises(ValidationError):
            workflow.create_order(
                OrderType.TAKEAWAY, lines(dishes[0]), table_id=table.id,
                customer=CustomerInfo(name="Meera"),
            )

    def test_unknown_table(self, workflow, dishes):
        with pytest.raises(InvalidTable):
            workflow.create_order(OrderType.DINE_IN, lines(dishes[0]), table_id=999)

    def test_takeaway_requires_customer_name(self, workflow, dishes):
        with pytest.raises(InvalidCustomerInfo) as exc_info:
            workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                  customer=CustomerInfo(name="  "))
        assert exc_info.value.details["missing_fields"] == ["name"]

    def test_delivery_requires_address(self, workflow, dishes):
        with pytest.raises(InvalidCustomerInfo) as exc_info:
            workflow.create_order(OrderType.DELIVERY, lines(dishes[0]),
                                  customer=CustomerInfo(name="Meera", phone="98450"))
        assert exc_info.value.details["missing_fields"] == ["address"]

    def test_unknown_menu_item(self, workflow):
        with pytest.raises(NotFound):
            workflow.create_order(
                OrderType.TAKEAWAY, [OrderItemCreate(menu_item_id=404)],
                customer=CustomerInfo(name="Meera"),
            )

    def test_unavailable_menu_item(self, workflow, db_session):
        sold_out = MenuItemFactory(is_available=False)
        with pytest.raises(ValidationError) as exc_info:
            workflow.create_order(OrderType.TAKEAWAY, lines(sold_out),
                                  customer=CustomerInfo(name="Meera"))
        assert exc_info.value.error_code == "MENU_ITEM_UNAVAILABLE"

    def test_occupied_table_rejected_by_default(self, workflow, dishes, table):
        workflow.create_order(OrderType.DINE_IN, lines(dishes[0]), table_id=table.id)

        with pytest.raises(TableUnavailable):
            workflow.create_order(OrderType.DINE_IN, lines(dishes[1]), table_id=table.id)

    def test_occupied_table_accepted_with_multiple_orders(self, workflow, configure,
                                                         dishes, table):
        configure(allow_multiple_orders_per_table=True)
        workflow.create_order(OrderType.DINE_IN, lines(dishes[0]), table_id=table.id)
        second = workflow.create_order(OrderType.DINE_IN, lines(dishes[1]), table_id=table.id)

        assert second.table_id == table.id

    def test_reserved_table_rejected(self, workflow, configure, dishes):
        configure(allow_multiple_orders_per_table=True)
        reserved = TableFactory(status=TableStatus.RESERVED)

        with pytest.raises(TableUnavailable):
            workflow.create_order(OrderType.DINE_IN, lines(dishes[0]), table_id=reserved.id)

    def test_auto_occupy_disabled(self, workflow, configure, dishes, table):
        configure(auto_occupy_table_on_order=False)
        workflow.create_order(OrderType.DINE_IN, lines(dishes[0]), table_id=table.id)

        assert table.status == TableStatus.AVAILABLE

    def test_auto_start_preparing(self, workflow, configure, dishes):
        configure(auto_start_preparing=True)
        order = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                      customer=CustomerInfo(name="Meera"))

        assert order.status == OrderStatus.PREPARING

    def test_auto_start_skipped_when_flow_has_no_preparing(self, workflow, configure, dishes):
        configure(auto_start_preparing=True,
                  status_flow=StatusFlow.PENDING_READY_SERVED_COMPLETED)
        order = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                      customer=CustomerInfo(name="Meera"))

        assert order.status == OrderStatus.PENDING

    def test_payment_required_at_order(self, workflow, configure, dishes, db_session):
        from ..models.order_models import Order

        configure(require_payment_at_order=True)

        with pytest.raises(PaymentRequired) as exc_info:
            workflow.create_order(
                OrderType.TAKEAWAY, lines(dishes[0]), customer=CustomerInfo(name="Meera"),
                payments=[PaymentCreate(amount=Decimal("100.00"))],
            )
        assert exc_info.value.amount_remaining == Decimal("150.00")
        assert db_session.query(Order).count() == 0

        order = workflow.create_order(
            OrderType.TAKEAWAY, lines(dishes[0]), customer=CustomerInfo(name="Meera"),
            payments=[PaymentCreate(amount=Decimal("250.00"), method=PaymentMethod.CARD)],
        )
        assert order.paid_to_date == Decimal("250.00")
        assert order.settled_at is not None
        assert order.status == OrderStatus.PENDING

    def test_split_payments_at_order(self, workflow, dishes):
        order = workflow.create_order(
            OrderType.TAKEAWAY, lines(*dishes), customer=CustomerInfo(name="Meera"),
            payments=[
                PaymentCreate(amount=Decimal("200.00"), method=PaymentMethod.CASH),
                PaymentCreate(amount=Decimal("110.00"), method=PaymentMethod.UPI),
            ],
        )

        assert [p.split_number for p in order.payments] == [1, 2]
        assert order.settled_at is not None

    def test_kot_print_needs_confirmation(self, workflow, configure, dishes, kot_dispatcher):
        configure(require_kot_print_confirmation=True)
        workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                              customer=CustomerInfo(name="Meera"))

        assert kot_dispatcher.dispatched == []

    def test_kot_print_delay_is_passed_on(self, workflow, configure, dishes, kot_dispatcher):
        configure(kot_print_delay_seconds=5)
        order = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                      customer=CustomerInfo(name="Meera"))

        assert kot_dispatcher.dispatched == [(order.id, 5)]

    def test_kitchen_notification_can_be_disabled(self, workflow, configure, dishes, notifier):
        configure(notify_kitchen_on_new_order=False)
        workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                              customer=CustomerInfo(name="Meera"))

        assert notifier.sent == []

    def test_failed_notification_does_not_undo_order(self, workflow, dishes, db_session,
                                                     notifier, kot_dispatcher):
        from ..models.order_models import Order

        notifier.fail = True
        order = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                      customer=CustomerInfo(name="Meera"))

        assert db_session.query(Order).filter(Order.id == order.id).count() == 1
        assert [e["effect"] for e in workflow.side_effect_errors] == ["notify_kitchen"]
        assert kot_dispatcher.dispatched == [(order.id, 0)]

    def test_without_dispatcher_ticket_stays_queued(self, db_session, dishes):
        from ..services.kot_service import KotService

        workflow = OrderWorkflowEngine(db_session, actor=WAITER)
        order = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                      customer=CustomerInfo(name="Meera"))

        assert workflow.side_effect_errors == []
        assert [o.id for o in KotService(db_session).get_kot_queue()] == [order.id]


class TestTransitions:
    def _order(self, workflow, dishes):
        return workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                     customer=CustomerInfo(name="Meera"))

    def test_illegal_transition_reports_allowed_statuses(self, workflow, dishes):
        order = self._order(workflow, dishes)

        with pytest.raises(IllegalTransition) as exc_info:
            workflow.transition_status(order.id, OrderStatus.SERVED)

        details = exc_info.value.details
        assert details["current_status"] == "pending"
        assert details["allowed_next_statuses"] == ["cancelled", "preparing"]
        assert workflow.get_order(order.id).status == OrderStatus.PENDING

    @pytest.mark.parametrize("flow", list(StatusFlow))
    @pytest.mark.parametrize("current", list(OrderStatus))
    def test_statuses_outside_legal_set_are_rejected(self, workflow, configure, dishes,
                                                    db_session, flow, current):
        configure(status_flow=flow)
        order = self._order(workflow, dishes)
        order.status = current
        db_session.commit()

        legal = legal_next_statuses(flow, current)
        for requested in OrderStatus:
            if requested in legal:
                continue
            with pytest.raises(IllegalTransition):
                workflow.transition_status(order.id, requested)
            assert workflow.get_order(order.id).status == current

    def test_full_service_walkthrough(self, workflow, dishes):
        order = self._order(workflow, dishes)
        workflow.transition_status(order.id, OrderStatus.PREPARING)
        workflow.transition_status(order.id, OrderStatus.SERVED)
        workflow.record_payment(order.id, Decimal("250.00"))
        order = workflow.transition_status(order.id, OrderStatus.COMPLETED)

        assert order.status == OrderStatus.COMPLETED

    def test_served_needs_payment_when_configured(self, workflow, configure, dishes):
        configure(require_payment_for_served=True)
        order = self._order(workflow, dishes)
        workflow.transition_status(order.id, OrderStatus.PREPARING)

        with pytest.raises(PaymentRequired) as exc_info:
            workflow.transition_status(order.id, OrderStatus.SERVED)
        assert exc_info.value.details["amount_remaining"] == "250.00"
        assert workflow.get_order(order.id).status == OrderStatus.PREPARING

        workflow.record_payment(order.id, Decimal("250.00"))
        order = workflow.transition_status(order.id, OrderStatus.SERVED)
        assert order.status == OrderStatus.SERVED

    def test_completion_always_needs_payment(self, workflow, configure, dishes):
        configure(status_flow=StatusFlow.PENDING_COMPLETED)
        order = self._order(workflow, dishes)

        with pytest.raises(PaymentRequired):
            workflow.transition_status(order.id, OrderStatus.COMPLETED)

        workflow.record_payment(order.id, Decimal("100.00"))
        with pytest.raises(PaymentRequired):
            workflow.transition_status(order.id, OrderStatus.COMPLETED)

        workflow.record_payment(order.id, Decimal("150.00"))
        assert workflow.transition_status(order.id, OrderStatus.COMPLETED).status == \
            OrderStatus.COMPLETED

    def test_payment_alone_never_completes(self, workflow, configure, dishes):
        configure(status_flow=StatusFlow.PENDING_COMPLETED, auto_mark_served_when_paid=True)
        order = self._order(workflow, dishes)
        workflow.record_payment(order.id, Decimal("250.00"))

        assert workflow.get_order(order.id).status == OrderStatus.PENDING

    def test_cancel_does_not_free_table_but_clear_does(self, workflow, dishes, table,
                                                       db_session):
        order = workflow.create_order(OrderType.DINE_IN, lines(dishes[0]), table_id=table.id)
        workflow.transition_status(order.id, OrderStatus.CANCELLED)

        assert table.status == TableStatus.OCCUPIED

        TableLifecycleService(db_session).free(table.id)
        assert table.status == TableStatus.AVAILABLE

    def test_completion_frees_table(self, workflow, configure, dishes, table):
        configure(auto_free_table_on_payment=False)
        order = workflow.create_order(OrderType.DINE_IN, lines(dishes[0]), table_id=table.id)
        workflow.transition_status(order.id, OrderStatus.PREPARING)
        workflow.transition_status(order.id, OrderStatus.SERVED)
        workflow.record_payment(order.id, Decimal("250.00"))
        assert table.status == TableStatus.OCCUPIED

        configure(auto_free_table_on_payment=True)
        workflow.transition_status(order.id, OrderStatus.COMPLETED)
        assert table.status == TableStatus.AVAILABLE

    def test_entering_ready_notifies_waiters(self, workflow, configure, dishes, notifier):
        configure(status_flow=StatusFlow.PENDING_READY_SERVED_COMPLETED)
        order = self._order(workflow, dishes)
        workflow.transition_status(order.id, OrderStatus.READY)

        assert notifier.subjects() == ["new_order", "order_ready"]
        assert notifier.sent[-1][0] == NotificationChannel.WAITERS

    def test_ready_notification_can_be_disabled(self, workflow, configure, dishes, notifier):
        configure(status_flow=StatusFlow.PENDING_READY_SERVED_COMPLETED,
                  notify_waiter_on_ready=False)
        order = self._order(workflow, dishes)
        workflow.transition_status(order.id, OrderStatus.READY)

        assert notifier.subjects() == ["new_order"]

    def test_unknown_order(self, workflow):
        with pytest.raises(NotFound):
            workflow.transition_status(12345, OrderStatus.PREPARING)


class TestItemPreparation:
    def _order(self, workflow, dishes):
        return workflow.create_order(OrderType.TAKEAWAY, lines(*dishes),
                                     customer=CustomerInfo(name="Meera"))

    def test_all_items_prepared_advances_to_served(self, workflow, dishes):
        order = self._order(workflow, dishes)
        workflow.transition_status(order.id, OrderStatus.PREPARING)
        first, second = order.order_items

        workflow.toggle_item_prepared(first.id, True)
        assert workflow.get_order(order.id).status == OrderStatus.PREPARING

        workflow.toggle_item_prepared(second.id, True)
        assert workflow.get_order(order.id).status == OrderStatus.SERVED

    def test_advance_passes_through_intermediate_statuses(self, workflow, dishes):
        order = self._order(workflow, dishes)
        for item in order.order_items:
            workflow.toggle_item_prepared(item.id, True)

        assert workflow.get_order(order.id).status == OrderStatus.SERVED

    def test_advance_through_ready_notifies_waiters(self, workflow, configure, dishes,
                                                    notifier):
        configure(status_flow=StatusFlow.PENDING_READY_SERVED_COMPLETED)
        order = self._order(workflow, dishes)
        for item in order.order_items:
            workflow.toggle_item_prepared(item.id, True)

        assert workflow.get_order(order.id).status == OrderStatus.SERVED
        assert "order_ready" in notifier.subjects()

    def test_toggle_is_idempotent(self, workflow, dishes):
        order = self._order(workflow, dishes)
        item = order.order_items[0]

        workflow.toggle_item_prepared(item.id, True)
        prepared_at = item.prepared_at
        workflow.toggle_item_prepared(item.id, True)

        assert item.prepared is True
        assert item.prepared_at == prepared_at
        assert workflow.get_order(order.id).status == OrderStatus.PENDING

    def test_unmarking_clears_timestamp(self, workflow, dishes):
        order = self._order(workflow, dishes)
        item = order.order_items[0]
        workflow.toggle_item_prepared(item.id, True)
        workflow.toggle_item_prepared(item.id, False)

        assert item.prepared is False
        assert item.prepared_at is None

    def test_payment_gate_skips_advance_silently(self, workflow, configure, dishes):
        configure(require_payment_for_served=True)
        order = self._order(workflow, dishes)
        workflow.transition_status(order.id, OrderStatus.PREPARING)
        for item in order.order_items:
            workflow.toggle_item_prepared(item.id, True)

        assert workflow.get_order(order.id).status == OrderStatus.PREPARING

    def test_item_wise_preparing_disabled(self, workflow, configure, dishes):
        configure(enable_item_wise_preparing=False)
        order = self._order(workflow, dishes)
        workflow.transition_status(order.id, OrderStatus.PREPARING)
        for item in order.order_items:
            workflow.toggle_item_prepared(item.id, True)

        assert workflow.get_order(order.id).status == OrderStatus.PREPARING

    def test_no_advance_when_served_unreachable(self, workflow, configure, dishes):
        configure(status_flow=StatusFlow.PENDING_COMPLETED)
        order = self._order(workflow, dishes)
        for item in order.order_items:
            workflow.toggle_item_prepared(item.id, True)

        assert workflow.get_order(order.id).status == OrderStatus.PENDING

    def test_terminal_order_rejects_toggle(self, workflow, dishes):
        order = self._order(workflow, dishes)
        workflow.transition_status(order.id, OrderStatus.CANCELLED)

        with pytest.raises(IllegalTransition):
            workflow.toggle_item_prepared(order.order_items[0].id, True)

    def test_unknown_item(self, workflow):
        with pytest.raises(NotFound):
            workflow.toggle_item_prepared(999, True)


class TestUpdateOrderItems:
    def _order(self, workflow, dishes):
        return workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                     customer=CustomerInfo(name="Meera"))

    def test_edit_recalculates_total_and_requeues_kot(self, workflow, dishes, db_session,
                                                      kot_dispatcher):
        order = self._order(workflow, dishes)
        order.kot_printed = True
        db_session.commit()
        existing = order.order_items[0]

        dishes[0].price = Decimal("999.00")
        db_session.commit()

        order = workflow.update_order_items(order.id, [
            OrderItemUpdate(id=existing.id, menu_item_id=dishes[0].id, quantity=2),
            OrderItemUpdate(menu_item_id=dishes[1].id, quantity=3, notes="no ice"),
        ])

        assert order.total == Decimal("680.00")
        assert order.order_items[0].price == Decimal("250.00")
        assert order.kot_printed is False
        assert len(kot_dispatcher.dispatched) == 2
        assert_total_matches_items(order)

    def test_omitted_lines_are_removed(self, workflow, dishes):
        order = workflow.create_order(OrderType.TAKEAWAY, lines(*dishes),
                                      customer=CustomerInfo(name="Meera"))
        kept = order.order_items[1]

        order = workflow.update_order_items(order.id, [
            OrderItemUpdate(id=kept.id, menu_item_id=kept.menu_item_id, quantity=1),
        ])

        assert [i.id for i in order.order_items] == [kept.id]
        assert order.total == Decimal("60.00")

    def test_total_cannot_drop_below_paid(self, workflow, dishes):
        order = workflow.create_order(OrderType.TAKEAWAY, lines(*dishes),
                                      customer=CustomerInfo(name="Meera"))
        workflow.record_payment(order.id, Decimal("300.00"))

        with pytest.raises(ValidationError) as exc_info:
            workflow.update_order_items(order.id, [
                OrderItemUpdate(menu_item_id=dishes[1].id, quantity=1),
            ])
        assert exc_info.value.error_code == "TOTAL_BELOW_PAID"
        assert workflow.get_order(order.id).total == Decimal("310.00")

    def test_adding_to_settled_order_unsettles_it(self, workflow, dishes):
        order = self._order(workflow, dishes)
        workflow.record_payment(order.id, Decimal("250.00"))
        assert order.settled_at is not None

        order = workflow.update_order_items(order.id, [
            OrderItemUpdate(id=order.order_items[0].id, menu_item_id=dishes[0].id),
            OrderItemUpdate(menu_item_id=dishes[1].id),
        ])

        assert order.settled_at is None
        assert order.amount_remaining == Decimal("60.00")

    def test_reopened_order_takes_its_table_back(self, workflow, dishes, table):
        order = workflow.create_order(OrderType.DINE_IN, lines(dishes[0]), table_id=table.id)
        item_id = order.order_items[0].id
        workflow.record_payment(order.id, Decimal("250.00"))
        assert table.status == TableStatus.AVAILABLE

        order = workflow.update_order_items(order.id, [
            OrderItemUpdate(id=item_id, menu_item_id=dishes[0].id, quantity=2),
        ])

        assert order.settled_at is None
        assert order.amount_remaining == Decimal("250.00")
        assert table.status == TableStatus.OCCUPIED
        with pytest.raises(TableUnavailable):
            workflow.create_order(OrderType.DINE_IN, lines(dishes[1]), table_id=table.id)

    def test_reopen_refused_once_table_is_taken(self, workflow, dishes, table, db_session):
        order = workflow.create_order(OrderType.DINE_IN, lines(dishes[0]), table_id=table.id)
        item_id = order.order_items[0].id
        workflow.record_payment(order.id, Decimal("250.00"))
        newcomer = workflow.create_order(OrderType.DINE_IN, lines(dishes[1]),
                                         table_id=table.id)

        with pytest.raises(TableUnavailable):
            workflow.update_order_items(order.id, [
                OrderItemUpdate(id=item_id, menu_item_id=dishes[0].id, quantity=2),
            ])

        db_session.expire_all()
        order = workflow.get_order(order.id)
        assert order.total == Decimal("250.00")
        assert order.settled_at is not None
        assert [o.id for o in TableLifecycleService(db_session).active_orders(table.id)] == [
            order.id, newcomer.id
        ]

    def test_existing_line_cannot_change_menu_item(self, workflow, dishes):
        order = self._order(workflow, dishes)

        with pytest.raises(ValidationError):
            workflow.update_order_items(order.id, [
                OrderItemUpdate(id=order.order_items[0].id, menu_item_id=dishes[1].id),
            ])

    def test_unknown_line(self, workflow, dishes):
        order = self._order(workflow, dishes)

        with pytest.raises(NotFound):
            workflow.update_order_items(order.id, [
                OrderItemUpdate(id=9999, menu_item_id=dishes[0].id),
            ])

    def test_terminal_order_cannot_be_edited(self, workflow, dishes):
        order = self._order(workflow, dishes)
        workflow.transition_status(order.id, OrderStatus.CANCELLED)

        with pytest.raises(IllegalTransition):
            workflow.update_order_items(order.id, [
                OrderItemUpdate(menu_item_id=dishes[1].id),
            ])


class TestAllowedActions:
    def test_new_order(self, workflow, dishes):
        order = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                      customer=CustomerInfo(name="Meera"))
        actions = workflow.get_allowed_actions(order.id)

        assert actions.next_statuses == [OrderStatus.PREPARING, OrderStatus.CANCELLED]
        assert actions.primary_next_status == OrderStatus.PREPARING
        assert actions.payment_blocked_statuses == []
        assert actions.can_record_payment is True
        assert actions.can_toggle_items is True
        assert actions.amount_remaining == Decimal("250.00")

    def test_payment_blocked_statuses(self, workflow, configure, dishes):
        configure(require_payment_for_served=True)
        order = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                      customer=CustomerInfo(name="Meera"))
        workflow.transition_status(order.id, OrderStatus.PREPARING)

        actions = workflow.get_allowed_actions(order.id)
        assert actions.next_statuses == [OrderStatus.SERVED, OrderStatus.CANCELLED]
        assert actions.payment_blocked_statuses == [OrderStatus.SERVED]

    def test_terminal_order(self, workflow, dishes):
        order = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[0]),
                                      customer=CustomerInfo(name="Meera"))
        workflow.transition_status(order.id, OrderStatus.CANCELLED)

        actions = workflow.get_allowed_actions(order.id)
        assert actions.next_statuses == []
        assert actions.primary_next_status is None
        assert actions.can_record_payment is False
        assert actions.can_toggle_items is False
        assert actions.can_edit_items is False


class TestListOrders:
    def test_filters(self, workflow, dishes, table):
        dine_in = workflow.create_order(OrderType.DINE_IN, lines(dishes[0]), table_id=table.id)
        takeaway = workflow.create_order(OrderType.TAKEAWAY, lines(dishes[1]),
                                         customer=CustomerInfo(name="Meera"))
        workflow.transition_status(takeaway.id, OrderStatus.CANCELLED)

        assert [o.id for o in workflow.list_orders(table_id=table.id)] == [dine_in.id]
        assert [o.id for o in workflow.list_orders(active_only=True)] == [dine_in.id]
        assert [o.id for o in workflow.list_orders(statuses=[OrderStatus.CANCELLED])] == \
            [takeaway.id]
        assert [o.id for o in workflow.list_orders(order_type=OrderType.TAKEAWAY)] == \
            [takeaway.id]
