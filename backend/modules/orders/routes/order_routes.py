"""
API routes for the order workflow.

Each mutating endpoint returns the updated order together with any
post-commit side-effect failures, so terminals can warn staff (e.g. the
kitchen was not notified) without treating the request as failed.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.auth import Actor, get_current_actor
from core.database import get_db
from core.deps import get_print_client, get_workflow_engine
from core.print_client import PrintClient, PrinterTarget
from ..enums.order_enums import OrderStatus, OrderType
from ..exceptions.workflow_exceptions import NotFound
from ..schemas.kot_schemas import KitchenTicket, KotPrintRequest, KotPrintResult
from ..schemas.order_schemas import (
    AllowedActions,
    ItemPreparedResponse,
    ItemPreparedUpdate,
    OrderCreate,
    OrderItemOut,
    OrderItemsUpdate,
    OrderOperationResponse,
    OrderOut,
    OrderStatusUpdate,
    PaymentCreate,
    PaymentOperationResponse,
    PaymentOut,
    Receipt,
    SplitPaymentRequest,
)
from ..services.kot_service import KotService, build_receipt
from ..services.workflow_engine import OrderWorkflowEngine

router = APIRouter(prefix="/api/v1/orders", tags=["Orders"])


def order_response(engine: OrderWorkflowEngine, order) -> OrderOperationResponse:
    return OrderOperationResponse(
        order=OrderOut.model_validate(order),
        side_effect_errors=engine.side_effect_errors,
    )


def item_prepared_response(engine: OrderWorkflowEngine, item) -> ItemPreparedResponse:
    return ItemPreparedResponse(
        item=OrderItemOut.model_validate(item),
        order=OrderOut.model_validate(item.order),
        side_effect_errors=engine.side_effect_errors,
    )


@router.post("", response_model=OrderOperationResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    """
    Place a new order.

    Dine-in orders need an admissible table; takeaway and delivery orders
    need customer details. Payments may be supplied up front and are
    required when the workflow demands payment at order time.
    """
    order = engine.create_order(
        order_data.order_type,
        order_data.items,
        table_id=order_data.table_id,
        customer=order_data.customer,
        notes=order_data.notes,
        payments=order_data.payments,
    )
    return order_response(engine, order)


@router.get("", response_model=List[OrderOut])
async def list_orders(
    status: Optional[List[OrderStatus]] = Query(None),
    order_type: Optional[OrderType] = Query(None),
    table_id: Optional[int] = Query(None),
    active_only: bool = Query(False),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    return engine.list_orders(
        statuses=status,
        order_type=order_type,
        table_id=table_id,
        active_only=active_only,
        limit=limit,
        offset=offset,
    )


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: int,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    return engine.get_order(order_id)


@router.put("/{order_id}/status", response_model=OrderOperationResponse)
async def update_order_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    order = engine.transition_status(order_id, status_update.status)
    return order_response(engine, order)


@router.put("/{order_id}/items", response_model=OrderOperationResponse)
async def update_order_items(
    order_id: int,
    items_update: OrderItemsUpdate,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    order = engine.update_order_items(order_id, items_update.items)
    return order_response(engine, order)


@router.put("/{order_id}/items/{item_id}/prepared", response_model=ItemPreparedResponse)
async def toggle_item_prepared(
    order_id: int,
    item_id: int,
    update: ItemPreparedUpdate,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    order = engine.get_order(order_id)
    if not any(item.id == item_id for item in order.order_items):
        raise NotFound("OrderItem", item_id)
    item = engine.toggle_item_prepared(item_id, update.prepared)
    return item_prepared_response(engine, item)


@router.get("/{order_id}/allowed-actions", response_model=AllowedActions)
async def get_allowed_actions(
    order_id: int,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    return engine.get_allowed_actions(order_id)


@router.get("/{order_id}/payments", response_model=List[PaymentOut])
async def list_payments(
    order_id: int,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    return engine.get_order(order_id).payments


@router.post(
    "/{order_id}/payments",
    response_model=PaymentOperationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    order_id: int,
    payment_data: PaymentCreate,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    payment = engine.record_payment(
        order_id,
        payment_data.amount,
        payment_data.method,
        split_number=payment_data.split_number,
    )
    return PaymentOperationResponse(
        payments=[PaymentOut.model_validate(payment)],
        order=OrderOut.model_validate(payment.order),
        side_effect_errors=engine.side_effect_errors,
    )


@router.post(
    "/{order_id}/payments/split",
    response_model=PaymentOperationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_split_payments(
    order_id: int,
    split_request: SplitPaymentRequest,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    """Record several numbered payments that together settle (part of) an order"""
    payments = engine.record_split_payments(
        order_id, [(part.amount, part.method) for part in split_request.parts]
    )
    order = engine.get_order(order_id)
    return PaymentOperationResponse(
        payments=[PaymentOut.model_validate(p) for p in payments],
        order=OrderOut.model_validate(order),
        side_effect_errors=engine.side_effect_errors,
    )


@router.get("/{order_id}/kot", response_model=KitchenTicket)
async def get_kitchen_ticket(
    order_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return KotService(db).get_ticket(order_id)


@router.post("/{order_id}/kot/print", response_model=KotPrintResult)
async def print_kitchen_ticket(
    order_id: int,
    print_request: Optional[KotPrintRequest] = None,
    db: Session = Depends(get_db),
    print_client: PrintClient = Depends(get_print_client),
    actor: Actor = Depends(get_current_actor),
):
    """Print (or reprint) the kitchen ticket; marks it printed on success"""
    service = KotService(db, print_client)
    printer: Optional[PrinterTarget] = None
    if print_request and print_request.printer_name:
        printer = service.kitchen_printer()
        printer.name = print_request.printer_name
    return service.print_kot(order_id, printer)


@router.post("/{order_id}/kot/printed", response_model=OrderOut)
async def confirm_kitchen_ticket_printed(
    order_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Manual confirmation used when automatic KOT printing needs approval"""
    return KotService(db).mark_kot_printed(order_id)


@router.get("/{order_id}/receipt", response_model=Receipt)
async def get_receipt(
    order_id: int,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    return build_receipt(engine.get_order(order_id), cashier=engine.actor.display_name)
