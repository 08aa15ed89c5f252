# backend/modules/orders/services/kot_service.py

"""
Kitchen order tickets (KOT) and customer receipts.

``build_ticket`` and ``build_receipt`` are pure projections; ``KotService``
layers printing, manual confirmation and the unprinted queue on top.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from core.print_client import PrintClient, PrinterTarget, LoggingPrintClient
from modules.settings.services.workflow_settings_service import WorkflowSettingsService
from ..enums.order_enums import OrderType
from ..exceptions.workflow_exceptions import NotFound
from ..models.order_models import Order
from ..schemas.kot_schemas import (
    KitchenTicket,
    KotItemSnapshot,
    KotLine,
    KotPrintResult,
    KotSection,
    OrderSnapshot,
)
from ..schemas.order_schemas import PaymentOut, Receipt, ReceiptLine
from ..utils.database_retry import with_conflict_retry
from .status_flow import TERMINAL_STATUSES

logger = logging.getLogger(__name__)

UNCATEGORISED = "Other"
DEFAULT_CUSTOMER = "Customer"


def build_banner(order_type: OrderType, table_number: Optional[int],
                 customer_name: Optional[str]) -> str:
    if order_type == OrderType.DINE_IN:
        return f"Table {table_number}" if table_number is not None else "DINE IN"
    name = customer_name or DEFAULT_CUSTOMER
    if order_type == OrderType.TAKEAWAY:
        return f"TAKEAWAY - {name}"
    return f"DELIVERY - {name}"


def build_ticket(snapshot: OrderSnapshot) -> KitchenTicket:
    """Project an order snapshot onto a kitchen ticket"""
    sections: Dict[str, List[KotLine]] = {}
    for item in snapshot.items:
        category = item.category or UNCATEGORISED
        sections.setdefault(category, []).append(
            KotLine(quantity=item.quantity, name=item.name, notes=item.notes)
        )

    return KitchenTicket(
        kot_number=snapshot.kot_number,
        order_number=snapshot.order_number,
        order_id=snapshot.order_id,
        banner=build_banner(
            snapshot.order_type, snapshot.table_number, snapshot.customer_name
        ),
        timestamp=snapshot.created_at,
        waiter_name=snapshot.waiter_name,
        sections=[
            KotSection(category=category, items=lines)
            for category, lines in sections.items()
        ],
        notes=snapshot.notes,
        total_items=sum(item.quantity for item in snapshot.items),
    )


def snapshot_order(order: Order) -> OrderSnapshot:
    return OrderSnapshot(
        order_id=order.id,
        order_number=order.order_number,
        kot_number=order.kot_number,
        order_type=order.order_type,
        table_number=order.table_number,
        customer_name=order.customer_name,
        waiter_name=order.created_by_name,
        notes=order.notes,
        created_at=order.created_at,
        items=[
            KotItemSnapshot(
                name=item.name,
                quantity=item.quantity,
                notes=item.notes,
                category=item.category_name,
            )
            for item in order.order_items
        ],
    )


def build_receipt(order: Order, cashier: Optional[str] = None) -> Receipt:
    paid = order.paid_to_date
    return Receipt(
        order_id=order.id,
        order_number=order.order_number,
        order_type=order.order_type,
        table_number=order.table_number,
        customer_name=order.customer_name,
        cashier=cashier or order.created_by_name,
        date=order.created_at,
        lines=[
            ReceiptLine(
                name=item.name,
                quantity=item.quantity,
                unit_price=item.price,
                line_total=item.line_total,
            )
            for item in order.order_items
        ],
        total=order.total,
        payments=[PaymentOut.model_validate(p) for p in order.payments],
        paid=paid,
        balance=order.amount_remaining,
    )


class KotService:
    def __init__(self, db: Session, print_client: Optional[PrintClient] = None):
        self.db = db
        self.print_client = print_client or LoggingPrintClient()

    def _get_order(self, order_id: int, for_update: bool = False) -> Order:
        query = self.db.query(Order).filter(Order.id == order_id)
        if for_update:
            query = query.with_for_update()
        order = query.first()
        if order is None:
            raise NotFound("Order", order_id)
        return order

    def kitchen_printer(self) -> PrinterTarget:
        settings = WorkflowSettingsService(self.db).get_printer_settings()
        return PrinterTarget(
            name=settings.kitchen_printer_name or settings.printer_name,
            paper_width=settings.paper_width,
            copies=settings.kot_copies,
        )

    def get_ticket(self, order_id: int) -> KitchenTicket:
        return build_ticket(snapshot_order(self._get_order(order_id)))

    def print_kot(self, order_id: int, printer: Optional[PrinterTarget] = None) -> KotPrintResult:
        """
        Send the order's ticket to the kitchen printer.

        The order is marked printed only when the print client reports
        success; a failed print leaves it in the KOT queue.
        """
        order = self._get_order(order_id)
        ticket = build_ticket(snapshot_order(order))
        target = printer or self.kitchen_printer()

        try:
            printed = bool(
                self.print_client.print_document(ticket.model_dump(mode="json"), target)
            )
        except Exception as e:
            logger.error(
                f"Failed to print KOT {order.kot_number} for order {order_id}: {str(e)}"
            )
            printed = False

        printed_at = None
        if printed:
            order = self.mark_kot_printed(order_id)
            printed_at = order.kot_printed_at
        else:
            logger.warning(f"KOT {ticket.kot_number} not printed; left in queue")

        return KotPrintResult(
            order_id=order_id,
            kot_number=ticket.kot_number,
            printed=printed,
            printer=target.name or None,
            kot_printed_at=printed_at,
            ticket=ticket,
        )

    @with_conflict_retry("Order")
    def mark_kot_printed(self, order_id: int) -> Order:
        order = self._get_order(order_id, for_update=True)
        if not order.kot_printed:
            order.kot_printed = True
            order.kot_printed_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(order)
            logger.info(f"KOT {order.kot_number} marked printed")
        return order

    def get_kot_queue(self) -> List[Order]:
        """Active orders whose ticket has not been printed, oldest first"""
        return (
            self.db.query(Order)
            .filter(
                Order.kot_printed.is_(False),
                Order.status.notin_(list(TERMINAL_STATUSES)),
            )
            .order_by(Order.created_at, Order.id)
            .all()
        )
