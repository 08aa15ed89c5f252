# backend/core/deps.py

"""
Common dependencies for the application
"""

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from .auth import Actor, get_current_actor
from .database import get_db
from .notification_adapter import LoggingAdapter, NotificationAdapter
from .print_client import LoggingPrintClient, PrintClient

_notification_adapter = LoggingAdapter()
_print_client = LoggingPrintClient()


def get_notification_adapter() -> NotificationAdapter:
    """Collaborator receiving kitchen and waiter events"""
    return _notification_adapter


def get_print_client() -> PrintClient:
    return _print_client


def get_kot_dispatcher(
    background_tasks: BackgroundTasks,
    print_client: PrintClient = Depends(get_print_client),
):
    from modules.orders.services.kot_dispatch import BackgroundTaskKotDispatcher

    return BackgroundTaskKotDispatcher(background_tasks, print_client=print_client)


def get_workflow_engine(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notification_adapter: NotificationAdapter = Depends(get_notification_adapter),
    kot_dispatcher=Depends(get_kot_dispatcher),
):
    from modules.orders.services.workflow_engine import OrderWorkflowEngine

    return OrderWorkflowEngine(
        db,
        actor=actor,
        notification_adapter=notification_adapter,
        kot_dispatcher=kot_dispatcher,
    )
