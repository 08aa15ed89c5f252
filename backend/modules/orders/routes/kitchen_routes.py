from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import Actor, get_current_actor
from core.database import get_db
from core.deps import get_workflow_engine
from ..schemas.kot_schemas import KotQueueEntry
from ..schemas.order_schemas import (
    ItemPreparedResponse,
    ItemPreparedUpdate,
    KitchenStats,
    OrderItemOut,
    OrderOut,
)
from ..services.kitchen_service import KitchenService
from ..services.kot_service import KotService
from ..services.workflow_engine import OrderWorkflowEngine

router = APIRouter(prefix="/api/v1/kitchen", tags=["Kitchen"])


@router.get("/orders", response_model=List[OrderOut])
async def get_kitchen_orders(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Orders still in the kitchen or awaiting pickup, oldest first"""
    return KitchenService(db).get_kitchen_orders()


@router.get("/stats", response_model=KitchenStats)
async def get_kitchen_stats(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return KitchenService(db).get_kitchen_stats()


@router.get("/kot-queue", response_model=List[KotQueueEntry])
async def get_kot_queue(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return [
        KotQueueEntry(
            order_id=order.id,
            order_number=order.order_number,
            kot_number=order.kot_number,
            order_type=order.order_type,
            table_number=order.table_number,
            created_at=order.created_at,
        )
        for order in KotService(db).get_kot_queue()
    ]


@router.put("/items/{item_id}/prepared", response_model=ItemPreparedResponse)
async def toggle_item_prepared(
    item_id: int,
    update: ItemPreparedUpdate,
    engine: OrderWorkflowEngine = Depends(get_workflow_engine),
):
    """
    Mark a line prepared (or undo it).

    When every line is prepared the order may move on to served on its own,
    depending on the workflow configuration.
    """
    item = engine.toggle_item_prepared(item_id, update.prepared)
    return ItemPreparedResponse(
        item=OrderItemOut.model_validate(item),
        order=OrderOut.model_validate(item.order),
        side_effect_errors=engine.side_effect_errors,
    )
