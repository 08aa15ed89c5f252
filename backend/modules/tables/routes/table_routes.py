# backend/modules/tables/routes/table_routes.py

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.auth import Actor, ActorRole, get_current_actor, require_roles
from core.database import get_db
from modules.orders.schemas.order_schemas import OrderOut
from ..models.table_models import TableStatus
from ..schemas.table_schemas import (
    MergeTablesRequest,
    MergeTablesResponse,
    SwapTablesRequest,
    TableCreate,
    TableMoveResponse,
    TableReservationCreate,
    TableReservationResponse,
    TableResponse,
    TableUpdate,
    TableWithOrders,
    TransferOrderRequest,
)
from ..services.table_lifecycle_service import TableLifecycleService

router = APIRouter(prefix="/api/v1/tables", tags=["Tables"])


def get_table_service(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TableLifecycleService:
    return TableLifecycleService(db, actor)


@router.get("", response_model=List[TableWithOrders])
async def list_tables(
    status: Optional[TableStatus] = Query(None),
    service: TableLifecycleService = Depends(get_table_service),
):
    """List tables with their active orders"""
    return [service.describe(table) for table in service.list_tables(status)]


@router.post("", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
async def create_table(
    table_data: TableCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles([ActorRole.ADMIN])),
):
    return TableLifecycleService(db, actor).create_table(table_data)


@router.get("/{table_id}", response_model=TableWithOrders)
async def get_table(
    table_id: int,
    service: TableLifecycleService = Depends(get_table_service),
):
    return service.describe(service.get_table(table_id))


@router.put("/{table_id}", response_model=TableResponse)
async def update_table(
    table_id: int,
    table_data: TableUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles([ActorRole.ADMIN])),
):
    return TableLifecycleService(db, actor).update_table(table_id, table_data)


@router.delete("/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_table(
    table_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles([ActorRole.ADMIN])),
):
    TableLifecycleService(db, actor).delete_table(table_id)


@router.post("/{table_id}/occupy", response_model=TableResponse)
async def occupy_table(
    table_id: int,
    service: TableLifecycleService = Depends(get_table_service),
):
    return service.occupy(table_id)


@router.post("/{table_id}/clear", response_model=TableResponse)
async def clear_table(
    table_id: int,
    service: TableLifecycleService = Depends(get_table_service),
):
    """Free a table; refused while active orders still reference it"""
    return service.free(table_id)


@router.post(
    "/{table_id}/reserve",
    response_model=TableReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def reserve_table(
    table_id: int,
    reservation: TableReservationCreate,
    service: TableLifecycleService = Depends(get_table_service),
):
    return service.reserve(table_id, reservation)


@router.post("/merge", response_model=MergeTablesResponse)
async def merge_tables(
    merge_request: MergeTablesRequest,
    service: TableLifecycleService = Depends(get_table_service),
):
    """Move all active orders from the source tables onto the target table"""
    return service.merge(merge_request.source_table_ids, merge_request.target_table_id)


@router.post("/transfer", response_model=OrderOut)
async def transfer_order(
    transfer_request: TransferOrderRequest,
    service: TableLifecycleService = Depends(get_table_service),
):
    return service.transfer_order(
        transfer_request.order_id,
        transfer_request.from_table_id,
        transfer_request.to_table_id,
    )


@router.post("/swap", response_model=TableMoveResponse)
async def swap_tables(
    swap_request: SwapTablesRequest,
    service: TableLifecycleService = Depends(get_table_service),
):
    """Exchange the active orders, reservations and statuses of two tables"""
    return service.swap(swap_request.table_a_id, swap_request.table_b_id)
