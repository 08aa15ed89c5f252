# backend/modules/settings/routes/workflow_settings_routes.py

"""
Workflow and printer configuration endpoints.

Any terminal may read the configuration; changing it requires an admin.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import Actor, ActorRole, get_current_actor, require_roles
from core.database import get_db
from ..schemas.workflow_settings_schemas import (
    ApplyModePresetRequest,
    PrinterSettingsResponse,
    PrinterSettingsUpdate,
    WorkflowConfigurationResponse,
    WorkflowConfigurationUpdate,
)
from ..services.workflow_settings_service import WorkflowSettingsService

router = APIRouter(prefix="/api/v1/settings", tags=["Settings"])

require_admin = require_roles([ActorRole.ADMIN])


@router.get("/workflow", response_model=WorkflowConfigurationResponse)
async def get_workflow_configuration(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    service = WorkflowSettingsService(db)
    config = service.get_configuration()
    # Persist lazily created defaults
    db.commit()
    db.refresh(config)
    return config


@router.put("/workflow", response_model=WorkflowConfigurationResponse)
async def update_workflow_configuration(
    update: WorkflowConfigurationUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return WorkflowSettingsService(db).update_configuration(update, actor_id=actor.id)


@router.post("/workflow/mode", response_model=WorkflowConfigurationResponse)
async def apply_workflow_mode(
    request: ApplyModePresetRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Switch operating mode, applying the preset fields for that mode"""
    return WorkflowSettingsService(db).apply_mode_preset(request.mode, actor_id=actor.id)


@router.get("/printer", response_model=PrinterSettingsResponse)
async def get_printer_settings(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    settings = WorkflowSettingsService(db).get_printer_settings()
    db.commit()
    db.refresh(settings)
    return settings


@router.put("/printer", response_model=PrinterSettingsResponse)
async def update_printer_settings(
    update: PrinterSettingsUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    return WorkflowSettingsService(db).update_printer_settings(update, actor_id=actor.id)
