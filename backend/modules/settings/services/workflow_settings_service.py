# backend/modules/settings/services/workflow_settings_service.py

"""
Configuration store for the order workflow.

Exactly one ``WorkflowConfiguration`` row exists. A missing row is never an
error: the first read creates it with the documented defaults.
"""

import logging
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from modules.orders.enums.order_enums import StatusFlow
from modules.orders.utils.audit_logger import audit_logger
from ..models.workflow_settings_models import (
    WorkflowConfiguration,
    PrinterSettings,
    WorkflowMode,
    SINGLETON_ID,
)
from ..schemas.workflow_settings_schemas import (
    WorkflowConfigurationBase,
    WorkflowConfigurationUpdate,
    PrinterSettingsUpdate,
)

logger = logging.getLogger(__name__)


DEFAULT_PRINTER_SETTINGS: Dict[str, Any] = {
    "printer_name": "",
    "kitchen_printer_name": None,
    "paper_width": 80,
    "copies": 1,
    "kot_copies": 1,
}

# Fields each operating mode switches when it is selected
MODE_PRESETS: Dict[WorkflowMode, Dict[str, Any]] = {
    WorkflowMode.FULL_SERVICE: {
        "require_payment_at_order": False,
        "auto_print_kot": True,
        "status_flow": StatusFlow.PENDING_PREPARING_SERVED_COMPLETED,
    },
    WorkflowMode.QUICK_SERVICE: {
        "require_payment_at_order": True,
        "auto_print_kot": True,
        "status_flow": StatusFlow.PENDING_READY_SERVED_COMPLETED,
    },
    WorkflowMode.CUSTOM: {},
}


def default_workflow_values() -> Dict[str, Any]:
    return WorkflowConfigurationBase().model_dump()


class WorkflowSettingsService:
    """Lazy-initialising accessor for the workflow and printer configuration"""

    def __init__(self, db: Session):
        self.db = db

    def get_configuration(self, for_update: bool = False) -> WorkflowConfiguration:
        """
        Return the active configuration, creating it with defaults if absent.

        The row is flushed but not committed so creation joins the caller's
        unit of work.
        """
        query = self.db.query(WorkflowConfiguration).filter(
            WorkflowConfiguration.id == SINGLETON_ID
        )
        if for_update:
            query = query.with_for_update()
        config = query.first()
        if config is not None:
            return config

        config = WorkflowConfiguration(id=SINGLETON_ID, **default_workflow_values())
        self.db.add(config)
        try:
            self.db.flush()
        except IntegrityError:
            # Another terminal created the row first; read it
            # before any other work joins this session
            self.db.rollback()
            config = self.db.query(WorkflowConfiguration).filter(
                WorkflowConfiguration.id == SINGLETON_ID
            ).one()
        else:
            logger.info("Created default workflow configuration")
        return config

    def update_configuration(
        self, update: WorkflowConfigurationUpdate, actor_id: int = 0
    ) -> WorkflowConfiguration:
        config = self.get_configuration(for_update=True)
        changes = update.model_dump(exclude_unset=True, exclude_none=True)

        for field, value in changes.items():
            setattr(config, field, value)

        self.db.commit()
        self.db.refresh(config)

        audit_logger.log_configuration_change(actor_id, "workflow", changes)
        return config

    def apply_mode_preset(
        self, mode: WorkflowMode, actor_id: int = 0
    ) -> WorkflowConfiguration:
        """Switch operating mode and the fields that mode implies"""
        config = self.get_configuration(for_update=True)
        config.mode = mode
        for field, value in MODE_PRESETS[mode].items():
            setattr(config, field, value)

        self.db.commit()
        self.db.refresh(config)

        audit_logger.log_configuration_change(
            actor_id, "workflow_mode", {"mode": mode, **MODE_PRESETS[mode]}
        )
        return config

    def get_printer_settings(self) -> PrinterSettings:
        settings = self.db.query(PrinterSettings).filter(
            PrinterSettings.id == SINGLETON_ID
        ).first()
        if settings is not None:
            return settings

        settings = PrinterSettings(id=SINGLETON_ID, **DEFAULT_PRINTER_SETTINGS)
        self.db.add(settings)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            settings = self.db.query(PrinterSettings).filter(
                PrinterSettings.id == SINGLETON_ID
            ).one()
        return settings

    def update_printer_settings(
        self, update: PrinterSettingsUpdate, actor_id: int = 0
    ) -> PrinterSettings:
        settings = self.get_printer_settings()
        changes = {}
        for field, value in update.model_dump(exclude_unset=True).items():
            if value is None and field != "kitchen_printer_name":
                continue
            setattr(settings, field, value)
            changes[field] = value

        self.db.commit()
        self.db.refresh(settings)

        audit_logger.log_configuration_change(actor_id, "printer", changes)
        return settings
