"""
Application startup validation and initialization.

Checks the database before serving requests and creates the schema
and the singleton workflow configuration row when they are missing.
"""

import logging
import sys
from typing import List, Tuple

import sqlalchemy as sa
from sqlalchemy import text

from core.config import get_settings
from core.database import SessionLocal, engine, init_db

logger = logging.getLogger(__name__)


class StartupValidator:
    """Validates application startup requirements"""

    REQUIRED_TABLES = [
        "workflow_configuration",
        "printer_settings",
        "menu_items",
        "tables",
        "orders",
        "order_items",
        "order_payments",
        "sequence_counters",
    ]

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def check_database_connection(self) -> bool:
        """Check database connectivity"""
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection successful")
            return True
        except sa.exc.SQLAlchemyError as e:
            self.errors.append(f"Database connection failed: {str(e)}")
            return False

    def check_required_tables(self) -> bool:
        """Create missing tables and report what was absent"""
        existing_tables = sa.inspect(engine).get_table_names()
        missing_tables = [t for t in self.REQUIRED_TABLES if t not in existing_tables]
        if missing_tables:
            self.warnings.append(f"Creating missing tables: {', '.join(missing_tables)}")
        init_db()
        return True

    def check_workflow_configuration(self) -> bool:
        """Ensure the singleton workflow and printer rows exist"""
        from modules.settings.services.workflow_settings_service import WorkflowSettingsService

        db = SessionLocal()
        try:
            service = WorkflowSettingsService(db)
            service.get_configuration()
            service.get_printer_settings()
            db.commit()
        finally:
            db.close()
        return True

    def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        """Run all validation checks"""
        checks = [
            ("Database Connection", self.check_database_connection),
            ("Database Tables", self.check_required_tables),
            ("Workflow Configuration", self.check_workflow_configuration),
        ]

        all_passed = True

        for check_name, check_func in checks:
            logger.info(f"Running check: {check_name}")
            try:
                if not check_func():
                    all_passed = False
                    break
            except sa.exc.SQLAlchemyError as e:
                self.errors.append(f"{check_name} check failed with error: {str(e)}")
                all_passed = False
                break

        return all_passed, self.errors, self.warnings


def run_startup_checks():
    """Run all startup validation checks"""
    settings = get_settings()
    logger.info("=" * 60)
    logger.info("Starting POS order workflow backend")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info("=" * 60)

    validator = StartupValidator()
    passed, errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"  {warning}")

    for error in errors:
        logger.error(f"  {error}")

    if not passed and settings.is_production:
        logger.error("Cannot start in production with errors!")
        sys.exit(1)
    elif not passed:
        logger.warning("Starting in development mode despite errors")
    else:
        logger.info("All startup checks passed")

    return passed, warnings
