# backend/core/logging_config.py

import logging

from .config import get_settings


def configure_logging():
    """Configure process-wide logging from settings"""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if settings.LOG_SQL_QUERIES:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
