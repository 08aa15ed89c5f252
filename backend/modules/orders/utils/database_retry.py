# backend/modules/orders/utils/database_retry.py

import logging
from typing import Set
from functools import wraps
from sqlalchemy.exc import OperationalError, DBAPIError
from sqlalchemy.orm.exc import StaleDataError

from core.config import get_settings
from ..exceptions.workflow_exceptions import ConcurrencyConflict

logger = logging.getLogger(__name__)

# Database error codes that indicate retry-able conditions
RETRY_ERROR_CODES: Set[str] = {
    # PostgreSQL
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
    "55P03",  # lock_not_available
    # SQLite
    "database is locked",
    "database table is locked",
}


def is_retryable_error(error: Exception) -> bool:
    """
    Check if an error indicates a lost race that may succeed on retry

    Args:
        error: The exception to check

    Returns:
        True for optimistic-lock conflicts and transient lock errors
    """
    if isinstance(error, (ConcurrencyConflict, StaleDataError)):
        return True

    if isinstance(error, (OperationalError, DBAPIError)):
        error_str = str(error).lower()
        if any(code in error_str for code in ["deadlock", "serialization", "locked"]):
            return True

        if hasattr(error, "orig") and hasattr(error.orig, "pgcode"):
            return error.orig.pgcode in RETRY_ERROR_CODES

    return False


def with_conflict_retry(resource: str, max_retries: int = None, identified: bool = True):
    """
    Decorator running a service method as one unit of work

    Any failure rolls back the service's session. Lost optimistic-lock
    races are retried ``max_retries`` times (``WORKFLOW_CONFLICT_RETRIES``
    by default) and then surface as ``ConcurrencyConflict``.

    The decorated method must belong to an object exposing ``db``. With
    ``identified`` its first argument is the resource id used in errors.

    Example:
        @with_conflict_retry("Order")
        def record_payment(self, order_id: int, ...):
            ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            retries = (
                max_retries if max_retries is not None
                else get_settings().WORKFLOW_CONFLICT_RETRIES
            )
            resource_id = args[0] if identified and args else None

            for attempt in range(retries + 1):
                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    self.db.rollback()
                    if not is_retryable_error(e):
                        raise
                    if attempt == retries:
                        logger.warning(
                            f"{func.__name__} on {resource} {resource_id} lost "
                            f"{attempt + 1} concurrent update race(s); giving up"
                        )
                        if isinstance(e, ConcurrencyConflict):
                            raise
                        raise ConcurrencyConflict(
                            resource, resource_id, func.__name__
                        ) from e

                    logger.info(
                        f"Concurrent update on {resource} {resource_id} during "
                        f"{func.__name__} (attempt {attempt + 1}/{retries + 1}); "
                        f"retrying. Error: {str(e)}"
                    )

        return wrapper

    return decorator
