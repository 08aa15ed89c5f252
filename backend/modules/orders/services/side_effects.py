# backend/modules/orders/services/side_effects.py

"""
Post-commit collaborator calls.

Notifications and print dispatch run after the database change is
committed. A failure there is logged and reported back to the caller but
never undoes the committed change.
"""

import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)


class SideEffectRunner:
    def __init__(self):
        self.errors: List[Dict[str, str]] = []

    def reset(self):
        self.errors = []

    def run(self, effect: str, func: Callable, *args, **kwargs) -> bool:
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Side effect '{effect}' failed: {str(e)}", exc_info=True)
            self.errors.append({"effect": effect, "error": str(e)})
            return False

        if result is False:
            logger.warning(f"Side effect '{effect}' reported failure")
            self.errors.append({"effect": effect, "error": "collaborator reported failure"})
            return False
        return True
