"""
Actor identity supplied by the terminal's auth gateway.

Credentials and tokens are handled upstream; this service only consumes the
already-authenticated identity so orders and payments can be attributed.
"""

from enum import Enum
from typing import List, Optional
import logging

from fastapi import Depends, Header
from pydantic import BaseModel

from .exceptions import AuthenticationError, PermissionError

logger = logging.getLogger(__name__)


class ActorRole(str, Enum):
    ADMIN = "admin"
    CASHIER = "cashier"
    WAITER = "waiter"


class Actor(BaseModel):
    """Authenticated staff member acting on a terminal."""

    id: int
    display_name: str
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN


SYSTEM_ACTOR = Actor(id=0, display_name="system", role=ActorRole.ADMIN)


async def get_current_actor(
    x_actor_id: Optional[int] = Header(default=None),
    x_actor_name: Optional[str] = Header(default=None),
    x_actor_role: Optional[str] = Header(default=None),
) -> Actor:
    """Build the acting identity from the gateway headers."""
    if x_actor_id is None or not x_actor_name or not x_actor_role:
        raise AuthenticationError("Missing actor identity headers")

    try:
        role = ActorRole(x_actor_role.lower())
    except ValueError:
        raise AuthenticationError(f"Unknown actor role: {x_actor_role}")

    return Actor(id=x_actor_id, display_name=x_actor_name, role=role)


def require_roles(required_roles: List[ActorRole]):
    """Dependency factory restricting an endpoint to the given roles."""

    async def check(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in required_roles:
            logger.warning(
                f"Actor {actor.id} ({actor.role.value}) denied; "
                f"requires one of {[r.value for r in required_roles]}"
            )
            raise PermissionError(
                f"Requires role: {', '.join(r.value for r in required_roles)}"
            )
        return actor

    return check
