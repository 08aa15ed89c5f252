# backend/modules/orders/services/status_flow.py

"""
Status flow resolution.

Each ``StatusFlow`` names a transition table. Lookups are pure: unknown
(flow, status) pairs resolve to the empty set rather than raising, so
callers can treat "nothing allowed" uniformly.
"""

from collections import deque
from typing import Dict, FrozenSet, List, Optional

from ..enums.order_enums import OrderStatus, StatusFlow

PENDING = OrderStatus.PENDING
PREPARING = OrderStatus.PREPARING
READY = OrderStatus.READY
SERVED = OrderStatus.SERVED
COMPLETED = OrderStatus.COMPLETED
CANCELLED = OrderStatus.CANCELLED

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({COMPLETED, CANCELLED})

FLOW_TRANSITIONS: Dict[StatusFlow, Dict[OrderStatus, FrozenSet[OrderStatus]]] = {
    StatusFlow.PENDING_PREPARING_SERVED_COMPLETED: {
        PENDING: frozenset({PREPARING, CANCELLED}),
        PREPARING: frozenset({SERVED, CANCELLED}),
        SERVED: frozenset({COMPLETED}),
        COMPLETED: frozenset(),
        CANCELLED: frozenset(),
    },
    StatusFlow.PENDING_READY_SERVED_COMPLETED: {
        PENDING: frozenset({READY, CANCELLED}),
        READY: frozenset({SERVED, CANCELLED}),
        SERVED: frozenset({COMPLETED}),
        COMPLETED: frozenset(),
        CANCELLED: frozenset(),
    },
    StatusFlow.PENDING_COMPLETED: {
        PENDING: frozenset({COMPLETED, CANCELLED}),
        COMPLETED: frozenset(),
        CANCELLED: frozenset(),
    },
    StatusFlow.CUSTOM: {
        PENDING: frozenset({PREPARING, READY, SERVED, COMPLETED, CANCELLED}),
        PREPARING: frozenset({READY, SERVED, COMPLETED, CANCELLED}),
        READY: frozenset({SERVED, COMPLETED, CANCELLED}),
        SERVED: frozenset({COMPLETED, CANCELLED}),
        COMPLETED: frozenset(),
        CANCELLED: frozenset(),
    },
}

# Ordering used to pick a single primary step when a flow offers several
_FORWARD_RANK = {
    PENDING: 0,
    PREPARING: 1,
    READY: 2,
    SERVED: 3,
    COMPLETED: 4,
}


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def allowed_next_statuses(flow: StatusFlow, current: OrderStatus) -> FrozenSet[OrderStatus]:
    """Transitions listed in the flow's table for ``current``."""
    return FLOW_TRANSITIONS.get(flow, {}).get(current, frozenset())


def legal_next_statuses(flow: StatusFlow, current: OrderStatus) -> FrozenSet[OrderStatus]:
    """
    Every status an order in ``current`` may move to.

    Cancellation is permitted from any non-terminal status regardless of
    whether the flow lists it.
    """
    allowed = allowed_next_statuses(flow, current)
    if is_terminal(current):
        return allowed
    return allowed | {CANCELLED}


def forward_path(flow: StatusFlow, current: OrderStatus,
                 target: OrderStatus) -> Optional[List[OrderStatus]]:
    """
    Shortest chain of non-cancelling steps leading from ``current`` to
    ``target``, excluding ``current`` itself.

    Returns an empty list when already at ``target`` and ``None`` when the
    target cannot be reached.
    """
    if current == target:
        return []

    previous: Dict[OrderStatus, OrderStatus] = {}
    queue = deque([current])
    seen = {current}
    while queue:
        status = queue.popleft()
        steps = sorted(
            (s for s in allowed_next_statuses(flow, status) if s != CANCELLED),
            key=lambda s: _FORWARD_RANK[s],
        )
        for step in steps:
            if step in seen:
                continue
            previous[step] = status
            if step == target:
                path = [step]
                while previous[path[-1]] != current:
                    path.append(previous[path[-1]])
                return list(reversed(path))
            seen.add(step)
            queue.append(step)
    return None


def next_forward_status(flow: StatusFlow, current: OrderStatus) -> Optional[OrderStatus]:
    """Earliest non-cancelling step out of ``current``, if any."""
    steps = [s for s in allowed_next_statuses(flow, current) if s != CANCELLED]
    if not steps:
        return None
    return min(steps, key=lambda s: _FORWARD_RANK[s])


def sort_statuses(statuses) -> List[OrderStatus]:
    """Stable display order: lifecycle order with CANCELLED last"""
    return sorted(statuses, key=lambda s: _FORWARD_RANK.get(s, len(_FORWARD_RANK)))
