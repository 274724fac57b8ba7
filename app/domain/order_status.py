"""Order lifecycle: statuses, actors and the transition table.

    DRAFT ──owner──▶ SENT ──recipient──▶ VIEWED
                      │                     │
                      └──recipient──┬───────┘
                                    ▼
                    ACCEPTED / REJECTED / REVIEWING

Any status from SENT onwards can be moved to CANCELLED by the owner.
CANCELLED is terminal. DRAFT orders are deleted instead of cancelled.
"""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    VIEWED = "VIEWED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    REVIEWING = "REVIEWING"
    CANCELLED = "CANCELLED"


class Actor(str, Enum):
    OWNER = "owner"
    RECIPIENT = "recipient"


# changed_by value recorded in history for recipient actions
RECIPIENT_MARKER = "recipient"

INITIAL_STATUSES = frozenset({OrderStatus.DRAFT, OrderStatus.SENT})
EDITABLE_STATUSES = frozenset({OrderStatus.DRAFT})
# Statuses in which the public link resolves
PUBLIC_STATUSES = frozenset(
    {
        OrderStatus.SENT,
        OrderStatus.VIEWED,
        OrderStatus.ACCEPTED,
        OrderStatus.REJECTED,
        OrderStatus.REVIEWING,
    }
)
RESPONDABLE_STATUSES = frozenset({OrderStatus.SENT, OrderStatus.VIEWED})
RECIPIENT_RESPONSES = frozenset(
    {OrderStatus.ACCEPTED, OrderStatus.REJECTED, OrderStatus.REVIEWING}
)

_TRANSITIONS: dict[Actor, dict[OrderStatus, frozenset[OrderStatus]]] = {
    Actor.OWNER: {
        OrderStatus.DRAFT: frozenset({OrderStatus.SENT}),
        **{status: frozenset({OrderStatus.CANCELLED}) for status in PUBLIC_STATUSES},
    },
    Actor.RECIPIENT: {
        OrderStatus.SENT: frozenset({OrderStatus.VIEWED}) | RECIPIENT_RESPONSES,
        OrderStatus.VIEWED: RECIPIENT_RESPONSES,
    },
}


def allowed(from_status: OrderStatus, to_status: OrderStatus, actor: Actor) -> bool:
    """Return True when ``actor`` may move an order from one status to another."""
    return to_status in _TRANSITIONS[actor].get(from_status, frozenset())


def next_statuses(from_status: OrderStatus, actor: Actor) -> list[OrderStatus]:
    """Statuses reachable by ``actor`` from ``from_status``, in declaration order."""
    reachable = _TRANSITIONS[actor].get(from_status, frozenset())
    return [status for status in OrderStatus if status in reachable]
