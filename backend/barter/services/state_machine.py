"""Negotiation lifecycle expressed as a single transition table."""

from __future__ import annotations

import enum
from typing import Dict, FrozenSet, Tuple

from barter.services.errors import AccessForbidden, InvalidOperation, ValidationError


class TransactionType(str, enum.Enum):
    SALE = "sale"
    BARTER = "barter"
    HYBRID = "hybrid"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPT = "accept"
    COMPLETE = "complete"
    CANCEL = "cancel"


class UpdateAction(str, enum.Enum):
    """What a party asks for on an update. ``counter`` keeps the status and reprices."""

    COUNTER = "counter"
    ACCEPT = "accept"
    CANCEL = "cancel"
    COMPLETE = "complete"


class Role(str, enum.Enum):
    INITIATOR = "initiator"
    RECIPIENT = "recipient"


ACTIVE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.ACCEPT.value)
TERMINAL_STATUSES = (OrderStatus.COMPLETE.value, OrderStatus.CANCEL.value)

TRANSITIONS: Dict[Tuple[OrderStatus, Role, UpdateAction], OrderStatus] = {
    (OrderStatus.PENDING, Role.INITIATOR, UpdateAction.CANCEL): OrderStatus.CANCEL,
    (OrderStatus.PENDING, Role.INITIATOR, UpdateAction.COUNTER): OrderStatus.PENDING,
    (OrderStatus.PENDING, Role.RECIPIENT, UpdateAction.CANCEL): OrderStatus.CANCEL,
    (OrderStatus.PENDING, Role.RECIPIENT, UpdateAction.ACCEPT): OrderStatus.ACCEPT,
    (OrderStatus.PENDING, Role.RECIPIENT, UpdateAction.COUNTER): OrderStatus.PENDING,
    (OrderStatus.ACCEPT, Role.RECIPIENT, UpdateAction.COMPLETE): OrderStatus.COMPLETE,
    (OrderStatus.ACCEPT, Role.RECIPIENT, UpdateAction.CANCEL): OrderStatus.CANCEL,
}

# Which deal types each role may reprice while pending.
COUNTER_TYPES: Dict[Role, FrozenSet[TransactionType]] = {
    Role.INITIATOR: frozenset({TransactionType.SALE, TransactionType.HYBRID}),
    Role.RECIPIENT: frozenset({TransactionType.HYBRID}),
}

RECIPIENT_ONLY_ACTIONS = frozenset({UpdateAction.ACCEPT, UpdateAction.COMPLETE})


def parse_enum(enum_cls, value, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field} '{value}'. Expected one of: {allowed}") from None


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def resolve_transition(
    current: OrderStatus,
    role: Role,
    action: UpdateAction,
    transaction_type: TransactionType,
) -> OrderStatus:
    """Return the status ``action`` leads to, or raise why it is not allowed."""
    if current.value in TERMINAL_STATUSES:
        raise InvalidOperation(f"Transaction already {current.value}; no further changes allowed")
    if role is Role.INITIATOR and action in RECIPIENT_ONLY_ACTIONS:
        raise AccessForbidden(f"Only the recipient can {action.value} a transaction")
    target = TRANSITIONS.get((current, role, action))
    if target is None:
        raise InvalidOperation(
            f"Cannot {action.value} a transaction in '{current.value}' state as {role.value}"
        )
    if action is UpdateAction.COUNTER and transaction_type not in COUNTER_TYPES[role]:
        raise ValidationError(
            f"{role.value.capitalize()} cannot counter a {transaction_type.value} transaction"
        )
    return target
