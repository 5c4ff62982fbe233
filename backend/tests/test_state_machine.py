import pytest

from barter.services.errors import AccessForbidden, InvalidOperation, ValidationError
from barter.services.state_machine import (
    OrderStatus,
    Role,
    TRANSITIONS,
    TransactionType,
    UpdateAction,
    parse_enum,
    resolve_transition,
)


def test_terminal_states_have_no_outgoing_transitions():
    for (current, _role, _action) in TRANSITIONS:
        assert current in (OrderStatus.PENDING, OrderStatus.ACCEPT)


@pytest.mark.parametrize("current", [OrderStatus.COMPLETE, OrderStatus.CANCEL])
@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("action", list(UpdateAction))
def test_terminal_states_reject_every_action(current, role, action):
    with pytest.raises(InvalidOperation):
        resolve_transition(current, role, action, TransactionType.HYBRID)


@pytest.mark.parametrize("action", [UpdateAction.ACCEPT, UpdateAction.COMPLETE])
@pytest.mark.parametrize("current", [OrderStatus.PENDING, OrderStatus.ACCEPT])
def test_initiator_can_never_accept_or_complete(current, action):
    with pytest.raises(AccessForbidden):
        resolve_transition(current, Role.INITIATOR, action, TransactionType.SALE)


def test_recipient_must_accept_before_completing():
    with pytest.raises(InvalidOperation):
        resolve_transition(
            OrderStatus.PENDING, Role.RECIPIENT, UpdateAction.COMPLETE, TransactionType.BARTER
        )
    assert (
        resolve_transition(
            OrderStatus.ACCEPT, Role.RECIPIENT, UpdateAction.COMPLETE, TransactionType.BARTER
        )
        is OrderStatus.COMPLETE
    )


def test_initiator_cannot_cancel_once_accepted():
    with pytest.raises(InvalidOperation):
        resolve_transition(
            OrderStatus.ACCEPT, Role.INITIATOR, UpdateAction.CANCEL, TransactionType.SALE
        )


@pytest.mark.parametrize(
    "role, deal_type, allowed",
    [
        (Role.INITIATOR, TransactionType.SALE, True),
        (Role.INITIATOR, TransactionType.HYBRID, True),
        (Role.INITIATOR, TransactionType.BARTER, False),
        (Role.RECIPIENT, TransactionType.SALE, False),
        (Role.RECIPIENT, TransactionType.HYBRID, True),
        (Role.RECIPIENT, TransactionType.BARTER, False),
    ],
)
def test_counter_offers_depend_on_role_and_type(role, deal_type, allowed):
    if allowed:
        assert (
            resolve_transition(OrderStatus.PENDING, role, UpdateAction.COUNTER, deal_type)
            is OrderStatus.PENDING
        )
    else:
        with pytest.raises(ValidationError):
            resolve_transition(OrderStatus.PENDING, role, UpdateAction.COUNTER, deal_type)


def test_parse_enum_reports_allowed_values():
    with pytest.raises(ValidationError, match="counter, accept, cancel, complete"):
        parse_enum(UpdateAction, "approve", "order status")
