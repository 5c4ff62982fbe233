"""Negotiation engine: creation, role-scoped updates and product locking."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from barter.models import Product, ProductLock, Transaction, User
from barter.services import notifications
from barter.services import pricing
from barter.services import registry
from barter.services.errors import (
    AccessForbidden,
    Conflict,
    InvalidOperation,
    NotFound,
    ValidationError,
)
from barter.services.state_machine import (
    ACTIVE_STATUSES,
    OrderStatus,
    Role,
    TransactionType,
    UpdateAction,
    is_terminal,
    parse_enum,
    resolve_transition,
)

logger = logging.getLogger(__name__)

UPDATE_MESSAGES = {
    UpdateAction.COUNTER: "New terms proposed for your transaction",
    UpdateAction.ACCEPT: "Transaction accepted",
    UpdateAction.CANCEL: "Transaction cancelled",
    UpdateAction.COMPLETE: "Transaction completed",
}


def _active_for_products_stmt(product_ids: Sequence[int], exclude_id: Optional[int] = None):
    stmt = select(Transaction).where(
        Transaction.order_status.in_(ACTIVE_STATUSES),
        or_(
            Transaction.product_offered_id.in_(product_ids),
            Transaction.product_requested_id.in_(product_ids),
        ),
    )
    if exclude_id is not None:
        stmt = stmt.where(Transaction.id != exclude_id)
    return stmt.order_by(Transaction.id)


def _ensure_not_locked(session: Session, product_id: int) -> None:
    if session.scalar(_active_for_products_stmt([product_id]).limit(1)) is not None:
        raise Conflict("Product already in active negotiation")


def _notify(session: Session, transaction_id: int, user_id: int, content: str) -> None:
    try:
        notifications.emit(
            session, transaction_id=transaction_id, user_id=user_id, content=content
        )
    except Exception:
        session.rollback()
        logger.exception(
            "Failed to notify user %s about transaction %s", user_id, transaction_id
        )


def _release_locks(transaction: Transaction) -> None:
    transaction.locks.clear()


def _force_cancel(session: Session, transaction: Transaction, reason: str) -> None:
    transaction.order_status = OrderStatus.CANCEL.value
    transaction.remarks = reason
    _release_locks(transaction)
    session.commit()
    transaction_id = transaction.id
    parties = (transaction.initiator_id, transaction.recipient_id)
    logger.warning("Force-cancelled transaction %s: %s", transaction_id, reason)
    for user_id in parties:
        _notify(session, transaction_id, user_id, f"Transaction cancelled: {reason}")


def _validate_offered_product(
    session: Session, initiator: User, product_offered_id: Optional[int]
) -> Product:
    if product_offered_id is None:
        raise ValidationError("Product offered is required for barter and hybrid exchanges")
    product = registry.get_product(session, product_offered_id, label="Offered product")
    if product.owner_id != initiator.id:
        raise AccessForbidden("Access forbidden. Offered product belongs to another user")
    if not product.is_available:
        raise ValidationError("Offered product is not available")
    if not product.is_barter:
        raise ValidationError("Offered product is not open to barter")
    _ensure_not_locked(session, product.id)
    return product


def initiate_transaction(
    session: Session,
    initiator_id: int,
    *,
    transaction_type: str,
    product_requested_id: int,
    product_offered_id: Optional[int] = None,
    price_offered: Optional[int] = 0,
    price_requested: Optional[int] = 0,
) -> Transaction:
    """Open a pending negotiation and lock the products it references."""
    initiator = registry.get_user(session, initiator_id)
    requested = registry.get_product(session, product_requested_id, label="Requested product")
    owner = requested.owner

    if not requested.is_available or not registry.can_negotiate_with(initiator, owner):
        raise AccessForbidden("Access denied. Requested product is not open for negotiation")
    if owner.id == initiator.id:
        raise InvalidOperation("Cannot trade with self")
    _ensure_not_locked(session, requested.id)

    duplicate = session.scalar(
        select(Transaction.id)
        .where(
            Transaction.initiator_id == initiator.id,
            Transaction.product_requested_id == requested.id,
            Transaction.order_status != OrderStatus.CANCEL.value,
        )
        .limit(1)
    )
    if duplicate is not None:
        raise Conflict("Transaction already initiated for this product")

    deal_type = parse_enum(TransactionType, transaction_type, "transaction type")
    offered: Optional[Product] = None
    if deal_type is TransactionType.SALE:
        net_offered, net_requested = 0, pricing.sale_price(price_requested)
        if requested.is_barter:
            raise InvalidOperation("Requested product is listed for barter only")
    else:
        offered = _validate_offered_product(session, initiator, product_offered_id)
        if deal_type is TransactionType.HYBRID:
            net_offered, net_requested = pricing.hybrid_prices(price_offered, price_requested)
        else:
            net_offered, net_requested = 0, 0

    transaction = Transaction(
        transaction_type=deal_type.value,
        product_offered_id=offered.id if offered else None,
        product_requested_id=requested.id,
        price_offered=net_offered,
        price_requested=net_requested,
        order_status=OrderStatus.PENDING.value,
        initiator_id=initiator.id,
        recipient_id=owner.id,
    )
    transaction.locks = [ProductLock(product_id=pid) for pid in transaction.product_ids]
    session.add(transaction)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.warning(
            "Lost lock race for product(s) %s requested by user %s",
            [p for p in (product_offered_id, product_requested_id) if p is not None],
            initiator_id,
        )
        raise Conflict("Product already in active negotiation") from None
    session.refresh(transaction)

    logger.info(
        "User %s initiated %s transaction %s on product %s",
        initiator.id,
        deal_type.value,
        transaction.id,
        requested.id,
    )
    _notify(session, transaction.id, transaction.recipient_id, "Transaction requested")
    return transaction


def _counter_prices(
    deal_type: TransactionType, price_offered: Optional[int], price_requested: Optional[int]
) -> Tuple[int, int]:
    if deal_type is TransactionType.SALE:
        return 0, pricing.sale_price(price_requested)
    return pricing.hybrid_prices(price_offered, price_requested)


def _check_products_still_free(session: Session, transaction: Transaction) -> None:
    other = session.scalar(
        _active_for_products_stmt(transaction.product_ids, exclude_id=transaction.id).limit(1)
    )
    products: List[Product] = [
        p for p in (transaction.product_offered, transaction.product_requested) if p is not None
    ]
    if other is not None:
        _force_cancel(session, transaction, f"Product also held by transaction {other.id}")
        raise Conflict("Another transaction in progress")
    if any(not product.is_available for product in products):
        _force_cancel(session, transaction, "Product no longer available")
        raise Conflict("Another transaction in progress")


def update_transaction(
    session: Session,
    transaction_id: int,
    actor_id: int,
    role: Role,
    *,
    order_status: str,
    price_offered: Optional[int] = None,
    price_requested: Optional[int] = None,
) -> Transaction:
    """Apply one party's update through the transition table."""
    role = Role(role)
    action = parse_enum(UpdateAction, order_status, "order status")
    if action is not UpdateAction.COUNTER and (
        price_offered is not None or price_requested is not None
    ):
        raise ValidationError("Prices can only change through a counter offer")

    transaction = session.get(Transaction, transaction_id)
    if not transaction:
        raise NotFound("Transaction not found")
    party_id = transaction.initiator_id if role is Role.INITIATOR else transaction.recipient_id
    if party_id != actor_id:
        raise AccessForbidden(f"Access forbidden. You are not the {role.value} of this transaction")
    if is_terminal(transaction.order_status):
        raise InvalidOperation(
            f"Transaction already {transaction.order_status}; no further changes allowed"
        )

    actor = registry.get_user(session, actor_id)
    counterpart = transaction.recipient if role is Role.INITIATOR else transaction.initiator
    if not registry.can_negotiate_with(actor, counterpart):
        _force_cancel(session, transaction, "Counterpart is blocked or banned")
        raise AccessForbidden("Access forbidden. Counterpart is blocked or banned")

    deal_type = TransactionType(transaction.transaction_type)
    target = resolve_transition(OrderStatus(transaction.order_status), role, action, deal_type)
    new_prices = None
    if action is UpdateAction.COUNTER:
        new_prices = _counter_prices(deal_type, price_offered, price_requested)

    if action is not UpdateAction.CANCEL:
        _check_products_still_free(session, transaction)

    if new_prices is not None:
        transaction.price_offered, transaction.price_requested = new_prices
    transaction.order_status = target.value
    if target is OrderStatus.COMPLETE:
        for product_id in transaction.product_ids:
            registry.set_availability(session, product_id, False)
    if is_terminal(target.value):
        _release_locks(transaction)
    session.commit()
    session.refresh(transaction)

    logger.info(
        "Transaction %s: %s by %s %s -> %s",
        transaction.id,
        action.value,
        role.value,
        actor_id,
        transaction.order_status,
    )
    _notify(session, transaction.id, counterpart.id, UPDATE_MESSAGES[action])
    return transaction


def update_transaction_as_initiator(
    session: Session, transaction_id: int, actor_id: int, **changes
) -> Transaction:
    return update_transaction(session, transaction_id, actor_id, Role.INITIATOR, **changes)


def update_transaction_as_recipient(
    session: Session, transaction_id: int, actor_id: int, **changes
) -> Transaction:
    return update_transaction(session, transaction_id, actor_id, Role.RECIPIENT, **changes)


def _cancel_all(
    session: Session, transactions: Iterable[Transaction], reason: str, departing_user_id: int
) -> int:
    cancelled = []
    for transaction in transactions:
        transaction.order_status = OrderStatus.CANCEL.value
        transaction.remarks = reason
        _release_locks(transaction)
        other = (
            transaction.recipient_id
            if transaction.initiator_id == departing_user_id
            else transaction.initiator_id
        )
        cancelled.append((transaction.id, other))
    session.commit()
    for transaction_id, user_id in cancelled:
        _notify(session, transaction_id, user_id, f"Transaction cancelled: {reason}")
    if cancelled:
        logger.info("Cancelled %d transaction(s): %s", len(cancelled), reason)
    return len(cancelled)


def cancel_all_for_product(session: Session, product_id: int) -> int:
    """Cancel every active negotiation touching a product that is being removed."""
    product = registry.get_product(session, product_id)
    transactions = session.scalars(_active_for_products_stmt([product.id])).all()
    return _cancel_all(session, transactions, "Product removed from marketplace", product.owner_id)


def cancel_all_for_user(session: Session, user_id: int) -> int:
    """Cancel every active negotiation of a user that is being removed."""
    user = registry.get_user(session, user_id)
    transactions = session.scalars(
        select(Transaction)
        .where(
            Transaction.order_status.in_(ACTIVE_STATUSES),
            or_(Transaction.initiator_id == user.id, Transaction.recipient_id == user.id),
        )
        .order_by(Transaction.id)
    ).all()
    return _cancel_all(session, transactions, "User left the marketplace", user.id)
