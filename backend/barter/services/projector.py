"""Viewer-oriented read models for negotiations.

Every row is expressed from the viewer's side of the deal: ``product`` is the
thing the viewer would receive and ``price_offered`` is the cash the viewer
would hand over.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from barter.models import Product, Transaction, User
from barter.services import registry
from barter.services.errors import AccessForbidden, NotFound
from barter.services.state_machine import Role, TransactionType, parse_enum


def _product_summary(product: Optional[Product]) -> Optional[Dict[str, Any]]:
    if not product:
        return None
    return {
        "id": product.id,
        "title": product.title,
        "image_url": product.image_url,
        "is_available": product.is_available,
    }


def _product_detail(product: Optional[Product]) -> Optional[Dict[str, Any]]:
    if not product:
        return None
    return {
        "id": product.id,
        "title": product.title,
        "description": product.description,
        "image_url": product.image_url,
        "condition": product.condition,
        "category": product.category,
        "is_barter": product.is_barter,
        "price": product.price,
        "is_available": product.is_available,
        "created_at": product.created_at,
    }


def _user_summary(user: User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "avatar_url": user.avatar_url}


def _cash_flow(transaction: Transaction) -> Tuple[int, int]:
    """Return (cash the initiator pays, cash the recipient pays)."""
    if transaction.transaction_type == TransactionType.SALE.value:
        return transaction.price_requested, 0
    return transaction.price_offered, transaction.price_requested


def project_for_viewer(transaction: Transaction, viewer_id: int) -> Dict[str, Any]:
    initiator_pays, recipient_pays = _cash_flow(transaction)
    if transaction.initiator_id == viewer_id:
        role = Role.INITIATOR
        product = transaction.product_requested
        counterpart = transaction.recipient
        offered, requested = initiator_pays, recipient_pays
    else:
        role = Role.RECIPIENT
        # A sale has no offered product; the listing itself is the subject.
        product = transaction.product_offered or transaction.product_requested
        counterpart = transaction.initiator
        offered, requested = recipient_pays, initiator_pays
    return {
        "id": transaction.id,
        "transaction_type": transaction.transaction_type,
        "order_status": transaction.order_status,
        "role": role.value,
        "product": _product_summary(product),
        "counterpart": _user_summary(counterpart),
        "price_offered": offered,
        "price_requested": requested,
        "created_at": transaction.created_at,
        "updated_at": transaction.updated_at,
    }


def _with_parties(stmt):
    return stmt.options(
        selectinload(Transaction.product_offered),
        selectinload(Transaction.product_requested),
        selectinload(Transaction.initiator).selectinload(User.blocked_users),
        selectinload(Transaction.recipient).selectinload(User.blocked_users),
    ).order_by(Transaction.created_at.desc(), Transaction.id.desc())


def list_transactions(
    session: Session, viewer_id: int, role: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Negotiations the viewer takes part in, hiding banned or blocked counterparts."""
    viewer = registry.get_user(session, viewer_id)
    if role is None:
        condition = or_(Transaction.initiator_id == viewer.id, Transaction.recipient_id == viewer.id)
    elif parse_enum(Role, role, "role") is Role.INITIATOR:
        condition = Transaction.initiator_id == viewer.id
    else:
        condition = Transaction.recipient_id == viewer.id

    rows = []
    for transaction in session.scalars(_with_parties(select(Transaction).where(condition))).all():
        counterpart = (
            transaction.recipient if transaction.initiator_id == viewer.id else transaction.initiator
        )
        if not registry.can_negotiate_with(viewer, counterpart):
            continue
        rows.append(project_for_viewer(transaction, viewer.id))
    return rows


def list_initiated_transactions(session: Session, viewer_id: int) -> List[Dict[str, Any]]:
    return list_transactions(session, viewer_id, Role.INITIATOR.value)


def list_received_transactions(session: Session, viewer_id: int) -> List[Dict[str, Any]]:
    return list_transactions(session, viewer_id, Role.RECIPIENT.value)


def list_product_transactions(
    session: Session, viewer_id: int, product_id: int
) -> List[Dict[str, Any]]:
    """Full history (any status) of a product, limited to deals the viewer is part of."""
    viewer = registry.get_user(session, viewer_id)
    product = registry.get_product(session, product_id)
    stmt = select(Transaction).where(
        or_(
            Transaction.product_offered_id == product.id,
            Transaction.product_requested_id == product.id,
        ),
        or_(Transaction.initiator_id == viewer.id, Transaction.recipient_id == viewer.id),
    )
    return [
        project_for_viewer(transaction, viewer.id)
        for transaction in session.scalars(_with_parties(stmt)).all()
    ]


def get_transaction_details(
    session: Session, viewer_id: int, transaction_id: int
) -> Dict[str, Any]:
    transaction = session.get(Transaction, transaction_id)
    if not transaction:
        raise NotFound("Transaction not found")
    viewer = registry.get_user(session, viewer_id)

    if viewer.id == transaction.initiator_id:
        role = Role.INITIATOR.value
    elif viewer.id == transaction.recipient_id:
        role = Role.RECIPIENT.value
    else:
        role = None
        if registry.is_blocked_between(viewer, transaction.initiator) or registry.is_blocked_between(
            viewer, transaction.recipient
        ):
            raise AccessForbidden("Access forbidden")

    return {
        "id": transaction.id,
        "transaction_type": transaction.transaction_type,
        "order_status": transaction.order_status,
        "role": role,
        "product_offered": _product_detail(transaction.product_offered),
        "product_requested": _product_detail(transaction.product_requested),
        "initiator": _user_summary(transaction.initiator),
        "recipient": _user_summary(transaction.recipient),
        "price_offered": transaction.price_offered,
        "price_requested": transaction.price_requested,
        "remarks": transaction.remarks,
        "created_at": transaction.created_at,
        "updated_at": transaction.updated_at,
    }
