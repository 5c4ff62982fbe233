"""Product catalog and user directory lookups consumed by the engine."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from barter.models import Product, User
from barter.services.errors import NotFound

logger = logging.getLogger(__name__)


def get_product(session: Session, product_id: int, *, label: str = "Product") -> Product:
    product = session.get(Product, product_id)
    if not product:
        raise NotFound(f"{label} not found")
    return product


def set_availability(session: Session, product_id: int, available: bool) -> None:
    product = get_product(session, product_id)
    product.is_available = available
    logger.info("Product %s availability set to %s", product_id, available)


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def is_blocked_between(first: User, second: User) -> bool:
    return first.has_blocked(second) or second.has_blocked(first)


def can_negotiate_with(actor: User, counterpart: User) -> bool:
    """A counterpart is reachable when not banned and no block exists either way."""
    return not counterpart.is_banned and not is_blocked_between(actor, counterpart)
