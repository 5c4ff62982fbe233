import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from barter.db.session import Base
from barter.models import Product, User

PRODUCT_CONDITIONS = ("new", "good", "fair", "poor")


@dataclass
class ImportSummary:
    users: int
    products: int
    blocks: int


class SeedError(ValueError):
    """Raised when a seed payload references data it does not define."""


def load_payload(path: Path) -> Dict[str, Any]:
    """Load a JSON payload from disk."""
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def reset_database(engine: Engine) -> None:
    """Drop and recreate tables for a clean import."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def _to_price(value: Any) -> int:
    if value in (None, ""):
        return 0
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def _extract_condition(entry: Dict[str, Any]) -> str:
    condition = (entry.get("condition") or "good").strip().lower()
    return condition if condition in PRODUCT_CONDITIONS else "good"


def _user_key(entry: Dict[str, Any]) -> Optional[str]:
    key = entry.get("key") or entry.get("email")
    return key.strip().lower() if isinstance(key, str) and key.strip() else None


def import_dataset(session: Session, payload: Dict[str, Any]) -> ImportSummary:
    """Persist users, their block lists and product listings from a seed payload."""
    users_by_key: Dict[str, User] = {}
    pending_blocks: List[tuple] = []

    users_created = 0
    for entry in payload.get("users", []):
        key = _user_key(entry)
        if not key:
            continue
        email = entry.get("email") or f"{key}@example.com"
        user = session.scalar(select(User).where(User.email == email))
        if not user:
            user = User(email=email, name=entry.get("name") or key)
            session.add(user)
            users_created += 1
        user.avatar_url = entry.get("avatar_url")
        user.is_verified = bool(entry.get("is_verified", True))
        user.is_banned = bool(entry.get("is_banned", False))
        users_by_key[key] = user
        for blocked in entry.get("blocked", []) or []:
            pending_blocks.append((key, str(blocked).strip().lower()))
    session.flush()

    blocks_created = 0
    for blocker_key, blocked_key in pending_blocks:
        blocker = users_by_key.get(blocker_key)
        blocked = users_by_key.get(blocked_key)
        if not blocker or not blocked:
            raise SeedError(f"Unknown user '{blocked_key}' in block list of '{blocker_key}'")
        if blocker is blocked or blocker.has_blocked(blocked):
            continue
        blocker.blocked_users.append(blocked)
        blocks_created += 1

    products_created = 0
    for entry in payload.get("products", []):
        owner_key = str(entry.get("owner") or "").strip().lower()
        owner = users_by_key.get(owner_key)
        if not owner:
            raise SeedError(f"Product '{entry.get('title')}' has unknown owner '{owner_key}'")
        session.add(
            Product(
                owner_id=owner.id,
                title=entry.get("title") or "Untitled",
                description=entry.get("description"),
                image_url=entry.get("image_url"),
                condition=_extract_condition(entry),
                category=entry.get("category"),
                is_barter=bool(entry.get("is_barter", True)),
                price=_to_price(entry.get("price")),
                is_available=bool(entry.get("is_available", True)),
            )
        )
        products_created += 1

    session.commit()
    return ImportSummary(users=users_created, products=products_created, blocks=blocks_created)
