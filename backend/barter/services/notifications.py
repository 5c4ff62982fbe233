"""Notification sink for negotiation events."""

from __future__ import annotations

from sqlalchemy.orm import Session

from barter.models import Notification

TRANSACTION_NOTIFICATION = "transaction"


def emit(session: Session, *, transaction_id: int, user_id: int, content: str) -> Notification:
    """Persist one notification record for ``user_id``.

    The caller commits the negotiation first; failures here must not undo it.
    """
    notification = Notification(
        transaction_id=transaction_id,
        user_id=user_id,
        notification_type=TRANSACTION_NOTIFICATION,
        content=content,
    )
    session.add(notification)
    session.commit()
    return notification
