from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from barter.db.session import Base, utcnow

user_blocks = Table(
    "user_blocks",
    Base.metadata,
    Column("blocker_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("blocked_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """Marketplace member. Only the fields the negotiation engine reads live here."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(64), nullable=False)
    email = Column(String(256), unique=True, nullable=False, index=True)
    avatar_url = Column(String(512), nullable=True)
    is_banned = Column(Boolean, default=False, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    blocked_users = relationship(
        "User",
        secondary=user_blocks,
        primaryjoin=id == user_blocks.c.blocker_id,
        secondaryjoin=id == user_blocks.c.blocked_id,
    )
    products = relationship("Product", back_populates="owner")

    def has_blocked(self, other: "User") -> bool:
        return any(blocked.id == other.id for blocked in self.blocked_users)
