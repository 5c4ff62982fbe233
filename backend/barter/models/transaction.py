from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from barter.db.session import Base, utcnow


class Transaction(Base):
    """A negotiation between two users over one or two products."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("initiator_id <> recipient_id", name="ck_transactions_no_self_trade"),
        CheckConstraint("price_offered >= 0", name="ck_transactions_price_offered"),
        CheckConstraint("price_requested >= 0", name="ck_transactions_price_requested"),
    )

    id = Column(Integer, primary_key=True)
    transaction_type = Column(String(16), nullable=False)
    product_offered_id = Column(Integer, ForeignKey("products.id"), nullable=True, index=True)
    product_requested_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    price_offered = Column(Integer, default=0, nullable=False)
    price_requested = Column(Integer, default=0, nullable=False)
    order_status = Column(String(16), default="pending", nullable=False, index=True)
    remarks = Column(Text, nullable=True)
    initiator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    product_offered = relationship("Product", foreign_keys=[product_offered_id])
    product_requested = relationship("Product", foreign_keys=[product_requested_id])
    initiator = relationship("User", foreign_keys=[initiator_id])
    recipient = relationship("User", foreign_keys=[recipient_id])
    locks = relationship("ProductLock", back_populates="transaction", cascade="all, delete-orphan")

    @property
    def product_ids(self):
        return [pid for pid in (self.product_offered_id, self.product_requested_id) if pid is not None]


class ProductLock(Base):
    """Derived index of products held by an active negotiation.

    The primary key on ``product_id`` is what keeps a product in at most one
    pending/accepted transaction when two requests race.
    """

    __tablename__ = "product_locks"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    transaction = relationship("Transaction", back_populates="locks")
