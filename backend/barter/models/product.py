from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from barter.db.session import Base, utcnow


class Product(Base):
    """A listing that can be sold, bartered, or both."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(128), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(512), nullable=True)
    condition = Column(String(16), default="good", nullable=False)
    category = Column(String(64), nullable=True)
    is_barter = Column(Boolean, default=True, nullable=False)
    price = Column(Integer, default=0, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    owner = relationship("User", back_populates="products")
