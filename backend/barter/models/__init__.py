"""SQLAlchemy models for the barter exchange."""

from barter.models.notification import Notification
from barter.models.product import Product
from barter.models.transaction import ProductLock, Transaction
from barter.models.user import User, user_blocks

__all__ = ["User", "Product", "Transaction", "ProductLock", "Notification", "user_blocks"]
