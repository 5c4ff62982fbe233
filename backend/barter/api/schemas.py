from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class TransactionCreateRequest(CamelModel):
    """Body for POST /transactions."""

    transaction_type: Literal["sale", "barter", "hybrid"]
    product_offered_id: Optional[int] = None
    product_requested_id: int
    price_offered: int = Field(default=0, ge=0)
    price_requested: int = Field(default=0, ge=0)


class TransactionUpdateRequest(CamelModel):
    """Body for the role-scoped PATCH endpoints."""

    order_status: Literal["counter", "accept", "cancel", "complete"]
    price_offered: Optional[int] = Field(default=None, ge=0)
    price_requested: Optional[int] = Field(default=None, ge=0)


class TransactionRecord(CamelModel):
    """Stored negotiation as persisted by the engine."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_type: str
    product_offered_id: Optional[int] = None
    product_requested_id: int
    price_offered: int
    price_requested: int
    order_status: str
    remarks: Optional[str] = None
    initiator_id: int
    recipient_id: int
    created_at: datetime
    updated_at: datetime


class ProductSummary(CamelModel):
    id: int
    title: str
    image_url: Optional[str] = None
    is_available: bool


class ProductDetail(ProductSummary):
    description: Optional[str] = None
    condition: str
    category: Optional[str] = None
    is_barter: bool
    price: int
    created_at: datetime


class UserSummary(CamelModel):
    id: int
    name: str
    avatar_url: Optional[str] = None


class TransactionRow(CamelModel):
    """A negotiation seen from one party's side."""

    id: int
    transaction_type: str
    order_status: str
    role: Literal["initiator", "recipient"]
    product: Optional[ProductSummary] = None
    counterpart: UserSummary
    price_offered: int
    price_requested: int
    created_at: datetime
    updated_at: datetime


class TransactionListResponse(CamelModel):
    transactions: List[TransactionRow]


class TransactionDetailResponse(CamelModel):
    id: int
    transaction_type: str
    order_status: str
    role: Optional[Literal["initiator", "recipient"]] = None
    product_offered: Optional[ProductDetail] = None
    product_requested: ProductDetail
    initiator: UserSummary
    recipient: UserSummary
    price_offered: int
    price_requested: int
    remarks: Optional[str] = None
    created_at: datetime
    updated_at: datetime
