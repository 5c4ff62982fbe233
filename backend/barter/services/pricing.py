"""Cash arithmetic for sale and hybrid deals."""

from __future__ import annotations

from typing import Any, Optional, Tuple

from barter.services.errors import ValidationError


def coerce_amount(value: Any, field: str) -> int:
    """Return ``value`` as a non-negative int; ``None`` counts as zero."""
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number")
    if value < 0:
        raise ValidationError(f"{field} cannot be negative")
    return value


def net_prices(price_offered: int, price_requested: int) -> Tuple[int, int]:
    """Collapse two opposing cash top-ups into a single-sided residual.

    The result has at most one positive side, so netting an already netted
    pair returns it unchanged.
    """
    if price_offered > price_requested:
        return price_offered - price_requested, 0
    if price_offered < price_requested:
        return 0, price_requested - price_offered
    return 0, 0


def hybrid_prices(price_offered: Optional[int], price_requested: Optional[int]) -> Tuple[int, int]:
    offered = coerce_amount(price_offered, "price_offered")
    requested = coerce_amount(price_requested, "price_requested")
    if offered == 0 and requested == 0:
        raise ValidationError("Enter amount to initiate hybrid exchange")
    return net_prices(offered, requested)


def sale_price(price_requested: Optional[int]) -> int:
    amount = coerce_amount(price_requested, "price_requested")
    if amount == 0:
        raise ValidationError("No amount provided for sale")
    return amount
