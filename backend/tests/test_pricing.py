import pytest

from barter.services import pricing
from barter.services.errors import ValidationError


@pytest.mark.parametrize(
    "offered, requested, expected",
    [
        (100, 40, (60, 0)),
        (40, 100, (0, 60)),
        (75, 75, (0, 0)),
        (5, 0, (5, 0)),
        (0, 9, (0, 9)),
    ],
)
def test_net_prices_leaves_single_sided_residual(offered, requested, expected):
    assert pricing.net_prices(offered, requested) == expected


def test_net_prices_is_idempotent_once_netted():
    for offered, requested in [(100, 40), (40, 100), (30, 30), (1, 0), (0, 1)]:
        netted = pricing.net_prices(offered, requested)
        assert pricing.net_prices(*netted) == netted
        assert min(netted) == 0


def test_hybrid_prices_rejects_zero_on_both_sides():
    with pytest.raises(ValidationError, match="Enter amount"):
        pricing.hybrid_prices(0, 0)
    with pytest.raises(ValidationError):
        pricing.hybrid_prices(None, None)


def test_hybrid_prices_treats_missing_side_as_zero():
    assert pricing.hybrid_prices(None, 25) == (0, 25)


def test_sale_price_requires_positive_amount():
    assert pricing.sale_price(50) == 50
    with pytest.raises(ValidationError, match="No amount provided for sale"):
        pricing.sale_price(0)
    with pytest.raises(ValidationError):
        pricing.sale_price(None)


@pytest.mark.parametrize("value", [-1, 2.5, "10", True])
def test_coerce_amount_rejects_non_whole_or_negative(value):
    with pytest.raises(ValidationError):
        pricing.coerce_amount(value, "price_offered")
