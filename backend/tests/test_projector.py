import pytest

from barter.services import projector
from barter.services import transactions as transaction_service
from barter.services.errors import AccessForbidden, NotFound, ValidationError


@pytest.fixture
def market(make_user, make_product):
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    return {
        "alice": alice,
        "bob": bob,
        "carol": carol,
        "bike": make_product(alice, title="Bike"),
        "guitar": make_product(bob, title="Guitar"),
        "lamp": make_product(bob, title="Lamp", is_barter=False, price=50),
    }


def _hybrid(session, market, offered, requested):
    return transaction_service.initiate_transaction(
        session,
        market["alice"].id,
        transaction_type="hybrid",
        product_offered_id=market["bike"].id,
        product_requested_id=market["guitar"].id,
        price_offered=offered,
        price_requested=requested,
    )


def _sale(session, market):
    return transaction_service.initiate_transaction(
        session,
        market["alice"].id,
        transaction_type="sale",
        product_requested_id=market["lamp"].id,
        price_requested=50,
    )


def test_sale_rows_are_oriented_per_viewer(session, market):
    transaction = _sale(session, market)

    [buyer_row] = projector.list_transactions(session, market["alice"].id)
    assert buyer_row["id"] == transaction.id
    assert buyer_row["role"] == "initiator"
    assert buyer_row["product"]["title"] == "Lamp"
    assert buyer_row["counterpart"]["name"] == "bob"
    assert (buyer_row["price_offered"], buyer_row["price_requested"]) == (50, 0)

    [seller_row] = projector.list_transactions(session, market["bob"].id)
    assert seller_row["role"] == "recipient"
    assert seller_row["product"]["title"] == "Lamp"
    assert seller_row["counterpart"]["name"] == "alice"
    assert (seller_row["price_offered"], seller_row["price_requested"]) == (0, 50)


@pytest.mark.parametrize(
    "offered, requested, initiator_view, recipient_view",
    [(100, 40, (60, 0), (0, 60)), (40, 100, (0, 60), (60, 0))],
)
def test_hybrid_rows_show_counterpart_product_and_viewer_cash(
    session, market, offered, requested, initiator_view, recipient_view
):
    _hybrid(session, market, offered, requested)

    [initiator_row] = projector.list_initiated_transactions(session, market["alice"].id)
    assert initiator_row["product"]["title"] == "Guitar"
    assert (initiator_row["price_offered"], initiator_row["price_requested"]) == initiator_view

    [recipient_row] = projector.list_received_transactions(session, market["bob"].id)
    assert recipient_row["product"]["title"] == "Bike"
    assert (recipient_row["price_offered"], recipient_row["price_requested"]) == recipient_view


def test_role_filter(session, market):
    _sale(session, market)

    assert projector.list_transactions(session, market["alice"].id, "recipient") == []
    assert len(projector.list_transactions(session, market["alice"].id, "initiator")) == 1
    with pytest.raises(ValidationError):
        projector.list_transactions(session, market["alice"].id, "observer")


def test_listings_are_newest_first(session, market):
    first = _sale(session, market)
    second = _hybrid(session, market, 10, 0)

    ids = [row["id"] for row in projector.list_transactions(session, market["alice"].id)]
    assert ids == [second.id, first.id]


def test_blocked_or_banned_counterparts_are_hidden(session, market):
    _sale(session, market)
    market["alice"].blocked_users.append(market["bob"])
    session.commit()
    assert projector.list_transactions(session, market["alice"].id) == []
    assert projector.list_transactions(session, market["bob"].id) == []

    market["alice"].blocked_users.clear()
    market["bob"].is_banned = True
    session.commit()
    assert projector.list_transactions(session, market["alice"].id) == []


def test_product_history_includes_closed_deals_for_parties_only(session, market):
    first = _sale(session, market)
    transaction_service.update_transaction_as_recipient(
        session, first.id, market["bob"].id, order_status="cancel"
    )
    second = _sale(session, market)

    rows = projector.list_product_transactions(session, market["bob"].id, market["lamp"].id)
    assert [(row["id"], row["order_status"]) for row in rows] == [
        (second.id, "pending"),
        (first.id, "cancel"),
    ]
    assert all(row["role"] == "recipient" for row in rows)
    assert projector.list_product_transactions(session, market["carol"].id, market["lamp"].id) == []

    with pytest.raises(NotFound):
        projector.list_product_transactions(session, market["bob"].id, 9999)


def test_details_include_both_sides(session, market):
    transaction = _hybrid(session, market, 100, 40)

    detail = projector.get_transaction_details(session, market["bob"].id, transaction.id)
    assert detail["role"] == "recipient"
    assert detail["product_offered"]["title"] == "Bike"
    assert detail["product_requested"]["title"] == "Guitar"
    assert detail["initiator"]["name"] == "alice"
    assert detail["recipient"]["name"] == "bob"
    assert (detail["price_offered"], detail["price_requested"]) == (60, 0)


def test_details_for_outsiders_depend_on_blocks(session, market):
    transaction = _sale(session, market)
    carol_id = market["carol"].id

    assert projector.get_transaction_details(session, carol_id, transaction.id)["role"] is None

    market["bob"].blocked_users.append(market["carol"])
    session.commit()
    with pytest.raises(AccessForbidden):
        projector.get_transaction_details(session, carol_id, transaction.id)

    with pytest.raises(NotFound):
        projector.get_transaction_details(session, carol_id, 777)
