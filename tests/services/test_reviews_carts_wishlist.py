# tests/services/test_reviews_carts_wishlist.py
import pytest
from sqlalchemy import select

from storefront.api.errors import ConflictError, NotFoundError, ValidationError
from storefront.models import AbandonedCart
from storefront.services.cart_service import CartService
from storefront.services.review_service import ReviewService
from storefront.services.wishlist_service import WishlistService
from tests.factories import make_order, make_product, make_store, make_user


def _review(product_id, **kw):
    data = {
        "product_id": product_id,
        "customer_name": "Ana",
        "customer_email": "Ana@Example.com",
        "rating": 5,
        "title": "Excelente",
    }
    data.update(kw)
    return data


@pytest.mark.asyncio
async def test_review_verified_purchase_and_duplicate(session):
    store = await make_store(session)
    product = await make_product(session, store)
    product_id = product.id
    await make_order(session, store, product, status="shipped")
    svc = ReviewService(session, store.id)

    created = await svc.create_review(_review(product_id))
    assert created["verified_purchase"] is True

    with pytest.raises(ConflictError) as ei:
        await svc.create_review(_review(product_id, customer_email="ana@example.com"))
    assert ei.value.code == "ALREADY_REVIEWED"

    unverified = await svc.create_review(_review(product_id, customer_email="otro@example.com", rating=3))
    assert unverified["verified_purchase"] is False


@pytest.mark.asyncio
async def test_pending_order_is_not_a_verified_purchase(session):
    store = await make_store(session)
    product = await make_product(session, store)
    await make_order(session, store, product, status="pending")
    created = await ReviewService(session, store.id).create_review(_review(product.id))
    assert created["verified_purchase"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "override, code",
    [({"rating": 0}, "INVALID_RATING"), ({"rating": 6}, "INVALID_RATING"), ({"customer_email": ""}, "VALIDATION_ERROR")],
)
async def test_review_validation(session, override, code):
    store = await make_store(session)
    product = await make_product(session, store)
    with pytest.raises(ValidationError) as ei:
        await ReviewService(session, store.id).create_review(_review(product.id, **override))
    assert ei.value.code == code


@pytest.mark.asyncio
async def test_only_approved_reviews_are_public(session):
    store = await make_store(session)
    product = await make_product(session, store)
    svc = ReviewService(session, store.id)
    a = await svc.create_review(_review(product.id, rating=5))
    b = await svc.create_review(_review(product.id, customer_email="b@example.com", rating=2))
    await svc.create_review(_review(product.id, customer_email="c@example.com", rating=4))

    assert (await svc.list_product_reviews(product.id))["stats"]["total"] == 0

    await svc.moderate_review(a["id"], True)
    await svc.moderate_review(b["id"], True)
    public = await svc.list_product_reviews(product.id)
    assert public["stats"]["total"] == 2
    assert public["stats"]["average"] == 3.5
    assert public["stats"]["distribution"] == {5: 1, 4: 0, 3: 0, 2: 1, 1: 0}

    pending = await svc.list_reviews(approved=False)
    assert [r["customer_email"] for r in pending] == ["c@example.com"]
    assert pending[0]["product_name"] == product.name

    await svc.delete_review(a["id"])
    with pytest.raises(NotFoundError):
        await svc.moderate_review(a["id"], False)


@pytest.mark.asyncio
async def test_review_for_other_stores_product(session):
    store = await make_store(session)
    other = await make_store(session, domain="otra")
    product = await make_product(session, other)
    with pytest.raises(NotFoundError):
        await ReviewService(session, store.id).create_review(_review(product.id))


# ---------------------------------------------------------------------------
# abandoned carts
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cart_upsert_by_email_and_session(session, async_session_maker):
    store = await make_store(session)
    svc = CartService(session, store.id)

    assert await svc.save_cart([{"product_id": "p"}]) is False
    assert await svc.save_cart([{"product_id": "p"}], session_id="s-1", total=100) is True
    assert await svc.save_cart([{"product_id": "p"}, {"product_id": "q"}], session_id="s-1", total=250) is True
    assert await svc.save_cart([], email=" Ana@Example.com ") is True
    assert await svc.save_cart([{"product_id": "z"}], email="ana@example.com") is True

    async with async_session_maker() as fresh:
        carts = (await fresh.execute(select(AbandonedCart).order_by(AbandonedCart.created_at))).scalars().all()
    assert len(carts) == 2
    by_session = next(c for c in carts if c.session_id == "s-1")
    assert by_session.cart_data == {"items": [{"product_id": "p"}, {"product_id": "q"}], "total": 250}
    by_email = next(c for c in carts if c.email == "ana@example.com")
    assert by_email.cart_data["items"] == [{"product_id": "z"}]


@pytest.mark.asyncio
async def test_cart_rejects_non_list_items(session):
    store = await make_store(session)
    with pytest.raises(ValidationError):
        await CartService(session, store.id).save_cart("nope", session_id="s")


# ---------------------------------------------------------------------------
# wishlist
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_wishlist_is_idempotent(session):
    store = await make_store(session)
    product = await make_product(session, store)
    user = await make_user(session, store, role="customer", email="c@example.com")
    svc = WishlistService(session, store.id, user.id)

    assert await svc.add_item(product.id) is True
    assert await svc.add_item(product.id) is False
    items = await svc.list_items()
    assert [i["product"]["id"] for i in items] == [product.id]

    await svc.remove_item(product.id)
    assert await svc.list_items() == []

    with pytest.raises(NotFoundError):
        await svc.add_item("missing")
