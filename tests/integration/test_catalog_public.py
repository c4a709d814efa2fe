"""Integration tests for the public catalog: categories, brands, products, reviews."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from libs.common.datetime_utils import utc_now
from services.commerce_service.models import PromotionType
from tests.factories import BrandFactory, CategoryFactory, ProductFactory, PromotionFactory


async def _seed(db, *objects):
    for obj in objects:
        db.add(obj)
    await db.commit()


@pytest_asyncio.fixture
async def category_tree(db_session):
    """electronics > phones > cases, plus a separate books root."""
    electronics = CategoryFactory.create(slug="electronics", name="Electronics", is_featured=True)
    phones = CategoryFactory.create(parent=electronics, slug="phones", name="Phones")
    cases = CategoryFactory.create(parent=phones, slug="cases", name="Cases")
    books = CategoryFactory.create(slug="books", name="Books", sort_order=5)
    await _seed(db_session, electronics, phones, cases, books)
    return {"electronics": electronics, "phones": phones, "cases": cases, "books": books}


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_category_reads(client, category_tree):
    response = await client.get("/categories/roots")
    assert response.status_code == 200
    assert [c["slug"] for c in response.json()] == ["electronics", "books"]

    response = await client.get("/categories/level/2")
    assert [c["slug"] for c in response.json()] == ["cases"]

    response = await client.get("/categories/featured")
    assert [c["slug"] for c in response.json()] == ["electronics"]

    response = await client.get("/categories/cases")
    data = response.json()
    assert data["level"] == 2
    assert data["ancestors"] == [
        str(category_tree["electronics"].id),
        str(category_tree["phones"].id),
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_category_path_and_tree(client, category_tree):
    response = await client.get("/categories/cases/path")
    assert response.status_code == 200
    assert [c["slug"] for c in response.json()] == ["electronics", "phones", "cases"]

    response = await client.get("/categories/tree")
    flags = {c["slug"]: c["has_children"] for c in response.json()}
    assert flags["phones"] is True
    assert flags["cases"] is False

    response = await client.get("/categories/electronics/subcategories")
    assert [c["slug"] for c in response.json()] == ["phones"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_category_is_404(client):
    response = await client.get("/categories/nope")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_category_products_cover_subtree(client, db_session, category_tree):
    await _seed(
        db_session,
        ProductFactory.create(slug="phone-case", category_id=category_tree["cases"].id),
        ProductFactory.create(slug="novel", category_id=category_tree["books"].id),
    )

    response = await client.get("/categories/electronics/products")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["slug"] == "phone-case"
    assert data["total_pages"] == 1


# ---------------------------------------------------------------------------
# Products and brands
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_listing_and_detail(client, db_session):
    brand = BrandFactory.create(slug="acme", name="Acme")
    await _seed(db_session, brand)
    await _seed(
        db_session,
        ProductFactory.create(
            slug="anvil",
            name="Anvil",
            brand_id=brand.id,
            price_current=Decimal("80.00"),
            price_original=Decimal("100.00"),
        ),
        ProductFactory.create(slug="rocket", name="Rocket", price_current=Decimal("900.00")),
    )

    response = await client.get("/products", params={"max_price": "100", "sort": "price_asc"})
    assert response.status_code == 200
    assert [p["slug"] for p in response.json()["items"]] == ["anvil"]

    response = await client.get("/products/anvil")
    assert response.status_code == 200
    detail = response.json()
    assert detail["is_on_sale"] is True
    assert detail["discount_percentage"] == 20
    assert detail["brand"]["slug"] == "acme"

    response = await client.get("/brands/acme/products")
    assert response.json()["total"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_sort_is_validation_error(client):
    response = await client.get("/products", params={"sort": "random"})
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_review_flow(client, db_session, customer_headers):
    product = ProductFactory.create(slug="reviewed")
    await _seed(db_session, product)
    product_id = product.id

    response = await client.post(
        f"/reviews/{product_id}",
        json={"rating": 4, "title": "Solid"},
        headers=customer_headers,
    )
    assert response.status_code == 201, response.text

    response = await client.post(
        f"/reviews/{product_id}", json={"rating": 2}, headers=customer_headers
    )
    assert response.status_code == 409

    response = await client.get("/reviews/me", headers=customer_headers)
    assert response.status_code == 200
    assert response.json()[0]["product_slug"] == "reviewed"

    response = await client.get("/products/reviewed")
    assert response.json()["rating_count"] == 1

    response = await client.delete(f"/reviews/{product_id}", headers=customer_headers)
    assert response.status_code == 204


@pytest.mark.asyncio
@pytest.mark.integration
async def test_review_rating_out_of_range(client, db_session, customer_headers):
    product = ProductFactory.create()
    await _seed(db_session, product)

    response = await client.post(
        f"/reviews/{product.id}", json={"rating": 6}, headers=customer_headers
    )
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# Promotions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_promotion_endpoints(client, db_session):
    now = utc_now()
    banner = PromotionFactory.create(
        title="Summer", type=PromotionType.BANNER, is_featured=True, end_date=now + timedelta(days=3)
    )
    card = PromotionFactory.create(title="Bundle", display_order=1)
    ended = PromotionFactory.create(title="Spring", end_date=now - timedelta(days=1))
    await _seed(db_session, banner, card, ended)

    response = await client.get("/promotions")
    assert response.status_code == 200
    assert [p["title"] for p in response.json()] == ["Summer", "Bundle"]

    response = await client.get("/promotions", params={"type": "card"})
    assert [p["title"] for p in response.json()] == ["Bundle"]

    response = await client.get("/promotions/featured")
    assert [p["title"] for p in response.json()] == ["Summer"]

    response = await client.get(f"/promotions/{ended.id}")
    assert response.status_code == 200
    assert response.json()["is_expired"] is True
    assert response.json()["is_active_now"] is False

    response = await client.get(f"/promotions/{uuid.uuid4()}")
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_promotion_type_is_validated(client):
    response = await client.get("/promotions", params={"type": "popup"})
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_filters_endpoint(client, db_session, category_tree):
    brand = BrandFactory.create(slug="acme")
    await _seed(db_session, brand)
    await _seed(
        db_session,
        ProductFactory.create(
            price_current=Decimal("12.50"),
            brand_id=brand.id,
            category_id=category_tree["cases"].id,
        ),
        ProductFactory.create(
            price_current=Decimal("40.00"), category_id=category_tree["phones"].id
        ),
        ProductFactory.create(
            price_current=Decimal("8.00"), category_id=category_tree["books"].id
        ),
    )

    response = await client.get("/products/filters", params={"category": "electronics"})
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["price_range"]["min_price"]) == Decimal("12.50")
    assert Decimal(data["price_range"]["max_price"]) == Decimal("40.00")
    assert data["brands"] == 1
    assert data["categories"] == 2

    response = await client.get("/products/filters", params={"category": "nope"})
    assert response.status_code == 404
