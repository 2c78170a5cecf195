import pytest
from catalog.models import Product, ProductVariant
from catalog.tests.factories import ProductFactory, StaffFactory, UserFactory
from inventory.models import StockMovement
from rest_framework.test import APIClient


@pytest.fixture
def staff_client():
    client = APIClient()
    client.force_authenticate(user=StaffFactory())
    return client


@pytest.mark.django_db
def test_admin_catalog_requires_staff():
    client = APIClient()
    client.force_authenticate(user=UserFactory())
    assert client.get("/api/v1/admin/catalog/products/").status_code == 403
    assert client.post("/api/v1/admin/catalog/variants/", {}, format="json").status_code == 403


@pytest.mark.django_db
def test_create_product_with_default_variant(staff_client):
    resp = staff_client.post(
        "/api/v1/admin/catalog/products/",
        {"title": "Knit Beanie", "price": "9.00", "stock": 6},
        format="json",
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["slug"] == "knit-beanie"
    assert len(body["variant_ids"]) == 1

    variant = ProductVariant.objects.get(id=body["variant_ids"][0])
    assert (variant.size, variant.color, variant.stock) == (None, None, 6)
    assert Product.objects.get(id=body["id"]).stock == 0


@pytest.mark.django_db
def test_create_product_with_variants(staff_client):
    resp = staff_client.post(
        "/api/v1/admin/catalog/products/",
        {
            "title": "Romper",
            "price": "18.00",
            "variants": [{"size": "3-6M", "color": "Sage", "stock": 4}, {"size": "6-9M", "color": "Sage"}],
        },
        format="json",
    )
    assert resp.status_code == 201
    assert len(resp.json()["variant_ids"]) == 2
    assert StockMovement.objects.filter(movement_type=StockMovement.TYPE_PURCHASE).count() == 1


@pytest.mark.django_db
def test_product_flat_stock_cannot_be_patched(staff_client):
    product = ProductFactory(stock=3)
    resp = staff_client.patch(f"/api/v1/admin/catalog/products/{product.id}/", {"stock": 10}, format="json")
    assert resp.status_code == 400

    resp = staff_client.patch(f"/api/v1/admin/catalog/products/{product.id}/", {"title": "Renamed"}, format="json")
    assert resp.status_code == 200
    product.refresh_from_db()
    assert (product.title, product.stock) == ("Renamed", 3)


@pytest.mark.django_db
def test_variant_create_update_and_deactivate(staff_client):
    product = ProductFactory()

    resp = staff_client.post(
        "/api/v1/admin/catalog/variants/",
        {"product": product.id, "size": "5T", "color": "Rust", "stock": 9, "min_stock": 2},
        format="json",
    )
    assert resp.status_code == 201
    variant_id = resp.json()["id"]
    assert resp.json()["stock"] == 9
    assert StockMovement.objects.get(variant_id=variant_id).quantity == 9

    url = f"/api/v1/admin/catalog/variants/{variant_id}/"
    assert staff_client.patch(url, {"stock": 100}, format="json").status_code == 400

    resp = staff_client.patch(url, {"color": "Ochre", "min_stock": 4}, format="json")
    assert resp.status_code == 200
    assert (resp.json()["color"], resp.json()["min_stock"], resp.json()["stock"]) == ("Ochre", 4, 9)

    assert staff_client.delete(url).status_code == 204
    assert ProductVariant.objects.get(id=variant_id).is_active is False
