"""Tests for the product catalogue and stock bookkeeping."""

import pytest

from conftest import make_product
from services.product_service.models import stock_status_for
from services.product_service.service import ProductService
from shared.exceptions import BusinessRuleViolation, EntityNotFound


class TestStockStatus:
    @pytest.mark.parametrize("stock,expected", [
        (0, "Out of Stock"),
        (1, "Low Stock"),
        (5, "Low Stock"),
        (6, "Available"),
    ])
    def test_thresholds(self, stock, expected):
        assert stock_status_for(stock) == expected


class TestDerivedFields:
    async def test_derived_on_insert(self, db):
        product = await make_product(db, stock=3)
        assert product.in_stock is True
        assert product.stock_status == "Low Stock"

    async def test_out_of_stock_on_insert(self, db):
        product = await make_product(db, stock=0)
        assert product.in_stock is False
        assert product.stock_status == "Out of Stock"

    async def test_recomputed_after_adjustment(self, db):
        product = await make_product(db, stock=6)
        product = await ProductService.adjust_stock(db, product.id, -6)
        assert product.stock == 0
        assert product.in_stock is False
        assert product.stock_status == "Out of Stock"


class TestAdjustStock:
    async def test_cannot_go_negative(self, db, product):
        with pytest.raises(BusinessRuleViolation):
            await ProductService.adjust_stock(db, product.id, -(product.stock + 1))

    async def test_unknown_product(self, db):
        with pytest.raises(EntityNotFound):
            await ProductService.adjust_stock(db, 999, 1)

    async def test_restore(self, db, product):
        updated = await ProductService.adjust_stock(db, product.id, 4)
        assert updated.stock == 14


class TestProductApi:
    async def test_list_and_get(self, client, product):
        resp = await client.get("/products/")
        assert resp.status_code == 200
        assert [p["name"] for p in resp.json()] == ["Yirgacheffe Coffee"]

        resp = await client.get(f"/products/{product.id}")
        assert resp.status_code == 200
        assert resp.json()["stock_status"] == "Available"

    async def test_get_missing(self, client):
        resp = await client.get("/products/999")
        assert resp.status_code == 404

    async def test_create_requires_admin(self, client):
        from conftest import ADMIN, CUSTOMER, auth_headers

        body = {"name": "Berbere", "price": 4.5, "category": "spices", "stock": 2}
        resp = await client.post("/products/", json=body, headers=auth_headers(CUSTOMER))
        assert resp.status_code == 403

        resp = await client.post("/products/", json=body, headers=auth_headers(ADMIN))
        assert resp.status_code == 201
        assert resp.json()["stock_status"] == "Low Stock"

    async def test_adjust_stock_needs_internal_key(self, client, product):
        resp = await client.post(f"/products/{product.id}/adjust_stock", json={"delta": -1})
        assert resp.status_code == 403

        resp = await client.post(
            f"/products/{product.id}/adjust_stock",
            json={"delta": -1},
            headers={"X-Internal-API-Key": "test-internal-key"},
        )
        assert resp.status_code == 200
        assert resp.json()["stock"] == 9
