# Overview: End-to-end API tests through the Flask test client.

"""
API Route Tests

Verifies request parsing, status codes and JSON shapes for the main flows:
login, catalog, stock updates, settlement, reports, notifications and health.
"""

import pytest

from stockmanager.extensions import db
from stockmanager.models import Product


class TestAuthRoutes:
    def test_login_returns_token_and_context(self, client, owner_a, seller_a):
        resp = client.post("/api/auth/login", json={"email": "OWNER_A@shop.com", "password": "Password123!"})
        assert resp.status_code == 200
        body = resp.json
        assert body["token"]
        assert body["expires_at"].endswith("Z")
        assert body["user"]["email"] == "owner_a@shop.com"
        assert body["seller"]["id"] == seller_a.id
        assert body["permissions"]["canManageProducts"] is True
        assert body["subscription"]["tier"] == "PRO"
        assert "password_hash" not in body["user"]

    def test_login_wrong_password(self, client, owner_a):
        resp = client.post("/api/auth/login", json={"email": owner_a.email, "password": "wrong-password"})
        assert resp.status_code == 401

    def test_login_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"email": "someone@shop.com"})
        assert resp.status_code == 400

    def test_me(self, client, operations_a_headers):
        resp = client.get("/api/auth/me", headers=operations_a_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["role"] == "OPERATIONS"
        assert resp.json["permissions"]["canAdjustStock"] is False


class TestCatalogRoutes:
    def test_product_lifecycle(self, client, owner_a_headers, category_a):
        resp = client.post(
            "/api/products",
            json={"name": "Soap", "category_id": category_a.id, "purchase_price_cents": 250,
                  "selling_price_cents": 400, "opening_stock": 12, "min_stock_level": 3},
            headers=owner_a_headers,
        )
        assert resp.status_code == 201
        product = resp.json["product"]
        assert product["current_stock"] == 12

        resp = client.put(f"/api/products/{product['id']}", json={"selling_price_cents": 450},
                          headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["product"]["selling_price_cents"] == 450

        resp = client.delete(f"/api/products/{product['id']}", headers=owner_a_headers)
        assert resp.status_code == 200
        assert client.get("/api/products", headers=owner_a_headers).json["products"] == []

    def test_create_missing_fields(self, client, owner_a_headers):
        resp = client.post("/api/products", json={"name": "Nameless"}, headers=owner_a_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "INVALID_INPUT"

    def test_current_stock_cannot_be_set_directly(self, client, owner_a_headers, product_a):
        resp = client.put(f"/api/products/{product_a.id}", json={"current_stock": 500}, headers=owner_a_headers)
        assert resp.status_code == 400
        assert db.session.get(Product, product_a.id).current_stock == 10

    def test_category_crud(self, client, owner_a_headers):
        resp = client.post("/api/categories", json={"name": "Dairy"}, headers=owner_a_headers)
        assert resp.status_code == 201
        category_id = resp.json["category"]["id"]

        dup = client.post("/api/categories", json={"name": "Dairy"}, headers=owner_a_headers)
        assert dup.status_code == 400

        listed = client.get("/api/categories", headers=owner_a_headers).json["categories"]
        assert [c["name"] for c in listed] == ["Dairy"]

        assert client.delete(f"/api/categories/{category_id}", headers=owner_a_headers).status_code == 200


class TestStockRoutes:
    def test_purchase_then_read_ledger(self, client, owner_a_headers, product_a):
        resp = client.post(
            "/api/stock/update",
            json={"product_id": product_a.id, "quantity_delta": 5, "transaction_type": "PURCHASE",
                  "purchase_price_cents": 580, "note": "Supplier delivery"},
            headers=owner_a_headers,
        )
        assert resp.status_code == 201
        assert resp.json["product"]["current_stock"] == 15
        assert resp.json["transaction"]["quantity_delta"] == 5

        txs = client.get(f"/api/stock/transactions?product_id={product_a.id}", headers=owner_a_headers).json
        assert [tx["quantity_delta"] for tx in txs["transactions"]] == [5, 10]

    def test_oversell_returns_409(self, client, owner_a_headers, product_a):
        resp = client.post(
            "/api/stock/update",
            json={"product_id": product_a.id, "quantity_delta": -11, "transaction_type": "ADJUSTMENT"},
            headers=owner_a_headers,
        )
        assert resp.status_code == 409
        assert resp.json["code"] == "INSUFFICIENT_STOCK"
        assert resp.json["details"]["available"] == 10

    @pytest.mark.parametrize("delta", [0, "abc", 2.5])
    def test_invalid_delta(self, client, owner_a_headers, product_a, delta):
        resp = client.post(
            "/api/stock/update",
            json={"product_id": product_a.id, "quantity_delta": delta, "transaction_type": "ADJUSTMENT"},
            headers=owner_a_headers,
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize("delta", [10 ** 20, "-99999999999"])
    def test_out_of_range_delta_is_400(self, client, owner_a_headers, product_a, delta):
        resp = client.post(
            "/api/stock/update",
            json={"product_id": product_a.id, "quantity_delta": delta, "transaction_type": "ADJUSTMENT"},
            headers=owner_a_headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "INVALID_INPUT"
        assert db.session.get(Product, product_a.id).current_stock == 10

    @pytest.mark.parametrize("note", [42, {"text": "hi"}, "n" * 300])
    def test_invalid_note_is_400(self, client, owner_a_headers, product_a, note):
        resp = client.post(
            "/api/stock/update",
            json={"product_id": product_a.id, "quantity_delta": 1, "transaction_type": "PURCHASE", "note": note},
            headers=owner_a_headers,
        )
        assert resp.status_code == 400

    def test_reconcile(self, client, owner_a_headers, product_a):
        resp = client.get("/api/stock/reconcile", headers=owner_a_headers)
        assert resp.json == {"balanced": True, "mismatches": []}

    def test_alert_check(self, client, owner_a_headers, seller_a, category_a):
        client.post(
            "/api/products",
            json={"name": "Almost gone", "category_id": category_a.id, "purchase_price_cents": 100,
                  "selling_price_cents": 150, "opening_stock": 1, "min_stock_level": 4},
            headers=owner_a_headers,
        )
        resp = client.post("/api/stock/alerts/check", headers=owner_a_headers)
        assert resp.status_code == 200
        assert [n["type"] for n in resp.json["notifications"]] == ["LOW_STOCK"]

        listed = client.get("/api/notifications?unread_only=true", headers=owner_a_headers).json
        assert listed["unread_count"] == 1


class TestSaleRoutes:
    def test_create_sale(self, client, owner_a_headers, product_a):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product_a.id, "quantity": 3}],
                  "discount_type": "PERCENTAGE", "discount_value": 10},
            headers=owner_a_headers,
        )
        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["subtotal_cents"] == 3000
        assert sale["discount_amount_cents"] == 300
        assert sale["total_cents"] == 2700
        assert sale["profit_cents"] == 1200
        assert sale["sale_number"].startswith("INV-")
        assert sale["items"][0]["product_name"] == "Product A"

        fetched = client.get(f"/api/sales/{sale['id']}", headers=owner_a_headers)
        assert fetched.json["sale"]["sale_number"] == sale["sale_number"]

    def test_insufficient_stock_409_and_nothing_written(self, client, owner_a_headers, product_a):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product_a.id, "quantity": 11}]},
            headers=owner_a_headers,
        )
        assert resp.status_code == 409
        assert resp.json["details"]["product_id"] == product_a.id
        assert client.get("/api/sales", headers=owner_a_headers).json["total"] == 0
        assert db.session.get(Product, product_a.id).current_stock == 10

    def test_invalid_discount_400(self, client, owner_a_headers, product_a):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product_a.id, "quantity": 1}],
                  "discount_type": "PERCENTAGE", "discount_value": 110},
            headers=owner_a_headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "INVALID_DISCOUNT"

    def test_discount_with_three_decimals_400(self, client, owner_a_headers, product_a):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product_a.id, "quantity": 1}],
                  "discount_type": "PERCENTAGE", "discount_value": "12.345"},
            headers=owner_a_headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "INVALID_DISCOUNT"

    @pytest.mark.parametrize("items", [None, [], [{"product_id": 1}], [{"product_id": 1, "quantity": 0}]])
    def test_malformed_cart_400(self, client, owner_a_headers, items):
        resp = client.post("/api/sales", json={"items": items}, headers=owner_a_headers)
        assert resp.status_code == 400

    def test_customer_detail_lists_sales(self, client, owner_a_headers, product_a):
        customer = client.post(
            "/api/customers", json={"name": "Asha", "phone": "555-0100"}, headers=owner_a_headers
        ).json["customer"]
        client.post(
            "/api/sales",
            json={"items": [{"product_id": product_a.id, "quantity": 1}], "customer_id": customer["id"]},
            headers=owner_a_headers,
        )
        detail = client.get(f"/api/customers/{customer['id']}", headers=owner_a_headers).json
        assert len(detail["sales"]) == 1
        assert detail["sales"][0]["customer_name"] == "Asha"


class TestReportAndExpenseRoutes:
    def test_profit_loss_with_expense(self, client, owner_a_headers, product_a):
        client.post("/api/sales", json={"items": [{"product_id": product_a.id, "quantity": 2}]},
                    headers=owner_a_headers)
        resp = client.post("/api/expenses", json={"category": "RENT", "amount_cents": 300},
                           headers=owner_a_headers)
        assert resp.status_code == 201

        report = client.get("/api/reports/profit-loss", headers=owner_a_headers).json
        assert report["summary"]["gross_profit_cents"] == 800
        assert report["summary"]["net_profit_cents"] == 500

    def test_invalid_expense_category(self, client, owner_a_headers):
        resp = client.post("/api/expenses", json={"category": "PARTY", "amount_cents": 300},
                           headers=owner_a_headers)
        assert resp.status_code == 400

    def test_stock_report(self, client, owner_a_headers, product_a):
        report = client.get("/api/reports/stock", headers=owner_a_headers).json
        assert report["summary"]["total_products"] == 1
        assert report["summary"]["total_stock_value_cents"] == 6000

    def test_sales_report_bad_date(self, client, owner_a_headers):
        resp = client.get("/api/reports/sales?start_date=yesterday", headers=owner_a_headers)
        assert resp.status_code == 400


class TestSettingsRoutes:
    def test_get_and_update(self, client, owner_a_headers):
        settings = client.get("/api/settings", headers=owner_a_headers).json
        assert settings["effective_tier"] == "PRO"
        assert settings["features"]["hasReports"] is True

        resp = client.put("/api/settings", json={"default_pricing_mode": "MARKUP", "default_markup_percentage": 25},
                          headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["seller"]["default_pricing_mode"] == "MARKUP"

    def test_invalid_pricing_mode(self, client, owner_a_headers):
        resp = client.put("/api/settings", json={"default_pricing_mode": "AUCTION"}, headers=owner_a_headers)
        assert resp.status_code == 400


class TestHealth:
    def test_healthy(self, client, product_a):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["ledger"]["status"] == "healthy"

    def test_degraded_when_ledger_drifts(self, client, product_a):
        db.session.query(Product).filter_by(id=product_a.id).update({"current_stock": 3})
        db.session.commit()

        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "degraded"
