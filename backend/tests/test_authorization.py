"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- OPERATIONS role is limited to billing (403 elsewhere)
- OWNER role can perform shop operations
- Paid features (reports) are gated by subscription tier
- Role and tier matrices in permissions.py
"""

from datetime import timedelta

import pytest

from stockmanager.extensions import db
from stockmanager.models import Subscription
from stockmanager.permissions import (
    can_access_feature,
    get_role_permissions,
    get_subscription_features,
    has_role_permission,
)
from stockmanager.time_utils import utcnow


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/categories"),
            ("GET", "/api/units"),
            ("POST", "/api/stock/update"),
            ("GET", "/api/stock/transactions"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales"),
            ("GET", "/api/customers"),
            ("GET", "/api/expenses"),
            ("GET", "/api/reports/stock"),
            ("GET", "/api/reports/profit-loss"),
            ("GET", "/api/notifications"),
            ("GET", "/api/settings"),
            ("GET", "/api/analytics"),
            ("GET", "/api/reports/stock/export"),
            ("GET", "/api/users"),
            ("POST", "/api/auth/change-password"),
            ("GET", "/api/admin/sellers"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"


# =============================================================================
# OPERATIONS DENIED SHOP MANAGEMENT (403)
# =============================================================================


class TestOperationsDenied:
    """Counter staff can bill but cannot manage the shop."""

    def test_cannot_create_product(self, client, operations_a_headers, category_a):
        resp = client.post(
            "/api/products",
            json={"name": "Sneaky", "category_id": category_a.id, "purchase_price_cents": 100},
            headers=operations_a_headers,
        )
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "canManageProducts"

    def test_cannot_adjust_stock(self, client, operations_a_headers, product_a):
        resp = client.post(
            "/api/stock/update",
            json={"product_id": product_a.id, "quantity_delta": 5, "transaction_type": "PURCHASE"},
            headers=operations_a_headers,
        )
        assert resp.status_code == 403

    def test_cannot_view_expenses(self, client, operations_a_headers):
        resp = client.get("/api/expenses", headers=operations_a_headers)
        assert resp.status_code == 403

    def test_cannot_view_reports(self, client, operations_a_headers):
        resp = client.get("/api/reports/sales", headers=operations_a_headers)
        assert resp.status_code == 403

    def test_cannot_change_settings(self, client, operations_a_headers):
        resp = client.put("/api/settings", json={"business_name": "Mine now"}, headers=operations_a_headers)
        assert resp.status_code == 403

    def test_can_create_sale(self, client, operations_a_headers, product_a):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product_a.id, "quantity": 1}]},
            headers=operations_a_headers,
        )
        assert resp.status_code == 201


# =============================================================================
# OWNER ALLOWED
# =============================================================================


class TestOwnerAllowed:
    def test_can_create_product(self, client, owner_a_headers, category_a):
        resp = client.post(
            "/api/products",
            json={"name": "Tea 250g", "category_id": category_a.id, "purchase_price_cents": 300,
                  "selling_price_cents": 450},
            headers=owner_a_headers,
        )
        assert resp.status_code == 201

    def test_can_view_reports_on_pro(self, client, owner_a_headers):
        resp = client.get("/api/reports/profit-loss", headers=owner_a_headers)
        assert resp.status_code == 200


# =============================================================================
# SUBSCRIPTION GATING
# =============================================================================


class TestSubscriptionGating:
    def test_free_tier_owner_gets_upgrade_required(self, client, owner_b_headers):
        resp = client.get("/api/reports/stock", headers=owner_b_headers)
        assert resp.status_code == 403
        assert resp.json["error"] == "Upgrade required"
        assert resp.json["current_tier"] == "FREE"

    def test_expired_subscription_falls_back_to_free(self, client, owner_a_headers, seller_a):
        sub = Subscription.query.filter_by(seller_id=seller_a.id).one()
        sub.expires_at = utcnow() - timedelta(days=1)
        db.session.commit()

        resp = client.get("/api/reports/stock", headers=owner_a_headers)
        assert resp.status_code == 403


class TestPermissionMatrix:
    def test_operations_only_bills(self):
        granted = [code for code, allowed in get_role_permissions("OPERATIONS").items() if allowed]
        assert granted == ["canCreateBills"]

    def test_owner_has_everything(self):
        assert all(get_role_permissions("OWNER").values())

    def test_unknown_role_has_nothing(self):
        assert not any(get_role_permissions("JANITOR").values())
        assert has_role_permission(None, "canCreateBills") is False

    def test_unknown_tier_is_free(self):
        assert get_subscription_features("GOLD") == get_subscription_features("FREE")

    @pytest.mark.parametrize("role,tier,expected", [
        ("ADMIN", "FREE", True),
        ("OWNER", "PRO", True),
        ("OWNER", "BASIC", False),
        ("OWNER", "FREE", False),
        ("OPERATIONS", "ENTERPRISE", False),
        ("SUPPORT", "ENTERPRISE", False),
    ])
    def test_report_feature_access(self, role, tier, expected):
        assert can_access_feature(role, tier, "hasReports") is expected

    def test_unlimited_limit_counts_as_granted(self):
        assert can_access_feature("OWNER", "PRO", "maxProducts") is True
