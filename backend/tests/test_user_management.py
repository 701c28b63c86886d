"""
User management tests.

Verifies:
- Owners manage OWNER / OPERATIONS accounts of their own shop only
- The subscription's maxUsers caps active accounts
- Deactivation and password changes revoke sessions
"""

import pytest

from stockmanager.errors import NotFoundError, PermissionDeniedError, ValidationError
from stockmanager.extensions import db
from stockmanager.models import SessionToken, User
from stockmanager.services import auth_service, user_service
from stockmanager.services.auth_service import create_user

from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# SERVICE
# =============================================================================


class TestUserLimit:
    def test_free_tier_allows_two_active_users(self, seller_b, owner_b):
        user_service.create_shop_user(seller_b.id, name="Counter", email="c1@beta.com", password=PASSWORD)
        with pytest.raises(PermissionDeniedError) as exc:
            user_service.create_shop_user(seller_b.id, name="Extra", email="c2@beta.com", password=PASSWORD)
        assert exc.value.details == {"max_users": 2}

    def test_deactivated_users_do_not_count(self, seller_b, owner_b):
        counter = user_service.create_shop_user(seller_b.id, name="Counter", email="c1@beta.com", password=PASSWORD)
        user_service.update_shop_user(seller_b.id, counter.id, {"is_active": False}, actor_id=owner_b.id)

        user_service.create_shop_user(seller_b.id, name="Next", email="c2@beta.com", password=PASSWORD)

        with pytest.raises(PermissionDeniedError):
            user_service.update_shop_user(seller_b.id, counter.id, {"is_active": True}, actor_id=owner_b.id)

    def test_limit_follows_tier(self, seller_a, seller_b):
        assert user_service.get_user_limit(seller_a.id) == 10
        assert user_service.get_user_limit(seller_b.id) == 2


class TestShopUsers:
    def test_platform_roles_cannot_be_created(self, seller_a):
        with pytest.raises(ValidationError):
            user_service.create_shop_user(seller_a.id, name="Root", email="root@x.com", password=PASSWORD, role="ADMIN")

    def test_other_sellers_users_not_found(self, seller_a, owner_a, owner_b):
        with pytest.raises(NotFoundError):
            user_service.get_user(seller_a.id, owner_b.id)

    def test_cannot_deactivate_or_demote_self(self, seller_a, owner_a):
        with pytest.raises(ValidationError):
            user_service.update_shop_user(seller_a.id, owner_a.id, {"is_active": False}, actor_id=owner_a.id)
        with pytest.raises(ValidationError):
            user_service.update_shop_user(seller_a.id, owner_a.id, {"role": "OPERATIONS"}, actor_id=owner_a.id)
        assert owner_a.is_active is True
        assert owner_a.role == "OWNER"

    def test_invalid_patch_changes_nothing(self, seller_a, owner_a, operations_a):
        with pytest.raises(ValidationError):
            user_service.update_shop_user(
                seller_a.id, operations_a.id, {"name": "Renamed", "role": "SUPPORT"}, actor_id=owner_a.id,
            )
        db.session.refresh(operations_a)
        assert operations_a.name == "Counter A"

    def test_deactivation_revokes_sessions(self, seller_a, owner_a, operations_a):
        _, token = auth_service.create_session(operations_a)
        user_service.update_shop_user(seller_a.id, operations_a.id, {"is_active": False}, actor_id=owner_a.id)

        assert auth_service.validate_session(token) is None
        live = SessionToken.query.filter_by(user_id=operations_a.id, revoked_at=None).count()
        assert live == 0


class TestChangePassword:
    def test_wrong_current_password(self, owner_a):
        with pytest.raises(ValidationError) as exc:
            auth_service.change_password(owner_a, "nope-nope", "NewPassword456!")
        assert exc.value.code == "INVALID_CREDENTIALS"

    def test_same_password_rejected(self, owner_a):
        with pytest.raises(ValidationError):
            auth_service.change_password(owner_a, PASSWORD, PASSWORD)

    def test_clears_temporary_flag(self, seller_a):
        user = create_user(name="New Owner", email="new@shop.com", password="Temp12345!",
                           role="OWNER", seller_id=seller_a.id, must_change_password=True)
        auth_service.change_password(user, "Temp12345!", "NewPassword456!")

        assert user.must_change_password is False
        assert auth_service.authenticate("new@shop.com", "NewPassword456!") is not None
        assert auth_service.authenticate("new@shop.com", "Temp12345!") is None


# =============================================================================
# ROUTES
# =============================================================================


class TestUserRoutes:
    def test_owner_lists_shop_users(self, client, owner_a_headers, operations_a):
        resp = client.get("/api/users", headers=owner_a_headers)
        assert resp.status_code == 200
        assert sorted(u["email"] for u in resp.json["users"]) == ["counter_a@shop.com", "owner_a@shop.com"]
        assert resp.json["max_users"] == 10

    def test_operations_cannot_manage_users(self, client, operations_a_headers):
        resp = client.get("/api/users", headers=operations_a_headers)
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "canManageUsers"

    def test_create_and_login(self, client, owner_a_headers):
        resp = client.post("/api/users", headers=owner_a_headers, json={
            "name": "Counter 2", "email": "Counter2@Shop.com", "password": PASSWORD,
        })
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "OPERATIONS"
        assert get_auth_token(client, "counter2@shop.com") is not None

    def test_limit_reached_is_403(self, client, owner_b_headers):
        client.post("/api/users", headers=owner_b_headers, json={
            "name": "Counter", "email": "c1@beta.com", "password": PASSWORD,
        })
        resp = client.post("/api/users", headers=owner_b_headers, json={
            "name": "Extra", "email": "c2@beta.com", "password": PASSWORD,
        })
        assert resp.status_code == 403
        assert resp.json["details"]["max_users"] == 2

    def test_cross_tenant_update_is_404(self, client, owner_a_headers, owner_b):
        resp = client.put(f"/api/users/{owner_b.id}", headers=owner_a_headers, json={"is_active": False})
        assert resp.status_code == 404
        assert db.session.get(User, owner_b.id).is_active is True

    def test_deactivated_user_token_stops_working(self, client, owner_a_headers, operations_a_headers, operations_a):
        resp = client.put(f"/api/users/{operations_a.id}", headers=owner_a_headers, json={"is_active": False})
        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=operations_a_headers).status_code == 401


class TestChangePasswordRoute:
    def test_success_revokes_current_token(self, client, owner_a_headers):
        resp = client.post("/api/auth/change-password", headers=owner_a_headers, json={
            "current_password": PASSWORD, "new_password": "NewPassword456!",
        })
        assert resp.status_code == 200
        assert resp.json["revoked_sessions"] >= 1
        assert client.get("/api/auth/me", headers=owner_a_headers).status_code == 401

        token = get_auth_token(client, "owner_a@shop.com", "NewPassword456!")
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 200

    def test_wrong_current_password_is_400(self, client, owner_a_headers):
        resp = client.post("/api/auth/change-password", headers=owner_a_headers, json={
            "current_password": "wrong-password", "new_password": "NewPassword456!",
        })
        assert resp.status_code == 400
        assert resp.json["code"] == "INVALID_CREDENTIALS"
        assert client.get("/api/auth/me", headers=owner_a_headers).status_code == 200

    def test_short_new_password_is_400(self, client, owner_a_headers):
        resp = client.post("/api/auth/change-password", headers=owner_a_headers, json={
            "current_password": PASSWORD, "new_password": "short",
        })
        assert resp.status_code == 400
