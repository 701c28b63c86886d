# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes.

Self-registration is not offered: sellers and their users are created by the
CLI (flask system seed-demo) or by platform admins.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..services import auth_service, tenant_service
from ..permissions import get_role_permissions, get_subscription_features
from ..decorators import require_auth
from stockmanager.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _identity_payload(user) -> dict:
    tier = tenant_service.get_active_tier(user.seller_id) if user.seller_id else None
    return {
        "user": user.to_dict(),
        "seller": user.seller.to_dict() if user.seller else None,
        "permissions": get_role_permissions(user.role),
        "subscription": {
            "tier": tier,
            "features": get_subscription_features(tier) if tier else None,
        },
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = auth_service.create_session(user)

        return jsonify({
            **_identity_payload(user),
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke session token (logout). Expects Authorization: Bearer <token>."""
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]

        if not auth_service.revoke_session(token):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(_identity_payload(g.current_user)), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Body: {"current_password": "...", "new_password": "..."}

    Every session of the user is revoked, including the one used for this
    request; the client logs in again with the new password.
    """
    try:
        data = request.get_json(silent=True) or {}
        revoked = auth_service.change_password(
            g.current_user,
            data.get("current_password"),
            data.get("new_password"),
        )
        return jsonify({"message": "Password changed", "revoked_sessions": revoked}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500
