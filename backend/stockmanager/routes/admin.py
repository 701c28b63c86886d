# Overview: Flask API routes for platform administration; parses input and returns JSON responses.

"""
Platform admin API routes.

SECURITY:
- ADMIN and SUPPORT may read seller, subscription and plan records
- only ADMIN may onboard, edit or deactivate sellers and assign subscriptions
- shop roles (OWNER, OPERATIONS) get 403 on every endpoint
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import StockManagerError
from ..services import admin_service
from ..validation import optional_datetime, optional_int, require_fields
from ..decorators import require_auth, require_role


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

PLATFORM_ROLES = ("ADMIN", "SUPPORT")


def _is_active_filter():
    value = request.args.get("is_active")
    if value is None:
        return None
    return value.lower() == "true"


@admin_bp.get("/sellers")
@require_auth
@require_role(*PLATFORM_ROLES)
def list_sellers_route():
    """Query: search, is_active=true|false, limit (1-200, default 50)."""
    try:
        sellers = admin_service.list_sellers(
            search=request.args.get("search"),
            is_active=_is_active_filter(),
            limit=optional_int(request.args, "limit", minimum=1, maximum=200) or 50,
        )
        return jsonify({"sellers": sellers}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sellers")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/sellers/<int:seller_id>")
@require_auth
@require_role(*PLATFORM_ROLES)
def get_seller_route(seller_id: int):
    try:
        return jsonify({"seller": admin_service.get_seller_detail(seller_id)}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code


@admin_bp.post("/sellers")
@require_auth
@require_role("ADMIN")
def onboard_seller_route():
    """
    Onboard a seller with its OWNER account.

    Request body:
    {
        "business_name": "Corner Shop",
        "owner_name": "Asha",
        "owner_email": "asha@corner.shop",
        "email": "hello@corner.shop",    // optional business email
        "phone": "...",                   // optional
        "address": "...",                 // optional
        "tier": "BASIC"                   // optional, default FREE
    }

    The response carries the owner's temporary password; it is not stored
    in plaintext and cannot be retrieved again.
    """
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, "business_name", "owner_name", "owner_email")
        seller, owner, temporary_password = admin_service.onboard_seller(
            business_name=data["business_name"],
            owner_name=data["owner_name"],
            owner_email=data["owner_email"],
            email=data.get("email"),
            phone=data.get("phone"),
            address=data.get("address"),
            tier=data.get("tier", "FREE"),
        )
        current_app.logger.info("Onboarded seller %s (owner user %s)", seller.id, owner.id)
        return jsonify({
            "seller": seller.to_dict(),
            "subscription": seller.subscription.to_dict(),
            "owner": owner.to_dict(),
            "temporary_password": temporary_password,
        }), 201

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to onboard seller")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/sellers/<int:seller_id>")
@require_auth
@require_role("ADMIN")
def update_seller_route(seller_id: int):
    try:
        data = request.get_json(silent=True) or {}
        seller = admin_service.update_seller(seller_id, data)
        return jsonify({"seller": seller.to_dict()}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update seller")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/sellers/<int:seller_id>")
@require_auth
@require_role("ADMIN")
def deactivate_seller_route(seller_id: int):
    """Soft delete: the seller and all of its users can no longer sign in."""
    try:
        seller = admin_service.deactivate_seller(seller_id)
        return jsonify({"seller": seller.to_dict()}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to deactivate seller")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/sellers/<int:seller_id>/subscription")
@require_auth
@require_role("ADMIN")
def assign_subscription_route(seller_id: int):
    """Body: {"tier": "PRO", "status": "ACTIVE", "expires_at": "2027-01-01T00:00:00Z"}"""
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, "tier")
        subscription = admin_service.assign_subscription(
            seller_id,
            tier=data["tier"],
            status=data.get("status", "ACTIVE"),
            expires_at=optional_datetime(data, "expires_at"),
        )
        return jsonify({"subscription": subscription.to_dict()}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to assign subscription")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/subscriptions")
@require_auth
@require_role(*PLATFORM_ROLES)
def list_subscriptions_route():
    try:
        return jsonify({"subscriptions": admin_service.list_subscriptions()}), 200
    except Exception:
        current_app.logger.exception("Failed to list subscriptions")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/subscription-plans")
@require_auth
@require_role(*PLATFORM_ROLES)
def list_plans_route():
    return jsonify({"plans": admin_service.list_plans()}), 200
