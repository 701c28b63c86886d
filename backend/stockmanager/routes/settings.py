# Overview: Flask API routes for seller settings; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..permissions import get_subscription_features
from ..services import tenant_service
from ..decorators import require_auth, require_role, require_seller


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
@require_seller
def get_settings_route():
    try:
        seller = tenant_service.get_seller(g.seller_id)
        tier = tenant_service.get_active_tier(g.seller_id)
        return jsonify({
            "seller": seller.to_dict(),
            "subscription": seller.subscription.to_dict() if seller.subscription else None,
            "effective_tier": tier,
            "features": get_subscription_features(tier),
        }), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code


@settings_bp.put("")
@require_auth
@require_seller
@require_role("OWNER", "ADMIN")
def update_settings_route():
    """Business profile and default pricing (default_pricing_mode, default_markup_percentage)."""
    try:
        data = request.get_json(silent=True) or {}
        seller = tenant_service.update_seller_settings(g.seller_id, data)
        return jsonify({"seller": seller.to_dict()}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500
