# Overview: Flask API routes for a seller's staff accounts; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..services import user_service
from ..decorators import require_auth, require_permission, require_seller


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_seller
@require_permission("canManageUsers")
def list_users_route():
    """Query: include_inactive=true to list deactivated accounts as well."""
    try:
        include_inactive = request.args.get("include_inactive", "false").lower() == "true"
        users = user_service.list_users(g.seller_id, include_inactive=include_inactive)
        return jsonify({
            "users": [u.to_dict() for u in users],
            "max_users": user_service.get_user_limit(g.seller_id),
        }), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code


@users_bp.post("")
@require_auth
@require_seller
@require_permission("canManageUsers")
def create_user_route():
    """
    Create a shop user.

    Request body:
    {
        "name": "Counter 2",
        "email": "counter2@shop.com",
        "password": "...",
        "role": "OPERATIONS"     // or OWNER
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        user = user_service.create_shop_user(
            g.seller_id,
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role", "OPERATIONS"),
        )
        return jsonify({"user": user.to_dict()}), 201

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>")
@require_auth
@require_seller
@require_permission("canManageUsers")
def update_user_route(user_id: int):
    """Body may contain name, role, is_active."""
    try:
        data = request.get_json(silent=True) or {}
        user = user_service.update_shop_user(g.seller_id, user_id, data, actor_id=g.current_user.id)
        return jsonify({"user": user.to_dict()}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500
