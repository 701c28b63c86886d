# Overview: Flask API routes for categories and units; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..services import catalog_service
from ..decorators import require_auth, require_permission, require_seller


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
units_bp = Blueprint("units", __name__, url_prefix="/api/units")


@categories_bp.get("")
@require_auth
@require_seller
def list_categories_route():
    return jsonify({"categories": catalog_service.list_categories(g.seller_id)}), 200


@categories_bp.post("")
@require_auth
@require_seller
@require_permission("canManageProducts")
def create_category_route():
    try:
        data = request.get_json(silent=True) or {}
        category = catalog_service.create_category(
            g.seller_id, data.get("name"), data.get("description")
        )
        return jsonify({"category": category.to_dict()}), 201

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.put("/<int:category_id>")
@require_auth
@require_seller
@require_permission("canManageProducts")
def update_category_route(category_id: int):
    try:
        data = request.get_json(silent=True) or {}
        category = catalog_service.update_category(g.seller_id, category_id, data)
        return jsonify({"category": category.to_dict()}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_seller
@require_permission("canManageProducts")
def delete_category_route(category_id: int):
    try:
        catalog_service.delete_category(g.seller_id, category_id)
        return jsonify({"message": "Category deleted successfully"}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500


@units_bp.get("")
@require_auth
@require_seller
def list_units_route():
    return jsonify({"units": [u.to_dict() for u in catalog_service.list_units(g.seller_id)]}), 200


@units_bp.post("")
@require_auth
@require_seller
@require_permission("canManageProducts")
def create_unit_route():
    try:
        data = request.get_json(silent=True) or {}
        unit = catalog_service.create_unit(g.seller_id, data.get("name"), data.get("abbreviation"))
        return jsonify({"unit": unit.to_dict()}), 201

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create unit")
        return jsonify({"error": "Internal server error"}), 500


@units_bp.put("/<int:unit_id>")
@require_auth
@require_seller
@require_permission("canManageProducts")
def update_unit_route(unit_id: int):
    try:
        data = request.get_json(silent=True) or {}
        unit = catalog_service.update_unit(g.seller_id, unit_id, data)
        return jsonify({"unit": unit.to_dict()}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update unit")
        return jsonify({"error": "Internal server error"}), 500


@units_bp.delete("/<int:unit_id>")
@require_auth
@require_seller
@require_permission("canManageProducts")
def delete_unit_route(unit_id: int):
    try:
        catalog_service.delete_unit(g.seller_id, unit_id)
        return jsonify({"message": "Unit deleted successfully"}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete unit")
        return jsonify({"error": "Internal server error"}), 500
