# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes.

MULTI-TENANT: All product operations are scoped to the caller's seller
(g.seller_id, set by @require_auth).

SECURITY:
- Read operations require any authenticated seller user
- Write operations require canManageProducts
- Stock is never written here; see routes/stock.py
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..services import catalog_service
from ..validation import coerce_cents, coerce_int, optional_int, require_fields
from ..decorators import require_auth, require_permission, require_seller


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_patch(data: dict) -> dict:
    """Coerce the numeric fields of a product payload; leave the rest to the service."""
    patch = {k: v for k, v in data.items() if k in catalog_service.PRODUCT_MUTABLE_FIELDS}
    for field in ("purchase_price_cents", "selling_price_cents"):
        if patch.get(field) is not None:
            patch[field] = coerce_cents(patch[field], field)
    for field in ("category_id", "unit_id"):
        if patch.get(field) is not None:
            patch[field] = coerce_int(patch[field], field)
    if patch.get("min_stock_level") is not None:
        patch["min_stock_level"] = coerce_int(patch["min_stock_level"], "min_stock_level", minimum=0)
    return patch


@products_bp.get("")
@require_auth
@require_seller
def list_products_route():
    """
    Query params:
    - category_id: int (optional)
    - include_inactive: "true" to include soft-deleted products
    """
    try:
        category_id = optional_int(request.args, "category_id")
        include_inactive = request.args.get("include_inactive", "").lower() == "true"
        products = catalog_service.list_products(
            g.seller_id, category_id=category_id, include_inactive=include_inactive
        )
        return jsonify({"products": [p.to_dict() for p in products]}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
@require_seller
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(g.seller_id, product_id)
        return jsonify({"product": product.to_dict()}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("")
@require_auth
@require_seller
@require_permission("canManageProducts")
def create_product_route():
    """
    Create a product.

    Required: name, category_id, purchase_price_cents
    Optional: selling_price_cents, pricing_mode (FIXED/MARKUP), markup_percentage,
              unit_id, opening_stock, min_stock_level, description

    opening_stock is recorded as a PURCHASE ledger transaction.
    """
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, "name", "category_id", "purchase_price_cents")

        selling = data.get("selling_price_cents")
        product = catalog_service.create_product(
            seller_id=g.seller_id,
            actor_id=g.current_user.id,
            name=data["name"],
            category_id=coerce_int(data["category_id"], "category_id"),
            purchase_price_cents=coerce_cents(data["purchase_price_cents"], "purchase_price_cents"),
            selling_price_cents=coerce_cents(selling, "selling_price_cents") if selling is not None else None,
            pricing_mode=data.get("pricing_mode"),
            markup_percentage=data.get("markup_percentage"),
            unit_id=optional_int(data, "unit_id"),
            opening_stock=optional_int(data, "opening_stock", minimum=0) or 0,
            min_stock_level=optional_int(data, "min_stock_level", minimum=0) or 0,
            description=data.get("description"),
        )
        return jsonify({"product": product.to_dict()}), 201

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_seller
@require_permission("canManageProducts")
def update_product_route(product_id: int):
    try:
        data = request.get_json(silent=True) or {}
        if "current_stock" in data:
            # Let the service raise its explicit ledger error
            patch = {**_product_patch(data), "current_stock": data["current_stock"]}
        else:
            patch = _product_patch(data)
        product = catalog_service.update_product(g.seller_id, product_id, patch)
        return jsonify({"product": product.to_dict()}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_seller
@require_permission("canManageProducts")
def delete_product_route(product_id: int):
    """Soft delete; ledger and sale history keep referencing the product."""
    try:
        catalog_service.deactivate_product(g.seller_id, product_id)
        return jsonify({"message": "Product deleted successfully"}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
