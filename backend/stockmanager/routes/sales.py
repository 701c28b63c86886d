# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..services import sales_service
from ..services.calculations import DiscountPolicy
from ..services.concurrency import run_with_retry
from ..validation import optional_int, parse_cart_lines
from ..decorators import require_auth, require_permission, require_seller


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_seller
@require_permission("canCreateBills")
def create_sale_route():
    """
    Settle a cart into a sale (invoice).

    Body:
    - items: [{product_id, quantity, unit_selling_price_cents?, unit_purchase_price_cents?}]
    - discount_type: NONE | PERCENTAGE | FLAT (optional)
    - discount_value: percent (0-100) or flat cents (optional)
    - customer_id: int (optional)

    Available to: OWNER, OPERATIONS, ADMIN
    """
    try:
        data = request.get_json(silent=True) or {}
        lines = parse_cart_lines(data.get("items"))
        discount = DiscountPolicy.parse(data.get("discount_type"), data.get("discount_value"))
        customer_id = optional_int(data, "customer_id")

        sale = run_with_retry(
            lambda: sales_service.settle_sale(
                seller_id=g.seller_id,
                lines=lines,
                discount=discount,
                customer_id=customer_id,
                actor_id=g.current_user.id,
            ),
            attempts=current_app.config["SALE_RETRY_ATTEMPTS"],
        )
        return jsonify({"sale": sale.to_dict(include_items=True)}), 201

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_seller
def list_sales_route():
    """Query params: customer_id, limit (default 50, max 200), offset."""
    try:
        customer_id = optional_int(request.args, "customer_id")
        limit = optional_int(request.args, "limit", minimum=1, maximum=200) or 50
        offset = optional_int(request.args, "offset", minimum=0) or 0

        sales = sales_service.list_sales(
            seller_id=g.seller_id, customer_id=customer_id, limit=limit, offset=offset
        )
        return jsonify({
            "sales": [s.to_dict() for s in sales],
            "total": sales_service.count_sales(g.seller_id),
            "limit": limit,
            "offset": offset,
        }), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_seller
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.seller_id, sale_id)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
