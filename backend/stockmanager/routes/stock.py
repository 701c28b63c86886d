# Overview: Flask API routes for stock ledger operations; parses input and returns JSON responses.

"""
Stock ledger routes.

Every stock change goes through ledger_service.apply_stock_change; a
ConflictError from a concurrent writer is retried here (caller policy) before
being reported as 409.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..services import ledger_service, notification_service
from ..services.concurrency import run_with_retry
from ..validation import coerce_int, optional_int, optional_text, require_fields
from ..decorators import require_auth, require_permission, require_seller


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/update")
@require_auth
@require_seller
@require_permission("canAdjustStock")
def update_stock_route():
    """
    Record a signed stock change.

    Body:
    - product_id: int
    - quantity_delta: int, non-zero (PURCHASE > 0, SALE < 0, ADJUSTMENT either)
    - transaction_type: PURCHASE | SALE | ADJUSTMENT
    - purchase_price_cents: int (optional, PURCHASE unit cost)
    - note: str (optional, at most 255 characters)
    """
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, "product_id", "quantity_delta", "transaction_type")

        product_id = coerce_int(data["product_id"], "product_id")
        quantity_delta = coerce_int(data["quantity_delta"], "quantity_delta")
        purchase_price_cents = optional_int(data, "purchase_price_cents", minimum=0)
        note = optional_text(data, "note")

        tx = run_with_retry(
            lambda: ledger_service.apply_stock_change(
                seller_id=g.seller_id,
                product_id=product_id,
                quantity_delta=quantity_delta,
                transaction_type=data["transaction_type"],
                actor_id=g.current_user.id,
                purchase_price_cents=purchase_price_cents,
                note=note,
            ),
            attempts=current_app.config["SALE_RETRY_ATTEMPTS"],
        )
        return jsonify({
            "transaction": tx.to_dict(),
            "product": tx.product.to_dict(),
        }), 201

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update stock")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/transactions")
@require_auth
@require_seller
def list_transactions_route():
    """Query params: product_id (optional), limit (default 20, max 200)."""
    try:
        product_id = optional_int(request.args, "product_id")
        limit = optional_int(request.args, "limit", minimum=1, maximum=200) or 20
        transactions = ledger_service.list_stock_transactions(
            seller_id=g.seller_id, product_id=product_id, limit=limit
        )
        return jsonify({"transactions": [tx.to_dict() for tx in transactions]}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code


@stock_bp.get("/reconcile")
@require_auth
@require_seller
@require_permission("canAdjustStock")
def reconcile_route():
    """Mismatches between current_stock and the ledger sum (empty when balanced)."""
    mismatches = ledger_service.reconcile_stock(seller_id=g.seller_id)
    return jsonify({"balanced": not mismatches, "mismatches": mismatches}), 200


@stock_bp.post("/alerts/check")
@require_auth
@require_seller
@require_permission("canAdjustStock")
def check_alerts_route():
    try:
        notifications = notification_service.check_and_create_stock_alerts(g.seller_id)
        return jsonify({"notifications": [n.to_dict() for n in notifications]}), 200

    except Exception:
        current_app.logger.exception("Failed to check stock alerts")
        return jsonify({"error": "Internal server error"}), 500
