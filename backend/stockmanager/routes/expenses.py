# Overview: Flask API routes for expense operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..services import expense_service
from ..validation import coerce_int, optional_datetime, require_fields
from ..decorators import require_auth, require_permission, require_seller


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_seller
@require_permission("canViewProfits")
def list_expenses_route():
    """Query params: start_date, end_date (ISO-8601), category."""
    try:
        result = expense_service.list_expenses(
            g.seller_id,
            start=optional_datetime(request.args, "start_date"),
            end=optional_datetime(request.args, "end_date"),
            category=request.args.get("category"),
        )
        return jsonify({
            "expenses": [e.to_dict() for e in result["expenses"]],
            "summary": result["summary"],
        }), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code


@expenses_bp.post("")
@require_auth
@require_seller
@require_permission("canViewProfits")
def create_expense_route():
    """
    Body:
    - category: PURCHASE | RENT | UTILITIES | SALARY | TRANSPORT | MAINTENANCE | OTHER
    - amount_cents: int > 0
    - description: str (optional)
    - expense_date: ISO-8601 (optional, defaults to now)
    """
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, "category", "amount_cents")

        expense = expense_service.create_expense(
            g.seller_id,
            category=data["category"],
            amount_cents=coerce_int(data["amount_cents"], "amount_cents", minimum=1),
            description=data.get("description"),
            expense_date=optional_datetime(data, "expense_date"),
        )
        return jsonify({"expense": expense.to_dict()}), 201

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_seller
@require_permission("canViewProfits")
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(g.seller_id, expense_id)
        return jsonify({"message": "Expense deleted successfully"}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete expense")
        return jsonify({"error": "Internal server error"}), 500
