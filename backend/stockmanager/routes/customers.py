# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..services import customer_service, sales_service
from ..decorators import require_auth, require_permission, require_role, require_seller


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_seller
def list_customers_route():
    """Query params: search (name or phone substring)."""
    customers = customer_service.list_customers(g.seller_id, request.args.get("search"))
    return jsonify({"customers": customers}), 200


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_seller
def get_customer_route(customer_id: int):
    """Customer with their most recent sales."""
    try:
        customer = customer_service.get_customer(g.seller_id, customer_id)
        sales = sales_service.list_sales(seller_id=g.seller_id, customer_id=customer.id, limit=20)
        return jsonify({
            "customer": customer.to_dict(),
            "sales": [s.to_dict() for s in sales],
        }), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.post("")
@require_auth
@require_seller
@require_permission("canCreateBills")
def create_customer_route():
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.create_customer(
            g.seller_id,
            name=data.get("name"),
            phone=data.get("phone"),
            email=data.get("email"),
            address=data.get("address"),
        )
        return jsonify({"customer": customer.to_dict()}), 201

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_seller
@require_permission("canCreateBills")
def update_customer_route(customer_id: int):
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.update_customer(g.seller_id, customer_id, data)
        return jsonify({"customer": customer.to_dict()}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_seller
@require_role("OWNER", "ADMIN")
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(g.seller_id, customer_id)
        return jsonify({"message": "Customer deleted successfully"}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500
