# Overview: Flask API routes for sales analytics; parses input and returns JSON responses.

"""
Analytics API routes.

The dashboard needs canViewAnalytics plus the hasAnalytics tier feature
(BASIC and up). Top customers are customer insights: they are included only
when the caller also has canViewCustomerInsights and the tier grants
hasCustomerInsights.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..permissions import can_access_feature, has_role_permission
from ..services import analytics_service, tenant_service
from ..decorators import require_auth, require_feature, require_permission, require_seller


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _has_customer_insights() -> bool:
    role = g.current_user.role
    tier = tenant_service.get_active_tier(g.seller_id)
    return (
        has_role_permission(role, "canViewCustomerInsights")
        and can_access_feature(role, tier, "hasCustomerInsights")
    )


@analytics_bp.get("")
@require_auth
@require_seller
@require_permission("canViewAnalytics")
@require_feature("hasAnalytics")
def analytics_route():
    """Query: period = day | week | month (default) | all"""
    try:
        period = request.args.get("period", "month")
        data = analytics_service.get_analytics(
            g.seller_id, period, include_customers=_has_customer_insights(),
        )
        return jsonify(data), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build analytics")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/customers")
@require_auth
@require_seller
@require_permission("canViewCustomerInsights")
@require_feature("hasCustomerInsights")
def top_customers_route():
    try:
        start = analytics_service.period_start(request.args.get("period", "month"))
        return jsonify({"customers": analytics_service.top_customers(g.seller_id, start)}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build customer insights")
        return jsonify({"error": "Internal server error"}), 500
