# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

"""
Reporting API routes.

Reports are an OWNER feature gated by subscription (hasReports: PRO and
ENTERPRISE). ADMIN bypasses the tier check. CSV exports additionally need
canExportReports and hasExports.

Date params (start_date, end_date) are ISO-8601; the window defaults to the
last 30 days and end_date always covers its whole day.
"""

from flask import Blueprint, Response, request, jsonify, current_app, g

from ..errors import StockManagerError
from ..services import export_service, reporting_service
from ..validation import optional_datetime
from ..decorators import require_auth, require_feature, require_permission, require_seller


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _date_range() -> dict:
    return {
        "start": optional_datetime(request.args, "start_date"),
        "end": optional_datetime(request.args, "end_date"),
    }


@reports_bp.get("/stock")
@require_auth
@require_seller
@require_permission("canViewAnalytics")
@require_feature("hasReports")
def stock_report_route():
    try:
        return jsonify(reporting_service.stock_report(g.seller_id)), 200
    except Exception:
        current_app.logger.exception("Failed to build stock report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/sales")
@require_auth
@require_seller
@require_permission("canViewAnalytics")
@require_feature("hasReports")
def sales_report_route():
    try:
        return jsonify(reporting_service.sales_report(g.seller_id, **_date_range())), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/profit-loss")
@require_auth
@require_seller
@require_permission("canViewProfits")
@require_feature("hasReports")
def profit_loss_route():
    try:
        return jsonify(reporting_service.profit_loss_report(g.seller_id, **_date_range())), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build profit & loss report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/<kind>/export")
@require_auth
@require_seller
@require_permission("canExportReports")
@require_feature("hasExports")
def export_report_route(kind):
    """CSV download of a report: kind = stock | sales | profit-loss."""
    try:
        filename, content = export_service.export_report(g.seller_id, kind, **_date_range())
        return Response(
            content,
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to export report")
        return jsonify({"error": "Internal server error"}), 500
