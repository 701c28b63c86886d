# Overview: Flask API routes for seller notifications; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import StockManagerError, ValidationError
from ..services import notification_service
from ..validation import coerce_int, optional_int
from ..decorators import require_auth, require_seller


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
@require_seller
def list_notifications_route():
    """Query params: unread_only ("true"), limit (default 50, max 200)."""
    try:
        unread_only = request.args.get("unread_only", "").lower() == "true"
        limit = optional_int(request.args, "limit", minimum=1, maximum=200) or 50
        notifications = notification_service.list_notifications(
            g.seller_id, unread_only=unread_only, limit=limit
        )
        return jsonify({
            "notifications": [n.to_dict() for n in notifications],
            "unread_count": notification_service.unread_count(g.seller_id),
        }), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code


@notifications_bp.post("/mark-read")
@require_auth
@require_seller
def mark_read_route():
    """Body: {"ids": [int, ...]} or {"all": true}."""
    try:
        data = request.get_json(silent=True) or {}
        if data.get("all") is True:
            updated = notification_service.mark_all_as_read(g.seller_id)
        else:
            ids = data.get("ids")
            if not isinstance(ids, list) or not ids:
                raise ValidationError("ids must be a non-empty list")
            updated = notification_service.mark_as_read(
                g.seller_id, [coerce_int(i, "ids[]") for i in ids]
            )
        return jsonify({"updated": updated}), 200

    except StockManagerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark notifications as read")
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.post("/daily-summary")
@require_auth
@require_seller
def daily_summary_route():
    try:
        notification = notification_service.create_daily_summary(g.seller_id)
        return jsonify({"notification": notification.to_dict()}), 200

    except Exception:
        current_app.logger.exception("Failed to create daily summary")
        return jsonify({"error": "Internal server error"}), 500
