"""
Stock alerts and seller notifications.

This is a consumer of the ledger, not part of it: alerts are derived from the
committed current_stock of each product after the fact (CLI or API trigger).
A LOW_STOCK / OUT_OF_STOCK alert for the same product is not repeated inside
the STOCK_ALERT_DEDUP_HOURS window.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Notification, Product, Sale
from stockmanager.time_utils import day_key, utcnow
from .ledger_service import stock_status


NOTIFICATION_TYPES = ("LOW_STOCK", "OUT_OF_STOCK", "DAILY_SUMMARY")


def _dedup_window_start() -> datetime:
    hours = current_app.config.get("STOCK_ALERT_DEDUP_HOURS", 24)
    return utcnow() - timedelta(hours=hours)


def _recent_alert(seller_id: int, alert_type: str, product_id: int) -> Notification | None:
    return (
        Notification.query.filter(
            Notification.seller_id == seller_id,
            Notification.type == alert_type,
            Notification.product_id == product_id,
            Notification.created_at >= _dedup_window_start(),
        )
        .order_by(Notification.created_at.desc())
        .first()
    )


def _add(seller_id: int, alert_type: str, title: str, message: str,
         product_id: int | None = None, payload: dict | None = None) -> Notification:
    notification = Notification(
        seller_id=seller_id,
        type=alert_type,
        title=title,
        message=message,
        product_id=product_id,
        payload=payload,
        created_at=utcnow(),
    )
    db.session.add(notification)
    return notification


def create_low_stock_alert(seller_id: int, product: Product) -> Notification:
    existing = _recent_alert(seller_id, "LOW_STOCK", product.id)
    if existing:
        return existing
    return _add(
        seller_id,
        "LOW_STOCK",
        f"Low Stock Alert: {product.name}",
        f"{product.name} has only {product.current_stock} units left. "
        f"Minimum level is {product.min_stock_level}.",
        product_id=product.id,
        payload={
            "product_name": product.name,
            "current_stock": product.current_stock,
            "min_stock_level": product.min_stock_level,
        },
    )


def create_out_of_stock_alert(seller_id: int, product: Product) -> Notification:
    existing = _recent_alert(seller_id, "OUT_OF_STOCK", product.id)
    if existing:
        return existing
    return _add(
        seller_id,
        "OUT_OF_STOCK",
        f"Out of Stock: {product.name}",
        f"{product.name} is out of stock. Please restock soon.",
        product_id=product.id,
        payload={"product_name": product.name},
    )


def check_and_create_stock_alerts(seller_id: int) -> list[Notification]:
    """Scan the seller's active products and raise alerts for non-HEALTHY stock."""
    products = Product.query.filter_by(seller_id=seller_id, is_active=True).order_by(Product.id).all()

    notifications = []
    for product in products:
        status = stock_status(product.current_stock, product.min_stock_level)
        if status == "OUT_OF_STOCK":
            notifications.append(create_out_of_stock_alert(seller_id, product))
        elif status == "LOW_STOCK":
            notifications.append(create_low_stock_alert(seller_id, product))

    db.session.commit()
    return notifications


def create_daily_summary(seller_id: int, day: datetime | None = None) -> Notification:
    """One DAILY_SUMMARY per seller per day; later calls return the existing one."""
    day = day or utcnow()
    start = datetime.combine(day.date(), datetime.min.time())
    end = start + timedelta(days=1)
    key = day_key(start)

    existing = Notification.query.filter(
        Notification.seller_id == seller_id,
        Notification.type == "DAILY_SUMMARY",
        Notification.created_at >= start,
        Notification.created_at < end,
    ).first()
    if existing:
        return existing

    total, profit, orders = (
        db.session.query(
            func.coalesce(func.sum(Sale.total_cents), 0),
            func.coalesce(func.sum(Sale.profit_cents), 0),
            func.count(Sale.id),
        )
        .filter(Sale.seller_id == seller_id, Sale.created_at >= start, Sale.created_at < end)
        .one()
    )

    notification = _add(
        seller_id,
        "DAILY_SUMMARY",
        "Daily Sales Summary",
        f"Sales: {int(total) / 100:.2f} | Profit: {int(profit) / 100:.2f} | Orders: {int(orders)}",
        payload={
            "total_sales_cents": int(total),
            "total_profit_cents": int(profit),
            "order_count": int(orders),
            "date": key,
        },
    )
    # Stamp inside the summarised day so the per-day lookup finds it
    notification.created_at = max(start, min(utcnow(), end - timedelta(seconds=1)))
    db.session.commit()
    return notification


def list_notifications(seller_id: int, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    q = Notification.query.filter_by(seller_id=seller_id)
    if unread_only:
        q = q.filter_by(is_read=False)
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(seller_id: int) -> int:
    return Notification.query.filter_by(seller_id=seller_id, is_read=False).count()


def mark_as_read(seller_id: int, notification_ids: list[int]) -> int:
    """Only the seller's own notifications are touched; returns rows updated."""
    if not notification_ids:
        return 0
    updated = (
        Notification.query.filter(
            Notification.seller_id == seller_id,
            Notification.id.in_(notification_ids),
        ).update({"is_read": True}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def mark_all_as_read(seller_id: int) -> int:
    updated = Notification.query.filter_by(seller_id=seller_id, is_read=False).update(
        {"is_read": True}, synchronize_session=False
    )
    db.session.commit()
    return updated
