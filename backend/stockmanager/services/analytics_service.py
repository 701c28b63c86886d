# Overview: Sales analytics over settled sales: rankings, category totals and trends.

"""
Analytics Service

All figures come from the snapshots stored at settlement (sale_items
subtotal/profit, sales total/profit); nothing is recomputed from current
product prices.

Periods:
- day:   since midnight (UTC) today
- week:  since midnight 7 days ago
- month: since midnight 30 days ago
- all:   no lower bound

The daily trend always has one bucket per calendar day (zeros included):
2 buckets for "day", 8 for "week", 31 for "month" and "all".
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import Category, Customer, Product, Sale, SaleItem
from stockmanager.time_utils import day_key, start_of_day, utcnow


ANALYTICS_PERIODS = ("day", "week", "month", "all")

PERIOD_DAYS = {"day": 0, "week": 7, "month": 30}
TREND_DAYS = {"day": 1, "week": 7}
DEFAULT_TREND_DAYS = 30

TOP_LIMIT = 10


def period_start(period: str, now: datetime | None = None) -> datetime | None:
    if period not in ANALYTICS_PERIODS:
        raise ValidationError(
            f"period must be one of {', '.join(ANALYTICS_PERIODS)}",
            details={"period": period},
        )
    if period == "all":
        return None
    now = now or utcnow()
    return start_of_day(now - timedelta(days=PERIOD_DAYS[period]))


def overview(seller_id: int, start: datetime | None) -> dict:
    q = db.session.query(
        func.coalesce(func.sum(Sale.total_cents), 0),
        func.coalesce(func.sum(Sale.profit_cents), 0),
        func.count(Sale.id),
    ).filter(Sale.seller_id == seller_id)
    if start is not None:
        q = q.filter(Sale.created_at >= start)
    total, profit, orders = q.one()
    return {
        "total_sales_cents": int(total),
        "total_profit_cents": int(profit),
        "total_orders": int(orders),
        "average_order_value_cents": round(int(total) / orders) if orders else 0,
    }


def _product_rankings(seller_id: int, start: datetime | None, *, by: str, limit: int) -> list[dict]:
    quantity = func.sum(SaleItem.quantity).label("quantity_sold")
    sales = func.sum(SaleItem.subtotal_cents).label("total_sales_cents")
    profit = func.sum(SaleItem.profit_cents).label("total_profit_cents")
    order = {"quantity": quantity, "profit": profit}[by]

    q = (
        db.session.query(
            SaleItem.product_id,
            Product.name.label("product_name"),
            Category.name.label("category_name"),
            quantity,
            sales,
            profit,
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .join(Product, Product.id == SaleItem.product_id)
        .outerjoin(Category, Category.id == Product.category_id)
        .filter(Sale.seller_id == seller_id)
    )
    if start is not None:
        q = q.filter(Sale.created_at >= start)

    rows = (
        q.group_by(SaleItem.product_id, Product.name, Category.name)
        .order_by(order.desc(), SaleItem.product_id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product_id": row.product_id,
            "name": row.product_name,
            "category": row.category_name or "Uncategorized",
            "quantity_sold": int(row.quantity_sold or 0),
            "total_sales_cents": int(row.total_sales_cents or 0),
            "total_profit_cents": int(row.total_profit_cents or 0),
        }
        for row in rows
    ]


def top_selling_products(seller_id: int, start: datetime | None, limit: int = TOP_LIMIT) -> list[dict]:
    return _product_rankings(seller_id, start, by="quantity", limit=limit)


def top_profitable_products(seller_id: int, start: datetime | None, limit: int = TOP_LIMIT) -> list[dict]:
    return _product_rankings(seller_id, start, by="profit", limit=limit)


def top_customers(seller_id: int, start: datetime | None, limit: int = TOP_LIMIT) -> list[dict]:
    """Customers ranked by total spend; walk-in sales are excluded."""
    spent = func.sum(Sale.total_cents).label("total_spent_cents")
    q = (
        db.session.query(
            Customer.id,
            Customer.name,
            Customer.phone,
            spent,
            func.sum(Sale.profit_cents).label("total_profit_cents"),
            func.count(Sale.id).label("order_count"),
        )
        .join(Sale, Sale.customer_id == Customer.id)
        .filter(Sale.seller_id == seller_id, Customer.seller_id == seller_id)
    )
    if start is not None:
        q = q.filter(Sale.created_at >= start)

    rows = (
        q.group_by(Customer.id, Customer.name, Customer.phone)
        .order_by(spent.desc(), Customer.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "customer_id": row.id,
            "name": row.name,
            "phone": row.phone,
            "total_spent_cents": int(row.total_spent_cents or 0),
            "total_profit_cents": int(row.total_profit_cents or 0),
            "order_count": int(row.order_count),
        }
        for row in rows
    ]


def category_stats(seller_id: int, start: datetime | None) -> list[dict]:
    """Every category of the seller with its sold quantity, sales and profit (zeros included)."""
    q = (
        db.session.query(
            Product.category_id,
            func.sum(SaleItem.quantity),
            func.sum(SaleItem.subtotal_cents),
            func.sum(SaleItem.profit_cents),
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .join(Product, Product.id == SaleItem.product_id)
        .filter(Sale.seller_id == seller_id)
    )
    if start is not None:
        q = q.filter(Sale.created_at >= start)
    totals = {
        category_id: (int(qty or 0), int(sales or 0), int(profit or 0))
        for category_id, qty, sales, profit in q.group_by(Product.category_id).all()
    }

    stats = []
    for category in Category.query.filter_by(seller_id=seller_id).all():
        qty, sales, profit = totals.get(category.id, (0, 0, 0))
        stats.append({
            "category_id": category.id,
            "name": category.name,
            "total_quantity": qty,
            "total_sales_cents": sales,
            "total_profit_cents": profit,
        })
    stats.sort(key=lambda s: (-s["total_sales_cents"], s["name"]))
    return stats


def sales_trend(seller_id: int, period: str, now: datetime | None = None) -> list[dict]:
    now = now or utcnow()
    days = TREND_DAYS.get(period, DEFAULT_TREND_DAYS)
    start = start_of_day(now - timedelta(days=days))

    buckets: dict[str, dict] = {}
    for offset in range(days + 1):
        key = day_key(start + timedelta(days=offset))
        buckets[key] = {"date": key, "sales_cents": 0, "profit_cents": 0, "orders": 0}

    sales = (
        db.session.query(Sale.created_at, Sale.total_cents, Sale.profit_cents)
        .filter(Sale.seller_id == seller_id, Sale.created_at >= start)
        .order_by(Sale.created_at.asc())
        .all()
    )
    for created_at, total, profit in sales:
        bucket = buckets.get(day_key(created_at))
        if bucket is None:
            continue
        bucket["sales_cents"] += total
        bucket["profit_cents"] += profit
        bucket["orders"] += 1

    return list(buckets.values())


def get_analytics(seller_id: int, period: str = "month", *, include_customers: bool = False) -> dict:
    """
    Dashboard payload for one period.

    top_customers is only included when include_customers is set (customer
    insights are a separate paid feature).
    """
    start = period_start(period)
    data = {
        "period": period,
        "overview": overview(seller_id, start),
        "top_selling_products": top_selling_products(seller_id, start),
        "top_profitable_products": top_profitable_products(seller_id, start),
        "category_stats": category_stats(seller_id, start),
        "sales_trend": sales_trend(seller_id, period),
    }
    if include_customers:
        data["top_customers"] = top_customers(seller_id, start)
    return data
