# Overview: Read-only reports over persisted sales, stock and expenses.

"""
Reporting Service

Reports read what settlement and the ledger persisted; nothing here is
recomputed from current product prices. Sale profit is gross margin
(not reduced by discounts); net profit subtracts expenses.

Date ranges are inclusive and default to the last 30 days through the end of
today (see time_utils.resolve_report_range).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import joinedload

from ..models import Expense, Product, Sale, SaleItem, StockTransaction
from stockmanager.time_utils import day_key, resolve_report_range, to_utc_z
from .ledger_service import stock_status


def stock_report(seller_id: int, *, recent_transactions: int = 10) -> dict:
    products = (
        Product.query.options(joinedload(Product.category))
        .filter_by(seller_id=seller_id, is_active=True)
        .order_by(Product.current_stock.asc(), Product.name.asc())
        .all()
    )

    summary = {
        "total_products": len(products),
        "total_stock_value_cents": 0,
        "total_selling_value_cents": 0,
        "potential_profit_cents": 0,
        "low_stock_count": 0,
        "out_of_stock_count": 0,
        "healthy_stock_count": 0,
    }
    by_category: dict[str, dict] = {}
    rows = []

    for p in products:
        status = stock_status(p.current_stock, p.min_stock_level)
        stock_value = p.current_stock * p.purchase_price_cents
        potential = p.current_stock * (p.selling_price_cents - p.purchase_price_cents)

        summary["total_stock_value_cents"] += stock_value
        summary["total_selling_value_cents"] += p.current_stock * p.selling_price_cents
        summary["potential_profit_cents"] += potential
        summary[{
            "OUT_OF_STOCK": "out_of_stock_count",
            "LOW_STOCK": "low_stock_count",
            "HEALTHY": "healthy_stock_count",
        }[status]] += 1

        category_name = p.category.name if p.category else "Uncategorized"
        bucket = by_category.setdefault(category_name, {
            "category": category_name,
            "products": 0,
            "total_stock": 0,
            "stock_value_cents": 0,
            "low_stock": 0,
            "out_of_stock": 0,
        })
        bucket["products"] += 1
        bucket["total_stock"] += p.current_stock
        bucket["stock_value_cents"] += stock_value
        if status == "OUT_OF_STOCK":
            bucket["out_of_stock"] += 1
        elif status == "LOW_STOCK":
            bucket["low_stock"] += 1

        recent = (
            p.stock_transactions
            .order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
            .limit(recent_transactions)
            .all()
        )

        rows.append({
            "id": p.id,
            "name": p.name,
            "category": category_name,
            "current_stock": p.current_stock,
            "min_stock_level": p.min_stock_level,
            "purchase_price_cents": p.purchase_price_cents,
            "selling_price_cents": p.selling_price_cents,
            "stock_value_cents": stock_value,
            "potential_profit_cents": potential,
            "status": status,
            "recent_transactions": [
                {
                    "quantity_delta": tx.quantity_delta,
                    "transaction_type": tx.transaction_type,
                    "note": tx.note,
                    "created_at": to_utc_z(tx.created_at),
                }
                for tx in recent
            ],
        })

    return {
        "summary": summary,
        "category_stock": list(by_category.values()),
        "products": rows,
    }


def _sales_in_range(seller_id: int, start: datetime, end: datetime) -> list[Sale]:
    return (
        Sale.query.options(
            joinedload(Sale.customer),
            joinedload(Sale.items).joinedload(SaleItem.product).joinedload(Product.category),
        )
        .filter(
            Sale.seller_id == seller_id,
            Sale.created_at >= start,
            Sale.created_at <= end,
        )
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )


def sales_report(
    seller_id: int, *, start: datetime | None = None, end: datetime | None = None
) -> dict:
    start, end = resolve_report_range(start, end)
    sales = _sales_in_range(seller_id, start, end)

    total_sales = sum(s.total_cents for s in sales)
    summary = {
        "total_sales_cents": total_sales,
        "total_profit_cents": sum(s.profit_cents for s in sales),
        "total_discount_cents": sum(s.discount_amount_cents for s in sales),
        "total_orders": len(sales),
        "average_order_value_cents": round(total_sales / len(sales)) if sales else 0,
    }

    daily: dict[str, dict] = {}
    for sale in sales:
        key = day_key(sale.created_at)
        bucket = daily.setdefault(key, {"date": key, "sales_cents": 0, "profit_cents": 0, "orders": 0})
        bucket["sales_cents"] += sale.total_cents
        bucket["profit_cents"] += sale.profit_cents
        bucket["orders"] += 1

    return {
        "start_date": to_utc_z(start),
        "end_date": to_utc_z(end),
        "summary": summary,
        "daily_summary": sorted(daily.values(), key=lambda d: d["date"]),
        "sales": [
            {
                "id": s.id,
                "sale_number": s.sale_number,
                "date": to_utc_z(s.created_at),
                "customer": s.customer.name if s.customer else "Walk-in",
                "subtotal_cents": s.subtotal_cents,
                "discount_cents": s.discount_amount_cents,
                "total_cents": s.total_cents,
                "profit_cents": s.profit_cents,
                "items": [
                    {
                        "product": item.product.name,
                        "category": item.product.category.name if item.product.category else None,
                        "quantity": item.quantity,
                        "price_cents": item.selling_price_cents,
                        "subtotal_cents": item.subtotal_cents,
                        "profit_cents": item.profit_cents,
                    }
                    for item in s.items
                ],
            }
            for s in sales
        ],
    }


def profit_loss_report(
    seller_id: int, *, start: datetime | None = None, end: datetime | None = None
) -> dict:
    """
    Revenue, gross profit (sum of sale profit), expenses and net profit.

    profit_margin = net_profit / revenue * 100 (0 when there is no revenue).
    """
    start, end = resolve_report_range(start, end)
    sales = (
        Sale.query.filter(
            Sale.seller_id == seller_id,
            Sale.created_at >= start,
            Sale.created_at <= end,
        ).all()
    )
    expenses = (
        Expense.query.filter(
            Expense.seller_id == seller_id,
            Expense.expense_date >= start,
            Expense.expense_date <= end,
        )
        .order_by(Expense.expense_date.desc(), Expense.id.desc())
        .all()
    )

    revenue = sum(s.total_cents for s in sales)
    gross_profit = sum(s.profit_cents for s in sales)
    total_expenses = sum(e.amount_cents for e in expenses)
    net_profit = gross_profit - total_expenses

    by_category: dict[str, int] = {}
    for e in expenses:
        by_category[e.category] = by_category.get(e.category, 0) + e.amount_cents

    daily: dict[str, dict] = {}

    def bucket(dt: datetime) -> dict:
        key = day_key(dt)
        return daily.setdefault(key, {
            "date": key,
            "revenue_cents": 0,
            "profit_cents": 0,
            "expenses_cents": 0,
            "net_profit_cents": 0,
        })

    for e in expenses:
        bucket(e.expense_date)["expenses_cents"] += e.amount_cents
    for s in sales:
        b = bucket(s.created_at)
        b["revenue_cents"] += s.total_cents
        b["profit_cents"] += s.profit_cents
    for b in daily.values():
        b["net_profit_cents"] = b["profit_cents"] - b["expenses_cents"]

    return {
        "start_date": to_utc_z(start),
        "end_date": to_utc_z(end),
        "summary": {
            "total_revenue_cents": revenue,
            "gross_profit_cents": gross_profit,
            "total_expenses_cents": total_expenses,
            "net_profit_cents": net_profit,
            "total_discounts_cents": sum(s.discount_amount_cents for s in sales),
            "total_orders": len(sales),
            "profit_margin": round(net_profit / revenue * 100, 2) if revenue > 0 else 0,
        },
        "expenses_by_category": [
            {"category": category, "amount_cents": amount}
            for category, amount in by_category.items()
        ],
        "expenses": [e.to_dict() for e in expenses],
        "daily_data": sorted(daily.values(), key=lambda d: d["date"]),
    }
