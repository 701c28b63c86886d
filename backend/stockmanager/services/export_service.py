# Overview: CSV rendering of the stock, sales and profit & loss reports.

"""
Report exports.

Each export renders the same data the JSON report returns, so the two can
never disagree. Money columns are written as decimal amounts (cents / 100,
two places); counts stay integers.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime

from ..errors import ValidationError
from . import reporting_service
from stockmanager.time_utils import utcnow


EXPORT_KINDS = ("stock", "sales", "profit-loss")


def format_money(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(int(cents))
    return f"{sign}{cents // 100}.{cents % 100:02d}"


def _render(rows) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerows(rows)
    return buffer.getvalue()


def stock_report_rows(report: dict):
    summary = report["summary"]
    yield ["Stock Report Summary"]
    yield ["Metric", "Value"]
    yield ["Total Products", summary["total_products"]]
    yield ["Total Stock Value", format_money(summary["total_stock_value_cents"])]
    yield ["Potential Selling Value", format_money(summary["total_selling_value_cents"])]
    yield ["Potential Profit", format_money(summary["potential_profit_cents"])]
    yield ["Low Stock Items", summary["low_stock_count"]]
    yield ["Out of Stock Items", summary["out_of_stock_count"]]
    yield ["Healthy Stock Items", summary["healthy_stock_count"]]
    yield []
    yield [
        "Product", "Category", "Current Stock", "Min Level", "Purchase Price",
        "Selling Price", "Stock Value", "Potential Profit", "Status",
    ]
    for p in report["products"]:
        yield [
            p["name"],
            p["category"],
            p["current_stock"],
            p["min_stock_level"],
            format_money(p["purchase_price_cents"]),
            format_money(p["selling_price_cents"]),
            format_money(p["stock_value_cents"]),
            format_money(p["potential_profit_cents"]),
            p["status"],
        ]


def sales_report_rows(report: dict):
    summary = report["summary"]
    yield ["Sales Report Summary"]
    yield ["Period", report["start_date"], report["end_date"]]
    yield ["Metric", "Value"]
    yield ["Total Sales", format_money(summary["total_sales_cents"])]
    yield ["Total Profit", format_money(summary["total_profit_cents"])]
    yield ["Total Discounts", format_money(summary["total_discount_cents"])]
    yield ["Total Orders", summary["total_orders"]]
    yield ["Average Order Value", format_money(summary["average_order_value_cents"])]
    yield []
    yield ["Invoice #", "Date", "Customer", "Subtotal", "Discount", "Total", "Profit"]
    for s in report["sales"]:
        yield [
            s["sale_number"],
            s["date"],
            s["customer"],
            format_money(s["subtotal_cents"]),
            format_money(s["discount_cents"]),
            format_money(s["total_cents"]),
            format_money(s["profit_cents"]),
        ]


def profit_loss_rows(report: dict):
    summary = report["summary"]
    yield ["Profit & Loss Summary"]
    yield ["Period", report["start_date"], report["end_date"]]
    yield ["Total Revenue", format_money(summary["total_revenue_cents"])]
    yield ["Total Discounts", format_money(summary["total_discounts_cents"])]
    yield ["Gross Profit", format_money(summary["gross_profit_cents"])]
    yield ["Total Expenses", format_money(summary["total_expenses_cents"])]
    yield ["Net Profit", format_money(summary["net_profit_cents"])]
    yield ["Profit Margin %", summary["profit_margin"]]
    yield []
    yield ["Expenses by Category"]
    yield ["Category", "Amount"]
    for e in report["expenses_by_category"]:
        yield [e["category"], format_money(e["amount_cents"])]
    yield []
    yield ["Date", "Revenue", "Profit", "Expenses", "Net Profit"]
    for d in report["daily_data"]:
        yield [
            d["date"],
            format_money(d["revenue_cents"]),
            format_money(d["profit_cents"]),
            format_money(d["expenses_cents"]),
            format_money(d["net_profit_cents"]),
        ]


def export_report(
    seller_id: int,
    kind: str,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> tuple[str, str]:
    """
    Render one report as CSV.

    Returns (filename, csv_text). The date range is ignored for the stock
    report, which is a point-in-time snapshot.
    """
    if kind == "stock":
        rows = stock_report_rows(reporting_service.stock_report(seller_id))
    elif kind == "sales":
        rows = sales_report_rows(reporting_service.sales_report(seller_id, start=start, end=end))
    elif kind == "profit-loss":
        rows = profit_loss_rows(reporting_service.profit_loss_report(seller_id, start=start, end=end))
    else:
        raise ValidationError(
            f"report must be one of {', '.join(EXPORT_KINDS)}",
            details={"report": kind},
        )
    filename = f"{kind}-report-{utcnow().date().isoformat()}.csv"
    return filename, _render(rows)
