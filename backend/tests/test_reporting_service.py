# Overview: Pytest coverage for stock, sales and profit/loss reports.

from datetime import datetime, timedelta

from stockmanager.services import customer_service, expense_service, ledger_service, reporting_service, sales_service
from stockmanager.services.calculations import DiscountPolicy
from stockmanager.time_utils import utcnow
from stockmanager.validation import CartLine

from conftest import make_product


class TestStockReport:
    def test_summary_and_statuses(self, seller_a, category_a):
        make_product(seller_a.id, category_a.id, name="Healthy", purchase=100, selling=150, stock=20, min_level=5)
        make_product(seller_a.id, category_a.id, name="Low", purchase=200, selling=300, stock=2, min_level=5)
        make_product(seller_a.id, category_a.id, name="Gone", purchase=50, selling=80, stock=0, min_level=1)

        report = reporting_service.stock_report(seller_a.id)
        summary = report["summary"]

        assert summary["total_products"] == 3
        assert summary["total_stock_value_cents"] == 20 * 100 + 2 * 200
        assert summary["total_selling_value_cents"] == 20 * 150 + 2 * 300
        assert summary["potential_profit_cents"] == 20 * 50 + 2 * 100
        assert (summary["healthy_stock_count"], summary["low_stock_count"], summary["out_of_stock_count"]) == (1, 1, 1)

        # Lowest stock first
        assert [p["name"] for p in report["products"]] == ["Gone", "Low", "Healthy"]
        assert [p["status"] for p in report["products"]] == ["OUT_OF_STOCK", "LOW_STOCK", "HEALTHY"]

        [bucket] = report["category_stock"]
        assert bucket["category"] == "Grocery"
        assert bucket["products"] == 3
        assert bucket["total_stock"] == 22

    def test_recent_transactions_newest_first(self, seller_a, product_a):
        ledger_service.apply_stock_change(
            seller_id=seller_a.id, product_id=product_a.id, quantity_delta=-2,
            transaction_type="ADJUSTMENT", actor_id=None, note="Damaged",
        )
        [row] = reporting_service.stock_report(seller_a.id)["products"]
        assert [tx["quantity_delta"] for tx in row["recent_transactions"]] == [-2, 10]
        assert row["recent_transactions"][0]["note"] == "Damaged"

    def test_excludes_other_sellers(self, seller_a, product_a, product_b):
        report = reporting_service.stock_report(seller_a.id)
        assert [p["id"] for p in report["products"]] == [product_a.id]


class TestSalesReport:
    def test_totals_and_walk_in(self, seller_a, product_a):
        customer = customer_service.create_customer(seller_a.id, name="Asha", phone="1")
        sales_service.settle_sale(
            seller_id=seller_a.id, lines=[CartLine(product_a.id, 2)],
            discount=DiscountPolicy.flat(100), customer_id=customer.id, actor_id=None,
        )
        sales_service.settle_sale(seller_id=seller_a.id, lines=[CartLine(product_a.id, 1)], actor_id=None)

        report = reporting_service.sales_report(seller_a.id)

        assert report["summary"] == {
            "total_sales_cents": 1900 + 1000,
            "total_profit_cents": 800 + 400,
            "total_discount_cents": 100,
            "total_orders": 2,
            "average_order_value_cents": 1450,
        }
        assert sorted(s["customer"] for s in report["sales"]) == ["Asha", "Walk-in"]
        [day] = report["daily_summary"]
        assert day["orders"] == 2
        assert day["sales_cents"] == 2900

    def test_items_use_snapshot_prices(self, seller_a, product_a):
        sales_service.settle_sale(seller_id=seller_a.id, lines=[CartLine(product_a.id, 3)], actor_id=None)
        [sale] = reporting_service.sales_report(seller_a.id)["sales"]
        [item] = sale["items"]
        assert item == {
            "product": "Product A",
            "category": "Grocery",
            "quantity": 3,
            "price_cents": 1000,
            "subtotal_cents": 3000,
            "profit_cents": 1200,
        }

    def test_range_excludes_old_sales(self, seller_a, product_a):
        sales_service.settle_sale(seller_id=seller_a.id, lines=[CartLine(product_a.id, 1)], actor_id=None)
        long_ago = utcnow() - timedelta(days=400)
        report = reporting_service.sales_report(seller_a.id, start=long_ago, end=long_ago + timedelta(days=1))
        assert report["summary"]["total_orders"] == 0
        assert report["summary"]["average_order_value_cents"] == 0


class TestProfitLoss:
    def test_net_profit_and_margin(self, seller_a, product_a):
        sales_service.settle_sale(seller_id=seller_a.id, lines=[CartLine(product_a.id, 5)], actor_id=None)
        expense_service.create_expense(seller_a.id, category="RENT", amount_cents=500)
        expense_service.create_expense(seller_a.id, category="RENT", amount_cents=300)
        expense_service.create_expense(seller_a.id, category="TRANSPORT", amount_cents=200)

        report = reporting_service.profit_loss_report(seller_a.id)
        summary = report["summary"]

        assert summary["total_revenue_cents"] == 5000
        assert summary["gross_profit_cents"] == 2000
        assert summary["total_expenses_cents"] == 1000
        assert summary["net_profit_cents"] == 1000
        assert summary["profit_margin"] == 20.0
        assert {row["category"]: row["amount_cents"] for row in report["expenses_by_category"]} == {
            "RENT": 800,
            "TRANSPORT": 200,
        }
        assert sum(d["net_profit_cents"] for d in report["daily_data"]) == 1000

    def test_no_revenue_margin_is_zero(self, seller_a):
        expense_service.create_expense(seller_a.id, category="OTHER", amount_cents=250)
        summary = reporting_service.profit_loss_report(seller_a.id)["summary"]
        assert summary["net_profit_cents"] == -250
        assert summary["profit_margin"] == 0

    def test_expenses_outside_range_ignored(self, seller_a):
        expense_service.create_expense(
            seller_a.id, category="RENT", amount_cents=999, expense_date=datetime(2020, 1, 15)
        )
        summary = reporting_service.profit_loss_report(seller_a.id)["summary"]
        assert summary["total_expenses_cents"] == 0
