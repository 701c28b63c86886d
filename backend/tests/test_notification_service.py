# Overview: Pytest coverage for stock alerts, daily summaries and read state.

from datetime import timedelta

from stockmanager.extensions import db
from stockmanager.models import Notification
from stockmanager.services import catalog_service, notification_service, sales_service
from stockmanager.time_utils import utcnow
from stockmanager.validation import CartLine

from conftest import make_product


class TestStockAlerts:
    def test_alerts_for_low_and_out_of_stock(self, seller_a, category_a):
        make_product(seller_a.id, category_a.id, name="Fine", stock=20, min_level=5)
        low = make_product(seller_a.id, category_a.id, name="Low", stock=2, min_level=5)
        gone = make_product(seller_a.id, category_a.id, name="Gone", stock=0, min_level=1)

        alerts = notification_service.check_and_create_stock_alerts(seller_a.id)

        assert {(n.type, n.product_id) for n in alerts} == {
            ("LOW_STOCK", low.id),
            ("OUT_OF_STOCK", gone.id),
        }
        low_alert = next(n for n in alerts if n.type == "LOW_STOCK")
        assert low_alert.title == "Low Stock Alert: Low"
        assert low_alert.payload["current_stock"] == 2

    def test_repeated_check_does_not_duplicate(self, seller_a, category_a):
        make_product(seller_a.id, category_a.id, name="Low", stock=1, min_level=5)

        notification_service.check_and_create_stock_alerts(seller_a.id)
        notification_service.check_and_create_stock_alerts(seller_a.id)

        assert Notification.query.filter_by(seller_id=seller_a.id, type="LOW_STOCK").count() == 1

    def test_alert_repeats_after_dedup_window(self, app, seller_a, category_a):
        product = make_product(seller_a.id, category_a.id, name="Low", stock=1, min_level=5)
        [first] = notification_service.check_and_create_stock_alerts(seller_a.id)

        hours = app.config["STOCK_ALERT_DEDUP_HOURS"]
        first.created_at = utcnow() - timedelta(hours=hours + 1)
        db.session.commit()

        notification_service.check_and_create_stock_alerts(seller_a.id)
        assert Notification.query.filter_by(product_id=product.id, type="LOW_STOCK").count() == 2

    def test_inactive_products_ignored(self, seller_a, category_a):
        product = make_product(seller_a.id, category_a.id, name="Retired", stock=0, min_level=1)
        catalog_service.deactivate_product(seller_a.id, product.id)

        assert notification_service.check_and_create_stock_alerts(seller_a.id) == []


class TestDailySummary:
    def test_summarises_todays_sales(self, seller_a, product_a):
        sales_service.settle_sale(seller_id=seller_a.id, lines=[CartLine(product_a.id, 2)], actor_id=None)

        summary = notification_service.create_daily_summary(seller_a.id)

        assert summary.type == "DAILY_SUMMARY"
        assert summary.payload["total_sales_cents"] == 2000
        assert summary.payload["total_profit_cents"] == 800
        assert summary.payload["order_count"] == 1
        assert summary.message == "Sales: 20.00 | Profit: 8.00 | Orders: 1"

    def test_one_summary_per_day(self, seller_a):
        first = notification_service.create_daily_summary(seller_a.id)
        second = notification_service.create_daily_summary(seller_a.id)
        assert first.id == second.id

    def test_past_day_is_stamped_inside_that_day(self, seller_a):
        yesterday = utcnow() - timedelta(days=1)
        summary = notification_service.create_daily_summary(seller_a.id, yesterday)
        assert summary.created_at.date() == yesterday.date()
        assert summary.payload["date"] == yesterday.date().isoformat()


class TestReadState:
    def _alerts(self, seller_id, category_id, count):
        for i in range(count):
            make_product(seller_id, category_id, name=f"Empty {i}", stock=0, min_level=1)
        return notification_service.check_and_create_stock_alerts(seller_id)

    def test_mark_selected(self, seller_a, category_a):
        alerts = self._alerts(seller_a.id, category_a.id, 3)

        assert notification_service.mark_as_read(seller_a.id, [alerts[0].id]) == 1
        assert notification_service.unread_count(seller_a.id) == 2
        unread = notification_service.list_notifications(seller_a.id, unread_only=True)
        assert alerts[0].id not in [n.id for n in unread]

    def test_mark_all(self, seller_a, category_a):
        self._alerts(seller_a.id, category_a.id, 2)
        assert notification_service.mark_all_as_read(seller_a.id) == 2
        assert notification_service.unread_count(seller_a.id) == 0

    def test_cannot_mark_other_sellers_notifications(self, seller_a, seller_b, category_b):
        [alert] = self._alerts(seller_b.id, category_b.id, 1)
        assert notification_service.mark_as_read(seller_a.id, [alert.id]) == 0
        assert notification_service.unread_count(seller_b.id) == 1
