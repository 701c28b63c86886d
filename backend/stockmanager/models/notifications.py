from __future__ import annotations

from ..extensions import db
from stockmanager.time_utils import to_utc_z


class Notification(db.Model):
    """
    Seller-facing alert (LOW_STOCK, OUT_OF_STOCK, DAILY_SUMMARY).

    Produced by notification_service from persisted stock levels and sales;
    the ledger itself never writes notifications.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_seller_type_created", "seller_id", "type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    # Product id for stock alerts, used for de-duplication
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    payload = db.Column(db.JSON, nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "product_id": self.product_id,
            "payload": self.payload,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
