from __future__ import annotations

from ..extensions import db
from stockmanager.time_utils import to_utc_z


class Sale(db.Model):
    """
    Settled sale (invoice). Written once at checkout, read-only afterwards.

    profit_cents is gross margin: SUM(line profit), deliberately NOT reduced by
    discount_amount_cents. Discounts reduce revenue (total_cents) only.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("seller_id", "sale_number", name="uq_sales_seller_sale_number"),
        db.Index("ix_sales_seller_created", "seller_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    # Human-readable number, e.g. "INV-20260115-003"
    sale_number = db.Column(db.String(32), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    # NONE, PERCENTAGE, FLAT
    discount_type = db.Column(db.String(16), nullable=False, default="NONE")
    # Percentage (0-100) or flat amount in cents, as requested
    discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    profit_cents = db.Column(db.Integer, nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship("SaleItem", backref="sale", lazy=True, order_by="SaleItem.id")

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "seller_id": self.seller_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "sale_number": self.sale_number,
            "subtotal_cents": self.subtotal_cents,
            "discount_type": self.discount_type,
            "discount_value": float(self.discount_value or 0),
            "discount_amount_cents": self.discount_amount_cents,
            "total_cents": self.total_cents,
            "profit_cents": self.profit_cents,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Sale line with price snapshots.

    subtotal_cents and profit_cents are stored at settlement time and never
    recomputed from later product prices.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    profit_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "purchase_price_cents": self.purchase_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "profit_cents": self.profit_cents,
        }


class SaleSequence(db.Model):
    """Per-seller, per-day counter used to allocate sale numbers."""
    __tablename__ = "sale_sequences"
    __table_args__ = (
        db.UniqueConstraint("seller_id", "sequence_date", name="uq_sale_sequences_seller_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False)
    # YYYYMMDD
    sequence_date = db.Column(db.String(8), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
