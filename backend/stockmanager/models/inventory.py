from __future__ import annotations

from ..extensions import db
from stockmanager.time_utils import to_utc_z


TRANSACTION_TYPES = ("PURCHASE", "SALE", "ADJUSTMENT")


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("seller_id", "name", name="uq_categories_seller_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Unit(db.Model):
    """Unit of measure (pcs, kg, litre...)."""
    __tablename__ = "units"
    __table_args__ = (
        db.UniqueConstraint("seller_id", "name", name="uq_units_seller_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    abbreviation = db.Column(db.String(16), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "name": self.name,
            "abbreviation": self.abbreviation,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to sellers via seller_id.

    STOCK DESIGN DECISION:
    current_stock is a materialized projection of the stock_transactions log,
    maintained only by ledger_service in the same DB transaction as the
    ledger row it reflects. The log is authoritative:
        current_stock == SUM(stock_transactions.quantity_delta)
    Routes and catalog updates never write current_stock.

    min_stock_level only classifies stock (LOW_STOCK); it is never enforced.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_seller_name", "seller_id", "name"),
        db.Index("ix_products_seller_active", "seller_id", "is_active"),
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    unit_id = db.Column(db.Integer, db.ForeignKey("units.id"), nullable=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    # FIXED: selling price entered directly; MARKUP: derived from purchase price
    pricing_mode = db.Column(db.String(16), nullable=False, default="FIXED")
    markup_percentage = db.Column(db.Numeric(6, 2), nullable=True)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    unit = db.relationship("Unit")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} seller_id={self.seller_id} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "category_id": self.category_id,
            "category": self.category.name if self.category else None,
            "unit_id": self.unit_id,
            "unit": self.unit.abbreviation if self.unit else None,
            "name": self.name,
            "description": self.description,
            "purchase_price_cents": self.purchase_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "pricing_mode": self.pricing_mode,
            "markup_percentage": float(self.markup_percentage) if self.markup_percentage is not None else None,
            "current_stock": self.current_stock,
            "min_stock_level": self.min_stock_level,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockTransaction(db.Model):
    """
    Append-only stock ledger row. Never updated or deleted.

    quantity_delta is signed: positive = stock in, negative = stock out.
    """
    __tablename__ = "stock_transactions"
    __table_args__ = (
        db.Index("ix_stocktx_seller_product_created", "seller_id", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # PURCHASE, SALE, ADJUSTMENT
    transaction_type = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)

    # Unit cost snapshot (PURCHASE rows)
    purchase_price_cents = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)

    # Set for SALE rows written by settlement
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stock_transactions", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "transaction_type": self.transaction_type,
            "quantity_delta": self.quantity_delta,
            "purchase_price_cents": self.purchase_price_cents,
            "note": self.note,
            "sale_id": self.sale_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
