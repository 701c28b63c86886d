from __future__ import annotations

from ..extensions import db
from stockmanager.time_utils import to_utc_z


class Seller(db.Model):
    """
    Tenant root.

    MULTI-TENANT: every catalog, stock, sale, customer and expense row carries
    seller_id. Services take seller_id as an explicit argument; nothing reads
    it from ambient request state.
    """
    __tablename__ = "sellers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_name = db.Column(db.String(255), nullable=False)
    owner_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    # Pricing defaults applied when a product is created without a selling price
    default_pricing_mode = db.Column(db.String(16), nullable=False, default="FIXED")
    default_markup_percentage = db.Column(db.Numeric(6, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Seller id={self.id} business_name={self.business_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_name": self.business_name,
            "owner_name": self.owner_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "default_pricing_mode": self.default_pricing_mode,
            "default_markup_percentage": float(self.default_markup_percentage or 0),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Subscription(db.Model):
    """One subscription per seller; the tier drives feature gating and limits."""
    __tablename__ = "subscriptions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, unique=True)

    # FREE, BASIC, PRO, ENTERPRISE
    tier = db.Column(db.String(16), nullable=False, default="FREE")
    # ACTIVE, EXPIRED, CANCELLED
    status = db.Column(db.String(16), nullable=False, default="ACTIVE")

    started_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    seller = db.relationship("Seller", backref=db.backref("subscription", uselist=False))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "tier": self.tier,
            "status": self.status,
            "started_at": to_utc_z(self.started_at),
            "expires_at": to_utc_z(self.expires_at) if self.expires_at else None,
        }
