from __future__ import annotations

from ..extensions import db
from stockmanager.time_utils import to_utc_z


EXPENSE_CATEGORIES = (
    "PURCHASE",
    "RENT",
    "UTILITIES",
    "SALARY",
    "TRANSPORT",
    "MAINTENANCE",
    "OTHER",
)


class Expense(db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_seller_date", "seller_id", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)

    category = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)
    expense_date = db.Column(db.DateTime(timezone=True), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "expense_date": to_utc_z(self.expense_date),
            "created_at": to_utc_z(self.created_at),
        }
