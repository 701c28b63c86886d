from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Expense
from ..models.expenses import EXPENSE_CATEGORIES
from stockmanager.time_utils import utcnow


def create_expense(
    seller_id: int,
    *,
    category: str,
    amount_cents: int,
    description: str | None = None,
    expense_date: datetime | None = None,
) -> Expense:
    if category not in EXPENSE_CATEGORIES:
        raise ValidationError(
            f"Invalid category. Must be one of: {', '.join(EXPENSE_CATEGORIES)}"
        )
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise ValidationError("Amount must be a positive number")

    expense = Expense(
        seller_id=seller_id,
        category=category,
        amount_cents=amount_cents,
        description=description or None,
        expense_date=expense_date or utcnow(),
    )
    db.session.add(expense)
    db.session.commit()
    return expense


def _range_query(seller_id: int, start: datetime | None, end: datetime | None):
    q = Expense.query.filter_by(seller_id=seller_id)
    if start is not None:
        q = q.filter(Expense.expense_date >= start)
    if end is not None:
        q = q.filter(Expense.expense_date <= end)
    return q


def list_expenses(
    seller_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    category: str | None = None,
) -> dict:
    """Expenses in range (newest first) with their total and count."""
    q = _range_query(seller_id, start, end)
    if category:
        q = q.filter_by(category=category)

    expenses = q.order_by(Expense.expense_date.desc(), Expense.id.desc()).all()

    total = q.with_entities(func.coalesce(func.sum(Expense.amount_cents), 0)).scalar()
    return {
        "expenses": expenses,
        "summary": {
            "total_cents": int(total or 0),
            "count": len(expenses),
        },
    }


def delete_expense(seller_id: int, expense_id: int) -> None:
    expense = db.session.query(Expense).filter_by(id=expense_id, seller_id=seller_id).first()
    if expense is None:
        raise NotFoundError("Expense not found", details={"expense_id": expense_id})
    db.session.delete(expense)
    db.session.commit()
