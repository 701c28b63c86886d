from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Sale


CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "email", "address"}


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
    return value or None


def _commit():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Customer with this phone number already exists", code="DUPLICATE")


def get_customer(seller_id: int, customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id, seller_id=seller_id).first()
    if customer is None:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def list_customers(seller_id: int, search: str | None = None) -> list[dict]:
    """Customers with purchase count and lifetime spend, newest first."""
    stats = (
        db.session.query(
            Sale.customer_id,
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_cents), 0),
        )
        .filter(Sale.seller_id == seller_id, Sale.customer_id.isnot(None))
        .group_by(Sale.customer_id)
        .all()
    )
    by_customer = {cid: (int(count), int(total)) for cid, count, total in stats}

    q = Customer.query.filter_by(seller_id=seller_id)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(Customer.name.ilike(pattern) | Customer.phone.ilike(pattern))

    result = []
    for customer in q.order_by(Customer.created_at.desc(), Customer.id.desc()).all():
        count, total = by_customer.get(customer.id, (0, 0))
        result.append({
            **customer.to_dict(),
            "purchase_count": count,
            "total_spent_cents": total,
        })
    return result


def create_customer(
    seller_id: int,
    *,
    name: str,
    phone: str,
    email: str | None = None,
    address: str | None = None,
) -> Customer:
    if not _clean(name) or not _clean(phone):
        raise ValidationError("name and phone are required")
    customer = Customer(
        seller_id=seller_id,
        name=_clean(name),
        phone=_clean(phone),
        email=_clean(email),
        address=_clean(address),
    )
    db.session.add(customer)
    _commit()
    return customer


def update_customer(seller_id: int, customer_id: int, patch: dict) -> Customer:
    customer = get_customer(seller_id, customer_id)
    for key, value in patch.items():
        if key not in CUSTOMER_MUTABLE_FIELDS:
            continue
        if key in ("name", "phone") and not _clean(value):
            raise ValidationError(f"{key} cannot be empty")
        setattr(customer, key, _clean(value))
    _commit()
    return customer


def delete_customer(seller_id: int, customer_id: int) -> None:
    """Customers with sales are kept: invoices must keep resolving their customer."""
    customer = get_customer(seller_id, customer_id)
    if Sale.query.filter_by(seller_id=seller_id, customer_id=customer.id).count():
        raise ValidationError("Cannot delete a customer with sales history")
    db.session.delete(customer)
    db.session.commit()
