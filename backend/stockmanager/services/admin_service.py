# Overview: Platform administration: seller onboarding, seller records and subscriptions.

"""
Admin Service

Used by platform accounts only (ADMIN writes, SUPPORT reads). Unlike the
shop-facing services these operate across sellers, so nothing here is
scoped by seller_id.

Onboarding creates the seller, its subscription and an OWNER account with a
temporary password in one commit; the owner must change the password on
first login.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, or_

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Product, Sale, Seller, Subscription, User
from ..permissions import SUBSCRIPTION_FEATURES, SUBSCRIPTION_TIERS
from ..validation import optional_text
from . import auth_service
from .concurrency import atomic
from stockmanager.time_utils import utcnow


SUBSCRIPTION_STATUSES = ("ACTIVE", "EXPIRED", "CANCELLED")
# field -> max length
SELLER_MUTABLE_FIELDS = {
    "business_name": 255,
    "owner_name": 255,
    "email": 255,
    "phone": 32,
    "address": 1000,
}


def _counts(model, seller_ids: list[int]) -> dict[int, int]:
    if not seller_ids:
        return {}
    rows = (
        db.session.query(model.seller_id, func.count(model.id))
        .filter(model.seller_id.in_(seller_ids))
        .group_by(model.seller_id)
        .all()
    )
    return {seller_id: int(count) for seller_id, count in rows}


def _seller_summary(seller: Seller, counts: dict[str, dict[int, int]]) -> dict:
    return {
        **seller.to_dict(),
        "subscription": seller.subscription.to_dict() if seller.subscription else None,
        "counts": {name: by_seller.get(seller.id, 0) for name, by_seller in counts.items()},
    }


def get_any_seller(seller_id: int) -> Seller:
    """Active or not; platform users see deactivated sellers too."""
    seller = db.session.get(Seller, seller_id)
    if seller is None:
        raise NotFoundError("Seller not found", details={"seller_id": seller_id})
    return seller


def list_sellers(*, search: str | None = None, is_active: bool | None = None, limit: int = 50) -> list[dict]:
    query = Seller.query
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Seller.business_name.ilike(pattern),
            Seller.owner_name.ilike(pattern),
            Seller.email.ilike(pattern),
        ))
    if is_active is not None:
        query = query.filter(Seller.is_active.is_(is_active))

    sellers = query.order_by(Seller.created_at.desc(), Seller.id.desc()).limit(limit).all()
    ids = [s.id for s in sellers]
    counts = {
        "users": _counts(User, ids),
        "products": _counts(Product, ids),
        "sales": _counts(Sale, ids),
        "customers": _counts(Customer, ids),
    }
    return [_seller_summary(s, counts) for s in sellers]


def get_seller_detail(seller_id: int) -> dict:
    seller = get_any_seller(seller_id)
    ids = [seller.id]
    counts = {
        "products": _counts(Product, ids),
        "sales": _counts(Sale, ids),
        "customers": _counts(Customer, ids),
    }
    total, profit, orders = db.session.query(
        func.coalesce(func.sum(Sale.total_cents), 0),
        func.coalesce(func.sum(Sale.profit_cents), 0),
        func.count(Sale.id),
    ).filter(Sale.seller_id == seller.id).one()

    users = User.query.filter_by(seller_id=seller.id).order_by(User.id.asc()).all()
    return {
        **_seller_summary(seller, counts),
        "users": [u.to_dict() for u in users],
        "sales_summary": {
            "total_sales_cents": int(total),
            "total_profit_cents": int(profit),
            "order_count": int(orders),
        },
    }


def onboard_seller(
    *,
    business_name: str,
    owner_name: str,
    owner_email: str,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
    tier: str = "FREE",
) -> tuple[Seller, User, str]:
    """
    Create seller + subscription + OWNER user in one unit.

    Returns (seller, owner, temporary_password). The plaintext password is
    only ever returned here; the owner is flagged must_change_password.
    """
    fields = {
        field: optional_text(
            {"business_name": business_name, "owner_name": owner_name,
             "email": email, "phone": phone, "address": address},
            field,
            max_length=max_length,
        )
        for field, max_length in SELLER_MUTABLE_FIELDS.items()
    }
    if not fields["business_name"]:
        raise ValidationError("business_name is required")
    if not fields["owner_name"]:
        raise ValidationError("owner_name is required")
    if tier not in SUBSCRIPTION_TIERS:
        raise ValidationError(f"tier must be one of {', '.join(SUBSCRIPTION_TIERS)}")
    if fields["email"] and Seller.query.filter(func.lower(Seller.email) == fields["email"].lower()).first():
        raise ValidationError("A seller with this email already exists", code="DUPLICATE")

    temporary_password = auth_service.generate_temporary_password()
    with atomic():
        seller = Seller(**fields)
        db.session.add(seller)
        db.session.flush()
        db.session.add(Subscription(seller_id=seller.id, tier=tier, status="ACTIVE"))
        owner = auth_service.create_user(
            name=owner_name,
            email=owner_email,
            password=temporary_password,
            role="OWNER",
            seller_id=seller.id,
            must_change_password=True,
            commit=False,
        )
    return seller, owner, temporary_password


def update_seller(seller_id: int, patch: dict) -> Seller:
    """Profile fields and is_active. Deactivating a seller locks out all of its users."""
    seller = get_any_seller(seller_id)
    changes = {
        field: optional_text(patch, field, max_length=max_length)
        for field, max_length in SELLER_MUTABLE_FIELDS.items()
        if field in patch
    }
    if "business_name" in changes and not changes["business_name"]:
        raise ValidationError("business_name is required")
    if "is_active" in patch:
        if not isinstance(patch["is_active"], bool):
            raise ValidationError("is_active must be a boolean")
        changes["is_active"] = patch["is_active"]

    with atomic():
        for key, value in changes.items():
            setattr(seller, key, value)
    return seller


def deactivate_seller(seller_id: int) -> Seller:
    """Soft delete; sales, ledger and users are kept."""
    return update_seller(seller_id, {"is_active": False})


def list_subscriptions() -> list[dict]:
    subscriptions = Subscription.query.order_by(Subscription.started_at.desc(), Subscription.id.desc()).all()
    return [
        {
            **sub.to_dict(),
            "seller": {
                "id": sub.seller.id,
                "business_name": sub.seller.business_name,
                "owner_name": sub.seller.owner_name,
                "email": sub.seller.email,
                "is_active": sub.seller.is_active,
            },
        }
        for sub in subscriptions
    ]


def assign_subscription(
    seller_id: int,
    *,
    tier: str,
    status: str = "ACTIVE",
    expires_at: datetime | None = None,
) -> Subscription:
    """Create or replace the seller's subscription (one per seller)."""
    seller = get_any_seller(seller_id)
    if tier not in SUBSCRIPTION_TIERS:
        raise ValidationError(f"tier must be one of {', '.join(SUBSCRIPTION_TIERS)}")
    if status not in SUBSCRIPTION_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(SUBSCRIPTION_STATUSES)}")

    with atomic():
        sub = seller.subscription
        if sub is None:
            sub = Subscription(seller_id=seller.id)
            db.session.add(sub)
        sub.tier = tier
        sub.status = status
        sub.started_at = utcnow()
        sub.expires_at = expires_at
    return sub


def list_plans() -> list[dict]:
    """Tier catalogue with the number of active subscriptions on each tier."""
    counts = dict(
        db.session.query(Subscription.tier, func.count(Subscription.id))
        .filter(Subscription.status == "ACTIVE")
        .group_by(Subscription.tier)
        .all()
    )
    return [
        {"tier": tier, "features": dict(SUBSCRIPTION_FEATURES[tier]), "active_subscriptions": int(counts.get(tier, 0))}
        for tier in SUBSCRIPTION_TIERS
    ]
