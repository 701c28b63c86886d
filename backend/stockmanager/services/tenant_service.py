"""
Tenant Service: seller lookup, onboarding and subscription state.

MULTI-TENANT: seller_id is always passed explicitly. Routes take it from the
authenticated session (g.seller_id), never from client input.
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Seller, Subscription
from ..permissions import SUBSCRIPTION_TIERS, get_subscription_features
from .calculations import to_decimal
from stockmanager.time_utils import utcnow


def get_seller(seller_id: int) -> Seller:
    seller = db.session.get(Seller, seller_id)
    if seller is None or not seller.is_active:
        raise NotFoundError("Seller not found", details={"seller_id": seller_id})
    return seller


def create_seller(
    *,
    business_name: str,
    owner_name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    tier: str = "FREE",
) -> Seller:
    """Create a seller with its subscription in one commit."""
    if not business_name or not business_name.strip():
        raise ValidationError("business_name is required")
    if tier not in SUBSCRIPTION_TIERS:
        raise ValidationError(f"tier must be one of {', '.join(SUBSCRIPTION_TIERS)}")

    seller = Seller(
        business_name=business_name.strip(),
        owner_name=owner_name,
        email=email,
        phone=phone,
    )
    db.session.add(seller)
    db.session.flush()
    db.session.add(Subscription(seller_id=seller.id, tier=tier, status="ACTIVE"))
    db.session.commit()
    return seller


def get_active_tier(seller_id: int) -> str:
    """
    Effective tier for gating.

    No subscription, a non-ACTIVE one, or one past expires_at all fall back
    to FREE.
    """
    sub = db.session.query(Subscription).filter_by(seller_id=seller_id).first()
    if sub is None or sub.status != "ACTIVE":
        return "FREE"
    if sub.expires_at is not None and sub.expires_at < utcnow():
        return "FREE"
    return sub.tier


def get_product_limit(seller_id: int) -> int | None:
    return get_subscription_features(get_active_tier(seller_id))["maxProducts"]


def update_seller_settings(seller_id: int, patch: dict) -> Seller:
    """Business profile and default pricing (FIXED or MARKUP with a default %)."""
    seller = get_seller(seller_id)
    for field in ("business_name", "owner_name", "email", "phone", "address"):
        if field in patch:
            setattr(seller, field, patch[field])

    if "default_pricing_mode" in patch:
        mode = patch["default_pricing_mode"]
        if mode not in ("FIXED", "MARKUP"):
            raise ValidationError("default_pricing_mode must be FIXED or MARKUP")
        seller.default_pricing_mode = mode
    if "default_markup_percentage" in patch:
        markup = to_decimal(patch["default_markup_percentage"], "default_markup_percentage")
        if markup < 0:
            raise ValidationError("default_markup_percentage cannot be negative")
        seller.default_markup_percentage = markup

    db.session.commit()
    return seller
