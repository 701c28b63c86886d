# Overview: Service-layer operations for a seller's staff accounts.

"""
User Management Service

Owners manage the OWNER / OPERATIONS accounts of their own shop. The number
of active accounts is capped by the subscription tier (maxUsers; None means
unlimited). Platform accounts (ADMIN, SUPPORT) are never visible here.

MULTI-TENANT: users of another seller are reported as not found.
"""

from __future__ import annotations

from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import User
from ..permissions import get_subscription_features
from . import auth_service
from .tenant_service import get_active_tier


SHOP_ROLES = ("OWNER", "OPERATIONS")


def get_user_limit(seller_id: int) -> int | None:
    return get_subscription_features(get_active_tier(seller_id))["maxUsers"]


def _check_user_limit(seller_id: int) -> None:
    limit = get_user_limit(seller_id)
    if limit is None:
        return
    active = User.query.filter_by(seller_id=seller_id, is_active=True).count()
    if active >= limit:
        raise PermissionDeniedError(
            f"User limit reached ({limit}). Upgrade your plan.",
            details={"max_users": limit},
        )


def get_user(seller_id: int, user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id, seller_id=seller_id).first()
    if user is None or user.role not in SHOP_ROLES:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user


def list_users(seller_id: int, *, include_inactive: bool = False) -> list[User]:
    query = User.query.filter(User.seller_id == seller_id, User.role.in_(SHOP_ROLES))
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(User.name.asc(), User.id.asc()).all()


def create_shop_user(
    seller_id: int,
    *,
    name: str,
    email: str,
    password: str,
    role: str = "OPERATIONS",
) -> User:
    if role not in SHOP_ROLES:
        raise ValidationError(f"role must be one of {', '.join(SHOP_ROLES)}")
    _check_user_limit(seller_id)
    return auth_service.create_user(
        name=name, email=email, password=password, role=role, seller_id=seller_id,
    )


def update_shop_user(seller_id: int, user_id: int, patch: dict, *, actor_id: int) -> User:
    """
    Rename, change role, or (de)activate a shop user.

    An owner cannot demote or deactivate their own account; deactivation
    revokes every session of the user.
    """
    user = get_user(seller_id, user_id)
    changes = {}

    if "name" in patch:
        name = patch["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name is required")
        changes["name"] = name.strip()

    if "role" in patch:
        role = patch["role"]
        if role not in SHOP_ROLES:
            raise ValidationError(f"role must be one of {', '.join(SHOP_ROLES)}")
        if user.id == actor_id and role != user.role:
            raise ValidationError("You cannot change your own role")
        changes["role"] = role

    if "is_active" in patch:
        is_active = patch["is_active"]
        if not isinstance(is_active, bool):
            raise ValidationError("is_active must be a boolean")
        if not is_active and user.id == actor_id:
            raise ValidationError("You cannot deactivate your own account")
        if is_active and not user.is_active:
            _check_user_limit(seller_id)
        changes["is_active"] = is_active

    if changes.get("is_active") is False and user.is_active:
        auth_service.revoke_user_sessions(user.id, commit=False)
    for key, value in changes.items():
        setattr(user, key, value)

    db.session.commit()
    return user
