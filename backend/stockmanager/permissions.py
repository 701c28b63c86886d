# Overview: Role and subscription-tier gating as pure functions.

"""
Permission model.

Two independent axes decide what a user may do:
- role (OPERATIONS, OWNER, SUPPORT, ADMIN) -> operational permissions
- subscription tier (FREE, BASIC, PRO, ENTERPRISE) -> paid features and limits

Everything here is a pure function of its arguments. Callers (route
decorators) evaluate it before invoking a service; services never do
authorization, only tenant-ownership checks.
"""

from __future__ import annotations


ROLES = ("OPERATIONS", "OWNER", "SUPPORT", "ADMIN")
SUBSCRIPTION_TIERS = ("FREE", "BASIC", "PRO", "ENTERPRISE")

ROLE_PERMISSION_CODES = (
    "canViewAnalytics",
    "canExportReports",
    "canViewCustomerInsights",
    "canManageProducts",
    "canAdjustStock",
    "canCreateBills",
    "canViewProfits",
    "canManageUsers",
)

_NO_PERMISSIONS = {code: False for code in ROLE_PERMISSION_CODES}

ROLE_PERMISSIONS: dict[str, dict[str, bool]] = {
    # Counter staff: billing only
    "OPERATIONS": {**_NO_PERMISSIONS, "canCreateBills": True},
    # Analytics/reports/insights are additionally gated by subscription tier
    "OWNER": {code: True for code in ROLE_PERMISSION_CODES},
    # Platform support: read-only access to seller records, no shop operations
    "SUPPORT": dict(_NO_PERMISSIONS),
    "ADMIN": {code: True for code in ROLE_PERMISSION_CODES},
}

# None means unlimited
SUBSCRIPTION_FEATURES: dict[str, dict] = {
    "FREE": {
        "hasAnalytics": False,
        "hasReports": False,
        "hasExports": False,
        "hasCustomerInsights": False,
        "maxProducts": 50,
        "maxUsers": 2,
    },
    "BASIC": {
        "hasAnalytics": True,
        "hasReports": False,
        "hasExports": False,
        "hasCustomerInsights": False,
        "maxProducts": 200,
        "maxUsers": 5,
    },
    "PRO": {
        "hasAnalytics": True,
        "hasReports": True,
        "hasExports": True,
        "hasCustomerInsights": True,
        "maxProducts": None,
        "maxUsers": 10,
    },
    "ENTERPRISE": {
        "hasAnalytics": True,
        "hasReports": True,
        "hasExports": True,
        "hasCustomerInsights": True,
        "maxProducts": None,
        "maxUsers": None,
    },
}

FEATURES = ("hasAnalytics", "hasReports", "hasExports", "hasCustomerInsights")


def get_role_permissions(role: str | None) -> dict[str, bool]:
    """Unknown roles get no permissions."""
    return dict(ROLE_PERMISSIONS.get(role or "", _NO_PERMISSIONS))


def has_role_permission(role: str | None, permission_code: str) -> bool:
    return get_role_permissions(role).get(permission_code, False)


def get_subscription_features(tier: str | None) -> dict:
    """Unknown tiers fall back to FREE."""
    return dict(SUBSCRIPTION_FEATURES.get(tier or "", SUBSCRIPTION_FEATURES["FREE"]))


def can_access_feature(role: str | None, tier: str | None, feature: str) -> bool:
    """
    Combined role + subscription check for a paid feature.

    - ADMIN bypasses subscription checks
    - OWNER needs the feature in their tier (None limits count as granted)
    - every other role is denied
    """
    if role == "ADMIN":
        return True
    if role == "OWNER":
        value = get_subscription_features(tier).get(feature, False)
        return value is True or value is None
    return False
