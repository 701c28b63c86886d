# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .permissions import can_access_feature, has_role_permission
from .services import auth_service, tenant_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'seller_id')


def require_auth(f):
    """
    Require authentication and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.seller_id: The seller (tenant) of the session; None for platform users
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User or seller deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = auth_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.seller_id = context.seller_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_seller(f):
    """Require a seller-scoped session (platform users without a seller are rejected)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if g.seller_id is None:
            return jsonify({"error": "Seller context required"}), 403
        return f(*args, **kwargs)
    return decorated_function


def require_role(*roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401
            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                    "message": f"Requires role: {', '.join(roles)}"
                }), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def require_permission(permission_code: str):
    """Require a role permission (canManageProducts, canCreateBills, ...)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not has_role_permission(g.current_user.role, permission_code):
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": f"Role {g.current_user.role} lacks {permission_code}"
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def require_feature(feature: str):
    """
    Require a subscription feature (hasReports, hasAnalytics, ...).

    The tier is read from the seller's active subscription at request time.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            tier = tenant_service.get_active_tier(g.seller_id) if g.seller_id else None
            if not can_access_feature(g.current_user.role, tier, feature):
                return jsonify({
                    "error": "Upgrade required",
                    "required_feature": feature,
                    "current_tier": tier,
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
