# Overview: Service-layer operations for auth; passwords and bearer sessions.

"""
Authentication Service

Identity is established here and handed to the core as explicit
(seller_id, actor_id) arguments; services below this layer never look at
sessions.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12, lowered only in tests)
- Session tokens are 32 random bytes; only their SHA-256 hash is stored
- Sessions expire after SESSION_TTL_HOURS and are revocable on logout
- Inactive users and inactive sellers cannot authenticate
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

import bcrypt
from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import SessionToken, User
from ..permissions import ROLES
from stockmanager.time_utils import utcnow


MIN_PASSWORD_LENGTH = 8


@dataclass
class SessionContext:
    """Authenticated identity resolved from a bearer token."""
    user: User
    session: SessionToken
    seller_id: int | None


def hash_password(password: str) -> str:
    """Hash password using bcrypt (cost factor BCRYPT_ROUNDS, 12 by default)."""
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    *,
    name: str,
    email: str,
    password: str,
    role: str,
    seller_id: int | None = None,
    must_change_password: bool = False,
    commit: bool = True,
) -> User:
    """commit=False only adds and flushes, so an outer unit can own the commit."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of {', '.join(ROLES)}")
    if role in ("OWNER", "OPERATIONS") and seller_id is None:
        raise ValidationError(f"{role} users must belong to a seller")
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("email is required")
    email = email.strip().lower()
    if db.session.query(User).filter_by(email=email).first():
        raise ValidationError("A user with this email already exists", code="DUPLICATE")

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        seller_id=seller_id,
        must_change_password=must_change_password,
    )
    db.session.add(user)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return user


def authenticate(email: str, password: str) -> User | None:
    """Return the active user for valid credentials, else None."""
    user = db.session.query(User).filter_by(email=(email or "").strip().lower()).first()
    if user is None or not user.is_active:
        return None
    if user.seller is not None and not user.seller.is_active:
        return None
    if not verify_password(password or "", user.password_hash):
        return None
    return user


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user: User) -> tuple[SessionToken, str]:
    """
    Create a session for user. Returns (session_record, plaintext_token);
    the plaintext is never stored.
    """
    token = secrets.token_hex(32)
    now = utcnow()
    ttl_hours = current_app.config.get("SESSION_TTL_HOURS", 24)

    session = SessionToken(
        user_id=user.id,
        seller_id=user.seller_id,
        token_hash=hash_token(token),
        created_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if session is None or session.revoked_at is not None:
        return None
    if session.expires_at <= utcnow():
        return None

    user = session.user
    if user is None or not user.is_active:
        return None
    if user.seller is not None and not user.seller.is_active:
        return None

    return SessionContext(user=user, session=session, seller_id=session.seller_id)


def revoke_session(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if session is None or session.revoked_at is not None:
        return False
    session.revoked_at = utcnow()
    db.session.commit()
    return True


def revoke_user_sessions(user_id: int, *, commit: bool = True) -> int:
    """
    Revoke every live session of a user. Returns the number revoked.

    Used on password change and deactivation to force re-authentication on
    all devices.
    """
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(user_id=user_id, revoked_at=None).all()
    for session in sessions:
        session.revoked_at = now
    if commit:
        db.session.commit()
    return len(sessions)


def generate_temporary_password() -> str:
    """Random one-time password handed to admin-onboarded owners."""
    return secrets.token_hex(6) + "A1!"


def change_password(user: User, current_password: str, new_password: str) -> int:
    """
    Replace the user's password after verifying the current one.

    Clears must_change_password and revokes all sessions (the caller logs in
    again). Returns the number of sessions revoked.
    """
    if not isinstance(current_password, str) or not isinstance(new_password, str):
        raise ValidationError("current_password and new_password are required")
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect", code="INVALID_CREDENTIALS")
    if current_password == new_password:
        raise ValidationError("New password must be different from current password")

    user.password_hash = hash_password(new_password)
    user.must_change_password = False
    revoked = revoke_user_sessions(user.id, commit=False)
    db.session.commit()
    return revoked
