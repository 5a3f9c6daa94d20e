# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

Secure session management with expiry and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

TOKEN TYPES:
- ACCESS: sent as "Authorization: Bearer <token>", lives
  ACCESS_TOKEN_TTL_MINUTES (default 15)
- REFRESH: exchanged at /api/users/refresh for a new ACCESS token, lives
  REFRESH_TOKEN_TTL_DAYS (default 7)

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Revocable on logout or security events
- Tracks client IP and user agent for security monitoring
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..errors import AuthenticationError
from ..extensions import db
from ..models import SessionToken, User
from ..models.auth import TOKEN_ACCESS, TOKEN_REFRESH
from .concurrency import atomic
from retailhub.time_utils import utcnow


# Revoked/expired rows older than this are purged by cleanup_expired_sessions
CLEANUP_RETENTION = timedelta(days=30)


@dataclass
class SessionContext:
    """Authenticated identity attached to the request by require_auth."""
    user: User
    session: SessionToken


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy (unlike passwords), so SHA-256 is
    sufficient. Returns hex-encoded hash string.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _ttl(token_type: str) -> timedelta:
    if token_type == TOKEN_REFRESH:
        return timedelta(days=current_app.config["REFRESH_TOKEN_TTL_DAYS"])
    return timedelta(minutes=current_app.config["ACCESS_TOKEN_TTL_MINUTES"])


def _new_token(session, user_id: int, token_type: str, user_agent, ip_address) -> str:
    plaintext_token = generate_token()
    now = utcnow()
    session.add(SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        token_type=token_type,
        created_at=now,
        last_used_at=now,
        expires_at=now + _ttl(token_type),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    ))
    return plaintext_token


def issue_tokens(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> TokenPair:
    """Issue an ACCESS + REFRESH pair for a freshly authenticated user."""
    with atomic() as session:
        access = _new_token(session, user_id, TOKEN_ACCESS, user_agent, ip_address)
        refresh = _new_token(session, user_id, TOKEN_REFRESH, user_agent, ip_address)
    return TokenPair(access_token=access, refresh_token=refresh)


def _lookup(token: str, token_type: str) -> SessionToken | None:
    if not token:
        return None
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        token_type=token_type,
        is_revoked=False,
    ).first()
    if not session:
        return None
    if session.expires_at < utcnow():
        return None
    if not session.user or not session.user.is_active:
        return None
    return session


def validate_session(token: str) -> SessionContext | None:
    """
    Validate an ACCESS token and return SessionContext if valid.

    Returns None if the token is unknown, expired, revoked, a REFRESH token,
    or belongs to a deactivated user. Updates last_used_at on success.
    """
    session = _lookup(token, TOKEN_ACCESS)
    if not session:
        return None

    with atomic():
        session.last_used_at = utcnow()

    return SessionContext(user=session.user, session=session)


def refresh_access_token(
    refresh_token: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> str:
    """
    Exchange a valid REFRESH token for a new ACCESS token.

    Raises AuthenticationError for an invalid, expired or revoked token.
    """
    session = _lookup(refresh_token, TOKEN_REFRESH)
    if not session:
        raise AuthenticationError("Invalid or expired refresh token")

    with atomic() as db_session:
        session.last_used_at = utcnow()
        access = _new_token(db_session, session.user_id, TOKEN_ACCESS, user_agent, ip_address)
    return access


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke a token of either type.

    Returns True if a live token was revoked, False if not found.
    """
    if not token:
        return False

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    with atomic():
        session.is_revoked = True
        session.revoked_at = utcnow()
        session.revoked_reason = reason
    return True


def revoke_user_tokens(session, user_id: int, reason: str) -> int:
    """
    Revoke all live tokens for a user. Returns count revoked.

    Takes the caller's session so a password change and the revocation
    commit or roll back together.
    """
    return session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False,
    ).update(
        {"is_revoked": True, "revoked_at": utcnow(), "revoked_reason": reason},
        synchronize_session=False,
    )


def cleanup_expired_sessions() -> int:
    """
    Delete expired and revoked tokens older than CLEANUP_RETENTION.

    Returns count of tokens deleted. Intended for a periodic job
    (flask maintenance cleanup-sessions).
    """
    now = utcnow()
    cutoff = now - CLEANUP_RETENTION

    with atomic() as session:
        deleted = session.query(SessionToken).filter(
            db.or_(
                SessionToken.expires_at < now,
                SessionToken.is_revoked.is_(True),
            ),
            SessionToken.created_at < cutoff,
        ).delete(synchronize_session=False)

    current_app.logger.info("Purged %s expired or revoked session tokens", deleted)
    return deleted
