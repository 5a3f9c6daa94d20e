# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Every action must be attributable. Uses bcrypt for password hashing and
validates password strength.

ACCOUNTS:
- signup creates an ADMIN: the owner of a tenant (its branches and stores)
- ADMIN and MANAGER users create MANAGER / CASHIER staff; the creator is
  recorded as the staff member's manager_id

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters; upper, lower, digit and special char required
- Tokens are managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..errors import PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import User, ROLE_ADMIN, ROLE_MANAGER
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_staff_role,
    enforce_rules_user,
    validate_payload,
)
from .concurrency import atomic
from retailhub.time_utils import utcnow


SIGNUP_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"email", "username", "fullname"}),
    required_on_create=frozenset({"email", "username", "fullname", "password"}),
    extra_fields=frozenset({"password"}),
)

STAFF_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"email", "username", "fullname", "role"}),
    required_on_create=frozenset({"email", "username", "fullname", "password", "role"}),
    extra_fields=frozenset({"password"}),
)


def validate_password_strength(password) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises ValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise ValidationError("Password must be a string")

    if len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise ValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise ValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise ValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise ValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt at the configured cost."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_ROUNDS"])
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash is treated as a
    mismatch.
    """
    if not isinstance(password, str) or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def signup(payload: dict) -> User:
    """
    Public registration. Creates an ADMIN tenant owner.

    Raises ValidationError for missing fields or a weak password and
    ConflictError (via atomic) for a duplicate email or username.
    """
    patch = validate_payload(model=User, payload=payload, policy=SIGNUP_POLICY, partial=False)
    enforce_rules_user(patch)
    password = patch.pop("password")

    with atomic() as session:
        user = User(
            password_hash=hash_password(password),
            role=ROLE_ADMIN,
            manager_id=None,
            **patch,
        )
        session.add(user)

    current_app.logger.info("User %s signed up as %s", user.id, ROLE_ADMIN)
    return user


def create_staff(creator: User, payload: dict) -> User:
    """
    Create a MANAGER or CASHIER account linked to its creator.

    A MANAGER can never create an ADMIN; nobody creates an ADMIN through
    this path.
    """
    if creator.role not in (ROLE_ADMIN, ROLE_MANAGER):
        raise PermissionDeniedError("Forbidden: You do not have the required permissions.")

    patch = validate_payload(model=User, payload=payload, policy=STAFF_POLICY, partial=False)
    enforce_rules_user(patch)

    if creator.role == ROLE_MANAGER and patch["role"] == ROLE_ADMIN:
        raise PermissionDeniedError("Forbidden: Managers cannot create Admin users.")
    enforce_rules_staff_role(patch["role"])

    password = patch.pop("password")

    with atomic() as session:
        user = User(
            password_hash=hash_password(password),
            manager_id=creator.id,
            **patch,
        )
        session.add(user)

    current_app.logger.info("User %s created staff user %s (%s)", creator.id, user.id, user.role)
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email (or username) and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if not isinstance(email, str) or not email.strip():
        return None

    identifier = email.strip()
    user = db.session.query(User).filter(
        db.or_(User.email == identifier.lower(), User.username == identifier),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        with atomic():
            user.last_login_at = utcnow()
        return user

    return None
