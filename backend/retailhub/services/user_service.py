# Overview: Service-layer operations for user accounts; encapsulates business logic and database work.

from flask import current_app

from ..errors import NotFoundError, PermissionDeniedError
from ..extensions import db
from ..models import User, ROLE_ADMIN, ROLE_MANAGER
from ..validation import ModelValidationPolicy, enforce_rules_user, validate_payload
from .auth_service import hash_password
from .concurrency import atomic
from . import session_service


UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"email", "username", "fullname", "role", "is_active"}),
    extra_fields=frozenset({"password"}),
)


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def resolve_owner_id(user: User) -> int:
    """
    Return the id of the ADMIN that owns the caller's tenant.

    Walks manager_id upwards until an ADMIN is reached. A chain that ends
    without an ADMIN resolves to its topmost user.
    """
    seen = set()
    current = user
    while current.role != ROLE_ADMIN and current.manager_id is not None:
        if current.id in seen:
            break
        seen.add(current.id)
        parent = db.session.get(User, current.manager_id)
        if parent is None:
            break
        current = parent
    return current.id


def _managed_ids(root_id: int) -> set[int]:
    """root_id plus every user it manages, transitively."""
    member_ids = {root_id}
    frontier = [root_id]
    while frontier:
        children = db.session.query(User.id).filter(
            User.manager_id.in_(frontier),
        ).all()
        frontier = [row.id for row in children if row.id not in member_ids]
        member_ids.update(frontier)
    return member_ids


def list_users(caller: User) -> list[User]:
    """Every user in the caller's tenant: the owner and everyone it manages, transitively."""
    member_ids = _managed_ids(resolve_owner_id(caller))
    return db.session.query(User).filter(User.id.in_(member_ids)).order_by(User.id.asc()).all()


def get_tenant_user(caller: User, user_id: int) -> User:
    """Like get_user, but users outside the caller's tenant are reported as not found."""
    user = get_user(user_id)
    if resolve_owner_id(user) != resolve_owner_id(caller):
        raise NotFoundError("User not found")
    return user


def ensure_can_manage(actor: User, target: User) -> None:
    """A MANAGER may only change itself and the staff below it."""
    if actor.role != ROLE_MANAGER or target.id == actor.id:
        return
    if target.id not in _managed_ids(actor.id):
        raise PermissionDeniedError("Forbidden: Managers can only manage their own staff.")


def update_user(actor: User, user_id: int, payload: dict) -> User:
    """
    Partial update within the actor's tenant.

    The password is re-hashed only when supplied, and every live token of
    the user is revoked in the same unit. A MANAGER cannot grant ADMIN or
    touch users outside its own staff.
    """
    user = get_tenant_user(actor, user_id)
    ensure_can_manage(actor, user)

    patch = validate_payload(model=User, payload=payload, policy=UPDATE_POLICY, partial=True)
    enforce_rules_user(patch)

    if patch.get("role") == ROLE_ADMIN and actor.role == ROLE_MANAGER:
        raise PermissionDeniedError("Forbidden: Managers cannot grant the Admin role.")

    password = patch.pop("password", None)
    password_changed = password is not None

    with atomic() as session:
        for key, value in patch.items():
            setattr(user, key, value)
        if password_changed:
            user.password_hash = hash_password(password)
            session_service.revoke_user_tokens(session, user.id, reason="Password changed")

    fields = sorted(patch) + (["password"] if password_changed else [])
    current_app.logger.info("User %s updated user %s fields=%s", actor.id, user.id, fields)
    return user
