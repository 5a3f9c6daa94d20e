from __future__ import annotations

from flask import current_app

from retailhub.errors import NotFoundError, ValidationError
from retailhub.extensions import db
from retailhub.models import Branch, Inventory, Store, StoreStaff, User
from retailhub.services.concurrency import atomic, lock_for_update
from retailhub.validation import (
    ModelValidationPolicy,
    coerce_int,
    enforce_rules_store,
    validate_payload,
)


STORE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "code", "address", "phone",
        "government_tax_bps", "service_charge_bps", "outlet_type", "wifi_ssid",
    }),
    required_on_create=frozenset({"name", "code", "address", "outlet_type"}),
)


def default_inventory_name(store_name: str) -> str:
    if " inventory" in store_name.lower():
        return store_name
    return f"{store_name} Inventory"


def create_store(owner: User, branch_id: int, payload: dict) -> Store:
    """
    Create a store under a branch together with its single Inventory.

    Both rows are written in one unit of work: a duplicate name or code
    leaves neither behind.
    """
    patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=False)
    enforce_rules_store(patch)

    if not db.session.query(Branch).filter_by(id=branch_id).first():
        raise NotFoundError("Branch not found")

    with atomic() as session:
        store = Store(branch_id=branch_id, owner_id=owner.id, **patch)
        session.add(store)
        session.flush()
        session.add(Inventory(store_id=store.id, name=default_inventory_name(store.name)))

    current_app.logger.info("User %s created store %s in branch %s", owner.id, store.id, branch_id)
    return store


def get_store(store_id: int) -> Store:
    store = db.session.query(Store).filter_by(id=store_id).first()
    if not store:
        raise NotFoundError("Store not found")
    return store


def list_branch_stores(branch_id: int) -> list[Store]:
    if not db.session.query(Branch).filter_by(id=branch_id).first():
        raise NotFoundError("Branch not found")
    return db.session.query(Store).filter_by(branch_id=branch_id).order_by(Store.name.asc()).all()


def list_owned_stores(owner_id: int) -> list[Store]:
    return db.session.query(Store).filter_by(owner_id=owner_id).order_by(Store.name.asc()).all()


def update_store(store_id: int, payload: dict) -> Store:
    patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=True)
    enforce_rules_store(patch)

    with atomic():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise NotFoundError("Store not found")
        for key, value in patch.items():
            setattr(store, key, value)

    return store


def _parse_assignment(raw, idx: int | None = None) -> tuple[int, str]:
    where = "" if idx is None else f"[{idx}]"
    if not isinstance(raw, dict):
        raise ValidationError(f"staff{where} must be an object")
    if raw.get("user_id") is None or not raw.get("role"):
        raise ValidationError("Missing required fields: user_id and role")
    role = str(raw["role"]).strip()
    if len(role) > 32:
        raise ValidationError("role exceeds max length 32")
    return coerce_int(f"staff{where}.user_id", raw["user_id"]), role


def add_staff(store_id: int, payload) -> list[StoreStaff]:
    """
    Assign one user ({user_id, role}) or many ([{user_id, role}, ...]).

    All assignments succeed or none do; a duplicate assignment is 409.
    """
    if isinstance(payload, list):
        if not payload:
            raise ValidationError("staff must be a non-empty list")
        assignments = [_parse_assignment(raw, idx) for idx, raw in enumerate(payload)]
    else:
        assignments = [_parse_assignment(payload)]

    get_store(store_id)

    user_ids = {user_id for user_id, _ in assignments}
    found = {row.id for row in db.session.query(User.id).filter(User.id.in_(user_ids)).all()}
    missing = sorted(user_ids - found)
    if missing:
        raise NotFoundError(
            f"One or more users not found: IDs {', '.join(str(i) for i in missing)}",
            details={"missing_user_ids": missing},
        )

    with atomic() as session:
        rows = [StoreStaff(store_id=store_id, user_id=user_id, role=role) for user_id, role in assignments]
        session.add_all(rows)

    return rows


def list_staff(store_id: int) -> list[StoreStaff]:
    get_store(store_id)
    return db.session.query(StoreStaff).filter_by(store_id=store_id).order_by(StoreStaff.id.asc()).all()


def remove_staff(store_id: int, user_ids: list[int]) -> int:
    """Remove the given users from the store. Returns how many assignments were deleted."""
    get_store(store_id)
    with atomic() as session:
        removed = session.query(StoreStaff).filter(
            StoreStaff.store_id == store_id,
            StoreStaff.user_id.in_(user_ids),
        ).delete(synchronize_session=False)
    return removed
