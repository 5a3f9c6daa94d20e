from __future__ import annotations

from flask import current_app

from retailhub.errors import NotFoundError
from retailhub.extensions import db
from retailhub.models import Category, Item
from retailhub.services.concurrency import atomic, lock_for_update
from retailhub.validation import ModelValidationPolicy, enforce_rules_item, validate_payload


ITEM_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "price_cents", "category_id"}),
    required_on_create=frozenset({"name", "price_cents", "category_id"}),
)


def _require_categories(category_ids) -> None:
    unique_ids = sorted(set(category_ids))
    found = {
        row.id for row in db.session.query(Category.id).filter(Category.id.in_(unique_ids)).all()
    }
    missing = [i for i in unique_ids if i not in found]
    if missing:
        raise NotFoundError(
            f"One or more categories not found: IDs {', '.join(str(i) for i in missing)}.",
            details={"missing_category_ids": missing},
        )


def create_items(records: list[dict]) -> list[Item]:
    """Create one or many items. Every category must exist; all-or-nothing."""
    patches = []
    for record in records:
        patch = validate_payload(model=Item, payload=record, policy=ITEM_POLICY, partial=False)
        enforce_rules_item(patch)
        patches.append(patch)

    _require_categories(patch["category_id"] for patch in patches)

    with atomic() as session:
        items = [Item(**patch) for patch in patches]
        session.add_all(items)

    current_app.logger.info("Created %s item(s)", len(items))
    return items


def list_items(category_id: int | None = None) -> list[Item]:
    query = db.session.query(Item)
    if category_id is not None:
        query = query.filter_by(category_id=category_id)
    return query.order_by(Item.name.asc()).all()


def get_item(item_id: int) -> Item:
    item = db.session.query(Item).filter_by(id=item_id).first()
    if not item:
        raise NotFoundError("Item not found")
    return item


def update_item(item_id: int, payload: dict) -> Item:
    patch = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=True)
    enforce_rules_item(patch)
    if "category_id" in patch:
        _require_categories([patch["category_id"]])

    with atomic():
        item = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
        if not item:
            raise NotFoundError("Item not found")
        for key, value in patch.items():
            setattr(item, key, value)

    return item
