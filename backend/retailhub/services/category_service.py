from __future__ import annotations

from flask import current_app

from retailhub.errors import NotFoundError
from retailhub.extensions import db
from retailhub.models import Category, Item
from retailhub.services.concurrency import atomic
from retailhub.validation import ModelValidationPolicy, validate_payload


CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name"}),
    required_on_create=frozenset({"name"}),
)


def create_categories(records: list[dict]) -> list[Category]:
    """Create one or many categories. All-or-nothing; a duplicate name is 409."""
    patches = [
        validate_payload(model=Category, payload=record, policy=CATEGORY_POLICY, partial=False)
        for record in records
    ]

    with atomic() as session:
        categories = [Category(**patch) for patch in patches]
        session.add_all(categories)

    current_app.logger.info("Created %s categor%s", len(categories), "y" if len(categories) == 1 else "ies")
    return categories


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    category = db.session.query(Category).filter_by(id=category_id).first()
    if not category:
        raise NotFoundError("Category not found")
    return category


def update_category(category_id: int, payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)

    with atomic():
        category = get_category(category_id)
        for key, value in patch.items():
            setattr(category, key, value)

    return category


def list_category_items(category_id: int) -> list[Item]:
    get_category(category_id)
    return db.session.query(Item).filter_by(category_id=category_id).order_by(Item.name.asc()).all()
