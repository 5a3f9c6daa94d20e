from __future__ import annotations

from flask import current_app

from retailhub.errors import NotFoundError
from retailhub.extensions import db
from retailhub.models import Branch, User
from retailhub.services.concurrency import atomic, lock_for_update
from retailhub.validation import ModelValidationPolicy, validate_payload


BRANCH_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "address", "phone"}),
    required_on_create=frozenset({"name", "address"}),
)


def create_branch(owner: User, payload: dict) -> Branch:
    patch = validate_payload(model=Branch, payload=payload, policy=BRANCH_POLICY, partial=False)

    with atomic() as session:
        branch = Branch(owner_id=owner.id, **patch)
        session.add(branch)

    current_app.logger.info("User %s created branch %s", owner.id, branch.id)
    return branch


def get_branch(branch_id: int) -> Branch:
    branch = db.session.query(Branch).filter_by(id=branch_id).first()
    if not branch:
        raise NotFoundError("Branch not found")
    return branch


def list_owned_branches(owner_id: int) -> list[Branch]:
    return db.session.query(Branch).filter_by(owner_id=owner_id).order_by(Branch.name.asc()).all()


def update_branch(branch_id: int, payload: dict) -> Branch:
    patch = validate_payload(model=Branch, payload=payload, policy=BRANCH_POLICY, partial=True)

    with atomic():
        branch = lock_for_update(db.session.query(Branch).filter_by(id=branch_id)).first()
        if not branch:
            raise NotFoundError("Branch not found")
        for key, value in patch.items():
            setattr(branch, key, value)

    return branch
