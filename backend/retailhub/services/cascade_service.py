"""
Cascading deletion.

Each public function deletes a parent and everything that depends on it,
child tables first, inside one atomic() unit: any failure rolls the whole
cascade back and leaves every row in place.

ORDER:
- inventory: Location -> InventoryItem -> Inventory
- item:      (409 if sold) Location -> InventoryItem -> Item
- category:  (409 if any item sold) Location -> InventoryItem -> Item -> Category
- store:     CartItem -> Transaction -> StoreStaff -> inventory -> Store
- branch:    store cascade for each store -> Branch
- user:      (409 while owning branches/stores or having sales)
             SessionToken -> StoreStaff -> subordinates' manager_id -> User

Sales history is kept: items that appear on a CartItem cannot be deleted.
Deletes are bulk statements, so nothing depends on ORM relationship cascades.
"""

from __future__ import annotations

from flask import current_app

from retailhub.errors import ConflictError, NotFoundError
from retailhub.extensions import db
from retailhub.models import (
    Branch,
    CartItem,
    Category,
    Inventory,
    InventoryItem,
    Item,
    Location,
    SessionToken,
    Store,
    StoreStaff,
    Transaction,
    User,
)
from retailhub.services.concurrency import atomic


def _bulk_delete(session, model, *criteria) -> int:
    return session.query(model).filter(*criteria).delete(synchronize_session=False)


def _delete_stock_rows(session, *criteria) -> int:
    """Delete the InventoryItems matching criteria and their Locations."""
    row_ids = session.query(InventoryItem.id).filter(*criteria)
    _bulk_delete(session, Location, Location.inventory_item_id.in_(row_ids.scalar_subquery()))
    return _bulk_delete(session, InventoryItem, InventoryItem.id.in_(row_ids.scalar_subquery()))


def _cascade_inventory(session, inventory_id: int) -> None:
    _delete_stock_rows(session, InventoryItem.inventory_id == inventory_id)
    _bulk_delete(session, Inventory, Inventory.id == inventory_id)


def _cascade_store(session, store_id: int) -> None:
    transaction_ids = session.query(Transaction.id).filter(Transaction.store_id == store_id)
    _bulk_delete(session, CartItem, CartItem.transaction_id.in_(transaction_ids.scalar_subquery()))
    _bulk_delete(session, Transaction, Transaction.store_id == store_id)
    _bulk_delete(session, StoreStaff, StoreStaff.store_id == store_id)
    for (inventory_id,) in session.query(Inventory.id).filter(Inventory.store_id == store_id).all():
        _cascade_inventory(session, inventory_id)
    _bulk_delete(session, Store, Store.id == store_id)


def _require(model, record_id: int, label: str):
    record = db.session.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{label} not found")
    return record


def delete_inventory(inventory_id: int) -> None:
    _require(Inventory, inventory_id, "Inventory")
    with atomic() as session:
        _cascade_inventory(session, inventory_id)
    current_app.logger.info("Deleted inventory %s with its stock rows", inventory_id)


def delete_item(item_id: int) -> None:
    _require(Item, item_id, "Item")
    with atomic() as session:
        if session.query(CartItem.id).filter(CartItem.item_id == item_id).first():
            raise ConflictError("Item has recorded sales and cannot be deleted")
        removed = _delete_stock_rows(session, InventoryItem.item_id == item_id)
        _bulk_delete(session, Item, Item.id == item_id)
    current_app.logger.info("Deleted item %s and %s stock row(s)", item_id, removed)


def delete_category(category_id: int) -> None:
    _require(Category, category_id, "Category")
    with atomic() as session:
        item_ids = session.query(Item.id).filter(Item.category_id == category_id)
        if session.query(CartItem.id).filter(CartItem.item_id.in_(item_ids.scalar_subquery())).first():
            raise ConflictError("Category has items with recorded sales and cannot be deleted")
        _delete_stock_rows(session, InventoryItem.item_id.in_(item_ids.scalar_subquery()))
        removed = _bulk_delete(session, Item, Item.category_id == category_id)
        _bulk_delete(session, Category, Category.id == category_id)
    current_app.logger.info("Deleted category %s and %s item(s)", category_id, removed)


def delete_store(store_id: int) -> None:
    _require(Store, store_id, "Store")
    with atomic() as session:
        _cascade_store(session, store_id)
    current_app.logger.info("Deleted store %s with its inventory, staff and transactions", store_id)


def delete_branch(branch_id: int) -> None:
    _require(Branch, branch_id, "Branch")
    with atomic() as session:
        store_ids = [row.id for row in session.query(Store.id).filter(Store.branch_id == branch_id).all()]
        for store_id in store_ids:
            _cascade_store(session, store_id)
        _bulk_delete(session, Branch, Branch.id == branch_id)
    current_app.logger.info("Deleted branch %s and %s store(s)", branch_id, len(store_ids))


def delete_user(user_id: int) -> None:
    _require(User, user_id, "User")
    with atomic() as session:
        if session.query(Branch.id).filter(Branch.owner_id == user_id).first():
            raise ConflictError("User still owns branches")
        if session.query(Store.id).filter(Store.owner_id == user_id).first():
            raise ConflictError("User still owns stores")
        if session.query(Transaction.id).filter(Transaction.cashier_id == user_id).first():
            raise ConflictError("User has recorded transactions and cannot be deleted")

        _bulk_delete(session, SessionToken, SessionToken.user_id == user_id)
        _bulk_delete(session, StoreStaff, StoreStaff.user_id == user_id)
        session.query(User).filter(User.manager_id == user_id).update(
            {"manager_id": None}, synchronize_session=False,
        )
        _bulk_delete(session, User, User.id == user_id)
    current_app.logger.info("Deleted user %s", user_id)
