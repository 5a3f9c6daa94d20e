"""
Transaction Service - point-of-sale processing

A sale is one unit of work: every stock decrement, the Transaction row and
its CartItems commit together or not at all.

Stock is decremented with a conditional UPDATE

    UPDATE inventory_items SET quantity = quantity - :n
    WHERE inventory_id = :inv AND item_id = :item AND quantity >= :n

so the availability check and the write are a single statement. Two
concurrent sales can never both succeed against the same units, and no
application-level lock or retry is needed. Zero affected rows means the
row is missing or short; the whole sale is rejected with 409.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.orm import joinedload, selectinload

from retailhub.errors import InsufficientStockError, NotFoundError, ValidationError
from retailhub.extensions import db
from retailhub.models import CartItem, Inventory, InventoryItem, Item, Store, Transaction, User
from retailhub.services.concurrency import atomic


def _decrement_stock(session, inventory_id: int, item_id: int, quantity: int) -> None:
    result = session.execute(
        update(InventoryItem)
        .where(
            InventoryItem.inventory_id == inventory_id,
            InventoryItem.item_id == item_id,
            InventoryItem.quantity >= quantity,
        )
        .values(quantity=InventoryItem.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        available = session.query(InventoryItem.quantity).filter_by(
            inventory_id=inventory_id, item_id=item_id,
        ).scalar()
        raise InsufficientStockError(item_id, quantity, available)


def process_transaction(
    store_id: int,
    cashier_id: int,
    lines: list[dict],
    inventory_id: int | None = None,
) -> Transaction:
    """
    Record a sale and deduct its stock atomically.

    lines: parsed [{item_id, quantity}] (validation.parse_sale_lines), applied
    in input order. Unit prices are snapshotted from Item.price_cents and
    total_cents is the sum of line totals.

    Raises:
        NotFoundError: unknown store or cashier, or the store has no inventory
        ValidationError: inventory_id given but not the store's inventory
        InsufficientStockError: a line cannot be covered (nothing is written)
    """
    store = db.session.query(Store).filter_by(id=store_id).first()
    if not store:
        raise NotFoundError("Store not found")

    cashier = db.session.get(User, cashier_id)
    if not cashier:
        raise NotFoundError("Cashier not found")

    inventory = db.session.query(Inventory).filter_by(store_id=store_id).first()
    if not inventory:
        raise NotFoundError("Inventory not found for this store")
    if inventory_id is not None and inventory_id != inventory.id:
        raise ValidationError("inventory_id does not belong to this store")

    with atomic() as session:
        for line in lines:
            _decrement_stock(session, inventory.id, line["item_id"], line["quantity"])

        item_ids = {line["item_id"] for line in lines}
        prices = {
            row.id: row.price_cents
            for row in session.query(Item.id, Item.price_cents).filter(Item.id.in_(item_ids)).all()
        }

        transaction = Transaction(store_id=store.id, cashier_id=cashier.id)
        total = 0
        for line in lines:
            unit_price = prices[line["item_id"]]
            line_total = unit_price * line["quantity"]
            total += line_total
            transaction.cart_items.append(CartItem(
                item_id=line["item_id"],
                quantity=line["quantity"],
                unit_price_cents=unit_price,
                line_total_cents=line_total,
            ))
        transaction.total_cents = total
        session.add(transaction)

    current_app.logger.info(
        "Processed transaction %s: store=%s cashier=%s lines=%s total_cents=%s",
        transaction.id, store.id, cashier.id, len(lines), total,
    )
    return transaction


def _expanded_query():
    return db.session.query(Transaction).options(
        joinedload(Transaction.store),
        joinedload(Transaction.cashier),
        selectinload(Transaction.cart_items).joinedload(CartItem.item),
    )


def list_store_transactions(
    store_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Transaction]:
    """Transactions of a store, newest first, with inclusive created_at bounds."""
    if not db.session.query(Store).filter_by(id=store_id).first():
        raise NotFoundError("Store not found")

    query = _expanded_query().filter(Transaction.store_id == store_id)
    if start is not None:
        query = query.filter(Transaction.created_at >= start)
    if end is not None:
        query = query.filter(Transaction.created_at <= end)

    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()


def get_transaction(transaction_id: int) -> Transaction:
    transaction = _expanded_query().filter(Transaction.id == transaction_id).first()
    if not transaction:
        raise NotFoundError("Transaction not found")
    return transaction
