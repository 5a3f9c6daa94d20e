"""
Inventory service: the per-store stock container and the items it holds.

STOCK WRITE POLICY (single item and bulk load alike):
- an existing (inventory, item) row is incremented: quantity += n
- otherwise a new row is inserted with quantity n
- an optional location creates or updates the row's Location

Bulk loads are validated up front (inventory exists, every item id exists)
and applied in one unit of work, so a failing batch writes nothing.
Items and categories are never created implicitly.
"""

from __future__ import annotations

from flask import current_app

from retailhub.errors import NotFoundError, ValidationError
from retailhub.extensions import db
from retailhub.models import Inventory, InventoryItem, Item, Location, Store
from retailhub.services.concurrency import atomic, lock_for_update
from retailhub.services.store_service import default_inventory_name, get_store
from retailhub.validation import coerce_int, parse_location


MAX_INVENTORY_NAME = 255


def _clean_name(name) -> str | None:
    if name is None:
        return None
    if not isinstance(name, str):
        raise ValidationError("name must be a string")
    name = name.strip()
    if not name:
        raise ValidationError("name cannot be blank")
    if len(name) > MAX_INVENTORY_NAME:
        raise ValidationError(f"name exceeds max length {MAX_INVENTORY_NAME}")
    return name


def get_inventory(inventory_id: int) -> Inventory:
    inventory = db.session.query(Inventory).filter_by(id=inventory_id).first()
    if not inventory:
        raise NotFoundError(f"Inventory with ID {inventory_id} not found.")
    return inventory


def get_inventory_by_store(store_id: int) -> Inventory:
    inventory = db.session.query(Inventory).filter_by(store_id=store_id).first()
    if not inventory:
        raise NotFoundError("Inventory not found for this store")
    return inventory


def create_inventory(store_id: int, name: str | None = None) -> tuple[Inventory, bool]:
    """
    Create the store's inventory, or return the one it already has.

    Returns (inventory, created). Without a name, the store name is used
    when it already ends in "Inventory", else "<store name> Inventory".
    """
    store = get_store(store_id)
    name = _clean_name(name)

    existing = db.session.query(Inventory).filter_by(store_id=store_id).first()
    if existing:
        return existing, False

    with atomic() as session:
        inventory = Inventory(store_id=store.id, name=name or default_inventory_name(store.name))
        session.add(inventory)

    current_app.logger.info("Created inventory %s for store %s", inventory.id, store_id)
    return inventory, True


def rename_inventory(inventory_id: int, name) -> Inventory:
    name = _clean_name(name)
    if name is None:
        raise ValidationError("Missing required fields: name")

    with atomic():
        inventory = lock_for_update(db.session.query(Inventory).filter_by(id=inventory_id)).first()
        if not inventory:
            raise NotFoundError(f"Inventory with ID {inventory_id} not found.")
        inventory.name = name

    return inventory


def _apply_location(row: InventoryItem, location: dict | None) -> None:
    if not location:
        return
    if row.location is None:
        row.location = Location(**location)
        return
    for key, value in location.items():
        setattr(row.location, key, value)


def _upsert_stock(session, inventory_id: int, item_id: int, quantity: int, location: dict | None) -> InventoryItem:
    row = lock_for_update(
        session.query(InventoryItem).filter_by(inventory_id=inventory_id, item_id=item_id)
    ).first()
    if row:
        row.quantity = InventoryItem.quantity + quantity
    else:
        row = InventoryItem(inventory_id=inventory_id, item_id=item_id, quantity=quantity)
        session.add(row)
    _apply_location(row, location)
    return row


def _require_items(item_ids) -> None:
    unique_ids = sorted(set(item_ids))
    found = {
        row.id for row in db.session.query(Item.id).filter(Item.id.in_(unique_ids)).all()
    }
    missing = [i for i in unique_ids if i not in found]
    if missing:
        raise NotFoundError(
            f"One or more items not found: IDs {', '.join(str(i) for i in missing)}.",
            details={"missing_item_ids": missing},
        )


def add_inventory_item(inventory_id: int, item_id, quantity, location=None) -> InventoryItem:
    item_id = coerce_int("item_id", item_id)
    quantity = coerce_int("quantity", quantity)
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")
    location = parse_location(location)

    get_inventory(inventory_id)
    _require_items([item_id])

    with atomic() as session:
        row = _upsert_stock(session, inventory_id, item_id, quantity, location)

    return row


def load_inventory_items(inventory_id: int, lines: list[dict]) -> list[InventoryItem]:
    """
    Apply a validated batch of {item_id, quantity, location} lines.

    Lines must already be parsed (validation.parse_stock_lines). Raises
    NotFoundError naming the missing ids before anything is written.
    """
    get_inventory(inventory_id)
    _require_items(line["item_id"] for line in lines)

    touched: dict[int, InventoryItem] = {}
    with atomic() as session:
        for line in lines:
            row = _upsert_stock(session, inventory_id, line["item_id"], line["quantity"], line["location"])
            # Flush per line so a repeated item_id increments the row inserted above
            session.flush()
            touched[line["item_id"]] = row

    current_app.logger.info(
        "Loaded %s line(s) into inventory %s (%s distinct items)",
        len(lines), inventory_id, len(touched),
    )
    return list(touched.values())


def list_inventory_items(inventory_id: int) -> list[InventoryItem]:
    get_inventory(inventory_id)
    return (
        db.session.query(InventoryItem)
        .filter_by(inventory_id=inventory_id)
        .order_by(InventoryItem.id.asc())
        .all()
    )


def get_items_by_rack(inventory_id: int, rack: str | None) -> list[InventoryItem]:
    if not rack or not str(rack).strip():
        raise ValidationError("rack query parameter is required")
    rack = str(rack).strip()

    get_inventory(inventory_id)
    rows = (
        db.session.query(InventoryItem)
        .join(Location, Location.inventory_item_id == InventoryItem.id)
        .filter(InventoryItem.inventory_id == inventory_id, Location.rack == rack)
        .order_by(InventoryItem.id.asc())
        .all()
    )
    if not rows:
        raise NotFoundError(f"No items found in rack {rack}")
    return rows


def get_store_items_by_rack(store_id: int) -> list[dict]:
    """
    Every inventory item of a store grouped by rack.

    Returns [{"rack": name, "items": [...]}, ...] ordered by rack name, with
    unlocated rows last under rack None.
    """
    store = db.session.query(Store).filter_by(id=store_id).first()
    if not store:
        raise NotFoundError("Store not found")
    inventory = get_inventory_by_store(store_id)

    rows = (
        db.session.query(InventoryItem)
        .outerjoin(Location, Location.inventory_item_id == InventoryItem.id)
        .filter(InventoryItem.inventory_id == inventory.id)
        .order_by(InventoryItem.id.asc())
        .all()
    )

    groups: dict[str | None, list[dict]] = {}
    for row in rows:
        rack = row.location.rack if row.location else None
        groups.setdefault(rack, []).append(row.to_dict())

    ordered = sorted((r for r in groups if r is not None))
    if None in groups:
        ordered.append(None)
    return [{"rack": rack, "items": groups[rack]} for rack in ordered]
