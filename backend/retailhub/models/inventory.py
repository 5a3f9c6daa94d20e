from __future__ import annotations

from ..extensions import db
from retailhub.time_utils import to_utc_z


class Category(db.Model):
    """Item grouping. Category names are globally unique."""
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Item(db.Model):
    """
    Sellable product master data.

    Item names are globally unique. Price is authoritative in cents and is
    snapshotted onto CartItem rows at sale time.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_items_name"),
        db.CheckConstraint("price_cents >= 0", name="ck_items_price_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("items", lazy=True))

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} price_cents={self.price_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "category_id": self.category_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Inventory(db.Model):
    """The single stock container of a store (one-to-one with Store)."""
    __tablename__ = "inventories"
    __table_args__ = (
        db.UniqueConstraint("store_id", name="uq_inventories_store_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", back_populates="inventory")

    def __repr__(self) -> str:
        return f"<Inventory id={self.id} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "store_id": self.store_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryItem(db.Model):
    """
    Stock level of one item in one inventory.

    INVARIANT: quantity is never negative. Sales decrement it with a
    conditional UPDATE (see transaction_service); the check constraint is
    the last line of defence.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("inventory_id", "item_id", name="uq_inventory_items_inventory_item"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventories.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    inventory = db.relationship("Inventory", backref=db.backref("inventory_items", lazy=True))
    item = db.relationship("Item", backref=db.backref("inventory_items", lazy=True))
    location = db.relationship("Location", back_populates="inventory_item", uselist=False)

    def __repr__(self) -> str:
        return (
            f"<InventoryItem id={self.id} inventory_id={self.inventory_id} "
            f"item_id={self.item_id} quantity={self.quantity}>"
        )

    def to_dict(self, include_item: bool = True) -> dict:
        data = {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "location": self.location.to_dict() if self.location else None,
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_item:
            data["item"] = self.item.to_dict() if self.item else None
        return data


class Location(db.Model):
    """Shelf position of an inventory item (aisle / rack / shelf)."""
    __tablename__ = "locations"
    __table_args__ = (
        db.UniqueConstraint("inventory_item_id", name="uq_locations_inventory_item_id"),
        db.Index("ix_locations_rack", "rack"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False)
    aisle = db.Column(db.String(64), nullable=True)
    rack = db.Column(db.String(64), nullable=True)
    shelf = db.Column(db.String(64), nullable=True)

    inventory_item = db.relationship("InventoryItem", back_populates="location")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "aisle": self.aisle,
            "rack": self.rack,
            "shelf": self.shelf,
        }
