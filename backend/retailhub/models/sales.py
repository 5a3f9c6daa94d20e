from __future__ import annotations

from ..extensions import db
from retailhub.time_utils import to_utc_z, utcnow


class Transaction(db.Model):
    """
    A completed point-of-sale transaction.

    Created only by transaction_service.process_transaction, in the same
    database transaction that decrements stock. total_cents is the sum of
    the cart items' line totals.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    # Python-side default so range filters compare against the same naive UTC clock
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    store = db.relationship("Store", backref=db.backref("transactions", lazy=True))
    cashier = db.relationship("User", backref=db.backref("transactions", lazy=True))

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} store_id={self.store_id} total_cents={self.total_cents}>"

    def to_dict(self, expand: bool = False) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "cashier_id": self.cashier_id,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
        }
        if expand:
            data["store"] = self.store.to_dict() if self.store else None
            data["cashier"] = self.cashier.to_summary() if self.cashier else None
            data["items"] = [ci.to_dict(include_item=True) for ci in self.cart_items]
        else:
            data["items"] = [ci.to_dict() for ci in self.cart_items]
        return data


class CartItem(db.Model):
    """One sale line. unit_price_cents is a snapshot of Item.price_cents."""
    __tablename__ = "cart_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    transaction = db.relationship(
        "Transaction",
        backref=db.backref("cart_items", lazy=True, order_by="CartItem.id"),
    )
    item = db.relationship("Item")

    def to_dict(self, include_item: bool = False) -> dict:
        data = {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
        if include_item:
            data["item"] = self.item.to_dict() if self.item else None
        return data
