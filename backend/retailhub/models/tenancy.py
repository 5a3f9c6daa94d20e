from __future__ import annotations

from ..extensions import db
from retailhub.time_utils import to_utc_z


class Branch(db.Model):
    """
    Organizational unit owned by an ADMIN. A branch has many stores.
    """
    __tablename__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_branches_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("branches", lazy=True))

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r}>"

    def to_dict(self, include_owner: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "owner_id": self.owner_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_owner:
            data["owner"] = self.owner.to_summary() if self.owner else None
        return data


class Store(db.Model):
    """
    Physical sales location inside a branch.

    Every store has exactly one Inventory, created together with the store.
    Tax and service charge are stored in basis points (825 = 8.25%).
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_stores_name"),
        db.UniqueConstraint("code", name="uq_stores_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    government_tax_bps = db.Column(db.Integer, nullable=False, default=0)
    service_charge_bps = db.Column(db.Integer, nullable=False, default=0)
    outlet_type = db.Column(db.String(32), nullable=False)
    wifi_ssid = db.Column(db.String(64), nullable=True)

    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    branch = db.relationship("Branch", backref=db.backref("stores", lazy=True))
    owner = db.relationship("User", backref=db.backref("stores", lazy=True))
    inventory = db.relationship("Inventory", back_populates="store", uselist=False)

    def __repr__(self) -> str:
        return f"<Store id={self.id} code={self.code!r} branch_id={self.branch_id}>"

    def to_dict(self, include_related: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "address": self.address,
            "phone": self.phone,
            "government_tax_bps": self.government_tax_bps,
            "service_charge_bps": self.service_charge_bps,
            "outlet_type": self.outlet_type,
            "wifi_ssid": self.wifi_ssid,
            "branch_id": self.branch_id,
            "owner_id": self.owner_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_related:
            data["branch"] = self.branch.to_dict() if self.branch else None
            data["owner"] = self.owner.to_summary() if self.owner else None
            data["inventory"] = self.inventory.to_dict() if self.inventory else None
        return data


class StoreStaff(db.Model):
    """A user working at a store, with a store-scoped role (e.g. SHIFT_LEAD)."""
    __tablename__ = "store_staff"
    __table_args__ = (
        db.UniqueConstraint("store_id", "user_id", name="uq_store_staff_store_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False)

    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("staff", lazy=True))
    user = db.relationship("User", backref=db.backref("store_assignments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "user_id": self.user_id,
            "role": self.role,
            "assigned_at": to_utc_z(self.assigned_at),
            "user": self.user.to_summary() if self.user else None,
        }
