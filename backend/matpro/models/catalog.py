from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import money_str, new_id


class Store(db.Model):
    """A physical shop. Every ledger row and sale belongs to exactly one."""
    __tablename__ = "stores"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False, unique=True)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)
    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Catalog entry. Managed outside the sync core; pulled by clients.

    updated_at drives pull sync, so every write must bump it.
    """
    __tablename__ = "products"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    unit = db.Column(db.String(32), nullable=True)
    variant_size = db.Column(db.String(64), nullable=True)
    variant_thickness = db.Column(db.String(64), nullable=True)
    retail_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cost_price = db.Column(db.Numeric(12, 2), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r}>"

    def to_dict(self, include_cost: bool = False) -> dict:
        data = {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "variant_size": self.variant_size,
            "variant_thickness": self.variant_thickness,
            "retail_price": money_str(self.retail_price),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        # Cost is owner-only information
        if include_cost:
            data["cost_price"] = money_str(self.cost_price)
        return data
