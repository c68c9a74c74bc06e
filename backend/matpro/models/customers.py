from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import new_id


class Customer(db.Model):
    """
    Credit customer, shared by every store.

    Offline clients create customers with their own ids; push upserts
    name/phone on conflict. updated_at drives pull sync.
    """
    __tablename__ = "customers"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(32), nullable=True, index=True)
    whatsapp = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "whatsapp": self.whatsapp,
            "address": self.address,
            "notes": self.notes,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
