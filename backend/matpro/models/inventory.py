from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import new_id


EVENT_RECEIVE = "RECEIVE"
EVENT_SALE = "SALE"
EVENT_ADJUSTMENT = "ADJUSTMENT"
EVENT_TRANSFER = "TRANSFER"
EVENT_TYPES = (EVENT_RECEIVE, EVENT_SALE, EVENT_ADJUSTMENT, EVENT_TRANSFER)

REFERENCE_SALE = "SALE"
REFERENCE_SALE_VOID = "SALE_VOID"
REFERENCE_APPROVAL_REQUEST = "APPROVAL_REQUEST"


class StockEvent(db.Model):
    """
    One signed quantity movement for a (product, store) pair.

    APPEND-ONLY: rows are never updated or deleted. On-hand quantity is the
    sum of quantity over every event for the pair; reversals are new rows
    carrying the additive inverse.
    """
    __tablename__ = "stock_events"
    __table_args__ = (
        db.CheckConstraint("quantity <> 0", name="ck_stock_events_quantity_nonzero"),
        db.Index("ix_stock_events_product_store_created", "product_id", "store_id", "created_at"),
        db.Index("ix_stock_events_store_synced", "store_id", "synced_at"),
        db.Index("ix_stock_events_reference", "reference_type", "reference_id"),
    )

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    event_type = db.Column(db.String(16), nullable=False, index=True)
    product_id = db.Column(db.String(64), db.ForeignKey("products.id"), nullable=False)
    store_id = db.Column(db.String(64), db.ForeignKey("stores.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=True)
    # Business time (client clock for pushed events)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    # System time of the merge; the pull watermark
    synced_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "product_id": self.product_id,
            "store_id": self.store_id,
            "quantity": self.quantity,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "synced_at": to_utc_z(self.synced_at),
        }


REQUEST_TYPE_INVENTORY_ADJUSTMENT = "INVENTORY_ADJUSTMENT"

APPROVAL_PENDING = "PENDING"
APPROVAL_APPROVED = "APPROVED"
APPROVAL_REJECTED = "REJECTED"


class ApprovalRequest(db.Model):
    """
    Privileged inventory change awaiting review.

    PENDING -> APPROVED (emits one ADJUSTMENT event) or REJECTED (emits none).
    Terminal once reviewed.
    """
    __tablename__ = "approval_requests"
    __table_args__ = (
        db.Index("ix_approval_requests_store_status", "store_id", "status"),
    )

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    request_type = db.Column(db.String(32), nullable=False, default=REQUEST_TYPE_INVENTORY_ADJUSTMENT)
    store_id = db.Column(db.String(64), db.ForeignKey("stores.id"), nullable=False)
    product_id = db.Column(db.String(64), db.ForeignKey("products.id"), nullable=False)
    requested_quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=APPROVAL_PENDING, index=True)

    requested_by = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=True)
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    reviewed_by = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    review_notes = db.Column(db.Text, nullable=True)

    # Optimistic locking: two reviewers racing on one request
    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    product = db.relationship("Product")
    store = db.relationship("Store")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_type": self.request_type,
            "store_id": self.store_id,
            "store_name": self.store.name if self.store else None,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "requested_quantity": self.requested_quantity,
            "reason": self.reason,
            "status": self.status,
            "requested_by": self.requested_by,
            "requested_at": to_utc_z(self.requested_at),
            "reviewed_by": self.reviewed_by,
            "reviewed_at": to_utc_z(self.reviewed_at),
            "review_notes": self.review_notes,
        }
