from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import money_str, new_id


SALE_TYPE_CASH = "CASH"
SALE_TYPE_PARTIAL = "PARTIAL"
SALE_TYPE_CREDIT = "CREDIT"
SALE_TYPES = (SALE_TYPE_CASH, SALE_TYPE_PARTIAL, SALE_TYPE_CREDIT)

# Sale types that leave a receivable and therefore need a customer
CUSTOMER_REQUIRED_SALE_TYPES = (SALE_TYPE_PARTIAL, SALE_TYPE_CREDIT)

SALE_STATUS_ACTIVE = "ACTIVE"
SALE_STATUS_VOID = "VOID"
SALE_STATUSES = (SALE_STATUS_ACTIVE, SALE_STATUS_VOID)


class Sale(db.Model):
    """
    Sale document.

    INVARIANTS:
    - total_amount = subtotal - discount_amount
    - amount_due = total_amount - amount_paid, always; amount_paid and
      amount_due only ever move together by the same delta.
    - Voiding never deletes the sale, its lines or its SALE stock events.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_store_synced", "store_id", "synced_at"),
        db.Index("ix_sales_store_status_created", "store_id", "status", "created_at"),
    )

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    sale_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    store_id = db.Column(db.String(64), db.ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = db.Column(db.String(64), db.ForeignKey("customers.id"), nullable=True, index=True)
    sale_type = db.Column(db.String(16), nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    amount_due = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_ACTIVE, index=True)

    # Void audit trail
    void_reason = db.Column(db.String(255), nullable=True)
    voided_by = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=True)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=True)
    # Client-observed time for pushed sales
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    # Server time of the last server-side write; the pull watermark
    synced_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    store = db.relationship("Store")
    customer = db.relationship("Customer")

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_number": self.sale_number,
            "store_id": self.store_id,
            "store_name": self.store.name if self.store else None,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "sale_type": self.sale_type,
            "subtotal": money_str(self.subtotal),
            "discount_amount": money_str(self.discount_amount),
            "total_amount": money_str(self.total_amount),
            "amount_paid": money_str(self.amount_paid),
            "amount_due": money_str(self.amount_due),
            "status": self.status,
            "void_reason": self.void_reason,
            "voided_by": self.voided_by,
            "voided_at": to_utc_z(self.voided_at),
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "synced_at": to_utc_z(self.synced_at),
        }
        if include_lines:
            data["line_items"] = [line.to_dict() for line in self.line_items]
        return data


class SaleLineItem(db.Model):
    """Immutable line on a sale; owned by exactly one sale."""
    __tablename__ = "sale_line_items"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    sale_id = db.Column(db.String(64), db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.String(64), db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    sale = db.relationship(
        "Sale",
        backref=db.backref("line_items", lazy=True, order_by="SaleLineItem.created_at"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "sku": self.product.sku if self.product else None,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "line_total": money_str(self.line_total),
            "created_at": to_utc_z(self.created_at),
        }


PAYMENT_METHOD_CASH = "CASH"
PAYMENT_METHODS = (PAYMENT_METHOD_CASH, "MOBILE_MONEY", "BANK_TRANSFER", "CARD", "CHEQUE", "OTHER")


class Payment(db.Model):
    """
    Money received from a customer.

    A payment linked to a sale contributes its amount to that sale's
    amount_paid exactly once, at insertion. Standalone payments (no sale)
    settle the customer's account in general.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    payment_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    customer_id = db.Column(db.String(64), db.ForeignKey("customers.id"), nullable=False, index=True)
    sale_id = db.Column(db.String(64), db.ForeignKey("sales.id"), nullable=True, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default=PAYMENT_METHOD_CASH)
    reference = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    synced_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    customer = db.relationship("Customer")
    sale = db.relationship("Sale", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payment_number": self.payment_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "sale_id": self.sale_id,
            "sale_number": self.sale.sale_number if self.sale else None,
            "amount": money_str(self.amount),
            "payment_method": self.payment_method,
            "reference": self.reference,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "synced_at": to_utc_z(self.synced_at),
        }
