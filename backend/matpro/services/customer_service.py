# Overview: Customer writes and the receivables view derived from sales.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..errors import NotFoundError, ValidationError, require_fields
from ..models import Customer, Payment, Sale
from ..models.sales import SALE_STATUS_ACTIVE
from ..time_utils import utcnow
from ..validation import money_str, optional_str
from .concurrency import run_in_transaction
from .scope_service import AccessScope


UPDATABLE_FIELDS = ("name", "phone", "whatsapp", "address", "notes", "is_active")


def _clean(data: dict, field: str):
    if field == "is_active":
        value = data[field]
        if not isinstance(value, bool):
            raise ValidationError("is_active must be a boolean")
        return value
    max_len = 2000 if field == "notes" else 255
    return optional_str(data[field], field, max_len=max_len)


def create_customer(data: dict) -> Customer:
    require_fields(data, ["name"])
    fields = {f: _clean(data, f) for f in UPDATABLE_FIELDS if f in data}
    if not fields.get("name"):
        raise ValidationError.missing(["name"])

    def _op() -> Customer:
        now = utcnow()
        customer = Customer(created_at=now, updated_at=now, **fields)
        db.session.add(customer)
        db.session.flush()
        return customer

    return run_in_transaction(_op)


def update_customer(customer_id: str, data: dict) -> Customer:
    fields = {f: _clean(data, f) for f in UPDATABLE_FIELDS if f in data}
    if not fields:
        raise ValidationError("No fields to update")
    if "name" in fields and not fields["name"]:
        raise ValidationError("name cannot be empty")

    def _op() -> Customer:
        customer = db.session.get(Customer, customer_id)
        if not customer:
            raise NotFoundError("Customer not found")
        for key, value in fields.items():
            setattr(customer, key, value)
        # Pull sync keys off updated_at
        customer.updated_at = utcnow()
        return customer

    return run_in_transaction(_op)


def customer_ledger(customer_id: str, scope: AccessScope) -> dict:
    """
    Receivables view: sales and payments for a customer plus totals over
    ACTIVE sales. Store managers only see their own store's sales.
    """
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")

    sales_q = scope.filter_by_store(
        db.session.query(Sale).filter(Sale.customer_id == customer_id),
        Sale.store_id,
    )
    sales = sales_q.order_by(Sale.created_at.desc()).all()

    payments_q = db.session.query(Payment).filter(Payment.customer_id == customer_id)
    if not scope.is_unrestricted:
        payments_q = payments_q.outerjoin(Sale, Payment.sale_id == Sale.id).filter(
            (Payment.sale_id.is_(None)) | (Sale.store_id == scope.store_id)
        )
    payments = payments_q.order_by(Payment.created_at.desc()).all()

    totals_q = scope.filter_by_store(
        db.session.query(
            func.coalesce(func.sum(Sale.total_amount), 0),
            func.coalesce(func.sum(Sale.amount_paid), 0),
            func.coalesce(func.sum(Sale.amount_due), 0),
        ).filter(Sale.customer_id == customer_id, Sale.status == SALE_STATUS_ACTIVE),
        Sale.store_id,
    )
    total_invoiced, total_paid, total_due = totals_q.one()

    return {
        "customer": customer.to_dict(),
        "sales": [s.to_dict() for s in sales],
        "payments": [p.to_dict() for p in payments],
        "totals": {
            "total_invoiced": money_str(Decimal(str(total_invoiced))),
            "total_paid": money_str(Decimal(str(total_paid))),
            "total_due": money_str(Decimal(str(total_due))),
        },
    }
