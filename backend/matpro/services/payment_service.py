# Overview: Service-layer operations for payments; applies receipts to sale balances.

"""
Payment Application Service

DESIGN PRINCIPLES:
- A payment may settle a specific sale or the customer's account in general.
- A payment linked to a sale moves amount_paid up and amount_due down by
  the same amount in ONE UPDATE, so amount_due = total_amount - amount_paid
  holds by construction.
- The delta is applied once, when the payment row is first inserted.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import update

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError, require_fields
from ..models import Customer, Payment, Sale
from ..models.sales import PAYMENT_METHOD_CASH, PAYMENT_METHODS, SALE_STATUS_VOID
from ..time_utils import utcnow
from ..validation import coerce_choice, coerce_id, coerce_money, optional_str
from .concurrency import run_in_transaction
from .scope_service import AccessScope
from .sequence_service import next_payment_number


def apply_payment_to_sale(sale_id: str, amount: Decimal) -> None:
    """
    Increment amount_paid and decrement amount_due by amount, atomically.

    The arithmetic runs in the database so concurrent payments on one sale
    never overwrite each other.
    """
    result = db.session.execute(
        update(Sale)
        .where(Sale.id == sale_id)
        .values(
            amount_paid=Sale.amount_paid + amount,
            amount_due=Sale.amount_due - amount,
            synced_at=utcnow(),
        )
        .execution_options(synchronize_session="fetch")
    )
    if not result.rowcount:
        raise NotFoundError(f"Sale {sale_id} not found")


def create_payment(data: dict, scope: AccessScope) -> Payment:
    """Record a customer payment, optionally against one sale."""
    require_fields(data, ["customer_id", "amount"])

    customer_id = coerce_id(data["customer_id"], "customer_id")
    amount = coerce_money(data["amount"], "amount")
    if amount <= 0:
        raise ValidationError("amount must be positive")
    sale_id = data.get("sale_id") or None
    if sale_id is not None:
        sale_id = coerce_id(sale_id, "sale_id")
    payment_method = coerce_choice(data.get("payment_method") or PAYMENT_METHOD_CASH, "payment_method", PAYMENT_METHODS)
    reference = optional_str(data.get("reference"), "reference", max_len=120)
    notes = optional_str(data.get("notes"), "notes", max_len=2000)

    def _op() -> Payment:
        if not db.session.get(Customer, customer_id):
            raise NotFoundError("Customer not found")

        if sale_id:
            sale = db.session.get(Sale, sale_id)
            if not sale:
                raise NotFoundError("Sale not found")
            scope.require_store(sale.store_id)
            if sale.status == SALE_STATUS_VOID:
                raise ConflictError("Cannot add payment to a VOID sale")
            if sale.customer_id and sale.customer_id != customer_id:
                raise ValidationError("Payment customer does not match the sale's customer")

        now = utcnow()
        payment = Payment(
            payment_number=next_payment_number(now.date()),
            customer_id=customer_id,
            sale_id=sale_id,
            amount=amount,
            payment_method=payment_method,
            reference=reference,
            notes=notes,
            created_by=scope.user_id,
            created_at=now,
            synced_at=now,
        )
        db.session.add(payment)
        db.session.flush()

        if sale_id:
            apply_payment_to_sale(sale_id, amount)

        return payment

    return run_in_transaction(_op)
