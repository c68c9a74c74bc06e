"""
Sales Service - sale creation and void.

WHY: A sale is a document plus its ledger effects. Creating one writes the
sale, its lines, one SALE stock event per line and (optionally) the initial
payment in a single transaction; voiding writes compensating ADJUSTMENT
events instead of touching anything that already exists.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError, require_fields
from ..models import Customer, Payment, Product, Sale, SaleLineItem, Store
from ..models.inventory import EVENT_ADJUSTMENT, EVENT_SALE, REFERENCE_SALE, REFERENCE_SALE_VOID
from ..models.sales import (
    CUSTOMER_REQUIRED_SALE_TYPES,
    PAYMENT_METHOD_CASH,
    PAYMENT_METHODS,
    SALE_STATUS_ACTIVE,
    SALE_STATUS_VOID,
    SALE_TYPES,
)
from ..time_utils import utcnow
from ..validation import coerce_choice, coerce_id, coerce_int, coerce_money
from .audit_service import ACTION_SALE_VOID, append_audit_log
from .concurrency import lock_for_update, run_in_transaction
from .ledger_service import append_stock_event
from .scope_service import AccessScope
from .sequence_service import next_payment_number, next_sale_number


ZERO = Decimal("0.00")


def parse_line_items(raw_items) -> list[dict]:
    """Validate line item payloads; returns dicts with typed values."""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError.missing(["line_items"])

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"line_items[{index}] must be an object")
        missing = [f"line_items[{index}].{f}" for f in ("product_id", "quantity", "unit_price") if raw.get(f) is None]
        if missing:
            raise ValidationError.missing(missing)

        quantity = coerce_int(raw["quantity"], f"line_items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"line_items[{index}].quantity must be positive")
        unit_price = coerce_money(raw["unit_price"], f"line_items[{index}].unit_price")

        items.append({
            "id": raw.get("id"),
            "product_id": coerce_id(raw["product_id"], f"line_items[{index}].product_id"),
            "quantity": quantity,
            "unit_price": unit_price,
            "line_total": unit_price * quantity,
        })
    return items


def compute_totals(items: list[dict], discount_amount: Decimal, amount_paid: Decimal) -> dict:
    """
    subtotal = sum(quantity * unit_price)
    total_amount = subtotal - discount_amount
    amount_due = total_amount - amount_paid
    """
    subtotal = sum((item["line_total"] for item in items), ZERO)
    total_amount = subtotal - discount_amount
    if total_amount < 0:
        raise ValidationError("discount_amount cannot exceed subtotal")
    if amount_paid > total_amount:
        raise ValidationError("amount_paid cannot exceed total_amount")
    return {
        "subtotal": subtotal,
        "discount_amount": discount_amount,
        "total_amount": total_amount,
        "amount_paid": amount_paid,
        "amount_due": total_amount - amount_paid,
    }


def create_sale(data: dict, scope: AccessScope) -> Sale:
    """
    Create an ACTIVE sale with its ledger effects.

    Validation order: required fields, store scope, customer requirement.
    """
    require_fields(data, ["store_id", "sale_type", "line_items"])

    store_id = coerce_id(data["store_id"], "store_id")
    scope.require_store(store_id)

    sale_type = coerce_choice(data["sale_type"], "sale_type", SALE_TYPES)
    customer_id = data.get("customer_id") or None
    if sale_type in CUSTOMER_REQUIRED_SALE_TYPES and not customer_id:
        raise ValidationError(
            "Customer required for partial/credit sales",
            details={"missing_fields": ["customer_id"]},
        )
    if customer_id is not None:
        customer_id = coerce_id(customer_id, "customer_id")

    items = parse_line_items(data["line_items"])
    payment_method = coerce_choice(data.get("payment_method") or PAYMENT_METHOD_CASH, "payment_method", PAYMENT_METHODS)
    totals = compute_totals(
        items,
        discount_amount=coerce_money(data.get("discount_amount", 0), "discount_amount"),
        amount_paid=coerce_money(data.get("amount_paid", 0), "amount_paid"),
    )

    def _op() -> Sale:
        if not db.session.get(Store, store_id):
            raise NotFoundError("Store not found")
        if customer_id and not db.session.get(Customer, customer_id):
            raise NotFoundError("Customer not found")
        # Before any insert: a pending line would autoflush into a FK error
        for item in items:
            if not db.session.get(Product, item["product_id"]):
                raise NotFoundError(f"Product {item['product_id']} not found")

        now = utcnow()
        sale = Sale(
            sale_number=next_sale_number(now.date()),
            store_id=store_id,
            customer_id=customer_id,
            sale_type=sale_type,
            status=SALE_STATUS_ACTIVE,
            created_by=scope.user_id,
            created_at=now,
            synced_at=now,
            **totals,
        )
        db.session.add(sale)
        db.session.flush()

        for item in items:
            db.session.add(SaleLineItem(
                sale_id=sale.id,
                product_id=item["product_id"],
                quantity=item["quantity"],
                unit_price=item["unit_price"],
                line_total=item["line_total"],
                created_at=now,
            ))
            # SALE reduces on-hand
            append_stock_event(
                event_type=EVENT_SALE,
                product_id=item["product_id"],
                store_id=store_id,
                quantity=-item["quantity"],
                reference_type=REFERENCE_SALE,
                reference_id=sale.id,
                created_by=scope.user_id,
                created_at=now,
            )

        # The initial tender is recorded as a payment, already counted in amount_paid
        if totals["amount_paid"] > 0 and customer_id:
            db.session.add(Payment(
                payment_number=next_payment_number(now.date()),
                customer_id=customer_id,
                sale_id=sale.id,
                amount=totals["amount_paid"],
                payment_method=payment_method,
                created_by=scope.user_id,
                created_at=now,
                synced_at=now,
            ))

        db.session.flush()
        return sale

    return run_in_transaction(_op)


def get_sale(sale_id: str, scope: AccessScope) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    scope.require_store(sale.store_id)
    return sale


def void_sale(sale_id: str, reason: str | None, scope: AccessScope) -> Sale:
    """
    Void an ACTIVE sale.

    Appends one ADJUSTMENT (+quantity, reference SALE_VOID) per line so the
    net ledger effect of the sale becomes zero. The sale, its lines and its
    original SALE events are left as they are.
    """
    scope.require_owner("Voiding a sale")
    reason = (reason or "").strip() if isinstance(reason, str) else None
    if not reason:
        raise ValidationError("Reason required for voiding sale", details={"missing_fields": ["reason"]})

    def _op() -> Sale:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale not found")
        scope.require_store(sale.store_id)

        if sale.status == SALE_STATUS_VOID:
            raise ConflictError("Sale already voided")

        now = utcnow()
        sale.status = SALE_STATUS_VOID
        sale.void_reason = reason
        sale.voided_by = scope.user_id
        sale.voided_at = now
        sale.synced_at = now

        lines = db.session.query(SaleLineItem).filter_by(sale_id=sale.id).all()
        for line in lines:
            append_stock_event(
                event_type=EVENT_ADJUSTMENT,
                product_id=line.product_id,
                store_id=sale.store_id,
                quantity=line.quantity,
                reference_type=REFERENCE_SALE_VOID,
                reference_id=sale.id,
                notes=f"Reversal for voided sale {sale.sale_number}",
                created_by=scope.user_id,
                created_at=now,
            )

        append_audit_log(
            user_id=scope.user_id,
            action=ACTION_SALE_VOID,
            entity_type="SALE",
            entity_id=sale.id,
            reason=reason,
        )
        return sale

    return run_in_transaction(_op)
