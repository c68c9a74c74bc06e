# Overview: Direct stock movements and ledger-derived inventory reads.

from __future__ import annotations

from ..extensions import db
from ..errors import AccessDeniedError, NotFoundError, require_fields
from ..models import Product, Store
from ..models.inventory import EVENT_ADJUSTMENT, EVENT_TYPES
from ..validation import coerce_choice, coerce_id, coerce_int, optional_str
from .audit_service import ACTION_STOCK_ADJUSTMENT, append_audit_log
from .concurrency import run_in_transaction
from .ledger_service import (
    InventorySnapshot,
    append_stock_event,
    get_inventory_snapshot,
    get_store_inventory,
    list_movements,
)
from .scope_service import AccessScope


def record_stock_event(data: dict, scope: AccessScope):
    """
    Record a RECEIVE / TRANSFER / ADJUSTMENT movement directly.

    ADJUSTMENT is owner-only; store managers submit an approval request.
    """
    require_fields(data, ["event_type", "product_id", "store_id", "quantity"])

    store_id = coerce_id(data["store_id"], "store_id")
    scope.require_store(store_id)
    event_type = coerce_choice(data["event_type"], "event_type", EVENT_TYPES)
    if event_type == EVENT_ADJUSTMENT and not scope.is_unrestricted:
        raise AccessDeniedError("Adjustments require owner approval. Submit approval request instead.")

    product_id = coerce_id(data["product_id"], "product_id")
    quantity = coerce_int(data["quantity"], "quantity")
    reference_type = optional_str(data.get("reference_type"), "reference_type", max_len=32)
    reference_id = optional_str(data.get("reference_id"), "reference_id", max_len=64)
    notes = optional_str(data.get("notes"), "notes", max_len=2000)

    def _op():
        event = append_stock_event(
            event_type=event_type,
            product_id=product_id,
            store_id=store_id,
            quantity=quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            created_by=scope.user_id,
        )
        if event_type == EVENT_ADJUSTMENT:
            append_audit_log(
                user_id=scope.user_id,
                action=ACTION_STOCK_ADJUSTMENT,
                entity_type="STOCK_EVENT",
                entity_id=event.id,
                reason=notes,
            )
        return event

    return run_in_transaction(_op)


def store_inventory(store_id: str, scope: AccessScope) -> list[dict]:
    """Every active product with its on-hand quantity in the store."""
    scope.require_store(store_id)
    if not db.session.get(Store, store_id):
        raise NotFoundError("Store not found")

    snapshots = get_store_inventory(store_id)
    rows = []
    for product in db.session.query(Product).filter_by(is_active=True).order_by(Product.name).all():
        snap = snapshots.get(product.id) or InventorySnapshot(product_id=product.id, store_id=store_id)
        row = product.to_dict(include_cost=scope.is_unrestricted)
        row.update(snap.to_dict())
        rows.append(row)
    return rows


def product_inventory(store_id: str, product_id: str, scope: AccessScope) -> dict:
    """Snapshot for one pair plus its latest movements."""
    scope.require_store(store_id)
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")

    result = product.to_dict(include_cost=scope.is_unrestricted)
    result.update(get_inventory_snapshot(store_id, product_id).to_dict())
    result["movements"] = [ev.to_dict() for ev in list_movements(store_id, product_id)]
    return result
