# Overview: Stock event ledger; the only write path for inventory quantities.

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Product, StockEvent, Store
from ..models.inventory import EVENT_TYPES
from ..time_utils import to_utc_z, utcnow
"""
Stock Ledger Invariants (authoritative)

- Append-only: StockEvent rows are inserted, never updated or deleted.
- On-hand quantity for (product, store) = SUM(quantity) over its events,
  optionally as-of an instant (inclusive: created_at <= as_of).
- There is no "set quantity" operation. A reversal is a new event with the
  additive inverse of the original quantity, referencing the cause.
- Derived state is folded on demand from the log and never cached.
- Events are written inside the same DB transaction as the domain change
  that causes them.
"""


@dataclass(frozen=True)
class InventorySnapshot:
    product_id: str
    store_id: str
    on_hand_qty: int = 0
    last_movement_at: Optional[datetime] = None

    def apply(self, event: StockEvent) -> "InventorySnapshot":
        last = self.last_movement_at
        # Offline events arrive out of order; keep the latest business time
        if last is None or (event.created_at is not None and event.created_at > last):
            last = event.created_at
        return replace(self, on_hand_qty=self.on_hand_qty + event.quantity, last_movement_at=last)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "store_id": self.store_id,
            "on_hand_qty": self.on_hand_qty,
            "last_movement_at": to_utc_z(self.last_movement_at),
        }


def fold_events(events: Iterable[StockEvent]) -> dict[tuple[str, str], InventorySnapshot]:
    """Reduce a stream of events to one snapshot per (product_id, store_id)."""
    snapshots: dict[tuple[str, str], InventorySnapshot] = {}
    for event in events:
        key = (event.product_id, event.store_id)
        snap = snapshots.get(key) or InventorySnapshot(product_id=event.product_id, store_id=event.store_id)
        snapshots[key] = snap.apply(event)
    return snapshots


def _ordered_events(store_id: str, product_id: str | None = None, as_of: datetime | None = None):
    q = db.session.query(StockEvent).filter(StockEvent.store_id == store_id)
    if product_id is not None:
        q = q.filter(StockEvent.product_id == product_id)
    if as_of is not None:
        q = q.filter(StockEvent.created_at <= as_of)
    return q.order_by(StockEvent.created_at, StockEvent.id)


def get_inventory_snapshot(store_id: str, product_id: str, as_of: datetime | None = None) -> InventorySnapshot:
    """Fold every event for the pair (optionally as-of) into a snapshot."""
    folded = fold_events(_ordered_events(store_id, product_id, as_of).all())
    return folded.get(
        (product_id, store_id),
        InventorySnapshot(product_id=product_id, store_id=store_id),
    )


def get_quantity_on_hand(store_id: str, product_id: str, as_of: datetime | None = None) -> int:
    return get_inventory_snapshot(store_id, product_id, as_of).on_hand_qty


def get_store_inventory(store_id: str, as_of: datetime | None = None) -> dict[str, InventorySnapshot]:
    """Snapshots for every product that has ever moved in the store, keyed by product_id."""
    folded = fold_events(_ordered_events(store_id, as_of=as_of).yield_per(500))
    return {product_id: snap for (product_id, _), snap in folded.items()}


def list_movements(store_id: str, product_id: str, limit: int = 50) -> list[StockEvent]:
    return (
        db.session.query(StockEvent)
        .filter_by(store_id=store_id, product_id=product_id)
        .order_by(StockEvent.created_at.desc(), StockEvent.id.desc())
        .limit(limit)
        .all()
    )


def append_stock_event(
    *,
    event_type: str,
    product_id: str,
    store_id: str,
    quantity: int,
    reference_type: str | None = None,
    reference_id: str | None = None,
    notes: str | None = None,
    created_by: str | None = None,
    created_at: datetime | None = None,
    event_id: str | None = None,
) -> StockEvent:
    """
    Append one ledger row.

    - No domain logic here.
    - No deletes/updates of existing events.
    - created_at is business time; synced_at is always server time.
    """
    if event_type not in EVENT_TYPES:
        raise ValidationError(f"event_type must be one of {', '.join(EVENT_TYPES)}")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity == 0:
        raise ValidationError("quantity must be a non-zero integer")

    if not db.session.get(Store, store_id):
        raise NotFoundError(f"Store {store_id} not found")
    if not db.session.get(Product, product_id):
        raise NotFoundError(f"Product {product_id} not found")

    now = utcnow()
    ev = StockEvent(
        event_type=event_type,
        product_id=product_id,
        store_id=store_id,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        created_by=created_by,
        created_at=created_at or now,
        synced_at=now,
    )
    if event_id:
        ev.id = event_id
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev



def verify_ledger() -> dict:
    """
    Consistency report for the whole database.

    - sales whose totals break total = subtotal - discount or
      due = total - paid
    - (product, store) pairs whose folded on-hand is negative
    """
    from ..models import Sale

    bad_sales = []
    for sale in db.session.query(Sale).order_by(Sale.created_at, Sale.id).yield_per(500):
        problems = []
        if sale.total_amount != sale.subtotal - sale.discount_amount:
            problems.append("total_amount != subtotal - discount_amount")
        if sale.amount_due != sale.total_amount - sale.amount_paid:
            problems.append("amount_due != total_amount - amount_paid")
        if problems:
            bad_sales.append({"id": sale.id, "sale_number": sale.sale_number, "problems": problems})

    events = db.session.query(StockEvent).order_by(StockEvent.created_at, StockEvent.id).yield_per(500)
    negative = [
        snap.to_dict()
        for snap in fold_events(events).values()
        if snap.on_hand_qty < 0
    ]

    return {"sales": bad_sales, "negative_on_hand": negative}
