# Overview: Pytest coverage for the append-only stock ledger.

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from matpro.errors import NotFoundError, ValidationError
from matpro.models import Sale, StockEvent
from matpro.models.inventory import EVENT_ADJUSTMENT, EVENT_RECEIVE, EVENT_SALE
from matpro.services.ledger_service import (
    InventorySnapshot,
    append_stock_event,
    fold_events,
    get_inventory_snapshot,
    get_quantity_on_hand,
    get_store_inventory,
    list_movements,
    verify_ledger,
)
from matpro.time_utils import utcnow


class TestAppend:

    def test_on_hand_is_sum_of_events(self, db_session, store, product):
        append_stock_event(event_type=EVENT_RECEIVE, product_id=product.id, store_id=store.id, quantity=10)
        append_stock_event(event_type=EVENT_SALE, product_id=product.id, store_id=store.id, quantity=-3)
        append_stock_event(event_type=EVENT_ADJUSTMENT, product_id=product.id, store_id=store.id, quantity=1)

        assert get_quantity_on_hand(store.id, product.id) == 8

    def test_pairs_are_independent(self, db_session, store, other_store, product, product_b):
        append_stock_event(event_type=EVENT_RECEIVE, product_id=product.id, store_id=store.id, quantity=10)
        append_stock_event(event_type=EVENT_RECEIVE, product_id=product.id, store_id=other_store.id, quantity=4)
        append_stock_event(event_type=EVENT_RECEIVE, product_id=product_b.id, store_id=store.id, quantity=2)

        assert get_quantity_on_hand(store.id, product.id) == 10
        assert get_quantity_on_hand(other_store.id, product.id) == 4
        assert get_quantity_on_hand(store.id, product_b.id) == 2

    def test_rejects_zero_quantity(self, db_session, store, product):
        with pytest.raises(ValidationError):
            append_stock_event(event_type=EVENT_RECEIVE, product_id=product.id, store_id=store.id, quantity=0)

    def test_rejects_bool_quantity(self, db_session, store, product):
        with pytest.raises(ValidationError):
            append_stock_event(event_type=EVENT_RECEIVE, product_id=product.id, store_id=store.id, quantity=True)

    def test_rejects_unknown_event_type(self, db_session, store, product):
        with pytest.raises(ValidationError):
            append_stock_event(event_type="SHRINK", product_id=product.id, store_id=store.id, quantity=1)

    def test_unknown_store_or_product(self, db_session, store, product):
        with pytest.raises(NotFoundError):
            append_stock_event(event_type=EVENT_RECEIVE, product_id=product.id, store_id="nope", quantity=1)
        with pytest.raises(NotFoundError):
            append_stock_event(event_type=EVENT_RECEIVE, product_id="nope", store_id=store.id, quantity=1)

    def test_client_time_kept_and_server_stamps_sync_time(self, db_session, store, product):
        client_time = datetime(2026, 3, 1, 9, 30)
        before = utcnow()
        ev = append_stock_event(
            event_type=EVENT_RECEIVE,
            product_id=product.id,
            store_id=store.id,
            quantity=5,
            created_at=client_time,
            event_id="client-ev-1",
        )

        assert ev.id == "client-ev-1"
        assert ev.created_at == client_time
        assert ev.synced_at >= before


class TestSnapshots:

    def test_as_of_is_inclusive(self, db_session, store, product):
        t0 = datetime(2026, 1, 1, 8, 0)
        append_stock_event(event_type=EVENT_RECEIVE, product_id=product.id, store_id=store.id, quantity=10, created_at=t0)
        append_stock_event(
            event_type=EVENT_SALE, product_id=product.id, store_id=store.id, quantity=-4,
            created_at=t0 + timedelta(hours=2),
        )

        assert get_quantity_on_hand(store.id, product.id, as_of=t0) == 10
        assert get_quantity_on_hand(store.id, product.id, as_of=t0 + timedelta(hours=1)) == 10
        assert get_quantity_on_hand(store.id, product.id, as_of=t0 + timedelta(hours=2)) == 6

    def test_snapshot_for_pair_without_events(self, db_session, store, product):
        snap = get_inventory_snapshot(store.id, product.id)
        assert snap.on_hand_qty == 0
        assert snap.last_movement_at is None

    def test_last_movement_is_latest_business_time(self, store, product):
        late = StockEvent(product_id=product.id, store_id=store.id, quantity=2, created_at=datetime(2026, 1, 2))
        early = StockEvent(product_id=product.id, store_id=store.id, quantity=3, created_at=datetime(2026, 1, 1))

        # Offline events can arrive out of order
        snap = fold_events([late, early])[(product.id, store.id)]
        assert snap.on_hand_qty == 5
        assert snap.last_movement_at == datetime(2026, 1, 2)

    def test_store_inventory_keyed_by_product(self, db_session, store, product, product_b):
        append_stock_event(event_type=EVENT_RECEIVE, product_id=product.id, store_id=store.id, quantity=10)
        append_stock_event(event_type=EVENT_RECEIVE, product_id=product_b.id, store_id=store.id, quantity=3)

        inventory = get_store_inventory(store.id)
        assert inventory[product.id].on_hand_qty == 10
        assert inventory[product_b.id].on_hand_qty == 3
        assert isinstance(inventory[product.id], InventorySnapshot)

    def test_movements_newest_first(self, db_session, store, product):
        t0 = datetime(2026, 1, 1)
        for hours, qty in ((0, 10), (1, -1), (2, -2)):
            append_stock_event(
                event_type=EVENT_RECEIVE if qty > 0 else EVENT_SALE,
                product_id=product.id, store_id=store.id, quantity=qty,
                created_at=t0 + timedelta(hours=hours),
            )

        movements = list_movements(store.id, product.id, limit=2)
        assert [m.quantity for m in movements] == [-2, -1]


class TestVerifyLedger:

    def test_clean_ledger(self, db_session, store, product):
        append_stock_event(event_type=EVENT_RECEIVE, product_id=product.id, store_id=store.id, quantity=1)
        report = verify_ledger()
        assert report == {"sales": [], "negative_on_hand": []}

    def test_reports_broken_sale_and_negative_stock(self, db_session, store, product):
        db_session.add(Sale(
            sale_number="INV-20260101-001",
            store_id=store.id,
            sale_type="CASH",
            subtotal=Decimal("10.00"),
            discount_amount=Decimal("0.00"),
            total_amount=Decimal("10.00"),
            amount_paid=Decimal("0.00"),
            amount_due=Decimal("5.00"),
        ))
        append_stock_event(event_type=EVENT_SALE, product_id=product.id, store_id=store.id, quantity=-2)
        db_session.commit()

        report = verify_ledger()
        assert report["sales"][0]["sale_number"] == "INV-20260101-001"
        assert report["sales"][0]["problems"] == ["amount_due != total_amount - amount_paid"]
        assert report["negative_on_hand"][0]["on_hand_qty"] == -2
