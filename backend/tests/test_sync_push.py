# Overview: Pytest coverage for the offline sync push merge.

"""
Sync Push Tests

Verifies:
- Dependency staging: a payment can settle a sale pushed in the same batch
- Idempotency: re-pushing a batch changes nothing and reports duplicates
- Isolation: a failing record is reported by id and does not block siblings
- Scope: store managers cannot push for other stores or push adjustments
"""

from decimal import Decimal

import pytest

from matpro.errors import ValidationError
from matpro.models import Customer, Payment, Sale, SaleLineItem, StockEvent
from matpro.services.ledger_service import get_quantity_on_hand
from matpro.services.sync_service import push_batch
from matpro.time_utils import utcnow


def build_batch(store, product, customer_id="cust-1", sale_id="sale-1"):
    return {
        "customers": [
            {"id": customer_id, "name": "Offline Customer", "phone": "0277000000"},
        ],
        "sales": [
            {
                "id": sale_id,
                "store_id": store.id,
                "customer_id": customer_id,
                "sale_type": "PARTIAL",
                "discount_amount": "1.00",
                "amount_paid": 0,
                "subtotal": "30.00",
                "total_amount": "29.00",
                "amount_due": "29.00",
                "created_at": "2026-05-01T10:15:00Z",
                "line_items": [
                    {"id": f"{sale_id}-line-1", "product_id": product.id, "quantity": 3, "unit_price": "10.00"},
                ],
            }
        ],
        "stock_events": [
            {
                "id": f"{sale_id}-ev-1",
                "event_type": "SALE",
                "product_id": product.id,
                "store_id": store.id,
                "quantity": -3,
                "reference_type": "SALE",
                "reference_id": sale_id,
                "created_at": "2026-05-01T10:15:00Z",
            }
        ],
        "payments": [
            {
                "id": f"{sale_id}-pay-1",
                "customer_id": customer_id,
                "sale_id": sale_id,
                "amount": "9.00",
                "payment_method": "CASH",
                "created_at": "2026-05-01T10:16:00Z",
            }
        ],
    }


class TestPushMerge:

    def test_full_batch_merges_in_dependency_order(self, db_session, store, product, owner_scope, receive_stock):
        receive_stock(store.id, product.id, 10)

        response = push_batch(build_batch(store, product), owner_scope)

        assert response["message"] == "Sync completed"
        assert response["timestamp"].endswith("Z")
        for entity in ("customers", "sales", "stock_events", "payments"):
            result = response["results"][entity]
            assert result["success"] == 1, entity
            assert result["failed"] == 0
            assert result["duplicates"] == 0
            assert result["errors"] == []

        sale = db_session.get(Sale, "sale-1")
        assert sale.sale_number.startswith("INV-20260501-")
        assert sale.amount_paid == Decimal("9.00")
        assert sale.amount_due == Decimal("20.00")
        assert sale.amount_due == sale.total_amount - sale.amount_paid
        assert db_session.query(SaleLineItem).filter_by(sale_id="sale-1").count() == 1

        payment = db_session.get(Payment, "sale-1-pay-1")
        assert payment.payment_number.startswith("PAY-20260501-")
        assert get_quantity_on_hand(store.id, product.id) == 7

    def test_push_is_idempotent(self, db_session, store, product, owner_scope):
        batch = build_batch(store, product)
        push_batch(batch, owner_scope)
        second = push_batch(batch, owner_scope)

        assert second["results"]["sales"] == {"success": 1, "failed": 0, "duplicates": 1, "errors": []}
        assert second["results"]["stock_events"]["duplicates"] == 1
        assert second["results"]["payments"]["duplicates"] == 1
        # Customers upsert, so a re-push is a merge rather than a duplicate
        assert second["results"]["customers"]["success"] == 1

        assert db_session.query(Sale).count() == 1
        assert db_session.query(StockEvent).count() == 1
        assert db_session.query(Payment).count() == 1
        # The payment delta is not applied twice
        assert db_session.get(Sale, "sale-1").amount_paid == Decimal("9.00")

    def test_client_times_kept_server_stamps_sync(self, db_session, store, product, owner_scope):
        before = utcnow()
        push_batch(build_batch(store, product), owner_scope)

        event = db_session.get(StockEvent, "sale-1-ev-1")
        assert event.created_at.isoformat() == "2026-05-01T10:15:00"
        assert event.synced_at >= before
        assert db_session.get(Sale, "sale-1").synced_at >= before

    def test_push_does_not_invent_sale_movements(self, db_session, store, product, owner_scope):
        batch = build_batch(store, product)
        batch["stock_events"] = []
        push_batch(batch, owner_scope)

        assert db_session.query(StockEvent).count() == 0

    def test_customer_conflict_refreshes_name_and_phone(self, db_session, customer, owner_scope):
        response = push_batch(
            {"customers": [{"id": customer.id, "name": "Kofi Builders Ltd", "phone": "0244999999"}]},
            owner_scope,
        )

        assert response["results"]["customers"]["success"] == 1
        refreshed = db_session.get(Customer, customer.id)
        assert refreshed.name == "Kofi Builders Ltd"
        assert refreshed.phone == "0244999999"

    def test_client_sale_number_kept(self, db_session, store, product, owner_scope):
        batch = build_batch(store, product)
        batch["sales"][0]["sale_number"] = "INV-20260501-900"
        push_batch(batch, owner_scope)

        assert db_session.get(Sale, "sale-1").sale_number == "INV-20260501-900"


class TestPushFailures:

    def test_failed_record_does_not_block_siblings(self, db_session, store, product, owner_scope):
        batch = build_batch(store, product)
        batch["stock_events"].append({
            "id": "bad-ev",
            "event_type": "RECEIVE",
            "product_id": "no-such-product",
            "store_id": store.id,
            "quantity": 5,
        })

        response = push_batch(batch, owner_scope)
        events = response["results"]["stock_events"]

        assert events["success"] == 1
        assert events["failed"] == 1
        assert events["errors"][0]["id"] == "bad-ev"
        assert "not found" in events["errors"][0]["error"]
        assert db_session.get(StockEvent, "sale-1-ev-1") is not None
        assert db_session.get(StockEvent, "bad-ev") is None
        assert response["results"]["payments"]["success"] == 1

    def test_failed_sale_leaves_no_partial_rows(self, db_session, store, product, owner_scope):
        batch = build_batch(store, product)
        batch["sales"][0]["line_items"].append(
            {"id": "sale-1-line-2", "product_id": "no-such-product", "quantity": 1, "unit_price": 1}
        )
        batch["sales"][0]["subtotal"] = None
        batch["sales"][0]["total_amount"] = None
        batch["sales"][0]["amount_due"] = None

        response = push_batch(batch, owner_scope)

        assert response["results"]["sales"]["failed"] == 1
        assert db_session.get(Sale, "sale-1") is None
        assert db_session.query(SaleLineItem).count() == 0
        # The payment depends on the failed sale
        assert response["results"]["payments"]["failed"] == 1
        assert response["results"]["customers"]["success"] == 1

    def test_payment_for_unknown_sale_fails(self, db_session, customer, owner_scope):
        response = push_batch(
            {"payments": [{"id": "p-1", "customer_id": customer.id, "sale_id": "never-pushed", "amount": 5}]},
            owner_scope,
        )

        result = response["results"]["payments"]
        assert result["failed"] == 1
        assert result["errors"] == [{"id": "p-1", "error": "Sale never-pushed not found"}]

    def test_sale_totals_must_agree(self, db_session, store, product, owner_scope):
        batch = build_batch(store, product)
        batch["sales"][0]["amount_due"] = "5.00"

        response = push_batch(batch, owner_scope)
        assert response["results"]["sales"]["failed"] == 1
        assert "amount_due" in response["results"]["sales"]["errors"][0]["error"]

    def test_sale_number_collision_fails_only_that_sale(self, db_session, store, product, owner_scope):
        batch = build_batch(store, product)
        batch["sales"][0]["sale_number"] = "INV-20260501-001"
        other = build_batch(store, product, sale_id="sale-2")["sales"][0]
        other["customer_id"] = "cust-1"
        other["sale_number"] = "INV-20260501-001"
        batch["sales"].append(other)

        response = push_batch(batch, owner_scope)
        sales = response["results"]["sales"]

        assert sales["success"] == 1
        assert sales["failed"] == 1
        assert sales["errors"][0]["id"] == "sale-2"
        assert sales["errors"][0]["sale_number"] == "INV-20260501-001"

    def test_missing_id_reported(self, db_session, owner_scope):
        response = push_batch({"customers": [{"name": "No id"}]}, owner_scope)
        error = response["results"]["customers"]["errors"][0]
        assert error["id"] is None
        assert "id" in error["error"]

    def test_non_object_record_reported(self, db_session, owner_scope):
        response = push_batch({"customers": ["not-a-record"]}, owner_scope)
        assert response["results"]["customers"]["failed"] == 1

    def test_out_of_range_quantity_fails_only_that_event(self, db_session, store, product, owner_scope):
        batch = {
            "customers": [{"id": "c-ok", "name": "Alice"}],
            "stock_events": [
                {"id": "ev-big", "event_type": "RECEIVE", "store_id": store.id, "product_id": product.id, "quantity": 10**20},
                {"id": "ev-ok", "event_type": "RECEIVE", "store_id": store.id, "product_id": product.id, "quantity": 4},
            ],
        }

        response = push_batch(batch, owner_scope)

        events = response["results"]["stock_events"]
        assert events["success"] == 1
        assert events["errors"] == [{"id": "ev-big", "error": "quantity is out of range"}]
        assert db_session.get(Customer, "c-ok") is not None
        assert db_session.get(StockEvent, "ev-big") is None
        assert get_quantity_on_hand(store.id, product.id) == 4

    def test_storage_failure_fails_only_that_record(self, db_session, store, product, owner_scope, monkeypatch):
        from matpro.services import sync_service

        real_append = sync_service.append_stock_event

        def append_or_overflow(**kwargs):
            if kwargs["event_id"] == "ev-bad":
                raise OverflowError("Python int too large to convert to SQLite INTEGER")
            return real_append(**kwargs)

        monkeypatch.setattr(sync_service, "append_stock_event", append_or_overflow)
        batch = {
            "customers": [{"id": "c-ok", "name": "Alice"}],
            "stock_events": [
                {"id": "ev-bad", "event_type": "RECEIVE", "store_id": store.id, "product_id": product.id, "quantity": 1},
                {"id": "ev-ok", "event_type": "RECEIVE", "store_id": store.id, "product_id": product.id, "quantity": 2},
            ],
        }

        response = push_batch(batch, owner_scope)

        events = response["results"]["stock_events"]
        assert events["success"] == 1
        assert events["errors"] == [{"id": "ev-bad", "error": "Record could not be stored"}]
        assert db_session.get(Customer, "c-ok") is not None
        assert db_session.get(StockEvent, "ev-ok") is not None

    def test_payment_customer_must_match_sale(self, db_session, store, product, customer, owner_scope):
        batch = build_batch(store, product)
        batch["payments"][0]["customer_id"] = customer.id

        response = push_batch(batch, owner_scope)

        payments = response["results"]["payments"]
        assert payments["failed"] == 1
        assert "does not match" in payments["errors"][0]["error"]
        assert db_session.get(Sale, "sale-1").amount_paid == Decimal("0.00")


class TestPushScope:

    def test_manager_cannot_push_other_store(self, db_session, other_store, product, manager_scope):
        response = push_batch(build_batch(other_store, product), manager_scope)

        assert response["results"]["sales"]["failed"] == 1
        assert response["results"]["sales"]["errors"][0]["error"] == "Access denied to this store"
        assert response["results"]["stock_events"]["failed"] == 1
        assert db_session.query(Sale).count() == 0

    def test_manager_cannot_push_adjustments(self, db_session, store, product, manager_scope):
        response = push_batch(
            {"stock_events": [{
                "id": "adj-1", "event_type": "ADJUSTMENT", "product_id": product.id,
                "store_id": store.id, "quantity": 50,
            }]},
            manager_scope,
        )
        assert response["results"]["stock_events"]["failed"] == 1
        assert db_session.get(StockEvent, "adj-1") is None

    def test_manager_pushes_own_store(self, db_session, store, product, manager_scope):
        response = push_batch(build_batch(store, product), manager_scope)
        assert all(r["failed"] == 0 for r in response["results"].values())
        assert db_session.get(Sale, "sale-1").created_by == manager_scope.user_id


class TestPushValidation:

    def test_entity_lists_must_be_lists(self, db_session, owner_scope):
        with pytest.raises(ValidationError):
            push_batch({"sales": {"id": "x"}}, owner_scope)

    def test_body_must_be_object(self, db_session, owner_scope):
        with pytest.raises(ValidationError):
            push_batch([], owner_scope)

    def test_batch_size_limit(self, app, db_session, owner_scope):
        app.config["SYNC_PUSH_MAX_RECORDS"] = 2
        try:
            with pytest.raises(ValidationError):
                push_batch({"customers": [{"id": str(i), "name": "c"} for i in range(3)]}, owner_scope)
        finally:
            app.config["SYNC_PUSH_MAX_RECORDS"] = 5000

    def test_empty_batch(self, db_session, owner_scope):
        response = push_batch({}, owner_scope)
        assert all(r["success"] == 0 for r in response["results"].values())
