# Overview: Pytest coverage for direct stock events, inventory reads and customers.

from decimal import Decimal

import pytest

from matpro.errors import AccessDeniedError, NotFoundError, ValidationError
from matpro.models import AuditLog
from matpro.services import customer_service, inventory_service, payment_service, sales_service


class TestRecordStockEvent:

    def test_manager_receives_into_own_store(self, db_session, store, product, manager_scope):
        event = inventory_service.record_stock_event(
            {"event_type": "receive", "product_id": product.id, "store_id": store.id, "quantity": "12"},
            manager_scope,
        )
        assert event.event_type == "RECEIVE"
        assert event.quantity == 12
        assert event.created_by == manager_scope.user_id

    def test_manager_adjustment_requires_approval(self, db_session, store, product, manager_scope):
        with pytest.raises(AccessDeniedError) as exc:
            inventory_service.record_stock_event(
                {"event_type": "ADJUSTMENT", "product_id": product.id, "store_id": store.id, "quantity": -1},
                manager_scope,
            )
        assert "approval" in exc.value.message

    def test_owner_adjustment_is_audited(self, db_session, store, product, owner_scope):
        event = inventory_service.record_stock_event(
            {
                "event_type": "ADJUSTMENT",
                "product_id": product.id,
                "store_id": store.id,
                "quantity": -2,
                "notes": "Stock count",
            },
            owner_scope,
        )
        entry = db_session.query(AuditLog).filter_by(entity_id=event.id).one()
        assert entry.action == "STOCK_ADJUSTMENT"
        assert entry.reason == "Stock count"

    def test_fractional_quantity_rejected(self, db_session, store, product, owner_scope):
        with pytest.raises(ValidationError):
            inventory_service.record_stock_event(
                {"event_type": "RECEIVE", "product_id": product.id, "store_id": store.id, "quantity": 1.5},
                owner_scope,
            )


class TestInventoryReads:

    def test_store_inventory_includes_unmoved_products(
        self, db_session, store, product, product_b, owner_scope, receive_stock
    ):
        receive_stock(store.id, product.id, 9)

        rows = {r["sku"]: r for r in inventory_service.store_inventory(store.id, owner_scope)}
        assert rows["ROOF-28G"]["on_hand_qty"] == 9
        assert rows["NAIL-3IN"]["on_hand_qty"] == 0
        assert rows["ROOF-28G"]["cost_price"] == "7.50"

    def test_cost_hidden_from_managers(self, db_session, store, product, manager_scope):
        rows = inventory_service.store_inventory(store.id, manager_scope)
        assert "cost_price" not in rows[0]

    def test_manager_cannot_read_other_store(self, db_session, other_store, manager_scope):
        with pytest.raises(AccessDeniedError):
            inventory_service.store_inventory(other_store.id, manager_scope)

    def test_product_inventory_with_movements(self, db_session, store, product, owner_scope, receive_stock):
        receive_stock(store.id, product.id, 5)
        receive_stock(store.id, product.id, 2)

        result = inventory_service.product_inventory(store.id, product.id, owner_scope)
        assert result["on_hand_qty"] == 7
        assert len(result["movements"]) == 2

    def test_unknown_product(self, db_session, store, owner_scope):
        with pytest.raises(NotFoundError):
            inventory_service.product_inventory(store.id, "missing", owner_scope)


class TestCustomers:

    def test_create_and_update_bumps_updated_at(self, db_session):
        customer = customer_service.create_customer({"name": "Ama Hardware", "phone": "0555"})
        created_at = customer.updated_at

        updated = customer_service.update_customer(customer.id, {"whatsapp": "0555", "name": "Ama Hardware Ltd"})
        assert updated.name == "Ama Hardware Ltd"
        assert updated.updated_at >= created_at

    def test_name_required(self, db_session):
        with pytest.raises(ValidationError):
            customer_service.create_customer({"phone": "0555"})

    def test_update_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            customer_service.update_customer("missing", {"name": "X"})

    def test_ledger_totals_exclude_void_sales(self, db_session, store, product, customer, owner_scope):
        def credit_sale(qty):
            return sales_service.create_sale(
                {
                    "store_id": store.id,
                    "customer_id": customer.id,
                    "sale_type": "CREDIT",
                    "line_items": [{"product_id": product.id, "quantity": qty, "unit_price": 10}],
                },
                owner_scope,
            )

        kept = credit_sale(5)
        voided = credit_sale(2)
        sales_service.void_sale(voided.id, "Entered twice", owner_scope)
        payment_service.create_payment({"customer_id": customer.id, "sale_id": kept.id, "amount": 20}, owner_scope)

        ledger = customer_service.customer_ledger(customer.id, owner_scope)
        assert ledger["totals"] == {"total_invoiced": "50.00", "total_paid": "20.00", "total_due": "30.00"}
        assert len(ledger["sales"]) == 2
        assert len(ledger["payments"]) == 1
        assert Decimal(ledger["totals"]["total_due"]) == Decimal("30.00")
