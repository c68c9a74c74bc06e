# Overview: Pytest coverage for payment application.

from decimal import Decimal

import pytest

from matpro.errors import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from matpro.models import Customer, Payment, Sale
from matpro.services import payment_service, sales_service


@pytest.fixture
def credit_sale(db_session, store, product, customer, owner_scope):
    return sales_service.create_sale(
        {
            "store_id": store.id,
            "customer_id": customer.id,
            "sale_type": "CREDIT",
            "line_items": [{"product_id": product.id, "quantity": 4, "unit_price": "10.00"}],
        },
        owner_scope,
    )


class TestCreatePayment:

    def test_payment_moves_paid_and_due_together(self, db_session, credit_sale, customer, owner_scope):
        payment_service.create_payment(
            {"customer_id": customer.id, "sale_id": credit_sale.id, "amount": "15.50"},
            owner_scope,
        )
        payment_service.create_payment(
            {"customer_id": customer.id, "sale_id": credit_sale.id, "amount": 4.5},
            owner_scope,
        )

        sale = db_session.get(Sale, credit_sale.id)
        assert sale.amount_paid == Decimal("20.00")
        assert sale.amount_due == Decimal("20.00")
        assert sale.amount_due == sale.total_amount - sale.amount_paid

    def test_payment_numbers_are_sequential(self, db_session, credit_sale, customer, owner_scope):
        first = payment_service.create_payment({"customer_id": customer.id, "amount": 1}, owner_scope)
        second = payment_service.create_payment({"customer_id": customer.id, "amount": 1}, owner_scope)
        assert first.payment_number[-3:] == "001"
        assert second.payment_number[-3:] == "002"

    def test_standalone_payment(self, db_session, customer, owner_scope):
        payment = payment_service.create_payment(
            {"customer_id": customer.id, "amount": 50, "payment_method": "mobile_money"},
            owner_scope,
        )
        assert payment.sale_id is None
        assert payment.payment_method == "MOBILE_MONEY"
        assert payment.to_dict()["customer_name"] == customer.name

    @pytest.mark.parametrize("amount", [0, -5, "abc"])
    def test_amount_must_be_positive_number(self, db_session, customer, owner_scope, amount):
        with pytest.raises(ValidationError):
            payment_service.create_payment({"customer_id": customer.id, "amount": amount}, owner_scope)

    def test_missing_fields(self, db_session, owner_scope):
        with pytest.raises(ValidationError) as exc:
            payment_service.create_payment({}, owner_scope)
        assert exc.value.details["missing_fields"] == ["customer_id", "amount"]

    def test_unknown_customer(self, db_session, owner_scope):
        with pytest.raises(NotFoundError):
            payment_service.create_payment({"customer_id": "missing", "amount": 1}, owner_scope)

    def test_unknown_sale(self, db_session, customer, owner_scope):
        with pytest.raises(NotFoundError):
            payment_service.create_payment({"customer_id": customer.id, "sale_id": "missing", "amount": 1}, owner_scope)
        assert db_session.query(Payment).count() == 0

    def test_void_sale_rejects_payment(self, db_session, credit_sale, customer, owner_scope):
        sales_service.void_sale(credit_sale.id, "Cancelled", owner_scope)
        with pytest.raises(ConflictError):
            payment_service.create_payment(
                {"customer_id": customer.id, "sale_id": credit_sale.id, "amount": 5},
                owner_scope,
            )

    def test_customer_must_match_sale(self, db_session, credit_sale, owner_scope):
        stranger = Customer(name="Someone Else")
        db_session.add(stranger)
        db_session.commit()

        with pytest.raises(ValidationError):
            payment_service.create_payment(
                {"customer_id": stranger.id, "sale_id": credit_sale.id, "amount": 5},
                owner_scope,
            )

    def test_manager_cannot_pay_other_store_sale(
        self, db_session, other_store, product, customer, owner_scope, manager_scope
    ):
        sale = sales_service.create_sale(
            {
                "store_id": other_store.id,
                "customer_id": customer.id,
                "sale_type": "CREDIT",
                "line_items": [{"product_id": product.id, "quantity": 1, "unit_price": 10}],
            },
            owner_scope,
        )
        with pytest.raises(AccessDeniedError):
            payment_service.create_payment(
                {"customer_id": customer.id, "sale_id": sale.id, "amount": 5},
                manager_scope,
            )
        assert db_session.get(Sale, sale.id).amount_paid == Decimal("0.00")
