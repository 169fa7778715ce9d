"""Tests for the charge executor: idempotency, outcomes and settlement."""

import uuid
from decimal import Decimal
from unittest.mock import patch

import httpx
import pytest

from shulpay.core.errors import ConflictError, GatewayError, NotFoundError, ValidationError
from shulpay.models.invoice import Invoice
from shulpay.models.payment import Payment
from shulpay.models.payment_method import PaymentMethod
from shulpay.models.payment_transaction import PaymentTransaction
from shulpay.repositories.invoice_repository import InvoiceRepository
from shulpay.repositories.payment_customer_repository import PaymentCustomerRepository
from shulpay.repositories.payment_method_repository import PaymentMethodRepository
from shulpay.repositories.transaction_repository import TransactionRepository
from shulpay.services.charge_executor import ChargeExecutor
from tests.conftest import (
    DEFAULT_PERSON_ID,
    DEFAULT_SHUL_ID,
    create_processor,
    mock_gateway_http,
    sale_response,
)

APPROVED = {
    "xResult": "A",
    "xRefNum": "3000001",
    "xBatch": "77",
    "xStatus": "Approved",
    "xAvsResultCode": "YYY",
    "xCvvResultCode": "M",
    "xFee": "1.25",
}
DECLINED = {
    "xResult": "D",
    "xRefNum": "3000002",
    "xError": "Insufficient funds",
    "xResultCode": "51",
}


@pytest.fixture
def processor(db_session):
    return create_processor(db_session)


@pytest.fixture
def method(db_session, processor):
    customer, _ = PaymentCustomerRepository(db_session).upsert(
        shul_id=DEFAULT_SHUL_ID,
        person_id=DEFAULT_PERSON_ID,
        processor_id=processor.id,
        external_customer_id="c_100",
        external_customer_number=None,
        email=None,
        name=None,
    )
    return PaymentMethodRepository(db_session).create(
        shul_id=DEFAULT_SHUL_ID,
        person_id=DEFAULT_PERSON_ID,
        processor_id=processor.id,
        customer_id=customer.id,
        external_token="stored_token",
        type="card",
        brand="Visa",
        last4="4242",
        is_default=True,
    )


def _invoice(db_session, total="50.00", balance=None) -> Invoice:
    invoice = InvoiceRepository(db_session).create(
        shul_id=DEFAULT_SHUL_ID,
        member_id=DEFAULT_PERSON_ID,
        total=Decimal(total),
        line_items=[{"description": "Dues", "quantity": "1", "amount": total}],
    )
    if balance is not None:
        invoice.balance = Decimal(balance)
        db_session.commit()
    return invoice


class TestValidation:
    def test_requires_processor(self, db_session):
        with pytest.raises(ValidationError, match="processor_id"):
            ChargeExecutor(db_session).charge(None, Decimal("5"), token="t")

    @pytest.mark.parametrize(
        "amount", [None, Decimal("0"), Decimal("-1"), Decimal("0.004"), Decimal("0.0049")]
    )
    def test_requires_positive_amount(self, db_session, processor, amount):
        with mock_gateway_http() as client, pytest.raises(ValidationError, match="Amount"):
            ChargeExecutor(db_session).charge(processor.id, amount, token="t")

        client.post.assert_not_called()
        assert db_session.query(PaymentTransaction).count() == 0

    def test_requires_method_or_token(self, db_session, processor):
        with pytest.raises(ValidationError, match="method_id or token"):
            ChargeExecutor(db_session).charge(processor.id, Decimal("5"))

    def test_unknown_processor(self, db_session):
        with pytest.raises(NotFoundError):
            ChargeExecutor(db_session).charge(uuid.uuid4(), Decimal("5"), token="t")

    def test_inactive_method(self, db_session, processor, method):
        PaymentMethodRepository(db_session).deactivate(method.id)

        with pytest.raises(NotFoundError, match="Payment method not found or inactive"):
            ChargeExecutor(db_session).charge(processor.id, Decimal("5"), method_id=method.id)

    def test_method_from_another_processor(self, db_session, processor, method):
        other = create_processor(db_session, name="Other")

        with pytest.raises(NotFoundError):
            ChargeExecutor(db_session).charge(other.id, Decimal("5"), method_id=method.id)

    def test_unknown_invoice(self, db_session, processor):
        with pytest.raises(NotFoundError, match="Invoice not found"):
            ChargeExecutor(db_session).charge(
                processor.id, Decimal("5"), token="t", invoice_id=uuid.uuid4()
            )


class TestApproved:
    def test_full_payment_marks_invoice_paid(self, db_session, processor, method):
        invoice = _invoice(db_session, total="50.00")

        with mock_gateway_http(sale_response(**APPROVED)) as client:
            outcome = ChargeExecutor(db_session).charge(
                processor.id,
                Decimal("50.00"),
                method_id=method.id,
                invoice_id=invoice.id,
                description="Annual dues",
            )

        assert outcome.success is True
        assert outcome.status == "approved"
        assert outcome.transaction_id == "3000001"

        sent = client.post.call_args.kwargs["data"]
        assert sent["xAmount"] == "50.00"
        assert sent["xToken"] == "stored_token"
        assert sent["xCommand"] == "cc:Sale"
        assert sent["xInvoice"] == invoice.invoice_number[:20]
        assert sent["xDescription"] == "Annual dues"

        db_session.refresh(invoice)
        assert invoice.balance == Decimal("0")
        assert invoice.status == "paid"
        assert invoice.paid_at is not None

        payment = db_session.query(Payment).filter(Payment.id == outcome.payment_id).one()
        assert payment.amount == Decimal("50.00")
        assert payment.processor_fee == Decimal("1.25")
        assert payment.method == "card"
        assert payment.transaction_id == "3000001"
        assert payment.invoice_id == invoice.id

        tx = outcome.transaction
        db_session.refresh(tx)
        assert tx.status == "approved"
        assert tx.payment_id == payment.id
        assert tx.external_batch_id == "77"
        assert tx.avs_result == "YYY"
        assert tx.cvv_result == "M"
        assert tx.card_last4 == "4242"
        assert tx.person_id == DEFAULT_PERSON_ID

    def test_partial_payment(self, db_session, processor, method):
        invoice = _invoice(db_session, total="100.00")

        with mock_gateway_http(sale_response(**APPROVED)):
            ChargeExecutor(db_session).charge(
                processor.id, Decimal("30.00"), method_id=method.id, invoice_id=invoice.id
            )

        db_session.refresh(invoice)
        assert invoice.balance == Decimal("70.00")
        assert invoice.status == "partial"
        assert invoice.paid_at is None

    def test_overpayment_floors_balance_at_zero(self, db_session, processor, method):
        invoice = _invoice(db_session, total="100.00", balance="20.00")

        with mock_gateway_http(sale_response(**APPROVED)):
            ChargeExecutor(db_session).charge(
                processor.id, Decimal("25.00"), method_id=method.id, invoice_id=invoice.id
            )

        db_session.refresh(invoice)
        assert invoice.balance == Decimal("0")
        assert invoice.status == "paid"

    def test_missing_balance_uses_total(self, db_session, processor, method):
        invoice = _invoice(db_session, total="40.00")
        invoice.balance = None
        db_session.commit()

        with mock_gateway_http(sale_response(**APPROVED)):
            ChargeExecutor(db_session).charge(
                processor.id, Decimal("10.00"), method_id=method.id, invoice_id=invoice.id
            )

        db_session.refresh(invoice)
        assert invoice.balance == Decimal("30.00")

    def test_one_time_token_is_redacted_in_log(self, db_session, processor):
        with mock_gateway_http(sale_response(**APPROVED)) as client:
            outcome = ChargeExecutor(db_session).charge(
                processor.id,
                Decimal("18"),
                token="one_time_token",
                idempotency_key="key-1",
            )

        assert client.post.call_args.kwargs["data"]["xAmount"] == "18.00"
        assert client.post.call_args.kwargs["data"]["xKey"] == "txn_key_secret"
        payload = outcome.transaction.request_payload
        assert payload["xKey"] == "[REDACTED]"
        assert payload["xToken"] == "[REDACTED]"
        assert payload["idempotency_key"] == "key-1"
        assert outcome.transaction.idempotency_key == "key-1"

    def test_amount_rounded_to_two_decimals(self, db_session, processor):
        with mock_gateway_http(sale_response(**APPROVED)) as client:
            ChargeExecutor(db_session).charge(processor.id, Decimal("10.005"), token="t")

        assert client.post.call_args.kwargs["data"]["xAmount"] == "10.01"

    def test_rounded_amount_is_recorded_and_applied(self, db_session, processor, method):
        invoice = _invoice(db_session, total="20.00")

        with mock_gateway_http(sale_response(**APPROVED)) as client:
            outcome = ChargeExecutor(db_session).charge(
                processor.id, Decimal("10.005"), method_id=method.id, invoice_id=invoice.id
            )

        assert client.post.call_args.kwargs["data"]["xAmount"] == "10.01"
        assert outcome.transaction.amount == Decimal("10.01")
        assert db_session.query(Payment).one().amount == Decimal("10.01")
        db_session.refresh(invoice)
        assert invoice.balance == Decimal("9.99")

    def test_half_cent_rounds_up_to_one_cent(self, db_session, processor):
        with mock_gateway_http(sale_response(**APPROVED)) as client:
            outcome = ChargeExecutor(db_session).charge(processor.id, Decimal("0.005"), token="t")

        assert client.post.call_args.kwargs["data"]["xAmount"] == "0.01"
        assert outcome.success is True


class TestIdempotency:
    def test_duplicate_key_returns_prior_result(self, db_session, processor, method):
        executor = ChargeExecutor(db_session)
        with mock_gateway_http(sale_response(**APPROVED)):
            first = executor.charge(
                processor.id, Decimal("25"), method_id=method.id, idempotency_key="dup-1"
            )

        with mock_gateway_http() as client:
            second = executor.charge(
                processor.id, Decimal("25"), method_id=method.id, idempotency_key="dup-1"
            )

        client.post.assert_not_called()
        assert second.duplicate is True
        assert second.success is True
        assert second.transaction_id == first.transaction_id
        assert second.payment_id == first.payment_id
        assert db_session.query(Payment).count() == 1
        assert db_session.query(PaymentTransaction).count() == 1

    def test_declined_attempt_does_not_block_retry(self, db_session, processor, method):
        executor = ChargeExecutor(db_session)
        with mock_gateway_http(sale_response(**DECLINED)):
            executor.charge(
                processor.id, Decimal("25"), method_id=method.id, idempotency_key="retry-1"
            )

        with mock_gateway_http(sale_response(**APPROVED)) as client:
            retry = executor.charge(
                processor.id, Decimal("25"), method_id=method.id, idempotency_key="retry-1"
            )

        client.post.assert_called_once()
        assert retry.success is True
        assert retry.duplicate is False

    def test_in_flight_key_rejects_second_charge(self, db_session, processor):
        TransactionRepository(db_session).create_processing(
            shul_id=DEFAULT_SHUL_ID,
            processor_id=processor.id,
            amount=Decimal("25.00"),
            request_payload={},
            idempotency_key="inflight-1",
        )

        with mock_gateway_http() as client, pytest.raises(ConflictError, match="in progress"):
            ChargeExecutor(db_session).charge(
                processor.id, Decimal("25"), token="t", idempotency_key="inflight-1"
            )

        client.post.assert_not_called()
        assert db_session.query(PaymentTransaction).count() == 1

    def test_concurrent_approval_returns_duplicate(self, db_session, processor, method):
        """A request that read before the other committed converges on its result."""
        executor = ChargeExecutor(db_session)
        with mock_gateway_http(sale_response(**APPROVED)):
            first = executor.charge(
                processor.id, Decimal("25"), method_id=method.id, idempotency_key="race-1"
            )

        with (
            patch.object(
                executor.transaction_repo,
                "find_approved_by_idempotency_key",
                side_effect=[None, first.transaction],
            ),
            mock_gateway_http() as client,
        ):
            second = executor.charge(
                processor.id, Decimal("25"), method_id=method.id, idempotency_key="race-1"
            )

        client.post.assert_not_called()
        assert second.duplicate is True
        assert second.payment_id == first.payment_id
        assert db_session.query(PaymentTransaction).count() == 1
        assert db_session.query(Payment).count() == 1

    def test_key_is_scoped_to_shul(self, db_session, processor, method):
        from shulpay.models.shul import Shul

        other_shul = Shul(name="Other")
        db_session.add(other_shul)
        db_session.commit()
        other_processor = create_processor(db_session, shul_id=other_shul.id)

        with mock_gateway_http(sale_response(**APPROVED)):
            ChargeExecutor(db_session).charge(
                processor.id, Decimal("5"), method_id=method.id, idempotency_key="shared"
            )
        with mock_gateway_http(sale_response(**APPROVED)) as client:
            outcome = ChargeExecutor(db_session).charge(
                other_processor.id, Decimal("5"), token="t", idempotency_key="shared"
            )

        client.post.assert_called_once()
        assert outcome.duplicate is False


class TestDeclinedAndErrors:
    def test_decline_leaves_invoice_untouched(self, db_session, processor, method):
        invoice = _invoice(db_session, total="50.00")

        with mock_gateway_http(sale_response(**DECLINED)):
            outcome = ChargeExecutor(db_session).charge(
                processor.id, Decimal("50.00"), method_id=method.id, invoice_id=invoice.id
            )

        assert outcome.success is False
        assert outcome.status == "declined"
        assert outcome.error == "Insufficient funds"
        assert outcome.response_code == "51"
        assert outcome.payment_id is None

        db_session.refresh(invoice)
        assert invoice.balance == Decimal("50.00")
        assert invoice.status == "pending"
        assert db_session.query(Payment).count() == 0
        assert outcome.transaction.status == "declined"
        assert outcome.transaction.response_message == "Insufficient funds"

    def test_gateway_error_result(self, db_session, processor):
        with mock_gateway_http(sale_response(xResult="E", xError="Invalid token")):
            outcome = ChargeExecutor(db_session).charge(processor.id, Decimal("5"), token="t")

        assert outcome.success is False
        assert outcome.status == "error"
        assert outcome.error == "Invalid token"

    def test_decline_reason_falls_back_to_status(self, db_session, processor):
        with mock_gateway_http(sale_response(xResult="D", xRefNum="3000003", xStatus="Declined")):
            outcome = ChargeExecutor(db_session).charge(processor.id, Decimal("5"), token="t")

        assert outcome.error == "Declined"
        assert outcome.transaction.response_message == "Declined"

    def test_decline_without_reason(self, db_session, processor):
        with mock_gateway_http(sale_response(xResult="D", xRefNum="3000004")):
            outcome = ChargeExecutor(db_session).charge(processor.id, Decimal("5"), token="t")

        assert outcome.error == "Payment declined"
        assert outcome.transaction.response_message is None

    def test_transport_failure_marks_transaction_error(self, db_session, processor):
        with mock_gateway_http(httpx.ReadTimeout("Read timed out")), pytest.raises(GatewayError):
            ChargeExecutor(db_session).charge(processor.id, Decimal("5"), token="t")

        tx = db_session.query(PaymentTransaction).one()
        assert tx.status == "error"
        assert "Read timed out" in tx.response_message

    def test_unreadable_response(self, db_session, processor):
        with mock_gateway_http(sale_response()), pytest.raises(GatewayError):
            ChargeExecutor(db_session).charge(processor.id, Decimal("5"), token="t")

        assert db_session.query(PaymentTransaction).one().status == "error"

    def test_processing_row_written_before_gateway_call(self, db_session, processor):
        seen = {}

        def capture(*args, **kwargs):
            seen["status"] = db_session.query(PaymentTransaction.status).scalar()
            return sale_response(**APPROVED)

        with mock_gateway_http() as client:
            client.post.side_effect = capture
            ChargeExecutor(db_session).charge(processor.id, Decimal("5"), token="t")

        assert seen["status"] == "processing"


def test_stored_method_is_not_modified(db_session, processor, method):
    with mock_gateway_http(sale_response(**APPROVED)):
        ChargeExecutor(db_session).charge(processor.id, Decimal("5"), method_id=method.id)

    stored = db_session.query(PaymentMethod).filter(PaymentMethod.id == method.id).one()
    assert stored.external_token == "stored_token"
    assert stored.is_active is True
