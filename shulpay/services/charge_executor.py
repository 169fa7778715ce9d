"""Charge execution against a processor, with idempotency and settlement."""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shulpay.core.errors import (
    ConflictError,
    GatewayError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from shulpay.models.invoice import Invoice
from shulpay.models.payment_method import PaymentMethod, PaymentMethodType
from shulpay.models.payment_transaction import PaymentTransaction, TransactionStatus
from shulpay.models.processor import Processor
from shulpay.models.shared import utc_today
from shulpay.repositories.invoice_repository import InvoiceRepository
from shulpay.repositories.payment_method_repository import PaymentMethodRepository
from shulpay.repositories.payment_repository import PaymentRepository
from shulpay.repositories.transaction_repository import TransactionRepository
from shulpay.services.gateway import SaleResult, get_gateway
from shulpay.services.processor_registry import ProcessorRegistry

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass
class ChargeOutcome:
    """Result of a charge attempt.

    ``transaction_id`` is the gateway's reference number, ``transaction``
    the local attempt log row.
    """

    success: bool
    status: str
    transaction: PaymentTransaction | None = None
    payment_id: UUID | None = None
    duplicate: bool = False
    error: str | None = None
    response_code: str | None = None

    @property
    def transaction_id(self) -> str | None:
        if self.transaction is None or self.transaction.external_transaction_id is None:
            return None
        return str(self.transaction.external_transaction_id)

    @property
    def message(self) -> str | None:
        if self.duplicate:
            return "Duplicate request, returning prior result"
        if self.success:
            return "Payment processed successfully"
        return None


class ChargeExecutor:
    def __init__(self, db: Session):
        self.db = db
        self.registry = ProcessorRegistry(db)
        self.transaction_repo = TransactionRepository(db)
        self.method_repo = PaymentMethodRepository(db)
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = PaymentRepository(db)

    def charge(
        self,
        processor_id: UUID | None,
        amount: Decimal | None,
        method_id: UUID | None = None,
        token: str | None = None,
        person_id: UUID | None = None,
        invoice_id: UUID | None = None,
        campaign_id: UUID | None = None,
        description: str | None = None,
        idempotency_key: str | None = None,
        schedule_id: UUID | None = None,
    ) -> ChargeOutcome:
        """Run one sale.

        Declines and gateway-reported errors come back as an unsuccessful
        outcome. Input problems raise ``ValidationError``/``NotFoundError``;
        an unreachable gateway raises ``GatewayError`` after the attempt has
        been recorded as ``error``. A key held by an attempt still in flight
        raises ``ConflictError``.
        """
        if processor_id is None:
            raise ValidationError("Missing required field: processor_id")
        if amount is not None:
            amount = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
        if amount is None or amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        if method_id is None and not token:
            raise ValidationError("Either method_id or token is required")

        processor = self.registry.get(processor_id)
        shul_id: UUID = processor.shul_id  # type: ignore[assignment]

        if idempotency_key:
            prior = self.transaction_repo.find_approved_by_idempotency_key(
                shul_id, idempotency_key
            )
            if prior is not None:
                return self._duplicate(prior, idempotency_key)

        processor, credentials = self.registry.require_active(processor_id)

        method: PaymentMethod | None = None
        if method_id is not None:
            method = self._resolve_method(method_id, processor)
            token = str(method.external_token)
            if person_id is None:
                person_id = method.person_id  # type: ignore[assignment]

        invoice: Invoice | None = None
        if invoice_id is not None:
            invoice = self.invoice_repo.get_by_id(invoice_id, shul_id)
            if invoice is None:
                raise NotFoundError("Invoice not found")

        gateway = get_gateway(processor.type)  # type: ignore[arg-type]
        request = gateway.build_sale(
            credentials,
            amount,
            str(token),
            invoice=str(invoice.invoice_number) if invoice is not None else None,
            description=description,
        )
        stored_request = gateway.redact(request)
        stored_request["idempotency_key"] = idempotency_key

        try:
            transaction = self.transaction_repo.create_processing(
                shul_id=shul_id,
                processor_id=processor_id,
                amount=amount,
                request_payload=stored_request,
                person_id=person_id,
                payment_method_id=method_id,
                invoice_id=invoice_id,
                schedule_id=schedule_id,
                idempotency_key=idempotency_key,
                card_brand=method.brand if method is not None else None,  # type: ignore[arg-type]
                card_last4=method.last4 if method is not None else None,  # type: ignore[arg-type]
            )
        except ConflictError:
            prior = self.transaction_repo.find_approved_by_idempotency_key(
                shul_id, str(idempotency_key)
            )
            if prior is None:
                raise
            return self._duplicate(prior, str(idempotency_key))

        logger.info(
            "Submitting %s charge of %s on processor %s (transaction %s)",
            processor.type,
            request.get("xAmount"),
            processor_id,
            transaction.id,
        )

        try:
            result = gateway.sale(credentials, request)
        except GatewayError as exc:
            self.transaction_repo.update(
                transaction,
                status=TransactionStatus.ERROR.value,
                response_message=exc.message[:1000],
            )
            raise

        self._record_result(transaction, result)

        if not result.approved:
            logger.info(
                "Charge %s %s: %s", transaction.id, result.status, result.reason or result.result
            )
            return ChargeOutcome(
                success=False,
                status=result.status,
                transaction=transaction,
                error=result.reason or "Payment declined",
                response_code=result.result_code,
            )

        payment_id = self._settle(
            transaction,
            result,
            method=method,
            campaign_id=campaign_id,
            idempotency_key=idempotency_key,
        )
        return ChargeOutcome(
            success=True,
            status=TransactionStatus.APPROVED.value,
            transaction=transaction,
            payment_id=payment_id,
        )

    def _duplicate(self, prior: PaymentTransaction, idempotency_key: str) -> ChargeOutcome:
        logger.info(
            "Duplicate charge for key %s, returning transaction %s",
            idempotency_key,
            prior.external_transaction_id,
        )
        return ChargeOutcome(
            success=True,
            status=TransactionStatus.APPROVED.value,
            transaction=prior,
            payment_id=prior.payment_id,  # type: ignore[arg-type]
            duplicate=True,
        )

    def _resolve_method(self, method_id: UUID, processor: Processor) -> PaymentMethod:
        method = self.method_repo.get_active(method_id)
        if (
            method is None
            or method.processor_id != processor.id
            or method.shul_id != processor.shul_id
        ):
            raise NotFoundError("Payment method not found or inactive")
        return method

    def _record_result(self, transaction: PaymentTransaction, result: SaleResult) -> None:
        self.transaction_repo.update(
            transaction,
            status=result.status,
            external_transaction_id=result.ref_num,
            external_batch_id=result.batch,
            response_code=result.result_code,
            response_message=result.reason,
            avs_result=result.avs_result,
            cvv_result=result.cvv_result,
            processor_fee=result.fee,
            response_payload=result.raw,
        )

    def _settle(
        self,
        transaction: PaymentTransaction,
        result: SaleResult,
        method: PaymentMethod | None,
        campaign_id: UUID | None,
        idempotency_key: str | None,
    ) -> UUID:
        """Write the payment, apply it to the invoice, link it, in one commit."""
        method_type = (
            str(method.type) if method is not None else PaymentMethodType.CARD.value
        )
        try:
            payment = self.payment_repo.add(
                shul_id=transaction.shul_id,  # type: ignore[arg-type]
                person_id=transaction.person_id,  # type: ignore[arg-type]
                processor_id=transaction.processor_id,  # type: ignore[arg-type]
                invoice_id=transaction.invoice_id,  # type: ignore[arg-type]
                campaign_id=campaign_id,
                amount=transaction.amount,  # type: ignore[arg-type]
                processor_fee=result.fee,
                method=method_type,
                payment_date=utc_today(),
                transaction_id=result.ref_num,
                idempotency_key=idempotency_key,
            )
            if transaction.invoice_id is not None:
                self.invoice_repo.apply_payment(
                    transaction.invoice_id,  # type: ignore[arg-type]
                    transaction.shul_id,  # type: ignore[arg-type]
                    transaction.amount,  # type: ignore[arg-type]
                )
            transaction.payment_id = payment.id
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(
                "Charge %s approved (ref %s) but settlement failed",
                transaction.id,
                result.ref_num,
            )
            raise PersistenceError("Payment approved but could not be recorded") from exc

        logger.info(
            "Charge %s approved: ref %s, payment %s",
            transaction.id,
            result.ref_num,
            payment.id,
        )
        return payment.id  # type: ignore[return-value]
