"""Reconciles gateway postbacks against the transaction log.

Every postback is logged. Reconciliation is best effort: failures are
recorded on the event and in the log, never reported back to the gateway.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.core.config import settings
from shulpay.models.payment_transaction import PaymentTransaction, TransactionStatus
from shulpay.models.processor import ProcessorType
from shulpay.models.shared import utc_now
from shulpay.models.webhook_event import WebhookEvent
from shulpay.repositories.payment_customer_repository import PaymentCustomerRepository
from shulpay.repositories.transaction_repository import TransactionRepository
from shulpay.repositories.webhook_event_repository import WebhookEventRepository
from shulpay.services.gateway import get_gateway

logger = logging.getLogger(__name__)

INVALID_SIGNATURE = "invalid signature"


def _text(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    return str(value)


class WebhookReconciler:
    def __init__(self, db: Session):
        self.db = db
        self.event_repo = WebhookEventRepository(db)
        self.customer_repo = PaymentCustomerRepository(db)
        self.transaction_repo = TransactionRepository(db)

    def handle(
        self,
        payload: dict[str, Any],
        raw_body: bytes = b"",
        signature: str | None = None,
    ) -> WebhookEvent:
        """Log a postback and reconcile it with its transaction, if any."""
        ref_num = _text(payload, "xRefNum")
        event_type = _text(payload, "xCommand") or "unknown"

        if settings.webhook_signing_enabled:
            gateway = get_gateway(ProcessorType.CARDKNOX)
            if not gateway.verify_webhook_signature(
                raw_body, signature or "", settings.CARDKNOX_WEBHOOK_SECRET
            ):
                logger.warning("Rejected postback for %s: invalid signature", ref_num)
                return self.event_repo.create(
                    event_type=event_type,
                    event_id=ref_num,
                    payload=payload,
                    process_error=INVALID_SIGNATURE,
                )

        transaction = self.transaction_repo.get_by_external_id(ref_num) if ref_num else None
        processor_id = self._resolve_processor(_text(payload, "xCustomerId"), transaction)

        event = self.event_repo.create(
            event_type=event_type,
            event_id=ref_num,
            payload=payload,
            processor_id=processor_id,
        )

        if not ref_num or not _text(payload, "xResult"):
            return event
        if transaction is None:
            logger.warning("No matching transaction found for postback %s", ref_num)
            return event

        try:
            conflict = self._reconcile(transaction, payload)
        except Exception as exc:
            self.db.rollback()
            logger.exception("Failed to reconcile postback %s", ref_num)
            return self.event_repo.update(event, process_error=str(exc)[:2000])

        event = self.event_repo.update(
            event,
            transaction_id=transaction.id,
            payment_id=transaction.payment_id,
            processed_at=utc_now(),
            process_error=conflict,
        )
        logger.info("Reconciled postback %s with transaction %s", ref_num, transaction.id)
        return event

    def _resolve_processor(
        self, external_customer_id: str | None, transaction: PaymentTransaction | None
    ) -> UUID | None:
        if external_customer_id:
            customers = self.customer_repo.get_by_external_id(external_customer_id)
            if len(customers) == 1:
                return customers[0].processor_id  # type: ignore[return-value]
            if len(customers) > 1:
                logger.warning(
                    "Customer id %s matches %d processors, routing by transaction",
                    external_customer_id,
                    len(customers),
                )
        if transaction is not None:
            return transaction.processor_id  # type: ignore[return-value]
        return None

    def _reconcile(
        self, transaction: PaymentTransaction, payload: dict[str, Any]
    ) -> str | None:
        """Apply the postback to the transaction; return a conflict note, if any."""
        status = (
            TransactionStatus.APPROVED.value
            if payload.get("xResult") == "A"
            else TransactionStatus.DECLINED.value
        )
        message = _text(payload, "xError") or _text(payload, "xStatus")
        batch = _text(payload, "xBatch")

        if not transaction.is_terminal:
            self.transaction_repo.update(
                transaction,
                status=status,
                response_message=message or transaction.response_message,
                external_batch_id=batch or transaction.external_batch_id,
            )
            return None

        backfill: dict[str, Any] = {}
        if batch and not transaction.external_batch_id:
            backfill["external_batch_id"] = batch
        if message and not transaction.response_message:
            backfill["response_message"] = message
        if backfill:
            self.transaction_repo.update(transaction, **backfill)

        if transaction.status != status:
            logger.warning(
                "Postback for transaction %s reports %s but it is already %s",
                transaction.id,
                status,
                transaction.status,
            )
            return (
                f"status conflict: transaction is {transaction.status}, "
                f"postback reports {status}"
            )
        return None
