"""Repository for PaymentTransaction (charge attempt log)."""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shulpay.core.errors import ConflictError
from shulpay.models.payment_transaction import PaymentTransaction, TransactionStatus

logger = logging.getLogger(__name__)


class TransactionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, transaction_id: UUID) -> PaymentTransaction | None:
        return (
            self.db.query(PaymentTransaction)
            .filter(PaymentTransaction.id == transaction_id)
            .first()
        )

    def get_by_external_id(self, external_transaction_id: str) -> PaymentTransaction | None:
        return (
            self.db.query(PaymentTransaction)
            .filter(PaymentTransaction.external_transaction_id == external_transaction_id)
            .order_by(PaymentTransaction.created_at.desc())
            .first()
        )

    def find_approved_by_idempotency_key(
        self, shul_id: UUID, idempotency_key: str
    ) -> PaymentTransaction | None:
        return (
            self.db.query(PaymentTransaction)
            .filter(
                PaymentTransaction.shul_id == shul_id,
                PaymentTransaction.idempotency_key == idempotency_key,
                PaymentTransaction.status == TransactionStatus.APPROVED.value,
            )
            .first()
        )

    def create_processing(
        self,
        *,
        shul_id: UUID,
        processor_id: UUID,
        amount: Decimal,
        request_payload: dict[str, Any],
        person_id: UUID | None = None,
        payment_method_id: UUID | None = None,
        invoice_id: UUID | None = None,
        schedule_id: UUID | None = None,
        idempotency_key: str | None = None,
        card_brand: str | None = None,
        card_last4: str | None = None,
    ) -> PaymentTransaction:
        transaction = PaymentTransaction(
            shul_id=shul_id,
            processor_id=processor_id,
            person_id=person_id,
            payment_method_id=payment_method_id,
            invoice_id=invoice_id,
            schedule_id=schedule_id,
            amount=amount,
            status=TransactionStatus.PROCESSING.value,
            idempotency_key=idempotency_key,
            card_brand=card_brand,
            card_last4=card_last4,
            request_payload=request_payload,
        )
        self.db.add(transaction)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Another attempt holds this key and is in flight or approved.
            self.db.rollback()
            logger.info(
                "Idempotency key %s already held by a live attempt in shul %s",
                idempotency_key,
                shul_id,
            )
            raise ConflictError(
                "A charge with this idempotency key is already in progress"
            ) from exc
        self.db.refresh(transaction)
        return transaction

    def update(self, transaction: PaymentTransaction, **fields: Any) -> PaymentTransaction:
        for key, value in fields.items():
            setattr(transaction, key, value)
        self.db.commit()
        self.db.refresh(transaction)
        return transaction
