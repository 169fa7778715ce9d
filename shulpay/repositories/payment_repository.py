"""Payment repository for data access."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.models.payment import Payment, PaymentStatus


class PaymentRepository:
    """Repository for Payment model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, payment_id: UUID) -> Payment | None:
        return self.db.query(Payment).filter(Payment.id == payment_id).first()

    def get_by_transaction_id(self, transaction_id: str) -> Payment | None:
        return self.db.query(Payment).filter(Payment.transaction_id == transaction_id).first()

    def add(
        self,
        *,
        shul_id: UUID,
        amount: Decimal,
        payment_date: date,
        method: str,
        processor_id: UUID | None = None,
        person_id: UUID | None = None,
        invoice_id: UUID | None = None,
        campaign_id: UUID | None = None,
        processor_fee: Decimal = Decimal("0"),
        transaction_id: str | None = None,
        idempotency_key: str | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Stage a completed payment in the current transaction. The caller commits."""
        payment = Payment(
            shul_id=shul_id,
            person_id=person_id,
            processor_id=processor_id,
            invoice_id=invoice_id,
            campaign_id=campaign_id,
            amount=amount,
            processor_fee=processor_fee,
            method=method,
            payment_date=payment_date,
            status=PaymentStatus.COMPLETED.value,
            transaction_id=transaction_id,
            idempotency_key=idempotency_key,
            notes=notes,
        )
        self.db.add(payment)
        self.db.flush()
        return payment
