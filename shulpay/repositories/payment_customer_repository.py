"""Repository for PaymentCustomer (member ↔ gateway customer bindings)."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shulpay.models.payment_customer import PaymentCustomer

logger = logging.getLogger(__name__)


class PaymentCustomerRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, customer_id: UUID) -> PaymentCustomer | None:
        return self.db.query(PaymentCustomer).filter(PaymentCustomer.id == customer_id).first()

    def get_for_person(self, person_id: UUID, processor_id: UUID) -> PaymentCustomer | None:
        return (
            self.db.query(PaymentCustomer)
            .filter(
                PaymentCustomer.person_id == person_id,
                PaymentCustomer.processor_id == processor_id,
            )
            .first()
        )

    def get_by_external_id(self, external_customer_id: str) -> list[PaymentCustomer]:
        return (
            self.db.query(PaymentCustomer)
            .filter(PaymentCustomer.external_customer_id == external_customer_id)
            .all()
        )

    def upsert(
        self,
        *,
        shul_id: UUID,
        person_id: UUID,
        processor_id: UUID,
        external_customer_id: str,
        external_customer_number: str | None,
        email: str | None,
        name: str | None,
    ) -> tuple[PaymentCustomer, bool]:
        """Insert the binding, or refresh the existing one for (person, processor).

        The external customer id of an existing row is never overwritten.
        Returns ``(customer, inserted)``.
        """
        now = datetime.now(UTC)
        existing = self.get_for_person(person_id, processor_id)
        if existing is None:
            customer = PaymentCustomer(
                shul_id=shul_id,
                person_id=person_id,
                processor_id=processor_id,
                external_customer_id=external_customer_id,
                external_customer_number=external_customer_number,
                email=email,
                name=name,
                synced_at=now,
            )
            self.db.add(customer)
            try:
                self.db.commit()
            except IntegrityError:
                # Another request bound this member first; converge on its row.
                self.db.rollback()
                logger.info(
                    "Customer binding for person %s on processor %s created concurrently",
                    person_id,
                    processor_id,
                )
                existing = self.get_for_person(person_id, processor_id)
                if existing is None:
                    raise
            else:
                self.db.refresh(customer)
                return customer, True

        existing.email = email  # type: ignore[assignment]
        existing.name = name  # type: ignore[assignment]
        existing.synced_at = now  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(existing)
        return existing, False
