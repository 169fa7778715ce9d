"""Binds shul members to customer records at the payment gateway."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.core.errors import NotFoundError
from shulpay.models.member import Member
from shulpay.models.payment_customer import PaymentCustomer
from shulpay.models.processor import Processor, ProcessorCredentials
from shulpay.repositories.member_repository import MemberRepository
from shulpay.repositories.payment_customer_repository import PaymentCustomerRepository
from shulpay.services.gateway import CustomerProfile, get_gateway
from shulpay.services.processor_registry import ProcessorRegistry

logger = logging.getLogger(__name__)


@dataclass
class CustomerBinding:
    customer: PaymentCustomer
    created: bool

    @property
    def customer_id(self) -> UUID:
        return self.customer.id  # type: ignore[return-value]

    @property
    def external_customer_id(self) -> str:
        return str(self.customer.external_customer_id)


def customer_number(shul_id: UUID, person_id: UUID) -> str:
    """Deterministic gateway customer number: shul and member id prefixes."""
    return f"{str(shul_id)[:8]}-{str(person_id)[:8]}"


class CustomerBinder:
    def __init__(self, db: Session):
        self.db = db
        self.customer_repo = PaymentCustomerRepository(db)
        self.member_repo = MemberRepository(db)
        self.registry = ProcessorRegistry(db)

    def ensure_customer(
        self,
        processor_id: UUID,
        person_id: UUID,
        force_create: bool = False,
    ) -> CustomerBinding:
        """Return the member's customer for this processor, creating it if needed.

        An existing binding is returned without contacting the gateway unless
        ``force_create`` is set.
        """
        if not force_create:
            existing = self.customer_repo.get_for_person(person_id, processor_id)
            if existing is not None:
                return CustomerBinding(customer=existing, created=False)

        processor, credentials = self.registry.require_active(processor_id)
        return self._create(processor, credentials, person_id)

    def _create(
        self,
        processor: Processor,
        credentials: ProcessorCredentials,
        person_id: UUID,
    ) -> CustomerBinding:
        shul_id: UUID = processor.shul_id  # type: ignore[assignment]
        member = self.member_repo.get_by_id(person_id, shul_id)
        if member is None:
            raise NotFoundError("Person not found")

        number = customer_number(shul_id, person_id)
        gateway = get_gateway(processor.type)  # type: ignore[arg-type]
        result = gateway.create_customer(credentials, self._profile(member, number))

        external_id = result.customer_id or number
        customer, inserted = self.customer_repo.upsert(
            shul_id=shul_id,
            person_id=person_id,
            processor_id=processor.id,  # type: ignore[arg-type]
            external_customer_id=external_id,
            external_customer_number=number,
            email=member.email,  # type: ignore[arg-type]
            name=member.full_name,
        )
        created = inserted and not result.already_exists
        logger.info(
            "Bound person %s to gateway customer %s on processor %s (created=%s)",
            person_id,
            customer.external_customer_id,
            processor.id,
            created,
        )
        return CustomerBinding(customer=customer, created=created)

    @staticmethod
    def _profile(member: Member, number: str) -> CustomerProfile:
        return CustomerProfile(
            customer_number=number,
            first_name=str(member.first_name or ""),
            last_name=str(member.last_name or ""),
            email=str(member.email or ""),
            street=str(member.address or ""),
            city=str(member.city or ""),
            state=str(member.state or ""),
            zip=str(member.zip or ""),
            phone=str(member.phone or ""),
        )
