"""Per-shul registry of payment gateway accounts."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shulpay.core.config import settings
from shulpay.core.errors import ConflictError, NotFoundError, ProcessorNotReadyError
from shulpay.models.processor import Processor, ProcessorCredentials
from shulpay.repositories.payment_method_repository import PaymentMethodRepository
from shulpay.repositories.payment_schedule_repository import PaymentScheduleRepository
from shulpay.repositories.processor_repository import ProcessorRepository
from shulpay.schemas.processor import ProcessorCreate, ProcessorUpdate

logger = logging.getLogger(__name__)


@dataclass
class ClientConfig:
    """The only processor details that may be handed to a browser."""

    ifields_key: str
    software_name: str
    software_version: str


class ProcessorRegistry:
    def __init__(self, db: Session):
        self.db = db
        self.processor_repo = ProcessorRepository(db)
        self.schedule_repo = PaymentScheduleRepository(db)
        self.method_repo = PaymentMethodRepository(db)

    def list(self, shul_id: UUID) -> list[Processor]:
        return self.processor_repo.get_all(shul_id)

    def get(self, processor_id: UUID, shul_id: UUID | None = None) -> Processor:
        processor = self.processor_repo.get_by_id(processor_id, shul_id)
        if not processor:
            raise NotFoundError("Processor not found")
        return processor

    def add(self, shul_id: UUID, data: ProcessorCreate) -> Processor:
        processor = self.processor_repo.create(data, shul_id)
        logger.info(
            "Added %s processor %s for shul %s (default=%s)",
            processor.type,
            processor.id,
            shul_id,
            processor.is_default,
        )
        return processor

    def update(self, shul_id: UUID, processor_id: UUID, data: ProcessorUpdate) -> Processor:
        processor = self.processor_repo.update(processor_id, data, shul_id)
        if not processor:
            raise NotFoundError("Processor not found")
        return processor

    def remove(self, shul_id: UUID, processor_id: UUID) -> None:
        """Delete a processor that nothing active depends on."""
        self.get(processor_id, shul_id)

        schedules = self.schedule_repo.count_active_for_processor(processor_id)
        methods = self.method_repo.count_active_for_processor(processor_id)
        if schedules or methods:
            raise ConflictError(
                f"Processor is in use by {schedules} active schedule(s) "
                f"and {methods} active payment method(s)"
            )

        try:
            self.processor_repo.delete(processor_id, shul_id)
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(
                "Processor has payment history and cannot be removed, deactivate it instead"
            ) from None
        logger.info("Removed processor %s for shul %s", processor_id, shul_id)

    def require_active(
        self, processor_id: UUID, shul_id: UUID | None = None
    ) -> tuple[Processor, ProcessorCredentials]:
        """Load an active processor together with its credentials."""
        processor = self.get(processor_id, shul_id)
        if not processor.is_active:
            raise ProcessorNotReadyError("Processor not active")
        credentials = self.processor_repo.get_credentials(processor_id)
        if credentials is None:
            raise ProcessorNotReadyError("Processor not configured")
        return processor, credentials

    def client_config(self, processor_id: UUID) -> ClientConfig:
        _, credentials = self.require_active(processor_id)
        if not credentials.ifields_key:
            raise ProcessorNotReadyError("iFields key not configured")
        return ClientConfig(
            ifields_key=str(credentials.ifields_key),
            software_name=str(credentials.software_name or settings.DEFAULT_SOFTWARE_NAME),
            software_version=str(
                credentials.software_version or settings.DEFAULT_SOFTWARE_VERSION
            ),
        )
