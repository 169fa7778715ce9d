"""Repository for Processor and ProcessorCredentials."""

from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.models.processor import Processor, ProcessorCredentials
from shulpay.schemas.processor import (
    ProcessorCreate,
    ProcessorCredentialsInput,
    ProcessorUpdate,
)


class ProcessorRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(self, shul_id: UUID, active_only: bool = False) -> list[Processor]:
        query = self.db.query(Processor).filter(Processor.shul_id == shul_id)
        if active_only:
            query = query.filter(Processor.is_active == True)  # noqa: E712
        return query.order_by(Processor.created_at).all()

    def get_by_id(self, processor_id: UUID, shul_id: UUID | None = None) -> Processor | None:
        query = self.db.query(Processor).filter(Processor.id == processor_id)
        if shul_id is not None:
            query = query.filter(Processor.shul_id == shul_id)
        return query.first()

    def get_credentials(self, processor_id: UUID) -> ProcessorCredentials | None:
        return (
            self.db.query(ProcessorCredentials)
            .filter(ProcessorCredentials.processor_id == processor_id)
            .first()
        )

    def get_defaults(self, shul_id: UUID) -> list[Processor]:
        return (
            self.db.query(Processor)
            .filter(
                Processor.shul_id == shul_id,
                Processor.is_default == True,  # noqa: E712
            )
            .all()
        )

    def _clear_defaults(self, shul_id: UUID, exclude_id: UUID | None = None) -> None:
        query = self.db.query(Processor).filter(
            Processor.shul_id == shul_id,
            Processor.is_default == True,  # noqa: E712
        )
        if exclude_id is not None:
            query = query.filter(Processor.id != exclude_id)
        query.update({"is_default": False}, synchronize_session="fetch")

    def _apply_credentials(self, processor_id: UUID, data: ProcessorCredentialsInput) -> None:
        creds = self.get_credentials(processor_id)
        if creds is None:
            creds = ProcessorCredentials(processor_id=processor_id)
            self.db.add(creds)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(creds, key, value)

    def create(self, data: ProcessorCreate, shul_id: UUID) -> Processor:
        """Insert a processor; demoting other defaults happens in the same transaction."""
        if data.is_default:
            self._clear_defaults(shul_id)

        processor = Processor(
            shul_id=shul_id,
            name=data.name,
            type=data.type.value,
            is_active=data.is_active,
            is_default=data.is_default,
        )
        self.db.add(processor)
        self.db.flush()
        if data.credentials is not None:
            self._apply_credentials(processor.id, data.credentials)  # type: ignore[arg-type]
        self.db.commit()
        self.db.refresh(processor)
        return processor

    def update(
        self, processor_id: UUID, data: ProcessorUpdate, shul_id: UUID
    ) -> Processor | None:
        processor = self.get_by_id(processor_id, shul_id)
        if not processor:
            return None

        if data.is_default:
            self._clear_defaults(shul_id, exclude_id=processor_id)

        for key, value in data.model_dump(exclude_unset=True, exclude={"credentials"}).items():
            setattr(processor, key, value)
        if data.credentials is not None:
            self._apply_credentials(processor_id, data.credentials)
        self.db.commit()
        self.db.refresh(processor)
        return processor

    def delete(self, processor_id: UUID, shul_id: UUID) -> bool:
        processor = self.get_by_id(processor_id, shul_id)
        if not processor:
            return False
        creds = self.get_credentials(processor_id)
        if creds is not None:
            self.db.delete(creds)
            self.db.flush()
        self.db.delete(processor)
        self.db.commit()
        return True
