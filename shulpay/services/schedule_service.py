"""Admin operations on recurring payment schedules."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.core.errors import NotFoundError, ValidationError
from shulpay.models.payment_schedule import PaymentSchedule, ScheduleStatus
from shulpay.repositories.member_repository import MemberRepository
from shulpay.repositories.payment_method_repository import PaymentMethodRepository
from shulpay.repositories.payment_schedule_repository import PaymentScheduleRepository
from shulpay.schemas.schedule import ScheduleCreate
from shulpay.services.processor_registry import ProcessorRegistry

logger = logging.getLogger(__name__)

ADMIN_STATUSES = (ScheduleStatus.ACTIVE, ScheduleStatus.PAUSED, ScheduleStatus.CANCELLED)


class ScheduleService:
    def __init__(self, db: Session):
        self.db = db
        self.schedule_repo = PaymentScheduleRepository(db)
        self.method_repo = PaymentMethodRepository(db)
        self.member_repo = MemberRepository(db)
        self.registry = ProcessorRegistry(db)

    def create(self, shul_id: UUID, data: ScheduleCreate) -> PaymentSchedule:
        if data.end_date is not None and data.end_date < data.start_date:
            raise ValidationError("end_date must not be before start_date")

        self.registry.get(data.processor_id, shul_id)
        if self.member_repo.get_by_id(data.person_id, shul_id) is None:
            raise NotFoundError("Person not found")

        if data.payment_method_id is not None:
            method = self.method_repo.get_active(data.payment_method_id)
            if (
                method is None
                or method.person_id != data.person_id
                or method.processor_id != data.processor_id
            ):
                raise ValidationError(
                    "Payment method must be an active method of this member on this processor"
                )

        schedule = self.schedule_repo.create(data, shul_id)
        logger.info(
            "Created %s schedule %s for person %s starting %s",
            schedule.frequency,
            schedule.id,
            schedule.person_id,
            schedule.start_date,
        )
        return schedule

    def list(self, shul_id: UUID, person_id: UUID | None = None) -> list[PaymentSchedule]:
        return self.schedule_repo.get_all(shul_id, person_id=person_id)

    def set_status(
        self, shul_id: UUID, schedule_id: UUID, status: ScheduleStatus
    ) -> PaymentSchedule:
        if status not in ADMIN_STATUSES:
            raise ValidationError(f"Status cannot be set to {status.value}")

        schedule = self.schedule_repo.get_by_id(schedule_id, shul_id)
        if schedule is None:
            raise NotFoundError("Schedule not found")
        if schedule.status in (ScheduleStatus.CANCELLED.value, ScheduleStatus.COMPLETED.value):
            raise ValidationError(f"Schedule is already {schedule.status}")

        updated = self.schedule_repo.set_status(schedule_id, status)
        logger.info("Schedule %s set to %s", schedule_id, status.value)
        return updated  # type: ignore[return-value]
