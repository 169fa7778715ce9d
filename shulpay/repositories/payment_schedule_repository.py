"""Repository for PaymentSchedule operations."""

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.models.payment_schedule import PaymentSchedule, ScheduleStatus
from shulpay.schemas.schedule import ScheduleCreate


class PaymentScheduleRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, schedule_id: UUID, shul_id: UUID | None = None) -> PaymentSchedule | None:
        query = self.db.query(PaymentSchedule).filter(PaymentSchedule.id == schedule_id)
        if shul_id is not None:
            query = query.filter(PaymentSchedule.shul_id == shul_id)
        return query.first()

    def get_all(
        self,
        shul_id: UUID,
        person_id: UUID | None = None,
        status: ScheduleStatus | None = None,
    ) -> list[PaymentSchedule]:
        query = self.db.query(PaymentSchedule).filter(PaymentSchedule.shul_id == shul_id)
        if person_id is not None:
            query = query.filter(PaymentSchedule.person_id == person_id)
        if status is not None:
            query = query.filter(PaymentSchedule.status == status.value)
        return query.order_by(PaymentSchedule.next_run_date).all()

    def get_due(self, as_of: date) -> list[PaymentSchedule]:
        """Active schedules whose next run date is on or before ``as_of``."""
        return (
            self.db.query(PaymentSchedule)
            .filter(
                PaymentSchedule.status == ScheduleStatus.ACTIVE.value,
                PaymentSchedule.next_run_date <= as_of,
            )
            .order_by(PaymentSchedule.next_run_date, PaymentSchedule.created_at)
            .all()
        )

    def count_active_for_processor(self, processor_id: UUID) -> int:
        return (
            self.db.query(PaymentSchedule)
            .filter(
                PaymentSchedule.processor_id == processor_id,
                PaymentSchedule.status == ScheduleStatus.ACTIVE.value,
            )
            .count()
        )

    def create(self, data: ScheduleCreate, shul_id: UUID) -> PaymentSchedule:
        schedule = PaymentSchedule(
            shul_id=shul_id,
            person_id=data.person_id,
            processor_id=data.processor_id,
            payment_method_id=data.payment_method_id,
            campaign_id=data.campaign_id,
            amount=data.amount,
            currency=data.currency.upper(),
            description=data.description,
            frequency=data.frequency.value,
            start_date=data.start_date,
            next_run_date=data.start_date,
            end_date=data.end_date,
            total_payments=data.total_payments,
            payments_made=0,
            status=ScheduleStatus.ACTIVE.value,
        )
        self.db.add(schedule)
        self.db.commit()
        self.db.refresh(schedule)
        return schedule

    def advance(self, schedule_id: UUID, observed_run_date: date, next_run_date: date) -> bool:
        """Move the schedule to its next run date if nobody else already did.

        Compare-and-swap on ``next_run_date``; returns False when the row had
        already moved on.
        """
        updated = (
            self.db.query(PaymentSchedule)
            .filter(
                PaymentSchedule.id == schedule_id,
                PaymentSchedule.next_run_date == observed_run_date,
            )
            .update(
                {
                    PaymentSchedule.next_run_date: next_run_date,
                    PaymentSchedule.payments_made: PaymentSchedule.payments_made + 1,
                    PaymentSchedule.last_error: None,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return bool(updated)

    def record_failure(self, schedule_id: UUID, message: str) -> None:
        self.db.query(PaymentSchedule).filter(PaymentSchedule.id == schedule_id).update(
            {PaymentSchedule.last_error: message[:2000]},
            synchronize_session=False,
        )
        self.db.commit()

    def set_status(self, schedule_id: UUID, status: ScheduleStatus) -> PaymentSchedule | None:
        schedule = self.get_by_id(schedule_id)
        if not schedule:
            return None
        schedule.status = status.value  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(schedule)
        return schedule
