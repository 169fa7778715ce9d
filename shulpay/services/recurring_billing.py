"""Recurring billing: invoice and charge every due payment schedule."""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.core.errors import GatewayError, ShulPayError
from shulpay.models.invoice import InvoiceStatus
from shulpay.models.payment_schedule import PaymentSchedule, ScheduleStatus
from shulpay.models.shared import utc_today
from shulpay.repositories.payment_schedule_repository import PaymentScheduleRepository
from shulpay.schemas.schedule import RecurringBillingResult, ScheduleRunError
from shulpay.services.charge_executor import ChargeExecutor
from shulpay.services.invoice_service import InvoiceService
from shulpay.services.schedule_dates import next_run_date

logger = logging.getLogger(__name__)


def schedule_idempotency_key(schedule_id: UUID, run_date: date) -> str:
    return f"schedule:{schedule_id}:{run_date.isoformat()}"


def is_exhausted(schedule: PaymentSchedule) -> bool:
    """True once the schedule has run past its end date or payment cap."""
    if schedule.total_payments is not None and (
        (schedule.payments_made or 0) >= schedule.total_payments
    ):
        return True
    if schedule.end_date is not None and schedule.next_run_date > schedule.end_date:
        return True
    return False


class RecurringBillingService:
    """Walks due schedules one at a time; a failing schedule never stops the run."""

    def __init__(self, db: Session):
        self.db = db
        self.schedule_repo = PaymentScheduleRepository(db)
        self.invoice_service = InvoiceService(db)
        self.executor = ChargeExecutor(db)

    def run(self, as_of: date | None = None) -> RecurringBillingResult:
        as_of = as_of or utc_today()
        schedules = self.schedule_repo.get_due(as_of)
        logger.info("Found %d due schedules as of %s", len(schedules), as_of)

        result = RecurringBillingResult()
        for schedule in schedules:
            schedule_id: UUID = schedule.id  # type: ignore[assignment]
            if is_exhausted(schedule):
                self.schedule_repo.set_status(schedule_id, ScheduleStatus.COMPLETED)
                logger.info("Schedule %s completed", schedule_id)
                continue

            result.processed += 1
            try:
                self._run_schedule(schedule)
            except ShulPayError as exc:
                self._record_failure(result, schedule_id, exc.message)
            except Exception as exc:
                logger.exception("Unexpected failure processing schedule %s", schedule_id)
                self._record_failure(result, schedule_id, str(exc) or exc.__class__.__name__)
            else:
                result.succeeded += 1

        logger.info(
            "Recurring billing run: processed=%d succeeded=%d failed=%d",
            result.processed,
            result.succeeded,
            result.failed,
        )
        return result

    def _run_schedule(self, schedule: PaymentSchedule) -> None:
        schedule_id: UUID = schedule.id  # type: ignore[assignment]
        run_date: date = schedule.next_run_date  # type: ignore[assignment]

        invoice = self.invoice_service.invoice_for_schedule_run(schedule)

        if invoice.status == InvoiceStatus.PAID.value:
            logger.info(
                "Invoice %s for schedule %s on %s already paid, skipping charge",
                invoice.invoice_number,
                schedule_id,
                run_date,
            )
        elif schedule.payment_method_id is not None:
            outcome = self.executor.charge(
                processor_id=schedule.processor_id,  # type: ignore[arg-type]
                amount=schedule.amount,  # type: ignore[arg-type]
                method_id=schedule.payment_method_id,  # type: ignore[arg-type]
                person_id=schedule.person_id,  # type: ignore[arg-type]
                invoice_id=invoice.id,  # type: ignore[arg-type]
                campaign_id=schedule.campaign_id,  # type: ignore[arg-type]
                description=schedule.description,  # type: ignore[arg-type]
                idempotency_key=schedule_idempotency_key(schedule_id, run_date),
                schedule_id=schedule_id,
            )
            if not outcome.success:
                raise GatewayError(
                    outcome.error or "Charge failed", response_code=outcome.response_code
                )

        new_date = next_run_date(
            run_date,
            str(schedule.frequency),
            anchor_day=schedule.start_date.day if schedule.start_date else None,
        )
        if not self.schedule_repo.advance(schedule_id, run_date, new_date):
            logger.warning(
                "Schedule %s was already advanced past %s by another run", schedule_id, run_date
            )
            return

        logger.info("Schedule %s advanced from %s to %s", schedule_id, run_date, new_date)
        self.db.refresh(schedule)
        if is_exhausted(schedule):
            self.schedule_repo.set_status(schedule_id, ScheduleStatus.COMPLETED)
            logger.info("Schedule %s completed", schedule_id)

    def _record_failure(
        self, result: RecurringBillingResult, schedule_id: UUID, message: str
    ) -> None:
        self.db.rollback()
        logger.warning("Schedule %s failed: %s", schedule_id, message)
        result.failed += 1
        result.errors.append(ScheduleRunError(id=schedule_id, error=message))
        self.schedule_repo.record_failure(schedule_id, message)
