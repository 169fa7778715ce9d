"""Tests for the recurring billing worker task and cron registration."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from shulpay.core import database as db_module
from shulpay.core.config import settings
from shulpay.repositories.payment_schedule_repository import PaymentScheduleRepository
from shulpay.schemas.schedule import RecurringBillingResult, ScheduleCreate
from shulpay.worker import WorkerSettings, process_recurring_billing_task
from tests.conftest import DEFAULT_PERSON_ID, DEFAULT_SHUL_ID, create_processor


class TestProcessRecurringBillingTask:
    @pytest.mark.asyncio
    async def test_runs_due_schedules(self, db_session):
        processor = create_processor(db_session)
        schedule = PaymentScheduleRepository(db_session).create(
            ScheduleCreate(
                person_id=DEFAULT_PERSON_ID,
                processor_id=processor.id,
                amount=Decimal("10.00"),
                frequency="weekly",
                start_date=date(2020, 1, 1),
            ),
            DEFAULT_SHUL_ID,
        )

        with patch("shulpay.worker.SessionLocal", db_module.SessionLocal):
            result = await process_recurring_billing_task({})

        assert result == {"processed": 1, "succeeded": 1, "failed": 0, "errors": []}
        db_session.refresh(schedule)
        assert schedule.payments_made == 1
        assert schedule.next_run_date == date(2020, 1, 8)

    @pytest.mark.asyncio
    async def test_returns_json_ready_errors(self):
        schedule_id = "00000000-0000-0000-0000-00000000beef"
        mock_service = MagicMock()
        mock_service.run.return_value = RecurringBillingResult(
            processed=1,
            failed=1,
            errors=[{"id": schedule_id, "error": "Card declined"}],
        )

        with patch("shulpay.worker.RecurringBillingService", return_value=mock_service):
            result = await process_recurring_billing_task({})

        assert result["errors"] == [{"id": schedule_id, "error": "Card declined"}]

    @pytest.mark.asyncio
    async def test_manual_run_date(self):
        mock_service = MagicMock()
        mock_service.run.return_value = RecurringBillingResult()

        with (
            patch("shulpay.worker.SessionLocal", return_value=MagicMock()),
            patch("shulpay.worker.RecurringBillingService", return_value=mock_service),
        ):
            await process_recurring_billing_task({"job_id": "manual"}, "2026-03-15")

        mock_service.run.assert_called_once_with(as_of=date(2026, 3, 15))

    @pytest.mark.asyncio
    async def test_closes_session_on_error(self):
        mock_db = MagicMock()
        mock_service = MagicMock()
        mock_service.run.side_effect = RuntimeError("database unavailable")

        with (
            patch("shulpay.worker.SessionLocal", return_value=mock_db),
            patch("shulpay.worker.RecurringBillingService", return_value=mock_service),
            pytest.raises(RuntimeError),
        ):
            await process_recurring_billing_task({})

        mock_db.close.assert_called_once()


class TestWorkerSettings:
    def test_task_registered(self):
        func_names = [f.__name__ for f in WorkerSettings.functions]
        assert "process_recurring_billing_task" in func_names

    def test_cron_runs_daily_at_configured_hour(self):
        job = next(
            job
            for job in WorkerSettings.cron_jobs
            if job.coroutine.__name__ == "process_recurring_billing_task"
        )
        assert job.hour == settings.RECURRING_BILLING_HOUR
        assert job.minute == 0
