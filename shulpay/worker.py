import logging
from datetime import date
from typing import Any

from arq import cron

from shulpay.core.config import settings
from shulpay.core.database import SessionLocal
from shulpay.services.recurring_billing import RecurringBillingService
from shulpay.tasks import redis_settings

logger = logging.getLogger(__name__)


async def process_recurring_billing_task(
    ctx: dict[str, Any], as_of: str | None = None
) -> dict[str, Any]:
    """Invoice and charge every due payment schedule.

    Runs daily at ``RECURRING_BILLING_HOUR`` UTC. Manual runs pass ``as_of``
    as an ISO date.
    """
    run_date = date.fromisoformat(as_of) if as_of else None
    db = SessionLocal()
    try:
        result = RecurringBillingService(db).run(as_of=run_date)
    finally:
        db.close()

    if result.failed:
        logger.warning(
            "Recurring billing job %s: %d of %d schedule(s) failed",
            ctx.get("job_id"),
            result.failed,
            result.processed,
        )
    return result.model_dump(mode="json")


class WorkerSettings:
    functions = [process_recurring_billing_task]
    cron_jobs = [
        cron(
            process_recurring_billing_task,
            hour=settings.RECURRING_BILLING_HOUR,
            minute=0,
            unique=True,
        ),
    ]
    redis_settings = redis_settings
