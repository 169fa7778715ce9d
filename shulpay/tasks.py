from datetime import date
from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from arq.jobs import Job

from shulpay.core.config import settings
from shulpay.models.shared import utc_today

redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)

RECURRING_BILLING_TASK = "process_recurring_billing_task"


async def get_redis_pool() -> ArqRedis:
    return await create_pool(redis_settings)


async def enqueue_task(task_name: str, *args: Any, **kwargs: Any) -> Job | None:
    """Enqueue a task to the arq worker.

    Returns None when a job with the same ``_job_id`` is already queued.
    """
    pool = await get_redis_pool()
    try:
        return await pool.enqueue_job(task_name, *args, **kwargs)
    finally:
        await pool.close()


def recurring_billing_job_id(as_of: date) -> str:
    return f"recurring-billing:{as_of.isoformat()}"


async def enqueue_recurring_billing(as_of: date | None = None) -> Job | None:
    """Queue an out-of-schedule billing run; one queued run per day at most."""
    as_of = as_of or utc_today()
    return await enqueue_task(
        RECURRING_BILLING_TASK,
        as_of.isoformat(),
        _job_id=recurring_billing_job_id(as_of),
    )
