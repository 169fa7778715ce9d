"""Tests for background task enqueueing."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from shulpay.tasks import (
    RECURRING_BILLING_TASK,
    enqueue_recurring_billing,
    enqueue_task,
    get_redis_pool,
    recurring_billing_job_id,
)


class TestTasks:
    @pytest.mark.asyncio
    async def test_get_redis_pool(self):
        mock_pool = MagicMock()

        with patch("shulpay.tasks.create_pool", new_callable=AsyncMock) as mock_create:
            mock_create.return_value = mock_pool

            assert await get_redis_pool() == mock_pool
            mock_create.assert_called_once()

    @pytest.mark.asyncio
    async def test_enqueue_task_closes_pool(self):
        mock_job = MagicMock()
        mock_pool = MagicMock()
        mock_pool.enqueue_job = AsyncMock(return_value=mock_job)
        mock_pool.close = AsyncMock()

        with patch("shulpay.tasks.get_redis_pool", new_callable=AsyncMock) as mock_get_pool:
            mock_get_pool.return_value = mock_pool

            result = await enqueue_task("my_task", "arg1", kwarg1="value1")

        assert result == mock_job
        mock_pool.enqueue_job.assert_called_once_with("my_task", "arg1", kwarg1="value1")
        mock_pool.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_enqueue_task_closes_pool_on_error(self):
        mock_pool = MagicMock()
        mock_pool.enqueue_job = AsyncMock(side_effect=ConnectionError("Redis error"))
        mock_pool.close = AsyncMock()

        with patch("shulpay.tasks.get_redis_pool", new_callable=AsyncMock) as mock_get_pool:
            mock_get_pool.return_value = mock_pool

            with pytest.raises(ConnectionError, match="Redis error"):
                await enqueue_task("failing_task")

        mock_pool.close.assert_called_once()


class TestEnqueueRecurringBilling:
    @pytest.mark.asyncio
    async def test_one_job_per_day(self):
        with patch("shulpay.tasks.enqueue_task", new_callable=AsyncMock) as mock_enqueue:
            await enqueue_recurring_billing(date(2026, 3, 15))

        mock_enqueue.assert_called_once_with(
            RECURRING_BILLING_TASK,
            "2026-03-15",
            _job_id="recurring-billing:2026-03-15",
        )

    @pytest.mark.asyncio
    async def test_already_queued_returns_none(self):
        with patch("shulpay.tasks.enqueue_task", new_callable=AsyncMock, return_value=None):
            assert await enqueue_recurring_billing(date(2026, 3, 15)) is None

    def test_job_id(self):
        assert recurring_billing_job_id(date(2026, 1, 2)) == "recurring-billing:2026-01-02"
