"""Tests for MaintenanceScheduler."""

from unittest.mock import MagicMock

import pytest

from notes_ai.scheduling.scheduler import MaintenanceScheduler


def noop():
    pass


class TestMaintenanceScheduler:
    def test_add_interval_job(self):
        scheduler = MaintenanceScheduler()

        job_id = scheduler.add_interval_job(noop, "rate_limit_sweep", seconds=3600)

        assert job_id == "rate_limit_sweep"
        assert [job["id"] for job in scheduler.get_jobs()] == ["rate_limit_sweep"]

    def test_add_job_replaces_existing(self):
        scheduler = MaintenanceScheduler()

        scheduler.add_interval_job(noop, "sweep", seconds=10)
        scheduler.add_interval_job(noop, "sweep", seconds=20)

        assert len(scheduler.get_jobs()) == 1

    @pytest.mark.asyncio
    async def test_start_and_shutdown(self):
        scheduler = MaintenanceScheduler()
        scheduler.add_interval_job(noop, "sweep", seconds=3600)

        await scheduler.start()
        await scheduler.start()
        assert scheduler.is_running is True
        assert scheduler.get_jobs()[0]["next_run_time"] is not None

        await scheduler.shutdown()
        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_shutdown_when_not_running(self):
        scheduler = MaintenanceScheduler()

        await scheduler.shutdown()

        assert scheduler.is_running is False

    def test_error_listener_logs(self):
        scheduler = MaintenanceScheduler()
        event = MagicMock(job_id="sweep", exception=RuntimeError("boom"), traceback="tb")

        scheduler._on_job_error(event)
        scheduler._on_job_executed(event)
