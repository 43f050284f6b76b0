"""
Test that scheduled jobs actually fire through the scheduler.

Firings are forced by moving a job's next run time to now instead of waiting
for the real recurrence.
"""

import asyncio
from datetime import datetime, timezone

from catalog_admin.cron import store
from catalog_admin.cron.types import ScheduleSpec
from catalog_admin.models import ExecutionStatus, ExecutionTrigger, IntervalKind


async def wait_for_history(manager, job_name: str, count: int = 1, timeout: float = 5.0):
    """Poll the execution history until ``count`` records exist."""
    deadline = asyncio.get_running_loop().time() + timeout
    while True:
        history = await manager.get_execution_history(job_name)
        if len(history) >= count:
            return history
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"Job '{job_name}' did not fire within {timeout}s")
        await asyncio.sleep(0.05)


async def wait_for_last_run(job_name: str, timeout: float = 5.0):
    """Poll until the firing has written back its run time and finished."""
    for _ in range(int(timeout / 0.05)):
        schedule = await store.get_schedule(job_name)
        if schedule.last_run is not None:
            # Let the executor release the running instance
            await asyncio.sleep(0.1)
            return schedule
        await asyncio.sleep(0.05)
    raise AssertionError(f"Job '{job_name}' never recorded its run")


def fire_now(manager, job_name: str):
    manager.scheduler.modify_job(job_name, next_run_time=datetime.now(timezone.utc))


class TestCronScheduling:
    """Scheduled firings through the live scheduler."""

    async def test_scheduled_firing_runs_job(self, recording_manager, recording_jobs):
        created = await store.upsert_schedule(
            "refresh",
            ScheduleSpec(interval=IntervalKind.DAILY, description="daily refresh"),
        )
        await recording_manager.start_all()

        fire_now(recording_manager, "refresh")
        history = await wait_for_history(recording_manager, "refresh")

        assert recording_jobs.calls == ["refresh"]
        assert history[0].trigger == ExecutionTrigger.SCHEDULED
        assert history[0].status == ExecutionStatus.COMPLETED

        schedule = await wait_for_last_run("refresh")
        assert schedule.next_run >= created.next_run
        assert recording_manager.is_running("refresh")

    async def test_failing_firing_keeps_job_scheduled(
        self, recording_manager, recording_jobs, caplog
    ):
        await store.upsert_schedule(
            "refresh",
            ScheduleSpec(interval=IntervalKind.DAILY, description="daily refresh"),
        )
        await recording_manager.start_all()
        recording_jobs.fail_with = RuntimeError("catalog unavailable")

        fire_now(recording_manager, "refresh")
        history = await wait_for_history(recording_manager, "refresh")

        assert history[0].status == ExecutionStatus.FAILED
        assert history[0].trigger == ExecutionTrigger.SCHEDULED
        assert recording_manager.is_running("refresh")
        assert recording_manager.scheduler.get_job("refresh") is not None
        assert "catalog unavailable" in caplog.text

    async def test_job_fires_again_after_failure(self, recording_manager, recording_jobs):
        await store.upsert_schedule(
            "refresh",
            ScheduleSpec(interval=IntervalKind.DAILY, description="daily refresh"),
        )
        await recording_manager.start_all()

        recording_jobs.fail_with = ValueError("first run fails")
        fire_now(recording_manager, "refresh")
        await wait_for_history(recording_manager, "refresh", count=1)
        await wait_for_last_run("refresh")

        recording_jobs.fail_with = None
        fire_now(recording_manager, "refresh")
        history = await wait_for_history(recording_manager, "refresh", count=2)

        assert [ex.status for ex in history] == [
            ExecutionStatus.COMPLETED,
            ExecutionStatus.FAILED,
        ]
        assert recording_jobs.calls == ["refresh", "refresh"]
