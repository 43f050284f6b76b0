"""
Cron Manager - scheduling, manual execution and lifecycle of catalog jobs.
"""

import asyncio
import json
import secrets
from datetime import datetime, timezone
from typing import Dict, List, Optional

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import select

from ..catalog.anilist import AniListClient
from ..config import settings
from ..content.store import ContentStore
from ..db.database import get_async_session
from ..logger import log_exception, logger
from ..models import ExecutionStatus, ExecutionTrigger, IntervalKind, JobExecution
from . import store
from .errors import JobExecutionError, ScheduleConfigError, ScheduleNotFoundError
from .recurrence import build_trigger
from .registry import CronRegistry, JobName, cron_registry
from .types import (
    ExecutionContext,
    JobExecutionRecord,
    JobRegistration,
    JobStatus,
    ScheduleConfig,
    ScheduleSpec,
)

DEFAULT_INTERVALS: Dict[JobName, IntervalKind] = {
    JobName.TRENDING_ANIME: IntervalKind.DAILY,
    JobName.TRENDING_MANGA: IntervalKind.DAILY,
    JobName.REFRESH: IntervalKind.HOURLY,
    JobName.GENRES: IntervalKind.WEEKLY,
}


class CronManager:
    """
    Owner of the live job timers.

    One instance exists per application; it is created at startup, handed to
    the request handlers and shut down with the application. A job is
    "running" exactly when this manager holds a scheduler handle for it.
    Persisted schedules are read and written through ``cron.store``.
    """

    def __init__(
        self,
        registry: CronRegistry = cron_registry,
        catalog: Optional[AniListClient] = None,
        content: Optional[ContentStore] = None,
        misfire_grace_time: int = settings.cron.misfire_grace_time,
    ):
        self.registry = registry
        self.catalog = catalog or AniListClient.from_settings()
        self.content = content or ContentStore()
        self.misfire_grace_time = misfire_grace_time
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        # job name -> live scheduler job
        self._handles: Dict[str, Job] = {}
        self._initialized = False

    async def initialize(self, autostart: bool = True) -> None:
        """
        Start the scheduler and, unless disabled, every active schedule.
        """
        if self._initialized:
            return

        self.scheduler.start()
        self._initialized = True

        if autostart:
            await self.start_all()

    async def shutdown(self) -> None:
        self.stop_all()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self._initialized = False

    # Runner

    async def start_all(self) -> int:
        """
        Replace all live timers with one per active schedule.

        Returns:
            Number of jobs running afterwards
        """
        self.stop_all()
        now = datetime.now(timezone.utc)

        for config in await store.list_schedules(active_only=True):
            if not self.registry.is_registered(config.job_name):
                logger.warning(f"Skipping schedule for unknown job '{config.job_name}'")
                continue
            try:
                self._start_job(config)
            except ScheduleConfigError as e:
                logger.error(f"Cannot start job '{config.job_name}': {e}")
                continue
            # Stored value is stale after downtime
            if config.next_run is None or config.next_run <= now:
                await store.refresh_next_run(config.job_name)

        logger.info(f"Started {len(self._handles)} cron jobs")
        return len(self._handles)

    def stop_all(self) -> None:
        """Cancel every live timer. Persisted schedules are left untouched."""
        for job_name in list(self._handles):
            self._stop_job(job_name)

    def is_running(self, job_name: str) -> bool:
        return job_name in self._handles

    async def run_now(self, job_name: str) -> JobExecutionRecord:
        """
        Run a job immediately, outside its schedule.

        Only ``last_run`` is updated; ``next_run`` keeps pointing at the next
        scheduled firing.

        Raises:
            UnknownJobError: If the job name is not registered
            JobExecutionError: If the job body fails
        """
        registration = self.registry.get_job(job_name)
        name = self.registry.resolve(job_name).value
        context = self._new_context(name, ExecutionTrigger.MANUAL)

        logger.info(f"Manually running job: {name}")
        try:
            await self._execute(registration, context)
        except Exception as e:
            raise JobExecutionError(
                name, context.execution_id, f"{type(e).__name__}: {e}"
            ) from e

        await store.record_run(
            name, context.ended_at or datetime.now(timezone.utc), update_next_run=False
        )
        return _to_record(context)

    # Schedule management

    async def list_schedules(self) -> List[ScheduleConfig]:
        return await store.list_schedules()

    async def update_schedule(self, job_name: str, spec: ScheduleSpec) -> ScheduleConfig:
        """
        Create or replace the schedule of a job.

        A running job is restarted with the new timing, or stopped if the new
        spec is inactive. A job that is not running is not started.

        Raises:
            UnknownJobError: If the job name is not registered
        """
        name = self.registry.resolve(job_name).value
        config = await store.upsert_schedule(name, spec)

        if self.is_running(name):
            if config.is_active:
                self._start_job(config)
            else:
                self._stop_job(name)

        logger.info(f"Updated schedule for job '{name}': {config.recurrence_rule}")
        return config

    # Name used by the admin surface
    upsert_schedule = update_schedule

    async def toggle_active(self, job_name: str, is_active: bool) -> ScheduleConfig:
        """
        Persist the activity flag and start or stop the job accordingly.

        Raises:
            UnknownJobError: If the job name is not registered
            ScheduleNotFoundError: If the job has no schedule
        """
        name = self.registry.resolve(job_name).value
        config = await store.set_active(name, is_active)

        if is_active:
            self._start_job(config)
        else:
            self._stop_job(name)
        return config

    async def delete_schedule(self, job_name: str) -> None:
        """
        Raises:
            ScheduleNotFoundError: If the job has no schedule
        """
        deleted = await store.delete_schedule(job_name)
        self._stop_job(job_name)
        if not deleted:
            raise ScheduleNotFoundError(job_name)
        logger.info(f"Deleted schedule for job '{job_name}'")

    async def initialize_defaults(self) -> List[ScheduleConfig]:
        """
        Create the canonical schedules that do not exist yet, then restart all jobs.

        Returns:
            The schedules that were created
        """
        created = []
        for job_name, interval in DEFAULT_INTERVALS.items():
            if not self.registry.is_registered(job_name.value):
                continue
            if await store.get_schedule(job_name.value) is not None:
                continue
            registration = self.registry.get_job(job_name)
            spec = ScheduleSpec(interval=interval, description=registration.description)
            created.append(await store.upsert_schedule(job_name.value, spec))

        await self.start_all()
        return created

    async def get_status(self) -> List[JobStatus]:
        """Liveness and configuration of every persisted schedule."""
        return [
            JobStatus(
                name=config.job_name,
                status="running" if self.is_running(config.job_name) else "stopped",
                last_run=config.last_run,
                next_run=config.next_run,
                interval=config.interval,
                recurrence_rule=config.recurrence_rule,
                is_active=config.is_active,
                description=config.description,
            )
            for config in await store.list_schedules()
        ]

    async def get_execution_history(
        self, job_name: str, limit: int = 50
    ) -> List[JobExecutionRecord]:
        """
        Raises:
            UnknownJobError: If the job name is not registered
        """
        name = self.registry.resolve(job_name).value
        async with get_async_session() as session:
            result = await session.execute(
                select(JobExecution)
                .where(JobExecution.job_name == name)
                .order_by(JobExecution.started_at.desc())
                .limit(limit)
            )
            executions = result.scalars().all()

            return [
                JobExecutionRecord(
                    job_name=ex.job_name,
                    execution_id=ex.execution_id,
                    trigger=ex.trigger,
                    started_at=ex.started_at,
                    ended_at=ex.ended_at,
                    duration_ms=ex.duration_ms,
                    status=ex.status,
                    messages=json.loads(ex.messages_json) if ex.messages_json else [],
                )
                for ex in executions
            ]

    # Internals

    def _start_job(self, config: ScheduleConfig) -> None:
        trigger = build_trigger(config.to_spec())

        # No await between removal and re-adding, so no second timer can fire
        self._stop_job(config.job_name)
        self._handles[config.job_name] = self.scheduler.add_job(
            self._fire_scheduled,
            trigger=trigger,
            args=[config.job_name],
            id=config.job_name,
            name=config.job_name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.misfire_grace_time,
        )
        logger.info(
            f"Started job '{config.job_name}' with schedule: {config.recurrence_rule}"
        )

    def _stop_job(self, job_name: str) -> bool:
        handle = self._handles.pop(job_name, None)
        if handle is None:
            return False
        if self.scheduler.get_job(job_name):
            self.scheduler.remove_job(job_name)
        logger.info(f"Cron job '{job_name}' stopped")
        return True

    def _new_context(self, job_name: str, trigger: ExecutionTrigger) -> ExecutionContext:
        # Use timestamp + random to avoid collisions
        now = datetime.now(timezone.utc)
        execution_id = f"{int(now.timestamp() * 1000)}_{secrets.token_urlsafe(4)}"
        return ExecutionContext(
            job_name=job_name,
            execution_id=execution_id,
            trigger=trigger,
            catalog=self.catalog,
            content=self.content,
            started_at=now,
        )

    async def _execute(
        self, registration: JobRegistration, context: ExecutionContext
    ) -> None:
        """Run a job body, record the execution and re-raise any failure."""
        try:
            await registration.function(context)
            context.finish(ExecutionStatus.COMPLETED)
            logger.info(
                f"Job '{context.job_name}' completed successfully "
                f"in {context.duration_ms} ms"
            )
        except asyncio.CancelledError:
            context.log("Job execution was cancelled")
            context.finish(ExecutionStatus.CANCELLED)
            raise
        except Exception as e:
            context.log(f"Job execution failed: {type(e).__name__}: {e}")
            context.finish(ExecutionStatus.FAILED)
            raise
        finally:
            await self._record_execution(context)

    @log_exception("Scheduled firing of '{job_name}'")
    async def _fire_scheduled(self, job_name: str) -> None:
        """
        Timer callback. Failures are logged and recorded but never propagate,
        so the job stays scheduled.
        """
        registration = self.registry.get_job(job_name)
        context = self._new_context(job_name, ExecutionTrigger.SCHEDULED)

        logger.info(f"Running job: {job_name}")
        try:
            await self._execute(registration, context)
        except Exception as e:
            logger.error(f"Job '{job_name}' failed: {type(e).__name__}: {e}", exc_info=True)

        await store.record_run(
            job_name,
            context.ended_at or datetime.now(timezone.utc),
            update_next_run=True,
        )

    @log_exception("Recording execution failed")
    async def _record_execution(self, context: ExecutionContext) -> None:
        async with get_async_session() as session:
            session.add(JobExecution(**context.to_execution_record()))
            await session.commit()


def _to_record(context: ExecutionContext) -> JobExecutionRecord:
    return JobExecutionRecord(
        job_name=context.job_name,
        execution_id=context.execution_id,
        trigger=context.trigger,
        started_at=context.started_at,
        ended_at=context.ended_at,
        duration_ms=context.duration_ms,
        status=context.status,
        messages=list(context.messages),
    )
