"""
Persistence of job schedules.

Every write re-derives ``recurrence_rule`` and ``next_run`` from the
structured schedule fields; callers can never set either directly.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, select

from ..db.database import get_async_session
from ..models import CronSchedule
from .errors import ScheduleNotFoundError
from .recurrence import compute_next_run, to_recurrence_rule
from .types import ScheduleConfig, ScheduleSpec


async def get_schedule(job_name: str) -> Optional[ScheduleConfig]:
    async with get_async_session() as session:
        result = await session.execute(
            select(CronSchedule).where(CronSchedule.job_name == job_name)
        )
        row = result.scalar_one_or_none()
        return ScheduleConfig.model_validate(row) if row else None


async def list_schedules(active_only: bool = False) -> List[ScheduleConfig]:
    """All schedules ordered by job name."""
    query = select(CronSchedule)
    if active_only:
        query = query.where(CronSchedule.is_active.is_(True))
    query = query.order_by(CronSchedule.job_name)

    async with get_async_session() as session:
        result = await session.execute(query)
        return [ScheduleConfig.model_validate(row) for row in result.scalars().all()]


async def upsert_schedule(job_name: str, spec: ScheduleSpec) -> ScheduleConfig:
    """
    Create the schedule for ``job_name`` or replace its configuration.

    ``last_run`` is preserved across updates; ``next_run`` is recomputed.
    """
    now = datetime.now(timezone.utc)
    values = dict(
        recurrence_rule=to_recurrence_rule(spec),
        interval=spec.interval,
        custom_interval=spec.custom_interval,
        hour=spec.hour,
        minute=spec.minute,
        day_of_week=spec.day_of_week,
        day_of_month=spec.day_of_month,
        is_active=spec.is_active,
        description=spec.description,
        next_run=compute_next_run(spec, now),
        updated_at=now,
    )

    async with get_async_session() as session:
        result = await session.execute(
            select(CronSchedule).where(CronSchedule.job_name == job_name)
        )
        row = result.scalar_one_or_none()

        if row is None:
            row = CronSchedule(job_name=job_name, created_at=now, **values)
            session.add(row)
        else:
            for key, value in values.items():
                setattr(row, key, value)

        await session.commit()
        await session.refresh(row)
        return ScheduleConfig.model_validate(row)


async def set_active(job_name: str, is_active: bool) -> ScheduleConfig:
    """
    Raises:
        ScheduleNotFoundError: If no schedule exists for ``job_name``
    """
    async with get_async_session() as session:
        result = await session.execute(
            select(CronSchedule).where(CronSchedule.job_name == job_name)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise ScheduleNotFoundError(job_name)

        now = datetime.now(timezone.utc)
        row.is_active = is_active
        config = ScheduleConfig.model_validate(row)
        row.next_run = compute_next_run(config.to_spec(), now)
        row.updated_at = now
        await session.commit()
        await session.refresh(row)
        return ScheduleConfig.model_validate(row)


async def refresh_next_run(job_name: str) -> Optional[ScheduleConfig]:
    """
    Recompute ``next_run`` from the schedule fields without touching anything else.

    Returns None when no schedule exists for ``job_name``.
    """
    async with get_async_session() as session:
        result = await session.execute(
            select(CronSchedule).where(CronSchedule.job_name == job_name)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None

        row.next_run = compute_next_run(ScheduleConfig.model_validate(row).to_spec())
        await session.commit()
        await session.refresh(row)
        return ScheduleConfig.model_validate(row)


async def delete_schedule(job_name: str) -> bool:
    async with get_async_session() as session:
        result = await session.execute(
            delete(CronSchedule).where(CronSchedule.job_name == job_name)
        )
        await session.commit()
        return result.rowcount > 0


async def record_run(
    job_name: str, ran_at: datetime, update_next_run: bool
) -> Optional[ScheduleConfig]:
    """
    Set ``last_run`` for a job; also advance ``next_run`` for scheduled firings.

    Manual runs leave ``next_run`` alone since they do not consume a scheduled
    slot. Returns None when the schedule was deleted in the meantime.
    """
    async with get_async_session() as session:
        result = await session.execute(
            select(CronSchedule).where(CronSchedule.job_name == job_name)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None

        row.last_run = ran_at
        if update_next_run:
            config = ScheduleConfig.model_validate(row)
            row.next_run = compute_next_run(config.to_spec())

        await session.commit()
        await session.refresh(row)
        return ScheduleConfig.model_validate(row)
