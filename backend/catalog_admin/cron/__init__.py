"""
Job scheduling for catalog ingestion and trend recomputation.

Schedules are persisted through SQLAlchemy, fired by APScheduler and managed at
runtime through a single ``CronManager`` owned by the application.
"""

from . import jobs
from .errors import (
    CronError,
    JobExecutionError,
    ScheduleConfigError,
    ScheduleNotFoundError,
    UnknownJobError,
)
from .manager import CronManager
from .registry import CronRegistry, JobName, cron_registry
from .types import (
    AsyncJobFunction,
    ExecutionContext,
    JobExecutionRecord,
    JobRegistration,
    JobStatus,
    ScheduleConfig,
    ScheduleSpec,
)

__all__ = [
    "jobs",
    "CronError",
    "JobExecutionError",
    "ScheduleConfigError",
    "ScheduleNotFoundError",
    "UnknownJobError",
    "CronManager",
    "CronRegistry",
    "JobName",
    "cron_registry",
    "AsyncJobFunction",
    "ExecutionContext",
    "JobExecutionRecord",
    "JobRegistration",
    "JobStatus",
    "ScheduleConfig",
    "ScheduleSpec",
]
