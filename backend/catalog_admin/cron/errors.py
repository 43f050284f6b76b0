"""
Exceptions raised by the cron job management system.
"""

from typing import Optional


class CronError(Exception):
    """Base class for all cron subsystem errors."""


class ScheduleConfigError(CronError, ValueError):
    """A schedule or job request is invalid and must not be retried."""


class UnknownJobError(ScheduleConfigError):
    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(f"Unknown job: '{job_name}'")


class ScheduleNotFoundError(CronError, LookupError):
    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(f"No schedule found for job '{job_name}'")


class JobExecutionError(CronError):
    """A manually triggered job body failed."""

    def __init__(self, job_name: str, execution_id: Optional[str], reason: str):
        self.job_name = job_name
        self.execution_id = execution_id
        super().__init__(f"Job '{job_name}' failed: {reason}")
