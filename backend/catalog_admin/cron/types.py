"""
Type definitions for the cron job management system.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Awaitable, Callable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from ..catalog.anilist import AniListClient
from ..content.store import ContentStore
from ..models import ExecutionStatus, ExecutionTrigger, IntervalKind

# Type alias for async job bodies
AsyncJobFunction = Callable[["ExecutionContext"], Awaitable[None]]


@dataclass(frozen=True)
class JobRegistration:
    """A job body registered under a job name, with its description."""

    function: AsyncJobFunction
    description: str


class ScheduleSpec(BaseModel):
    """
    Validated interval specification for one job.

    Only the fields relevant to ``interval`` are used when deriving the
    recurrence rule; the others are persisted as given.
    """

    interval: IntervalKind
    custom_interval: Optional[int] = Field(default=None, ge=1, le=1440)
    hour: Optional[int] = Field(default=None, ge=0, le=23)
    minute: Optional[int] = Field(default=None, ge=0, le=59)
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    is_active: bool = True
    description: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)
    ]


class ScheduleConfig(BaseModel):
    """Persisted schedule as returned by the schedule store."""

    model_config = ConfigDict(from_attributes=True)

    job_name: str
    recurrence_rule: str
    interval: IntervalKind
    custom_interval: Optional[int] = None
    hour: Optional[int] = None
    minute: Optional[int] = None
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    is_active: bool
    description: str
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    def to_spec(self) -> ScheduleSpec:
        return ScheduleSpec(
            interval=self.interval,
            custom_interval=self.custom_interval,
            hour=self.hour,
            minute=self.minute,
            day_of_week=self.day_of_week,
            day_of_month=self.day_of_month,
            is_active=self.is_active,
            description=self.description,
        )


class JobStatus(BaseModel):
    """Read-only projection of a schedule and its liveness in the runner."""

    name: str
    status: Literal["running", "stopped"]
    last_run: Optional[datetime]
    next_run: Optional[datetime]
    interval: IntervalKind
    recurrence_rule: str
    is_active: bool
    description: str


class ExecutionContext(BaseModel):
    """
    Execution context for a single job run.

    Created for every run, scheduled or manual. Carries the collaborators the
    job body needs (catalog client and content store) together with the run
    metadata and a message log that is persisted with the execution record.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    job_name: str
    execution_id: str
    trigger: ExecutionTrigger
    catalog: AniListClient
    content: ContentStore
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    messages: List[str] = Field(default_factory=list)

    def log(self, message: str) -> None:
        """Append a timestamped line to the execution's message log."""
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        self.messages.append(f"[{timestamp}] {message}")

    def finish(self, status: ExecutionStatus) -> None:
        self.status = status
        self.ended_at = datetime.now(timezone.utc)
        self.duration_ms = int(
            (self.ended_at - self.started_at).total_seconds() * 1000
        )

    def to_execution_record(self) -> dict:
        """Column values for the ``job_execution`` table."""
        return {
            "job_name": self.job_name,
            "execution_id": self.execution_id,
            "trigger": self.trigger,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration_ms": self.duration_ms,
            "status": self.status,
            "messages_json": json.dumps(self.messages, ensure_ascii=False),
        }


@dataclass(frozen=True)
class JobExecutionRecord:
    """A stored job execution, newest first in history queries."""

    job_name: str
    execution_id: str
    trigger: ExecutionTrigger
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    duration_ms: Optional[int]
    status: ExecutionStatus
    messages: List[str]
