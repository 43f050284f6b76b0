from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import JSON, TEXT, Boolean, DateTime, Float, Integer, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy import UniqueConstraint
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class TZDatetime(TypeDecorator):
    """Custom DateTime type that ensures timezone-aware datetimes."""

    impl = DateTime(timezone=True)

    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            raise ValueError(
                "Naive datetime is not allowed. Please provide a timezone-aware datetime."
            )
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            # SQLite drops the offset; everything is stored as UTC
            return value.replace(tzinfo=timezone.utc)
        return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(AsyncAttrs, DeclarativeBase):
    """SQLAlchemy declarative base for all ORM models with async support."""

    pass


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class UserPublic(BaseModel):
    """Authenticated caller as seen by request handlers."""

    username: str
    role: UserRole = UserRole.USER


# Cron System Enums and Models


class IntervalKind(str, Enum):
    """Human-facing recurrence kinds a schedule can be configured with."""

    MINUTES = "minutes"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class ExecutionStatus(str, Enum):
    """Execution status enumeration for job execution records."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ExecutionTrigger(str, Enum):
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class CronSchedule(Base):
    """Persisted recurrence configuration for one named job."""

    __tablename__ = "cron_schedule"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    job_name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    recurrence_rule: Mapped[str] = mapped_column(String(100))
    interval: Mapped[IntervalKind] = mapped_column(SQLAlchemyEnum(IntervalKind))
    custom_interval: Mapped[Optional[int]] = mapped_column(Integer)
    hour: Mapped[Optional[int]] = mapped_column(Integer)
    minute: Mapped[Optional[int]] = mapped_column(Integer)
    day_of_week: Mapped[Optional[int]] = mapped_column(Integer)
    day_of_month: Mapped[Optional[int]] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    description: Mapped[str] = mapped_column(String(255))
    last_run: Mapped[Optional[datetime]] = mapped_column(TZDatetime())
    next_run: Mapped[Optional[datetime]] = mapped_column(TZDatetime())
    created_at: Mapped[datetime] = mapped_column(TZDatetime(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(TZDatetime(), default=utcnow)


class JobExecution(Base):
    """One run of a job, scheduled or manual."""

    __tablename__ = "job_execution"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    job_name: Mapped[str] = mapped_column(String(100), index=True)
    execution_id: Mapped[str] = mapped_column(String(50), unique=True)
    trigger: Mapped[ExecutionTrigger] = mapped_column(SQLAlchemyEnum(ExecutionTrigger))
    started_at: Mapped[datetime] = mapped_column(TZDatetime())
    ended_at: Mapped[Optional[datetime]] = mapped_column(TZDatetime())
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[ExecutionStatus] = mapped_column(SQLAlchemyEnum(ExecutionStatus))
    messages_json: Mapped[str] = mapped_column(TEXT, default="[]")


# Content Catalog Models


class ContentType(str, Enum):
    ANIME = "anime"
    MANGA = "manga"


class ContentItem(Base):
    """Catalog entry, de-duplicated on (external_id, source)."""

    __tablename__ = "content_item"
    __table_args__ = (
        UniqueConstraint("external_id", "source", name="uq_content_item_external"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(100), index=True)
    source: Mapped[str] = mapped_column(String(50))
    type: Mapped[ContentType] = mapped_column(SQLAlchemyEnum(ContentType), index=True)
    title: Mapped[str] = mapped_column(String(500))
    synopsis: Mapped[Optional[str]] = mapped_column(TEXT)
    poster_url: Mapped[Optional[str]] = mapped_column(String(1000))
    genres: Mapped[list] = mapped_column(JSON, default=list)
    rating: Mapped[float] = mapped_column(Float, default=0.0)
    popularity: Mapped[int] = mapped_column(Integer, default=0)
    release_year: Mapped[int] = mapped_column(Integer)
    trend_score: Mapped[float] = mapped_column(Float, default=0.0, index=True)
    raw: Mapped[Optional[dict]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(TZDatetime(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(TZDatetime(), default=utcnow)
