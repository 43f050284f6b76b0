"""
Cron job management API endpoints.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from pydantic import BaseModel

from ..cron import (
    CronManager,
    JobExecutionError,
    ScheduleConfig,
    ScheduleNotFoundError,
    ScheduleSpec,
    UnknownJobError,
)
from ..dependencies import get_cron_manager, require_admin

router = APIRouter(
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(require_admin)],
)


class RunJobRequest(BaseModel):
    job_name: str


class ToggleScheduleRequest(BaseModel):
    is_active: bool


class JobStatusResponse(BaseModel):
    name: str
    status: str
    last_run: Optional[datetime]
    next_run: Optional[datetime]
    interval: str
    recurrence_rule: str
    is_active: bool
    description: str


class JobExecutionResponse(BaseModel):
    execution_id: str
    trigger: str
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    duration_ms: Optional[int]
    status: str
    messages: List[str]


class RegisteredJobResponse(BaseModel):
    job_name: str
    description: str


class MessageResponse(BaseModel):
    message: str


@router.post("/run-now", response_model=JobExecutionResponse)
async def run_job_now(
    request: RunJobRequest, cron_manager: CronManager = Depends(get_cron_manager)
):
    """
    Run a job immediately, independent of its schedule.

    Returns the finished execution. A failing job body is reported as a 500
    and is not retried.
    """
    try:
        execution = await cron_manager.run_now(request.job_name)
    except UnknownJobError as e:
        raise HTTPException(status_code=http_status.HTTP_400_BAD_REQUEST, detail=str(e))
    except JobExecutionError as e:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        )

    return JobExecutionResponse(
        execution_id=execution.execution_id,
        trigger=execution.trigger.value,
        started_at=execution.started_at,
        ended_at=execution.ended_at,
        duration_ms=execution.duration_ms,
        status=execution.status.value,
        messages=execution.messages,
    )


@router.get("/status", response_model=List[JobStatusResponse])
async def get_job_status(cron_manager: CronManager = Depends(get_cron_manager)):
    """Liveness, last/next run and configuration of every scheduled job."""
    return [
        JobStatusResponse(
            name=job.name,
            status=job.status,
            last_run=job.last_run,
            next_run=job.next_run,
            interval=job.interval.value,
            recurrence_rule=job.recurrence_rule,
            is_active=job.is_active,
            description=job.description,
        )
        for job in await cron_manager.get_status()
    ]


@router.post("/start", response_model=MessageResponse)
async def start_all_jobs(cron_manager: CronManager = Depends(get_cron_manager)):
    count = await cron_manager.start_all()
    return MessageResponse(message=f"Started {count} cron jobs")


@router.post("/stop", response_model=MessageResponse)
async def stop_all_jobs(cron_manager: CronManager = Depends(get_cron_manager)):
    cron_manager.stop_all()
    return MessageResponse(message="All cron jobs stopped")


@router.get("/registered", response_model=List[RegisteredJobResponse])
async def list_registered_jobs(cron_manager: CronManager = Depends(get_cron_manager)):
    """List every job that can be scheduled or run."""
    return [
        RegisteredJobResponse(job_name=name.value, description=registration.description)
        for name, registration in cron_manager.registry.get_all_jobs().items()
    ]


@router.get("/schedules", response_model=List[ScheduleConfig])
async def list_schedules(cron_manager: CronManager = Depends(get_cron_manager)):
    return await cron_manager.list_schedules()


@router.post("/schedules/initialize", response_model=List[ScheduleConfig])
async def initialize_default_schedules(
    cron_manager: CronManager = Depends(get_cron_manager),
):
    """
    Create the default schedules that are missing and restart all jobs.

    Returns only the schedules that were created.
    """
    return await cron_manager.initialize_defaults()


@router.put("/schedules/{job_name}", response_model=ScheduleConfig)
async def upsert_schedule(
    job_name: str,
    spec: ScheduleSpec,
    cron_manager: CronManager = Depends(get_cron_manager),
):
    """
    Create or replace the schedule of a job.

    A running job picks up the new timing immediately.
    """
    try:
        return await cron_manager.upsert_schedule(job_name, spec)
    except UnknownJobError as e:
        raise HTTPException(status_code=http_status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/schedules/{job_name}/toggle", response_model=ScheduleConfig)
async def toggle_schedule(
    job_name: str,
    request: ToggleScheduleRequest,
    cron_manager: CronManager = Depends(get_cron_manager),
):
    try:
        return await cron_manager.toggle_active(job_name, request.is_active)
    except UnknownJobError as e:
        raise HTTPException(status_code=http_status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ScheduleNotFoundError as e:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/schedules/{job_name}", response_model=MessageResponse)
async def delete_schedule(
    job_name: str, cron_manager: CronManager = Depends(get_cron_manager)
):
    try:
        await cron_manager.delete_schedule(job_name)
    except ScheduleNotFoundError as e:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(e))
    return MessageResponse(message=f"Schedule for '{job_name}' deleted")


@router.get(
    "/schedules/{job_name}/executions", response_model=List[JobExecutionResponse]
)
async def get_job_executions(
    job_name: str,
    limit: int = 50,
    cron_manager: CronManager = Depends(get_cron_manager),
):
    """Execution history of a job, newest first."""
    try:
        executions = await cron_manager.get_execution_history(job_name, limit)
    except UnknownJobError as e:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(e))

    return [
        JobExecutionResponse(
            execution_id=ex.execution_id,
            trigger=ex.trigger.value,
            started_at=ex.started_at,
            ended_at=ex.ended_at,
            duration_ms=ex.duration_ms,
            status=ex.status.value,
            messages=ex.messages,
        )
        for ex in executions
    ]
