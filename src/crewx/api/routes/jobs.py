"""Job listing, administration and enrollment endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from crewx.api.dependencies import AdminSession, CurrentSession, DbSession, WorkerSession
from crewx.api.schemas import (
    EnrollmentToggleResponse,
    ErrorResponse,
    JobCreate,
    JobStatusUpdate,
    JobUpdate,
    MessageResponse,
)
from crewx.exceptions import NotEnrolledError, NotFoundError
from crewx.records import EnrollmentRecord, JobRecord
from crewx.services import views
from crewx.services.bookkeeping import BookkeepingService
from crewx.store import DataStore

router = APIRouter(tags=["jobs"])


# ============================================================================
# Job CRUD
# ============================================================================


@router.get("/jobs", response_model=list[JobRecord])
async def list_jobs(
    db: DbSession,
    _: CurrentSession,
    open_only: Annotated[bool, Query(alias="open")] = False,
) -> list[JobRecord]:
    """List jobs by date; ``?open=true`` keeps only jobs accepting enrollment."""
    jobs = await DataStore(db).jobs.get_all()
    return views.open_jobs(jobs) if open_only else jobs


@router.post(
    "/jobs",
    response_model=JobRecord,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_job(db: DbSession, _: AdminSession, payload: JobCreate) -> JobRecord:
    """Post a new job and notify every worker."""
    return await BookkeepingService(db).create_job(
        title=payload.title,
        date=payload.date,
        time=payload.time,
        location=payload.location,
        pay=payload.pay,
        max_workers=payload.max_workers,
    )


@router.get(
    "/jobs/{job_id}",
    response_model=JobRecord,
    responses={404: {"model": ErrorResponse}},
)
async def get_job(
    db: DbSession,
    _: CurrentSession,
    job_id: Annotated[UUID, Path()],
) -> JobRecord:
    job = await DataStore(db).jobs.get(job_id)
    if job is None:
        raise NotFoundError("Job", job_id)
    return job


@router.patch(
    "/jobs/{job_id}",
    response_model=JobRecord,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_job(
    db: DbSession,
    _: AdminSession,
    job_id: Annotated[UUID, Path()],
    payload: JobUpdate,
) -> JobRecord:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    return await BookkeepingService(db).update_job(job_id, **changes)


@router.post(
    "/jobs/{job_id}/status",
    response_model=JobRecord,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def set_job_status(
    db: DbSession,
    _: AdminSession,
    job_id: Annotated[UUID, Path()],
    payload: JobStatusUpdate,
) -> JobRecord:
    """Manually open, close or complete a job."""
    return await BookkeepingService(db).set_job_status(job_id, payload.status)


@router.delete(
    "/jobs/{job_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_job(
    db: DbSession,
    _: AdminSession,
    job_id: Annotated[UUID, Path()],
) -> MessageResponse:
    """Delete a job together with its enrollments."""
    await BookkeepingService(db).delete_job(job_id)
    return MessageResponse(status="deleted")


# ============================================================================
# Enrollment
# ============================================================================


@router.post(
    "/jobs/{job_id}/enroll",
    response_model=EnrollmentRecord,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def enroll(
    db: DbSession,
    current: WorkerSession,
    job_id: Annotated[UUID, Path()],
) -> EnrollmentRecord:
    return await BookkeepingService(db).enroll(current.account_id, job_id)


@router.delete(
    "/jobs/{job_id}/enroll",
    response_model=MessageResponse,
    responses={409: {"model": ErrorResponse}},
)
async def cancel_enrollment(
    db: DbSession,
    current: WorkerSession,
    job_id: Annotated[UUID, Path()],
) -> MessageResponse:
    if not await BookkeepingService(db).cancel(current.account_id, job_id):
        raise NotEnrolledError(f"Not enrolled in job {job_id}")
    return MessageResponse(status="cancelled")


@router.post(
    "/jobs/{job_id}/toggle-enrollment",
    response_model=EnrollmentToggleResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def toggle_enrollment(
    db: DbSession,
    current: WorkerSession,
    job_id: Annotated[UUID, Path()],
) -> EnrollmentToggleResponse:
    enrollment = await BookkeepingService(db).toggle_enrollment(current.account_id, job_id)
    return EnrollmentToggleResponse(enrolled=enrollment is not None, enrollment=enrollment)


@router.get(
    "/jobs/{job_id}/enrollments",
    response_model=list[EnrollmentRecord],
    responses={404: {"model": ErrorResponse}},
)
async def list_job_enrollments(
    db: DbSession,
    _: AdminSession,
    job_id: Annotated[UUID, Path()],
) -> list[EnrollmentRecord]:
    store = DataStore(db)
    if await store.jobs.get(job_id) is None:
        raise NotFoundError("Job", job_id)
    return await store.enrollments.list_for_job(job_id)


@router.get("/enrollments", response_model=list[EnrollmentRecord])
async def list_enrollments(db: DbSession, current: CurrentSession) -> list[EnrollmentRecord]:
    """All enrollments for admins; a worker sees only their own."""
    store = DataStore(db)
    if current.is_admin:
        return await store.enrollments.get_all()
    return await store.enrollments.list_for_user(current.account_id)
