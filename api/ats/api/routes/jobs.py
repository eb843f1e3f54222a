from typing import Any

from fastapi import APIRouter, Depends, Query, Response, status as http_status

from ats.api.errors import http_error
from ats.core.auth import Actor
from ats.core.security import get_current_actor
from ats.schemas.jobs import (
    EmploymentType,
    ExperienceLevel,
    JobAnalyticsOut,
    JobCreateRequest,
    JobEvent,
    JobOut,
    JobPatchRequest,
    JobStatus,
)
from ats.services import jobs as job_service
from ats.services.errors import ATSError
from ats.services.lifecycle import allowed_events
from ats.services.notifications import get_notifier
from ats.services.policies import job_permissions
from ats.services.repository import RepositoryError, get_repository

router = APIRouter()

NON_NULLABLE_JOB_FIELDS = {"title", "description", "remote_work_allowed"}


def to_job_out(actor: Actor, job: dict[str, Any]) -> JobOut:
    return JobOut(
        **job,
        allowed_events=[event.value for event in allowed_events(job["status"])],
        permissions=job_permissions(actor, job),
    )


@router.get("", response_model=list[JobOut])
async def list_jobs(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    q: str | None = Query(default=None, min_length=1),
    job_status: JobStatus | None = Query(default=None, alias="status"),
    employment_type: EmploymentType | None = Query(default=None),
    experience_level: ExperienceLevel | None = Query(default=None),
    remote_only: bool = Query(default=False),
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
) -> list[JobOut]:
    try:
        rows = await job_service.list_jobs(
            repository,
            actor=actor,
            status=job_status,
            employment_type=employment_type,
            experience_level=experience_level,
            q=q,
            remote_only=remote_only,
            limit=limit,
            offset=offset,
        )
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return [to_job_out(actor, row) for row in rows]


@router.post("", response_model=JobOut, status_code=http_status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreateRequest,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
) -> JobOut:
    try:
        row = await job_service.create_job(repository, actor=actor, fields=payload.model_dump())
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_job_out(actor, row)


@router.get("/{job_id}", response_model=JobOut)
async def get_job(
    job_id: str,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
) -> JobOut:
    try:
        row = await job_service.get_job(repository, actor=actor, job_id=job_id)
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_job_out(actor, row)


@router.patch("/{job_id}", response_model=JobOut)
async def patch_job(
    job_id: str,
    payload: JobPatchRequest,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
) -> JobOut:
    fields = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key not in NON_NULLABLE_JOB_FIELDS
    }
    try:
        row = await job_service.update_job(repository, actor=actor, job_id=job_id, fields=fields)
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_job_out(actor, row)


@router.delete("/{job_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_job(
    job_id: str,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
) -> Response:
    try:
        await job_service.destroy_job(repository, actor=actor, job_id=job_id)
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


@router.get("/{job_id}/analytics", response_model=JobAnalyticsOut)
async def get_job_analytics(
    job_id: str,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
) -> JobAnalyticsOut:
    try:
        analytics = await job_service.get_job_analytics(repository, actor=actor, job_id=job_id)
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return JobAnalyticsOut(**analytics)


@router.patch("/{job_id}/{event}", response_model=JobOut)
async def transition_job(
    job_id: str,
    event: JobEvent,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    notifier=Depends(get_notifier),
) -> JobOut:
    try:
        row = await job_service.transition_job(repository, notifier, actor=actor, job_id=job_id, event=event)
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_job_out(actor, row)
