"""Job operations composed from the authorization gate and the lifecycle.

Each mutation runs in the same order: load the job inside the actor's
organization, check the role/ownership predicate, validate against the state
machine, then write conditionally. Notification and activity recording come
last and never undo a committed write.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ats.core.auth import Actor
from ats.services.activity import record_activity
from ats.services.errors import InvalidTransitionError, NotAuthorizedError, RecordNotFoundError
from ats.services.lifecycle import JobEvent, JobStatus, plan_transition
from ats.services.notifications import Notifier, dispatch_notification
from ats.services.policies import JobAction, can_perform_on_job, job_scope_for, same_organization
from ats.services.repository import RepositoryNotFoundError, RepositoryValidationError

logger = logging.getLogger(__name__)


async def list_jobs(
    repository: Any,
    *,
    actor: Actor,
    status: JobStatus | str | None = None,
    employment_type: str | None = None,
    experience_level: str | None = None,
    q: str | None = None,
    remote_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[dict[str, Any]]:
    scope = job_scope_for(actor)
    if scope.is_empty:
        return []

    status_value = JobStatus(status).value if status is not None else None
    statuses = scope.status_values
    if status_value is not None and statuses is not None and status_value not in statuses:
        return []

    jobs = await repository.list_jobs(
        organization_id=scope.organization_id,
        statuses=statuses,
        status=status_value,
        employment_type=employment_type,
        experience_level=experience_level,
        q=q,
        remote_only=remote_only,
        limit=limit,
        offset=offset,
    )
    return [job for job in jobs if scope(job)]


async def load_job(repository: Any, *, actor: Actor, job_id: str) -> dict[str, Any]:
    """Fetch a job inside the actor's organization; foreign jobs look missing."""
    try:
        job = await repository.get_job(organization_id=actor.organization_id, job_id=job_id)
    except RepositoryNotFoundError as exc:
        raise RecordNotFoundError("job") from exc
    if not same_organization(actor, job):
        raise RecordNotFoundError("job")
    return job


async def get_job(
    repository: Any,
    *,
    actor: Actor,
    job_id: str,
    count_view: bool = True,
) -> dict[str, Any]:
    job = await load_job(repository, actor=actor, job_id=job_id)
    if not can_perform_on_job(actor, JobAction.SHOW, job):
        raise NotAuthorizedError("show this job")
    if not count_view:
        return job
    try:
        return await repository.increment_job_view_count(organization_id=actor.organization_id, job_id=job_id)
    except RepositoryNotFoundError as exc:
        raise RecordNotFoundError("job") from exc


async def create_job(repository: Any, *, actor: Actor, fields: dict[str, Any]) -> dict[str, Any]:
    if not can_perform_on_job(actor, JobAction.CREATE, {"organization_id": actor.organization_id}):
        raise NotAuthorizedError("create jobs")
    check_salary_range(fields)

    job = await repository.create_job(
        organization_id=actor.organization_id,
        hiring_manager_id=actor.id,
        fields=fields,
    )
    logger.info("job created organization_id=%s job_id=%s actor_id=%s", actor.organization_id, job["id"], actor.id)
    await record_activity(repository, action_key="job.create", entity_type="job", record=job, actor=actor)
    return job


async def update_job(repository: Any, *, actor: Actor, job_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    job = await load_job(repository, actor=actor, job_id=job_id)
    if not can_perform_on_job(actor, JobAction.UPDATE, job):
        raise NotAuthorizedError("update this job")
    check_salary_range({**job, **fields})

    try:
        updated = await repository.update_job(organization_id=actor.organization_id, job_id=job_id, fields=fields)
    except RepositoryNotFoundError as exc:
        raise RecordNotFoundError("job") from exc
    await record_activity(
        repository,
        action_key="job.update",
        entity_type="job",
        record=updated,
        actor=actor,
        payload={"fields": sorted(fields)},
    )
    return updated


async def destroy_job(repository: Any, *, actor: Actor, job_id: str) -> None:
    job = await load_job(repository, actor=actor, job_id=job_id)
    if not can_perform_on_job(actor, JobAction.DESTROY, job):
        raise NotAuthorizedError("delete this job")

    try:
        await repository.delete_job(organization_id=actor.organization_id, job_id=job_id)
    except RepositoryNotFoundError as exc:
        raise RecordNotFoundError("job") from exc
    logger.info("job deleted organization_id=%s job_id=%s actor_id=%s", actor.organization_id, job_id, actor.id)
    await record_activity(
        repository,
        action_key="job.destroy",
        entity_type="job",
        record={"id": job_id},
        actor=actor,
        payload={"title": job.get("title")},
    )


async def transition_job(
    repository: Any,
    notifier: Notifier,
    *,
    actor: Actor,
    job_id: str,
    event: JobEvent | str,
    now: datetime | None = None,
) -> dict[str, Any]:
    job_event = JobEvent(event)
    job = await load_job(repository, actor=actor, job_id=job_id)
    if not can_perform_on_job(actor, JobAction.UPDATE, job):
        raise NotAuthorizedError(f"{job_event.value} this job")

    plan = plan_transition(job, job_event, now=now or datetime.now(timezone.utc))
    updated = await repository.transition_job_status(
        organization_id=actor.organization_id,
        job_id=job_id,
        expected_status=plan.from_status.value,
        to_status=plan.to_status.value,
        published_at=plan.published_at,
    )
    if updated is None:
        current = await load_job(repository, actor=actor, job_id=job_id)
        logger.info(
            "job transition lost organization_id=%s job_id=%s event=%s expected=%s current=%s",
            actor.organization_id,
            job_id,
            job_event.value,
            plan.from_status.value,
            current.get("status"),
        )
        raise InvalidTransitionError(job_event.value, str(current.get("status")))

    logger.info(
        "job transition organization_id=%s job_id=%s event=%s from=%s to=%s actor_id=%s",
        actor.organization_id,
        job_id,
        job_event.value,
        plan.from_status.value,
        plan.to_status.value,
        actor.id,
    )
    await dispatch_notification(notifier, f"job.{job_event.value}", actor, updated)
    await record_activity(
        repository,
        action_key=f"job.{job_event.value}",
        entity_type="job",
        record=updated,
        actor=actor,
        payload={"from": plan.from_status.value, "to": plan.to_status.value},
    )
    return updated


async def get_job_analytics(
    repository: Any,
    *,
    actor: Actor,
    job_id: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    job = await load_job(repository, actor=actor, job_id=job_id)
    if not can_perform_on_job(actor, JobAction.VIEW_ANALYTICS, job):
        raise NotAuthorizedError("view analytics for this job")

    application_count = await repository.count_job_applications(organization_id=actor.organization_id, job_id=job_id)
    view_count = int(job.get("view_count") or 0)
    published_at = job.get("published_at")
    days_since_published = None
    if isinstance(published_at, datetime):
        days_since_published = max(((now or datetime.now(timezone.utc)) - published_at).days, 0)

    return {
        "job_id": job["id"],
        "status": job["status"],
        "view_count": view_count,
        "application_count": application_count,
        "conversion_rate": round(application_count / view_count, 4) if view_count else 0.0,
        "published_at": published_at,
        "days_since_published": days_since_published,
    }


def check_salary_range(fields: dict[str, Any]) -> None:
    salary_min = fields.get("salary_min")
    salary_max = fields.get("salary_max")
    if salary_min is not None and salary_max is not None and float(salary_min) > float(salary_max):
        raise RepositoryValidationError("salary_min must be less than or equal to salary_max")
