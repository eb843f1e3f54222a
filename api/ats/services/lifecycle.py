"""Job posting lifecycle.

Transition legality is a single lookup in ``TRANSITIONS``; the publishable
check runs only after the lookup succeeds so callers can tell "wrong state"
apart from "not ready".
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from ats.services.errors import InvalidTransitionError, NotPublishableError


class JobStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"
    ARCHIVED = "archived"


class JobEvent(str, Enum):
    PUBLISH = "publish"
    CLOSE = "close"
    REOPEN = "reopen"
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"


INITIAL_STATUS = JobStatus.DRAFT

TRANSITIONS: dict[tuple[JobStatus, JobEvent], JobStatus] = {
    (JobStatus.DRAFT, JobEvent.PUBLISH): JobStatus.PUBLISHED,
    (JobStatus.PUBLISHED, JobEvent.CLOSE): JobStatus.CLOSED,
    (JobStatus.CLOSED, JobEvent.REOPEN): JobStatus.PUBLISHED,
    (JobStatus.DRAFT, JobEvent.ARCHIVE): JobStatus.ARCHIVED,
    (JobStatus.PUBLISHED, JobEvent.ARCHIVE): JobStatus.ARCHIVED,
    (JobStatus.CLOSED, JobEvent.ARCHIVE): JobStatus.ARCHIVED,
    (JobStatus.ARCHIVED, JobEvent.UNARCHIVE): JobStatus.DRAFT,
}

PUBLISHABLE_FIELDS = ("title", "description")


@dataclass(frozen=True, slots=True)
class TransitionPlan:
    event: JobEvent
    from_status: JobStatus
    to_status: JobStatus
    published_at: datetime | None


def missing_publishable_fields(job: Mapping[str, Any]) -> list[str]:
    missing: list[str] = []
    for field in PUBLISHABLE_FIELDS:
        value = job.get(field)
        if not isinstance(value, str) or not value.strip():
            missing.append(field)
    return missing


def is_publishable(job: Mapping[str, Any]) -> bool:
    return not missing_publishable_fields(job)


def allowed_events(status: JobStatus | str) -> list[JobEvent]:
    current = _coerce_status(status)
    return [event for (from_status, event) in TRANSITIONS if from_status == current]


def plan_transition(job: Mapping[str, Any], event: JobEvent | str, *, now: datetime) -> TransitionPlan:
    """Resolve ``event`` against ``job`` without mutating anything.

    Raises ``InvalidTransitionError`` when the event is not legal from the
    current status and ``NotPublishableError`` when publish is legal but the
    job lacks required content.
    """
    job_event = JobEvent(event)
    raw_status = job.get("status")
    try:
        from_status = _coerce_status(raw_status)
    except ValueError as exc:
        raise InvalidTransitionError(job_event.value, str(raw_status)) from exc

    to_status = TRANSITIONS.get((from_status, job_event))
    if to_status is None:
        raise InvalidTransitionError(job_event.value, from_status.value)

    if job_event is JobEvent.PUBLISH:
        missing = missing_publishable_fields(job)
        if missing:
            raise NotPublishableError(missing)

    published_at = job.get("published_at")
    if to_status is JobStatus.PUBLISHED and published_at is None:
        published_at = now

    return TransitionPlan(
        event=job_event,
        from_status=from_status,
        to_status=to_status,
        published_at=published_at,
    )


def _coerce_status(value: Any) -> JobStatus:
    if isinstance(value, JobStatus):
        return value
    return JobStatus(value)
