"""Authorization gate for jobs and job templates.

Every decision is two-layered: the tenancy check runs first and no role
overrides it; the role/ownership predicate runs only for same-organization
records. List scopes never raise; an unknown role yields an empty scope.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from ats.core.auth import Actor, Role
from ats.services.lifecycle import JobStatus, is_publishable

DEFAULT_TEMPLATE_USAGE_LIMIT = 5


class JobAction(str, Enum):
    INDEX = "index"
    SHOW = "show"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"
    PUBLISH = "publish"
    CLOSE = "close"
    REOPEN = "reopen"
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"
    VIEW_ANALYTICS = "view_analytics"
    VIEW_APPLICATIONS = "view_applications"
    MANAGE_APPLICATIONS = "manage_applications"


class TemplateAction(str, Enum):
    INDEX = "index"
    SHOW = "show"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    USE = "use"
    DUPLICATE = "duplicate"
    VIEW_USAGE_STATS = "view_usage_stats"


def same_organization(actor: Actor | None, record: Mapping[str, Any]) -> bool:
    if actor is None:
        return False
    organization_id = record.get("organization_id")
    return organization_id is not None and str(organization_id) == str(actor.organization_id)


def is_job_owner(actor: Actor, job: Mapping[str, Any]) -> bool:
    owner_id = job.get("hiring_manager_id")
    return owner_id is not None and str(owner_id) == str(actor.id)


def is_template_creator(actor: Actor, template: Mapping[str, Any]) -> bool:
    creator_id = template.get("created_by_id")
    return creator_id is not None and str(creator_id) == str(actor.id)


def _status_is(record: Mapping[str, Any], status: JobStatus) -> bool:
    return record.get("status") in {status, status.value}


def _can_update_job(actor: Actor, job: Mapping[str, Any]) -> bool:
    return actor.is_admin or is_job_owner(actor, job)


_JOB_PREDICATES: dict[JobAction, Callable[[Actor, Mapping[str, Any]], bool]] = {
    JobAction.INDEX: lambda actor, job: True,
    JobAction.SHOW: lambda actor, job: True,
    JobAction.CREATE: lambda actor, job: actor.can_manage_jobs,
    JobAction.UPDATE: _can_update_job,
    JobAction.DESTROY: _can_update_job,
    JobAction.PUBLISH: lambda actor, job: _can_update_job(actor, job) and is_publishable(job),
    JobAction.CLOSE: lambda actor, job: _can_update_job(actor, job) and _status_is(job, JobStatus.PUBLISHED),
    JobAction.REOPEN: lambda actor, job: _can_update_job(actor, job) and _status_is(job, JobStatus.CLOSED),
    JobAction.ARCHIVE: _can_update_job,
    JobAction.UNARCHIVE: lambda actor, job: _can_update_job(actor, job) and _status_is(job, JobStatus.ARCHIVED),
    JobAction.VIEW_ANALYTICS: lambda actor, job: actor.has_role(Role.ADMIN, Role.HIRING_MANAGER, Role.RECRUITER),
    JobAction.VIEW_APPLICATIONS: lambda actor, job: actor.can_recruit,
    JobAction.MANAGE_APPLICATIONS: lambda actor, job: (
        actor.is_admin or is_job_owner(actor, job) or actor.can_recruit
    ),
}


def can_perform_on_job(actor: Actor | None, action: JobAction | str, job: Mapping[str, Any]) -> bool:
    if actor is None or not same_organization(actor, job):
        return False
    return _JOB_PREDICATES[JobAction(action)](actor, job)


def _can_manage_template(actor: Actor, template: Mapping[str, Any]) -> bool:
    return actor.is_admin or is_template_creator(actor, template)


def template_usage_guard_blocks(
    actor: Actor,
    template: Mapping[str, Any],
    usage_limit: int = DEFAULT_TEMPLATE_USAGE_LIMIT,
) -> bool:
    """True when a creator's destroy is refused only because of usage_count."""
    if actor.is_admin or not is_template_creator(actor, template):
        return False
    return int(template.get("usage_count") or 0) >= usage_limit


def can_perform_on_template(
    actor: Actor | None,
    action: TemplateAction | str,
    template: Mapping[str, Any],
    *,
    usage_limit: int = DEFAULT_TEMPLATE_USAGE_LIMIT,
) -> bool:
    if actor is None or not same_organization(actor, template):
        return False

    template_action = TemplateAction(action)
    if template_action in {TemplateAction.INDEX, TemplateAction.SHOW}:
        return True
    if template_action in {TemplateAction.CREATE, TemplateAction.DUPLICATE}:
        return actor.can_manage_jobs
    if template_action in {TemplateAction.UPDATE, TemplateAction.ACTIVATE, TemplateAction.DEACTIVATE}:
        return _can_manage_template(actor, template)
    if template_action is TemplateAction.DESTROY:
        if actor.is_admin:
            return True
        return is_template_creator(actor, template) and not template_usage_guard_blocks(actor, template, usage_limit)
    if template_action is TemplateAction.USE:
        return bool(template.get("is_active")) and actor.can_manage_jobs
    if template_action is TemplateAction.VIEW_USAGE_STATS:
        return actor.has_role(Role.ADMIN, Role.HIRING_MANAGER) or is_template_creator(actor, template)
    return False


def can_perform(actor: Actor | None, action: JobAction | TemplateAction, record: Mapping[str, Any]) -> bool:
    if isinstance(action, TemplateAction):
        return can_perform_on_template(actor, action, record)
    return can_perform_on_job(actor, action, record)


@dataclass(frozen=True, slots=True)
class JobScope:
    """Jobs an actor may list. ``statuses=None`` means every status."""

    organization_id: str
    statuses: frozenset[JobStatus] | None = None
    is_empty: bool = False

    def __call__(self, job: Mapping[str, Any]) -> bool:
        if self.is_empty or str(job.get("organization_id")) != str(self.organization_id):
            return False
        if self.statuses is None:
            return True
        return job.get("status") in {status.value for status in self.statuses}

    @property
    def status_values(self) -> list[str] | None:
        if self.statuses is None:
            return None
        return sorted(status.value for status in self.statuses)


@dataclass(frozen=True, slots=True)
class TemplateScope:
    """Templates an actor may list.

    ``active_only`` restricts to active templates; ``include_created_by``
    additionally admits that user's own templates regardless of state.
    """

    organization_id: str
    active_only: bool = False
    include_created_by: str | None = None
    is_empty: bool = False

    def __call__(self, template: Mapping[str, Any]) -> bool:
        if self.is_empty or str(template.get("organization_id")) != str(self.organization_id):
            return False
        if not self.active_only:
            return True
        if template.get("is_active"):
            return True
        return self.include_created_by is not None and str(template.get("created_by_id")) == self.include_created_by


def job_scope_for(actor: Actor) -> JobScope:
    if actor.has_role(Role.ADMIN, Role.HIRING_MANAGER):
        return JobScope(organization_id=actor.organization_id)
    if actor.has_role(Role.RECRUITER):
        return JobScope(
            organization_id=actor.organization_id,
            statuses=frozenset({JobStatus.PUBLISHED, JobStatus.CLOSED}),
        )
    if actor.has_role(Role.INTERVIEWER, Role.COORDINATOR):
        return JobScope(organization_id=actor.organization_id, statuses=frozenset({JobStatus.PUBLISHED}))
    return JobScope(organization_id=actor.organization_id, is_empty=True)


def template_scope_for(actor: Actor) -> TemplateScope:
    if actor.has_role(Role.ADMIN, Role.HIRING_MANAGER):
        return TemplateScope(organization_id=actor.organization_id)
    if actor.has_role(Role.RECRUITER):
        return TemplateScope(organization_id=actor.organization_id, active_only=True, include_created_by=actor.id)
    if actor.has_role(Role.INTERVIEWER, Role.COORDINATOR):
        return TemplateScope(organization_id=actor.organization_id, active_only=True)
    return TemplateScope(organization_id=actor.organization_id, is_empty=True)


def job_permissions(actor: Actor, job: Mapping[str, Any]) -> dict[str, bool]:
    return {action.value: can_perform_on_job(actor, action, job) for action in JobAction}


def template_permissions(
    actor: Actor,
    template: Mapping[str, Any],
    *,
    usage_limit: int = DEFAULT_TEMPLATE_USAGE_LIMIT,
) -> dict[str, bool]:
    return {
        action.value: can_perform_on_template(actor, action, template, usage_limit=usage_limit)
        for action in TemplateAction
    }
