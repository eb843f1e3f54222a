from __future__ import annotations

import logging
from typing import Any

from ats.core.auth import Actor
from ats.services.activity import record_activity
from ats.services.errors import NotAuthorizedError, RecordNotFoundError, UsageGuardViolationError
from ats.services.jobs import check_salary_range
from ats.services.policies import (
    DEFAULT_TEMPLATE_USAGE_LIMIT,
    TemplateAction,
    can_perform_on_template,
    same_organization,
    template_scope_for,
    template_usage_guard_blocks,
)
from ats.services.repository import RepositoryConflictError, RepositoryNotFoundError

logger = logging.getLogger(__name__)

MAX_TEMPLATE_NAME_LENGTH = 200


async def list_job_templates(
    repository: Any,
    *,
    actor: Actor,
    is_active: bool | None = None,
    category: str | None = None,
    q: str | None = None,
    created_by_id: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[dict[str, Any]]:
    scope = template_scope_for(actor)
    if scope.is_empty:
        return []

    templates = await repository.list_job_templates(
        organization_id=scope.organization_id,
        active_only=scope.active_only,
        include_created_by=scope.include_created_by,
        is_active=is_active,
        category=category,
        q=q,
        created_by_id=created_by_id,
        limit=limit,
        offset=offset,
    )
    return [template for template in templates if scope(template)]


async def load_job_template(repository: Any, *, actor: Actor, template_id: str) -> dict[str, Any]:
    try:
        template = await repository.get_job_template(organization_id=actor.organization_id, template_id=template_id)
    except RepositoryNotFoundError as exc:
        raise RecordNotFoundError("job template") from exc
    if not same_organization(actor, template):
        raise RecordNotFoundError("job template")
    return template


async def get_job_template(repository: Any, *, actor: Actor, template_id: str) -> dict[str, Any]:
    template = await load_job_template(repository, actor=actor, template_id=template_id)
    if not can_perform_on_template(actor, TemplateAction.SHOW, template):
        raise NotAuthorizedError("show this job template")
    return template


async def create_job_template(repository: Any, *, actor: Actor, fields: dict[str, Any]) -> dict[str, Any]:
    if not can_perform_on_template(actor, TemplateAction.CREATE, {"organization_id": actor.organization_id}):
        raise NotAuthorizedError("create job templates")
    check_salary_range(fields)

    template = await repository.create_job_template(
        organization_id=actor.organization_id,
        created_by_id=actor.id,
        fields=fields,
    )
    await record_activity(
        repository,
        action_key="job_template.create",
        entity_type="job_template",
        record=template,
        actor=actor,
    )
    return template


async def update_job_template(
    repository: Any,
    *,
    actor: Actor,
    template_id: str,
    fields: dict[str, Any],
) -> dict[str, Any]:
    template = await load_job_template(repository, actor=actor, template_id=template_id)
    if not can_perform_on_template(actor, TemplateAction.UPDATE, template):
        raise NotAuthorizedError("update this job template")
    check_salary_range({**template, **fields})

    try:
        updated = await repository.update_job_template(
            organization_id=actor.organization_id,
            template_id=template_id,
            fields=fields,
        )
    except RepositoryNotFoundError as exc:
        raise RecordNotFoundError("job template") from exc
    await record_activity(
        repository,
        action_key="job_template.update",
        entity_type="job_template",
        record=updated,
        actor=actor,
        payload={"fields": sorted(fields)},
    )
    return updated


async def destroy_job_template(
    repository: Any,
    *,
    actor: Actor,
    template_id: str,
    usage_limit: int = DEFAULT_TEMPLATE_USAGE_LIMIT,
) -> None:
    template = await load_job_template(repository, actor=actor, template_id=template_id)
    if not can_perform_on_template(actor, TemplateAction.DESTROY, template, usage_limit=usage_limit):
        if template_usage_guard_blocks(actor, template, usage_limit):
            raise UsageGuardViolationError(int(template.get("usage_count") or 0), usage_limit)
        raise NotAuthorizedError("delete this job template")

    # The guard is re-checked in the delete itself; a concurrent use can still win.
    max_usage_count = None if actor.is_admin else usage_limit
    deleted = await repository.delete_job_template(
        organization_id=actor.organization_id,
        template_id=template_id,
        max_usage_count=max_usage_count,
    )
    if not deleted:
        current = await load_job_template(repository, actor=actor, template_id=template_id)
        raise UsageGuardViolationError(int(current.get("usage_count") or 0), usage_limit)

    logger.info(
        "job template deleted organization_id=%s template_id=%s actor_id=%s",
        actor.organization_id,
        template_id,
        actor.id,
    )
    await record_activity(
        repository,
        action_key="job_template.destroy",
        entity_type="job_template",
        record={"id": template_id},
        actor=actor,
        payload={"name": template.get("name")},
    )


async def activate_job_template(repository: Any, *, actor: Actor, template_id: str) -> dict[str, Any]:
    return await _set_active(repository, actor=actor, template_id=template_id, is_active=True)


async def deactivate_job_template(repository: Any, *, actor: Actor, template_id: str) -> dict[str, Any]:
    return await _set_active(repository, actor=actor, template_id=template_id, is_active=False)


async def _set_active(repository: Any, *, actor: Actor, template_id: str, is_active: bool) -> dict[str, Any]:
    action = TemplateAction.ACTIVATE if is_active else TemplateAction.DEACTIVATE
    template = await load_job_template(repository, actor=actor, template_id=template_id)
    if not can_perform_on_template(actor, action, template):
        raise NotAuthorizedError(f"{action.value} this job template")

    try:
        updated = await repository.set_job_template_active(
            organization_id=actor.organization_id,
            template_id=template_id,
            is_active=is_active,
        )
    except RepositoryNotFoundError as exc:
        raise RecordNotFoundError("job template") from exc
    await record_activity(
        repository,
        action_key=f"job_template.{action.value}",
        entity_type="job_template",
        record=updated,
        actor=actor,
    )
    return updated


async def make_default_job_template(repository: Any, *, actor: Actor, template_id: str) -> dict[str, Any]:
    """Flag the template as its category's default, unflagging the previous one."""
    return await _set_default(repository, actor=actor, template_id=template_id, is_default=True)


async def remove_default_job_template(repository: Any, *, actor: Actor, template_id: str) -> dict[str, Any]:
    return await _set_default(repository, actor=actor, template_id=template_id, is_default=False)


async def _set_default(repository: Any, *, actor: Actor, template_id: str, is_default: bool) -> dict[str, Any]:
    template = await load_job_template(repository, actor=actor, template_id=template_id)
    if not can_perform_on_template(actor, TemplateAction.UPDATE, template):
        raise NotAuthorizedError("update this job template")

    try:
        updated = await repository.set_job_template_default(
            organization_id=actor.organization_id,
            template_id=template_id,
            is_default=is_default,
        )
    except RepositoryNotFoundError as exc:
        raise RecordNotFoundError("job template") from exc
    await record_activity(
        repository,
        action_key="job_template.make_default" if is_default else "job_template.remove_default",
        entity_type="job_template",
        record=updated,
        actor=actor,
        payload={"category": updated.get("category")},
    )
    return updated


async def use_job_template(
    repository: Any,
    *,
    actor: Actor,
    template_id: str,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a draft job from an active template."""
    template = await load_job_template(repository, actor=actor, template_id=template_id)
    if not can_perform_on_template(actor, TemplateAction.USE, template):
        raise NotAuthorizedError("use this job template")

    try:
        job = await repository.create_job_from_template(
            organization_id=actor.organization_id,
            template_id=template_id,
            used_by_id=actor.id,
            hiring_manager_id=actor.id if actor.can_manage_jobs else None,
            overrides=overrides or {},
        )
    except RepositoryNotFoundError as exc:
        raise RecordNotFoundError("job template") from exc
    except RepositoryConflictError as exc:
        # deactivated between the policy check and the write
        raise NotAuthorizedError("use this job template") from exc

    logger.info(
        "job template used organization_id=%s template_id=%s job_id=%s actor_id=%s",
        actor.organization_id,
        template_id,
        job["id"],
        actor.id,
    )
    await record_activity(
        repository,
        action_key="job_template.use",
        entity_type="job_template",
        record=template,
        actor=actor,
        payload={"job_id": job["id"]},
    )
    return job


async def duplicate_job_template(
    repository: Any,
    *,
    actor: Actor,
    template_id: str,
    name: str | None = None,
    is_active: bool | None = None,
    default_active: bool = False,
) -> dict[str, Any]:
    template = await load_job_template(repository, actor=actor, template_id=template_id)
    if not can_perform_on_template(actor, TemplateAction.DUPLICATE, template):
        raise NotAuthorizedError("duplicate this job template")

    copy_name = (name or f"Copy of {template['name']}")[:MAX_TEMPLATE_NAME_LENGTH]
    try:
        duplicate = await repository.duplicate_job_template(
            organization_id=actor.organization_id,
            template_id=template_id,
            created_by_id=actor.id,
            name=copy_name,
            is_active=default_active if is_active is None else is_active,
        )
    except RepositoryNotFoundError as exc:
        raise RecordNotFoundError("job template") from exc
    await record_activity(
        repository,
        action_key="job_template.duplicate",
        entity_type="job_template",
        record=duplicate,
        actor=actor,
        payload={"parent_template_id": template_id},
    )
    return duplicate
