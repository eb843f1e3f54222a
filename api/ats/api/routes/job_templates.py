from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Response, status as http_status

from ats.api.errors import http_error
from ats.api.routes.jobs import to_job_out
from ats.core.auth import Actor
from ats.core.config import Settings, get_settings
from ats.core.security import get_current_actor
from ats.schemas.job_templates import (
    JobTemplateCategory,
    JobTemplateCreateRequest,
    JobTemplateDuplicateRequest,
    JobTemplateOut,
    JobTemplatePatchRequest,
    JobTemplateUseRequest,
)
from ats.schemas.jobs import JobOut
from ats.services import job_templates as template_service
from ats.services.errors import ATSError
from ats.services.policies import template_permissions
from ats.services.repository import RepositoryError, get_repository

router = APIRouter()

NON_NULLABLE_TEMPLATE_FIELDS = {"name", "category", "remote_work_allowed"}


def to_template_out(actor: Actor, template: dict[str, Any], settings: Settings) -> JobTemplateOut:
    return JobTemplateOut(
        **template,
        permissions=template_permissions(actor, template, usage_limit=settings.template_destroy_usage_limit),
    )


@router.get("", response_model=list[JobTemplateOut])
async def list_job_templates(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    q: str | None = Query(default=None, min_length=1),
    category: JobTemplateCategory | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    created_by_id: str | None = Query(default=None, min_length=1),
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> list[JobTemplateOut]:
    try:
        rows = await template_service.list_job_templates(
            repository,
            actor=actor,
            is_active=is_active,
            category=category,
            q=q,
            created_by_id=created_by_id,
            limit=limit,
            offset=offset,
        )
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return [to_template_out(actor, row, settings) for row in rows]


@router.post("", response_model=JobTemplateOut, status_code=http_status.HTTP_201_CREATED)
async def create_job_template(
    payload: JobTemplateCreateRequest,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> JobTemplateOut:
    try:
        row = await template_service.create_job_template(repository, actor=actor, fields=payload.model_dump())
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_template_out(actor, row, settings)


@router.get("/{template_id}", response_model=JobTemplateOut)
async def get_job_template(
    template_id: str,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> JobTemplateOut:
    try:
        row = await template_service.get_job_template(repository, actor=actor, template_id=template_id)
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_template_out(actor, row, settings)


@router.patch("/{template_id}", response_model=JobTemplateOut)
async def patch_job_template(
    template_id: str,
    payload: JobTemplatePatchRequest,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> JobTemplateOut:
    fields = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key not in NON_NULLABLE_TEMPLATE_FIELDS
    }
    try:
        row = await template_service.update_job_template(
            repository,
            actor=actor,
            template_id=template_id,
            fields=fields,
        )
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_template_out(actor, row, settings)


@router.delete("/{template_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_job_template(
    template_id: str,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> Response:
    try:
        await template_service.destroy_job_template(
            repository,
            actor=actor,
            template_id=template_id,
            usage_limit=settings.template_destroy_usage_limit,
        )
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


@router.patch("/{template_id}/activate", response_model=JobTemplateOut)
async def activate_job_template(
    template_id: str,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> JobTemplateOut:
    try:
        row = await template_service.activate_job_template(repository, actor=actor, template_id=template_id)
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_template_out(actor, row, settings)


@router.patch("/{template_id}/deactivate", response_model=JobTemplateOut)
async def deactivate_job_template(
    template_id: str,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> JobTemplateOut:
    try:
        row = await template_service.deactivate_job_template(repository, actor=actor, template_id=template_id)
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_template_out(actor, row, settings)


@router.patch("/{template_id}/make-default", response_model=JobTemplateOut)
async def make_default_job_template(
    template_id: str,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> JobTemplateOut:
    try:
        row = await template_service.make_default_job_template(repository, actor=actor, template_id=template_id)
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_template_out(actor, row, settings)


@router.patch("/{template_id}/remove-default", response_model=JobTemplateOut)
async def remove_default_job_template(
    template_id: str,
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> JobTemplateOut:
    try:
        row = await template_service.remove_default_job_template(repository, actor=actor, template_id=template_id)
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_template_out(actor, row, settings)


@router.post("/{template_id}/use", response_model=JobOut, status_code=http_status.HTTP_201_CREATED)
async def use_job_template(
    template_id: str,
    payload: JobTemplateUseRequest | None = Body(default=None),
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
) -> JobOut:
    overrides = payload.model_dump(exclude_none=True) if payload else {}
    try:
        job = await template_service.use_job_template(
            repository,
            actor=actor,
            template_id=template_id,
            overrides=overrides,
        )
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_job_out(actor, job)


@router.post("/{template_id}/duplicate", response_model=JobTemplateOut, status_code=http_status.HTTP_201_CREATED)
async def duplicate_job_template(
    template_id: str,
    payload: JobTemplateDuplicateRequest | None = Body(default=None),
    actor: Actor = Depends(get_current_actor),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> JobTemplateOut:
    request = payload or JobTemplateDuplicateRequest()
    try:
        row = await template_service.duplicate_job_template(
            repository,
            actor=actor,
            template_id=template_id,
            name=request.name,
            is_active=request.is_active,
            default_active=settings.duplicate_template_active,
        )
    except (ATSError, RepositoryError) as exc:
        raise http_error(exc) from exc
    return to_template_out(actor, row, settings)
