from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from ats.core.config import get_settings


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist in the organization."""


class RepositoryConflictError(RepositoryError):
    """Raised when a write conflicts with existing rows."""


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before or during persistence."""


JOB_MUTABLE_FIELDS = (
    "title",
    "description",
    "location",
    "employment_type",
    "experience_level",
    "salary_min",
    "salary_max",
    "currency",
    "remote_work_allowed",
)
JOB_TEMPLATE_MUTABLE_FIELDS = (
    "name",
    "description",
    "category",
    "title",
    "job_description",
    "location",
    "employment_type",
    "experience_level",
    "salary_min",
    "salary_max",
    "currency",
    "remote_work_allowed",
    "is_active",
)
# Template columns copied onto a job created from it (template column -> job column).
TEMPLATE_TO_JOB_FIELDS = {
    "title": "title",
    "job_description": "description",
    "location": "location",
    "employment_type": "employment_type",
    "experience_level": "experience_level",
    "salary_min": "salary_min",
    "salary_max": "salary_max",
    "currency": "currency",
    "remote_work_allowed": "remote_work_allowed",
}
JOB_STATUSES = {"draft", "published", "closed", "archived"}
NUMERIC_FIELDS = ("salary_min", "salary_max")

_JOB_COLUMNS = """
  j.id::text as id,
  j.organization_id::text as organization_id,
  j.hiring_manager_id::text as hiring_manager_id,
  j.job_template_id::text as job_template_id,
  j.title,
  j.description,
  j.location,
  j.employment_type,
  j.experience_level,
  j.salary_min,
  j.salary_max,
  j.currency,
  j.remote_work_allowed,
  j.status::text as status,
  j.published_at,
  j.view_count,
  j.created_at,
  j.updated_at
"""

_JOB_TEMPLATE_COLUMNS = """
  t.id::text as id,
  t.organization_id::text as organization_id,
  t.created_by_id::text as created_by_id,
  t.parent_template_id::text as parent_template_id,
  t.name,
  t.description,
  t.category,
  t.title,
  t.job_description,
  t.location,
  t.employment_type,
  t.experience_level,
  t.salary_min,
  t.salary_max,
  t.currency,
  t.remote_work_allowed,
  t.is_active,
  t.is_default,
  t.usage_count,
  t.last_used_at,
  t.last_used_by_id::text as last_used_by_id,
  t.created_at,
  t.updated_at
"""


class PostgresRepository:
    """Organization-scoped persistence for jobs, job templates and activities.

    Every read and write takes ``organization_id`` explicitly; a record in
    another organization is indistinguishable from a missing one.
    """

    def __init__(self, database_url: str | None, min_pool_size: int, max_pool_size: int) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def get_actor(self, *, user_id: str) -> dict[str, Any] | None:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                """
                select
                  u.id::text as id,
                  u.organization_id::text as organization_id,
                  u.role,
                  u.email,
                  u.active,
                  o.active as organization_active
                from users u
                join organizations o on o.id = u.organization_id
                where u.id = $1::uuid
                """,
                user_id,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError):
            return None
        if not row:
            return None
        return dict(row)

    # Jobs

    async def get_job(self, *, organization_id: str, job_id: str) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await self._fetch_job_row(conn=pool, organization_id=organization_id, job_id=job_id)
        if not row:
            raise RepositoryNotFoundError("job not found")
        return self._job_row_to_dict(row)

    async def list_jobs(
        self,
        *,
        organization_id: str,
        statuses: list[str] | None,
        status: str | None = None,
        employment_type: str | None = None,
        experience_level: str | None = None,
        q: str | None = None,
        remote_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        where_sql, params = self._build_job_filters(
            organization_id=organization_id,
            statuses=statuses,
            status=status,
            employment_type=employment_type,
            experience_level=experience_level,
            q=q,
            remote_only=remote_only,
        )
        params.extend([limit, offset])
        rows = await pool.fetch(
            f"""
            select {_JOB_COLUMNS}
            from jobs j
            where {where_sql}
            order by coalesce(j.published_at, j.created_at) desc, j.id asc
            limit ${len(params) - 1}
            offset ${len(params)}
            """,
            *params,
        )
        return [self._job_row_to_dict(row) for row in rows]

    async def create_job(
        self,
        *,
        organization_id: str,
        hiring_manager_id: str | None,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        values = self._pick_fields(fields, JOB_MUTABLE_FIELDS)
        columns = ["organization_id", "hiring_manager_id", *values.keys()]
        params: list[Any] = [organization_id, hiring_manager_id, *values.values()]
        placeholders = ["$1::uuid", "$2::uuid", *[f"${index}" for index in range(3, len(params) + 1)]]

        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    job_id = await conn.fetchval(
                        f"""
                        insert into jobs ({", ".join(columns)})
                        values ({", ".join(placeholders)})
                        returning id::text
                        """,
                        *params,
                    )
                    row = await self._fetch_job_row(conn=conn, organization_id=organization_id, job_id=job_id)
        except pg_exc.CheckViolationError as exc:
            raise RepositoryValidationError("job violates a field constraint") from exc
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryValidationError("job references an unknown organization or user") from exc
        assert row is not None
        return self._job_row_to_dict(row)

    async def update_job(self, *, organization_id: str, job_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        values = self._pick_fields(fields, JOB_MUTABLE_FIELDS)
        if not values:
            return await self.get_job(organization_id=organization_id, job_id=job_id)

        params: list[Any] = [job_id, organization_id, *values.values()]
        assignments = [f"{column} = ${index}" for index, column in enumerate(values.keys(), start=3)]
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    updated_id = await conn.fetchval(
                        f"""
                        update jobs
                        set {", ".join(assignments)}, updated_at = now()
                        where id = $1::uuid
                          and organization_id = $2::uuid
                        returning id::text
                        """,
                        *params,
                    )
                    if not updated_id:
                        raise RepositoryNotFoundError("job not found")
                    row = await self._fetch_job_row(conn=conn, organization_id=organization_id, job_id=job_id)
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("job not found") from exc
        except pg_exc.CheckViolationError as exc:
            raise RepositoryValidationError("job violates a field constraint") from exc
        assert row is not None
        return self._job_row_to_dict(row)

    async def delete_job(self, *, organization_id: str, job_id: str) -> None:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    locked = await conn.fetchval(
                        """
                        select id::text
                        from jobs
                        where id = $1::uuid
                          and organization_id = $2::uuid
                        for update
                        """,
                        job_id,
                        organization_id,
                    )
                    if not locked:
                        raise RepositoryNotFoundError("job not found")
                    application_count = await conn.fetchval(
                        "select count(*) from applications where job_id = $1::uuid",
                        job_id,
                    )
                    if application_count:
                        raise RepositoryConflictError("job has applications and cannot be deleted")
                    await conn.execute("delete from jobs where id = $1::uuid", job_id)
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("job not found") from exc
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryConflictError("job has applications and cannot be deleted") from exc

    async def count_job_applications(self, *, organization_id: str, job_id: str) -> int:
        pool = await self._get_pool()
        try:
            count = await pool.fetchval(
                """
                select count(*)
                from applications
                where job_id = $1::uuid
                  and organization_id = $2::uuid
                """,
                job_id,
                organization_id,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("job not found") from exc
        return int(count or 0)

    async def increment_job_view_count(self, *, organization_id: str, job_id: str) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            updated_id = await pool.fetchval(
                """
                update jobs
                set view_count = view_count + 1
                where id = $1::uuid
                  and organization_id = $2::uuid
                returning id::text
                """,
                job_id,
                organization_id,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("job not found") from exc
        if not updated_id:
            raise RepositoryNotFoundError("job not found")
        return await self.get_job(organization_id=organization_id, job_id=job_id)

    async def transition_job_status(
        self,
        *,
        organization_id: str,
        job_id: str,
        expected_status: str,
        to_status: str,
        published_at: datetime | None,
    ) -> dict[str, Any] | None:
        """Compare-and-swap the job status.

        Returns ``None`` when no row matched, i.e. the job disappeared or its
        status is no longer ``expected_status``. ``published_at`` is only
        written when the column is still null.
        """
        if expected_status not in JOB_STATUSES or to_status not in JOB_STATUSES:
            raise RepositoryValidationError("invalid job status")
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    updated_id = await conn.fetchval(
                        """
                        update jobs
                        set
                          status = $4::job_status,
                          published_at = coalesce(published_at, $5::timestamptz),
                          updated_at = now()
                        where id = $1::uuid
                          and organization_id = $2::uuid
                          and status = $3::job_status
                        returning id::text
                        """,
                        job_id,
                        organization_id,
                        expected_status,
                        to_status,
                        published_at,
                    )
                    if not updated_id:
                        return None
                    row = await self._fetch_job_row(conn=conn, organization_id=organization_id, job_id=job_id)
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("job not found") from exc
        assert row is not None
        return self._job_row_to_dict(row)

    # Job templates

    async def get_job_template(self, *, organization_id: str, template_id: str) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await self._fetch_job_template_row(conn=pool, organization_id=organization_id, template_id=template_id)
        if not row:
            raise RepositoryNotFoundError("job template not found")
        return self._job_template_row_to_dict(row)

    async def list_job_templates(
        self,
        *,
        organization_id: str,
        active_only: bool,
        include_created_by: str | None,
        is_active: bool | None = None,
        category: str | None = None,
        q: str | None = None,
        created_by_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        where_sql, params = self._build_job_template_filters(
            organization_id=organization_id,
            active_only=active_only,
            include_created_by=include_created_by,
            is_active=is_active,
            category=category,
            q=q,
            created_by_id=created_by_id,
        )
        params.extend([limit, offset])
        rows = await pool.fetch(
            f"""
            select {_JOB_TEMPLATE_COLUMNS}
            from job_templates t
            where {where_sql}
            order by t.created_at desc, t.id asc
            limit ${len(params) - 1}
            offset ${len(params)}
            """,
            *params,
        )
        return [self._job_template_row_to_dict(row) for row in rows]

    async def create_job_template(
        self,
        *,
        organization_id: str,
        created_by_id: str,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        values = self._pick_fields(fields, JOB_TEMPLATE_MUTABLE_FIELDS)
        columns = ["organization_id", "created_by_id", *values.keys()]
        params: list[Any] = [organization_id, created_by_id, *values.values()]
        placeholders = ["$1::uuid", "$2::uuid", *[f"${index}" for index in range(3, len(params) + 1)]]

        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    template_id = await conn.fetchval(
                        f"""
                        insert into job_templates ({", ".join(columns)})
                        values ({", ".join(placeholders)})
                        returning id::text
                        """,
                        *params,
                    )
                    row = await self._fetch_job_template_row(
                        conn=conn,
                        organization_id=organization_id,
                        template_id=template_id,
                    )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError("job template name already exists in this organization") from exc
        except pg_exc.CheckViolationError as exc:
            raise RepositoryValidationError("job template violates a field constraint") from exc
        assert row is not None
        return self._job_template_row_to_dict(row)

    async def update_job_template(
        self,
        *,
        organization_id: str,
        template_id: str,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        values = self._pick_fields(fields, JOB_TEMPLATE_MUTABLE_FIELDS)
        if not values:
            return await self.get_job_template(organization_id=organization_id, template_id=template_id)

        params: list[Any] = [template_id, organization_id, *values.values()]
        assignments = [f"{column} = ${index}" for index, column in enumerate(values.keys(), start=3)]
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    updated_id = await conn.fetchval(
                        f"""
                        update job_templates
                        set {", ".join(assignments)}, updated_at = now()
                        where id = $1::uuid
                          and organization_id = $2::uuid
                        returning id::text
                        """,
                        *params,
                    )
                    if not updated_id:
                        raise RepositoryNotFoundError("job template not found")
                    row = await self._fetch_job_template_row(
                        conn=conn,
                        organization_id=organization_id,
                        template_id=template_id,
                    )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("job template not found") from exc
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError(self._template_unique_message(exc)) from exc
        except pg_exc.CheckViolationError as exc:
            raise RepositoryValidationError("job template violates a field constraint") from exc
        assert row is not None
        return self._job_template_row_to_dict(row)

    async def set_job_template_active(
        self,
        *,
        organization_id: str,
        template_id: str,
        is_active: bool,
    ) -> dict[str, Any]:
        return await self.update_job_template(
            organization_id=organization_id,
            template_id=template_id,
            fields={"is_active": is_active},
        )

    async def set_job_template_default(
        self,
        *,
        organization_id: str,
        template_id: str,
        is_default: bool,
    ) -> dict[str, Any]:
        """Flag or unflag a template as its category's default.

        Making a template the default clears the flag on any other template
        in the same organization and category, in one transaction.
        """
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    category = await conn.fetchval(
                        """
                        select category
                        from job_templates
                        where id = $1::uuid
                          and organization_id = $2::uuid
                        for update
                        """,
                        template_id,
                        organization_id,
                    )
                    if category is None:
                        raise RepositoryNotFoundError("job template not found")
                    if is_default:
                        await conn.execute(
                            """
                            update job_templates
                            set is_default = false, updated_at = now()
                            where organization_id = $1::uuid
                              and category = $2
                              and is_default = true
                              and id <> $3::uuid
                            """,
                            organization_id,
                            category,
                            template_id,
                        )
                    await conn.execute(
                        """
                        update job_templates
                        set is_default = $3, updated_at = now()
                        where id = $1::uuid
                          and organization_id = $2::uuid
                        """,
                        template_id,
                        organization_id,
                        is_default,
                    )
                    row = await self._fetch_job_template_row(
                        conn=conn,
                        organization_id=organization_id,
                        template_id=template_id,
                    )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("job template not found") from exc
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError(self._template_unique_message(exc)) from exc
        assert row is not None
        return self._job_template_row_to_dict(row)

    async def delete_job_template(
        self,
        *,
        organization_id: str,
        template_id: str,
        max_usage_count: int | None,
    ) -> bool:
        """Delete a template, optionally only while ``usage_count < max_usage_count``.

        Returns ``False`` when the guarded delete matched no row.
        """
        pool = await self._get_pool()
        try:
            deleted_id = await pool.fetchval(
                """
                delete from job_templates
                where id = $1::uuid
                  and organization_id = $2::uuid
                  and ($3::integer is null or usage_count < $3::integer)
                returning id::text
                """,
                template_id,
                organization_id,
                max_usage_count,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("job template not found") from exc
        return deleted_id is not None

    async def create_job_from_template(
        self,
        *,
        organization_id: str,
        template_id: str,
        used_by_id: str,
        hiring_manager_id: str | None,
        overrides: dict[str, Any],
    ) -> dict[str, Any]:
        """Create a draft job from an active template and count the use."""
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    template_row = await conn.fetchrow(
                        f"""
                        update job_templates t
                        set
                          usage_count = t.usage_count + 1,
                          last_used_at = now(),
                          last_used_by_id = $3::uuid
                        where t.id = $1::uuid
                          and t.organization_id = $2::uuid
                          and t.is_active = true
                        returning {_JOB_TEMPLATE_COLUMNS}
                        """,
                        template_id,
                        organization_id,
                        used_by_id,
                    )
                    if not template_row:
                        exists = await conn.fetchval(
                            """
                            select exists(
                              select 1 from job_templates
                              where id = $1::uuid and organization_id = $2::uuid
                            )
                            """,
                            template_id,
                            organization_id,
                        )
                        if not exists:
                            raise RepositoryNotFoundError("job template not found")
                        raise RepositoryConflictError("job template is not active")

                    values: dict[str, Any] = {}
                    for template_field, job_field in TEMPLATE_TO_JOB_FIELDS.items():
                        if template_row[template_field] is not None:
                            values[job_field] = template_row[template_field]
                    values.update(self._pick_fields(overrides, JOB_MUTABLE_FIELDS))

                    columns = ["organization_id", "hiring_manager_id", "job_template_id", *values.keys()]
                    params: list[Any] = [organization_id, hiring_manager_id, template_id, *values.values()]
                    placeholders = [
                        "$1::uuid",
                        "$2::uuid",
                        "$3::uuid",
                        *[f"${index}" for index in range(4, len(params) + 1)],
                    ]
                    job_id = await conn.fetchval(
                        f"""
                        insert into jobs ({", ".join(columns)})
                        values ({", ".join(placeholders)})
                        returning id::text
                        """,
                        *params,
                    )
                    job_row = await self._fetch_job_row(conn=conn, organization_id=organization_id, job_id=job_id)
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("job template not found") from exc
        except pg_exc.CheckViolationError as exc:
            raise RepositoryValidationError("job violates a field constraint") from exc
        assert job_row is not None
        return self._job_row_to_dict(job_row)

    async def duplicate_job_template(
        self,
        *,
        organization_id: str,
        template_id: str,
        created_by_id: str,
        name: str,
        is_active: bool,
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    new_id = await conn.fetchval(
                        """
                        insert into job_templates (
                          organization_id,
                          created_by_id,
                          parent_template_id,
                          name,
                          description,
                          category,
                          title,
                          job_description,
                          location,
                          employment_type,
                          experience_level,
                          salary_min,
                          salary_max,
                          currency,
                          remote_work_allowed,
                          is_active,
                          usage_count
                        )
                        select
                          s.organization_id,
                          $3::uuid,
                          s.id,
                          $4,
                          s.description,
                          s.category,
                          s.title,
                          s.job_description,
                          s.location,
                          s.employment_type,
                          s.experience_level,
                          s.salary_min,
                          s.salary_max,
                          s.currency,
                          s.remote_work_allowed,
                          $5,
                          0
                        from job_templates s
                        where s.id = $1::uuid
                          and s.organization_id = $2::uuid
                        returning id::text
                        """,
                        template_id,
                        organization_id,
                        created_by_id,
                        name,
                        is_active,
                    )
                    if not new_id:
                        raise RepositoryNotFoundError("job template not found")
                    row = await self._fetch_job_template_row(
                        conn=conn,
                        organization_id=organization_id,
                        template_id=new_id,
                    )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("job template not found") from exc
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError("job template name already exists in this organization") from exc
        except pg_exc.CheckViolationError as exc:
            raise RepositoryValidationError("job template violates a field constraint") from exc
        assert row is not None
        return self._job_template_row_to_dict(row)

    # Activities

    async def record_activity(
        self,
        *,
        organization_id: str,
        actor_id: str | None,
        action_key: str,
        entity_type: str,
        entity_id: str | None,
        payload: dict[str, Any],
    ) -> None:
        pool = await self._get_pool()
        try:
            await pool.execute(
                """
                insert into activities (
                  organization_id,
                  actor_id,
                  action_key,
                  entity_type,
                  entity_id,
                  payload
                )
                values ($1::uuid, $2::uuid, $3, $4, $5::uuid, $6::jsonb)
                """,
                organization_id,
                actor_id,
                action_key,
                entity_type,
                entity_id,
                json.dumps(payload, default=str),
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError) as exc:
            raise RepositoryUnavailableError("activity not recorded") from exc

    # Helpers

    async def _fetch_job_row(
        self,
        *,
        conn: asyncpg.Connection | asyncpg.Pool,
        organization_id: str,
        job_id: str,
    ) -> asyncpg.Record | None:
        try:
            return await conn.fetchrow(
                f"""
                select {_JOB_COLUMNS}
                from jobs j
                where j.id = $1::uuid
                  and j.organization_id = $2::uuid
                """,
                job_id,
                organization_id,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError):
            return None

    async def _fetch_job_template_row(
        self,
        *,
        conn: asyncpg.Connection | asyncpg.Pool,
        organization_id: str,
        template_id: str,
    ) -> asyncpg.Record | None:
        try:
            return await conn.fetchrow(
                f"""
                select {_JOB_TEMPLATE_COLUMNS}
                from job_templates t
                where t.id = $1::uuid
                  and t.organization_id = $2::uuid
                """,
                template_id,
                organization_id,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError):
            return None

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("ATS_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @classmethod
    def _build_job_filters(
        cls,
        *,
        organization_id: str,
        statuses: list[str] | None,
        status: str | None,
        employment_type: str | None,
        experience_level: str | None,
        q: str | None,
        remote_only: bool,
    ) -> tuple[str, list[Any]]:
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        conditions = [f"j.organization_id = {bind(organization_id)}::uuid"]
        if statuses is not None:
            conditions.append(f"j.status::text = any({bind(list(statuses))}::text[])")
        if status:
            if status not in JOB_STATUSES:
                raise RepositoryValidationError("invalid job status filter")
            conditions.append(f"j.status = {bind(status)}::job_status")

        normalized_employment_type = cls._coerce_text(employment_type)
        if normalized_employment_type:
            conditions.append(f"j.employment_type = {bind(normalized_employment_type)}")

        normalized_experience_level = cls._coerce_text(experience_level)
        if normalized_experience_level:
            conditions.append(f"j.experience_level = {bind(normalized_experience_level)}")

        normalized_q = cls._coerce_text(q)
        if normalized_q:
            token = bind(f"%{normalized_q}%")
            conditions.append(f"(j.title ilike {token} or j.description ilike {token})")

        if remote_only:
            conditions.append("j.remote_work_allowed = true")

        return " and ".join(conditions), params

    @classmethod
    def _build_job_template_filters(
        cls,
        *,
        organization_id: str,
        active_only: bool,
        include_created_by: str | None,
        is_active: bool | None,
        category: str | None,
        q: str | None,
        created_by_id: str | None,
    ) -> tuple[str, list[Any]]:
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        conditions = [f"t.organization_id = {bind(organization_id)}::uuid"]
        if active_only:
            if include_created_by:
                conditions.append(f"(t.is_active = true or t.created_by_id = {bind(include_created_by)}::uuid)")
            else:
                conditions.append("t.is_active = true")
        if is_active is not None:
            conditions.append(f"t.is_active = {bind(is_active)}")

        normalized_category = cls._coerce_text(category)
        if normalized_category and normalized_category != "all":
            conditions.append(f"t.category = {bind(normalized_category)}")

        normalized_q = cls._coerce_text(q)
        if normalized_q:
            token = bind(f"%{normalized_q}%")
            conditions.append(
                f"(t.name ilike {token} or coalesce(t.title, '') ilike {token} or coalesce(t.description, '') ilike {token})"
            )

        if created_by_id:
            conditions.append(f"t.created_by_id = {bind(created_by_id)}::uuid")

        return " and ".join(conditions), params

    @classmethod
    def _pick_fields(cls, fields: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
        picked = {key: fields[key] for key in allowed if key in fields}
        for key in NUMERIC_FIELDS:
            if picked.get(key) is not None:
                picked[key] = cls._coerce_decimal(picked[key])
        return picked

    @classmethod
    def _job_row_to_dict(cls, row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "organization_id": row["organization_id"],
            "hiring_manager_id": row["hiring_manager_id"],
            "job_template_id": row["job_template_id"],
            "title": row["title"] or "",
            "description": row["description"] or "",
            "location": row["location"],
            "employment_type": row["employment_type"],
            "experience_level": row["experience_level"],
            "salary_min": cls._coerce_float(row["salary_min"]),
            "salary_max": cls._coerce_float(row["salary_max"]),
            "currency": cls._coerce_text(row["currency"]),
            "remote_work_allowed": bool(row["remote_work_allowed"]),
            "status": row["status"],
            "published_at": row["published_at"],
            "view_count": int(row["view_count"] or 0),
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    @classmethod
    def _job_template_row_to_dict(cls, row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "organization_id": row["organization_id"],
            "created_by_id": row["created_by_id"],
            "parent_template_id": row["parent_template_id"],
            "name": row["name"],
            "description": row["description"],
            "category": row["category"],
            "title": row["title"],
            "job_description": row["job_description"],
            "location": row["location"],
            "employment_type": row["employment_type"],
            "experience_level": row["experience_level"],
            "salary_min": cls._coerce_float(row["salary_min"]),
            "salary_max": cls._coerce_float(row["salary_max"]),
            "currency": cls._coerce_text(row["currency"]),
            "remote_work_allowed": bool(row["remote_work_allowed"]),
            "is_active": bool(row["is_active"]),
            "is_default": bool(row["is_default"]),
            "usage_count": int(row["usage_count"] or 0),
            "last_used_at": row["last_used_at"],
            "last_used_by_id": row["last_used_by_id"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    @staticmethod
    def _template_unique_message(exc: pg_exc.UniqueViolationError) -> str:
        if getattr(exc, "constraint_name", None) == "job_templates_one_default_per_category_idx":
            return "category already has a default job template"
        return "job template name already exists in this organization"

    @staticmethod
    def _coerce_text(value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return str(value)

    @staticmethod
    def _coerce_decimal(value: Any) -> Decimal:
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise RepositoryValidationError(f"invalid numeric value: {value!r}") from exc

    @staticmethod
    def _coerce_float(value: Any) -> float | None:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return float(value)
        try:
            return float(value)
        except (TypeError, ValueError):
            return None


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
    )
