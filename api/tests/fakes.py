from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Any

from ats.core.auth import Actor
from ats.services.repository import (
    JOB_MUTABLE_FIELDS,
    JOB_TEMPLATE_MUTABLE_FIELDS,
    TEMPLATE_TO_JOB_FIELDS,
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
)

ORG_A = "aaaaaaaa-0000-0000-0000-000000000001"
ORG_B = "bbbbbbbb-0000-0000-0000-000000000002"

USERS: dict[str, dict[str, str]] = {
    "admin-a": {"role": "admin", "organization_id": ORG_A},
    "hm-a": {"role": "hiring_manager", "organization_id": ORG_A},
    "hm2-a": {"role": "hiring_manager", "organization_id": ORG_A},
    "recruiter-a": {"role": "recruiter", "organization_id": ORG_A},
    "interviewer-a": {"role": "interviewer", "organization_id": ORG_A},
    "coordinator-a": {"role": "coordinator", "organization_id": ORG_A},
    "admin-b": {"role": "admin", "organization_id": ORG_B},
    "hm-b": {"role": "hiring_manager", "organization_id": ORG_B},
}


def actor(user_id: str) -> Actor:
    user = USERS[user_id]
    return Actor(id=user_id, organization_id=user["organization_id"], role=user["role"])


class FakeRepository:
    """In-memory stand-in for ``PostgresRepository`` with the same conditional-write rules."""

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {
            user_id: {
                "id": user_id,
                "email": f"{user_id}@example.com",
                "active": True,
                "organization_active": True,
                **data,
            }
            for user_id, data in USERS.items()
        }
        self.jobs: dict[str, dict[str, Any]] = {}
        self.templates: dict[str, dict[str, Any]] = {}
        self.applications: dict[str, int] = {}
        self.activities: list[dict[str, Any]] = []
        self.fail_activity = False
        # job_id -> status another writer commits just before our compare-and-swap
        self.concurrent_status: dict[str, str] = {}
        self._ids = itertools.count(1)

    def add_job(
        self,
        *,
        organization_id: str = ORG_A,
        hiring_manager_id: str | None = "hm-a",
        status: str = "draft",
        title: str = "Backend Engineer",
        description: str = "Build and run the hiring APIs.",
        published_at: datetime | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        job = {
            "id": f"job-{next(self._ids)}",
            "organization_id": organization_id,
            "hiring_manager_id": hiring_manager_id,
            "job_template_id": None,
            "title": title,
            "description": description,
            "location": None,
            "employment_type": None,
            "experience_level": None,
            "salary_min": None,
            "salary_max": None,
            "currency": None,
            "remote_work_allowed": False,
            "status": status,
            "published_at": published_at,
            "view_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        job.update(extra)
        self.jobs[job["id"]] = job
        return dict(job)

    def add_template(
        self,
        *,
        organization_id: str = ORG_A,
        created_by_id: str = "hm-a",
        name: str = "Engineering base",
        is_active: bool = True,
        usage_count: int = 0,
        **extra: Any,
    ) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        template = {
            "id": f"template-{next(self._ids)}",
            "organization_id": organization_id,
            "created_by_id": created_by_id,
            "parent_template_id": None,
            "name": name,
            "description": "Baseline engineering role",
            "category": "engineering",
            "title": "Software Engineer",
            "job_description": "Write and review code.",
            "location": "Remote",
            "employment_type": "full_time",
            "experience_level": "mid",
            "salary_min": 90000.0,
            "salary_max": 120000.0,
            "currency": "USD",
            "remote_work_allowed": True,
            "is_active": is_active,
            "is_default": False,
            "usage_count": usage_count,
            "last_used_at": None,
            "last_used_by_id": None,
            "created_at": now,
            "updated_at": now,
        }
        template.update(extra)
        self.templates[template["id"]] = template
        return dict(template)

    async def get_actor(self, *, user_id: str) -> dict[str, Any] | None:
        user = self.users.get(user_id)
        return dict(user) if user else None

    # Jobs

    def _job(self, organization_id: str, job_id: str) -> dict[str, Any]:
        job = self.jobs.get(job_id)
        if not job or job["organization_id"] != organization_id:
            raise RepositoryNotFoundError("job not found")
        return job

    async def get_job(self, *, organization_id: str, job_id: str) -> dict[str, Any]:
        return dict(self._job(organization_id, job_id))

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
        rows = [job for job in self.jobs.values() if job["organization_id"] == organization_id]
        if statuses is not None:
            rows = [job for job in rows if job["status"] in statuses]
        if status:
            rows = [job for job in rows if job["status"] == status]
        if employment_type:
            rows = [job for job in rows if job["employment_type"] == employment_type]
        if experience_level:
            rows = [job for job in rows if job["experience_level"] == experience_level]
        if q:
            needle = q.lower()
            rows = [job for job in rows if needle in job["title"].lower() or needle in job["description"].lower()]
        if remote_only:
            rows = [job for job in rows if job["remote_work_allowed"]]
        return [dict(job) for job in rows[offset : offset + limit]]

    async def create_job(
        self,
        *,
        organization_id: str,
        hiring_manager_id: str | None,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        values = {key: fields[key] for key in JOB_MUTABLE_FIELDS if key in fields}
        return self.add_job(organization_id=organization_id, hiring_manager_id=hiring_manager_id, **values)

    async def update_job(self, *, organization_id: str, job_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        job = self._job(organization_id, job_id)
        job.update({key: fields[key] for key in JOB_MUTABLE_FIELDS if key in fields})
        job["updated_at"] = datetime.now(timezone.utc)
        return dict(job)

    async def delete_job(self, *, organization_id: str, job_id: str) -> None:
        self._job(organization_id, job_id)
        if self.applications.get(job_id):
            raise RepositoryConflictError("job has applications and cannot be deleted")
        del self.jobs[job_id]

    async def count_job_applications(self, *, organization_id: str, job_id: str) -> int:
        self._job(organization_id, job_id)
        return self.applications.get(job_id, 0)

    async def increment_job_view_count(self, *, organization_id: str, job_id: str) -> dict[str, Any]:
        job = self._job(organization_id, job_id)
        job["view_count"] += 1
        return dict(job)

    async def transition_job_status(
        self,
        *,
        organization_id: str,
        job_id: str,
        expected_status: str,
        to_status: str,
        published_at: datetime | None,
    ) -> dict[str, Any] | None:
        job = self.jobs.get(job_id)
        if not job or job["organization_id"] != organization_id:
            return None
        if job_id in self.concurrent_status:
            job["status"] = self.concurrent_status.pop(job_id)
        if job["status"] != expected_status:
            return None
        job["status"] = to_status
        if job["published_at"] is None:
            job["published_at"] = published_at
        job["updated_at"] = datetime.now(timezone.utc)
        return dict(job)

    # Job templates

    def _template(self, organization_id: str, template_id: str) -> dict[str, Any]:
        template = self.templates.get(template_id)
        if not template or template["organization_id"] != organization_id:
            raise RepositoryNotFoundError("job template not found")
        return template

    async def get_job_template(self, *, organization_id: str, template_id: str) -> dict[str, Any]:
        return dict(self._template(organization_id, template_id))

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
        rows = [row for row in self.templates.values() if row["organization_id"] == organization_id]
        if active_only:
            rows = [row for row in rows if row["is_active"] or row["created_by_id"] == include_created_by]
        if is_active is not None:
            rows = [row for row in rows if row["is_active"] is is_active]
        if category:
            rows = [row for row in rows if row["category"] == category]
        if q:
            rows = [row for row in rows if q.lower() in row["name"].lower()]
        if created_by_id:
            rows = [row for row in rows if row["created_by_id"] == created_by_id]
        return [dict(row) for row in rows[offset : offset + limit]]

    async def create_job_template(
        self,
        *,
        organization_id: str,
        created_by_id: str,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        values = {key: fields[key] for key in JOB_TEMPLATE_MUTABLE_FIELDS if key in fields}
        self._check_unique_name(organization_id, values.get("name"))
        return self.add_template(organization_id=organization_id, created_by_id=created_by_id, **values)

    async def update_job_template(
        self,
        *,
        organization_id: str,
        template_id: str,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        template = self._template(organization_id, template_id)
        values = {key: fields[key] for key in JOB_TEMPLATE_MUTABLE_FIELDS if key in fields}
        if "name" in values and values["name"] != template["name"]:
            self._check_unique_name(organization_id, values["name"])
        template.update(values)
        template["updated_at"] = datetime.now(timezone.utc)
        return dict(template)

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
        template = self._template(organization_id, template_id)
        if is_default:
            for other in self.templates.values():
                if (
                    other["organization_id"] == organization_id
                    and other["category"] == template["category"]
                    and other["id"] != template_id
                ):
                    other["is_default"] = False
        template["is_default"] = is_default
        template["updated_at"] = datetime.now(timezone.utc)
        return dict(template)

    async def delete_job_template(
        self,
        *,
        organization_id: str,
        template_id: str,
        max_usage_count: int | None,
    ) -> bool:
        template = self.templates.get(template_id)
        if not template or template["organization_id"] != organization_id:
            return False
        if max_usage_count is not None and template["usage_count"] >= max_usage_count:
            return False
        del self.templates[template_id]
        return True

    async def create_job_from_template(
        self,
        *,
        organization_id: str,
        template_id: str,
        used_by_id: str,
        hiring_manager_id: str | None,
        overrides: dict[str, Any],
    ) -> dict[str, Any]:
        template = self._template(organization_id, template_id)
        if not template["is_active"]:
            raise RepositoryConflictError("job template is not active")
        template["usage_count"] += 1
        template["last_used_at"] = datetime.now(timezone.utc)
        template["last_used_by_id"] = used_by_id

        values = {
            job_field: template[template_field]
            for template_field, job_field in TEMPLATE_TO_JOB_FIELDS.items()
            if template[template_field] is not None
        }
        values.update({key: overrides[key] for key in JOB_MUTABLE_FIELDS if key in overrides})
        return self.add_job(
            organization_id=organization_id,
            hiring_manager_id=hiring_manager_id,
            job_template_id=template_id,
            **values,
        )

    async def duplicate_job_template(
        self,
        *,
        organization_id: str,
        template_id: str,
        created_by_id: str,
        name: str,
        is_active: bool,
    ) -> dict[str, Any]:
        source = self._template(organization_id, template_id)
        self._check_unique_name(organization_id, name)
        skipped = {
            "id",
            "organization_id",
            "created_by_id",
            "name",
            "is_active",
            "is_default",
            "usage_count",
            "created_at",
            "updated_at",
        }
        copied = {key: value for key, value in source.items() if key not in skipped}
        copied.update({"parent_template_id": template_id, "last_used_at": None, "last_used_by_id": None})
        return self.add_template(
            organization_id=organization_id,
            created_by_id=created_by_id,
            name=name,
            is_active=is_active,
            usage_count=0,
            **copied,
        )

    def _check_unique_name(self, organization_id: str, name: str | None) -> None:
        for template in self.templates.values():
            if template["organization_id"] == organization_id and template["name"] == name:
                raise RepositoryConflictError("job template name already exists in this organization")

    # Activities

    async def record_activity(self, **activity: Any) -> None:
        if self.fail_activity:
            raise RepositoryUnavailableError("activity not recorded")
        self.activities.append(activity)


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.events: list[tuple[str, str, str]] = []

    async def notify(self, event: str, actor: Actor, record: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("webhook down")
        self.events.append((event, actor.id, record["id"]))
