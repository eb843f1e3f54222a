from __future__ import annotations

from typing import Callable

import pytest
from fastapi.testclient import TestClient

from ats.core.config import get_settings
from fakes import FakeRepository

Login = Callable[[str], dict[str, str]]


def test_create_template(client: TestClient, login: Login, repository: FakeRepository) -> None:
    response = client.post(
        "/job-templates",
        json={
            "name": "Sales lead",
            "category": "sales",
            "title": "Account Executive",
            "job_description": "Close deals.",
            "salary_min": 50000,
            "salary_max": 70000,
            "currency": "USD",
        },
        headers=login("hm2-a"),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["created_by_id"] == "hm2-a"
    assert body["usage_count"] == 0
    assert body["permissions"]["destroy"] is True
    assert len(repository.templates) == 1


def test_create_template_rejects_short_name(client: TestClient, login: Login) -> None:
    response = client.post("/job-templates", json={"name": "ab"}, headers=login("admin-a"))
    assert response.status_code == 422


def test_create_template_rejects_inverted_salary(client: TestClient, login: Login) -> None:
    response = client.post(
        "/job-templates",
        json={"name": "Inverted", "salary_min": 10, "salary_max": 5},
        headers=login("admin-a"),
    )
    assert response.status_code == 422


def test_duplicate_name_is_conflict(client: TestClient, login: Login, repository: FakeRepository) -> None:
    repository.add_template(name="Support base")
    response = client.post("/job-templates", json={"name": "Support base"}, headers=login("admin-a"))
    assert response.status_code == 409


def test_recruiter_cannot_create_template(client: TestClient, login: Login) -> None:
    response = client.post("/job-templates", json={"name": "Recruiting"}, headers=login("recruiter-a"))
    assert response.status_code == 403


def test_list_templates_for_interviewer_shows_active_only(
    client: TestClient,
    login: Login,
    repository: FakeRepository,
) -> None:
    active = repository.add_template(name="Active base")
    repository.add_template(name="Retired base", is_active=False)

    response = client.get("/job-templates", headers=login("interviewer-a"))
    assert response.status_code == 200
    assert [row["id"] for row in response.json()] == [active["id"]]


def test_destroy_guard_maps_to_conflict(client: TestClient, login: Login, repository: FakeRepository) -> None:
    template = repository.add_template(usage_count=5)
    response = client.delete(f"/job-templates/{template['id']}", headers=login("hm-a"))
    assert response.status_code == 409
    assert template["id"] in repository.templates


def test_destroy_limit_comes_from_settings(
    client: TestClient,
    login: Login,
    repository: FakeRepository,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ATS_TEMPLATE_DESTROY_USAGE_LIMIT", "10")
    get_settings.cache_clear()
    template = repository.add_template(usage_count=7)
    response = client.delete(f"/job-templates/{template['id']}", headers=login("hm-a"))
    assert response.status_code == 204


def test_admin_destroys_heavily_used_template(client: TestClient, login: Login, repository: FakeRepository) -> None:
    template = repository.add_template(usage_count=12)
    response = client.delete(f"/job-templates/{template['id']}", headers=login("admin-a"))
    assert response.status_code == 204
    assert template["id"] not in repository.templates


def test_use_template_creates_job(client: TestClient, login: Login, repository: FakeRepository) -> None:
    template = repository.add_template()
    response = client.post(
        f"/job-templates/{template['id']}/use",
        json={"title": "Senior Software Engineer"},
        headers=login("hm-a"),
    )
    assert response.status_code == 201
    job = response.json()
    assert job["status"] == "draft"
    assert job["title"] == "Senior Software Engineer"
    assert job["job_template_id"] == template["id"]
    assert repository.templates[template["id"]]["usage_count"] == 1


def test_use_template_without_body(client: TestClient, login: Login, repository: FakeRepository) -> None:
    template = repository.add_template()
    response = client.post(f"/job-templates/{template['id']}/use", headers=login("admin-a"))
    assert response.status_code == 201
    assert response.json()["title"] == "Software Engineer"


def test_use_inactive_template_is_forbidden(client: TestClient, login: Login, repository: FakeRepository) -> None:
    template = repository.add_template(is_active=False)
    response = client.post(f"/job-templates/{template['id']}/use", headers=login("admin-a"))
    assert response.status_code == 403


def test_duplicate_template(client: TestClient, login: Login, repository: FakeRepository) -> None:
    template = repository.add_template(usage_count=3)
    response = client.post(f"/job-templates/{template['id']}/duplicate", headers=login("hm2-a"))
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Copy of Engineering base"
    assert body["is_active"] is False
    assert body["parent_template_id"] == template["id"]
    assert body["usage_count"] == 0


def test_duplicate_default_active_from_settings(
    client: TestClient,
    login: Login,
    repository: FakeRepository,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ATS_DUPLICATE_TEMPLATE_ACTIVE", "true")
    get_settings.cache_clear()
    template = repository.add_template()
    response = client.post(f"/job-templates/{template['id']}/duplicate", headers=login("admin-a"))
    assert response.status_code == 201
    assert response.json()["is_active"] is True


def test_activate_deactivate(client: TestClient, login: Login, repository: FakeRepository) -> None:
    template = repository.add_template()
    headers = login("hm-a")

    deactivated = client.patch(f"/job-templates/{template['id']}/deactivate", headers=headers)
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False

    activated = client.patch(f"/job-templates/{template['id']}/activate", headers=headers)
    assert activated.status_code == 200
    assert activated.json()["is_active"] is True


def test_patch_template_by_non_creator_is_forbidden(
    client: TestClient,
    login: Login,
    repository: FakeRepository,
) -> None:
    template = repository.add_template()
    response = client.patch(f"/job-templates/{template['id']}", json={"name": "Renamed"}, headers=login("hm2-a"))
    assert response.status_code == 403


def test_other_tenant_template_is_not_found(client: TestClient, login: Login, repository: FakeRepository) -> None:
    template = repository.add_template()
    response = client.get(f"/job-templates/{template['id']}", headers=login("admin-b"))
    assert response.status_code == 404


def test_make_and_remove_default(client: TestClient, login: Login, repository: FakeRepository) -> None:
    previous = repository.add_template(name="Old default", is_default=True)
    template = repository.add_template(name="New default")
    headers = login("hm-a")

    made = client.patch(f"/job-templates/{template['id']}/make-default", headers=headers)
    assert made.status_code == 200
    assert made.json()["is_default"] is True
    assert repository.templates[previous["id"]]["is_default"] is False

    removed = client.patch(f"/job-templates/{template['id']}/remove-default", headers=headers)
    assert removed.status_code == 200
    assert removed.json()["is_default"] is False

    forbidden = client.patch(f"/job-templates/{template['id']}/make-default", headers=login("recruiter-a"))
    assert forbidden.status_code == 403
