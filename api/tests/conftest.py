from __future__ import annotations

import os
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("ATS_OTEL_ENABLED", "false")

import ats.core.security as security  # noqa: E402
from ats.core.config import get_settings  # noqa: E402
from ats.main import app  # noqa: E402
from ats.services.notifications import get_notifier  # noqa: E402
from ats.services.repository import get_repository  # noqa: E402
from fakes import FakeRepository, RecordingNotifier  # noqa: E402


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(
    monkeypatch: pytest.MonkeyPatch,
    repository: FakeRepository,
    notifier: RecordingNotifier,
) -> TestClient:
    monkeypatch.setenv("ATS_SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("ATS_SUPABASE_ANON_KEY", "anon-key")
    get_settings.cache_clear()

    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    get_settings.cache_clear()


@pytest.fixture
def login(monkeypatch: pytest.MonkeyPatch) -> Callable[[str], dict[str, str]]:
    def _login(user_id: str) -> dict[str, str]:
        async def _fake_fetch(**_: Any) -> dict[str, Any]:
            return {"id": user_id, "email": f"{user_id}@example.com"}

        monkeypatch.setattr(security, "_fetch_supabase_user", _fake_fetch)
        return {"Authorization": "Bearer token"}

    return _login
