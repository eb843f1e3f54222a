from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol

import httpx

from ats.core.auth import Actor
from ats.core.config import get_settings

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify(self, event: str, actor: Actor, record: Mapping[str, Any]) -> None: ...


class LoggingNotifier:
    async def notify(self, event: str, actor: Actor, record: Mapping[str, Any]) -> None:
        logger.info(
            "notification event=%s organization_id=%s actor_id=%s record_id=%s",
            event,
            actor.organization_id,
            actor.id,
            record.get("id"),
        )


class WebhookNotifier:
    """Posts lifecycle events as JSON to a single webhook URL."""

    def __init__(self, url: str, timeout_seconds: float = 5.0) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds

    async def notify(self, event: str, actor: Actor, record: Mapping[str, Any]) -> None:
        payload = {
            "event": event,
            "occurred_at": datetime.now(timezone.utc).isoformat(),
            "organization_id": actor.organization_id,
            "actor": {"id": actor.id, "role": actor.role},
            "record": {
                "id": record.get("id"),
                "title": record.get("title"),
                "status": record.get("status"),
                "hiring_manager_id": record.get("hiring_manager_id"),
            },
        }
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()


async def dispatch_notification(
    notifier: Notifier,
    event: str,
    actor: Actor,
    record: Mapping[str, Any],
) -> bool:
    """Deliver a notification; a failure is logged and never re-raised."""
    try:
        await notifier.notify(event, actor, record)
    except Exception:
        logger.warning(
            "notification failed event=%s organization_id=%s record_id=%s",
            event,
            actor.organization_id,
            record.get("id"),
            exc_info=True,
        )
        return False
    return True


@lru_cache
def get_notifier() -> Notifier:
    settings = get_settings()
    if settings.notification_webhook_url:
        return WebhookNotifier(
            url=settings.notification_webhook_url,
            timeout_seconds=settings.notification_timeout_seconds,
        )
    return LoggingNotifier()
