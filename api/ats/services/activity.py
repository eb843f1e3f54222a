from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ats.core.auth import Actor
from ats.services.repository import RepositoryError

logger = logging.getLogger(__name__)


async def record_activity(
    repository: Any,
    *,
    action_key: str,
    entity_type: str,
    record: Mapping[str, Any],
    actor: Actor,
    payload: dict[str, Any] | None = None,
) -> None:
    try:
        await repository.record_activity(
            organization_id=actor.organization_id,
            actor_id=actor.id,
            action_key=action_key,
            entity_type=entity_type,
            entity_id=record.get("id"),
            payload=payload or {},
        )
    except RepositoryError:
        logger.warning(
            "activity not recorded action_key=%s organization_id=%s entity_id=%s",
            action_key,
            actor.organization_id,
            record.get("id"),
            exc_info=True,
        )
