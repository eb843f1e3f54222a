from __future__ import annotations

from collections.abc import Sequence


class ATSError(Exception):
    """Base class for expected, actor-facing failures."""


class InvalidTransitionError(ATSError):
    """Raised when an event is not legal from the job's current status."""

    def __init__(self, event: str, status: str) -> None:
        self.event = event
        self.status = status
        super().__init__(f"cannot {event} a job in status {status}")


class NotPublishableError(ATSError):
    """Raised when publish is attempted while required content is blank."""

    def __init__(self, missing_fields: Sequence[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(f"job is not publishable; missing: {', '.join(self.missing_fields)}")


class NotAuthorizedError(ATSError):
    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"not authorized to {action}")


class RecordNotFoundError(ATSError):
    """Raised for missing records and for records owned by another organization."""

    def __init__(self, entity: str) -> None:
        self.entity = entity
        super().__init__(f"{entity} not found")


class UsageGuardViolationError(ATSError):
    def __init__(self, usage_count: int, limit: int) -> None:
        self.usage_count = usage_count
        self.limit = limit
        super().__init__(f"template used {usage_count} times; only templates used fewer than {limit} times can be deleted")
