"""Error taxonomy for the reconciliation engine."""

from __future__ import annotations

from typing import Any


class FinSyncError(Exception):
    """Base class for finsync failures."""


class RecurrenceConfigurationError(FinSyncError):
    """A recurrence rule cannot produce a valid next occurrence.

    Fatal for the schedule that raised it: the schedule stays unadvanced until
    the user corrects it.
    """

    def __init__(self, message: str, *, schedule_id: int | None = None) -> None:
        super().__init__(message)
        self.schedule_id = schedule_id


class MissingEntityError(FinSyncError, LookupError):
    """An operation referenced an entity that no longer exists."""

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


__all__ = ["FinSyncError", "MissingEntityError", "RecurrenceConfigurationError"]
