"""Settings repository for runtime key/value state."""

from __future__ import annotations

from typing import Optional

from ...models.settings import AppSetting
from .base import SQLModelRepository


class SQLModelSettingsRepository(SQLModelRepository[AppSetting]):
    """Settings keyed by name; ``set`` inserts or overwrites."""

    model = AppSetting

    def get(self, key: str) -> Optional[AppSetting]:
        return self.get_by_id(key)

    def set(self, key: str, value: str, description: Optional[str] = None) -> AppSetting:
        if self.get_by_id(key) is None:
            return self.create(AppSetting(key=key, value=value, description=description))
        return self.update(key, value=value, description=description)


__all__ = ["SQLModelSettingsRepository"]
