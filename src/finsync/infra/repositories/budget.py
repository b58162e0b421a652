"""SQLModel implementation of Budget repository."""

from __future__ import annotations

from ...models.budget import Budget
from .base import SQLModelRepository


class SQLModelBudgetRepository(SQLModelRepository[Budget]):
    model = Budget
