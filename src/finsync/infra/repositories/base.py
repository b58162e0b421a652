"""Shared CRUD plumbing for the SQLModel repositories.

Repositories receive a ``session_factory`` returning a session context
manager. Outside a write scope every call is its own transaction; inside
``SQLModelStore.write_scope`` the factory hands back the scope's session so
all calls commit or roll back together. Methods therefore flush, never
commit.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, ContextManager, Generic, Optional, TypeVar

from sqlmodel import Session, SQLModel, select

from ...errors import MissingEntityError

ModelT = TypeVar("ModelT", bound=SQLModel)
SessionFactory = Callable[[], ContextManager[Session]]


class SQLModelRepository(Generic[ModelT]):
    """find / list / create / update / delete over one table."""

    model: type[ModelT]

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, entity_id: Any) -> Optional[ModelT]:
        with self.session_factory() as session:
            return session.get(self.model, entity_id)

    def list_where(self, *criteria: Any, order_by: Any = None) -> list[ModelT]:
        """List rows matching every SQL criterion, optionally ordered."""
        with self.session_factory() as session:
            statement = select(self.model)
            if criteria:
                statement = statement.where(*criteria)
            if order_by is not None:
                statement = statement.order_by(order_by)
            return list(session.exec(statement).all())

    def list_all(self) -> list[ModelT]:
        return self.list_where()

    def create(self, entity: ModelT) -> ModelT:
        with self.session_factory() as session:
            session.add(entity)
            session.flush()
            session.refresh(entity)
            return entity

    def update(self, entity_id: Any, **patch: Any) -> ModelT:
        """Apply ``patch`` to the stored row and return it.

        Raises:
            MissingEntityError: no row with ``entity_id``
            ValueError: ``patch`` names a column the model does not have
        """
        unknown = set(patch) - set(self.model.model_fields)
        if unknown:
            raise ValueError(f"{self.model.__name__} has no fields {sorted(unknown)}")
        with self.session_factory() as session:
            entity = session.get(self.model, entity_id)
            if entity is None:
                raise MissingEntityError(self.model.__name__, entity_id)
            for key, value in patch.items():
                setattr(entity, key, value)
            if "updated_at" in self.model.model_fields and "updated_at" not in patch:
                entity.updated_at = datetime.now(timezone.utc)
            session.add(entity)
            session.flush()
            session.refresh(entity)
            return entity

    def delete(self, entity_id: Any) -> Optional[ModelT]:
        """Delete a row by id and return the removed entity (None if absent)."""
        with self.session_factory() as session:
            entity = session.get(self.model, entity_id)
            if entity is not None:
                session.delete(entity)
                session.flush()
            return entity
