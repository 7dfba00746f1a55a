"""Minimal generic repository for SQLAlchemy models.

Provides basic CRUD operations with explicit session passing.
For complex queries, use the session directly - this is a convenience, not a cage.

Example:
    class TemplateModelRepository(BaseRepository[TemplateModel]):
        async def find_by_key(self, session: AsyncSession, key: str) -> TemplateModel | None:
            stmt = select(TemplateModel).where(TemplateModel.template_key == key)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import delete as sql_delete
from sqlalchemy import select

from notification_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Generic repository for SQLAlchemy models.

    Args:
        model: SQLAlchemy model class (e.g., NotificationModel)
    """

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        """Get entity by primary key."""
        instance = await session.get(self.model, id)
        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def list_where(
        self,
        session: AsyncSession,
        *criteria: Any,
        order_by: Iterable[Any] = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[T]:
        """List entities matching criteria."""
        stmt = select(self.model).where(*criteria).order_by(*order_by).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        items = result.scalars().all()
        self._lazy.debug(lambda: f"db.list: {self.model.__name__} -> {len(items)} items")
        return items

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Add a new entity and flush so generated values are populated."""
        session.add(instance)
        await session.flush()
        self._lazy.debug(lambda: f"db.create: {self.model.__name__}")
        return instance

    async def delete_where(self, session: AsyncSession, *criteria: Any) -> int:
        """Bulk delete entities matching criteria, returning the row count."""
        result = await session.execute(sql_delete(self.model).where(*criteria))
        count = result.rowcount or 0  # type: ignore[attr-defined]
        self._lazy.debug(lambda: f"db.delete_where: {self.model.__name__} -> {count} rows")
        return count
