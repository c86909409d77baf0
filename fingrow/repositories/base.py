"""
Base repository.

Generic async data access shared by all repositories. Repositories flush
but never commit: the calling service owns the transaction.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.base import Base

# Generic type for model
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with generic CRUD operations.

    There is no delete: records referenced by orders or earnings are
    soft-disabled by their services instead.

    Type Parameters:
        ModelType: SQLAlchemy model class

    Example:
        class UserRepository(BaseRepository[User]):
            def __init__(self, session: AsyncSession):
                super().__init__(User, session)
    """

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> ModelType | None:
        """
        Get entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity or None if not found
        """
        return await self.session.get(self.model, id)

    async def get_by(
        self, **filters: Any
    ) -> ModelType | None:
        """
        Get single entity by filters.

        Args:
            **filters: Column filters

        Returns:
            First matching entity or None
        """
        stmt = select(self.model).filter_by(**filters).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_all(
        self,
        limit: int | None = None,
        offset: int | None = None,
        **filters: Any,
    ) -> list[ModelType]:
        """
        Find all entities matching filters, ordered by ID.

        Args:
            limit: Max number of results
            offset: Number of results to skip
            **filters: Column filters

        Returns:
            List of matching entities
        """
        stmt = select(self.model).filter_by(**filters).order_by(self.model.id)

        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by(
        self, **filters: Any
    ) -> list[ModelType]:
        """
        Find entities by filters.

        Args:
            **filters: Column filters

        Returns:
            List of matching entities
        """
        return await self.find_all(**filters)

    async def create(self, **data: Any) -> ModelType:
        """
        Create new entity.

        Args:
            **data: Entity data

        Returns:
            Created entity (flushed, ID assigned)
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(
        self, id: int, **data: Any
    ) -> ModelType | None:
        """
        Update entity by ID.

        Args:
            id: Entity ID
            **data: Updated data

        Returns:
            Updated entity or None if not found
        """
        entity = await self.get_by_id(id)
        if not entity:
            return None

        for key, value in data.items():
            setattr(entity, key, value)

        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def count(self, **filters: Any) -> int:
        """
        Count entities matching filters.

        Args:
            **filters: Column filters

        Returns:
            Count of matching entities
        """
        stmt = select(func.count()).select_from(self.model)

        if filters:
            stmt = stmt.filter_by(**filters)

        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def find_paginated(
        self,
        page: int = 1,
        per_page: int = 20,
        newest_first: bool = True,
        **filters: Any
    ) -> tuple[list[ModelType], int]:
        """
        Find entities with pagination.

        Args:
            page: Page number (1-indexed)
            per_page: Items per page
            newest_first: Order by ID descending
            **filters: Column filters (None values are ignored)

        Returns:
            Tuple of (items, total_count)
        """
        filters = {k: v for k, v in filters.items() if v is not None}

        total = await self.count(**filters)

        order = self.model.id.desc() if newest_first else self.model.id
        offset = (max(page, 1) - 1) * per_page
        stmt = (
            select(self.model)
            .filter_by(**filters)
            .order_by(order)
            .offset(offset)
            .limit(per_page)
        )

        result = await self.session.execute(stmt)
        items = list(result.scalars().all())

        return items, total
