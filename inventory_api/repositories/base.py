"""
Base Repository Pattern
Generic read/write helpers shared by the permission store repositories
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from inventory_api.core.database import Base

logger = structlog.get_logger()

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """
    Base repository with generic database operations.

    Repositories never commit; the calling service owns the transaction so
    that audit rows and cache invalidation line up with the commit.
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        if not filters:
            return query
        for field, value in filters.items():
            if value is None or not hasattr(self.model, field):
                continue
            column = getattr(self.model, field)
            if isinstance(value, list):
                query = query.where(column.in_(value))
            elif isinstance(value, dict) and "like" in value:
                query = query.where(column.ilike(f"%{value['like']}%"))
            else:
                query = query.where(column == value)
        return query

    async def get(self, db: AsyncSession, id: int, *, refresh: bool = False) -> Optional[ModelType]:
        """
        Get a single record by ID

        Args:
            db: Database session
            id: Record ID
            refresh: Overwrite any identity-map copy with fresh column and
                eager-loaded values

        Returns:
            Model instance or None
        """
        query = select(self.model).where(self.model.id == id)
        if refresh:
            query = query.execution_options(populate_existing=True)

        result = await db.execute(query)
        record = result.unique().scalar_one_or_none()

        if record is None:
            logger.debug("Record not found", model=self.model.__name__, id=id)
        return record

    async def get_many(self, db: AsyncSession, ids: List[int]) -> List[ModelType]:
        if not ids:
            return []
        result = await db.execute(select(self.model).where(self.model.id.in_(ids)))
        return list(result.unique().scalars().all())

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[ModelType]:
        """
        Get multiple records with pagination and filtering

        ``order_by`` names a column; a leading ``-`` sorts descending.
        """
        query = self._apply_filters(select(self.model), filters)

        if order_by:
            field = order_by.lstrip("-")
            if hasattr(self.model, field):
                column = getattr(self.model, field)
                query = query.order_by(column.desc() if order_by.startswith("-") else column)
        elif hasattr(self.model, "created_at"):
            query = query.order_by(self.model.created_at.desc())

        query = query.offset(skip).limit(limit)
        result = await db.execute(query)
        records = list(result.unique().scalars().all())

        logger.debug(
            "Multiple records retrieved",
            model=self.model.__name__,
            count=len(records),
            skip=skip,
            limit=limit,
        )
        return records

    async def count(self, db: AsyncSession, *, filters: Optional[Dict[str, Any]] = None) -> int:
        query = self._apply_filters(select(func.count(self.model.id)), filters)
        result = await db.execute(query)
        return result.scalar() or 0

    async def add(self, db: AsyncSession, db_obj: ModelType) -> ModelType:
        """Stage a new record and flush so its primary key is assigned"""
        db.add(db_obj)
        await db.flush()
        logger.debug("Record staged", model=self.model.__name__, id=db_obj.id)
        return db_obj

    async def delete(self, db: AsyncSession, db_obj: ModelType) -> None:
        await db.delete(db_obj)
        await db.flush()
        logger.debug("Record deleted", model=self.model.__name__, id=db_obj.id)
