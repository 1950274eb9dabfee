"""
Base Repository

Shared plumbing for the model repositories. Writes go through
`create`/`update`, which commit; callers that need several writes in
one transaction stage them with `add` and commit themselves.
"""

from typing import Any, Generic, Optional, Type, TypeVar
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.db.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Common lookups and writes for a single model class."""

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        return await self.db.get(self.model, id)

    # -----------------------------
    # Writes
    # -----------------------------
    async def add(self, instance: ModelType) -> ModelType:
        """Stage an instance and flush it so defaults and ids are populated."""
        self.db.add(instance)
        await self.db.flush()
        return instance

    async def create(self, **fields) -> ModelType:
        """Insert one row and commit."""
        instance = await self.add(self.model(**fields))
        await self.db.commit()
        return instance

    async def update(self, id: Any, **fields) -> Optional[ModelType]:
        """Set the given attributes on one row and commit; None if absent."""
        instance = await self.get_by_id(id)
        if instance is None:
            return None

        for name, value in fields.items():
            setattr(instance, name, value)

        await self.db.commit()
        return instance
