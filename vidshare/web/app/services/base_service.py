"""
Common base for request-scoped services.
"""
import uuid
from typing import Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError

ModelT = TypeVar("ModelT")


class BaseService:
    """Holds the request's database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_or_404(self, model: Type[ModelT], entity_id: uuid.UUID,
                          message: Optional[str] = None) -> ModelT:
        entity = await self.db.get(model, entity_id)
        if entity is None:
            raise NotFoundError(message or f"{model.__name__} not found")
        return entity
