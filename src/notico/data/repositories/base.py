"""Base repositories shared by the server's entity repositories."""

from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from notico.data.models.base import BaseModel, utcnow

ModelType = TypeVar("ModelType", bound=BaseModel)

# Fields a client may never overwrite through an update payload
PROTECTED_FIELDS = frozenset({"id", "client_id", "created_at", "updated_at"})


class BaseRepository(Generic[ModelType]):
    """
    Generic repository for lookups on SQLAlchemy models.

    Args:
        model: The SQLAlchemy model class to operate on.
        session: The async database session.
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        """Initialize repository with model and session."""
        self.model = model
        self.session = session

    async def get_by_id(self, id_: int) -> ModelType | None:
        """
        Get a model instance by ID.

        Args:
            id_: The ID of the instance to retrieve.

        Returns:
            The model instance if found, None otherwise.
        """
        result = await self.session.execute(select(self.model).where(self.model.id == id_))
        return result.scalar_one_or_none()

    def apply_fields(self, instance: ModelType, fields: dict[str, Any]) -> None:
        """Copy known, writable fields onto an instance without committing."""
        for key, value in fields.items():
            if key in PROTECTED_FIELDS:
                continue
            if hasattr(instance, key):
                setattr(instance, key, value)


SyncedType = TypeVar("SyncedType", bound=BaseModel)


class SyncedRepository(BaseRepository[SyncedType]):
    """Repository for entities keyed by a client-generated identifier.

    Methods here never commit; callers own the transaction so that a batch
    can scope each operation to its own savepoint. Every write stamps
    ``updated_at``, even when no column value changes, so the write shows up
    in the next pull.
    """

    async def get_by_client_id(self, client_id: str) -> SyncedType | None:
        """Fetch an entity by its client id, tombstones included."""
        model: Any = self.model
        result = await self.session.execute(
            select(self.model).where(model.client_id == client_id)
        )
        return result.scalar_one_or_none()

    async def add(self, **kwargs: Any) -> SyncedType:
        """Insert a new entity and flush it to obtain its server id."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def patch(self, instance: SyncedType, fields: dict[str, Any]) -> SyncedType:
        """Apply a partial update to an entity and flush it."""
        self.apply_fields(instance, fields)
        instance.updated_at = utcnow()
        await self.session.flush()
        return instance

    async def tombstone(self, instance: SyncedType) -> SyncedType:
        """Soft-delete an entity."""
        entity: Any = instance
        entity.deleted = True
        entity.updated_at = utcnow()
        await self.session.flush()
        return instance

    async def changed_since(self, since: datetime | None) -> list[SyncedType]:
        """Return every entity mutated at or after ``since``, tombstones included.

        Args:
            since: Watermark from the previous pull. None returns everything.

        Returns:
            Entities ordered by last update.
        """
        model: Any = self.model
        stmt = select(self.model)
        if since is not None:
            stmt = stmt.where(model.updated_at >= since)
        stmt = stmt.order_by(model.updated_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
