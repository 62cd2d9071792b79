"""Repository pattern for local replica operations.

Repository methods flush but never commit; the CacheManager facade decides
where a unit of work ends so that an entity write and its outbox entry land
together.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from notico.cli.cache.database import get_cache_session, init_cache_db
from notico.cli.cache.models import (
    CachedFolder,
    CachedItem,
    EntityKind,
    ItemType,
    OutboxAction,
    OutboxEntry,
    ReplicaMixin,
    SyncState,
)

T = TypeVar("T", bound=ReplicaMixin)

WATERMARK_KEY = "last_sync_at"


def open_cache_session() -> Session:
    """Open a session on the cache database, creating tables on first use."""
    init_cache_db()
    return get_cache_session()


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class CacheRepository(Generic[T]):
    """Base repository for replicated entities keyed by client id."""

    # Columns an upsert never touches
    _identity_columns = frozenset({"id", "client_id"})

    def __init__(self, model_class: type[T], session: Session) -> None:
        """Initialize the cache repository.

        Args:
            model_class: The SQLAlchemy model class for this repository
            session: Session shared with the other repositories
        """
        self.model_class = model_class
        self.session = session

    def get_by_client_id(self, client_id: str) -> T | None:
        """Get an entity by client id, tombstones included.

        Args:
            client_id: The client id to look up

        Returns:
            The entity or None if not found
        """
        stmt = select(self.model_class).where(self.model_class.client_id == client_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def upsert(self, client_id: str, fields: dict[str, Any]) -> T:
        """Insert an entity, or overwrite every field of the existing one.

        Fields missing from ``fields`` are reset to their column defaults
        rather than kept, so the stored row mirrors ``fields`` exactly.

        Args:
            client_id: The entity's client id
            fields: Complete set of entity fields

        Returns:
            The stored entity
        """
        entity = self.get_by_client_id(client_id)
        if entity is None:
            entity = self.model_class(client_id=client_id)
            self.session.add(entity)

        for column in self.model_class.__table__.columns:  # type: ignore[attr-defined]
            if column.key in self._identity_columns:
                continue
            if column.key in fields:
                value = fields[column.key]
            elif column.key in ("created_at", "updated_at"):
                value = getattr(entity, column.key) or datetime.now(UTC)
            elif column.default is not None and column.default.is_scalar:
                value = column.default.arg
            else:
                value = None
            setattr(entity, column.key, value)

        self.session.flush()
        return entity

    def patch(self, client_id: str, fields: dict[str, Any]) -> T | None:
        """Overwrite only the supplied fields of an existing entity."""
        entity = self.get_by_client_id(client_id)
        if entity is None:
            return None
        for key, value in fields.items():
            if key in self._identity_columns:
                continue
            if hasattr(entity, key):
                setattr(entity, key, value)
        self.session.flush()
        return entity

    def tombstone(self, client_id: str, when: datetime | None = None) -> T | None:
        """Mark an entity deleted and bump its updated_at."""
        entity = self.get_by_client_id(client_id)
        if entity is None:
            return None
        entity.deleted = True
        entity.updated_at = when or datetime.now(UTC)
        self.session.flush()
        return entity


class ItemRepository(CacheRepository[CachedItem]):
    """Repository for cached items."""

    def __init__(self, session: Session) -> None:
        """Initialize the item repository."""
        super().__init__(CachedItem, session)

    def list_live(
        self,
        item_type: ItemType | None = None,
        folder_id: str | None = None,
        search_terms: list[str] | None = None,
    ) -> list[CachedItem]:
        """List non-deleted items matching every supplied predicate.

        Args:
            item_type: Restrict to one item type
            folder_id: Restrict to items in this folder (by client id)
            search_terms: Every term must occur, case-insensitively, in the
                item's title, content, tags or url

        Returns:
            Matching items, pinned first then by updated_at descending
        """
        stmt = select(CachedItem).where(CachedItem.deleted.is_(False))
        if item_type is not None:
            stmt = stmt.where(CachedItem.type == item_type)
        if folder_id is not None:
            stmt = stmt.where(CachedItem.folder_id == folder_id)
        stmt = stmt.order_by(CachedItem.pinned.desc(), CachedItem.updated_at.desc())
        items = list(self.session.execute(stmt).scalars().all())

        terms = [term.lower() for term in search_terms or [] if term]
        if terms:
            items = [
                item
                for item in items
                if all(term in item.searchable_text() for term in terms)
            ]
        return items

    def get_live_in_folder(self, folder_id: str) -> list[CachedItem]:
        """Get non-deleted items that reference a folder."""
        stmt = select(CachedItem).where(
            CachedItem.folder_id == folder_id, CachedItem.deleted.is_(False)
        )
        return list(self.session.execute(stmt).scalars().all())


class FolderRepository(CacheRepository[CachedFolder]):
    """Repository for cached folders."""

    def __init__(self, session: Session) -> None:
        """Initialize the folder repository."""
        super().__init__(CachedFolder, session)

    def list_live(self) -> list[CachedFolder]:
        """List non-deleted folders by name."""
        stmt = (
            select(CachedFolder)
            .where(CachedFolder.deleted.is_(False))
            .order_by(CachedFolder.name)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_by_name(self, name: str) -> CachedFolder | None:
        """Get a live folder by name.

        Args:
            name: The folder name to look up

        Returns:
            The first live folder with that name, or None
        """
        stmt = select(CachedFolder).where(
            CachedFolder.name == name, CachedFolder.deleted.is_(False)
        )
        return self.session.execute(stmt).scalars().first()


class OutboxRepository:
    """Append-only log of mutations awaiting transmission."""

    def __init__(self, session: Session) -> None:
        """Initialize the outbox repository."""
        self.session = session

    def _next_queued_at(self) -> datetime:
        """Return a queued_at strictly greater than every existing entry."""
        now = datetime.now(UTC)
        latest = self.session.execute(select(func.max(OutboxEntry.queued_at))).scalar()
        if latest is not None:
            floor = as_utc(latest) + timedelta(microseconds=1)
            if now < floor:
                return floor
        return now

    def enqueue(
        self,
        entity: EntityKind,
        action: OutboxAction,
        client_id: str,
        data: dict[str, Any] | None = None,
        attempts: int = 0,
    ) -> OutboxEntry:
        """Append an entry with a monotonically increasing queued_at.

        Args:
            entity: Item or folder
            action: create, update or delete
            client_id: The entity's client id
            data: Entity fields in wire format, if any
            attempts: Earlier transmissions the server rejected

        Returns:
            The new outbox entry
        """
        entry = OutboxEntry(
            entity=entity,
            action=action,
            client_id=client_id,
            queued_at=self._next_queued_at(),
            attempts=attempts,
        )
        entry.set_data_dict(data)
        self.session.add(entry)
        self.session.flush()
        return entry

    def drain_ordered(self) -> list[OutboxEntry]:
        """Return every entry oldest-first without removing any."""
        stmt = select(OutboxEntry).order_by(OutboxEntry.queued_at, OutboxEntry.id)
        return list(self.session.execute(stmt).scalars().all())

    def clear(self, up_to: int | None = None) -> int:
        """Remove entries.

        Args:
            up_to: Only remove entries whose sequence is at most this value.
                None removes everything.

        Returns:
            Number of entries removed
        """
        stmt = delete(OutboxEntry)
        if up_to is not None:
            stmt = stmt.where(OutboxEntry.id <= up_to)
        result = self.session.execute(stmt)
        self.session.flush()
        return int(result.rowcount or 0)

    def has_pending(self, client_id: str, action: OutboxAction | None = None) -> bool:
        """Check whether any entry, or any entry of one action, targets a client id."""
        stmt = select(func.count()).select_from(OutboxEntry).where(
            OutboxEntry.client_id == client_id
        )
        if action is not None:
            stmt = stmt.where(OutboxEntry.action == action)
        return bool(self.session.execute(stmt).scalar())

    def pending_count(self) -> int:
        """Count all queued entries."""
        stmt = select(func.count()).select_from(OutboxEntry)
        return int(self.session.execute(stmt).scalar() or 0)


class SyncStateRepository:
    """Durable storage for the pull watermark."""

    def __init__(self, session: Session) -> None:
        """Initialize the sync state repository."""
        self.session = session

    def get_watermark(self) -> str | None:
        """Return the server timestamp of the last completed pull, if any."""
        state = self.session.get(SyncState, WATERMARK_KEY)
        return state.value if state else None

    def set_watermark(self, value: str) -> None:
        """Store the watermark to use as the lower bound of the next pull."""
        state = self.session.get(SyncState, WATERMARK_KEY)
        if state is None:
            state = SyncState(key=WATERMARK_KEY)
            self.session.add(state)
        state.value = value
        self.session.flush()
