"""Cache manager facade for the device replica."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from notico.cli.cache.models import (
    CachedFolder,
    CachedItem,
    EntityKind,
    ItemType,
    OutboxAction,
)
from notico.cli.cache.repositories import (
    FolderRepository,
    ItemRepository,
    OutboxRepository,
    SyncStateRepository,
    open_cache_session,
)


def normalize_item_type(item_type: ItemType | str | None) -> ItemType | None:
    """Turn a type filter into an ItemType, treating "all" as no filter."""
    if item_type is None or isinstance(item_type, ItemType):
        return item_type
    if item_type == "all":
        return None
    return ItemType(item_type)


def split_terms(search: str | list[str] | None) -> list[str]:
    """Accept search terms as a list or as a whitespace-separated query."""
    if search is None:
        return []
    if isinstance(search, str):
        return search.split()
    return [term for term in search if term]


class CacheManager:
    """Facade over the Local Store, the Outbox and the sync watermark.

    All repositories share one session so that an entity write and the
    outbox entry describing it are committed together. Every method here is
    synchronous and never touches the network.
    """

    def __init__(self, session: Session | None = None):
        """Initialize the cache manager.

        Args:
            session: Session to use. If None, opens one on the cache database.
        """
        self.session = session or open_cache_session()
        self.items = ItemRepository(self.session)
        self.folders = FolderRepository(self.session)
        self.outbox = OutboxRepository(self.session)
        self.sync_state = SyncStateRepository(self.session)

    def commit(self) -> None:
        """Commit pending writes."""
        self.session.commit()

    def rollback(self) -> None:
        """Discard pending writes."""
        self.session.rollback()

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()

    # Item operations
    def list_items(
        self,
        item_type: ItemType | str | None = None,
        folder_id: str | None = None,
        search_terms: str | list[str] | None = None,
    ) -> list[CachedItem]:
        """List live items, pinned first then most recently updated.

        Args:
            item_type: Type filter; None or "all" disables it
            folder_id: Folder client id filter
            search_terms: Terms that must all occur in title, content, tags
                or url

        Returns:
            Matching items
        """
        return self.items.list_live(
            item_type=normalize_item_type(item_type),
            folder_id=folder_id,
            search_terms=split_terms(search_terms),
        )

    def get(self, client_id: str) -> CachedItem | None:
        """Get an item by client id."""
        return self.items.get_by_client_id(client_id)

    def upsert(self, client_id: str, fields: dict[str, Any]) -> CachedItem:
        """Insert or fully overwrite an item."""
        return self.items.upsert(client_id, fields)

    def patch(self, client_id: str, fields: dict[str, Any]) -> CachedItem | None:
        """Overwrite only the given item fields and bump updated_at."""
        return self.items.patch(client_id, {**fields, "updated_at": datetime.now(UTC)})

    def tombstone(self, client_id: str) -> CachedItem | None:
        """Mark an item deleted."""
        return self.items.tombstone(client_id)

    # Folder operations
    def list_folders(self) -> list[CachedFolder]:
        """List live folders sorted by name."""
        return self.folders.list_live()

    def get_folder(self, client_id: str) -> CachedFolder | None:
        """Get a folder by client id."""
        return self.folders.get_by_client_id(client_id)

    def find_folder(self, ref: str) -> CachedFolder | None:
        """Find a live folder by client id or by name."""
        folder = self.folders.get_by_client_id(ref)
        if folder is not None and not folder.deleted:
            return folder
        return self.folders.get_by_name(ref)

    def upsert_folder(self, client_id: str, fields: dict[str, Any]) -> CachedFolder:
        """Insert or fully overwrite a folder."""
        return self.folders.upsert(client_id, fields)

    def patch_folder(self, client_id: str, fields: dict[str, Any]) -> CachedFolder | None:
        """Overwrite only the given folder fields and bump updated_at."""
        return self.folders.patch(client_id, {**fields, "updated_at": datetime.now(UTC)})

    def tombstone_folder(self, client_id: str) -> CachedFolder | None:
        """Mark a folder deleted along with the live items it holds.

        The server applies the authoritative cascade when the folder delete
        is synced, so items it already knows get no outbox entry. An item
        whose create is still queued gets an item delete queued too; the two
        cancel out and the item never reaches the server.
        """
        now = datetime.now(UTC)
        folder = self.folders.tombstone(client_id, when=now)
        if folder is None:
            return None
        for item in self.items.get_live_in_folder(client_id):
            item.deleted = True
            item.updated_at = now
            if self.outbox.has_pending(item.client_id, OutboxAction.CREATE):
                self.outbox.enqueue(EntityKind.ITEM, OutboxAction.DELETE, item.client_id)
        self.session.flush()
        return folder
