"""Item service for single-entity operations."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from notico.data.models.base import as_utc
from notico.data.models.item import Item, ItemType
from notico.data.repositories.folder import FolderRepository
from notico.data.repositories.item import ItemRepository
from notico.server.schemas.item import ItemCreate, ItemResponse, ItemUpdate
from notico.server.services.folder import tombstone_if_folder_deleted

logger = logging.getLogger(__name__)


def item_to_response(item: Item) -> ItemResponse:
    """Convert an Item row into its wire representation."""
    return ItemResponse(
        id=str(item.id),
        client_id=item.client_id,
        type=item.type,
        title=item.title,
        content=item.content or "",
        url=item.url,
        reminder_date=as_utc(item.reminder_date) if item.reminder_date else None,
        reminder_completed=item.reminder_completed,
        tags=list(item.tags or []),
        pinned=item.pinned,
        color=item.color,
        folder_id=item.folder_id,
        deleted=item.deleted,
        created_at=as_utc(item.created_at),
        updated_at=as_utc(item.updated_at),
    )


def split_search(search: str | None) -> list[str]:
    """Split a free-text query into lowercase terms."""
    if not search:
        return []
    return [term for term in search.lower().split() if term]


class ItemService:
    """Service for item CRUD against the authoritative store."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.items = ItemRepository(session)
        self.folders = FolderRepository(session)

    async def list_items(
        self,
        item_type: str | None = None,
        search: str | None = None,
        since: datetime | None = None,
    ) -> list[Item]:
        """List live items with optional type, search and since filters."""
        type_filter = None
        if item_type and item_type != "all":
            type_filter = ItemType(item_type)
        return await self.items.list_live(
            item_type=type_filter,
            terms=split_search(search),
            since=as_utc(since) if since else None,
        )

    async def get_item(self, item_id: int) -> Item | None:
        """Fetch an item by server id."""
        return await self.items.get_by_id(item_id)

    async def create_item(self, payload: ItemCreate) -> tuple[Item, bool]:
        """Create an item unless its client id is already stored.

        Returns:
            Tuple of (item, created). ``created`` is False when an item with
            the same client id already existed; that item is returned as-is.
        """
        existing = await self.items.get_by_client_id(payload.client_id)
        if existing is not None:
            return existing, False

        item = await self.items.add(**payload.model_dump())
        await tombstone_if_folder_deleted(self.folders, self.items, item)
        await self.session.commit()
        logger.info("Created item %s", item.client_id)
        return item, True

    async def update_item(self, item_id: int, payload: ItemUpdate) -> Item | None:
        """Apply a partial update by server id."""
        item = await self.items.get_by_id(item_id)
        if item is None:
            return None
        await self.items.patch(item, payload.model_dump(exclude_unset=True))
        await tombstone_if_folder_deleted(self.folders, self.items, item)
        await self.session.commit()
        return item

    async def delete_item(self, item_id: int) -> bool:
        """Soft-delete an item by server id."""
        item = await self.items.get_by_id(item_id)
        if item is None:
            return False
        await self.items.tombstone(item)
        await self.session.commit()
        logger.info("Deleted item %s", item.client_id)
        return True
