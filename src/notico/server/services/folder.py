"""Folder service, including the item cascade on folder delete."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from notico.data.models.base import as_utc
from notico.data.models.folder import Folder
from notico.data.models.item import Item
from notico.data.repositories.folder import FolderRepository
from notico.data.repositories.item import ItemRepository
from notico.server.schemas.folder import FolderCreate, FolderResponse, FolderUpdate

logger = logging.getLogger(__name__)


def folder_to_response(folder: Folder) -> FolderResponse:
    """Convert a Folder row into its wire representation."""
    return FolderResponse(
        id=str(folder.id),
        client_id=folder.client_id,
        name=folder.name,
        color=folder.color,
        deleted=folder.deleted,
        created_at=as_utc(folder.created_at),
        updated_at=as_utc(folder.updated_at),
    )


async def cascade_delete_folder(
    folders: FolderRepository, items: ItemRepository, folder: Folder
) -> int:
    """Tombstone a folder and every live item that references it.

    Both writes happen in the caller's transaction, so they commit or roll
    back together.

    Returns:
        Number of items tombstoned by the cascade.
    """
    cascaded = await items.tombstone_in_folder(folder.client_id)
    await folders.tombstone(folder)
    logger.info("Deleted folder %s (cascaded to %d items)", folder.client_id, cascaded)
    return cascaded


async def tombstone_if_folder_deleted(
    folders: FolderRepository, items: ItemRepository, item: Item
) -> bool:
    """Tombstone a live item written into a folder that is already deleted.

    Keeps the cascade invariant for item writes that arrive after the
    folder delete, such as an edit moving the item into that folder.

    Returns:
        True if the item was tombstoned.
    """
    if item.deleted or item.folder_id is None:
        return False
    folder = await folders.get_by_client_id(item.folder_id)
    if folder is None or not folder.deleted:
        return False
    await items.tombstone(item)
    logger.info("Item %s written into deleted folder %s", item.client_id, folder.client_id)
    return True


class FolderService:
    """Service for folder CRUD against the authoritative store."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.folders = FolderRepository(session)
        self.items = ItemRepository(session)

    async def list_folders(self) -> list[Folder]:
        """List live folders."""
        return await self.folders.list_live()

    async def create_folder(self, payload: FolderCreate) -> tuple[Folder, bool]:
        """Create a folder unless its client id is already stored."""
        existing = await self.folders.get_by_client_id(payload.client_id)
        if existing is not None:
            return existing, False

        folder = await self.folders.add(**payload.model_dump())
        await self.session.commit()
        return folder, True

    async def update_folder(self, folder_id: int, payload: FolderUpdate) -> Folder | None:
        """Apply a partial update by server id."""
        folder = await self.folders.get_by_id(folder_id)
        if folder is None:
            return None
        await self.folders.patch(folder, payload.model_dump(exclude_unset=True))
        await self.session.commit()
        return folder

    async def delete_folder(self, folder_id: int) -> bool:
        """Soft-delete a folder and cascade to its items."""
        folder = await self.folders.get_by_id(folder_id)
        if folder is None:
            return False
        await cascade_delete_folder(self.folders, self.items, folder)
        await self.session.commit()
        return True
