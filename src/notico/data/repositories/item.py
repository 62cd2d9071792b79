"""Repository for Item model."""

from datetime import datetime

from sqlalchemy import String, cast, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notico.data.models.base import utcnow
from notico.data.models.item import Item, ItemType
from notico.data.repositories.base import SyncedRepository


class ItemRepository(SyncedRepository[Item]):
    """Repository for Item model."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Item, session)

    async def list_live(
        self,
        item_type: ItemType | None = None,
        terms: list[str] | None = None,
        since: datetime | None = None,
    ) -> list[Item]:
        """List non-deleted items, pinned first then most recently updated.

        Args:
            item_type: Restrict to one item type.
            terms: Every term must appear in title, content, tags or url.
            since: Only items updated at or after this instant.

        Returns:
            Matching items.
        """
        stmt = select(Item).where(Item.deleted.is_(False))
        if item_type is not None:
            stmt = stmt.where(Item.type == item_type)
        if since is not None:
            stmt = stmt.where(Item.updated_at >= since)
        if terms:
            searchable = func.lower(
                Item.title
                + " "
                + Item.content
                + " "
                + cast(Item.tags, String)
                + " "
                + func.coalesce(Item.url, "")
            )
            for term in terms:
                stmt = stmt.where(searchable.contains(term.lower(), autoescape=True))
        stmt = stmt.order_by(Item.pinned.desc(), Item.updated_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def tombstone_in_folder(self, folder_client_id: str) -> int:
        """Soft-delete every live item that references a folder.

        Runs as a single UPDATE statement so no reader sees a partially
        cascaded folder.

        Returns:
            Number of items tombstoned.
        """
        result = await self.session.execute(
            update(Item)
            .where(Item.folder_id == folder_client_id, Item.deleted.is_(False))
            .values(deleted=True, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        return int(result.rowcount or 0)
