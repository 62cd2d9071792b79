"""Repository for Folder model."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from notico.data.models.folder import Folder
from notico.data.repositories.base import SyncedRepository


class FolderRepository(SyncedRepository[Folder]):
    """Repository for Folder model."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Folder, session)

    async def list_live(self) -> list[Folder]:
        """List non-deleted folders by name."""
        result = await self.session.execute(
            select(Folder).where(Folder.deleted.is_(False)).order_by(Folder.name)
        )
        return list(result.scalars().all())
