"""Sync API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from notico.data.database import get_session
from notico.server.schemas.sync import SyncRequest, SyncResponse
from notico.server.services.sync import SyncService

router = APIRouter()


@router.post("/api/sync", response_model=SyncResponse)
async def sync_batch(
    request: SyncRequest,
    session: AsyncSession = Depends(get_session),
) -> SyncResponse:
    """Apply a device's queued operations and return changes since its watermark.

    Folder operations are applied before item operations. Each operation
    reports its own status; a failed operation never aborts the rest of the
    batch.
    """
    service = SyncService(session)
    return await service.sync(request)
