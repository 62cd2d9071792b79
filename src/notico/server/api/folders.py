"""Folder API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from notico.data.database import get_session
from notico.server.schemas.common import SuccessResponse
from notico.server.schemas.folder import FolderCreate, FolderResponse, FolderUpdate
from notico.server.services.folder import FolderService, folder_to_response

router = APIRouter()


@router.get("/api/folders", response_model=list[FolderResponse])
async def list_folders(session: AsyncSession = Depends(get_session)) -> list[FolderResponse]:
    """List live folders by name."""
    folders = await FolderService(session).list_folders()
    return [folder_to_response(folder) for folder in folders]


@router.post(
    "/api/folders", response_model=FolderResponse, status_code=status.HTTP_201_CREATED
)
async def create_folder(
    payload: FolderCreate,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> FolderResponse:
    """Create a folder; a repeated client id returns the stored folder with 200."""
    folder, created = await FolderService(session).create_folder(payload)
    if not created:
        response.status_code = status.HTTP_200_OK
    return folder_to_response(folder)


@router.put("/api/folders/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: int,
    payload: FolderUpdate,
    session: AsyncSession = Depends(get_session),
) -> FolderResponse:
    """Partially update a folder by server id."""
    folder = await FolderService(session).update_folder(folder_id, payload)
    if folder is None:
        raise HTTPException(status_code=404, detail="Folder not found")
    return folder_to_response(folder)


@router.delete("/api/folders/{folder_id}", response_model=SuccessResponse)
async def delete_folder(
    folder_id: int,
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse:
    """Soft-delete a folder and every item in it."""
    if not await FolderService(session).delete_folder(folder_id):
        raise HTTPException(status_code=404, detail="Folder not found")
    return SuccessResponse(success=True)
