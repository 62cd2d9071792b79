"""Item API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from notico.data.database import get_session
from notico.data.models.item import ItemType
from notico.server.schemas.common import SuccessResponse
from notico.server.schemas.item import ItemCreate, ItemResponse, ItemUpdate
from notico.server.services.item import ItemService, item_to_response

router = APIRouter()


@router.get("/api/items", response_model=list[ItemResponse])
async def list_items(
    type: ItemType | None = Query(None, description="Only items of this type"),
    search: str | None = Query(None, description="Whitespace-separated search terms"),
    since: datetime | None = Query(None, description="Only items updated since"),
    session: AsyncSession = Depends(get_session),
) -> list[ItemResponse]:
    """List live items, pinned first then most recently updated."""
    service = ItemService(session)
    items = await service.list_items(
        item_type=type.value if type else None, search=search, since=since
    )
    return [item_to_response(item) for item in items]


@router.post(
    "/api/items", response_model=ItemResponse, status_code=status.HTTP_201_CREATED
)
async def create_item(
    payload: ItemCreate,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> ItemResponse:
    """Create an item; a repeated client id returns the stored item with 200."""
    service = ItemService(session)
    item, created = await service.create_item(payload)
    if not created:
        response.status_code = status.HTTP_200_OK
    return item_to_response(item)


@router.get("/api/items/{item_id}", response_model=ItemResponse)
async def get_item(
    item_id: int,
    session: AsyncSession = Depends(get_session),
) -> ItemResponse:
    """Get an item by server id."""
    item = await ItemService(session).get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return item_to_response(item)


@router.put("/api/items/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: int,
    payload: ItemUpdate,
    session: AsyncSession = Depends(get_session),
) -> ItemResponse:
    """Partially update an item by server id."""
    item = await ItemService(session).update_item(item_id, payload)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return item_to_response(item)


@router.delete("/api/items/{item_id}", response_model=SuccessResponse)
async def delete_item(
    item_id: int,
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse:
    """Soft-delete an item by server id."""
    if not await ItemService(session).delete_item(item_id):
        raise HTTPException(status_code=404, detail="Item not found")
    return SuccessResponse(success=True)
