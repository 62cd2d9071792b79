"""Schemas for items."""

from datetime import datetime

from pydantic import Field, field_validator

from notico.data.models.base import as_utc
from notico.data.models.item import ItemType
from notico.server.schemas.common import CamelModel


class ItemFields(CamelModel):
    """Writable item fields shared by create payloads and responses."""

    type: ItemType = Field(ItemType.NOTE, description="Item kind")
    title: str = Field(..., min_length=1, max_length=500, description="Item title")
    content: str = Field("", description="Body text or description")
    url: str | None = Field(None, description="Target URL for url items")
    reminder_date: datetime | None = Field(None, description="When a reminder is due")
    reminder_completed: bool = Field(False, description="Whether a reminder is done")
    tags: list[str] = Field(default_factory=list, description="Tags")
    pinned: bool = Field(False, description="Pinned items sort first")
    color: str | None = Field(None, description="Display color")
    folder_id: str | None = Field(None, description="Client id of the containing folder")
    deleted: bool = Field(False, description="Tombstone flag")

    @field_validator("reminder_date")
    @classmethod
    def _reminder_in_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value else value


class ItemCreate(ItemFields):
    """Payload for creating an item."""

    client_id: str = Field(..., min_length=1, max_length=64, description="Client id")


class ItemUpdate(CamelModel):
    """Partial item update; only supplied fields are written."""

    type: ItemType | None = None
    title: str | None = Field(None, min_length=1, max_length=500)
    content: str | None = None
    url: str | None = None
    reminder_date: datetime | None = None
    reminder_completed: bool | None = None
    tags: list[str] | None = None
    pinned: bool | None = None
    color: str | None = None
    folder_id: str | None = None
    deleted: bool | None = None

    @field_validator("reminder_date")
    @classmethod
    def _reminder_in_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value else value


class ItemResponse(ItemFields):
    """An item as stored by the server."""

    id: str = Field(..., alias="_id", description="Server id")
    client_id: str = Field(..., description="Client id")
    created_at: datetime = Field(..., description="Creation time")
    updated_at: datetime = Field(..., description="Last server-side modification")
