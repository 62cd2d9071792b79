"""Schemas for folders."""

from datetime import datetime

from pydantic import Field

from notico.server.schemas.common import CamelModel


class FolderCreate(CamelModel):
    """Payload for creating a folder."""

    client_id: str = Field(..., min_length=1, max_length=64, description="Client id")
    name: str = Field(..., min_length=1, max_length=255, description="Folder name")
    color: str | None = Field(None, description="Display color")
    deleted: bool = Field(False, description="Tombstone flag")


class FolderUpdate(CamelModel):
    """Partial folder update."""

    name: str | None = Field(None, min_length=1, max_length=255)
    color: str | None = None
    deleted: bool | None = None


class FolderResponse(CamelModel):
    """A folder as stored by the server."""

    id: str = Field(..., alias="_id", description="Server id")
    client_id: str = Field(..., description="Client id")
    name: str = Field(..., description="Folder name")
    color: str | None = Field(None, description="Display color")
    deleted: bool = Field(False, description="Tombstone flag")
    created_at: datetime = Field(..., description="Creation time")
    updated_at: datetime = Field(..., description="Last server-side modification")
