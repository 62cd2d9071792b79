"""Schemas for the batch sync API."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import Field

from notico.server.schemas.common import CamelModel
from notico.server.schemas.folder import FolderResponse
from notico.server.schemas.item import ItemResponse


class SyncAction(str, Enum):
    """Mutation carried by a sync operation."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class OperationStatus(str, Enum):
    """Per-operation outcome reported by the server."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    EXISTS = "exists"
    NOT_FOUND = "not_found"
    ERROR = "error"


class SyncOperation(CamelModel):
    """One queued mutation sent by a device."""

    action: SyncAction = Field(..., description="Mutation kind")
    client_id: str = Field(..., min_length=1, description="Entity client id")
    data: dict[str, Any] | None = Field(None, description="Entity fields")


class SyncRequest(CamelModel):
    """A device's batch of operations plus its pull watermark."""

    operations: list[SyncOperation] = Field(
        default_factory=list, description="Item operations"
    )
    folder_operations: list[SyncOperation] = Field(
        default_factory=list, description="Folder operations, applied before items"
    )
    last_sync_at: datetime | None = Field(
        None, description="Watermark from the previous sync (None = everything)"
    )


class SyncOperationResult(CamelModel):
    """Outcome of a single operation."""

    client_id: str = Field(..., description="Entity client id")
    entity: Literal["folder"] | None = Field(
        None, description="Set to 'folder' for folder operations"
    )
    status: OperationStatus = Field(..., description="Outcome")
    item: ItemResponse | FolderResponse | None = Field(
        None, description="Stored entity after the operation"
    )
    error: str | None = Field(None, description="Failure detail for status=error")


class SyncResponse(CamelModel):
    """Per-operation results and the snapshot of changes since the watermark."""

    results: list[SyncOperationResult] = Field(default_factory=list)
    server_items: list[ItemResponse] = Field(default_factory=list)
    server_folders: list[FolderResponse] = Field(default_factory=list)
    synced_at: datetime = Field(..., description="New watermark")
