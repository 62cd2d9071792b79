"""Pydantic schemas for API request/response validation."""

from notico.server.schemas.common import CamelModel, HealthResponse, SuccessResponse
from notico.server.schemas.folder import FolderCreate, FolderResponse, FolderUpdate
from notico.server.schemas.item import ItemCreate, ItemResponse, ItemUpdate
from notico.server.schemas.sync import (
    OperationStatus,
    SyncAction,
    SyncOperation,
    SyncOperationResult,
    SyncRequest,
    SyncResponse,
)

__all__ = [
    "CamelModel",
    "FolderCreate",
    "FolderResponse",
    "FolderUpdate",
    "HealthResponse",
    "ItemCreate",
    "ItemResponse",
    "ItemUpdate",
    "OperationStatus",
    "SuccessResponse",
    "SyncAction",
    "SyncOperation",
    "SyncOperationResult",
    "SyncRequest",
    "SyncResponse",
]
