"""Wire protocol between the device replica and the server.

Converts cached rows to and from the camelCase JSON the server speaks and
wraps the HTTP calls a sync cycle needs.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import httpx

from notico.cli.cache.models import (
    CachedFolder,
    CachedItem,
    EntityKind,
    ItemType,
    OutboxAction,
    OutboxEntry,
)
from notico.cli.client import create_client


class SyncStatus(str, Enum):
    """How a sync cycle ended."""

    COMPLETED = "completed"
    OFFLINE = "offline"
    IN_FLIGHT = "in_flight"
    TRANSPORT_FAILED = "transport_failed"
    APPLY_FAILED = "apply_failed"


@dataclass
class OperationFailure:
    """An operation the server reported as not_found or error."""

    client_id: str
    entity: EntityKind
    status: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return {
            "client_id": self.client_id,
            "entity": self.entity.value,
            "status": self.status,
            "error": self.error,
        }


@dataclass
class SyncResult:
    """Result of a sync cycle."""

    status: SyncStatus
    pushed: int = 0
    pulled: int = 0
    failures: list[OperationFailure] = field(default_factory=list)
    error_message: str | None = None

    @property
    def success(self) -> bool:
        """Check if the cycle ran to completion."""
        return self.status == SyncStatus.COMPLETED

    @property
    def had_failures(self) -> bool:
        """Check if any operation in the batch failed."""
        return len(self.failures) > 0


class SyncClient:
    """HTTP client for sync operations."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the sync client.

        Args:
            client: Client to use instead of one built from the config
        """
        self._given = client
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SyncClient:
        """Enter async context manager."""
        self._client = self._given or create_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context manager."""
        if self._client and self._given is None:
            await self._client.aclose()
        self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("SyncClient not initialized - use as context manager")
        return self._client

    async def sync(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a batch of operations.

        Args:
            payload: The sync request body

        Returns:
            The sync response from the server

        Raises:
            httpx.HTTPError: If the request fails
        """
        response = await self._require_client().post("/api/sync", json=payload)
        response.raise_for_status()
        return response.json()  # type: ignore[no-any-return]

    async def fetch_items(self) -> list[dict[str, Any]]:
        """Fetch every live item for the bootstrap pull.

        Raises:
            httpx.HTTPError: If the request fails
        """
        response = await self._require_client().get("/api/items")
        response.raise_for_status()
        return response.json()  # type: ignore[no-any-return]

    async def fetch_folders(self) -> list[dict[str, Any]]:
        """Fetch every live folder for the bootstrap pull.

        Raises:
            httpx.HTTPError: If the request fails
        """
        response = await self._require_client().get("/api/folders")
        response.raise_for_status()
        return response.json()  # type: ignore[no-any-return]


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware UTC datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_timestamp(value: datetime | None) -> str | None:
    """Format a datetime for the wire, assuming UTC when naive."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat()


def item_to_wire(item: CachedItem) -> dict[str, Any]:
    """Convert a cached item to the fields sent with an operation.

    Deletion travels only as a delete operation, never as a field, so a
    queued edit cannot revive an item tombstoned by a folder cascade.
    """
    return {
        "clientId": item.client_id,
        "type": item.type.value,
        "title": item.title,
        "content": item.content,
        "url": item.url,
        "reminderDate": format_timestamp(item.reminder_date),
        "reminderCompleted": item.reminder_completed,
        "tags": item.get_tags_list(),
        "pinned": item.pinned,
        "color": item.color,
        "folderId": item.folder_id,
    }


def folder_to_wire(folder: CachedFolder) -> dict[str, Any]:
    """Convert a cached folder to the fields sent with an operation."""
    return {
        "clientId": folder.client_id,
        "name": folder.name,
        "color": folder.color,
    }


def _server_id(data: dict[str, Any]) -> str | None:
    value = data.get("_id", data.get("serverId"))
    return None if value is None else str(value)


def item_fields_from_wire(data: dict[str, Any]) -> dict[str, Any]:
    """Map a server item to cached item columns, filling defaults."""
    tags = data.get("tags") or []
    return {
        "server_id": _server_id(data),
        "type": ItemType(data.get("type") or ItemType.NOTE.value),
        "title": data.get("title") or "",
        "content": data.get("content") or "",
        "url": data.get("url"),
        "reminder_date": parse_timestamp(data.get("reminderDate")),
        "reminder_completed": bool(data.get("reminderCompleted", False)),
        "tags": json.dumps(list(tags)),
        "pinned": bool(data.get("pinned", False)),
        "color": data.get("color"),
        "folder_id": data.get("folderId"),
        "deleted": bool(data.get("deleted", False)),
        "created_at": parse_timestamp(data.get("createdAt")) or datetime.now(UTC),
        "updated_at": parse_timestamp(data.get("updatedAt")) or datetime.now(UTC),
    }


def folder_fields_from_wire(data: dict[str, Any]) -> dict[str, Any]:
    """Map a server folder to cached folder columns, filling defaults."""
    return {
        "server_id": _server_id(data),
        "name": data.get("name") or "",
        "color": data.get("color"),
        "deleted": bool(data.get("deleted", False)),
        "created_at": parse_timestamp(data.get("createdAt")) or datetime.now(UTC),
        "updated_at": parse_timestamp(data.get("updatedAt")) or datetime.now(UTC),
    }


@dataclass
class PendingOperation:
    """An outbox entry detached from the session, ready to transmit."""

    entity: EntityKind
    action: OutboxAction
    client_id: str
    data: dict[str, Any] | None
    sequence: int
    attempts: int = 0

    @classmethod
    def from_entry(cls, entry: OutboxEntry) -> PendingOperation:
        """Copy the fields of a stored outbox entry."""
        return cls(
            entity=entry.entity,
            action=entry.action,
            client_id=entry.client_id,
            data=entry.get_data_dict(),
            sequence=entry.id,
            attempts=entry.attempts or 0,
        )

    def to_wire(self) -> dict[str, Any]:
        """Convert to a wire operation."""
        operation: dict[str, Any] = {"action": self.action.value, "clientId": self.client_id}
        if self.data is not None:
            operation["data"] = self.data
        return operation


def build_sync_request(
    operations: list[PendingOperation], last_sync_at: str | None
) -> dict[str, Any]:
    """Build the batch body, folder operations separated from item operations.

    Args:
        operations: Collapsed operations, one per client id
        last_sync_at: Watermark from the previous cycle, if any

    Returns:
        Dict ready to send as JSON
    """
    request: dict[str, Any] = {
        "operations": [
            op.to_wire() for op in operations if op.entity == EntityKind.ITEM
        ],
        "folderOperations": [
            op.to_wire() for op in operations if op.entity == EntityKind.FOLDER
        ],
    }
    if last_sync_at:
        request["lastSyncAt"] = last_sync_at
    return request
