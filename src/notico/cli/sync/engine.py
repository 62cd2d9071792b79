"""Sync coordinator for the offline-first device replica.

Every local mutation goes through :class:`SyncEngine`: it is written to the
Local Store, recorded in the Outbox and reported to the scheduler. A sync
cycle drains the Outbox, sends one batch, applies the per-operation results
and merges the server's snapshot with whole-entity last-write-wins.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx
from sqlalchemy.exc import SQLAlchemyError

from notico.cli.cache.manager import CacheManager
from notico.cli.cache.models import (
    CachedFolder,
    CachedItem,
    EntityKind,
    ItemType,
    OutboxAction,
)
from notico.cli.client import is_online
from notico.cli.sync.protocol import (
    OperationFailure,
    PendingOperation,
    SyncClient,
    SyncResult,
    SyncStatus,
    build_sync_request,
    folder_fields_from_wire,
    folder_to_wire,
    format_timestamp,
    item_fields_from_wire,
    item_to_wire,
)

if TYPE_CHECKING:
    from notico.cli.sync.scheduler import SyncScheduler

logger = logging.getLogger(__name__)

FAILED_STATUSES = frozenset({"not_found", "error"})

# Transmissions of one operation the server may reject before it is dropped
MAX_SYNC_ATTEMPTS = 5


def new_client_id() -> str:
    """Generate a client id for a new entity."""
    return str(uuid.uuid4())


def collapse_operations(operations: list[PendingOperation]) -> list[PendingOperation]:
    """Keep only the most recently queued operation per client id.

    ``operations`` must be oldest-first. An entity created in the same batch
    has never reached the server: a later update is sent as the create, and
    a later delete means nothing is sent for it at all.
    """
    latest: dict[str, PendingOperation] = {}
    created: set[str] = set()
    for op in operations:
        if op.action == OutboxAction.CREATE:
            created.add(op.client_id)
        latest[op.client_id] = op

    collapsed = []
    for client_id, op in latest.items():
        if client_id in created:
            if op.action == OutboxAction.DELETE:
                continue
            if op.action == OutboxAction.UPDATE:
                op = replace(op, action=OutboxAction.CREATE)
        collapsed.append(op)
    return sorted(collapsed, key=lambda op: op.sequence)


class SyncEngine:
    """Coordinates local mutations and sync cycles for one device.

    At most one cycle (steady-state or bootstrap) runs at a time; a cycle
    requested while another is in flight returns immediately with
    ``SyncStatus.IN_FLIGHT`` and nothing is sent.
    """

    def __init__(
        self,
        cache_manager: CacheManager | None = None,
        client_factory: Callable[[], SyncClient] | None = None,
        online_check: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        """Initialize the sync engine.

        Args:
            cache_manager: Cache manager to use. If None, creates a new one.
            client_factory: Builds the HTTP client for each cycle
                (default: SyncClient on the configured server)
            online_check: Coroutine reporting whether the server is reachable
                (default: is_online)
        """
        self._cache = cache_manager or CacheManager()
        self._own_cache = cache_manager is None
        self._client_factory = client_factory or SyncClient
        self._online_check = online_check or is_online
        self.in_flight = False
        self.scheduler: SyncScheduler | None = None

    def close(self) -> None:
        """Close resources."""
        if self._own_cache:
            self._cache.close()

    @property
    def cache(self) -> CacheManager:
        """The Local Store backing this engine."""
        return self._cache

    # Reads
    def list_items(
        self,
        item_type: ItemType | str | None = None,
        folder_id: str | None = None,
        search_terms: str | list[str] | None = None,
    ) -> list[CachedItem]:
        """List live items from the Local Store."""
        return self._cache.list_items(item_type, folder_id, search_terms)

    def get_item(self, client_id: str) -> CachedItem | None:
        """Get an item, tombstoned or not."""
        return self._cache.get(client_id)

    def list_folders(self) -> list[CachedFolder]:
        """List live folders from the Local Store."""
        return self._cache.list_folders()

    def find_folder(self, ref: str) -> CachedFolder | None:
        """Find a live folder by client id or name."""
        return self._cache.find_folder(ref)

    def pending_count(self) -> int:
        """Number of mutations waiting to be sent."""
        return self._cache.outbox.pending_count()

    def last_sync_at(self) -> str | None:
        """Watermark of the last completed pull."""
        return self._cache.sync_state.get_watermark()

    # Item mutations
    def create_item(
        self,
        title: str,
        item_type: ItemType = ItemType.NOTE,
        content: str = "",
        url: str | None = None,
        reminder_date: datetime | None = None,
        tags: list[str] | None = None,
        pinned: bool = False,
        color: str | None = None,
        folder_id: str | None = None,
        client_id: str | None = None,
    ) -> CachedItem:
        """Create an item locally and queue it for sync."""
        client_id = client_id or new_client_id()
        now = datetime.now(UTC)
        item = self._cache.upsert(
            client_id,
            {
                "type": item_type,
                "title": title,
                "content": content,
                "url": url,
                "reminder_date": reminder_date,
                "tags": json_tags(tags),
                "pinned": pinned,
                "color": color,
                "folder_id": folder_id,
                "created_at": now,
                "updated_at": now,
            },
        )
        self._record(EntityKind.ITEM, OutboxAction.CREATE, client_id, item_to_wire(item))
        return item

    def update_item(self, client_id: str, **changes: Any) -> CachedItem | None:
        """Patch an item locally and queue the full updated entity.

        Returns:
            The updated item, or None if it is unknown or deleted
        """
        existing = self._cache.get(client_id)
        if existing is None or existing.deleted:
            return None
        if "tags" in changes:
            changes["tags"] = json_tags(changes["tags"])
        item = self._cache.patch(client_id, changes)
        assert item is not None
        self._record(EntityKind.ITEM, OutboxAction.UPDATE, client_id, item_to_wire(item))
        return item

    def delete_item(self, client_id: str) -> bool:
        """Tombstone an item locally and queue the delete.

        Returns:
            True if a live item was deleted
        """
        existing = self._cache.get(client_id)
        if existing is None or existing.deleted:
            return False
        self._cache.tombstone(client_id)
        self._record(EntityKind.ITEM, OutboxAction.DELETE, client_id, None)
        return True

    # Folder mutations
    def create_folder(
        self, name: str, color: str | None = None, client_id: str | None = None
    ) -> CachedFolder:
        """Create a folder locally and queue it for sync."""
        client_id = client_id or new_client_id()
        now = datetime.now(UTC)
        folder = self._cache.upsert_folder(
            client_id,
            {"name": name, "color": color, "created_at": now, "updated_at": now},
        )
        self._record(
            EntityKind.FOLDER, OutboxAction.CREATE, client_id, folder_to_wire(folder)
        )
        return folder

    def update_folder(self, client_id: str, **changes: Any) -> CachedFolder | None:
        """Patch a folder locally and queue the full updated entity."""
        existing = self._cache.get_folder(client_id)
        if existing is None or existing.deleted:
            return None
        folder = self._cache.patch_folder(client_id, changes)
        assert folder is not None
        self._record(
            EntityKind.FOLDER, OutboxAction.UPDATE, client_id, folder_to_wire(folder)
        )
        return folder

    def delete_folder(self, client_id: str) -> bool:
        """Tombstone a folder and its items locally and queue the folder delete."""
        existing = self._cache.get_folder(client_id)
        if existing is None or existing.deleted:
            return False
        self._cache.tombstone_folder(client_id)
        self._record(EntityKind.FOLDER, OutboxAction.DELETE, client_id, None)
        return True

    def _record(
        self,
        entity: EntityKind,
        action: OutboxAction,
        client_id: str,
        data: dict[str, Any] | None,
    ) -> None:
        """Queue a mutation, commit it with the entity write and notify."""
        self._cache.outbox.enqueue(entity, action, client_id, data)
        self._cache.commit()
        if self.scheduler is not None:
            self.scheduler.notify_mutation()

    # Sync cycles
    async def perform_sync(self) -> SyncResult:
        """Run one sync cycle.

        Returns:
            SyncResult whose status says whether the cycle ran
        """
        if self.in_flight:
            logger.warning("Sync already in flight; dropping trigger")
            return SyncResult(status=SyncStatus.IN_FLIGHT)

        self.in_flight = True
        try:
            if not await self._online_check():
                logger.warning("Server unreachable; sync skipped")
                return SyncResult(
                    status=SyncStatus.OFFLINE, error_message="Server is not reachable"
                )
            return await self._run_cycle()
        finally:
            self.in_flight = False

    async def _run_cycle(self) -> SyncResult:
        drained = [PendingOperation.from_entry(e) for e in self._cache.outbox.drain_ordered()]
        batch = collapse_operations(drained)
        last_sequence = max((op.sequence for op in drained), default=None)
        payload = build_sync_request(batch, self._cache.sync_state.get_watermark())

        logger.info(
            "Starting sync: %d queued entries collapsed to %d operations",
            len(drained),
            len(batch),
        )

        try:
            async with self._client_factory() as client:
                response = await client.sync(payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Sync request failed: %s", e)
            return SyncResult(status=SyncStatus.TRANSPORT_FAILED, error_message=str(e))

        try:
            if last_sequence is not None:
                self._cache.outbox.clear(up_to=last_sequence)

            failures = self._apply_results(response.get("results", []), batch)
            pulled = self._merge_snapshot(
                response.get("serverItems", []), response.get("serverFolders") or []
            )
            synced_at = response.get("syncedAt")
            if synced_at:
                self._cache.sync_state.set_watermark(synced_at)
            self._cache.commit()
        except (SQLAlchemyError, ValueError, TypeError, AttributeError) as e:
            # Nothing from this response is kept; the batch is resent next cycle
            self._cache.rollback()
            logger.error("Could not apply sync response: %s", e)
            return SyncResult(status=SyncStatus.APPLY_FAILED, error_message=str(e))

        logger.info(
            "Sync completed: pushed %d, pulled %d, %d failed",
            len(batch),
            pulled,
            len(failures),
        )
        return SyncResult(
            status=SyncStatus.COMPLETED,
            pushed=len(batch),
            pulled=pulled,
            failures=failures,
        )

    def _apply_results(
        self, results: list[dict[str, Any]], batch: list[PendingOperation]
    ) -> list[OperationFailure]:
        """Record server ids and re-queue operations that failed with an error."""
        sent = {(op.entity, op.client_id): op for op in batch}
        failures: list[OperationFailure] = []

        for result in results:
            client_id = result.get("clientId")
            if not client_id:
                continue
            kind = EntityKind.FOLDER if result.get("entity") == "folder" else EntityKind.ITEM
            status = result.get("status")

            if status in FAILED_STATUSES:
                failures.append(
                    OperationFailure(
                        client_id=client_id,
                        entity=kind,
                        status=status,
                        error=result.get("error"),
                    )
                )
                op = sent.get((kind, client_id))
                if (
                    status == "error"
                    and op is not None
                    and not self._cache.outbox.has_pending(client_id)
                ):
                    self._requeue(op, result.get("error"))
                continue

            entity = result.get("item")
            if entity:
                self._record_server_id(kind, client_id, entity)

        return failures

    def _requeue(self, op: PendingOperation, error: str | None) -> None:
        attempts = op.attempts + 1
        if attempts >= MAX_SYNC_ATTEMPTS:
            logger.error(
                "Dropping %s of %s %s after %d rejected attempts: %s",
                op.action.value,
                op.entity.value,
                op.client_id,
                attempts,
                error,
            )
            return
        logger.warning(
            "Re-queueing %s of %s %s after error: %s",
            op.action.value,
            op.entity.value,
            op.client_id,
            error,
        )
        self._cache.outbox.enqueue(op.entity, op.action, op.client_id, op.data, attempts)

    def _record_server_id(
        self, kind: EntityKind, client_id: str, entity: dict[str, Any]
    ) -> None:
        server_id = entity.get("_id", entity.get("serverId"))
        if server_id is None:
            return
        local = (
            self._cache.get_folder(client_id)
            if kind == EntityKind.FOLDER
            else self._cache.get(client_id)
        )
        if local is not None:
            local.server_id = str(server_id)

    def _merge_snapshot(
        self, server_items: list[dict[str, Any]], server_folders: list[dict[str, Any]]
    ) -> int:
        """Overwrite local copies with the server's versions, unconditionally."""
        merged = 0
        for data in server_folders:
            merged += self._merge_entity(EntityKind.FOLDER, data)
        for data in server_items:
            merged += self._merge_entity(EntityKind.ITEM, data)
        return merged

    def _merge_entity(
        self, kind: EntityKind, data: dict[str, Any], skip_pending: bool = False
    ) -> bool:
        """Store one server entity locally.

        Entities that cannot be mapped to a local row are logged and skipped.

        Returns:
            True if the entity was stored
        """
        client_id = data.get("clientId")
        if not client_id:
            return False
        if skip_pending and self._cache.outbox.has_pending(client_id):
            return False
        try:
            if kind == EntityKind.FOLDER:
                fields = folder_fields_from_wire(data)
            else:
                fields = item_fields_from_wire(data)
        except (ValueError, TypeError) as e:
            logger.warning("Skipping %s %s from server: %s", kind.value, client_id, e)
            return False

        if kind == EntityKind.FOLDER:
            self._cache.upsert_folder(client_id, fields)
        else:
            self._cache.upsert(client_id, fields)
        return True

    async def initial_sync(self) -> SyncResult:
        """Pull every live entity from the server once, before steady state.

        Entities with a pending outbox entry are skipped so an unsent local
        edit is not overwritten. The watermark is set to the device's
        current time afterwards.
        """
        if self.in_flight:
            logger.warning("Sync already in flight; dropping bootstrap")
            return SyncResult(status=SyncStatus.IN_FLIGHT)

        self.in_flight = True
        try:
            if not await self._online_check():
                logger.warning("Server unreachable; bootstrap skipped")
                return SyncResult(
                    status=SyncStatus.OFFLINE, error_message="Server is not reachable"
                )

            try:
                async with self._client_factory() as client:
                    items = await client.fetch_items()
                    folders = await client.fetch_folders()
            except (httpx.HTTPError, ValueError) as e:
                logger.error("Bootstrap pull failed: %s", e)
                return SyncResult(status=SyncStatus.TRANSPORT_FAILED, error_message=str(e))

            try:
                pulled = 0
                for data in folders:
                    pulled += self._merge_entity(EntityKind.FOLDER, data, skip_pending=True)
                for data in items:
                    pulled += self._merge_entity(EntityKind.ITEM, data, skip_pending=True)

                watermark = format_timestamp(datetime.now(UTC))
                assert watermark is not None
                self._cache.sync_state.set_watermark(watermark)
                self._cache.commit()
            except (SQLAlchemyError, AttributeError) as e:
                self._cache.rollback()
                logger.error("Could not store bootstrap pull: %s", e)
                return SyncResult(status=SyncStatus.APPLY_FAILED, error_message=str(e))

            logger.info("Bootstrap pulled %d entities", pulled)
            return SyncResult(status=SyncStatus.COMPLETED, pulled=pulled)
        finally:
            self.in_flight = False


def json_tags(tags: list[str] | None) -> str:
    """Serialize tags for the cached item column."""
    return json.dumps(list(tags or []))
