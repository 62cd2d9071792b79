"""Sync service for applying device batches to the authoritative store."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Literal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notico.data.models.base import as_utc, utcnow
from notico.data.repositories.folder import FolderRepository
from notico.data.repositories.item import ItemRepository
from notico.server.schemas.folder import FolderCreate, FolderUpdate
from notico.server.schemas.item import ItemCreate, ItemUpdate
from notico.server.schemas.sync import (
    OperationStatus,
    SyncAction,
    SyncOperation,
    SyncOperationResult,
    SyncRequest,
    SyncResponse,
)
from notico.server.services.folder import (
    cascade_delete_folder,
    folder_to_response,
    tombstone_if_folder_deleted,
)
from notico.server.services.item import item_to_response

logger = logging.getLogger(__name__)

EntityKind = Literal["folder"] | None


class SyncOperationError(ValueError):
    """A sync operation is malformed and cannot be applied."""


class SyncService:
    """Service for handling batch sync requests.

    Each operation is applied inside its own savepoint: a failing operation is
    rolled back alone and reported as ``error`` while the rest of the batch
    proceeds. Folder operations are applied before item operations so that a
    folder delete's cascade is visible to the item operations and to the
    snapshot returned in the same response.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the sync service.

        Args:
            session: Database session
        """
        self.session = session
        self.items = ItemRepository(session)
        self.folders = FolderRepository(session)

    async def sync(self, request: SyncRequest) -> SyncResponse:
        """Apply a device batch and return results plus the change snapshot.

        Args:
            request: Folder operations, item operations and the watermark

        Returns:
            SyncResponse with per-operation results, every item and folder
            mutated since the watermark, and the new watermark
        """
        results: list[SyncOperationResult] = []

        for op in request.folder_operations:
            results.append(await self._run(op, "folder", self._apply_folder_operation))
        for op in request.operations:
            results.append(await self._run(op, None, self._apply_item_operation))

        await self.session.commit()

        # Taken before the snapshot query so later writes land after the watermark
        synced_at = utcnow()
        since = as_utc(request.last_sync_at) if request.last_sync_at else None
        items = await self.items.changed_since(since)
        folders = await self.folders.changed_since(since)

        failed = sum(1 for r in results if r.status == OperationStatus.ERROR)
        logger.info(
            "Applied sync batch: %d operations (%d failed), returning %d items and %d folders",
            len(results),
            failed,
            len(items),
            len(folders),
        )

        return SyncResponse(
            results=results,
            server_items=[item_to_response(item) for item in items],
            server_folders=[folder_to_response(folder) for folder in folders],
            synced_at=synced_at,
        )

    async def _run(
        self,
        op: SyncOperation,
        entity: EntityKind,
        apply: Callable[[SyncOperation], Awaitable[SyncOperationResult]],
    ) -> SyncOperationResult:
        """Apply one operation in a savepoint, converting failures to results."""
        try:
            async with self.session.begin_nested():
                return await apply(op)
        except (SQLAlchemyError, ValueError) as exc:
            logger.warning(
                "Sync %s of %s %s failed: %s",
                op.action.value,
                entity or "item",
                op.client_id,
                exc,
            )
            return SyncOperationResult(
                client_id=op.client_id,
                entity=entity,
                status=OperationStatus.ERROR,
                error=str(exc),
            )

    async def _apply_item_operation(self, op: SyncOperation) -> SyncOperationResult:
        existing = await self.items.get_by_client_id(op.client_id)

        if op.action == SyncAction.CREATE:
            if existing is not None:
                return SyncOperationResult(
                    client_id=op.client_id,
                    status=OperationStatus.EXISTS,
                    item=item_to_response(existing),
                )
            payload = ItemCreate.model_validate({**(op.data or {}), "clientId": op.client_id})
            item = await self.items.add(**payload.model_dump())
            await tombstone_if_folder_deleted(self.folders, self.items, item)
            return SyncOperationResult(
                client_id=op.client_id,
                status=OperationStatus.CREATED,
                item=item_to_response(item),
            )

        if existing is None:
            return SyncOperationResult(client_id=op.client_id, status=OperationStatus.NOT_FOUND)

        if op.action == SyncAction.UPDATE:
            if op.data is None:
                raise SyncOperationError("update operation requires data")
            changes = ItemUpdate.model_validate(op.data).model_dump(exclude_unset=True)
            await self.items.patch(existing, changes)
            await tombstone_if_folder_deleted(self.folders, self.items, existing)
            return SyncOperationResult(
                client_id=op.client_id,
                status=OperationStatus.UPDATED,
                item=item_to_response(existing),
            )

        await self.items.tombstone(existing)
        return SyncOperationResult(client_id=op.client_id, status=OperationStatus.DELETED)

    async def _apply_folder_operation(self, op: SyncOperation) -> SyncOperationResult:
        existing = await self.folders.get_by_client_id(op.client_id)

        if op.action == SyncAction.CREATE:
            if existing is not None:
                return SyncOperationResult(
                    client_id=op.client_id,
                    entity="folder",
                    status=OperationStatus.EXISTS,
                    item=folder_to_response(existing),
                )
            payload = FolderCreate.model_validate({**(op.data or {}), "clientId": op.client_id})
            folder = await self.folders.add(**payload.model_dump())
            return SyncOperationResult(
                client_id=op.client_id,
                entity="folder",
                status=OperationStatus.CREATED,
                item=folder_to_response(folder),
            )

        if existing is None:
            return SyncOperationResult(
                client_id=op.client_id, entity="folder", status=OperationStatus.NOT_FOUND
            )

        if op.action == SyncAction.UPDATE:
            if op.data is None:
                raise SyncOperationError("update operation requires data")
            changes = FolderUpdate.model_validate(op.data).model_dump(exclude_unset=True)
            if changes.get("deleted") and not existing.deleted:
                # A tombstone arriving as an update still cascades
                changes.pop("deleted")
                await self.folders.patch(existing, changes)
                await cascade_delete_folder(self.folders, self.items, existing)
            else:
                await self.folders.patch(existing, changes)
            return SyncOperationResult(
                client_id=op.client_id,
                entity="folder",
                status=OperationStatus.UPDATED,
                item=folder_to_response(existing),
            )

        await cascade_delete_folder(self.folders, self.items, existing)
        return SyncOperationResult(
            client_id=op.client_id, entity="folder", status=OperationStatus.DELETED
        )
