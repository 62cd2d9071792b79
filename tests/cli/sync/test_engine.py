"""Tests for the sync engine."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from notico.cli.cache.models import EntityKind, ItemType, OutboxAction
from notico.cli.sync.engine import MAX_SYNC_ATTEMPTS, SyncEngine, collapse_operations
from notico.cli.sync.protocol import PendingOperation, SyncStatus

SYNCED_AT = "2026-05-01T12:00:00+00:00"


def _factory(mock_client: Any) -> MagicMock:
    """Build a client factory whose context manager yields mock_client."""
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    factory.return_value.__aexit__ = AsyncMock(return_value=None)
    return factory


def _response(**overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "results": [],
        "serverItems": [],
        "serverFolders": [],
        "syncedAt": SYNCED_AT,
    }
    body.update(overrides)
    return body


def _server_item(client_id: str, title: str, **fields: Any) -> dict[str, Any]:
    return {
        "_id": "1",
        "clientId": client_id,
        "type": "note",
        "title": title,
        "content": "",
        "tags": [],
        "pinned": False,
        "deleted": False,
        "createdAt": "2026-05-01T11:00:00+00:00",
        "updatedAt": "2026-05-01T11:30:00+00:00",
        **fields,
    }


@pytest.fixture
def mock_client() -> AsyncMock:
    """A sync client returning an empty response."""
    client = AsyncMock()
    client.sync = AsyncMock(return_value=_response())
    client.fetch_items = AsyncMock(return_value=[])
    client.fetch_folders = AsyncMock(return_value=[])
    return client


@pytest.fixture
def engine(cache_manager, mock_client) -> SyncEngine:
    """An engine that is online and talks to mock_client."""
    return SyncEngine(
        cache_manager=cache_manager,
        client_factory=_factory(mock_client),
        online_check=AsyncMock(return_value=True),
    )


def _sent(mock_client: AsyncMock) -> dict[str, Any]:
    return mock_client.sync.await_args.args[0]


class TestCollapseOperations:
    """Tests for outbox deduplication."""

    def test_latest_entry_wins(self):
        """Only the most recent operation per client id survives."""
        ops = [
            PendingOperation(EntityKind.ITEM, OutboxAction.UPDATE, "x", {"title": "a"}, 1),
            PendingOperation(EntityKind.ITEM, OutboxAction.UPDATE, "y", {"title": "y"}, 2),
            PendingOperation(EntityKind.ITEM, OutboxAction.DELETE, "x", None, 3),
        ]

        collapsed = collapse_operations(ops)

        assert [(op.client_id, op.action) for op in collapsed] == [
            ("y", OutboxAction.UPDATE),
            ("x", OutboxAction.DELETE),
        ]

    def test_unsent_create_promotes_later_update(self):
        """An update following an unsent create is sent as the create."""
        ops = [
            PendingOperation(EntityKind.ITEM, OutboxAction.CREATE, "x", {"title": "0"}, 1),
            PendingOperation(EntityKind.ITEM, OutboxAction.UPDATE, "x", {"title": "b"}, 2),
        ]

        (op,) = collapse_operations(ops)

        assert op.action == OutboxAction.CREATE
        assert op.data == {"title": "b"}

    def test_unsent_create_then_delete_sends_nothing(self):
        """An entity created and deleted before any sync never leaves the device."""
        ops = [
            PendingOperation(EntityKind.FOLDER, OutboxAction.CREATE, "f", {"name": "f"}, 1),
            PendingOperation(EntityKind.ITEM, OutboxAction.CREATE, "x", {"title": "x"}, 2),
            PendingOperation(EntityKind.ITEM, OutboxAction.DELETE, "x", None, 3),
            PendingOperation(EntityKind.FOLDER, OutboxAction.DELETE, "f", None, 4),
            PendingOperation(EntityKind.ITEM, OutboxAction.DELETE, "y", None, 5),
        ]

        collapsed = collapse_operations(ops)

        assert [(op.client_id, op.action) for op in collapsed] == [("y", OutboxAction.DELETE)]


class TestMutations:
    """Tests for the local write path."""

    def test_create_item_writes_store_and_outbox(self, engine):
        """A create lands in the Local Store and the Outbox together."""
        item = engine.create_item("Hello", tags=["a"], client_id="c1")

        assert engine.get_item("c1") is item
        assert item.get_tags_list() == ["a"]
        (entry,) = engine.cache.outbox.drain_ordered()
        assert entry.action == OutboxAction.CREATE
        assert entry.entity == EntityKind.ITEM
        assert entry.get_data_dict()["title"] == "Hello"

    def test_update_unknown_or_deleted_item(self, engine):
        """Updates and deletes of missing or tombstoned items are no-ops."""
        engine.create_item("Hello", client_id="c1")
        engine.delete_item("c1")

        assert engine.update_item("c1", title="x") is None
        assert engine.update_item("missing", title="x") is None
        assert engine.delete_item("c1") is False
        assert engine.pending_count() == 2

    def test_delete_folder_queues_only_folder_delete(self, engine):
        """The cascade is not sent as per-item operations."""
        folder = engine.create_folder("Work", client_id="f1")
        for n in range(3):
            engine.create_item(f"t{n}", folder_id=folder.client_id)
        engine.cache.outbox.clear()

        assert engine.delete_folder("f1") is True

        (entry,) = engine.cache.outbox.drain_ordered()
        assert (entry.entity, entry.action, entry.client_id) == (
            EntityKind.FOLDER,
            OutboxAction.DELETE,
            "f1",
        )
        assert engine.list_items() == []

    def test_delete_folder_cancels_unsent_item_creates(self, engine):
        """Items the server never saw get a delete; known items rely on the cascade."""
        engine.create_folder("Work", client_id="f1")
        engine.create_item("synced", folder_id="f1", client_id="s")
        engine.create_item("untouched", folder_id="f1", client_id="u")
        engine.cache.outbox.clear()
        engine.create_item("fresh", folder_id="f1", client_id="n")
        engine.update_item("s", title="synced, then edited")

        engine.delete_folder("f1")

        queued = [
            (e.entity, e.action, e.client_id) for e in engine.cache.outbox.drain_ordered()
        ]
        assert queued == [
            (EntityKind.ITEM, OutboxAction.CREATE, "n"),
            (EntityKind.ITEM, OutboxAction.UPDATE, "s"),
            (EntityKind.ITEM, OutboxAction.DELETE, "n"),
            (EntityKind.FOLDER, OutboxAction.DELETE, "f1"),
        ]
        assert engine.list_items() == []

    def test_mutation_notifies_scheduler(self, engine):
        """Every mutation reports to the attached scheduler."""
        engine.scheduler = MagicMock()

        engine.create_item("a")
        engine.create_folder("b")

        assert engine.scheduler.notify_mutation.call_count == 2


class TestPerformSync:
    """Tests for the steady-state cycle."""

    async def test_dedup_to_latest(self, engine, mock_client):
        """create, update a, update b becomes one operation carrying b."""
        item = engine.create_item("0", client_id="X")
        engine.update_item(item.client_id, title="a")
        engine.update_item(item.client_id, title="b")

        result = await engine.perform_sync()

        assert result.status == SyncStatus.COMPLETED
        operations = _sent(mock_client)["operations"]
        assert len(operations) == 1
        assert operations[0]["clientId"] == "X"
        assert operations[0]["action"] == "create"
        assert operations[0]["data"]["title"] == "b"

    async def test_folder_operations_sent_separately(self, engine, mock_client):
        """Folder and item operations travel in their own lists."""
        folder = engine.create_folder("Work")
        engine.create_item("note", folder_id=folder.client_id)

        await engine.perform_sync()

        payload = _sent(mock_client)
        assert [op["clientId"] for op in payload["folderOperations"]] == [folder.client_id]
        assert len(payload["operations"]) == 1
        assert "lastSyncAt" not in payload

    async def test_clears_outbox_and_stores_watermark(self, engine, mock_client):
        """A completed cycle empties the outbox and records syncedAt."""
        engine.create_item("a")

        await engine.perform_sync()
        await engine.perform_sync()

        assert engine.pending_count() == 0
        assert engine.last_sync_at() == SYNCED_AT
        assert _sent(mock_client)["lastSyncAt"] == SYNCED_AT

    async def test_single_flight(self, engine, mock_client):
        """A second cycle while one is in flight sends nothing."""
        release = asyncio.Event()

        async def slow_sync(payload: dict[str, Any]) -> dict[str, Any]:
            await release.wait()
            return _response()

        mock_client.sync = AsyncMock(side_effect=slow_sync)
        engine.create_item("a")

        first = asyncio.create_task(engine.perform_sync())
        await asyncio.sleep(0)
        second = await engine.perform_sync()
        release.set()
        first_result = await first

        assert second.status == SyncStatus.IN_FLIGHT
        assert first_result.status == SyncStatus.COMPLETED
        assert mock_client.sync.await_count == 1
        assert engine.in_flight is False

    async def test_offline_skips_cycle(self, cache_manager, mock_client):
        """When the server is unreachable nothing is sent or cleared."""
        engine = SyncEngine(
            cache_manager=cache_manager,
            client_factory=_factory(mock_client),
            online_check=AsyncMock(return_value=False),
        )
        engine.create_item("a")

        result = await engine.perform_sync()

        assert result.status == SyncStatus.OFFLINE
        mock_client.sync.assert_not_called()
        assert engine.pending_count() == 1

    async def test_transport_failure_keeps_outbox(self, engine, mock_client):
        """A failed request leaves every entry queued."""
        mock_client.sync = AsyncMock(side_effect=httpx.ConnectError("reset"))
        engine.create_item("a")
        engine.create_item("b")

        result = await engine.perform_sync()

        assert result.status == SyncStatus.TRANSPORT_FAILED
        assert "reset" in result.error_message
        assert engine.pending_count() == 2
        assert engine.last_sync_at() is None

    async def test_last_write_wins_merge(self, engine, mock_client):
        """The server copy fully replaces a local entry with no pending change."""
        engine.cache.upsert(
            "c1",
            {"type": ItemType.NOTE, "title": "local", "content": "mine", "pinned": True},
        )
        engine.cache.commit()
        mock_client.sync = AsyncMock(
            return_value=_response(serverItems=[_server_item("c1", "server")])
        )

        result = await engine.perform_sync()

        item = engine.get_item("c1")
        assert result.pulled == 1
        assert item.title == "server"
        assert item.content == ""
        assert item.pinned is False
        assert item.server_id == "1"

    async def test_steady_state_merge_ignores_pending(self, engine, mock_client):
        """Changes queued during the request are still overwritten by the merge."""

        async def sync_with_concurrent_edit(payload: dict[str, Any]) -> dict[str, Any]:
            engine.update_item("c1", title="edited meanwhile")
            return _response(serverItems=[_server_item("c1", "server")])

        engine.create_item("original", client_id="c1")
        mock_client.sync = AsyncMock(side_effect=sync_with_concurrent_edit)

        await engine.perform_sync()

        assert engine.get_item("c1").title == "server"
        # The concurrent edit is still queued for the next cycle
        (entry,) = engine.cache.outbox.drain_ordered()
        assert entry.get_data_dict()["title"] == "edited meanwhile"

    async def test_errors_are_requeued_not_found_dropped(self, engine, mock_client):
        """error results are retried next cycle; not_found results are not."""
        engine.create_item("bad", client_id="bad")
        engine.create_item("gone", client_id="gone")
        engine.create_item("ok", client_id="ok")
        mock_client.sync = AsyncMock(
            return_value=_response(
                results=[
                    {"clientId": "bad", "status": "error", "error": "boom"},
                    {"clientId": "gone", "status": "not_found"},
                    {
                        "clientId": "ok",
                        "status": "created",
                        "item": _server_item("ok", "ok", _id="77"),
                    },
                ]
            )
        )

        result = await engine.perform_sync()

        assert result.status == SyncStatus.COMPLETED
        assert {(f.client_id, f.status) for f in result.failures} == {
            ("bad", "error"),
            ("gone", "not_found"),
        }
        (entry,) = engine.cache.outbox.drain_ordered()
        assert entry.client_id == "bad"
        assert entry.action == OutboxAction.CREATE
        assert entry.get_data_dict()["title"] == "bad"
        assert entry.attempts == 1
        assert engine.get_item("ok").server_id == "77"

    async def test_error_not_requeued_when_newer_change_pending(self, engine, mock_client):
        """A newer local intent supersedes the failed operation."""

        async def sync_then_fail(payload: dict[str, Any]) -> dict[str, Any]:
            engine.update_item("c1", title="newer")
            return _response(results=[{"clientId": "c1", "status": "error"}])

        engine.create_item("first", client_id="c1")
        mock_client.sync = AsyncMock(side_effect=sync_then_fail)

        await engine.perform_sync()

        (entry,) = engine.cache.outbox.drain_ordered()
        assert entry.action == OutboxAction.UPDATE
        assert entry.get_data_dict()["title"] == "newer"


    async def test_folder_created_and_deleted_offline_sends_nothing(
        self, engine, mock_client
    ):
        """A folder and its items that never reached the server stay deleted."""
        engine.create_folder("trip", client_id="trip")
        for n in range(3):
            engine.create_item(f"todo{n}", folder_id="trip", client_id=f"todo{n}")
        engine.delete_folder("trip")

        result = await engine.perform_sync()

        payload = _sent(mock_client)
        assert payload["operations"] == []
        assert payload["folderOperations"] == []
        assert result.failures == []
        assert engine.pending_count() == 0
        assert all(engine.get_item(f"todo{n}").deleted for n in range(3))

    async def test_error_dropped_after_max_attempts(self, engine, mock_client):
        """An operation rejected too many times is reported and not retried."""
        engine.cache.outbox.enqueue(
            EntityKind.ITEM,
            OutboxAction.CREATE,
            "bad",
            {"title": "bad"},
            attempts=MAX_SYNC_ATTEMPTS - 1,
        )
        engine.cache.commit()
        mock_client.sync = AsyncMock(
            return_value=_response(
                results=[{"clientId": "bad", "status": "error", "error": "invalid"}]
            )
        )

        result = await engine.perform_sync()

        assert [(f.client_id, f.status) for f in result.failures] == [("bad", "error")]
        assert engine.pending_count() == 0

    async def test_unmappable_snapshot_entity_is_skipped(self, engine, mock_client):
        """One entity the device cannot store does not fail the cycle."""
        mock_client.sync = AsyncMock(
            return_value=_response(
                serverItems=[
                    _server_item("odd", "odd", type="checklist"),
                    _server_item("c2", "fine"),
                ]
            )
        )

        result = await engine.perform_sync()

        assert result.status == SyncStatus.COMPLETED
        assert result.pulled == 1
        assert engine.get_item("odd") is None
        assert engine.get_item("c2").title == "fine"
        assert engine.last_sync_at() == SYNCED_AT

    async def test_apply_failure_rolls_back_cycle(self, engine, mock_client):
        """A response that cannot be applied leaves the outbox and watermark as they were."""
        engine.create_item("a", client_id="a")

        with patch.object(engine, "_merge_snapshot", side_effect=ValueError("bad snapshot")):
            result = await engine.perform_sync()

        assert result.status == SyncStatus.APPLY_FAILED
        assert "bad snapshot" in result.error_message
        assert engine.in_flight is False

        # A later commit must not persist the abandoned clear
        engine.create_item("z", client_id="z")
        assert [e.client_id for e in engine.cache.outbox.drain_ordered()] == ["a", "z"]
        assert engine.last_sync_at() is None


class TestInitialSync:
    """Tests for the bootstrap pull."""

    async def test_skips_entities_with_pending_changes(self, engine, mock_client):
        """Unsent local edits are not clobbered by the bootstrap copy."""
        engine.create_item("local edit", client_id="c1")
        mock_client.fetch_items = AsyncMock(
            return_value=[_server_item("c1", "server"), _server_item("c2", "fresh")]
        )
        mock_client.fetch_folders = AsyncMock(
            return_value=[{"_id": "5", "clientId": "f1", "name": "Work"}]
        )

        result = await engine.initial_sync()

        assert result.status == SyncStatus.COMPLETED
        assert result.pulled == 2
        assert engine.get_item("c1").title == "local edit"
        assert engine.get_item("c2").title == "fresh"
        assert engine.find_folder("Work").server_id == "5"
        assert engine.last_sync_at() is not None
        mock_client.sync.assert_not_called()

    async def test_shares_in_flight_guard(self, engine, mock_client):
        """Bootstrap does not run while a cycle is in flight."""
        engine.in_flight = True

        result = await engine.initial_sync()

        assert result.status == SyncStatus.IN_FLIGHT
        mock_client.fetch_items.assert_not_called()

    async def test_transport_failure(self, engine, mock_client):
        """A failed fetch leaves the watermark unset."""
        mock_client.fetch_items = AsyncMock(side_effect=httpx.ReadTimeout("slow"))

        result = await engine.initial_sync()

        assert result.status == SyncStatus.TRANSPORT_FAILED
        assert engine.last_sync_at() is None
