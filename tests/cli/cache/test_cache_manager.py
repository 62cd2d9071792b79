"""Tests for cache manager."""

from datetime import UTC, datetime

import pytest

from notico.cli.cache.manager import CacheManager, normalize_item_type, split_terms
from notico.cli.cache.models import EntityKind, ItemType, OutboxAction


def _add_item(manager: CacheManager, client_id: str, title: str, **fields: object) -> None:
    now = datetime.now(UTC)
    manager.upsert(
        client_id,
        {"type": ItemType.NOTE, "title": title, "created_at": now, "updated_at": now, **fields},
    )


class TestListItems:
    """Tests for list filters."""

    def test_type_all_means_no_filter(self, cache_manager):
        """The "all" type and None both list every type."""
        _add_item(cache_manager, "n", "note")
        _add_item(cache_manager, "u", "link", type=ItemType.URL, url="https://x")

        assert len(cache_manager.list_items(item_type="all")) == 2
        assert len(cache_manager.list_items()) == 2
        assert [i.client_id for i in cache_manager.list_items(item_type="url")] == ["u"]

    def test_search_string_is_split(self, cache_manager):
        """A whitespace query behaves like a list of terms."""
        _add_item(cache_manager, "1", "foo bar")
        _add_item(cache_manager, "2", "foo")

        result = cache_manager.list_items(search_terms="  FOO   bar ")

        assert [i.client_id for i in result] == ["1"]

    def test_unknown_type_raises(self, cache_manager):
        """An unknown type name is rejected."""
        with pytest.raises(ValueError):
            cache_manager.list_items(item_type="video")


class TestItemWrites:
    """Tests for item writes."""

    def test_patch_bumps_updated_at(self, cache_manager):
        """A local patch stamps a newer updated_at."""
        _add_item(
            cache_manager,
            "1",
            "old",
            updated_at=datetime(2020, 1, 1, tzinfo=UTC),
        )

        item = cache_manager.patch("1", {"title": "new"})

        assert item is not None
        assert item.title == "new"
        assert item.updated_at.year > 2020

    def test_tombstone_hides_from_list_but_keeps_row(self, cache_manager):
        """A tombstoned item is still retrievable by client id."""
        _add_item(cache_manager, "1", "gone")

        cache_manager.tombstone("1")

        assert cache_manager.list_items() == []
        item = cache_manager.get("1")
        assert item is not None
        assert item.deleted is True

    def test_commit_persists_for_new_manager(self, cache_manager):
        """Committed writes are visible to another manager."""
        _add_item(cache_manager, "1", "kept")
        cache_manager.commit()

        other = CacheManager()
        try:
            assert other.get("1") is not None
        finally:
            other.close()


class TestFolders:
    """Tests for folder operations."""

    def test_tombstone_folder_cascades_locally(self, cache_manager):
        """Deleting a folder tombstones its live items in the replica."""
        cache_manager.upsert_folder("f1", {"name": "Work"})
        cache_manager.upsert_folder("f2", {"name": "Home"})
        for n in range(3):
            _add_item(cache_manager, f"w{n}", f"work {n}", folder_id="f1")
        _add_item(cache_manager, "h", "home", folder_id="f2")

        cache_manager.tombstone_folder("f1")

        assert [f.name for f in cache_manager.list_folders()] == ["Home"]
        assert [i.client_id for i in cache_manager.list_items()] == ["h"]
        assert all(cache_manager.get(f"w{n}").deleted for n in range(3))
        assert cache_manager.outbox.pending_count() == 0

    def test_tombstone_folder_cancels_queued_item_creates(self, cache_manager):
        """An item whose create is still queued gets a delete queued after it."""
        cache_manager.upsert_folder("f1", {"name": "Work"})
        _add_item(cache_manager, "new", "new", folder_id="f1")
        _add_item(cache_manager, "edited", "edited", folder_id="f1")
        cache_manager.outbox.enqueue(EntityKind.ITEM, OutboxAction.CREATE, "new", {"title": "new"})
        cache_manager.outbox.enqueue(
            EntityKind.ITEM, OutboxAction.UPDATE, "edited", {"title": "edited"}
        )

        cache_manager.tombstone_folder("f1")

        queued = [(e.action, e.client_id) for e in cache_manager.outbox.drain_ordered()]
        assert queued == [
            (OutboxAction.CREATE, "new"),
            (OutboxAction.UPDATE, "edited"),
            (OutboxAction.DELETE, "new"),
        ]

    def test_find_folder_by_name_or_id(self, cache_manager):
        """Folders resolve by client id or by name."""
        cache_manager.upsert_folder("f1", {"name": "Work"})

        assert cache_manager.find_folder("f1").name == "Work"
        assert cache_manager.find_folder("Work").client_id == "f1"
        assert cache_manager.find_folder("nope") is None

    def test_tombstone_unknown_folder(self, cache_manager):
        """Tombstoning an unknown folder returns None."""
        assert cache_manager.tombstone_folder("missing") is None


def test_normalize_item_type():
    """Type filters accept enums, names, "all" and None."""
    assert normalize_item_type(None) is None
    assert normalize_item_type("all") is None
    assert normalize_item_type("reminder") is ItemType.REMINDER
    assert normalize_item_type(ItemType.URL) is ItemType.URL


def test_split_terms():
    """Terms come from a list or a whitespace string."""
    assert split_terms(None) == []
    assert split_terms("a  b") == ["a", "b"]
    assert split_terms(["a", "", "b"]) == ["a", "b"]
