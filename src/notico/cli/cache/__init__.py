"""Local replica for offline-first operation."""

from notico.cli.cache.database import (
    dispose_cache_engine,
    get_cache_db_path,
    get_cache_engine,
    get_cache_session,
    init_cache_db,
)
from notico.cli.cache.manager import CacheManager
from notico.cli.cache.models import (
    CachedFolder,
    CachedItem,
    EntityKind,
    ItemType,
    OutboxAction,
    OutboxEntry,
    SyncState,
)

__all__ = [
    "CacheManager",
    "CachedFolder",
    "CachedItem",
    "EntityKind",
    "ItemType",
    "OutboxAction",
    "OutboxEntry",
    "SyncState",
    "dispose_cache_engine",
    "get_cache_db_path",
    "get_cache_engine",
    "get_cache_session",
    "init_cache_db",
]
