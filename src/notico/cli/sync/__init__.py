"""Sync coordination between the device replica and the server."""

from notico.cli.sync.engine import SyncEngine, collapse_operations
from notico.cli.sync.protocol import (
    OperationFailure,
    SyncClient,
    SyncResult,
    SyncStatus,
)
from notico.cli.sync.scheduler import SyncScheduler

__all__ = [
    "OperationFailure",
    "SyncClient",
    "SyncEngine",
    "SyncResult",
    "SyncScheduler",
    "SyncStatus",
    "collapse_operations",
]
