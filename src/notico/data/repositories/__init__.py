"""Repositories package."""

from notico.data.repositories.base import BaseRepository, SyncedRepository
from notico.data.repositories.folder import FolderRepository
from notico.data.repositories.item import ItemRepository

__all__ = [
    "BaseRepository",
    "FolderRepository",
    "ItemRepository",
    "SyncedRepository",
]
