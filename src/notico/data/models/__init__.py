"""Data models package."""

from notico.data.models.base import Base, SyncedEntityMixin, TimestampMixin
from notico.data.models.folder import Folder
from notico.data.models.item import Item, ItemType

__all__ = [
    "Base",
    "Folder",
    "Item",
    "ItemType",
    "SyncedEntityMixin",
    "TimestampMixin",
]
