"""Local replica models: entities, outbox and sync state."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class CacheBase(DeclarativeBase):
    """Base class for all cache SQLAlchemy models."""

    # Type annotation map for common types
    type_annotation_map: ClassVar[dict[type, Any]] = {
        datetime: DateTime(timezone=True),
    }


class ItemType(str, Enum):
    """Kind of item."""

    NOTE = "note"
    URL = "url"
    REMINDER = "reminder"


class EntityKind(str, Enum):
    """Kinds of entity that replicate."""

    ITEM = "item"
    FOLDER = "folder"


class OutboxAction(str, Enum):
    """Mutation recorded in the outbox."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ReplicaMixin:
    """Columns every replicated entity carries."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    client_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    server_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deleted: Mapped[bool] = mapped_column(default=False, nullable=False)


class CachedItem(CacheBase, ReplicaMixin):
    """Local copy of an item."""

    __tablename__ = "cached_items"

    type: Mapped[ItemType] = mapped_column(
        SqlEnum(
            ItemType,
            name="item_type",
            values_callable=lambda obj: [item.value for item in obj],
        ),
        nullable=False,
        default=ItemType.NOTE,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    reminder_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reminder_completed: Mapped[bool] = mapped_column(default=False, nullable=False)
    tags: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON array as string
    pinned: Mapped[bool] = mapped_column(default=False, nullable=False)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    folder_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    def get_tags_list(self) -> list[str]:
        """Parse tags JSON string to list."""
        if self.tags:
            try:
                result = json.loads(self.tags)
                return result if isinstance(result, list) else []
            except json.JSONDecodeError:
                return []
        return []

    def set_tags_list(self, tags: list[str]) -> None:
        """Convert tags list to JSON string."""
        self.tags = json.dumps(list(tags))

    def searchable_text(self) -> str:
        """Lowercased title, content, tags and url joined for substring search."""
        tags = " ".join(self.get_tags_list())
        return f"{self.title} {self.content} {tags} {self.url or ''}".lower()


class CachedFolder(CacheBase, ReplicaMixin):
    """Local copy of a folder."""

    __tablename__ = "cached_folders"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)


class OutboxEntry(CacheBase):
    """A mutation waiting to be transmitted."""

    __tablename__ = "outbox_entries"

    # Autoincrement id doubles as the append sequence
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entity: Mapped[EntityKind] = mapped_column(
        SqlEnum(
            EntityKind,
            name="entity_kind",
            values_callable=lambda obj: [item.value for item in obj],
        ),
        nullable=False,
    )
    action: Mapped[OutboxAction] = mapped_column(
        SqlEnum(
            OutboxAction,
            name="outbox_action",
            values_callable=lambda obj: [item.value for item in obj],
        ),
        nullable=False,
    )
    client_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    data: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON object as string
    queued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    # Number of earlier transmissions the server rejected with an error
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def get_data_dict(self) -> dict[str, Any] | None:
        """Parse the data JSON string."""
        if self.data is None:
            return None
        try:
            result = json.loads(self.data)
        except json.JSONDecodeError:
            return None
        return result if isinstance(result, dict) else None

    def set_data_dict(self, data: dict[str, Any] | None) -> None:
        """Store data as a JSON string."""
        self.data = None if data is None else json.dumps(data)


class SyncState(CacheBase):
    """Durable key/value sync bookkeeping (the pull watermark)."""

    __tablename__ = "sync_state"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
