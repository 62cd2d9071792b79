"""Item model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import Mapped, mapped_column

from notico.data.models.base import BaseModel, SyncedEntityMixin


class ItemType(str, Enum):
    """Kind of item."""

    NOTE = "note"
    URL = "url"
    REMINDER = "reminder"


class Item(BaseModel, SyncedEntityMixin):
    """A note, link or reminder owned by the user."""

    __tablename__ = "items"

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
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    pinned: Mapped[bool] = mapped_column(default=False, nullable=False)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # Weak reference to Folder.client_id, not a foreign key
    folder_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
