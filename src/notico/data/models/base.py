"""Base models and mixins for SQLAlchemy ORM."""

from datetime import UTC, datetime
from typing import Any, ClassVar

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    # Type annotation map for common types
    type_annotation_map: ClassVar[dict[type, Any]] = {
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns.

    Timestamps are stamped in Python rather than by the database so that the
    sync watermark comparison works on identical UTC values everywhere.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        index=True,
    )


class IDMixin:
    """Mixin that adds an integer primary key id column."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)


class SyncedEntityMixin:
    """Columns shared by every entity that replicates to devices."""

    client_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    deleted: Mapped[bool] = mapped_column(default=False, nullable=False)


class BaseModel(Base, IDMixin, TimestampMixin):
    """
    Base model with id, created_at, and updated_at columns.

    This is an abstract base that should be inherited by concrete models.
    """

    __abstract__ = True
