"""Folder model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from notico.data.models.base import BaseModel, SyncedEntityMixin


class Folder(BaseModel, SyncedEntityMixin):
    """A named grouping that items reference by client id."""

    __tablename__ = "folders"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)
