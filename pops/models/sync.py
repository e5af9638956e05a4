"""Sync cursor model."""

from __future__ import annotations

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from pops.models.base import Base


class SyncCursor(Base):
    """Edit-time watermark per Notion source database."""

    __tablename__ = "sync_cursors"

    database_id: Mapped[str] = mapped_column(Text, primary_key=True)
    last_edited_time: Mapped[str] = mapped_column(Text, nullable=False)
