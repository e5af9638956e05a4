"""Atomic batch upserts and the per-database sync cursor."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from pops.models.sync import SyncCursor
from pops.services.datetime_service import format_iso, parse_timestamp

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from pops.database import Store
    from pops.models.base import Base

logger = logging.getLogger(__name__)

KEY_COLUMN = "notion_id"


async def upsert_rows(store: Store, model: type[Base], rows: Sequence[dict[str, Any]]) -> int:
    """Insert or fully overwrite ``rows`` keyed by ``notion_id``.

    Every non-key column takes the incoming value; nothing is merged. The
    whole batch runs in one transaction and is rolled back on any error.
    Returns the number of rows written.
    """
    if not rows:
        return 0

    table = model.__table__
    mutable_columns = [col.name for col in table.columns if col.name != KEY_COLUMN]

    async with store.session_factory() as session, session.begin():
        for row in rows:
            stmt = sqlite_insert(table).values(**row)
            stmt = stmt.on_conflict_do_update(
                index_elements=[KEY_COLUMN],
                set_={name: stmt.excluded[name] for name in mutable_columns},
            )
            await session.execute(stmt)
    return len(rows)


async def load_cursor(store: Store, database_id: str) -> datetime | None:
    """Edit-time watermark for a source database, or None before the first sync."""
    async with store.session_factory() as session:
        stored = await session.scalar(
            select(SyncCursor.last_edited_time).where(SyncCursor.database_id == database_id)
        )
    return parse_timestamp(stored) if stored else None


async def advance_cursor(store: Store, database_id: str, candidate: datetime) -> datetime:
    """Move the cursor forward to ``candidate``; never moves it back.

    Returns the value stored after the call.
    """
    async with store.session_factory() as session, session.begin():
        cursor = await session.get(SyncCursor, database_id)
        if cursor is None:
            session.add(SyncCursor(database_id=database_id, last_edited_time=format_iso(candidate)))
            return candidate
        current = parse_timestamp(cursor.last_edited_time)
        if candidate <= current:
            logger.debug(
                "Cursor for %s stays at %s (candidate %s)",
                database_id,
                cursor.last_edited_time,
                format_iso(candidate),
            )
            return current
        cursor.last_edited_time = format_iso(candidate)
        return candidate


async def list_cursors(store: Store) -> list[SyncCursor]:
    async with store.session_factory() as session:
        result = await session.scalars(select(SyncCursor).order_by(SyncCursor.database_id))
        return list(result.all())
