"""Store handles: one async engine and session factory per SQLite file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from pops.models.base import Base

logger = logging.getLogger(__name__)

PROD_STORE_NAME = "prod"

_SQLITE_COMPANION_SUFFIXES = ("-wal", "-shm", "-journal")


@dataclass
class Store:
    """An explicitly constructed handle to one SQLite store.

    The production mirror and every named environment each get their own
    ``Store``; nothing in the application reaches for a global connection.
    """

    name: str
    path: Path
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]

    @property
    def is_prod(self) -> bool:
        return self.name == PROD_STORE_NAME

    async def dispose(self) -> None:
        await self.engine.dispose()


def _install_sqlite_pragmas(engine: AsyncEngine, busy_timeout_ms: int) -> None:
    """Enable WAL journaling and a bounded busy wait on every new connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def open_store(
    path: Path,
    *,
    name: str = PROD_STORE_NAME,
    busy_timeout_ms: int = 5000,
    must_exist: bool = False,
    echo: bool = False,
) -> Store:
    """Create the engine and session factory for a store file.

    The parent directory is created if needed; the schema is not touched
    (see ``init_schema``). With ``must_exist`` connections are opened
    read-write without create, so a handle outliving its deleted file fails
    to connect instead of bringing back an empty database.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if must_exist:
        url = f"sqlite+aiosqlite:///file:{path}?mode=rw&uri=true"
    else:
        url = f"sqlite+aiosqlite:///{path}"
    engine = create_async_engine(
        url,
        echo=echo,
        connect_args={"timeout": busy_timeout_ms / 1000},
    )
    _install_sqlite_pragmas(engine, busy_timeout_ms)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return Store(name=name, path=path, engine=engine, session_factory=session_factory)


async def init_schema(store: Store) -> None:
    """Create all tables. Idempotent."""
    async with store.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def store_files(path: Path) -> list[Path]:
    """The database file followed by its journal companions."""
    return [path] + [path.with_name(path.name + suffix) for suffix in _SQLITE_COMPANION_SUFFIXES]


def remove_store_files(path: Path) -> bool:
    """Delete a store file and its companions. Returns True if the main file existed."""
    existed = path.exists()
    for file_path in store_files(path):
        file_path.unlink(missing_ok=True)
    return existed
