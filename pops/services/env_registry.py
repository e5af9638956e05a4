"""Named environment registry: lifecycle of isolated, disposable stores.

The registry table lives in the production store. Each environment gets its
own SQLite file under ``envs_dir``; the file and the registry row are kept in
step, and startup reconciliation repairs any drift left by a crash.
"""

from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from pops.database import PROD_STORE_NAME, Store, init_schema, open_store, remove_store_files
from pops.exceptions import (
    EnvironmentConflictError,
    EnvironmentNotFoundError,
    InvalidEnvironmentNameError,
    InvalidTtlError,
)
from pops.models.environment import EnvironmentRecord
from pops.services.datetime_service import (
    expiry_for,
    format_iso,
    now_utc,
    parse_timestamp,
    seconds_remaining,
)
from pops.services.seed_service import seed_store

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?$")
MAX_NAME_LENGTH = 64


class SeedMode(StrEnum):
    NONE = "none"
    TEST = "test"


@dataclass(frozen=True)
class EnvironmentInfo:
    """Registry record with parsed timestamps."""

    name: str
    db_path: Path
    seed_mode: SeedMode
    ttl_seconds: int | None
    created_at: datetime
    expires_at: datetime | None

    def is_expired(self, now: datetime) -> bool:
        # Equal to expires_at is still live.
        return self.expires_at is not None and now > self.expires_at

    def ttl_remaining(self, now: datetime) -> int | None:
        return seconds_remaining(self.expires_at, now)


@dataclass
class StartupCleanupResult:
    expired: list[str] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)


def _to_info(record: EnvironmentRecord) -> EnvironmentInfo:
    return EnvironmentInfo(
        name=record.name,
        db_path=Path(record.db_path),
        seed_mode=SeedMode(record.seed_type),
        ttl_seconds=record.ttl_seconds,
        created_at=parse_timestamp(record.created_at),
        expires_at=parse_timestamp(record.expires_at) if record.expires_at else None,
    )


def validate_name(name: str) -> None:
    """Raise InvalidEnvironmentNameError unless ``name`` is a usable environment name."""
    if name == PROD_STORE_NAME:
        raise InvalidEnvironmentNameError(name, f"'{PROD_STORE_NAME}' is reserved")
    if not 1 <= len(name) <= MAX_NAME_LENGTH:
        raise InvalidEnvironmentNameError(
            name, f"Name must be 1-{MAX_NAME_LENGTH} characters"
        )
    if not _NAME_RE.match(name):
        raise InvalidEnvironmentNameError(
            name,
            "Name must start and end with alphanumeric characters, hyphens allowed in between",
        )


class EnvironmentRegistry:
    """Create, look up, expire and delete named environments.

    Operations on the same name are serialized by a per-name lock, so a TTL
    sweep can never remove an environment that was deleted and recreated
    between the sweep's listing and its deletion.
    """

    def __init__(
        self,
        prod_store: Store,
        envs_dir: Path,
        *,
        clock: Callable[[], datetime] = now_utc,
        busy_timeout_ms: int = 5000,
        max_ttl_seconds: int | None = None,
        seeder: Callable[[Store], Awaitable[None]] = seed_store,
    ) -> None:
        self._prod = prod_store
        self._envs_dir = envs_dir
        self._clock = clock
        self._busy_timeout_ms = busy_timeout_ms
        self._max_ttl_seconds = max_ttl_seconds
        self._seeder = seeder
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._stores: dict[str, Store] = {}

    @property
    def envs_dir(self) -> Path:
        return self._envs_dir

    def now(self) -> datetime:
        return self._clock()

    def path_for(self, name: str) -> Path:
        return self._envs_dir / f"{name}.db"

    @asynccontextmanager
    async def _locked(self, name: str) -> AsyncIterator[None]:
        """Hold the per-name lock; the entry is dropped once nobody holds or awaits it."""
        lock = self._locks.setdefault(name, asyncio.Lock())
        self._lock_users[name] = self._lock_users.get(name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[name] -= 1
            if not self._lock_users[name]:
                del self._lock_users[name]
                del self._locks[name]

    def _open(self, path: Path, name: str) -> Store:
        return open_store(
            path, name=name, busy_timeout_ms=self._busy_timeout_ms, must_exist=True
        )

    def _validate_ttl(self, name: str, ttl_seconds: int | None) -> None:
        if ttl_seconds is None:
            return
        if ttl_seconds <= 0:
            raise InvalidTtlError(name, "TTL must be a positive number of seconds")
        if self._max_ttl_seconds is not None and ttl_seconds > self._max_ttl_seconds:
            raise InvalidTtlError(
                name, f"TTL must not exceed {self._max_ttl_seconds} seconds"
            )

    async def _load(self, name: str) -> EnvironmentRecord | None:
        async with self._prod.session_factory() as session:
            return await session.get(EnvironmentRecord, name)

    async def _all_records(self) -> list[EnvironmentRecord]:
        async with self._prod.session_factory() as session:
            stmt = select(EnvironmentRecord).order_by(EnvironmentRecord.created_at.desc())
            return list((await session.execute(stmt)).scalars().all())

    async def _remove(self, info: EnvironmentInfo) -> None:
        """Drop the cached handle, the store files, then the registry row."""
        store = self._stores.pop(info.name, None)
        if store is not None:
            await store.dispose()
        remove_store_files(info.db_path)
        async with self._prod.session_factory() as session, session.begin():
            await session.execute(
                delete(EnvironmentRecord).where(EnvironmentRecord.name == info.name)
            )

    async def create(
        self,
        name: str,
        seed_mode: SeedMode = SeedMode.NONE,
        ttl_seconds: int | None = None,
    ) -> EnvironmentInfo:
        """Provision a new environment store and register it."""
        validate_name(name)
        self._validate_ttl(name, ttl_seconds)
        async with self._locked(name):
            existing = await self._load(name)
            if existing is not None:
                existing_info = _to_info(existing)
                if not existing_info.is_expired(self.now()):
                    raise EnvironmentConflictError(name)
                logger.info("Replacing expired environment %s", name)
                await self._remove(existing_info)

            path = self.path_for(name)
            # A file with no registry row is left over from a crash.
            remove_store_files(path)
            self._envs_dir.mkdir(parents=True, exist_ok=True)
            path.touch()
            store = self._open(path, name)
            created_at = self.now()
            expires_at = expiry_for(created_at, ttl_seconds)
            try:
                await init_schema(store)
                if seed_mode == SeedMode.TEST:
                    await self._seeder(store)
                async with self._prod.session_factory() as session, session.begin():
                    session.add(
                        EnvironmentRecord(
                            name=name,
                            db_path=str(path),
                            seed_type=seed_mode.value,
                            ttl_seconds=ttl_seconds,
                            created_at=format_iso(created_at),
                            expires_at=format_iso(expires_at) if expires_at else None,
                        )
                    )
            except IntegrityError as exc:
                await store.dispose()
                remove_store_files(path)
                raise EnvironmentConflictError(name) from exc
            except Exception:
                await store.dispose()
                remove_store_files(path)
                raise

            self._stores[name] = store
            logger.info(
                "Created environment %s (seed=%s, ttl=%s)", name, seed_mode.value, ttl_seconds
            )
            return EnvironmentInfo(
                name=name,
                db_path=path,
                seed_mode=seed_mode,
                ttl_seconds=ttl_seconds,
                created_at=parse_timestamp(format_iso(created_at)),
                expires_at=parse_timestamp(format_iso(expires_at)) if expires_at else None,
            )

    async def get(self, name: str) -> EnvironmentInfo:
        """Return the live environment ``name`` or raise EnvironmentNotFoundError."""
        record = await self._load(name)
        if record is None:
            raise EnvironmentNotFoundError(name)
        info = _to_info(record)
        if info.is_expired(self.now()):
            raise EnvironmentNotFoundError(name)
        return info

    async def list(self) -> list[EnvironmentInfo]:
        """All registry records, newest first, including expired ones not yet swept."""
        return [_to_info(record) for record in await self._all_records()]

    async def list_expired(self) -> list[EnvironmentInfo]:
        now = self.now()
        return [info for info in await self.list() if info.is_expired(now)]

    async def update_ttl(self, name: str, ttl_seconds: int | None) -> EnvironmentInfo:
        """Restart the TTL clock from now. ``None`` removes the expiry."""
        self._validate_ttl(name, ttl_seconds)
        async with self._locked(name):
            info = await self.get(name)
            expires_at = expiry_for(self.now(), ttl_seconds)
            async with self._prod.session_factory() as session, session.begin():
                record = await session.get(EnvironmentRecord, name)
                if record is None:
                    raise EnvironmentNotFoundError(name)
                record.ttl_seconds = ttl_seconds
                record.expires_at = format_iso(expires_at) if expires_at else None
            logger.info("Updated TTL of environment %s to %s", name, ttl_seconds)
            return EnvironmentInfo(
                name=info.name,
                db_path=info.db_path,
                seed_mode=info.seed_mode,
                ttl_seconds=ttl_seconds,
                created_at=info.created_at,
                expires_at=parse_timestamp(format_iso(expires_at)) if expires_at else None,
            )

    async def delete(self, name: str) -> bool:
        """Delete an environment. Returns False if there was nothing to delete."""
        validate_name(name)
        async with self._locked(name):
            record = await self._load(name)
            if record is None:
                return False
            await self._remove(_to_info(record))
        logger.info("Deleted environment %s", name)
        return True

    async def delete_if_expired(self, name: str) -> bool:
        """Delete ``name`` only if it is still expired once the lock is held."""
        async with self._locked(name):
            record = await self._load(name)
            if record is None:
                return False
            info = _to_info(record)
            if not info.is_expired(self.now()):
                return False
            await self._remove(info)
        logger.info("Deleted expired environment %s", name)
        return True

    async def startup_cleanup(self) -> StartupCleanupResult:
        """Reconcile registry rows with the files in ``envs_dir``."""
        result = StartupCleanupResult()
        self._envs_dir.mkdir(parents=True, exist_ok=True)

        for info in await self.list_expired():
            if await self.delete_if_expired(info.name):
                result.expired.append(info.name)

        live: set[str] = set()
        for info in await self.list():
            if info.db_path.exists():
                live.add(info.name)
                continue
            async with self._locked(info.name):
                async with self._prod.session_factory() as session, session.begin():
                    await session.execute(
                        delete(EnvironmentRecord).where(EnvironmentRecord.name == info.name)
                    )
            logger.warning("Removed registry entry %s with missing store file", info.name)
            result.orphaned.append(info.name)

        for path in sorted(self._envs_dir.glob("*.db")):
            name = path.stem
            if name in live:
                continue
            async with self._locked(name):
                remove_store_files(path)
            logger.warning("Removed orphaned store file %s", path)
            if name not in result.orphaned:
                result.orphaned.append(name)

        return result

    async def store_for(self, info: EnvironmentInfo) -> Store:
        """Open (or reuse) the store handle for a live environment."""
        store = self._stores.get(info.name)
        if store is not None and store.path == info.db_path:
            return store
        if not info.db_path.exists():
            raise EnvironmentNotFoundError(info.name)
        store = self._open(info.db_path, info.name)
        self._stores[info.name] = store
        return store

    async def close(self) -> None:
        stores = list(self._stores.values())
        self._stores.clear()
        for store in stores:
            await store.dispose()
