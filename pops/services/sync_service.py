"""Incremental Notion -> SQLite mirror.

One pass per source database: load cursor, fetch pages edited since the
cursor, map them to rows, upsert the batch atomically, then advance the
cursor to the newest edit time seen. The cursor only moves after the write
commits, so a failed pass is simply repeated by the next one.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from pops.models.mirror import Budget, Entity, InventoryItem, Transaction, WishListItem
from pops.services.dag import topological_order
from pops.services.datetime_service import format_iso, parse_timestamp
from pops.services.mirror_mapping import (
    EntityLookup,
    MirrorRow,
    build_entity_lookup,
    map_budget,
    map_entity,
    map_inventory_item,
    map_transaction,
    map_wish_list_item,
)
from pops.services.periodic import PeriodicTask
from pops.services.upsert_service import advance_cursor, load_cursor, upsert_rows

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from pops.config import Settings
    from pops.database import Store
    from pops.models.base import Base
    from pops.notion.client import NotionPage

logger = logging.getLogger(__name__)


class PageSource(Protocol):
    """Anything that can list pages of a Notion database edited after a cursor."""

    async def fetch_database_pages(
        self, database_id: str, since: datetime | None = None
    ) -> list[NotionPage]: ...


@dataclass(frozen=True)
class MirrorSource:
    """One Notion database mirrored into one table."""

    kind: str
    label: str
    database_id: str
    model: type[Base]
    mapper: Callable[[NotionPage, EntityLookup | None], MirrorRow]
    needs_entity_lookup: bool = False
    depends_on: tuple[str, ...] = ()


def default_sources(settings: Settings) -> list[MirrorSource]:
    """The five mirrored databases.

    Transactions and inventory denormalize entity names, so they depend on
    the entities source.
    """
    ids = settings.source_database_ids()
    return [
        MirrorSource("entities", "Entities", ids["entities"], Entity, map_entity),
        MirrorSource(
            "transactions",
            "Balance Sheet",
            ids["transactions"],
            Transaction,
            map_transaction,
            needs_entity_lookup=True,
            depends_on=("entities",),
        ),
        MirrorSource(
            "inventory",
            "Home Inventory",
            ids["inventory"],
            InventoryItem,
            map_inventory_item,
            needs_entity_lookup=True,
            depends_on=("entities",),
        ),
        MirrorSource("budgets", "Budgets", ids["budgets"], Budget, map_budget),
        MirrorSource("wish_list", "Wish List", ids["wish_list"], WishListItem, map_wish_list_item),
    ]


@dataclass
class SyncPassResult:
    """Outcome of one pass over one source database."""

    kind: str
    fetched: int = 0
    upserted: int = 0
    cursor_before: str | None = None
    cursor_after: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SyncReport:
    """Outcome of a full pass set, in execution order."""

    results: list[SyncPassResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failed(self) -> list[str]:
        return [r.kind for r in self.results if not r.ok]


def _max_edit_time(pages: Iterable[NotionPage]) -> datetime | None:
    newest: datetime | None = None
    for page in pages:
        raw = page.get("last_edited_time")
        if not raw:
            continue
        edited = parse_timestamp(raw)
        if newest is None or edited > newest:
            newest = edited
    return newest


class SyncOrchestrator:
    """Drive fetch -> map -> write -> advance for a set of sources.

    Args:
        store: Target store; always passed in, never looked up globally.
        client: Page source, normally a ``NotionClient``.
        sources: Mirrored databases. ``depends_on`` names are enforced as an
            ordering constraint by ``run_all``.
    """

    def __init__(self, store: Store, client: PageSource, sources: list[MirrorSource]) -> None:
        self._store = store
        self._client = client
        self._sources = {source.kind: source for source in sources}
        # Validate the declared ordering once, at construction.
        self._order = topological_order(
            {kind: source.depends_on for kind, source in self._sources.items()}
        )
        self._lock = asyncio.Lock()

    @property
    def order(self) -> list[str]:
        return list(self._order)

    @property
    def store(self) -> Store:
        return self._store

    async def run_pass(self, source: MirrorSource) -> SyncPassResult:
        """Run one pass for ``source``. Failures are reported, never raised."""
        result = SyncPassResult(kind=source.kind)
        try:
            await self._run_pass(source, result)
        except Exception as exc:
            result.error = f"{type(exc).__name__}: {exc}"
            logger.error(
                "[sync] %s: pass failed, cursor left at %s: %s",
                source.label,
                result.cursor_before,
                exc,
                exc_info=exc,
            )
        return result

    async def _run_pass(self, source: MirrorSource, result: SyncPassResult) -> None:
        since = await load_cursor(self._store, source.database_id)
        result.cursor_before = format_iso(since) if since else None
        result.cursor_after = result.cursor_before
        logger.info(
            "[sync] %s: fetching pages%s",
            source.label,
            f" since {result.cursor_before}" if since else " (full sync)",
        )

        pages = await self._client.fetch_database_pages(source.database_id, since)
        result.fetched = len(pages)
        if not pages:
            logger.info("[sync] %s: nothing changed", source.label)
            return

        lookup: EntityLookup | None = None
        if source.needs_entity_lookup:
            async with self._store.session_factory() as session:
                lookup = await build_entity_lookup(session)
        rows = [source.mapper(page, lookup) for page in pages]

        result.upserted = await upsert_rows(self._store, source.model, rows)
        logger.info("[sync] %s: upserted %d rows", source.label, result.upserted)

        newest = _max_edit_time(pages)
        if newest is not None:
            stored = await advance_cursor(self._store, source.database_id, newest)
            result.cursor_after = format_iso(stored)

    async def run_all(self, kinds: Iterable[str] | None = None) -> SyncReport:
        """Run passes for ``kinds`` (all sources when None) in dependency order.

        A failed source does not stop the others; dependents of a failed
        source still run against whatever entity rows are already stored.
        Concurrent calls are serialized.
        """
        selected = set(self._sources) if kinds is None else set(kinds)
        unknown = selected - set(self._sources)
        if unknown:
            msg = f"Unknown sync source(s): {sorted(unknown)}"
            raise ValueError(msg)

        report = SyncReport()
        async with self._lock:
            logger.info("[sync] Starting incremental sync of %s", self._store.name)
            failed: set[str] = set()
            for kind in self._order:
                if kind not in selected:
                    continue
                source = self._sources[kind]
                stale = failed.intersection(source.depends_on)
                if stale:
                    logger.warning(
                        "[sync] %s: dependency %s failed, using stored entity names",
                        source.label,
                        ", ".join(sorted(stale)),
                    )
                result = await self.run_pass(source)
                if not result.ok:
                    failed.add(kind)
                report.results.append(result)
            logger.info(
                "[sync] Sync complete (%d ok, %d failed)",
                len(report.results) - len(failed),
                len(failed),
            )
        return report


class SyncScheduler:
    """Run ``orchestrator.run_all`` on a fixed interval."""

    def __init__(self, orchestrator: SyncOrchestrator, interval_seconds: float) -> None:
        self._orchestrator = orchestrator
        self._task = PeriodicTask("notion-sync", interval_seconds, self._tick)

    async def _tick(self) -> None:
        report = await self._orchestrator.run_all()
        if not report.ok:
            logger.warning("[sync] Scheduled sync had failures: %s", ", ".join(report.failed))

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()
