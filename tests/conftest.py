"""Shared test fixtures for POPS."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient

from pops.config import Settings
from pops.database import Store, init_schema, open_store
from pops.main import create_app
from pops.services.env_registry import EnvironmentRegistry
from pops.services.run_tracker import SyncRunTracker
from pops.services.sync_service import SyncOrchestrator, default_sources

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from fastapi import FastAPI

    from pops.services.sync_service import PageSource

TEST_DATABASE_IDS = {
    "notion_entities_db": "db-entities",
    "notion_balance_sheet_db": "db-balance-sheet",
    "notion_inventory_db": "db-inventory",
    "notion_budget_db": "db-budgets",
    "notion_wish_list_db": "db-wish-list",
}


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeNotion:
    """In-memory page source honouring the ``since`` filter.

    ``failures`` maps a database id to the exception raised when it is queried.
    """

    def __init__(self, pages: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.pages: dict[str, list[dict[str, Any]]] = pages or {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, datetime | None]] = []

    async def fetch_database_pages(
        self, database_id: str, since: datetime | None = None
    ) -> list[dict[str, Any]]:
        from pops.services.datetime_service import parse_timestamp

        self.calls.append((database_id, since))
        if database_id in self.failures:
            raise self.failures[database_id]
        pages = self.pages.get(database_id, [])
        if since is None:
            return list(pages)
        return [p for p in pages if parse_timestamp(p["last_edited_time"]) > since]


# Notion property builders


def title(text: str) -> dict[str, Any]:
    return {"type": "title", "title": [{"plain_text": text}]}


def rich_text(text: str) -> dict[str, Any]:
    return {"type": "rich_text", "rich_text": [{"plain_text": text}] if text else []}


def number(value: float | None) -> dict[str, Any]:
    return {"type": "number", "number": value}


def select(name: str | None) -> dict[str, Any]:
    return {"type": "select", "select": {"name": name} if name else None}


def multi_select(*names: str) -> dict[str, Any]:
    return {"type": "multi_select", "multi_select": [{"name": n} for n in names]}


def date(start: str | None) -> dict[str, Any]:
    return {"type": "date", "date": {"start": start} if start else None}


def checkbox(value: bool) -> dict[str, Any]:
    return {"type": "checkbox", "checkbox": value}


def relation(*ids: str) -> dict[str, Any]:
    return {"type": "relation", "relation": [{"id": i} for i in ids]}


def url(value: str | None) -> dict[str, Any]:
    return {"type": "url", "url": value}


def make_page(
    page_id: str, edited: str, properties: dict[str, dict[str, Any]] | None = None
) -> dict[str, Any]:
    """Build a Notion page object."""
    return {
        "object": "page",
        "id": page_id,
        "last_edited_time": edited,
        "properties": properties or {},
    }


def entity_page(page_id: str, name: str, edited: str) -> dict[str, Any]:
    return make_page(page_id, edited, {"Name": title(name), "Type": select("Supermarket")})


def transaction_page(
    page_id: str, description: str, edited: str, entity_id: str | None = None, amount: float = -10.0
) -> dict[str, Any]:
    props: dict[str, dict[str, Any]] = {
        "Description": title(description),
        "Account": select("ANZ Everyday"),
        "Amount": number(amount),
        "Date": date("2024-06-01"),
        "Type": select("Expense"),
        "Category": multi_select("Groceries"),
    }
    if entity_id is not None:
        props["Entity"] = relation(entity_id)
    return make_page(page_id, edited, props)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with temporary paths and sync configured."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
        database_path=tmp_path / "data" / "pops.db",
        notion_token="secret-test-token",
        notion_page_delay_seconds=0,
        **TEST_DATABASE_IDS,
    )


@pytest.fixture
async def prod_store(test_settings: Settings) -> AsyncGenerator[Store]:
    """Production store with schema."""
    store = open_store(test_settings.database_path)
    await init_schema(store)
    yield store
    await store.dispose()


@pytest.fixture
async def registry(
    prod_store: Store, test_settings: Settings, clock: FakeClock
) -> AsyncGenerator[EnvironmentRegistry]:
    reg = EnvironmentRegistry(
        prod_store,
        test_settings.resolved_envs_dir,
        clock=clock,
        max_ttl_seconds=test_settings.env_max_ttl_seconds,
    )
    yield reg
    await reg.close()


@asynccontextmanager
async def create_test_app(
    settings: Settings,
    page_source: PageSource | None = None,
    clock: FakeClock | None = None,
) -> AsyncGenerator[FastAPI]:
    """Create an app with its state initialized.

    Manually performs the work of the application lifespan (stores, registry,
    run tracker, orchestrator) because ASGITransport does not trigger it. The
    watcher is not started; tests drive sweeps explicitly.
    """
    app = create_app(settings)
    prod = open_store(settings.database_path)
    await init_schema(prod)
    registry_kwargs: dict[str, Any] = {"max_ttl_seconds": settings.env_max_ttl_seconds}
    if clock is not None:
        registry_kwargs["clock"] = clock
    reg = EnvironmentRegistry(prod, settings.resolved_envs_dir, **registry_kwargs)
    await reg.startup_cleanup()

    app.state.prod_store = prod
    app.state.registry = reg
    app.state.run_tracker = SyncRunTracker(ttl_seconds=settings.sync_run_ttl_seconds)
    app.state.orchestrator = (
        SyncOrchestrator(prod, page_source, default_sources(settings))
        if page_source is not None
        else None
    )
    try:
        yield app
    finally:
        await reg.close()
        await prod.dispose()


@asynccontextmanager
async def create_test_client(
    settings: Settings,
    page_source: PageSource | None = None,
    clock: FakeClock | None = None,
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with a fully initialized app."""
    async with (
        create_test_app(settings, page_source, clock) as app,
        AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac,
    ):
        yield ac
