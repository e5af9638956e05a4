"""Tests for the incremental sync orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest
from sqlalchemy import select

from pops.exceptions import NotionApiError
from pops.models.mirror import Entity, Transaction
from pops.services.dag import CycleError
from pops.services.datetime_service import format_iso
from pops.services.mirror_mapping import map_entity
from pops.services.sync_service import MirrorSource, SyncOrchestrator, default_sources
from pops.services.upsert_service import load_cursor
from tests.conftest import FakeNotion, entity_page, multi_select, transaction_page

if TYPE_CHECKING:
    from pops.config import Settings
    from pops.database import Store


def _orchestrator(store: Store, notion: FakeNotion, settings: Settings) -> SyncOrchestrator:
    return SyncOrchestrator(store, notion, default_sources(settings))


async def _transactions(store: Store) -> dict[str, Transaction]:
    async with store.session_factory() as session:
        rows = (await session.scalars(select(Transaction))).all()
    return {row.notion_id: row for row in rows}


class TestOrdering:
    def test_entities_run_before_dependents(
        self, prod_store: Store, test_settings: Settings
    ) -> None:
        orch = _orchestrator(prod_store, FakeNotion(), test_settings)
        order = orch.order
        assert order.index("entities") < order.index("transactions")
        assert order.index("entities") < order.index("inventory")

    def test_cycle_rejected(self, prod_store: Store) -> None:
        sources = [
            MirrorSource("a", "A", "db-a", Entity, map_entity, depends_on=("b",)),
            MirrorSource("b", "B", "db-b", Entity, map_entity, depends_on=("a",)),
        ]
        with pytest.raises(CycleError):
            SyncOrchestrator(prod_store, FakeNotion(), sources)

    async def test_unknown_kind_rejected(self, prod_store: Store, test_settings: Settings) -> None:

        orch = _orchestrator(prod_store, FakeNotion(), test_settings)
        with pytest.raises(ValueError, match="Unknown sync source"):
            await orch.run_all(["nope"])


class TestIncrementalSync:
    async def test_full_then_incremental(self, prod_store: Store, test_settings: Settings) -> None:

        notion = FakeNotion(
            {
                "db-entities": [entity_page("e1", "Woolworths", "2024-06-01T09:00:00.000Z")],
                "db-balance-sheet": [
                    transaction_page("t1", "Shop", "2024-06-01T10:00:00.000Z", "e1"),
                    transaction_page("t2", "Shop 2", "2024-06-01T11:00:00.000Z", "e1"),
                ],
            }
        )
        orch = _orchestrator(prod_store, notion, test_settings)

        report = await orch.run_all()
        assert report.ok
        txns = await _transactions(prod_store)
        assert set(txns) == {"t1", "t2"}
        assert txns["t1"].entity_name == "Woolworths"
        cursor = await load_cursor(prod_store, "db-balance-sheet")
        assert cursor is not None
        assert format_iso(cursor) == "2024-06-01T11:00:00.000Z"

        # Second run passes the cursor and fetches nothing new.
        notion.calls.clear()
        report = await orch.run_all(["transactions"])
        assert notion.calls == [("db-balance-sheet", cursor)]
        assert report.results[0].fetched == 0
        assert report.results[0].cursor_after == "2024-06-01T11:00:00.000Z"

    async def test_edited_page_is_replaced(
        self, prod_store: Store, test_settings: Settings
    ) -> None:
        notion = FakeNotion(
            {"db-balance-sheet": [transaction_page("t1", "Old", "2024-06-01T10:00:00.000Z")]}
        )
        orch = _orchestrator(prod_store, notion, test_settings)
        await orch.run_all(["transactions"])

        notion.pages["db-balance-sheet"] = [
            transaction_page("t1", "New", "2024-06-02T10:00:00.000Z", amount=-99.0)
        ]
        await orch.run_all(["transactions"])

        txns = await _transactions(prod_store)
        assert txns["t1"].description == "New"
        assert txns["t1"].amount == -99.0

    async def test_removed_tag_disappears(
        self, prod_store: Store, test_settings: Settings
    ) -> None:
        page = transaction_page("t1", "Trip", "2024-06-01T10:00:00.000Z")
        page["properties"]["Category"] = multi_select("Groceries", "Travel")
        notion = FakeNotion({"db-balance-sheet": [page]})
        orch = _orchestrator(prod_store, notion, test_settings)
        await orch.run_all(["transactions"])
        assert (await _transactions(prod_store))["t1"].categories == '["Groceries", "Travel"]'

        edited = transaction_page("t1", "Trip", "2024-06-02T10:00:00.000Z")
        edited["properties"]["Category"] = multi_select("Groceries")
        notion.pages["db-balance-sheet"] = [edited]
        await orch.run_all(["transactions"])

        assert (await _transactions(prod_store))["t1"].categories == '["Groceries"]'

    async def test_failed_fetch_leaves_cursor(
        self, prod_store: Store, test_settings: Settings
    ) -> None:
        notion = FakeNotion(
            {"db-balance-sheet": [transaction_page("t1", "Shop", "2024-06-01T10:00:00.000Z")]}
        )
        orch = _orchestrator(prod_store, notion, test_settings)
        await orch.run_all(["transactions"])
        before = await load_cursor(prod_store, "db-balance-sheet")

        notion.failures["db-balance-sheet"] = NotionApiError("boom", status_code=502)
        report = await orch.run_all(["transactions"])

        assert not report.ok
        assert report.failed == ["transactions"]
        assert "boom" in (report.results[0].error or "")
        assert await load_cursor(prod_store, "db-balance-sheet") == before

    async def test_failed_write_leaves_cursor(
        self, prod_store: Store, test_settings: Settings
    ) -> None:
        notion = FakeNotion(
            {"db-balance-sheet": [transaction_page("t1", "Shop", "2024-06-01T10:00:00.000Z")]}
        )
        orch = _orchestrator(prod_store, notion, test_settings)
        with patch(
            "pops.services.sync_service.upsert_rows", side_effect=RuntimeError("disk full")
        ):
            report = await orch.run_all(["transactions"])

        assert not report.ok
        assert await load_cursor(prod_store, "db-balance-sheet") is None
        assert await _transactions(prod_store) == {}

    async def test_entities_failure_does_not_block_dependents(
        self, prod_store: Store, test_settings: Settings
    ) -> None:
        notion = FakeNotion(
            {
                "db-entities": [entity_page("e1", "Coles", "2024-06-01T09:00:00.000Z")],
                "db-balance-sheet": [],
            }
        )
        orch = _orchestrator(prod_store, notion, test_settings)
        await orch.run_all(["entities"])

        notion.failures["db-entities"] = NotionApiError("down")
        notion.pages["db-balance-sheet"] = [
            transaction_page("t1", "Shop", "2024-06-01T10:00:00.000Z", "e1")
        ]
        report = await orch.run_all(["entities", "transactions"])

        assert report.failed == ["entities"]
        txns = await _transactions(prod_store)
        # Stored entity names are used when the entities pass fails.
        assert txns["t1"].entity_name == "Coles"

    async def test_one_failure_does_not_stop_others(
        self, prod_store: Store, test_settings: Settings
    ) -> None:
        notion = FakeNotion(
            {"db-balance-sheet": [transaction_page("t1", "Shop", "2024-06-01T10:00:00.000Z")]}
        )
        notion.failures["db-budgets"] = NotionApiError("budgets down")
        orch = _orchestrator(prod_store, notion, test_settings)

        report = await orch.run_all()

        assert report.failed == ["budgets"]
        assert "t1" in await _transactions(prod_store)
