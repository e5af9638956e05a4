"""Tests for Notion page -> mirror row mapping."""

from __future__ import annotations

import json

from pops.services.mirror_mapping import (
    map_budget,
    map_entity,
    map_inventory_item,
    map_transaction,
    map_wish_list_item,
)
from tests.conftest import (
    checkbox,
    date,
    make_page,
    multi_select,
    number,
    relation,
    rich_text,
    select,
    title,
    transaction_page,
    url,
)

EDITED = "2024-06-01T10:00:00.000Z"


class TestMapEntity:
    def test_maps_fields(self) -> None:
        page = make_page(
            "e1",
            EDITED,
            {
                "Name": title("Woolworths"),
                "Type": select("Supermarket"),
                "ABN": rich_text("88000014675"),
                "Aliases": rich_text("Woolies"),
                "Default Category": multi_select("Groceries"),
            },
        )
        row = map_entity(page)
        assert row["notion_id"] == "e1"
        assert row["name"] == "Woolworths"
        assert row["abn"] == "88000014675"
        assert json.loads(row["default_category"]) == ["Groceries"]
        assert row["last_edited_time"] == EDITED

    def test_no_default_category_is_null(self) -> None:
        row = map_entity(make_page("e1", EDITED, {"Name": title("X")}))
        assert row["default_category"] is None
        assert row["type"] is None


class TestMapTransaction:
    def test_resolves_entity_name_from_lookup(self) -> None:
        page = transaction_page("t1", "Groceries", EDITED, entity_id="e1", amount=-42.0)
        row = map_transaction(page, {"e1": "Woolworths"})
        assert row["entity_id"] == "e1"
        assert row["entity_name"] == "Woolworths"
        assert row["amount"] == -42.0
        assert json.loads(row["categories"]) == ["Groceries"]

    def test_unknown_entity_has_null_name(self) -> None:
        page = transaction_page("t1", "Groceries", EDITED, entity_id="missing")
        row = map_transaction(page, {})
        assert row["entity_id"] == "missing"
        assert row["entity_name"] is None

    def test_defaults_for_missing_required_fields(self) -> None:
        row = map_transaction(make_page("t1", EDITED))
        assert row["description"] == ""
        assert row["account"] == ""
        assert row["amount"] == 0.0
        assert row["date"] == ""
        assert row["type"] == ""
        assert row["categories"] == "[]"
        assert row["online"] is False

    def test_multiple_relations_keep_first(self) -> None:
        page = make_page(
            "t1",
            EDITED,
            {"Description": title("x"), "Entity": relation("e1", "e2")},
        )
        row = map_transaction(page, {"e1": "A", "e2": "B"})
        assert row["entity_id"] == "e1"
        assert row["entity_name"] == "A"


class TestOtherMappers:
    def test_inventory_item(self) -> None:
        page = make_page(
            "i1",
            EDITED,
            {
                "Item Name": title("Laptop"),
                "Brand/Manufacturer": rich_text("Lenovo"),
                "In-use": checkbox(True),
                "Purchase Date": date("2023-03-10"),
                "Est. Replacement Value": number(2400),
                "Purchased From": relation("e1"),
            },
        )
        row = map_inventory_item(page, {"e1": "JB Hi-Fi"})
        assert row["item_name"] == "Laptop"
        assert row["brand"] == "Lenovo"
        assert row["in_use"] is True
        assert row["replacement_value"] == 2400.0
        assert row["purchased_from_name"] == "JB Hi-Fi"

    def test_budget(self) -> None:
        page = make_page(
            "b1",
            EDITED,
            {
                "Category": title("Groceries"),
                "Period": select("Monthly"),
                "Amount": number(800),
                "Active": checkbox(True),
            },
        )
        row = map_budget(page)
        assert row == {
            "notion_id": "b1",
            "category": "Groceries",
            "period": "Monthly",
            "amount": 800.0,
            "active": True,
            "notes": None,
            "last_edited_time": EDITED,
        }

    def test_wish_list_item(self) -> None:
        page = make_page(
            "w1",
            EDITED,
            {
                "Item": title("Bike"),
                "Target Amount": number(1800),
                "URL": url("https://example.com/bike"),
            },
        )
        row = map_wish_list_item(page)
        assert row["item"] == "Bike"
        assert row["target_amount"] == 1800.0
        assert row["saved"] is None
        assert row["url"] == "https://example.com/bike"
