"""Tests for Notion property extraction."""

from __future__ import annotations

import logging

import pytest

from pops.notion.properties import (
    dump_tag_list,
    first_relation_id,
    get_checkbox,
    get_date,
    get_multi_select,
    get_number,
    get_relation_ids,
    get_rich_text,
    get_select,
    get_title,
    get_url,
    load_tag_list,
)
from tests.conftest import (
    checkbox,
    date,
    multi_select,
    number,
    relation,
    rich_text,
    select,
    title,
    url,
)


class TestExtractors:
    def test_title_joins_fragments(self) -> None:
        fragments = [{"plain_text": "Wool"}, {"plain_text": "worths"}]
        props = {"Name": {"type": "title", "title": fragments}}
        assert get_title(props, "Name") == "Woolworths"

    def test_missing_title_is_empty_string(self) -> None:
        assert get_title({}, "Name") == ""

    def test_empty_rich_text_is_none(self) -> None:
        assert get_rich_text({"Notes": rich_text("")}, "Notes") is None
        assert get_rich_text({"Notes": rich_text("hi")}, "Notes") == "hi"

    def test_number(self) -> None:
        assert get_number({"Amount": number(-12.5)}, "Amount") == -12.5
        assert get_number({"Amount": number(None)}, "Amount") is None

    def test_integer_number_becomes_float(self) -> None:
        value = get_number({"Amount": number(3)}, "Amount")
        assert value == 3.0
        assert isinstance(value, float)

    def test_select_and_empty_select(self) -> None:
        assert get_select({"Type": select("Expense")}, "Type") == "Expense"
        assert get_select({"Type": select(None)}, "Type") is None

    def test_multi_select(self) -> None:
        props = {"Category": multi_select("Groceries", "Household")}
        assert get_multi_select(props, "Category") == ["Groceries", "Household"]
        assert get_multi_select({}, "Category") == []

    def test_date_returns_start(self) -> None:
        assert get_date({"Date": date("2024-06-01")}, "Date") == "2024-06-01"
        assert get_date({"Date": date(None)}, "Date") is None

    def test_checkbox_defaults_false(self) -> None:
        assert get_checkbox({"Online": checkbox(True)}, "Online") is True
        assert get_checkbox({}, "Online") is False

    def test_relation_keeps_first_id(self) -> None:
        props = {"Entity": relation("a", "b")}
        assert get_relation_ids(props, "Entity") == ["a", "b"]
        assert first_relation_id(props, "Entity") == "a"
        assert first_relation_id({"Entity": relation()}, "Entity") is None

    def test_url(self) -> None:
        assert get_url({"URL": url("https://example.com")}, "URL") == "https://example.com"
        assert get_url({"URL": url(None)}, "URL") is None

    def test_wrong_type_returns_default_and_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        props = {"Amount": select("oops")}
        with caplog.at_level(logging.WARNING, logger="pops.notion.properties"):
            assert get_number(props, "Amount") is None
        assert "expected 'number'" in caplog.text


class TestTagLists:
    def test_dump_and_load(self) -> None:
        assert load_tag_list(dump_tag_list(["a", "b"])) == ["a", "b"]

    def test_empty_and_none(self) -> None:
        assert load_tag_list(None) == []
        assert load_tag_list("") == []

    def test_malformed_json_becomes_empty(self) -> None:
        assert load_tag_list("[not json") == []

    def test_non_list_becomes_empty(self) -> None:
        assert load_tag_list('{"a": 1}') == []
