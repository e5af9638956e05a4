"""Flatten Notion's typed page properties into plain column values.

Every extractor tolerates a missing property or one of the wrong type and
returns the column default instead of raising; a property that exists but is
shaped unexpectedly is logged.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

PageProperties = dict[str, Any]


def _get_prop(props: PageProperties, key: str, prop_type: str) -> dict[str, Any] | None:
    """Return the property dict if present and of the expected type."""
    prop = props.get(key)
    if prop is None:
        return None
    if not isinstance(prop, dict) or prop.get("type") != prop_type:
        actual = prop.get("type") if isinstance(prop, dict) else type(prop).__name__
        logger.warning("Property %r has type %r, expected %r", key, actual, prop_type)
        return None
    return prop


def _plain_text(fragments: Any) -> str:
    if not isinstance(fragments, list):
        return ""
    return "".join(
        str(fragment.get("plain_text", "")) for fragment in fragments if isinstance(fragment, dict)
    )


def get_title(props: PageProperties, key: str) -> str:
    """Plain text of a title property; empty string when missing."""
    prop = _get_prop(props, key, "title")
    if prop is None:
        return ""
    return _plain_text(prop.get("title"))


def get_rich_text(props: PageProperties, key: str) -> str | None:
    """Plain text of a rich_text property; None when missing or empty."""
    prop = _get_prop(props, key, "rich_text")
    if prop is None:
        return None
    return _plain_text(prop.get("rich_text")) or None


def get_number(props: PageProperties, key: str) -> float | None:
    prop = _get_prop(props, key, "number")
    if prop is None:
        return None
    value = prop.get("number")
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Property %r has non-numeric value %r", key, value)
        return None


def get_select(props: PageProperties, key: str) -> str | None:
    """Name of the selected option, or None."""
    prop = _get_prop(props, key, "select")
    if prop is None:
        return None
    option = prop.get("select")
    if not isinstance(option, dict):
        return None
    return option.get("name")


def get_multi_select(props: PageProperties, key: str) -> list[str]:
    prop = _get_prop(props, key, "multi_select")
    if prop is None:
        return []
    options = prop.get("multi_select")
    if not isinstance(options, list):
        return []
    return [str(opt["name"]) for opt in options if isinstance(opt, dict) and "name" in opt]


def get_date(props: PageProperties, key: str) -> str | None:
    """Start of a date property as the ISO string Notion sent."""
    prop = _get_prop(props, key, "date")
    if prop is None:
        return None
    value = prop.get("date")
    if not isinstance(value, dict):
        return None
    return value.get("start")


def get_checkbox(props: PageProperties, key: str) -> bool:
    prop = _get_prop(props, key, "checkbox")
    if prop is None:
        return False
    return bool(prop.get("checkbox"))


def get_relation_ids(props: PageProperties, key: str) -> list[str]:
    prop = _get_prop(props, key, "relation")
    if prop is None:
        return []
    relation = prop.get("relation")
    if not isinstance(relation, list):
        return []
    return [str(ref["id"]) for ref in relation if isinstance(ref, dict) and ref.get("id")]


def first_relation_id(props: PageProperties, key: str) -> str | None:
    """Scalar foreign key for a relation: the first referenced page.

    Further references are dropped.
    """
    ids = get_relation_ids(props, key)
    return ids[0] if ids else None


def get_url(props: PageProperties, key: str) -> str | None:
    prop = _get_prop(props, key, "url")
    if prop is None:
        return None
    return prop.get("url") or None


def dump_tag_list(tags: list[str]) -> str:
    """Serialize a tag list for a TEXT column."""
    return json.dumps(tags)


def load_tag_list(raw: str | None) -> list[str]:
    """Decode a stored tag list. Malformed JSON yields an empty list."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed tag list: %r", raw[:100])
        return []
    if not isinstance(value, list):
        logger.warning("Discarding non-list tag value: %r", raw[:100])
        return []
    return [str(item) for item in value]
