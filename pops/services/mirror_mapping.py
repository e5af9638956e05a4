"""Notion page -> mirror row mappers, one per source database."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from pops.models.mirror import Entity
from pops.notion.properties import (
    dump_tag_list,
    first_relation_id,
    get_checkbox,
    get_date,
    get_multi_select,
    get_number,
    get_rich_text,
    get_select,
    get_title,
    get_url,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pops.notion.client import NotionPage

EntityLookup = dict[str, str]
MirrorRow = dict[str, Any]


async def build_entity_lookup(session: AsyncSession) -> EntityLookup:
    """Map entity notion_id -> name from rows already in the store."""
    result = await session.execute(select(Entity.notion_id, Entity.name))
    return {notion_id: name for notion_id, name in result.all()}


def _props(page: NotionPage) -> dict[str, Any]:
    props = page.get("properties")
    return props if isinstance(props, dict) else {}


def map_entity(page: NotionPage, _lookup: EntityLookup | None = None) -> MirrorRow:
    props = _props(page)
    default_categories = get_multi_select(props, "Default Category")
    return {
        "notion_id": page["id"],
        "name": get_title(props, "Name"),
        "type": get_select(props, "Type"),
        "abn": get_rich_text(props, "ABN"),
        "aliases": get_rich_text(props, "Aliases"),
        "default_transaction_type": get_select(props, "Default Transaction Type"),
        "default_category": dump_tag_list(default_categories) if default_categories else None,
        "notes": get_rich_text(props, "Notes"),
        "last_edited_time": page["last_edited_time"],
    }


def map_transaction(page: NotionPage, lookup: EntityLookup | None = None) -> MirrorRow:
    """Map a Balance Sheet page; the entity name is resolved through ``lookup``."""
    props = _props(page)
    lookup = lookup or {}
    entity_id = first_relation_id(props, "Entity")
    return {
        "notion_id": page["id"],
        "description": get_title(props, "Description"),
        "account": get_select(props, "Account") or "",
        "amount": get_number(props, "Amount") or 0.0,
        "date": get_date(props, "Date") or "",
        "type": get_select(props, "Type") or "",
        "categories": dump_tag_list(get_multi_select(props, "Category")),
        "entity_id": entity_id,
        "entity_name": lookup.get(entity_id) if entity_id else None,
        "location": get_select(props, "Location"),
        "country": get_select(props, "Country"),
        "online": get_checkbox(props, "Online"),
        "novated_lease": get_checkbox(props, "Novated Lease"),
        "tax_return": get_checkbox(props, "Tax Return"),
        "related_transaction_id": first_relation_id(props, "Related Transaction"),
        "notes": get_rich_text(props, "Notes"),
        "last_edited_time": page["last_edited_time"],
    }


def map_inventory_item(page: NotionPage, lookup: EntityLookup | None = None) -> MirrorRow:
    props = _props(page)
    lookup = lookup or {}
    purchased_from_id = first_relation_id(props, "Purchased From")
    return {
        "notion_id": page["id"],
        "item_name": get_title(props, "Item Name"),
        "brand": get_rich_text(props, "Brand/Manufacturer"),
        "model": get_rich_text(props, "Model"),
        "item_id": get_rich_text(props, "ID"),
        "room": get_select(props, "Room"),
        "location": get_select(props, "Location"),
        "type": get_select(props, "Type"),
        "condition": get_select(props, "Condition"),
        "in_use": get_checkbox(props, "In-use"),
        "deductible": get_checkbox(props, "Deductible"),
        "purchase_date": get_date(props, "Purchase Date"),
        "warranty_expires": get_date(props, "Warranty Expires"),
        "replacement_value": get_number(props, "Est. Replacement Value"),
        "resale_value": get_number(props, "Est. Resale Value"),
        "purchase_transaction_id": first_relation_id(props, "Purchase Transaction"),
        "purchased_from_id": purchased_from_id,
        "purchased_from_name": lookup.get(purchased_from_id) if purchased_from_id else None,
        "last_edited_time": page["last_edited_time"],
    }


def map_budget(page: NotionPage, _lookup: EntityLookup | None = None) -> MirrorRow:
    props = _props(page)
    return {
        "notion_id": page["id"],
        "category": get_title(props, "Category"),
        "period": get_select(props, "Period"),
        "amount": get_number(props, "Amount"),
        "active": get_checkbox(props, "Active"),
        "notes": get_rich_text(props, "Notes"),
        "last_edited_time": page["last_edited_time"],
    }


def map_wish_list_item(page: NotionPage, _lookup: EntityLookup | None = None) -> MirrorRow:
    props = _props(page)
    return {
        "notion_id": page["id"],
        "item": get_title(props, "Item"),
        "target_amount": get_number(props, "Target Amount"),
        "saved": get_number(props, "Saved"),
        "priority": get_select(props, "Priority"),
        "url": get_url(props, "URL"),
        "notes": get_rich_text(props, "Notes"),
        "last_edited_time": page["last_edited_time"],
    }
