"""Read-only access to the mirror tables of the resolved store."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pops.api.deps import get_scoped_session, resolve_store
from pops.database import Store
from pops.models.base import Base
from pops.models.mirror import Budget, Entity, InventoryItem, Transaction, WishListItem
from pops.notion.properties import load_tag_list
from pops.schemas.mirror import MirrorListResponse

router = APIRouter(prefix="/api/mirror", tags=["mirror"])

_MODELS: dict[str, type[Base]] = {
    "entities": Entity,
    "transactions": Transaction,
    "inventory": InventoryItem,
    "budgets": Budget,
    "wish_list": WishListItem,
}

# Columns stored as JSON-encoded tag lists.
_TAG_COLUMNS: dict[str, tuple[str, ...]] = {
    "entities": ("default_category",),
    "transactions": ("categories",),
}


def _row_to_dict(kind: str, row: Base) -> dict[str, Any]:
    data = {column.key: getattr(row, column.key) for column in row.__table__.columns}
    for column in _TAG_COLUMNS.get(kind, ()):
        data[column] = load_tag_list(data[column])
    return data


@router.get("/{kind}", response_model=MirrorListResponse)
async def list_mirror_rows(
    kind: str,
    session: Annotated[AsyncSession, Depends(get_scoped_session)],
    store: Annotated[Store, Depends(resolve_store)],
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> MirrorListResponse:
    """List rows of one mirror table, ordered by most recently edited."""
    model = _MODELS.get(kind)
    if model is None:
        raise HTTPException(status_code=404, detail=f"Unknown mirror kind '{kind}'")

    total = (await session.execute(select(func.count()).select_from(model))).scalar_one()
    stmt = (
        select(model)
        .order_by(model.last_edited_time.desc(), model.notion_id)  # type: ignore[attr-defined]
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return MirrorListResponse(
        kind=kind,
        store=store.name,
        total=total,
        limit=limit,
        offset=offset,
        rows=[_row_to_dict(kind, row) for row in rows],
    )
