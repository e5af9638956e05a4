"""Mirror table read schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class MirrorListResponse(BaseModel):
    """A page of rows from one mirror table."""

    kind: str
    store: str
    total: int = Field(ge=0)
    limit: int
    offset: int
    rows: list[dict[str, Any]]
