"""Named environment schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from pops.services.datetime_service import format_iso
from pops.services.env_registry import EnvironmentInfo, SeedMode


class EnvironmentCreate(BaseModel):
    """Request to provision a named environment. ``ttl`` of None never expires."""

    seed: SeedMode = SeedMode.NONE
    ttl: int | None = None


class EnvironmentUpdate(BaseModel):
    """Request to restart an environment's TTL clock."""

    ttl: int | None = None


class EnvironmentResponse(BaseModel):
    name: str
    db_path: str
    seed_type: SeedMode
    ttl_seconds: int | None
    created_at: str
    expires_at: str | None
    ttl_remaining: int | None

    @classmethod
    def from_info(cls, info: EnvironmentInfo, now: datetime) -> EnvironmentResponse:
        return cls(
            name=info.name,
            db_path=str(info.db_path),
            seed_type=info.seed_mode,
            ttl_seconds=info.ttl_seconds,
            created_at=format_iso(info.created_at),
            expires_at=format_iso(info.expires_at) if info.expires_at else None,
            ttl_remaining=info.ttl_remaining(now),
        )


class EnvironmentListResponse(BaseModel):
    environments: list[EnvironmentResponse]
