"""Named environment lifecycle endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from pops.api.deps import get_registry
from pops.exceptions import EnvironmentGoneError
from pops.schemas.env import (
    EnvironmentCreate,
    EnvironmentListResponse,
    EnvironmentResponse,
    EnvironmentUpdate,
)
from pops.services.env_registry import EnvironmentRegistry

router = APIRouter(prefix="/env", tags=["environments"])


@router.get("", response_model=EnvironmentListResponse)
async def list_environments(
    registry: Annotated[EnvironmentRegistry, Depends(get_registry)],
) -> EnvironmentListResponse:
    """List registered environments, newest first."""
    now = registry.now()
    return EnvironmentListResponse(
        environments=[EnvironmentResponse.from_info(info, now) for info in await registry.list()]
    )


@router.post("/{name}", response_model=EnvironmentResponse, status_code=status.HTTP_201_CREATED)
async def create_environment(
    name: str,
    body: EnvironmentCreate,
    registry: Annotated[EnvironmentRegistry, Depends(get_registry)],
) -> EnvironmentResponse:
    """Provision a named environment, optionally seeded with test data."""
    info = await registry.create(name, seed_mode=body.seed, ttl_seconds=body.ttl)
    return EnvironmentResponse.from_info(info, registry.now())


@router.get("/{name}", response_model=EnvironmentResponse)
async def get_environment(
    name: str,
    registry: Annotated[EnvironmentRegistry, Depends(get_registry)],
) -> EnvironmentResponse:
    info = await registry.get(name)
    return EnvironmentResponse.from_info(info, registry.now())


@router.patch("/{name}", response_model=EnvironmentResponse)
async def update_environment(
    name: str,
    body: EnvironmentUpdate,
    registry: Annotated[EnvironmentRegistry, Depends(get_registry)],
) -> EnvironmentResponse:
    """Restart the TTL clock of a live environment."""
    info = await registry.update_ttl(name, body.ttl)
    return EnvironmentResponse.from_info(info, registry.now())


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_environment(
    name: str,
    registry: Annotated[EnvironmentRegistry, Depends(get_registry)],
) -> Response:
    if not await registry.delete(name):
        raise EnvironmentGoneError(name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
