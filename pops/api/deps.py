"""Shared API dependencies: settings, registry, and the request-scoped store."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pops.config import Settings
from pops.database import PROD_STORE_NAME, Store
from pops.services.env_registry import EnvironmentRegistry
from pops.services.run_tracker import SyncRunTracker
from pops.services.sync_service import SyncOrchestrator


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_prod_store(request: Request) -> Store:
    store: Store = request.app.state.prod_store
    return store


def get_registry(request: Request) -> EnvironmentRegistry:
    registry: EnvironmentRegistry = request.app.state.registry
    return registry


def get_run_tracker(request: Request) -> SyncRunTracker:
    tracker: SyncRunTracker = request.app.state.run_tracker
    return tracker


def get_orchestrator(request: Request) -> SyncOrchestrator | None:
    """The production sync orchestrator, or None when sync is disabled."""
    orchestrator: SyncOrchestrator | None = request.app.state.orchestrator
    return orchestrator


async def resolve_store(
    prod_store: Annotated[Store, Depends(get_prod_store)],
    registry: Annotated[EnvironmentRegistry, Depends(get_registry)],
    env: Annotated[str | None, Query(max_length=64)] = None,
) -> Store:
    """Select the store this request operates on.

    No ``env`` (or ``env=prod``) means production. Any other name must be a
    live environment; an unknown or expired name raises
    EnvironmentNotFoundError and never falls back to production.
    """
    if env is None or env == PROD_STORE_NAME:
        return prod_store
    info = await registry.get(env)
    return await registry.store_for(info)


async def get_session(
    prod_store: Annotated[Store, Depends(get_prod_store)],
) -> AsyncGenerator[AsyncSession]:
    """Get a production database session."""
    async with prod_store.session_factory() as session:
        yield session


async def get_scoped_session(
    store: Annotated[Store, Depends(resolve_store)],
) -> AsyncGenerator[AsyncSession]:
    """Get a session bound to the store selected by ``resolve_store``."""
    async with store.session_factory() as session:
        yield session
