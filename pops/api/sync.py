"""On-demand Notion sync runs and cursor inspection."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from pops.api.deps import get_orchestrator, get_registry, get_run_tracker, resolve_store
from pops.database import PROD_STORE_NAME, Store
from pops.schemas.sync import (
    CursorListResponse,
    CursorResponse,
    SyncRunAccepted,
    SyncRunRequest,
    SyncRunResponse,
)
from pops.services.env_registry import EnvironmentRegistry
from pops.services.run_tracker import SyncRunTracker
from pops.services.sync_service import SyncOrchestrator
from pops.services.upsert_service import list_cursors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


async def _execute_run(
    orchestrator: SyncOrchestrator,
    tracker: SyncRunTracker,
    run_id: str,
    kinds: list[str] | None,
) -> None:
    try:
        report = await orchestrator.run_all(kinds)
    except Exception as exc:
        logger.exception("Sync run %s failed", run_id)
        tracker.fail(run_id, str(exc))
        return
    tracker.finish(run_id, report)
    logger.info("Sync run %s finished (ok=%s)", run_id, report.ok)


@router.post("/runs", response_model=SyncRunAccepted, status_code=status.HTTP_202_ACCEPTED)
async def start_sync_run(
    background_tasks: BackgroundTasks,
    tracker: Annotated[SyncRunTracker, Depends(get_run_tracker)],
    orchestrator: Annotated[SyncOrchestrator | None, Depends(get_orchestrator)],
    registry: Annotated[EnvironmentRegistry, Depends(get_registry)],
    body: SyncRunRequest | None = None,
    env: Annotated[str | None, Query(max_length=64)] = None,
) -> SyncRunAccepted:
    """Start a sync of the production mirror in the background."""
    if env is not None and env != PROD_STORE_NAME:
        # Unknown or expired names get the usual 404 first.
        await registry.get(env)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Sync only targets the production store",
        )
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync is disabled",
        )
    kinds = body.kinds if body is not None and body.kinds else None
    if kinds is not None:
        unknown = sorted(set(kinds) - set(orchestrator.order))
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown source kinds: {', '.join(unknown)}",
            )

    run = tracker.start()
    background_tasks.add_task(_execute_run, orchestrator, tracker, run.run_id, kinds)
    return SyncRunAccepted(run_id=run.run_id, status=run.status)


@router.get("/runs/{run_id}", response_model=SyncRunResponse)
async def get_sync_run(
    run_id: str,
    tracker: Annotated[SyncRunTracker, Depends(get_run_tracker)],
) -> SyncRunResponse:
    run = tracker.get(run_id)
    if run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sync run not found")
    return SyncRunResponse.from_run(run)


@router.get("/cursors", response_model=CursorListResponse)
async def get_cursors(
    store: Annotated[Store, Depends(resolve_store)],
) -> CursorListResponse:
    """Per-database cursors of the resolved store."""
    cursors = await list_cursors(store)
    return CursorListResponse(
        store=store.name,
        cursors=[
            CursorResponse(database_id=c.database_id, last_edited_time=c.last_edited_time)
            for c in cursors
        ],
    )
