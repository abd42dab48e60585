"""Browser sweep endpoints."""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from testing_engine.database.connection import get_db
from testing_engine.database.repositories import E2eRunRepository
from testing_engine.models.e2e import E2eRunDetail, E2eRunOut, E2eRunRequest, E2eRunSummary, SweepScope
from testing_engine.models.testing import RunProgress
from testing_engine.services.e2e_runner import E2eRunner, get_e2e_runner as default_e2e_runner

logger = logging.getLogger(__name__)
router = APIRouter()


def get_e2e_runner(request: Request) -> E2eRunner:
    """Get or create E2eRunner instance."""
    if not hasattr(request.app.state, 'e2e_runner'):
        request.app.state.e2e_runner = default_e2e_runner()
    return request.app.state.e2e_runner


@router.post("/runs", response_model=E2eRunSummary)
async def create_sweep(request: Request, sweep: E2eRunRequest, db: AsyncSession = Depends(get_db)):
    """
    Log in once and run the page check battery over the scoped catalog pages.

    Browser or login failures come back as a failed summary, not an HTTP error.
    """
    if sweep.scope == SweepScope.MODULE and not sweep.module_id:
        raise HTTPException(status_code=400, detail="module_id is required for scope 'module'")
    if sweep.scope == SweepScope.PAGE and not sweep.route:
        raise HTTPException(status_code=400, detail="route is required for scope 'page'")

    runner = get_e2e_runner(request)
    try:
        return await runner.run(db, sweep)
    except Exception as e:
        logger.error(f"Failed to execute sweep: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to execute sweep")


@router.get("/runs", response_model=List[E2eRunOut])
async def list_sweeps(
    limit: int = Query(50, ge=1, le=200, description="Max results"),
    db: AsyncSession = Depends(get_db)
):
    return await E2eRunRepository.list_runs(db, limit=limit)


@router.get("/runs/{run_id}", response_model=E2eRunDetail)
async def get_sweep(run_id: str, db: AsyncSession = Depends(get_db)):
    run = await E2eRunRepository.get_run_with_results(db, run_id)
    if not run:
        raise HTTPException(status_code=404, detail=f"Sweep not found: {run_id}")
    return run


@router.get("/progress", response_model=RunProgress)
async def get_sweep_progress(request: Request):
    """Progress of the most recent sweep."""
    progress = get_e2e_runner(request).get_progress()
    if not progress:
        raise HTTPException(status_code=404, detail="No sweep has been started")
    return progress
