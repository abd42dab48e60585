"""Unit-level test run endpoints."""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from testing_engine.database.connection import get_db
from testing_engine.database.repositories import TestRunRepository
from testing_engine.models.testing import (
    RunProgress,
    RunState,
    TestExecutionConfig,
    TestRunDetail,
    TestRunOut,
    TestRunSummary,
    TestScope,
)
from testing_engine.services.run_manager import RunManager, RunNotActiveError, get_run_manager as default_run_manager

logger = logging.getLogger(__name__)
router = APIRouter()


def get_run_manager(request: Request) -> RunManager:
    """Get or create RunManager instance."""
    if not hasattr(request.app.state, 'run_manager'):
        request.app.state.run_manager = default_run_manager()
    return request.app.state.run_manager


@router.post("", response_model=TestRunSummary)
async def create_run(request: Request, config: TestExecutionConfig, db: AsyncSession = Depends(get_db)):
    """
    Resolve the scope, execute every case and return the run summary.

    An unknown scope id is not an error: the run completes with zero tests.
    """
    if config.scope != TestScope.ALL and not config.scope_id:
        raise HTTPException(status_code=400, detail=f"scope_id is required for scope '{config.scope.value}'")

    manager = get_run_manager(request)
    try:
        return await manager.execute_tests(db, config)
    except Exception as e:
        logger.error(f"Failed to execute run: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to execute run")


@router.get("", response_model=List[TestRunOut])
async def list_runs(
    limit: int = Query(50, ge=1, le=200, description="Max results"),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """List runs, newest first."""
    return await TestRunRepository.list_test_runs(db, limit=limit, offset=offset)


@router.get("/{run_id}", response_model=TestRunDetail)
async def get_run(run_id: str, db: AsyncSession = Depends(get_db)):
    """Get a run with its per-case results."""
    run = await TestRunRepository.get_test_run_with_results(db, run_id)
    if not run:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")
    return run


@router.get("/{run_id}/progress", response_model=RunProgress)
async def get_run_progress(request: Request, run_id: str, db: AsyncSession = Depends(get_db)):
    """Live progress while running; the stored counters afterwards."""
    progress = get_run_manager(request).get_progress(run_id)
    if progress:
        return progress

    run = await TestRunRepository.get_test_run(db, run_id)
    if not run:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")

    return RunProgress(
        run_id=run.id,
        status=RunState(run.status),
        current=run.passed_tests + run.failed_tests + run.skipped_tests,
        total=run.total_tests,
    )


@router.post("/{run_id}/cancel")
async def cancel_run(request: Request, run_id: str):
    """Stop an active run before its next case."""
    manager = get_run_manager(request)
    try:
        await manager.cancel_run(run_id)
    except RunNotActiveError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"run_id": run_id, "cancelled": True, "message": "Cancellation requested"}
