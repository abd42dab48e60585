"""
Test run management service.

Creates the run record, streams one result row per resolved case, keeps the
run's counters current and finalizes it into a terminal state.
"""

import asyncio
import inspect
import logging
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from testing_engine.database.repositories import DevTestRepository, TestRunRepository
from testing_engine.models.database import TestCase
from testing_engine.models.testing import (
    ResultStatus,
    RunProgress,
    RunState,
    TestExecutionConfig,
    TestResult,
    TestRunSummary,
    TestScope,
)
from testing_engine.services.scope_resolver import resolve_scope_name, resolve_test_cases
from testing_engine.services.test_executor import TestExecutor, get_test_executor

logger = logging.getLogger(__name__)

DRY_RUN_MESSAGE = "Dry run - test not executed"
CANCELLED_MESSAGE = "Run cancelled - test not executed"

ProgressCallback = Callable[[RunProgress], Union[None, Awaitable[None]]]


class RunNotActiveError(Exception):
    """Raised when cancelling a run that is unknown or already terminal."""


async def notify_progress(callback: Optional[ProgressCallback], progress: RunProgress, run_id: str) -> None:
    """Invoke a sync or async progress callback; its failures never stop the run."""
    if callback is None:
        return
    try:
        outcome = callback(progress)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception as e:
        logger.warning(f"[{run_id}] Progress callback failed: {e}")


def count_statuses(results: List[Any]) -> Dict[str, int]:
    counts = {status.value: 0 for status in ResultStatus}
    for result in results:
        counts[ResultStatus(result.status).value] += 1
    return counts


class RunManager:
    """Manages unit-level test run lifecycle."""

    def __init__(self, executor: Optional[TestExecutor] = None):
        self.executor = executor or get_test_executor()
        self._cancel_events: Dict[str, asyncio.Event] = {}
        self._progress: Dict[str, RunProgress] = {}

    def is_active(self, run_id: str) -> bool:
        return run_id in self._cancel_events

    def get_progress(self, run_id: str) -> Optional[RunProgress]:
        """Snapshot of an active run. Finished runs are read back from their run row."""
        return self._progress.get(run_id)

    async def cancel_run(self, run_id: str) -> bool:
        """
        Ask an active run to stop before its next case.

        Raises:
            RunNotActiveError: run is unknown or already finished
        """
        event = self._cancel_events.get(run_id)
        if event is None:
            raise RunNotActiveError(f"Run {run_id} is not active")

        event.set()
        logger.info(f"[{run_id}] Cancellation requested")
        return True

    async def execute_tests(
        self,
        db: AsyncSession,
        config: TestExecutionConfig,
        on_progress: Optional[ProgressCallback] = None
    ) -> TestRunSummary:
        """
        Resolve, execute and record a run.

        Args:
            db: Database session
            config: Scope, level filter and dry-run flag
            on_progress: Called after every case with a RunProgress snapshot

        Returns:
            TestRunSummary of the terminal run
        """
        test_cases = await resolve_test_cases(db, config)
        scope_name = await resolve_scope_name(db, config.scope, config.scope_id)

        run = await TestRunRepository.create_test_run(
            db,
            name=f"Test Run: {scope_name}",
            scope=TestScope(config.scope).value,
            scope_id=config.scope_id,
            test_levels=[level.value for level in config.test_levels],
            status=RunState.RUNNING.value,
            total_tests=len(test_cases),
            started_at=datetime.utcnow(),
            triggered_by=config.triggered_by,
        )
        run_id = run.id
        run_name = run.name
        cancel_event = asyncio.Event()
        self._cancel_events[run_id] = cancel_event
        self._progress[run_id] = RunProgress(
            run_id=run_id, status=RunState.RUNNING, current=0, total=len(test_cases)
        )

        logger.info(
            f"[{run_id}] Starting '{run_name}' with {len(test_cases)} case(s)"
            f"{' (dry run)' if config.dry_run else ''}"
        )

        start = time.monotonic()
        results: List[TestResult] = []

        try:
            for index, test_case in enumerate(test_cases):
                if cancel_event.is_set():
                    result = self._skipped(test_case, CANCELLED_MESSAGE)
                elif config.dry_run:
                    result = self._skipped(test_case, DRY_RUN_MESSAGE)
                else:
                    result = await self.executor.execute_test_case(test_case, run_id)

                await TestRunRepository.create_test_run_result(
                    db,
                    run_id=run_id,
                    test_case_id=test_case.id,
                    status=result.status.value,
                    test_case_name=test_case.name,
                    sequence=index,
                    actual_result=result.actual_result,
                    error_message=result.error_message,
                    duration=result.duration,
                )
                results.append(result)

                counts = count_statuses(results)
                await TestRunRepository.update_test_run(
                    db,
                    run_id,
                    passed_tests=counts["passed"],
                    failed_tests=counts["failed"],
                    skipped_tests=counts["skipped"],
                )

                progress = RunProgress(
                    run_id=run_id,
                    status=RunState.RUNNING,
                    current=index + 1,
                    total=len(test_cases),
                    current_page=test_case.name,
                    results=list(results),
                )
                self._progress[run_id] = progress
                await notify_progress(on_progress, progress, run_id)

            if cancel_event.is_set():
                final_status = RunState.CANCELLED
            elif any(r.status == ResultStatus.FAILED for r in results):
                final_status = RunState.FAILED
            else:
                final_status = RunState.COMPLETED

            summary = await self._finalize(db, run_id, run_name, config, final_status, start, results)
        except Exception as e:
            logger.error(f"[{run_id}] Run aborted: {e}", exc_info=True)
            await db.rollback()
            try:
                await self._finalize(db, run_id, run_name, config, RunState.FAILED, start, results, aborted=True)
            except Exception as finalize_error:
                logger.error(f"[{run_id}] Could not mark aborted run as failed: {finalize_error}")
            raise
        finally:
            self._cancel_events.pop(run_id, None)
            final_progress = self._progress.pop(run_id, None)

        await self._log_dev_test(db, scope_name, config, test_cases, summary)
        await notify_progress(on_progress, final_progress, run_id)
        return summary

    def _skipped(self, test_case: TestCase, reason: str) -> TestResult:
        return TestResult(
            test_case_id=test_case.id,
            test_case_name=test_case.name,
            status=ResultStatus.SKIPPED,
            duration=0,
            error_message=reason,
        )

    async def _finalize(
        self,
        db: AsyncSession,
        run_id: str,
        name: str,
        config: TestExecutionConfig,
        status: RunState,
        start: float,
        results: List[TestResult],
        aborted: bool = False
    ) -> TestRunSummary:
        """Stamp the terminal state; counters are re-derived from stored rows."""
        duration = int((time.monotonic() - start) * 1000)
        counts = count_statuses(results)
        stored = await TestRunRepository.count_results_by_status(db, run_id)
        if stored != counts:
            logger.warning(f"[{run_id}] Counter drift, trusting result rows: memory={counts} rows={stored}")
            counts = stored

        updates = dict(
            status=status.value,
            passed_tests=counts["passed"],
            failed_tests=counts["failed"],
            skipped_tests=counts["skipped"],
            completed_at=datetime.utcnow(),
            duration=duration,
        )
        if aborted:
            # Only the recorded rows count towards an aborted run
            updates["total_tests"] = sum(counts.values())

        run = await TestRunRepository.update_test_run(db, run_id, **updates)
        total = run.total_tests if run else sum(counts.values())

        self._progress[run_id] = RunProgress(
            run_id=run_id,
            status=status,
            current=len(results),
            total=total,
            results=list(results),
        )
        logger.info(
            f"[{run_id}] Run {status.value}: {counts['passed']} passed, "
            f"{counts['failed']} failed, {counts['skipped']} skipped in {duration}ms"
        )

        return TestRunSummary(
            run_id=run_id,
            name=name,
            scope=config.scope,
            scope_id=config.scope_id,
            status=status,
            total_tests=total,
            passed_tests=counts["passed"],
            failed_tests=counts["failed"],
            skipped_tests=counts["skipped"],
            duration=duration,
            results=results,
        )

    async def _log_dev_test(
        self,
        db: AsyncSession,
        scope_name: str,
        config: TestExecutionConfig,
        test_cases: List[TestCase],
        summary: TestRunSummary
    ) -> None:
        await DevTestRepository.create(
            db,
            name=f"Testing Engine: {scope_name}",
            status="failed" if summary.failed_tests > 0 else "passed",
            description=f"Automated test run for {TestScope(config.scope).value}: {scope_name}",
            module="Testing Engine",
            test_steps=[tc.name for tc in test_cases],
            expected_result=f"All {len(test_cases)} tests should pass",
            actual_result=(
                f"Passed: {summary.passed_tests}, Failed: {summary.failed_tests}, "
                f"Skipped: {summary.skipped_tests}"
            ),
            duration=summary.duration,
            error_message=f"{summary.failed_tests} test(s) failed" if summary.failed_tests > 0 else None,
            cleaned_up=False,
            tested_by=config.triggered_by or "system",
        )


# Global run manager instance
_run_manager: Optional[RunManager] = None


def get_run_manager() -> RunManager:
    """Get global run manager instance."""
    global _run_manager
    if _run_manager is None:
        _run_manager = RunManager()
    return _run_manager
