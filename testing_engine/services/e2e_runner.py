"""
Catalog-wide browser sweep.

One browser, one login, then every enabled catalog page visited in order
on the same page object. Launch and login are the only failures that end
the sweep early; everything else fails a single page.
"""

import logging
import time
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from testing_engine.database.repositories import (
    DevTestRepository,
    E2eRunRepository,
    ModuleRepository,
    PageRepository,
)
from testing_engine.models.e2e import E2eRunRequest, E2eRunSummary, PageResult, PageToTest, SweepScope
from testing_engine.models.testing import ResultStatus, RunProgress, RunState
from testing_engine.services.browser_manager import BrowserLaunchError, BrowserManager, get_browser_manager
from testing_engine.services.login_executor import LoginError, LoginExecutor, get_login_executor
from testing_engine.services.page_checker import PageChecker
from testing_engine.services.run_manager import ProgressCallback, count_statuses, notify_progress

logger = logging.getLogger(__name__)


def mean_accessibility(results: List[PageResult]) -> Optional[int]:
    """Rounded mean over pages that were actually visited."""
    scores = [r.accessibility_score for r in results if r.status != ResultStatus.SKIPPED]
    if not scores:
        return None
    return round(sum(scores) / len(scores))


class E2eRunner:
    """Runs the page check battery across the catalog."""

    def __init__(
        self,
        browser_manager: Optional[BrowserManager] = None,
        login_executor: Optional[LoginExecutor] = None,
        page_checker: Optional[PageChecker] = None
    ):
        self.browser_manager = browser_manager or get_browser_manager()
        self.login_executor = login_executor or get_login_executor()
        self._page_checker = page_checker
        self._latest_progress: Optional[RunProgress] = None

    @property
    def page_checker(self) -> PageChecker:
        if self._page_checker is None:
            self._page_checker = PageChecker()
        return self._page_checker

    def get_progress(self) -> Optional[RunProgress]:
        """Progress of the most recent sweep."""
        return self._latest_progress

    async def resolve_pages(self, db: AsyncSession, request: E2eRunRequest) -> Tuple[List[PageToTest], str]:
        """Enabled pages of enabled modules in catalog order, plus a scope name."""
        if request.scope == SweepScope.MODULE:
            module = await ModuleRepository.get_module_by_id(db, request.module_id or "")
            if not module:
                return [], "Unknown Module"
            modules = [module] if module.enabled else []
            scope_name = module.name
        else:
            modules = [m for m in await ModuleRepository.get_modules(db) if m.enabled]
            scope_name = "All Modules"

        pages: List[PageToTest] = []
        for module in modules:
            for page in await PageRepository.get_pages(db, module.id):
                if not page.enabled:
                    continue
                pages.append(PageToTest(module_name=module.name, page_name=page.name, route=page.route or ""))

        if request.scope == SweepScope.PAGE:
            pages = [p for p in pages if p.route == request.route]
            scope_name = f"{pages[0].module_name}/{pages[0].page_name}" if pages else (request.route or "")

        return pages, scope_name

    async def run(
        self,
        db: AsyncSession,
        request: E2eRunRequest,
        on_progress: Optional[ProgressCallback] = None
    ) -> E2eRunSummary:
        """
        Execute a sweep and return its summary.

        Never raises for browser or login trouble: the summary comes back
        with ``login_success=False`` and no page results instead. Datastore
        errors are re-raised once the run row has been marked failed.
        """
        pages, scope_name = await self.resolve_pages(db, request)
        started_at = datetime.utcnow()
        run = await E2eRunRepository.create_run(
            db,
            name=f"E2E Test: {scope_name}",
            scope=scope_name,
            status=RunState.RUNNING.value,
            total_tests=len(pages),
            started_at=started_at,
            triggered_by=request.triggered_by,
        )
        run_id = run.id
        run_name = run.name
        start = time.monotonic()
        results: List[PageResult] = []
        login_success = False
        error_message: Optional[str] = None
        infrastructure_failure = False

        self._latest_progress = RunProgress(run_id=run_id, status=RunState.RUNNING, current=0, total=len(pages))
        logger.info(f"[{run_id}] Starting sweep '{run_name}' over {len(pages)} page(s)")

        try:
            async with self.browser_manager.session(run_id) as page:
                await self.page_checker.install_hooks(page)
                await self.login_executor.login(page, run_id)
                login_success = True

                for index, target in enumerate(pages):
                    logger.info(
                        f"[{run_id}] Testing {target.module_name}/{target.page_name} ({index + 1}/{len(pages)})"
                    )
                    result = await self.page_checker.check_page(page, target, run_id)
                    results.append(result)

                    await E2eRunRepository.create_result(
                        db,
                        run_id,
                        sequence=index,
                        module_name=result.module_name,
                        page_name=result.page_name,
                        route=result.route,
                        status=result.status.value,
                        duration=result.duration,
                        screenshot_path=result.screenshot_path,
                        accessibility_score=result.accessibility_score,
                        accessibility_issues=result.accessibility_issues,
                        checks=[check.model_dump() for check in result.checks],
                        error_message=result.error_message,
                    )
                    counts = count_statuses(results)
                    await E2eRunRepository.update_run(
                        db,
                        run_id,
                        passed_tests=counts["passed"],
                        failed_tests=counts["failed"],
                        skipped_tests=counts["skipped"],
                    )

                    self._latest_progress = RunProgress(
                        run_id=run_id,
                        status=RunState.RUNNING,
                        current=index + 1,
                        total=len(pages),
                        current_page=target.route,
                        results=list(results),
                    )
                    await notify_progress(on_progress, self._latest_progress, run_id)

        except (BrowserLaunchError, LoginError) as e:
            infrastructure_failure = True
            error_message = str(e)
            logger.error(f"[{run_id}] Sweep aborted before visiting pages: {e}")
        except SQLAlchemyError as e:
            logger.error(f"[{run_id}] Sweep aborted by datastore error: {e}", exc_info=True)
            await db.rollback()
            try:
                await self._finalize(
                    db, run_id, run_name, scope_name, request, started_at, start,
                    results, login_success, str(e), False, on_progress
                )
            except Exception as finalize_error:
                logger.error(f"[{run_id}] Could not mark aborted sweep as failed: {finalize_error}")
            raise
        except Exception as e:
            error_message = str(e) or type(e).__name__
            logger.error(f"[{run_id}] Sweep failed: {e}", exc_info=True)
            await db.rollback()

        return await self._finalize(
            db, run_id, run_name, scope_name, request, started_at, start,
            results, login_success, error_message, infrastructure_failure, on_progress
        )

    async def _finalize(
        self,
        db: AsyncSession,
        run_id: str,
        name: str,
        scope_name: str,
        request: E2eRunRequest,
        started_at: datetime,
        start: float,
        results: List[PageResult],
        login_success: bool,
        error_message: Optional[str],
        infrastructure_failure: bool,
        on_progress: Optional[ProgressCallback]
    ) -> E2eRunSummary:
        if infrastructure_failure:
            results = []

        counts = count_statuses(results)
        score = mean_accessibility(results)
        duration = int((time.monotonic() - start) * 1000)
        completed_at = datetime.utcnow()

        if error_message or counts["failed"] > 0:
            status = RunState.FAILED
        else:
            status = RunState.COMPLETED

        await E2eRunRepository.update_run(
            db,
            run_id,
            status=status.value,
            total_tests=len(results),
            passed_tests=counts["passed"],
            failed_tests=counts["failed"],
            skipped_tests=counts["skipped"],
            accessibility_score=score,
            login_success=login_success,
            error_message=error_message,
            completed_at=completed_at,
            duration=duration,
        )

        await DevTestRepository.create(
            db,
            name=f"E2E Sweep: {scope_name}",
            status="failed" if status == RunState.FAILED else "passed",
            description=f"Browser sweep for {request.scope.value}: {scope_name}",
            module="Testing Engine",
            test_steps=[r.route for r in results],
            expected_result=f"All {len(results)} pages should pass",
            actual_result=(
                f"Passed: {counts['passed']}, Failed: {counts['failed']}, Skipped: {counts['skipped']}"
            ),
            duration=duration,
            error_message=error_message or (
                f"{counts['failed']} page(s) failed" if counts["failed"] > 0 else None
            ),
            cleaned_up=False,
            tested_by=request.triggered_by or "system",
        )

        self._latest_progress = RunProgress(
            run_id=run_id,
            status=status,
            current=len(results),
            total=len(results),
            results=list(results),
        )
        await notify_progress(on_progress, self._latest_progress, run_id)

        logger.info(
            f"[{run_id}] Sweep {status.value}: {counts['passed']} passed, {counts['failed']} failed, "
            f"{counts['skipped']} skipped, accessibility={score}"
        )

        return E2eRunSummary(
            run_id=run_id,
            name=name,
            status=status,
            total_pages=len(results),
            passed_pages=counts["passed"],
            failed_pages=counts["failed"],
            skipped_pages=counts["skipped"],
            accessibility_score=score,
            duration=duration,
            login_success=login_success,
            error_message=error_message,
            results=results,
            started_at=started_at,
            completed_at=completed_at,
        )


_e2e_runner: Optional[E2eRunner] = None


def get_e2e_runner() -> E2eRunner:
    """Get global sweep runner instance."""
    global _e2e_runner
    if _e2e_runner is None:
        _e2e_runner = E2eRunner()
    return _e2e_runner
