"""
Per-page check battery for the catalog sweep.

Each visited page gets six checks, in order:

1. Page loads - navigation resolved within the timeout
2. Has content - rendered body text is longer than CONTENT_MIN_LENGTH
3. No JS errors - the injected console.error hook captured nothing
4. No UI errors - no visible element carries an "error" class or test id
5. Buttons present - at least one visible button
6. Accessibility - axe-core scan; score = max(0, 100 - 5 * violations)

A navigation failure (or any other exception while checking) short-circuits
the battery into a single failed "Page loads" check plus a best-effort
screenshot.
"""

import hashlib
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from axe_playwright_python.async_playwright import Axe

from testing_engine.models.e2e import PageResult, PageToTest, TestCheck
from testing_engine.models.testing import ResultStatus
from testing_engine.utils.config import settings

logger = logging.getLogger(__name__)

VIOLATION_PENALTY = 5
MAX_PASSING_VIOLATIONS = 4

CONSOLE_ERROR_CAPTURE_SCRIPT = """
(() => {
  window.__consoleErrors = [];
  const originalError = console.error;
  console.error = (...args) => {
    window.__consoleErrors.push(args.join(" "));
    originalError.apply(console, args);
  };
})();
"""

UI_ERROR_SELECTOR = '[class*="error"]:visible, [data-testid*="error"]:visible'
BUTTON_SELECTOR = "button:visible"


def accessibility_score(violations: int) -> int:
    return max(0, 100 - VIOLATION_PENALTY * violations)


def accessibility_passed(violations: int) -> bool:
    return violations <= MAX_PASSING_VIOLATIONS


class AccessibilityScanner:
    """axe-core scan restricted to a set of rule tags."""

    def __init__(self, tags: Optional[List[str]] = None):
        self.tags = tags or settings.ACCESSIBILITY_TAGS
        self._axe = Axe()

    async def scan(self, page) -> List[Dict[str, Any]]:
        """Return one ``{id, impact, description, nodes}`` entry per violated rule."""
        results = await self._axe.run(
            page,
            options={"runOnly": {"type": "tag", "values": self.tags}},
        )
        return [
            {
                "id": violation.get("id"),
                "impact": violation.get("impact"),
                "description": violation.get("description"),
                "nodes": len(violation.get("nodes", [])),
            }
            for violation in results.response.get("violations", [])
        ]


async def capture_failure_screenshot(page, run_id: str, root: Optional[str] = None) -> Optional[str]:
    """Save a content-addressed PNG under ``<root>/<run_id>/``; None if capture fails."""
    try:
        png = await page.screenshot()
        digest = hashlib.sha256(png).hexdigest()[:16]
        directory = Path(root or settings.SCREENSHOTS_PATH) / run_id
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{digest}.png"
        path.write_bytes(png)
        return str(path)
    except Exception as e:
        logger.warning(f"[{run_id}] Screenshot capture failed: {e}")
        return None


class PageChecker:
    """Runs the check battery against one route on an authenticated page."""

    def __init__(
        self,
        scanner: Optional[AccessibilityScanner] = None,
        base_url: Optional[str] = None,
        screenshots_path: Optional[str] = None
    ):
        self.scanner = scanner or AccessibilityScanner()
        self.base_url = (base_url or settings.E2E_BASE_URL).rstrip("/")
        self.screenshots_path = screenshots_path or settings.SCREENSHOTS_PATH

    async def install_hooks(self, page) -> None:
        """Register the console.error hook for every document the page loads."""
        await page.add_init_script(CONSOLE_ERROR_CAPTURE_SCRIPT)

    async def check_page(self, page, target: PageToTest, run_id: str) -> PageResult:
        start = time.monotonic()

        if not target.route:
            return PageResult(
                module_name=target.module_name,
                page_name=target.page_name,
                route="",
                status=ResultStatus.SKIPPED,
                duration=0,
                error_message="No route defined for this page",
            )

        try:
            return await self._run_battery(page, target, run_id, start)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.warning(f"[{run_id}] Check of {target.route} failed: {message}")
            screenshot = await capture_failure_screenshot(page, run_id, self.screenshots_path)
            return PageResult(
                module_name=target.module_name,
                page_name=target.page_name,
                route=target.route,
                status=ResultStatus.FAILED,
                duration=int((time.monotonic() - start) * 1000),
                screenshot_path=screenshot,
                accessibility_score=0,
                checks=[TestCheck(name="Page loads", passed=False, details=message)],
                error_message=message,
            )

    async def _run_battery(self, page, target: PageToTest, run_id: str, start: float) -> PageResult:
        # Always a fresh goto; the previous page's outcome is irrelevant
        await page.goto(
            f"{self.base_url}{target.route}",
            wait_until="networkidle",
            timeout=settings.NAVIGATION_TIMEOUT_MS,
        )

        checks = [TestCheck(name="Page loads", passed=True, details="Page loaded successfully")]
        checks.append(await self._check_content(page))
        checks.append(await self._check_console_errors(page))
        checks.append(await self._check_ui_errors(page))
        checks.append(await self._check_buttons(page))

        score, issues, a11y_check = await self._check_accessibility(page, run_id)
        checks.append(a11y_check)

        failed = [check.name for check in checks if not check.passed]
        return PageResult(
            module_name=target.module_name,
            page_name=target.page_name,
            route=target.route,
            status=ResultStatus.FAILED if failed else ResultStatus.PASSED,
            duration=int((time.monotonic() - start) * 1000),
            accessibility_score=score,
            accessibility_issues=issues,
            checks=checks,
            error_message=", ".join(failed) if failed else None,
        )

    async def _check_content(self, page) -> TestCheck:
        content = await page.locator("body").text_content() or ""
        has_content = len(content.strip()) > settings.CONTENT_MIN_LENGTH
        return TestCheck(
            name="Has content",
            passed=has_content,
            details="Content visible" if has_content else "Page appears empty",
        )

    async def _check_console_errors(self, page) -> TestCheck:
        errors = await page.evaluate("() => window.__consoleErrors || []")
        return TestCheck(
            name="No JS errors",
            passed=len(errors) == 0,
            details="No errors" if not errors else f"{len(errors)} errors",
        )

    async def _check_ui_errors(self, page) -> TestCheck:
        count = await page.locator(UI_ERROR_SELECTOR).count()
        return TestCheck(
            name="No UI errors",
            passed=count == 0,
            details="No error elements" if count == 0 else f"{count} error elements",
        )

    async def _check_buttons(self, page) -> TestCheck:
        count = await page.locator(BUTTON_SELECTOR).count()
        return TestCheck(name="Buttons present", passed=count > 0, details=f"{count} buttons found")

    async def _check_accessibility(self, page, run_id: str):
        try:
            issues = await self.scanner.scan(page)
        except Exception as e:
            # Scanner trouble is not a page defect
            logger.warning(f"[{run_id}] Accessibility scan skipped: {e}")
            return 100, [], TestCheck(name="Accessibility", passed=True, details="Scan skipped")

        violations = len(issues)
        score = accessibility_score(violations)
        details = "No WCAG violations" if violations == 0 else f"{violations} violations (score: {score})"
        return score, issues, TestCheck(
            name="Accessibility", passed=accessibility_passed(violations), details=details
        )
