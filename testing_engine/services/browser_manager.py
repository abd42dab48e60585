"""Browser manager: one headless Chromium, context and page per run."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page

from testing_engine.utils.config import settings

logger = logging.getLogger(__name__)


class BrowserLaunchError(RuntimeError):
    """No candidate browser executable could be launched."""


class BrowserManager:
    """Manages Playwright browser contexts per run."""

    def __init__(self):
        self._browsers: Dict[str, Browser] = {}
        self._contexts: Dict[str, BrowserContext] = {}
        self._pages: Dict[str, Page] = {}
        self._playwright = None

    async def initialize(self):
        """Initialize Playwright."""
        if self._playwright is None:
            self._playwright = await async_playwright().start()
            logger.info("Playwright initialized")

    def candidate_executables(self) -> List[Optional[str]]:
        """
        Executables to try, in order. ``None`` means Playwright's bundled
        Chromium and is always the last resort.
        """
        candidates: List[Optional[str]] = []
        for path in [settings.CHROMIUM_PATH, *settings.CHROMIUM_CANDIDATE_PATHS]:
            if path and path not in candidates:
                candidates.append(path)
        candidates.append(None)
        return candidates

    async def launch_browser(self, run_id: str) -> Browser:
        """Launch the first candidate that starts; raise BrowserLaunchError otherwise."""
        if self._playwright is None:
            await self.initialize()

        last_error: Optional[Exception] = None
        for executable in self.candidate_executables():
            label = executable or "bundled chromium"
            try:
                browser = await self._playwright.chromium.launch(
                    headless=True,
                    executable_path=executable,
                    args=settings.BROWSER_ARGS,
                )
                logger.info(f"[{run_id}] Browser launched with: {label}")
                return browser
            except Exception as e:
                last_error = e
                logger.warning(f"[{run_id}] Failed to launch {label}: {e}")

        raise BrowserLaunchError(f"Could not launch browser: {last_error}")

    async def get_or_create_context(self, run_id: str) -> BrowserContext:
        """
        Get or create a browser context for a run.

        Args:
            run_id: Run identifier

        Returns:
            BrowserContext
        """
        if run_id in self._contexts:
            return self._contexts[run_id]

        browser = await self.launch_browser(run_id)
        self._browsers[run_id] = browser

        context = await browser.new_context(
            viewport={"width": settings.BROWSER_VIEWPORT_WIDTH, "height": settings.BROWSER_VIEWPORT_HEIGHT},
            user_agent=settings.BROWSER_USER_AGENT,
            ignore_https_errors=True,
        )
        self._contexts[run_id] = context

        logger.info(f"Created browser context for run: {run_id}")
        return context

    async def get_page(self, run_id: str) -> Page:
        """Get or create the single page for a run."""
        if run_id in self._pages:
            return self._pages[run_id]

        context = await self.get_or_create_context(run_id)
        page = await context.new_page()
        self._pages[run_id] = page

        logger.info(f"Created page for run: {run_id}")
        return page

    @asynccontextmanager
    async def session(self, run_id: str) -> AsyncIterator[Page]:
        """
        Scoped browser session for one run. The browser is released on exit,
        whether the body completes or raises.
        """
        try:
            yield await self.get_page(run_id)
        finally:
            await self.close_context(run_id)

    async def close_context(self, run_id: str) -> None:
        """Close browser context for a run."""
        for registry in (self._pages, self._contexts, self._browsers):
            resource = registry.pop(run_id, None)
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                logger.debug(f"[{run_id}] Ignoring error on close: {e}")

        logger.info(f"Closed browser context for run: {run_id}")

    async def close_all(self) -> None:
        """Close all browser contexts."""
        run_ids = set(self._contexts) | set(self._browsers)
        for run_id in run_ids:
            await self.close_context(run_id)

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
            logger.info("Playwright stopped")


# Global browser manager instance
_browser_manager = BrowserManager()


def get_browser_manager() -> BrowserManager:
    """Get global browser manager instance."""
    return _browser_manager
