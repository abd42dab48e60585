"""Tests for browser session bookkeeping."""

import pytest

from testing_engine.services.browser_manager import BrowserLaunchError, BrowserManager
from testing_engine.utils.config import settings


class Closable:
    def __init__(self, fail=False):
        self.fail = fail
        self.closed = False

    async def close(self):
        self.closed = True
        if self.fail:
            raise RuntimeError("already gone")


class RefusingChromium:
    def __init__(self):
        self.attempts = []

    async def launch(self, headless=True, executable_path=None, args=None):
        self.attempts.append(executable_path)
        raise RuntimeError("executable not found")


class FakePlaywright:
    def __init__(self):
        self.chromium = RefusingChromium()


class TestCandidates:
    def test_configured_path_first_bundled_last(self, monkeypatch):
        monkeypatch.setattr(settings, "CHROMIUM_PATH", "/opt/chrome")
        monkeypatch.setattr(settings, "CHROMIUM_CANDIDATE_PATHS", ["/usr/bin/chromium", "/opt/chrome"])

        assert BrowserManager().candidate_executables() == ["/opt/chrome", "/usr/bin/chromium", None]

    @pytest.mark.asyncio
    async def test_launch_error_after_every_candidate(self, monkeypatch):
        monkeypatch.setattr(settings, "CHROMIUM_PATH", None)
        monkeypatch.setattr(settings, "CHROMIUM_CANDIDATE_PATHS", ["/usr/bin/chromium"])
        manager = BrowserManager()
        manager._playwright = FakePlaywright()

        with pytest.raises(BrowserLaunchError):
            await manager.launch_browser("run-1")
        assert manager._playwright.chromium.attempts == ["/usr/bin/chromium", None]


class TestSessionCleanup:
    @pytest.mark.asyncio
    async def test_close_context_releases_everything(self):
        manager = BrowserManager()
        page, context, browser = Closable(), Closable(fail=True), Closable()
        manager._pages["run-1"] = page
        manager._contexts["run-1"] = context
        manager._browsers["run-1"] = browser

        await manager.close_context("run-1")

        assert page.closed and context.closed and browser.closed
        assert not manager._pages and not manager._contexts and not manager._browsers

    @pytest.mark.asyncio
    async def test_session_closes_when_body_raises(self, monkeypatch):
        manager = BrowserManager()
        browser = Closable()

        async def fake_get_page(run_id):
            manager._browsers[run_id] = browser
            return "page"

        monkeypatch.setattr(manager, "get_page", fake_get_page)

        with pytest.raises(ValueError):
            async with manager.session("run-2") as page:
                assert page == "page"
                raise ValueError("check crashed")

        assert browser.closed
        assert "run-2" not in manager._browsers
