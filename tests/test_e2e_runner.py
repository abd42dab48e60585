"""Tests for the catalog sweep runner."""

from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import IntegrityError

from testing_engine.database.repositories import DevTestRepository, E2eRunRepository, PageRepository
from testing_engine.models.e2e import E2eRunRequest, PageResult, SweepScope, TestCheck
from testing_engine.models.testing import ResultStatus, RunState
from testing_engine.services.browser_manager import BrowserLaunchError
from testing_engine.services.e2e_runner import E2eRunner, mean_accessibility
from testing_engine.services.login_executor import LoginError


class FakeBrowserManager:
    def __init__(self, launch_error=None):
        self.launch_error = launch_error
        self.page = object()
        self.opened = []
        self.closed = []

    @asynccontextmanager
    async def session(self, run_id):
        self.opened.append(run_id)
        try:
            if self.launch_error:
                raise self.launch_error
            yield self.page
        finally:
            self.closed.append(run_id)


class FakeLogin:
    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    async def login(self, page, run_id):
        self.calls += 1
        if self.error:
            raise self.error
        return "http://app.test/admin"


class FakeChecker:
    """Scores each route from a table; routes listed in ``failing`` fail."""

    def __init__(self, scores=None, failing=(), explode_on=None):
        self.scores = scores or {}
        self.failing = set(failing)
        self.explode_on = explode_on
        self.checked = []
        self.hooked = False

    async def install_hooks(self, page):
        self.hooked = True

    async def check_page(self, page, target, run_id):
        if target.route == self.explode_on:
            raise RuntimeError("browser crashed")
        self.checked.append(target.route)
        failed = target.route in self.failing
        return PageResult(
            module_name=target.module_name,
            page_name=target.page_name,
            route=target.route,
            status=ResultStatus.FAILED if failed else ResultStatus.PASSED,
            accessibility_score=self.scores.get(target.route, 100),
            checks=[TestCheck(name="Page loads", passed=not failed)],
            error_message="Page loads" if failed else None,
        )


def runner(browser=None, login=None, checker=None) -> E2eRunner:
    return E2eRunner(
        browser_manager=browser or FakeBrowserManager(),
        login_executor=login or FakeLogin(),
        page_checker=checker or FakeChecker(),
    )


class TestResolvePages:
    """Tests for E2eRunner.resolve_pages."""

    @pytest.mark.asyncio
    async def test_all_scope_in_catalog_order(self, db, catalog):
        pages, name = await runner().resolve_pages(db, E2eRunRequest())

        assert name == "All Modules"
        assert [p.route for p in pages] == ["/a/p1", "/a/p2", "/b/p1", "/b/p2"]
        assert pages[0].module_name == "Module A"

    @pytest.mark.asyncio
    async def test_module_scope(self, db, catalog):
        request = E2eRunRequest(scope=SweepScope.MODULE, module_id=catalog["modules"]["b"].id)
        pages, name = await runner().resolve_pages(db, request)

        assert name == "Module B"
        assert [p.route for p in pages] == ["/b/p1", "/b/p2"]

    @pytest.mark.asyncio
    async def test_unknown_module(self, db, catalog):
        request = E2eRunRequest(scope=SweepScope.MODULE, module_id="nope")
        assert await runner().resolve_pages(db, request) == ([], "Unknown Module")

    @pytest.mark.asyncio
    async def test_page_scope(self, db, catalog):
        pages, name = await runner().resolve_pages(db, E2eRunRequest(scope=SweepScope.PAGE, route="/b/p2"))

        assert [p.page_name for p in pages] == ["b.p2"]
        assert name == "Module B/b.p2"

    @pytest.mark.asyncio
    async def test_disabled_pages_are_not_visited(self, db, catalog):
        page = (await PageRepository.get_pages(db, catalog["modules"]["a"].id))[0]
        await PageRepository.update_page(db, page.id, enabled=False)

        pages, _ = await runner().resolve_pages(db, E2eRunRequest())
        assert "/a/p1" not in [p.route for p in pages]


class TestSweep:
    """Tests for E2eRunner.run."""

    @pytest.mark.asyncio
    async def test_successful_sweep(self, db, catalog):
        browser = FakeBrowserManager()
        checker = FakeChecker(scores={"/a/p1": 90, "/a/p2": 75})
        summary = await runner(browser=browser, checker=checker).run(db, E2eRunRequest(triggered_by="qa"))

        assert summary.status == RunState.COMPLETED
        assert summary.login_success is True
        assert summary.total_pages == 4
        assert summary.passed_pages == 4
        assert summary.accessibility_score == round((90 + 75 + 100 + 100) / 4)
        assert checker.hooked
        assert checker.checked == ["/a/p1", "/a/p2", "/b/p1", "/b/p2"]
        assert browser.opened == browser.closed == [summary.run_id]

        run = await E2eRunRepository.get_run_with_results(db, summary.run_id)
        assert run.name == "E2E Test: All Modules"
        assert run.status == "completed"
        assert [r.route for r in run.results] == checker.checked
        assert run.results[0].checks == [{"name": "Page loads", "passed": True, "details": ""}]

        entries = await DevTestRepository.get_all(db)
        assert entries[0].name == "E2E Sweep: All Modules"
        assert entries[0].status == "passed"
        assert entries[0].tested_by == "qa"

    @pytest.mark.asyncio
    async def test_failed_page_fails_sweep(self, db, catalog):
        summary = await runner(checker=FakeChecker(failing={"/b/p1"})).run(db, E2eRunRequest())

        assert summary.status == RunState.FAILED
        assert (summary.passed_pages, summary.failed_pages) == (3, 1)
        assert summary.login_success is True

    @pytest.mark.asyncio
    async def test_login_failure_visits_nothing(self, db, catalog):
        browser = FakeBrowserManager()
        checker = FakeChecker()
        login = FakeLogin(error=LoginError("Could not find email field"))

        summary = await runner(browser=browser, login=login, checker=checker).run(db, E2eRunRequest())

        assert summary.status == RunState.FAILED
        assert summary.login_success is False
        assert summary.total_pages == 0
        assert summary.results == []
        assert summary.accessibility_score is None
        assert summary.error_message == "Could not find email field"
        assert checker.checked == []
        assert browser.closed == [summary.run_id]

        run = await E2eRunRepository.get_run(db, summary.run_id)
        assert run.login_success is False
        assert run.total_tests == 0

    @pytest.mark.asyncio
    async def test_launch_failure(self, db, catalog):
        browser = FakeBrowserManager(launch_error=BrowserLaunchError("Could not launch browser: no chromium"))
        login = FakeLogin()

        summary = await runner(browser=browser, login=login).run(db, E2eRunRequest())

        assert summary.status == RunState.FAILED
        assert summary.login_success is False
        assert summary.total_pages == 0
        assert login.calls == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_visited_pages(self, db, catalog):
        checker = FakeChecker(explode_on="/b/p1")
        summary = await runner(checker=checker).run(db, E2eRunRequest())

        assert summary.status == RunState.FAILED
        assert summary.error_message == "browser crashed"
        assert summary.total_pages == 2
        assert summary.login_success is True

    @pytest.mark.asyncio
    async def test_progress_reported(self, db, catalog):
        snapshots = []
        sweeper = runner()
        summary = await sweeper.run(db, E2eRunRequest(scope=SweepScope.MODULE, module_id=catalog["modules"]["a"].id),
                                    snapshots.append)

        assert [s.current for s in snapshots] == [1, 2, 2]
        assert snapshots[0].current_page == "/a/p1"
        assert sweeper.get_progress().status == RunState.COMPLETED
        assert sweeper.get_progress().run_id == summary.run_id


class TestMeanAccessibility:
    """Run-level accessibility aggregate."""

    def test_skipped_pages_ignored(self):
        results = [
            PageResult(module_name="m", page_name="a", route="/a", status=ResultStatus.PASSED, accessibility_score=80),
            PageResult(module_name="m", page_name="b", route="", status=ResultStatus.SKIPPED),
            PageResult(module_name="m", page_name="c", route="/c", status=ResultStatus.FAILED, accessibility_score=0),
        ]
        assert mean_accessibility(results) == 40

    def test_no_visited_pages(self):
        assert mean_accessibility([]) is None


class TestSweepDatastoreFailure:
    """A result row that cannot be written ends the sweep."""

    @pytest.mark.asyncio
    async def test_write_failure_marks_sweep_failed_and_reraises(self, db, catalog, monkeypatch):
        original = E2eRunRepository.create_result
        calls = []

        async def write_second_row_to_missing_run(db, run_id, **fields):
            calls.append(fields["route"])
            if len(calls) == 2:
                run_id = "no-such-sweep"
            return await original(db, run_id, **fields)

        monkeypatch.setattr(E2eRunRepository, "create_result", staticmethod(write_second_row_to_missing_run))
        browser = FakeBrowserManager()

        with pytest.raises(IntegrityError):
            await runner(browser=browser).run(db, E2eRunRequest())

        runs = await E2eRunRepository.list_runs(db)
        assert len(runs) == 1
        assert runs[0].status == "failed"
        assert runs[0].completed_at is not None
        assert runs[0].login_success is True
        assert browser.closed == [runs[0].id]
