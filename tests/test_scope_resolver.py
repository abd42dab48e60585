"""Tests for scope resolution."""

import pytest

from testing_engine.database.repositories import (
    FeatureRepository,
    ModuleRepository,
    PageRepository,
    TestCaseRepository,
)
from testing_engine.models.testing import TestExecutionConfig, TestLevel, TestScope
from testing_engine.services.scope_resolver import resolve_scope_name, resolve_test_cases


def _names(cases):
    return [case.name for case in cases]


class TestResolveTestCases:
    """Tests for resolve_test_cases."""

    @pytest.mark.asyncio
    async def test_all_scope_preserves_hierarchy_order(self, db, catalog):
        cases = await resolve_test_cases(db, TestExecutionConfig(scope=TestScope.ALL))

        assert _names(cases) == ["a.p1 case", "a.p2 case", "b.p1 case", "b.p2 case"]

    @pytest.mark.asyncio
    async def test_module_scope(self, db, catalog):
        config = TestExecutionConfig(scope=TestScope.MODULE, scope_id=catalog["modules"]["b"].id)
        cases = await resolve_test_cases(db, config)

        assert _names(cases) == ["b.p1 case", "b.p2 case"]

    @pytest.mark.asyncio
    async def test_page_and_feature_scope(self, db, catalog):
        pages = await PageRepository.get_pages(db, catalog["modules"]["a"].id)
        features = await FeatureRepository.get_features(db, pages[1].id)

        by_page = await resolve_test_cases(db, TestExecutionConfig(scope=TestScope.PAGE, scope_id=pages[1].id))
        by_feature = await resolve_test_cases(
            db, TestExecutionConfig(scope=TestScope.FEATURE, scope_id=features[0].id)
        )

        assert _names(by_page) == ["a.p2 case"]
        assert _names(by_feature) == ["a.p2 case"]

    @pytest.mark.asyncio
    async def test_case_scope(self, db, catalog):
        case = catalog["cases"]["b.p2"]
        cases = await resolve_test_cases(db, TestExecutionConfig(scope=TestScope.CASE, scope_id=case.id))

        assert [c.id for c in cases] == [case.id]

    @pytest.mark.asyncio
    async def test_unknown_scope_id_resolves_empty(self, db, catalog):
        for scope in (TestScope.MODULE, TestScope.PAGE, TestScope.FEATURE, TestScope.CASE):
            cases = await resolve_test_cases(db, TestExecutionConfig(scope=scope, scope_id="does-not-exist"))
            assert cases == []

    @pytest.mark.asyncio
    async def test_disabled_case_never_resolved(self, db, catalog):
        disabled = catalog["cases"]["a.p2"]
        await TestCaseRepository.update_test_case(db, disabled.id, enabled=False)

        for config in (
            TestExecutionConfig(scope=TestScope.ALL),
            TestExecutionConfig(scope=TestScope.MODULE, scope_id=catalog["modules"]["a"].id),
            TestExecutionConfig(scope=TestScope.FEATURE, scope_id=disabled.feature_id),
            TestExecutionConfig(scope=TestScope.CASE, scope_id=disabled.id),
        ):
            cases = await resolve_test_cases(db, config)
            assert disabled.id not in [c.id for c in cases]

    @pytest.mark.asyncio
    async def test_disabled_container_excludes_its_cases(self, db, catalog):
        await ModuleRepository.update_module(db, catalog["modules"]["a"].id, enabled=False)

        cases = await resolve_test_cases(db, TestExecutionConfig(scope=TestScope.ALL))
        assert _names(cases) == ["b.p1 case", "b.p2 case"]

        single = await resolve_test_cases(
            db, TestExecutionConfig(scope=TestScope.CASE, scope_id=catalog["cases"]["a.p1"].id)
        )
        assert single == []

    @pytest.mark.asyncio
    async def test_level_filter(self, db, catalog):
        button_case = catalog["cases"]["b.p1"]
        await TestCaseRepository.update_test_case(db, button_case.id, test_level="button")

        only_buttons = await resolve_test_cases(
            db, TestExecutionConfig(scope=TestScope.ALL, test_levels=[TestLevel.BUTTON])
        )
        no_filter = await resolve_test_cases(db, TestExecutionConfig(scope=TestScope.ALL, test_levels=[]))

        assert _names(only_buttons) == ["b.p1 case"]
        assert len(no_filter) == 4


class TestResolveScopeName:
    """Tests for resolve_scope_name."""

    @pytest.mark.asyncio
    async def test_names(self, db, catalog):
        assert await resolve_scope_name(db, TestScope.ALL, "") == "All Modules"
        assert await resolve_scope_name(db, TestScope.MODULE, catalog["modules"]["a"].id) == "Module A"
        assert await resolve_scope_name(db, TestScope.CASE, catalog["cases"]["a.p1"].id) == "a.p1 case"

    @pytest.mark.asyncio
    async def test_unknown_names(self, db):
        assert await resolve_scope_name(db, TestScope.MODULE, "x") == "Unknown Module"
        assert await resolve_scope_name(db, TestScope.PAGE, "x") == "Unknown Page"
        assert await resolve_scope_name(db, TestScope.FEATURE, "x") == "Unknown Feature"
        assert await resolve_scope_name(db, TestScope.CASE, "x") == "Unknown Test Case"
