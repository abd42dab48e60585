"""Expands a run request into the ordered list of enabled test cases."""

import logging
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from testing_engine.database.repositories import (
    ModuleRepository,
    PageRepository,
    FeatureRepository,
    TestCaseRepository,
)
from testing_engine.models.database import TestCase, TestFeature, TestPage
from testing_engine.models.testing import TestExecutionConfig, TestLevel, TestScope

logger = logging.getLogger(__name__)

UNKNOWN_SCOPE_NAMES = {
    TestScope.MODULE: "Unknown Module",
    TestScope.PAGE: "Unknown Page",
    TestScope.FEATURE: "Unknown Feature",
    TestScope.CASE: "Unknown Test Case",
}


async def _cases_of_features(db: AsyncSession, features: Iterable[TestFeature]) -> List[TestCase]:
    cases: List[TestCase] = []
    for feature in features:
        if not feature.enabled:
            continue
        cases.extend(await TestCaseRepository.get_test_cases(db, feature.id))
    return cases


async def _cases_of_pages(db: AsyncSession, pages: Iterable[TestPage]) -> List[TestCase]:
    cases: List[TestCase] = []
    for page in pages:
        if not page.enabled:
            continue
        features = await FeatureRepository.get_features(db, page.id)
        cases.extend(await _cases_of_features(db, features))
    return cases


async def _ancestors_enabled(
    db: AsyncSession,
    page_id: Optional[str] = None,
    feature_id: Optional[str] = None
) -> bool:
    """Whether every container above a scoped entity is enabled."""
    if feature_id is not None:
        feature = await FeatureRepository.get_feature_by_id(db, feature_id)
        if not feature or not feature.enabled:
            return False
        page_id = feature.page_id

    if page_id is not None:
        page = await PageRepository.get_page_by_id(db, page_id)
        if not page or not page.enabled:
            return False
        module = await ModuleRepository.get_module_by_id(db, page.module_id)
        return bool(module and module.enabled)

    return True


async def resolve_test_cases(db: AsyncSession, config: TestExecutionConfig) -> List[TestCase]:
    """
    Resolve a scope into a flat list of enabled test cases.

    Output follows a depth-first walk in display order: module, page,
    feature, then case. An unknown scope id resolves to an empty list.
    Disabled entities at any level are excluded.
    """
    scope = TestScope(config.scope)
    scope_id = config.scope_id
    test_cases: List[TestCase] = []

    if scope == TestScope.ALL:
        for module in await ModuleRepository.get_modules(db):
            if not module.enabled:
                continue
            pages = await PageRepository.get_pages(db, module.id)
            test_cases.extend(await _cases_of_pages(db, pages))

    elif scope == TestScope.MODULE:
        module = await ModuleRepository.get_module_by_id(db, scope_id)
        if module and module.enabled:
            pages = await PageRepository.get_pages(db, module.id)
            test_cases = await _cases_of_pages(db, pages)

    elif scope == TestScope.PAGE:
        if await _ancestors_enabled(db, page_id=scope_id):
            features = await FeatureRepository.get_features(db, scope_id)
            test_cases = await _cases_of_features(db, features)

    elif scope == TestScope.FEATURE:
        if await _ancestors_enabled(db, feature_id=scope_id):
            test_cases = await TestCaseRepository.get_test_cases(db, scope_id)

    elif scope == TestScope.CASE:
        test_case = await TestCaseRepository.get_test_case_by_id(db, scope_id)
        if test_case and await _ancestors_enabled(db, feature_id=test_case.feature_id):
            test_cases = [test_case]

    if config.test_levels:
        levels = {TestLevel(level).value for level in config.test_levels}
        test_cases = [tc for tc in test_cases if tc.test_level in levels]

    resolved = [tc for tc in test_cases if tc.enabled]
    logger.debug(f"Resolved {len(resolved)} test case(s) for scope {scope.value}:{scope_id or '*'}")
    return resolved


async def resolve_scope_name(db: AsyncSession, scope: TestScope, scope_id: str) -> str:
    """Display name of the scoped entity, used for run naming."""
    scope = TestScope(scope)
    if scope == TestScope.ALL:
        return "All Modules"

    lookup = {
        TestScope.MODULE: ModuleRepository.get_module_by_id,
        TestScope.PAGE: PageRepository.get_page_by_id,
        TestScope.FEATURE: FeatureRepository.get_feature_by_id,
        TestScope.CASE: TestCaseRepository.get_test_case_by_id,
    }[scope]
    entity = await lookup(db, scope_id)
    return entity.name if entity else UNKNOWN_SCOPE_NAMES[scope]
