"""Database repositories for the test catalog and run history.

The catalog is split the same way the data is owned:

* ``ModuleRepository`` / ``PageRepository`` hold the reconciled layer written by
  the synchronizer (slug-keyed, slug immutable).
* ``FeatureRepository`` / ``TestCaseRepository`` hold the hand-authored layer.

Repositories carry no policy; datastore errors propagate unchanged.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from testing_engine.models.database import (
    TestModule,
    TestPage,
    TestFeature,
    TestCase,
    TestRun,
    TestRunResult,
    E2eRun,
    E2eResult,
    DevTest,
)

logger = logging.getLogger(__name__)

# Never rewritten by update_*: ids are opaque keys, slugs anchor reconciliation.
IMMUTABLE_FIELDS = {"id", "slug"}


def _apply_updates(entity, updates: Dict[str, Any], immutable=("id",)) -> None:
    for key, value in updates.items():
        if key in immutable:
            logger.warning(f"Ignoring update of immutable field '{key}' on {entity.__tablename__}")
            continue
        if hasattr(entity, key):
            setattr(entity, key, value)


def to_dict(entity) -> Dict[str, Any]:
    """Plain column dict for an ORM row."""
    return {column.key: getattr(entity, column.key) for column in entity.__table__.columns}


class ModuleRepository:
    """Repository for TestModule operations."""

    @staticmethod
    async def get_modules(db: AsyncSession) -> List[TestModule]:
        """All modules ordered by display order."""
        result = await db.execute(select(TestModule).order_by(TestModule.order, TestModule.name))
        return list(result.scalars().all())

    @staticmethod
    async def get_module_by_id(db: AsyncSession, module_id: str) -> Optional[TestModule]:
        result = await db.execute(select(TestModule).where(TestModule.id == module_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_module_by_slug(db: AsyncSession, slug: str) -> Optional[TestModule]:
        result = await db.execute(select(TestModule).where(TestModule.slug == slug))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_module(db: AsyncSession, name: str, slug: str, **kwargs) -> TestModule:
        """Create a new module."""
        module = TestModule(name=name, slug=slug, **kwargs)
        db.add(module)
        await db.commit()
        await db.refresh(module)
        logger.info(f"Created module: {slug}")
        return module

    @staticmethod
    async def update_module(db: AsyncSession, module_id: str, **updates) -> Optional[TestModule]:
        """Update module fields (slug is immutable)."""
        module = await ModuleRepository.get_module_by_id(db, module_id)
        if not module:
            return None

        _apply_updates(module, updates, immutable=IMMUTABLE_FIELDS)
        await db.commit()
        await db.refresh(module)
        return module

    @staticmethod
    async def delete_module(db: AsyncSession, module_id: str) -> bool:
        """Delete a module; pages, features and cases cascade."""
        module = await ModuleRepository.get_module_by_id(db, module_id)
        if not module:
            return False
        await db.delete(module)
        await db.commit()
        logger.info(f"Deleted module: {module.slug}")
        return True


class PageRepository:
    """Repository for TestPage operations."""

    @staticmethod
    async def get_pages(db: AsyncSession, module_id: Optional[str] = None) -> List[TestPage]:
        """Pages of one module, or every page when no module is given."""
        query = select(TestPage)
        if module_id is not None:
            query = query.where(TestPage.module_id == module_id)
        result = await db.execute(query.order_by(TestPage.order, TestPage.name))
        return list(result.scalars().all())

    @staticmethod
    async def get_page_by_id(db: AsyncSession, page_id: str) -> Optional[TestPage]:
        result = await db.execute(select(TestPage).where(TestPage.id == page_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_page_by_slug(db: AsyncSession, module_id: str, slug: str) -> Optional[TestPage]:
        """Slugs are unique within their module."""
        result = await db.execute(
            select(TestPage).where(TestPage.module_id == module_id, TestPage.slug == slug)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create_page(
        db: AsyncSession,
        module_id: str,
        name: str,
        slug: str,
        route: str = "",
        **kwargs
    ) -> TestPage:
        """Create a new page."""
        page = TestPage(module_id=module_id, name=name, slug=slug, route=route, **kwargs)
        db.add(page)
        await db.commit()
        await db.refresh(page)
        logger.info(f"Created page: {slug} ({route})")
        return page

    @staticmethod
    async def update_page(db: AsyncSession, page_id: str, **updates) -> Optional[TestPage]:
        """Update page fields (slug is immutable)."""
        page = await PageRepository.get_page_by_id(db, page_id)
        if not page:
            return None

        _apply_updates(page, updates, immutable=IMMUTABLE_FIELDS)
        await db.commit()
        await db.refresh(page)
        return page

    @staticmethod
    async def delete_page(db: AsyncSession, page_id: str) -> bool:
        page = await PageRepository.get_page_by_id(db, page_id)
        if not page:
            return False
        await db.delete(page)
        await db.commit()
        logger.info(f"Deleted page: {page.slug}")
        return True


class FeatureRepository:
    """Repository for TestFeature operations."""

    @staticmethod
    async def get_features(db: AsyncSession, page_id: Optional[str] = None) -> List[TestFeature]:
        query = select(TestFeature)
        if page_id is not None:
            query = query.where(TestFeature.page_id == page_id)
        result = await db.execute(query.order_by(TestFeature.order, TestFeature.name))
        return list(result.scalars().all())

    @staticmethod
    async def get_feature_by_id(db: AsyncSession, feature_id: str) -> Optional[TestFeature]:
        result = await db.execute(select(TestFeature).where(TestFeature.id == feature_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_feature(db: AsyncSession, page_id: str, name: str, **kwargs) -> TestFeature:
        feature = TestFeature(page_id=page_id, name=name, **kwargs)
        db.add(feature)
        await db.commit()
        await db.refresh(feature)
        logger.info(f"Created feature: {name}")
        return feature

    @staticmethod
    async def update_feature(db: AsyncSession, feature_id: str, **updates) -> Optional[TestFeature]:
        feature = await FeatureRepository.get_feature_by_id(db, feature_id)
        if not feature:
            return None

        _apply_updates(feature, updates)
        await db.commit()
        await db.refresh(feature)
        return feature

    @staticmethod
    async def delete_feature(db: AsyncSession, feature_id: str) -> bool:
        feature = await FeatureRepository.get_feature_by_id(db, feature_id)
        if not feature:
            return False
        await db.delete(feature)
        await db.commit()
        return True


class TestCaseRepository:
    """Repository for TestCase operations."""
    __test__ = False

    @staticmethod
    async def get_test_cases(db: AsyncSession, feature_id: Optional[str] = None) -> List[TestCase]:
        query = select(TestCase)
        if feature_id is not None:
            query = query.where(TestCase.feature_id == feature_id)
        result = await db.execute(query.order_by(TestCase.order, TestCase.name))
        return list(result.scalars().all())

    @staticmethod
    async def get_test_case_by_id(db: AsyncSession, test_case_id: str) -> Optional[TestCase]:
        result = await db.execute(select(TestCase).where(TestCase.id == test_case_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_test_case(
        db: AsyncSession,
        feature_id: str,
        name: str,
        test_level: str,
        **kwargs
    ) -> TestCase:
        test_case = TestCase(feature_id=feature_id, name=name, test_level=test_level, **kwargs)
        db.add(test_case)
        await db.commit()
        await db.refresh(test_case)
        logger.info(f"Created test case: {name} [{test_level}]")
        return test_case

    @staticmethod
    async def update_test_case(db: AsyncSession, test_case_id: str, **updates) -> Optional[TestCase]:
        test_case = await TestCaseRepository.get_test_case_by_id(db, test_case_id)
        if not test_case:
            return None

        _apply_updates(test_case, updates)
        await db.commit()
        await db.refresh(test_case)
        return test_case

    @staticmethod
    async def delete_test_case(db: AsyncSession, test_case_id: str) -> bool:
        test_case = await TestCaseRepository.get_test_case_by_id(db, test_case_id)
        if not test_case:
            return False
        await db.delete(test_case)
        await db.commit()
        return True


class CatalogRepository:
    """Read helpers spanning the whole hierarchy."""

    @staticmethod
    async def get_full_hierarchy(db: AsyncSession) -> List[Dict[str, Any]]:
        """Entire module -> page -> feature -> case tree in one call."""
        result = await db.execute(
            select(TestModule)
            .options(
                selectinload(TestModule.pages)
                .selectinload(TestPage.features)
                .selectinload(TestFeature.test_cases)
            )
            .order_by(TestModule.order, TestModule.name)
        )
        modules = result.scalars().all()

        hierarchy = []
        for module in modules:
            module_data = to_dict(module)
            module_data["pages"] = []
            for page in module.pages:
                page_data = to_dict(page)
                page_data["features"] = []
                for feature in page.features:
                    feature_data = to_dict(feature)
                    feature_data["test_cases"] = [to_dict(tc) for tc in feature.test_cases]
                    page_data["features"].append(feature_data)
                module_data["pages"].append(page_data)
            hierarchy.append(module_data)

        return hierarchy

    @staticmethod
    async def get_test_cases_count_by_page(db: AsyncSession, page_id: str) -> int:
        result = await db.execute(
            select(func.count(TestCase.id))
            .join(TestFeature, TestCase.feature_id == TestFeature.id)
            .where(TestFeature.page_id == page_id)
        )
        return result.scalar_one()

    @staticmethod
    async def get_test_cases_count_by_module(db: AsyncSession, module_id: str) -> int:
        result = await db.execute(
            select(func.count(TestCase.id))
            .join(TestFeature, TestCase.feature_id == TestFeature.id)
            .join(TestPage, TestFeature.page_id == TestPage.id)
            .where(TestPage.module_id == module_id)
        )
        return result.scalar_one()

    @staticmethod
    async def get_test_stats(db: AsyncSession, recent_limit: int = 10) -> Dict[str, Any]:
        """Catalog totals plus the most recent runs."""
        totals = {}
        for key, model in (
            ("total_modules", TestModule),
            ("total_pages", TestPage),
            ("total_features", TestFeature),
            ("total_test_cases", TestCase),
        ):
            result = await db.execute(select(func.count()).select_from(model))
            totals[key] = result.scalar_one()

        totals["recent_runs"] = await TestRunRepository.list_test_runs(db, limit=recent_limit)
        return totals


class TestRunRepository:
    """Repository for TestRun and TestRunResult operations."""
    __test__ = False

    @staticmethod
    async def create_test_run(db: AsyncSession, name: str, scope: str, **kwargs) -> TestRun:
        run = TestRun(name=name, scope=scope, **kwargs)
        db.add(run)
        await db.commit()
        await db.refresh(run)
        logger.info(f"Created test run: {run.id} ({name})")
        return run

    @staticmethod
    async def get_test_run(db: AsyncSession, run_id: str) -> Optional[TestRun]:
        result = await db.execute(select(TestRun).where(TestRun.id == run_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def update_test_run(db: AsyncSession, run_id: str, **updates) -> Optional[TestRun]:
        run = await TestRunRepository.get_test_run(db, run_id)
        if not run:
            return None

        _apply_updates(run, updates)
        await db.commit()
        await db.refresh(run)
        return run

    @staticmethod
    async def list_test_runs(db: AsyncSession, limit: int = 50, offset: int = 0) -> List[TestRun]:
        result = await db.execute(
            select(TestRun).order_by(desc(TestRun.started_at)).limit(limit).offset(offset)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_test_run_with_results(db: AsyncSession, run_id: str) -> Optional[TestRun]:
        result = await db.execute(
            select(TestRun)
            .options(selectinload(TestRun.results))
            .where(TestRun.id == run_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create_test_run_result(
        db: AsyncSession,
        run_id: str,
        test_case_id: str,
        status: str,
        **kwargs
    ) -> TestRunResult:
        """Append one result row. Rows are never edited afterwards."""
        row = TestRunResult(
            run_id=run_id,
            test_case_id=test_case_id,
            status=status,
            executed_at=datetime.utcnow(),
            **kwargs
        )
        db.add(row)
        await db.commit()
        await db.refresh(row)
        return row

    @staticmethod
    async def get_results_by_run(db: AsyncSession, run_id: str) -> List[TestRunResult]:
        result = await db.execute(
            select(TestRunResult)
            .where(TestRunResult.run_id == run_id)
            .order_by(TestRunResult.sequence)
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_results_by_status(db: AsyncSession, run_id: str) -> Dict[str, int]:
        """Re-aggregate a run's counters from its result rows."""
        result = await db.execute(
            select(TestRunResult.status, func.count(TestRunResult.id))
            .where(TestRunResult.run_id == run_id)
            .group_by(TestRunResult.status)
        )
        counts = {"passed": 0, "failed": 0, "skipped": 0}
        for status, count in result.all():
            counts[status] = count
        return counts


class E2eRunRepository:
    """Repository for sweep runs and their page results."""

    @staticmethod
    async def create_run(db: AsyncSession, name: str, scope: str, **kwargs) -> E2eRun:
        run = E2eRun(name=name, scope=scope, **kwargs)
        db.add(run)
        await db.commit()
        await db.refresh(run)
        logger.info(f"Created e2e run: {run.id} ({name})")
        return run

    @staticmethod
    async def get_run(db: AsyncSession, run_id: str) -> Optional[E2eRun]:
        result = await db.execute(select(E2eRun).where(E2eRun.id == run_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def update_run(db: AsyncSession, run_id: str, **updates) -> Optional[E2eRun]:
        run = await E2eRunRepository.get_run(db, run_id)
        if not run:
            return None

        _apply_updates(run, updates)
        await db.commit()
        await db.refresh(run)
        return run

    @staticmethod
    async def create_result(db: AsyncSession, run_id: str, **fields) -> E2eResult:
        row = E2eResult(run_id=run_id, executed_at=datetime.utcnow(), **fields)
        db.add(row)
        await db.commit()
        await db.refresh(row)
        return row

    @staticmethod
    async def list_runs(db: AsyncSession, limit: int = 50) -> List[E2eRun]:
        result = await db.execute(select(E2eRun).order_by(desc(E2eRun.started_at)).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def get_run_with_results(db: AsyncSession, run_id: str) -> Optional[E2eRun]:
        result = await db.execute(
            select(E2eRun)
            .options(selectinload(E2eRun.results))
            .where(E2eRun.id == run_id)
        )
        return result.scalar_one_or_none()


class DevTestRepository:
    """Repository for the dev test log."""

    @staticmethod
    async def get_all(db: AsyncSession) -> List[DevTest]:
        result = await db.execute(select(DevTest).order_by(desc(DevTest.created_at)))
        return list(result.scalars().all())

    @staticmethod
    async def get_by_id(db: AsyncSession, dev_test_id: str) -> Optional[DevTest]:
        result = await db.execute(select(DevTest).where(DevTest.id == dev_test_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def create(db: AsyncSession, name: str, status: str, **kwargs) -> DevTest:
        kwargs.setdefault("tested_at", datetime.utcnow())
        dev_test = DevTest(name=name, status=status, **kwargs)
        db.add(dev_test)
        await db.commit()
        await db.refresh(dev_test)
        return dev_test

    @staticmethod
    async def update(db: AsyncSession, dev_test_id: str, **updates) -> Optional[DevTest]:
        dev_test = await DevTestRepository.get_by_id(db, dev_test_id)
        if not dev_test:
            return None
        _apply_updates(dev_test, updates)
        await db.commit()
        await db.refresh(dev_test)
        return dev_test

    @staticmethod
    async def delete(db: AsyncSession, dev_test_id: str) -> bool:
        dev_test = await DevTestRepository.get_by_id(db, dev_test_id)
        if not dev_test:
            return False
        await db.delete(dev_test)
        await db.commit()
        return True
