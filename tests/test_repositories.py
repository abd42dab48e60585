"""Tests for the catalog store and run history repositories."""

import pytest
from sqlalchemy.exc import IntegrityError

from testing_engine.database.repositories import (
    CatalogRepository,
    DevTestRepository,
    E2eRunRepository,
    FeatureRepository,
    ModuleRepository,
    PageRepository,
    TestCaseRepository,
    TestRunRepository,
)


class TestCatalogReads:
    """Ordered reads and hierarchy helpers."""

    @pytest.mark.asyncio
    async def test_modules_ordered_by_order(self, db, catalog):
        modules = await ModuleRepository.get_modules(db)
        assert [m.slug for m in modules] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_pages_filtered_by_module(self, db, catalog):
        pages = await PageRepository.get_pages(db, catalog["modules"]["a"].id)
        assert [p.name for p in pages] == ["a.p1", "a.p2"]

    @pytest.mark.asyncio
    async def test_pages_without_filter_returns_all(self, db, catalog):
        pages = await PageRepository.get_pages(db)
        assert len(pages) == 4

    @pytest.mark.asyncio
    async def test_full_hierarchy_nests_every_level(self, db, catalog):
        hierarchy = await CatalogRepository.get_full_hierarchy(db)

        assert [m["slug"] for m in hierarchy] == ["a", "b"]
        first_page = hierarchy[0]["pages"][0]
        assert first_page["name"] == "a.p1"
        assert first_page["features"][0]["test_cases"][0]["name"] == "a.p1 case"

    @pytest.mark.asyncio
    async def test_counts_by_module_and_page(self, db, catalog):
        module_a = catalog["modules"]["a"]
        pages = await PageRepository.get_pages(db, module_a.id)

        assert await CatalogRepository.get_test_cases_count_by_module(db, module_a.id) == 2
        assert await CatalogRepository.get_test_cases_count_by_page(db, pages[0].id) == 1

    @pytest.mark.asyncio
    async def test_stats_totals(self, db, catalog):
        stats = await CatalogRepository.get_test_stats(db)

        assert stats["total_modules"] == 2
        assert stats["total_pages"] == 4
        assert stats["total_features"] == 4
        assert stats["total_test_cases"] == 4
        assert stats["recent_runs"] == []


class TestCatalogWrites:
    """Create, update and delete semantics."""

    @pytest.mark.asyncio
    async def test_slug_is_immutable(self, db):
        module = await ModuleRepository.create_module(db, name="Billing", slug="billing")
        updated = await ModuleRepository.update_module(db, module.id, name="Billing & Payments", slug="renamed")

        assert updated.name == "Billing & Payments"
        assert updated.slug == "billing"

    @pytest.mark.asyncio
    async def test_update_unknown_returns_none(self, db):
        assert await ModuleRepository.update_module(db, "missing", name="x") is None
        assert await TestCaseRepository.update_test_case(db, "missing", name="x") is None

    @pytest.mark.asyncio
    async def test_page_slug_lookup_is_scoped_to_module(self, db, catalog):
        module_a = catalog["modules"]["a"]
        module_b = catalog["modules"]["b"]

        assert await PageRepository.get_page_by_slug(db, module_a.id, "a.p1") is not None
        assert await PageRepository.get_page_by_slug(db, module_b.id, "a.p1") is None

    @pytest.mark.asyncio
    async def test_dangling_parent_is_rejected(self, db):
        with pytest.raises(IntegrityError):
            await FeatureRepository.create_feature(db, page_id="no-such-page", name="Orphan")

    @pytest.mark.asyncio
    async def test_delete_module_cascades(self, db, catalog):
        assert await ModuleRepository.delete_module(db, catalog["modules"]["a"].id) is True

        assert len(await PageRepository.get_pages(db)) == 2
        assert len(await FeatureRepository.get_features(db)) == 2
        assert len(await TestCaseRepository.get_test_cases(db)) == 2

    @pytest.mark.asyncio
    async def test_delete_unknown_returns_false(self, db):
        assert await PageRepository.delete_page(db, "missing") is False


class TestRunHistory:
    """Run rows, result rows and the re-aggregation helper."""

    @pytest.mark.asyncio
    async def test_count_results_by_status(self, db):
        run = await TestRunRepository.create_test_run(db, name="Test Run: All Modules", scope="all", status="running")
        for index, status in enumerate(["passed", "failed", "skipped", "passed"]):
            await TestRunRepository.create_test_run_result(
                db, run_id=run.id, test_case_id=f"case-{index}", status=status, sequence=index
            )

        counts = await TestRunRepository.count_results_by_status(db, run.id)
        assert counts == {"passed": 2, "failed": 1, "skipped": 1}

    @pytest.mark.asyncio
    async def test_results_returned_in_sequence(self, db):
        run = await TestRunRepository.create_test_run(db, name="r", scope="all", status="running")
        for index in (2, 0, 1):
            await TestRunRepository.create_test_run_result(
                db, run_id=run.id, test_case_id=f"case-{index}", status="passed", sequence=index
            )

        rows = await TestRunRepository.get_results_by_run(db, run.id)
        assert [r.test_case_id for r in rows] == ["case-0", "case-1", "case-2"]

        detailed = await TestRunRepository.get_test_run_with_results(db, run.id)
        assert [r.sequence for r in detailed.results] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_sweep_run_with_results(self, db):
        run = await E2eRunRepository.create_run(db, name="E2E Test: All Modules", scope="All Modules", status="running")
        await E2eRunRepository.create_result(
            db, run.id, sequence=0, module_name="Dashboard", page_name="Overview",
            route="/admin", status="passed", checks=[{"name": "Page loads", "passed": True}],
        )

        fetched = await E2eRunRepository.get_run_with_results(db, run.id)
        assert len(fetched.results) == 1
        assert fetched.results[0].checks[0]["name"] == "Page loads"

    @pytest.mark.asyncio
    async def test_dev_test_crud(self, db):
        entry = await DevTestRepository.create(db, name="Testing Engine: All Modules", status="passed")
        assert entry.tested_at is not None

        await DevTestRepository.update(db, entry.id, status="failed")
        assert (await DevTestRepository.get_by_id(db, entry.id)).status == "failed"

        assert len(await DevTestRepository.get_all(db)) == 1
        assert await DevTestRepository.delete(db, entry.id) is True
        assert await DevTestRepository.get_all(db) == []
