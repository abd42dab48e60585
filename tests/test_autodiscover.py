"""Tests for catalog synchronization from the sitemap."""

import copy

import pytest

from testing_engine.database.repositories import ModuleRepository, PageRepository
from testing_engine.services.autodiscover import auto_discover_and_register, page_slug
from testing_engine.services.sitemap import (
    SIDEBAR_CONFIG,
    get_module_list,
    get_modules_with_pages,
    get_page_count,
)

SMALL_SITEMAP = [
    {
        "title": "Dashboard",
        "slug": "dashboard",
        "items": [
            {"id": "overview", "label": "Overview", "route": "/admin"},
            {"id": "activity", "label": "Live Activity", "route": "/admin/activity"},
        ],
    },
    {
        "title": "Carriers",
        "slug": "carriers",
        "items": [
            {"id": "carriers", "label": "Carriers", "route": "/admin/carriers"},
        ],
    },
]


class TestSitemap:
    """Tests for the shipped sitemap helpers."""

    def test_sections_have_unique_slugs(self):
        slugs = [section["slug"] for section in SIDEBAR_CONFIG]
        assert len(slugs) == len(set(slugs))

    def test_page_slugs_unique_within_section(self):
        for section in SIDEBAR_CONFIG:
            ids = [item["id"] for item in section["items"]]
            assert len(ids) == len(set(ids)), section["slug"]

    def test_helpers_agree_with_config(self):
        assert get_module_list()[0] == "Dashboard"
        assert len(get_module_list()) == len(SIDEBAR_CONFIG)
        assert get_page_count() == sum(len(m["pages"]) for m in get_modules_with_pages())

    def test_composite_page_slug(self):
        assert page_slug("billing", "invoices") == "billing-invoices"


class TestAutoDiscover:
    """Tests for auto_discover_and_register."""

    @pytest.mark.asyncio
    async def test_first_run_creates_everything(self, db):
        result = await auto_discover_and_register(db, SMALL_SITEMAP)

        assert result.modules_created == 2
        assert result.pages_created == 3
        assert result.modules_updated == 0
        assert result.total_modules == 2
        assert result.total_pages == 3

        module = await ModuleRepository.get_module_by_slug(db, "dashboard")
        assert module.description == "Dashboard module (auto-discovered)"
        page = await PageRepository.get_page_by_slug(db, module.id, "dashboard-activity")
        assert page.route == "/admin/activity"
        assert page.description == "Live Activity page"
        assert page.order == 1

    @pytest.mark.asyncio
    async def test_second_run_is_idempotent(self, db):
        await auto_discover_and_register(db, SMALL_SITEMAP)
        result = await auto_discover_and_register(db, SMALL_SITEMAP)

        assert result.modules_created == 0
        assert result.pages_created == 0
        assert result.modules_updated == 2
        assert result.pages_updated == 3
        assert result.total_pages == 3

    @pytest.mark.asyncio
    async def test_added_item_creates_exactly_one_page(self, db):
        await auto_discover_and_register(db, SMALL_SITEMAP)
        before = {p.slug: (p.id, p.name, p.route) for p in await PageRepository.get_pages(db)}

        extended = copy.deepcopy(SMALL_SITEMAP)
        extended[1]["items"].append({"id": "interconnects", "label": "Interconnects", "route": "/admin/interconnects"})
        result = await auto_discover_and_register(db, extended)

        assert result.pages_created == 1
        assert result.modules_created == 0
        after = {p.slug: (p.id, p.name, p.route) for p in await PageRepository.get_pages(db)}
        assert set(after) - set(before) == {"carriers-interconnects"}
        for slug, values in before.items():
            assert after[slug] == values

    @pytest.mark.asyncio
    async def test_removed_items_are_left_in_place(self, db):
        await auto_discover_and_register(db, SMALL_SITEMAP)

        result = await auto_discover_and_register(db, SMALL_SITEMAP[:1])

        assert result.total_modules == 2
        assert result.total_pages == 3
        assert await ModuleRepository.get_module_by_slug(db, "carriers") is not None

    @pytest.mark.asyncio
    async def test_renamed_label_updates_in_place(self, db):
        await auto_discover_and_register(db, SMALL_SITEMAP)
        module = await ModuleRepository.get_module_by_slug(db, "dashboard")
        original = await PageRepository.get_page_by_slug(db, module.id, "dashboard-overview")

        renamed = copy.deepcopy(SMALL_SITEMAP)
        renamed[0]["items"][0]["label"] = "Home"
        await auto_discover_and_register(db, renamed)

        page = await PageRepository.get_page_by_slug(db, module.id, "dashboard-overview")
        assert page.id == original.id
        assert page.name == "Home"

    @pytest.mark.asyncio
    async def test_full_sitemap_sync(self, db):
        result = await auto_discover_and_register(db)

        assert result.total_modules == len(SIDEBAR_CONFIG)
        assert result.total_pages == get_page_count()
