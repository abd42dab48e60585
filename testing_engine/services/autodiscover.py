"""Catalog synchronizer: reconciles the static sitemap into modules and pages."""

import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from testing_engine.database.repositories import ModuleRepository, PageRepository
from testing_engine.models.testing import SyncResult
from testing_engine.services.sitemap import get_sidebar_config

logger = logging.getLogger(__name__)


def page_slug(module_slug: str, item_id: str) -> str:
    return f"{module_slug}-{item_id}"


async def auto_discover_and_register(
    db: AsyncSession,
    sidebar: Optional[List[Dict[str, Any]]] = None
) -> SyncResult:
    """
    Upsert every sitemap section and item by slug.

    Safe to re-run: an unchanged sitemap creates nothing. Entities that
    disappeared from the sitemap are left in place (orphans are never deleted).

    Args:
        db: Database session
        sidebar: Sitemap to reconcile, defaults to the shipped one

    Returns:
        SyncResult with create/update counts and catalog totals
    """
    sections = sidebar if sidebar is not None else get_sidebar_config()
    result = SyncResult()

    for module_order, section in enumerate(sections):
        module = await ModuleRepository.get_module_by_slug(db, section["slug"])

        if module:
            module = await ModuleRepository.update_module(
                db, module.id, name=section["title"], order=module_order
            )
            result.modules_updated += 1
        else:
            module = await ModuleRepository.create_module(
                db,
                name=section["title"],
                slug=section["slug"],
                description=f"{section['title']} module (auto-discovered)",
                order=module_order,
                enabled=True,
            )
            result.modules_created += 1

        for item_order, item in enumerate(section["items"]):
            slug = page_slug(section["slug"], item["id"])
            page = await PageRepository.get_page_by_slug(db, module.id, slug)

            if page:
                await PageRepository.update_page(
                    db, page.id, name=item["label"], route=item["route"], order=item_order
                )
                result.pages_updated += 1
            else:
                await PageRepository.create_page(
                    db,
                    module_id=module.id,
                    name=item["label"],
                    slug=slug,
                    route=item["route"],
                    description=f"{item['label']} page",
                    order=item_order,
                    enabled=True,
                )
                result.pages_created += 1

    result.total_modules = len(await ModuleRepository.get_modules(db))
    result.total_pages = len(await PageRepository.get_pages(db))

    logger.info(
        f"Catalog sync: modules +{result.modules_created}/~{result.modules_updated}, "
        f"pages +{result.pages_created}/~{result.pages_updated} "
        f"(totals: {result.total_modules} modules, {result.total_pages} pages)"
    )
    return result
