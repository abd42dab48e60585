"""Test catalog endpoints: hierarchy, sync and CRUD per level."""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from testing_engine.database.connection import get_db
from testing_engine.database.repositories import (
    CatalogRepository,
    FeatureRepository,
    ModuleRepository,
    PageRepository,
    TestCaseRepository,
)
from testing_engine.models.testing import (
    FeatureCreate,
    FeatureOut,
    FeatureUpdate,
    ModuleCreate,
    ModuleOut,
    ModuleUpdate,
    PageCreate,
    PageOut,
    PageUpdate,
    SyncResult,
    TestCaseCreate,
    TestCaseOut,
    TestCaseUpdate,
    TestRunOut,
    TestStats,
)
from testing_engine.services.autodiscover import auto_discover_and_register
from testing_engine.services.sitemap import (
    get_module_list,
    get_modules_with_pages,
    get_page_count,
    get_sidebar_config,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _not_found(kind: str, entity_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind} not found: {entity_id}")


# =============================================================================
# Catalog-wide views
# =============================================================================

@router.get("/catalog/hierarchy")
async def get_hierarchy(db: AsyncSession = Depends(get_db)):
    """Entire module -> page -> feature -> test case tree."""
    return await CatalogRepository.get_full_hierarchy(db)


@router.get("/catalog/stats", response_model=TestStats)
async def get_stats(db: AsyncSession = Depends(get_db)):
    stats = await CatalogRepository.get_test_stats(db)
    stats["recent_runs"] = [TestRunOut.model_validate(run) for run in stats["recent_runs"]]
    return TestStats(**stats)


@router.get("/catalog/sitemap")
async def get_sitemap():
    """Static sitemap the synchronizer reconciles from."""
    return {
        "sections": get_sidebar_config(),
        "modules": get_module_list(),
        "page_count": get_page_count(),
        "modules_with_pages": get_modules_with_pages()
    }


@router.post("/catalog/sync", response_model=SyncResult)
async def sync_catalog(db: AsyncSession = Depends(get_db)):
    """Reconcile modules and pages with the sitemap."""
    try:
        return await auto_discover_and_register(db)
    except Exception as e:
        logger.error(f"Catalog sync failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Catalog sync failed")


# =============================================================================
# Modules
# =============================================================================

@router.get("/modules", response_model=List[ModuleOut])
async def list_modules(db: AsyncSession = Depends(get_db)):
    return await ModuleRepository.get_modules(db)


@router.get("/modules/{module_id}", response_model=ModuleOut)
async def get_module(module_id: str, db: AsyncSession = Depends(get_db)):
    module = await ModuleRepository.get_module_by_id(db, module_id)
    if not module:
        raise _not_found("Module", module_id)
    return module


@router.post("/modules", response_model=ModuleOut, status_code=201)
async def create_module(payload: ModuleCreate, db: AsyncSession = Depends(get_db)):
    if await ModuleRepository.get_module_by_slug(db, payload.slug):
        raise HTTPException(status_code=409, detail=f"Module slug already exists: {payload.slug}")
    return await ModuleRepository.create_module(db, **payload.model_dump())


@router.patch("/modules/{module_id}", response_model=ModuleOut)
async def update_module(module_id: str, payload: ModuleUpdate, db: AsyncSession = Depends(get_db)):
    module = await ModuleRepository.update_module(db, module_id, **payload.model_dump(exclude_unset=True))
    if not module:
        raise _not_found("Module", module_id)
    return module


@router.delete("/modules/{module_id}", status_code=204)
async def delete_module(module_id: str, db: AsyncSession = Depends(get_db)):
    if not await ModuleRepository.delete_module(db, module_id):
        raise _not_found("Module", module_id)


# =============================================================================
# Pages
# =============================================================================

@router.get("/pages", response_model=List[PageOut])
async def list_pages(
    module_id: Optional[str] = Query(None, description="Filter by module"),
    db: AsyncSession = Depends(get_db)
):
    return await PageRepository.get_pages(db, module_id)


@router.get("/pages/{page_id}", response_model=PageOut)
async def get_page(page_id: str, db: AsyncSession = Depends(get_db)):
    page = await PageRepository.get_page_by_id(db, page_id)
    if not page:
        raise _not_found("Page", page_id)
    return page


@router.post("/pages", response_model=PageOut, status_code=201)
async def create_page(payload: PageCreate, db: AsyncSession = Depends(get_db)):
    if not await ModuleRepository.get_module_by_id(db, payload.module_id):
        raise _not_found("Module", payload.module_id)
    if await PageRepository.get_page_by_slug(db, payload.module_id, payload.slug):
        raise HTTPException(status_code=409, detail=f"Page slug already exists in module: {payload.slug}")
    return await PageRepository.create_page(db, **payload.model_dump())


@router.patch("/pages/{page_id}", response_model=PageOut)
async def update_page(page_id: str, payload: PageUpdate, db: AsyncSession = Depends(get_db)):
    page = await PageRepository.update_page(db, page_id, **payload.model_dump(exclude_unset=True))
    if not page:
        raise _not_found("Page", page_id)
    return page


@router.delete("/pages/{page_id}", status_code=204)
async def delete_page(page_id: str, db: AsyncSession = Depends(get_db)):
    if not await PageRepository.delete_page(db, page_id):
        raise _not_found("Page", page_id)


# =============================================================================
# Features
# =============================================================================

@router.get("/features", response_model=List[FeatureOut])
async def list_features(
    page_id: Optional[str] = Query(None, description="Filter by page"),
    db: AsyncSession = Depends(get_db)
):
    return await FeatureRepository.get_features(db, page_id)


@router.get("/features/{feature_id}", response_model=FeatureOut)
async def get_feature(feature_id: str, db: AsyncSession = Depends(get_db)):
    feature = await FeatureRepository.get_feature_by_id(db, feature_id)
    if not feature:
        raise _not_found("Feature", feature_id)
    return feature


@router.post("/features", response_model=FeatureOut, status_code=201)
async def create_feature(payload: FeatureCreate, db: AsyncSession = Depends(get_db)):
    if not await PageRepository.get_page_by_id(db, payload.page_id):
        raise _not_found("Page", payload.page_id)
    return await FeatureRepository.create_feature(db, **payload.model_dump())


@router.patch("/features/{feature_id}", response_model=FeatureOut)
async def update_feature(feature_id: str, payload: FeatureUpdate, db: AsyncSession = Depends(get_db)):
    feature = await FeatureRepository.update_feature(db, feature_id, **payload.model_dump(exclude_unset=True))
    if not feature:
        raise _not_found("Feature", feature_id)
    return feature


@router.delete("/features/{feature_id}", status_code=204)
async def delete_feature(feature_id: str, db: AsyncSession = Depends(get_db)):
    if not await FeatureRepository.delete_feature(db, feature_id):
        raise _not_found("Feature", feature_id)


# =============================================================================
# Test cases
# =============================================================================

@router.get("/test-cases", response_model=List[TestCaseOut])
async def list_test_cases(
    feature_id: Optional[str] = Query(None, description="Filter by feature"),
    db: AsyncSession = Depends(get_db)
):
    return await TestCaseRepository.get_test_cases(db, feature_id)


@router.get("/test-cases/{test_case_id}", response_model=TestCaseOut)
async def get_test_case(test_case_id: str, db: AsyncSession = Depends(get_db)):
    test_case = await TestCaseRepository.get_test_case_by_id(db, test_case_id)
    if not test_case:
        raise _not_found("Test case", test_case_id)
    return test_case


@router.post("/test-cases", response_model=TestCaseOut, status_code=201)
async def create_test_case(payload: TestCaseCreate, db: AsyncSession = Depends(get_db)):
    if not await FeatureRepository.get_feature_by_id(db, payload.feature_id):
        raise _not_found("Feature", payload.feature_id)
    return await TestCaseRepository.create_test_case(db, **payload.model_dump(mode="json"))


@router.patch("/test-cases/{test_case_id}", response_model=TestCaseOut)
async def update_test_case(test_case_id: str, payload: TestCaseUpdate, db: AsyncSession = Depends(get_db)):
    test_case = await TestCaseRepository.update_test_case(
        db, test_case_id, **payload.model_dump(exclude_unset=True, mode="json")
    )
    if not test_case:
        raise _not_found("Test case", test_case_id)
    return test_case


@router.delete("/test-cases/{test_case_id}", status_code=204)
async def delete_test_case(test_case_id: str, db: AsyncSession = Depends(get_db)):
    if not await TestCaseRepository.delete_test_case(db, test_case_id):
        raise _not_found("Test case", test_case_id)
