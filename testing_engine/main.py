"""
Testing Engine API

Endpoints (under /api/testing-engine):
- GET /catalog/hierarchy - Full module/page/feature/case tree
- POST /catalog/sync - Reconcile modules and pages with the sitemap
- CRUD /modules, /pages, /features, /test-cases
- POST /runs - Execute a unit-level run
- GET /runs/{id}/progress, POST /runs/{id}/cancel
- POST /e2e/runs - Execute a browser sweep
- GET /dev-tests - Run history log
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from testing_engine import __version__
from testing_engine.database.connection import AsyncSessionLocal, close_db, init_db
from testing_engine.routers import catalog, dev_tests, e2e, health, runs
from testing_engine.services.autodiscover import auto_discover_and_register
from testing_engine.services.browser_manager import get_browser_manager
from testing_engine.utils.config import settings, validate_settings
from testing_engine.utils.logging import setup_logging

logger = logging.getLogger(__name__)

API_PREFIX = "/api/testing-engine"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    validate_settings()
    logger.info(f"Testing Engine starting ({settings.ENVIRONMENT})...")

    await init_db()

    if settings.SYNC_CATALOG_ON_STARTUP:
        async with AsyncSessionLocal() as db:
            try:
                await auto_discover_and_register(db)
            except Exception as e:
                logger.error(f"Startup catalog sync failed: {e}", exc_info=True)

    yield

    logger.info("Testing Engine shutting down...")
    await get_browser_manager().close_all()
    await close_db()


app = FastAPI(
    title="Testing Engine API",
    description="Catalog-driven test orchestration: API checks and browser page sweeps",
    version=__version__,
    docs_url="/docs" if settings.ENABLE_DOCS else None,
    redoc_url="/redoc" if settings.ENABLE_DOCS else None,
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=API_PREFIX, tags=["health"])
app.include_router(catalog.router, prefix=API_PREFIX, tags=["catalog"])
app.include_router(runs.router, prefix=f"{API_PREFIX}/runs", tags=["runs"])
app.include_router(e2e.router, prefix=f"{API_PREFIX}/e2e", tags=["e2e"])
app.include_router(dev_tests.router, prefix=f"{API_PREFIX}/dev-tests", tags=["dev-tests"])


@app.get("/")
async def root():
    return {
        "service": "Testing Engine API",
        "version": __version__,
        "docs": "/docs" if settings.ENABLE_DOCS else None,
        "api": API_PREFIX
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("testing_engine.main:app", host=settings.API_HOST, port=settings.API_PORT)
