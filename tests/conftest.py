"""Shared fixtures: an in-memory catalog database per test."""

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from testing_engine.database.connection import enable_sqlite_foreign_keys
from testing_engine.database.repositories import (
    FeatureRepository,
    ModuleRepository,
    PageRepository,
    TestCaseRepository,
)
from testing_engine.models.database import Base


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(db):
    """
    Two modules (A before B), each with two pages, one feature per page and
    one api case per feature. Inserted out of order to prove ordering is by
    the ``order`` column, not insertion.
    """
    module_b = await ModuleRepository.create_module(db, name="Module B", slug="b", order=1)
    module_a = await ModuleRepository.create_module(db, name="Module A", slug="a", order=0)

    cases = {}
    for module in (module_a, module_b):
        for page_order in (1, 0):
            label = f"{module.slug}.p{page_order + 1}"
            page = await PageRepository.create_page(
                db, module_id=module.id, name=label, slug=label, route=f"/{module.slug}/p{page_order + 1}",
                order=page_order,
            )
            feature = await FeatureRepository.create_feature(db, page_id=page.id, name=f"{label} feature")
            case = await TestCaseRepository.create_test_case(
                db,
                feature_id=feature.id,
                name=f"{label} case",
                test_level="api",
                api_endpoint="/api/ping",
            )
            cases[label] = case

    return {"modules": {"a": module_a, "b": module_b}, "cases": cases}
