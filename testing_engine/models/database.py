"""Database models for the test catalog and run history."""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, DateTime, JSON, Text, Boolean, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Reconciled layer: written by the catalog synchronizer, keyed by slug.
# ---------------------------------------------------------------------------

class TestModule(Base):
    """Top-level product area."""
    __test__ = False
    __tablename__ = "test_modules"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    pages = relationship(
        "TestPage",
        back_populates="module",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TestPage.order",
    )


class TestPage(Base):
    """Navigable route owned by a module."""
    __test__ = False
    __tablename__ = "test_pages"
    __table_args__ = (UniqueConstraint("module_id", "slug", name="uq_test_pages_module_slug"),)

    id = Column(String(36), primary_key=True, default=new_id)
    module_id = Column(
        String(36), ForeignKey("test_modules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False, index=True)
    route = Column(String(500), nullable=False, default="")
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    module = relationship("TestModule", back_populates="pages")
    features = relationship(
        "TestFeature",
        back_populates="page",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TestFeature.order",
    )


# ---------------------------------------------------------------------------
# Authored layer: full CRUD, never touched by the synchronizer.
# ---------------------------------------------------------------------------

class TestFeature(Base):
    """Logical grouping of test cases under a page."""
    __test__ = False
    __tablename__ = "test_features"

    id = Column(String(36), primary_key=True, default=new_id)
    page_id = Column(
        String(36), ForeignKey("test_pages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    page = relationship("TestPage", back_populates="features")
    test_cases = relationship(
        "TestCase",
        back_populates="feature",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TestCase.order",
    )


class TestCase(Base):
    """Single executable check."""
    __test__ = False
    __tablename__ = "test_cases"

    id = Column(String(36), primary_key=True, default=new_id)
    feature_id = Column(
        String(36), ForeignKey("test_features.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    test_level = Column(String(20), nullable=False, index=True)

    # Level-specific parameters
    selector = Column(String(500), nullable=True)
    api_endpoint = Column(String(1000), nullable=True)
    api_method = Column(String(10), nullable=True)
    test_data = Column(JSON, nullable=True)
    expected_result = Column(JSON, nullable=True)

    enabled = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    feature = relationship("TestFeature", back_populates="test_cases")


# ---------------------------------------------------------------------------
# Run history
# ---------------------------------------------------------------------------

class TestRun(Base):
    """One execution of a resolved set of test cases."""
    __test__ = False
    __tablename__ = "test_runs"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(500), nullable=False)
    scope = Column(String(20), nullable=False)
    scope_id = Column(String(200), nullable=True)
    test_levels = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, index=True)

    total_tests = Column(Integer, nullable=False, default=0)
    passed_tests = Column(Integer, nullable=False, default=0)
    failed_tests = Column(Integer, nullable=False, default=0)
    skipped_tests = Column(Integer, nullable=False, default=0)

    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=True)  # ms
    triggered_by = Column(String(200), nullable=True)

    results = relationship(
        "TestRunResult",
        back_populates="run",
        order_by="TestRunResult.sequence",
    )


class TestRunResult(Base):
    """Append-only outcome of one case within a run."""
    __test__ = False
    __tablename__ = "test_run_results"

    id = Column(String(36), primary_key=True, default=new_id)
    run_id = Column(String(36), ForeignKey("test_runs.id"), nullable=False, index=True)
    # No FK: deleting a case must not rewrite history.
    test_case_id = Column(String(36), nullable=False, index=True)
    test_case_name = Column(String(500), nullable=True)
    sequence = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False)
    actual_result = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False, default=0)  # ms
    executed_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    run = relationship("TestRun", back_populates="results")


class E2eRun(Base):
    """Catalog-wide browser sweep."""
    __tablename__ = "e2e_runs"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(500), nullable=False)
    scope = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, index=True)
    total_tests = Column(Integer, nullable=False, default=0)
    passed_tests = Column(Integer, nullable=False, default=0)
    failed_tests = Column(Integer, nullable=False, default=0)
    skipped_tests = Column(Integer, nullable=False, default=0)
    accessibility_score = Column(Integer, nullable=True)
    login_success = Column(Boolean, nullable=True)
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=True)  # ms
    triggered_by = Column(String(200), nullable=True)

    results = relationship("E2eResult", back_populates="run", order_by="E2eResult.sequence")


class E2eResult(Base):
    """Outcome of the check battery for one page."""
    __tablename__ = "e2e_results"

    id = Column(String(36), primary_key=True, default=new_id)
    run_id = Column(String(36), ForeignKey("e2e_runs.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False, default=0)
    module_name = Column(String(200), nullable=False)
    page_name = Column(String(200), nullable=False)
    route = Column(String(500), nullable=False)
    status = Column(String(20), nullable=False)
    duration = Column(Integer, nullable=False, default=0)
    screenshot_path = Column(String(1000), nullable=True)
    accessibility_score = Column(Integer, nullable=False, default=0)
    accessibility_issues = Column(JSON, nullable=True)
    checks = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    executed_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    run = relationship("E2eRun", back_populates="results")


class DevTest(Base):
    """Lightweight historical log entry shown on the dev-tests dashboard."""
    __tablename__ = "dev_tests"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    module = Column(String(200), nullable=True)
    test_steps = Column(JSON, nullable=True)
    expected_result = Column(Text, nullable=True)
    actual_result = Column(Text, nullable=True)
    status = Column(String(20), nullable=False)
    duration = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    cleaned_up = Column(Boolean, default=False)
    tested_by = Column(String(200), nullable=True)
    tested_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
