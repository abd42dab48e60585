"""Models for the test catalog and unit-level test runs."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class TestLevel(str, Enum):
    """Kind of check a test case performs; drives executor selection."""
    __test__ = False

    BUTTON = "button"
    FORM = "form"
    CRUD = "crud"
    NAVIGATION = "navigation"
    API = "api"
    INTEGRATION = "integration"
    E2E = "e2e"


class TestScope(str, Enum):
    """Granularity of a run request."""
    __test__ = False

    ALL = "all"
    MODULE = "module"
    PAGE = "page"
    FEATURE = "feature"
    CASE = "case"


class RunState(str, Enum):
    """Possible states of a test run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED, RunState.CANCELLED)


class ResultStatus(str, Enum):
    """Outcome of a single case or page."""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


# =============================================================================
# Catalog payloads
# =============================================================================

def _not_null(value):
    """Partial updates may omit a field but not null out a required column."""
    if value is None:
        raise ValueError("may not be null")
    return value


class ModuleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    order: int = 0
    enabled: bool = True


class ModuleUpdate(BaseModel):
    """Slug is deliberately absent: it is the reconciliation key."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    order: Optional[int] = None
    enabled: Optional[bool] = None

    @field_validator("name", "order", "enabled")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class ModuleOut(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    order: int
    enabled: bool

    class Config:
        from_attributes = True


class PageCreate(BaseModel):
    module_id: str
    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=200)
    route: str = ""
    description: Optional[str] = None
    order: int = 0
    enabled: bool = True


class PageUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    route: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = None
    enabled: Optional[bool] = None

    @field_validator("name", "route", "order", "enabled")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class PageOut(BaseModel):
    id: str
    module_id: str
    name: str
    slug: str
    route: str
    description: Optional[str] = None
    order: int
    enabled: bool

    class Config:
        from_attributes = True


class FeatureCreate(BaseModel):
    page_id: str
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    order: int = 0
    enabled: bool = True


class FeatureUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    order: Optional[int] = None
    enabled: Optional[bool] = None

    @field_validator("name", "order", "enabled")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class FeatureOut(BaseModel):
    id: str
    page_id: str
    name: str
    description: Optional[str] = None
    order: int
    enabled: bool

    class Config:
        from_attributes = True


class TestCaseCreate(BaseModel):
    __test__ = False

    feature_id: str
    name: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    test_level: TestLevel
    selector: Optional[str] = None
    api_endpoint: Optional[str] = None
    api_method: Optional[str] = Field(None, description="HTTP method, defaults to GET")
    test_data: Optional[Any] = None
    expected_result: Optional[Dict[str, Any]] = Field(
        None, description="e.g. {\"statusCode\": 201}"
    )
    enabled: bool = True
    order: int = 0


class TestCaseUpdate(BaseModel):
    __test__ = False

    name: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    test_level: Optional[TestLevel] = None
    selector: Optional[str] = None
    api_endpoint: Optional[str] = None
    api_method: Optional[str] = None
    test_data: Optional[Any] = None
    expected_result: Optional[Dict[str, Any]] = None
    enabled: Optional[bool] = None
    order: Optional[int] = None

    @field_validator("name", "test_level", "enabled", "order")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class TestCaseOut(BaseModel):
    __test__ = False

    id: str
    feature_id: str
    name: str
    description: Optional[str] = None
    test_level: str
    selector: Optional[str] = None
    api_endpoint: Optional[str] = None
    api_method: Optional[str] = None
    test_data: Optional[Any] = None
    expected_result: Optional[Dict[str, Any]] = None
    enabled: bool
    order: int

    class Config:
        from_attributes = True


class SyncResult(BaseModel):
    """Summary returned by the catalog synchronizer."""
    modules_created: int = 0
    modules_updated: int = 0
    pages_created: int = 0
    pages_updated: int = 0
    total_modules: int = 0
    total_pages: int = 0


# =============================================================================
# Runs
# =============================================================================

class TestExecutionConfig(BaseModel):
    """Request to resolve and execute a set of test cases."""
    __test__ = False

    scope: TestScope = Field(..., description="all, module, page, feature or case")
    scope_id: str = Field(default="", description="Id of the scoped entity (ignored for 'all')")
    test_levels: List[TestLevel] = Field(
        default_factory=list,
        description="Only run cases of these levels (empty = every level)"
    )
    dry_run: bool = Field(default=False, description="Record every case as skipped")
    triggered_by: Optional[str] = Field(None, max_length=200)

    class Config:
        json_schema_extra = {
            "example": {
                "scope": "module",
                "scope_id": "6c4f5b1e-0f0e-4f65-9d1e-1b0cfa6c2f9a",
                "test_levels": ["api", "crud"],
                "dry_run": False,
                "triggered_by": "qa@example.com"
            }
        }


class TestResult(BaseModel):
    """Normalized outcome of one executed case."""
    __test__ = False

    test_case_id: str
    test_case_name: str
    status: ResultStatus
    duration: int = Field(default=0, description="Duration in milliseconds")
    actual_result: Optional[Any] = None
    error_message: Optional[str] = None


class TestRunSummary(BaseModel):
    """Summary returned to the caller once a run reaches a terminal state."""
    __test__ = False

    run_id: str
    name: str
    scope: TestScope
    scope_id: str
    status: RunState
    total_tests: int = 0
    passed_tests: int = 0
    failed_tests: int = 0
    skipped_tests: int = 0
    duration: int = 0
    results: List[TestResult] = Field(default_factory=list)


class RunProgress(BaseModel):
    """Snapshot handed to progress callbacks after every unit of work."""
    run_id: str
    status: RunState
    current: int
    total: int
    current_page: Optional[str] = None
    results: List[Any] = Field(default_factory=list)


class TestRunOut(BaseModel):
    __test__ = False

    id: str
    name: str
    scope: str
    scope_id: Optional[str] = None
    test_levels: List[str] = Field(default_factory=list)
    status: str
    total_tests: int
    passed_tests: int
    failed_tests: int
    skipped_tests: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration: Optional[int] = None
    triggered_by: Optional[str] = None

    class Config:
        from_attributes = True


class TestRunResultOut(BaseModel):
    __test__ = False

    id: str
    run_id: str
    test_case_id: str
    test_case_name: Optional[str] = None
    status: str
    actual_result: Optional[Any] = None
    error_message: Optional[str] = None
    duration: int
    executed_at: datetime

    class Config:
        from_attributes = True


class TestRunDetail(TestRunOut):
    results: List[TestRunResultOut] = Field(default_factory=list)


class TestStats(BaseModel):
    __test__ = False

    total_modules: int
    total_pages: int
    total_features: int
    total_test_cases: int
    recent_runs: List[TestRunOut] = Field(default_factory=list)


class DevTestOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    module: Optional[str] = None
    test_steps: Optional[List[str]] = None
    expected_result: Optional[str] = None
    actual_result: Optional[str] = None
    status: str
    duration: Optional[int] = None
    error_message: Optional[str] = None
    tested_by: Optional[str] = None
    tested_at: Optional[datetime] = None

    class Config:
        from_attributes = True
