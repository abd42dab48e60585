"""
Models for the browser-driven page sweep.

A sweep visits every catalog page with one authenticated browser session and
records a fixed battery of checks per page.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from testing_engine.models.testing import ResultStatus, RunState


class SweepScope(str, Enum):
    """Which catalog pages a sweep visits."""
    ALL = "all"
    MODULE = "module"
    PAGE = "page"


class PageToTest(BaseModel):
    """A catalog page resolved for the sweep."""
    module_name: str
    page_name: str
    route: str


class TestCheck(BaseModel):
    """Single named check within a page's battery."""
    __test__ = False

    name: str
    passed: bool
    details: str = ""


class PageResult(BaseModel):
    """Outcome of the check battery for one page."""
    module_name: str
    page_name: str
    route: str
    status: ResultStatus
    duration: int = 0
    screenshot_path: Optional[str] = None
    accessibility_score: int = 0
    accessibility_issues: List[Dict[str, Any]] = Field(default_factory=list)
    checks: List[TestCheck] = Field(default_factory=list)
    error_message: Optional[str] = None


class E2eRunRequest(BaseModel):
    """Request to start a catalog-wide sweep."""
    scope: SweepScope = Field(default=SweepScope.ALL)
    module_id: Optional[str] = Field(None, description="Required for scope=module")
    route: Optional[str] = Field(None, description="Required for scope=page")
    triggered_by: Optional[str] = Field(None, max_length=200)


class E2eRunSummary(BaseModel):
    """Summary of a sweep; always well-formed, even when login failed."""
    run_id: str
    name: str
    status: RunState
    total_pages: int = 0
    passed_pages: int = 0
    failed_pages: int = 0
    skipped_pages: int = 0
    accessibility_score: Optional[int] = None
    duration: int = 0
    login_success: bool = False
    error_message: Optional[str] = None
    results: List[PageResult] = Field(default_factory=list)
    started_at: datetime
    completed_at: Optional[datetime] = None


class E2eRunOut(BaseModel):
    id: str
    name: str
    scope: str
    status: str
    total_tests: int
    passed_tests: int
    failed_tests: int
    skipped_tests: int
    accessibility_score: Optional[int] = None
    login_success: Optional[bool] = None
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration: Optional[int] = None
    triggered_by: Optional[str] = None

    class Config:
        from_attributes = True


class E2eResultOut(BaseModel):
    id: str
    module_name: str
    page_name: str
    route: str
    status: str
    duration: int
    screenshot_path: Optional[str] = None
    accessibility_score: int
    accessibility_issues: Optional[List[Dict[str, Any]]] = None
    checks: Optional[List[Dict[str, Any]]] = None
    error_message: Optional[str] = None

    class Config:
        from_attributes = True


class E2eRunDetail(E2eRunOut):
    results: List[E2eResultOut] = Field(default_factory=list)
