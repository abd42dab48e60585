"""Data models for the Testing Engine."""

from testing_engine.models.testing import (
    TestLevel,
    TestScope,
    RunState,
    ResultStatus,
    TestExecutionConfig,
    TestResult,
    TestRunSummary,
    RunProgress,
    SyncResult,
)
from testing_engine.models.e2e import (
    SweepScope,
    PageToTest,
    TestCheck,
    PageResult,
    E2eRunRequest,
    E2eRunSummary,
)

__all__ = [
    'TestLevel',
    'TestScope',
    'RunState',
    'ResultStatus',
    'TestExecutionConfig',
    'TestResult',
    'TestRunSummary',
    'RunProgress',
    'SyncResult',
    'SweepScope',
    'PageToTest',
    'TestCheck',
    'PageResult',
    'E2eRunRequest',
    'E2eRunSummary',
]
