"""Services for the Testing Engine."""

from testing_engine.services.autodiscover import auto_discover_and_register
from testing_engine.services.browser_manager import BrowserManager, BrowserLaunchError, get_browser_manager
from testing_engine.services.login_executor import LoginExecutor, LoginError, get_login_executor
from testing_engine.services.page_checker import PageChecker, AccessibilityScanner, accessibility_score
from testing_engine.services.scope_resolver import resolve_test_cases, resolve_scope_name
from testing_engine.services.test_executor import TestExecutor, get_test_executor
from testing_engine.services.run_manager import RunManager, RunNotActiveError, get_run_manager
from testing_engine.services.e2e_runner import E2eRunner, get_e2e_runner

__all__ = [
    "auto_discover_and_register",
    "BrowserManager",
    "BrowserLaunchError",
    "get_browser_manager",
    "LoginExecutor",
    "LoginError",
    "get_login_executor",
    "PageChecker",
    "AccessibilityScanner",
    "accessibility_score",
    "resolve_test_cases",
    "resolve_scope_name",
    "TestExecutor",
    "get_test_executor",
    "RunManager",
    "RunNotActiveError",
    "get_run_manager",
    "E2eRunner",
    "get_e2e_runner",
]
