"""API routers for the Testing Engine."""

from testing_engine.routers import catalog, runs, e2e, dev_tests, health

__all__ = ['catalog', 'runs', 'e2e', 'dev_tests', 'health']
