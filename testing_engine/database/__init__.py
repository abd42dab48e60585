"""Database package."""

from testing_engine.database.connection import get_db, init_db, close_db, engine, AsyncSessionLocal

__all__ = ["get_db", "init_db", "close_db", "engine", "AsyncSessionLocal"]
