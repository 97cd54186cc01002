"""
Core pytest configuration for the entire test suite.

This module provides only the database setup and logging installation that
every kind of test needs. Domain fixtures (repositories, conversations,
messages) live in tests/test_fixtures/ and are registered at the bottom.
"""

from __future__ import annotations

import os
import logging
from urllib.parse import urlparse
from typing import AsyncGenerator

# -------------------------------
# Early logging tuning
# -------------------------------
# Silence noisy third-party loggers before importing modules that initialize them.
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "aiosqlite",
    "asyncio",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine,
)

from support_inbox.database.base import Base
from support_inbox.models import conversation, message  # noqa: F401 - registers tables on Base.metadata
from support_inbox.config import get_settings
from support_inbox.core.logging.builder import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """
    Install the application logging (dictConfig) once for the whole session.

    pytest attaches its capture handler to the root logger again for every test
    phase, so `caplog` keeps working after dictConfig replaced the root handlers.
    """
    setup_logging(settings)
    yield


# ------------------------------------------------------------------------------------------------
# Test database URL
# ------------------------------------------------------------------------------------------------


def safe_log_db_url(db_url: str) -> str:
    """Database URL without credentials, for logging."""
    parsed = urlparse(db_url)
    return f"{parsed.scheme}://{parsed.hostname or ''}:{parsed.port or ''}/{parsed.path.lstrip('/')}"


def get_test_database_url(tmp_path) -> str:
    """
    Determine the test database URL.

    1. `TEST_DATABASE_URL` environment variable (CI override)
    2. The app's DATABASE_URL when `TESTING=true` and `TEST_POSTGRES_DB` is set
    3. A throwaway SQLite file in the test's tmp_path
    """
    if test_url := os.getenv("TEST_DATABASE_URL"):
        return test_url

    if settings.TESTING and settings.TEST_POSTGRES_DB:
        return settings.DATABASE_URL

    return f"sqlite+aiosqlite:///{tmp_path / 'test_database.db'}"


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY constraints unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture()
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Fresh schema per test: tables are created before and dropped after each test,
    so no row leaks between tests even when code under test commits.
    """
    url = get_test_database_url(tmp_path)
    logger.debug(f"Using test DB: {safe_log_db_url(url)}")

    engine = create_async_engine(url, echo=False, future=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture()
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for one test. Repositories only flush, so rolling back at the end
    discards everything the test wrote.
    """
    maker = async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)

    async with maker() as session:
        yield session
        await session.rollback()


# Repository test fixtures
from support_inbox.tests.test_fixtures.repository_fixtures import (  # noqa: E402,F401
    base_repo,
    conversation_repository,
    message_repository,
    create_conversation,
    conversation_obj,
    add_message,
)
