import pytest
from pydantic import ValidationError
from support_inbox.config.settings import Settings


def test_database_url_from_parts():
    settings = Settings(
        POSTGRES_USERNAME="inbox",
        POSTGRES_PASSWORD="pw",
        POSTGRES_HOST="db",
        POSTGRES_PORT=5433,
        POSTGRES_DB="support",
        DATABASE_URL_OVERRIDE=None,
        TESTING=False,
    )

    assert settings.DATABASE_URL == "postgresql+psycopg://inbox:pw@db:5433/support"


def test_database_url_uses_test_database_when_testing():
    settings = Settings(POSTGRES_DB="support", TEST_POSTGRES_DB="support_test", TESTING=True, DATABASE_URL_OVERRIDE=None)

    assert settings.DATABASE_URL.endswith("/support_test")


def test_database_url_override_wins():
    settings = Settings(DATABASE_URL_OVERRIDE="sqlite+aiosqlite:///inbox.db")

    assert settings.DATABASE_URL == "sqlite+aiosqlite:///inbox.db"


def test_log_level_and_format_are_normalized():
    settings = Settings(LOG_LEVEL=" debug ", LOG_FORMAT="TEXT")

    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.LOG_FORMAT == "text"


def test_invalid_log_level_rejected():
    with pytest.raises(ValidationError):
        Settings(LOG_LEVEL="verbose")
