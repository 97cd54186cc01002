"""
Classification of database integrity errors.

The classes below are internal labels: they say *which* constraint failed so
`mapper.py` can pick the app-level error (DuplicateError, RepositoryError, ...).
They are never raised out of the repositories.
"""
import logging
from enum import Enum
from typing import Type
from sqlalchemy.exc import IntegrityError
from .base import RepositoryError

logger = logging.getLogger(__name__)


class ConstraintViolationError(RepositoryError):
    """Base for integrity/constraint violations."""


class UniqueConstraintError(ConstraintViolationError):
    """Unique constraint / duplicate primary key."""


class NotNullConstraintError(ConstraintViolationError):
    """NOT NULL violation (missing required field)."""


class ForeignKeyConstraintError(ConstraintViolationError):
    """Foreign key violated, e.g. a message pointing at a deleted conversation."""


class CheckConstraintError(ConstraintViolationError):
    """CHECK constraint violated."""


class UnknownIntegrityError(ConstraintViolationError):
    """Unrecognized integrity error."""


# https://www.postgresql.org/docs/current/errcodes-appendix.html
class PostgresErrorCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"
    NOT_NULL_VIOLATION = "23502"
    FOREIGN_KEY_VIOLATION = "23503"
    CHECK_VIOLATION = "23514"


PGCODE_EXCEPTION_MAP: dict[str, Type[ConstraintViolationError]] = {
    PostgresErrorCodes.UNIQUE_VIOLATION.value: UniqueConstraintError,
    PostgresErrorCodes.NOT_NULL_VIOLATION.value: NotNullConstraintError,
    PostgresErrorCodes.FOREIGN_KEY_VIOLATION.value: ForeignKeyConstraintError,
    PostgresErrorCodes.CHECK_VIOLATION.value: CheckConstraintError,
}

# Message fragments used by SQLite / MySQL and by drivers that do not expose a SQLSTATE.
MESSAGE_KEYWORDS: list[tuple[Type[ConstraintViolationError], tuple[str, ...]]] = [
    (UniqueConstraintError, ("unique constraint", "unique failed", "unique violation", "duplicate")),
    (NotNullConstraintError, ("not null constraint", "not null", "null value in column")),
    (ForeignKeyConstraintError, ("foreign key constraint", "foreign key", "is not present in table")),
    (CheckConstraintError, ("check constraint", "check failed")),
]


def _sqlstate(orig) -> str | None:
    # psycopg exposes `pgcode` / `sqlstate`, asyncpg wraps the error and exposes `sqlstate`
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _constraint_name(orig) -> str | None:
    diag = getattr(orig, "diag", None)
    if diag is not None:
        return getattr(diag, "constraint_name", None)
    return getattr(orig, "constraint_name", None)


def classify_integrity_error(exc: IntegrityError) -> tuple[Type[ConstraintViolationError], str | None]:
    """
    Classify a SQLAlchemy IntegrityError.

    Returns:
        (label class, constraint name if the driver reported one)
    """
    orig = exc.orig
    code = _sqlstate(orig)
    constraint_name = _constraint_name(orig)

    if code:
        label = PGCODE_EXCEPTION_MAP.get(code)
        if label is not None:
            logger.debug("integrity.classified", extra={"sqlstate": code, "constraint_name": constraint_name})
            return label, constraint_name
        logger.warning("integrity.unknown_sqlstate", extra={"sqlstate": code, "constraint_name": constraint_name})
        return UnknownIntegrityError, constraint_name

    normalized = str(orig).lower()
    for label, keywords in MESSAGE_KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return label, constraint_name

    logger.warning("integrity.unknown_message", extra={"message_snippet": normalized[:200]})
    return UnknownIntegrityError, constraint_name
