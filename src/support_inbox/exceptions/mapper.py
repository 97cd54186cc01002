import re
import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .integrity_classifier import (
    classify_integrity_error,
    UniqueConstraintError,
    NotNullConstraintError,
    ForeignKeyConstraintError,
    CheckConstraintError,
)
from .base import DuplicateError, RepositoryError

logger = logging.getLogger(__name__)

# -----------------------
# Column extraction helpers
# -----------------------

# Postgres: 'null value in column "conversation_id" violates not-null constraint'
_PG_NOT_NULL = re.compile(r'null value in column "(?P<col>[^"]+)"', re.IGNORECASE)
# Postgres: 'DETAIL:  Key (conversation_id)=(...) is not present in table "conversations".'
_PG_KEY = re.compile(r'key \((?P<cols>[^)]+)\)=', re.IGNORECASE)
# SQLite: 'UNIQUE constraint failed: conversation_messages.id'
_SQLITE_FAILED = re.compile(r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>.+)$', re.IGNORECASE)


def extract_columns_from_integrity(exc: IntegrityError) -> list[str] | None:
    """
    Best-effort extraction of the column names involved in an integrity error.
    """
    msg = str(exc.orig) if exc.orig is not None else str(exc)
    if not msg:
        return None

    m = _PG_NOT_NULL.search(msg)
    if m:
        return [m.group("col")]

    m = _PG_KEY.search(msg)
    if m:
        return [c.strip().strip('"') for c in m.group("cols").split(",")]

    m = _SQLITE_FAILED.search(msg)
    if m:
        return [c.split(".")[-1].strip() for c in re.split(r",\s*", m.group("cols"))]

    return None


# -----------------------
# Mapper
# -----------------------

def raise_mapped_integrity_error(exc: IntegrityError, model_name: str | None = None) -> None:
    """
    Map a SQLAlchemy IntegrityError to an app-level exception and raise it.
    Populates `.fields` and `.constraint` where possible.
    """
    exc_cls, constraint_name = classify_integrity_error(exc)
    columns = extract_columns_from_integrity(exc)
    model_part = model_name or "Record"
    context = {"model": model_part, "fields": columns, "constraint": constraint_name}

    if exc_cls is UniqueConstraintError:
        logger.info("mapper.duplicate_detected", extra=context)
        detail = f" for field(s): {', '.join(columns)}" if columns else ""
        raise DuplicateError(f"{model_part} already exists{detail}", fields=columns, constraint=constraint_name) from exc

    if exc_cls is NotNullConstraintError:
        logger.info("mapper.not_null_violation", extra=context)
        detail = f"(s): {', '.join(columns)}" if columns else ""
        raise RepositoryError(f"Missing required field{detail} for {model_part}", fields=columns, constraint=constraint_name) from exc

    if exc_cls is ForeignKeyConstraintError:
        logger.info("mapper.foreign_key_violation", extra=context)
        detail = f" for field(s): {', '.join(columns)}" if columns else ""
        raise RepositoryError(f"{model_part} referenced entity not found{detail}", fields=columns, constraint=constraint_name) from exc

    if exc_cls is CheckConstraintError:
        # raw DB text stays at DEBUG
        logger.debug("mapper.check_constraint_failure", extra={**context, "raw": str(exc.orig)})
        raise RepositoryError(f"{model_part} business rule violated (check constraint).", constraint=constraint_name) from exc

    logger.warning("mapper.unknown_integrity_error", extra=context)
    raise RepositoryError(f"{model_part} database integrity error.", constraint=constraint_name) from exc


# -----------------------
# Async context manager to DRY error handling in repositories
# -----------------------
@asynccontextmanager
async def db_error_handler(db: AsyncSession, model_name: str | None = None):
    """
    Usage:
        async with db_error_handler(self.db, self.model.__name__):
            ... DB writes ...

    - IntegrityError: roll back, then raise the mapped app-level exception.
    - RepositoryError raised inside the block: re-raised as is.
    - Anything else (driver / connection failures): roll back, log with stack trace
      and re-raise the original exception unchanged.
    """
    try:
        yield
    except IntegrityError as exc:
        await _safe_rollback(db, model_name)
        raise_mapped_integrity_error(exc, model_name)
    except RepositoryError:
        raise
    except Exception:
        await _safe_rollback(db, model_name)
        logger.exception("Unexpected DB error for %s", model_name, extra={"model": model_name})
        raise


async def _safe_rollback(db: AsyncSession, model_name: str | None) -> None:
    try:
        await db.rollback()
    except Exception:
        # the original error is the one worth propagating
        logger.exception("Failed to rollback session", extra={"model": model_name})
