# support_inbox/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # App-level errors (RepositoryError, ConversationNotFoundError, ...)
# │   ├── integrity_classifier.py    # SQL-level / DB-specific errors
# │   └── mapper.py                  # Map SQL-level errors to app-level errors, db_error_handler

from .base import (
    RepositoryError,
    NotFoundError,
    ConversationNotFoundError,
    ContentRequiredError,
    DuplicateError,
    InvalidFieldError,
)

__all__ = [
    "RepositoryError",
    "NotFoundError",
    "ConversationNotFoundError",
    "ContentRequiredError",
    "DuplicateError",
    "InvalidFieldError",
]
