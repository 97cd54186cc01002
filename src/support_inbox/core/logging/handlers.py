"""
Handler factories for logging.dictConfig.

Each function returns the dictConfig entry of one handler, built from Settings.
They are pure functions, so the builder stays short and each choice (stream vs
file, formatter, level) is testable on its own.

| handler         | destination              | level          | formatter            |
| --------------- | ------------------------ | -------------- | -------------------- |
| `console`       | stderr                   | LOG_LEVEL      | LOG_FORMAT           |
| `file`          | LOG_DIR/support-inbox.log| LOG_LEVEL      | LOG_FORMAT           |
| `error_file`    | LOG_DIR/errors.log       | ERROR          | json                 |
| `error_console` | stderr                   | ERROR          | json                 |
"""

from support_inbox.config.settings import Settings
from pathlib import Path

# every handler annotates and scrubs records before formatting
HANDLER_FILTERS = ["request_id", "redact"]


def _formatter_name(settings: Settings) -> str:
    return "json" if settings.LOG_FORMAT == "json" else "standard"


def get_console_handler(settings: Settings) -> dict:
    return {
        "class": "logging.StreamHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filters": list(HANDLER_FILTERS),
    }


def get_file_handler(settings: Settings) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filename": str(Path(settings.LOG_DIR) / "support-inbox.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(HANDLER_FILTERS),
    }


# Errors get their own rotating file for alerting
def get_error_file_handler(settings: Settings) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "json",
        "level": "ERROR",
        "filename": str(Path(settings.LOG_DIR) / "errors.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(HANDLER_FILTERS),
    }


def get_error_console_handler(settings: Settings) -> dict:
    return {
        "class": "logging.StreamHandler",
        "formatter": "json",
        "level": "ERROR",
        "filters": list(HANDLER_FILTERS),
    }
