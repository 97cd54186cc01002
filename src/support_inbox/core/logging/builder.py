"""
Logging builder: build and apply the dictConfig logging configuration, and
optionally move log IO to a background QueueListener.

    setup_logging(get_settings())

Handler selection:

| LOG_TO_STDOUT | LOG_DIR set | active handlers                 |
| ------------- | ----------- | ------------------------------- |
| true          | any         | console + error_console         |
| false         | no          | console + error_console         |
| false         | yes         | console + file + error_file     |

Queue mode (LOG_USE_QUEUE): producers only enqueue records; the real handlers
run in the QueueListener thread. LOG_QUEUE_MAX_SIZE > 0 bounds the queue, and
with LOG_QUEUE_BLOCKING false a full queue drops records instead of blocking
the event loop (see get_queue_stats()). Call stop_queue_logging() at shutdown.
"""

from __future__ import annotations

from pathlib import Path
import logging
import logging.config
import queue as _queue
import threading
from logging.handlers import QueueHandler, QueueListener

from support_inbox.utils.logging import get_project_name
from support_inbox.config.settings import Settings

from .formatters import JsonFormatter, ColorFormatter
from .filters import RequestIdFilter, RedactFilter
from .handlers import (
    get_console_handler,
    get_file_handler,
    get_error_file_handler,
    get_error_console_handler,
)

_QUEUE_LISTENER: QueueListener | None = None
_QUEUE: _queue.Queue | None = None

_DROPPED_LOGS_COUNT = 0
_DROPPED_LOGS_LOCK = threading.Lock()


class NonBlockingQueueHandler(QueueHandler):
    """
    QueueHandler that drops the record (and counts the drop) when a bounded
    queue is full, instead of blocking the producer.
    """

    def emit(self, record: logging.LogRecord) -> None:
        global _DROPPED_LOGS_COUNT
        try:
            self.queue.put_nowait(self.prepare(record))
        except _queue.Full:
            with _DROPPED_LOGS_LOCK:
                _DROPPED_LOGS_COUNT += 1
            self.handleError(record)


def get_queue_stats() -> dict:
    """Small diagnostics about queue usage."""
    with _DROPPED_LOGS_LOCK:
        return {"dropped_logs": _DROPPED_LOGS_COUNT, "queue_present": _QUEUE is not None}


def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping for `settings`.

    Loggers:
      - root: every active handler at LOG_LEVEL
      - sqlalchemy.engine: console only; DEBUG with ENABLE_SQL_LOGGING (statements
        and bound parameters, i.e. message bodies), WARNING otherwise
    """
    formatters = {
        "standard": {
            "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s",
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": get_project_name(default="support-inbox"),
        },
    }

    filters = {
        "request_id": {"()": RequestIdFilter},
        "redact": {"()": RedactFilter},
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}

    if (not settings.LOG_TO_STDOUT) and settings.LOG_DIR:
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)
    else:
        handlers["error_console"] = get_error_console_handler(settings)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": filters,
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers.keys()),
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            "sqlalchemy.engine": {
                "level": "DEBUG" if settings.ENABLE_SQL_LOGGING else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Settings) -> None:
    """
    Apply the logging configuration and, with LOG_USE_QUEUE, switch to queue-backed logging.

    In queue mode the handler instances created by dictConfig are detached from
    every logger and handed to a QueueListener. The QueueHandler that replaces
    them on the root logger runs RequestIdFilter and RedactFilter itself: the
    correlation id is a contextvar, readable only in the producing context.
    """
    global _QUEUE_LISTENER, _QUEUE

    if (not settings.LOG_TO_STDOUT) and settings.LOG_DIR:
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))

    # %(request_id)s must resolve even for handlers added later by hand
    logging.getLogger().addFilter(RequestIdFilter())

    if not settings.LOG_USE_QUEUE:
        return

    root_logger = logging.getLogger()
    current_handlers = list(root_logger.handlers)
    if not current_handlers:
        return

    handlers_to_move = set(current_handlers)
    for logger_obj in list(logging.Logger.manager.loggerDict.values()):
        if isinstance(logger_obj, logging.Logger):
            for h in list(logger_obj.handlers):
                if h in handlers_to_move:
                    logger_obj.removeHandler(h)
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)

    max_size = settings.LOG_QUEUE_MAX_SIZE or 0
    log_queue: _queue.Queue = _queue.Queue(max_size) if max_size > 0 else _queue.Queue()

    if max_size > 0 and not settings.LOG_QUEUE_BLOCKING:
        queue_handler: QueueHandler = NonBlockingQueueHandler(log_queue)
    else:
        queue_handler = QueueHandler(log_queue)

    queue_handler.addFilter(RequestIdFilter())
    queue_handler.addFilter(RedactFilter())

    listener = QueueListener(log_queue, *current_handlers, respect_handler_level=True)
    listener.start()
    root_logger.addHandler(queue_handler)

    _QUEUE_LISTENER = listener
    _QUEUE = log_queue


def stop_queue_logging() -> None:
    """Flush and stop the QueueListener, if one is running."""
    global _QUEUE_LISTENER, _QUEUE
    listener = _QUEUE_LISTENER
    if listener is None:
        return

    try:
        listener.stop()
    except Exception:
        logging.getLogger(__name__).exception("Failed to stop QueueListener cleanly")
    finally:
        _QUEUE_LISTENER = None
        _QUEUE = None
