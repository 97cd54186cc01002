"""
Logging filters.

RequestIdFilter stamps a correlation id on every LogRecord so all the lines
written while serving one unit of work (an inbound webhook, a queued job, a
widget call) can be grepped together. The id lives in a `contextvars.ContextVar`,
which survives `await` boundaries and stays isolated between asyncio tasks.

Whoever drives the store sets the id at the start of a unit of work:

    token = set_request_id(uuid4().hex)
    try:
        async with session_scope() as db:
            await MessageRepository(db).add_message(...)
    finally:
        reset_request_id(token)

Records logged outside such a block get the sentinel "-", so format strings
referencing `%(request_id)s` never fail.

RedactFilter masks `extra` attributes that must not reach log storage
(credentials, and message bodies which are customer data).
"""

import logging
from logging import LogRecord
import contextvars

# Default None means "no correlation id set"
_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: str | None):
    """
    Set the correlation id for the current context.

    Returns:
        token: contextvars.Token to pass to reset_request_id(token)
    """
    return _request_id_ctx.set(request_id)


def reset_request_id(token):
    """Restore the value the context had before the matching set_request_id()."""
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Guarantees every LogRecord has a `request_id` attribute.

    Priority: an explicit `extra={"request_id": ...}`, then the context value,
    then "-". Never drops a record.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = (
            getattr(record, "request_id", None) or get_request_id() or "-"
        )
        return True


class RedactFilter(logging.Filter):
    """Mask sensitive attributes passed through `extra`."""

    SENSITIVE = {
        "password", "secret", "token", "access_token", "refresh_token", "authorization",
        # customer data
        "content", "email", "phone",
    }
    MASK = "***REDACTED***"

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = self.MASK
        return True
