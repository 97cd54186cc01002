"""
Repository-level exceptions of the message store.
"""

from typing import Iterable

# canonical repository-level exception

class RepositoryError(Exception):
    """
    Base exception for repository errors.

    - message: human-friendly message (safe to show to clients)
    - fields: optional list of field names related to the error (e.g., ['content'])
    - constraint: optional DB constraint name or identifier (for logs only)
    - error_code: canonical short code (e.g., 'not_found', 'content_required') used by clients
    """

    # Map canonical error_code -> default HTTP status for whoever exposes the store.
    ERROR_CODE_TO_STATUS = {
        "duplicate": 409,
        "invalid_field": 422,
        "not_found": 404,
        "content_required": 422,
        # fallback: default to 400 for general repository errors
    }

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message  # user-friendly message
        self.fields = list(fields) if fields else None
        self.constraint = constraint
        self.error_code = error_code

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        if self.error_code:
            parts.append(f"code: {self.error_code}")
        if parts:
            return f"{base} ({'; '.join(parts)})"
        return base

    def to_payload(self) -> dict:
        """
        Return a JSON-serializable dict describing the error:
            {
                "detail": "Content is required",
                "code": "content_required",    # optional canonical code
                "fields": ["content"],         # optional
            }
        `constraint` is left out on purpose; it is a storage detail.
        """
        payload = {"detail": self.message}
        if self.error_code:
            payload["code"] = self.error_code
        if self.fields:
            payload["fields"] = list(self.fields)
        return payload

    def http_status(self) -> int:
        if self.error_code:
            return self.ERROR_CODE_TO_STATUS.get(self.error_code, 400)
        return 400


class NotFoundError(RepositoryError):
    def __init__(self, message: str = "Not found", *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="not_found")


class ConversationNotFoundError(NotFoundError):
    """Raised when a message refers to a conversation that does not exist."""

    def __init__(self, conversation_id):
        super().__init__(f"Conversation not found with id {conversation_id}", fields=["conversation_id"])
        self.conversation_id = conversation_id


class ContentRequiredError(RepositoryError):
    """Raised when a message has neither text content nor attachments."""

    def __init__(self, message: str = "Content is required"):
        super().__init__(message, fields=["content", "attachments"], error_code="content_required")


class DuplicateError(RepositoryError):
    def __init__(self, message: str, *, fields: Iterable[str] | None = None, constraint: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint, error_code="duplicate")


class InvalidFieldError(RepositoryError):
    """Raised when the caller passes unknown fields or malformed field values."""

    def __init__(self, message: str, *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="invalid_field")


__all__ = [
    "RepositoryError",
    "NotFoundError",
    "ConversationNotFoundError",
    "ContentRequiredError",
    "DuplicateError",
    "InvalidFieldError"
]
