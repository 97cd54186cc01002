"""
Repository layer initialization module.

The repository pattern keeps SQL out of the callers: they receive entities and
app-level errors, never raw driver objects.

Usage:
    from support_inbox.repositories import ConversationRepository, MessageRepository
"""

from .base_repository import BaseRepository
from .conversation_repository import ConversationRepository
from .message_repository import MessageRepository

__all__ = [
    "BaseRepository",
    "ConversationRepository",
    "MessageRepository"
]
