"""
Single import point for the ORM models.

Importing this package registers every table on `Base.metadata`, which is what
`create_all` (tests, bootstrap scripts) relies on:

    from support_inbox.models import Conversation, Message
"""

from .conversation import Conversation
from .message import Message

__all__ = [
    "Conversation",
    "Message",
]
