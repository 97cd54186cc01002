"""
Message repository for handling message-specific database operations.

This module provides the MessageRepository class, the message store of the
support inbox. On top of the generic CRUD of BaseRepository it:

- validates messages before they are written (content or attachments, existing
  conversation, well-formed social payloads)
- keeps the parent conversation in sync (message_count, content, participants,
  updated_at) whenever messages are added or removed
- answers the read-state queries agents and customers need
"""

from typing import Any
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, or_
from pydantic import ValidationError
import logging

from support_inbox.models.message import Message, utcnow
from support_inbox.exceptions.base import (
    ConversationNotFoundError,
    ContentRequiredError,
    InvalidFieldError,
)
from support_inbox.exceptions.mapper import db_error_handler
from support_inbox.schemas.social import SocialData, FacebookData, TwitterData
from support_inbox.utils.text import strip_html, unique
from support_inbox.validators.exception_validators import find_unknown_model_kwargs
from .base_repository import BaseRepository
from .conversation_repository import ConversationRepository

logger = logging.getLogger(__name__)

# JSON columns validated against a schema before they are stored
SOCIAL_FIELDS: dict[str, type[SocialData]] = {
    "facebook_data": FacebookData,
    "twitter_data": TwitterData,
}


class MessageRepository(BaseRepository[Message]):
    """
    Repository for Message entity operations.

    Every write that changes the set of messages of a conversation also updates
    that conversation, inside the same session/transaction.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the message repository.

        Args:
            db: The async database session
        """
        super().__init__(Message, db)
        self.conversations = ConversationRepository(db)

    # =================================================================================================================
    # Validation helpers
    # =================================================================================================================

    @staticmethod
    def _check_content(content: str | None, attachments: list | None) -> None:
        # markup alone ("<p></p>") is not content
        if not attachments and not strip_html(content):
            raise ContentRequiredError()

    async def _check_conversation(self, conversation_id: UUID | None) -> None:
        if conversation_id is None or not await self.conversations.exists(conversation_id):
            logger.info("repo.message.conversation_not_found", extra={"conversation_id": str(conversation_id)})
            raise ConversationNotFoundError(conversation_id)

    @staticmethod
    def _validate_social(doc: dict[str, Any]) -> None:
        for field, schema in SOCIAL_FIELDS.items():
            value = doc.get(field)
            if value is None:
                continue
            try:
                doc[field] = schema.model_validate(value).to_document()
            except ValidationError as e:
                raise InvalidFieldError(f"Invalid {field}: {e.error_count()} error(s)", fields=[field]) from e

    async def _sync_message_count(self, conversation_id: UUID) -> int:
        """Store the true number of messages on the conversation and return it."""
        message_count = await self.count(conversation_id=conversation_id)
        await self.conversations.update_by_id(conversation_id, message_count=message_count)
        return message_count

    async def _prepare_message(self, doc: dict[str, Any], check_conversation: bool = True) -> dict[str, Any]:
        """
        Validate and normalize a message document without writing anything.

        Every check that can reject the message runs here, so callers can touch
        the conversation afterwards knowing the message will be accepted.
        """
        doc["content"] = doc.get("content") or ""
        doc["attachments"] = doc.get("attachments") or []
        self._check_content(doc["content"], doc["attachments"])

        if check_conversation:
            await self._check_conversation(doc.get("conversation_id"))

        unknown = find_unknown_model_kwargs(self.model, doc)
        if unknown:
            logger.info(
                "repo.message.invalid_fields",
                extra={"invalid_fields": sorted(unknown), "conversation_id": str(doc.get("conversation_id"))},
            )
            raise InvalidFieldError(f"Unknown field(s) for {self.model.__name__}: {', '.join(unknown)}", fields=unknown)
        self._validate_social(doc)

        doc["internal"] = bool(doc.get("internal", False))
        doc["mentioned_user_ids"] = unique(doc.get("mentioned_user_ids"))
        doc["created_at"] = utcnow()
        if doc.get("user_id") and not doc["internal"] and doc.get("is_customer_read") is None:
            doc["is_customer_read"] = False
        return doc

    async def _write_message(self, doc: dict[str, Any]) -> Message:
        conversation_id = doc["conversation_id"]
        message = await self.create(**doc)

        message_count = await self._sync_message_count(conversation_id)
        await self.conversations.add_participated_users(
            conversation_id, message.user_id, *message.mentioned_user_ids)

        logger.info(
            "repo.message.created",
            extra={
                "conversation_id": str(conversation_id),
                "message_id": str(message.id),
                "internal": message.internal,
                "message_count": message_count,
            },
        )
        return message

    # =================================================================================================================
    # Create Operations
    # =================================================================================================================

    async def create_message(self, **doc: Any) -> Message:
        """
        Create a message and update its conversation.

        Defaults applied before writing:
            - content "" / attachments [] when absent
            - internal False
            - is_customer_read False for agent replies that are not internal notes
            - mentioned_user_ids deduplicated
            - created_at stamped now (any caller value is replaced)

        After writing, the conversation gets its real message count, a new
        `updated_at` and the sender plus every mentioned user as participants.

        Args:
            **doc: Message fields; `conversation_id` is required.

        Returns:
            Message: The created message.

        Raises:
            ContentRequiredError: If there is neither content nor attachments.
            ConversationNotFoundError: If the conversation does not exist.
            InvalidFieldError: For unknown fields or malformed social payloads.
        """
        doc = await self._prepare_message(doc)
        return await self._write_message(doc)

    async def add_message(
        self,
        conversation_id: UUID,
        user_id: str | None = None,
        content: str | None = None,
        attachments: list | None = None,
        **fields: Any
    ) -> Message:
        """
        Append a message to a conversation.

        The message is validated first; only then does the conversation's
        `content` become the new message's content and the message get written.

        Args:
            conversation_id (UUID): The conversation to append to.
            user_id (str | None): Sending agent, None for customer messages.
            content (str | None): Message body, may contain HTML.
            attachments (list | None): Opaque attachment descriptors.
            **fields: Any other Message field (customer_id, internal, ...).

        Returns:
            Message: The created message.

        Raises:
            ConversationNotFoundError: If the conversation does not exist.
            ContentRequiredError: If there is neither content nor attachments.
            InvalidFieldError: For unknown fields or malformed social payloads.
        """
        await self._check_conversation(conversation_id)

        doc = await self._prepare_message(
            {
                **fields,
                "conversation_id": conversation_id,
                "user_id": user_id,
                "content": content,
                "attachments": attachments,
            },
            check_conversation=False,
        )

        await self.conversations.update_by_id(conversation_id, content=doc["content"])
        return await self._write_message(doc)

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def get_conversation_messages(
        self,
        conversation_id: UUID,
        offset: int = 0,
        limit: int | None = None,
        order_desc: bool = False
    ) -> list[Message]:
        """
        Retrieve messages for a specific conversation.

        Args:
            conversation_id (UUID): The ID of the conversation.
            offset (int): Number of messages to skip (default is 0).
            limit (int | None): Maximum number of messages to return (None for all).
            order_desc (bool): If True, newest first; else oldest first.

        Returns:
            list[Message]: Messages ordered by creation time.
        """
        query = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc() if order_desc else Message.created_at.asc())
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)

        try:
            result = await self.db.execute(query)
            messages = list(result.scalars().all())
            logger.debug(
                f"Retrieved {len(messages)} messages for conversation {conversation_id}")
            return messages

        except Exception as e:
            logger.error(
                f"Error retrieving messages for conversation {conversation_id}: {e}")
            raise

    async def count_conversation_messages(self, conversation_id: UUID) -> int:
        """Number of messages stored for a conversation."""
        return await self.count(conversation_id=conversation_id)

    async def get_non_answered_message(self, conversation_id: UUID) -> Message | None:
        """
        Latest customer message of a conversation.

        Returns:
            Message | None: The most recent message with a customer_id, if any.
        """
        query = (
            select(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.customer_id.is_not(None),
            )
            .order_by(Message.created_at.desc())
            .limit(1)
        )
        try:
            result = await self.db.execute(query)
            return result.scalars().first()

        except Exception as e:
            logger.error(
                f"Error retrieving non answered message for conversation {conversation_id}: {e}")
            raise

    async def get_admin_messages(self, conversation_id: UUID) -> list[Message]:
        """
        Agent replies the customer has not read yet, oldest first.

        Internal notes are never shown to customers, so they are never unread.
        """
        query = (
            select(Message)
            .where(*self._unread_agent_conditions(conversation_id))
            .order_by(Message.created_at.asc())
        )
        try:
            result = await self.db.execute(query)
            return list(result.scalars().all())

        except Exception as e:
            logger.error(
                f"Error retrieving unread agent messages for conversation {conversation_id}: {e}")
            raise

    @staticmethod
    def _unread_agent_conditions(conversation_id: UUID) -> list:
        return [
            Message.conversation_id == conversation_id,
            Message.user_id.is_not(None),
            Message.internal.is_(False),
            or_(Message.is_customer_read.is_(None), Message.is_customer_read.is_(False)),
        ]

    # =================================================================================================================
    # Update Operations
    # =================================================================================================================

    async def mark_sent_as_read_messages(self, conversation_id: UUID) -> int:
        """
        Mark every unread agent reply of the conversation as read by the customer.

        Returns:
            int: Number of messages marked as read.
        """
        stmt = (
            update(Message)
            .where(*self._unread_agent_conditions(conversation_id))
            .values(is_customer_read=True)
            .execution_options(synchronize_session="evaluate")
        )

        async with db_error_handler(self.db, "Message"):
            result = await self.db.execute(stmt)

        logger.info(
            "repo.message.marked_read",
            extra={"conversation_id": str(conversation_id), "updated": result.rowcount},
        )
        return result.rowcount

    async def change_customer(self, new_customer_id: str, customer_ids: list[str]) -> list[Message]:
        """
        Move every message of the old customers to `new_customer_id` (customer merge).

        Returns:
            list[Message]: All messages of the new customer after the move.
        """
        old_ids = [c for c in unique(customer_ids) if c != new_customer_id]
        if old_ids:
            moved = await self.update_where({"customer_id": old_ids}, customer_id=new_customer_id)
            logger.info(
                "repo.message.customer_changed",
                extra={"new_customer_id": new_customer_id, "old_customer_ids": old_ids, "moved": moved},
            )

        return await self.find_all(customer_id=new_customer_id)

    # =================================================================================================================
    # Delete Operations
    # =================================================================================================================

    async def remove_messages(self, **selector: Any) -> int:
        """
        Delete every message matching `selector`, then recount the affected conversations.

        Args:
            **selector: Message fields to match; list/tuple/set values mean "any of".

        Returns:
            int: Number of deleted messages.

        Raises:
            InvalidFieldError: For an empty selector or unknown fields.
        """
        if not selector:
            raise InvalidFieldError("A selector is required to remove messages")

        conditions = self._conditions(selector, "remove_messages")
        result = await self.db.execute(
            select(Message.conversation_id).where(*conditions).distinct()
        )
        conversation_ids = list(result.scalars().all())

        deleted = await self.delete_where(**selector)

        for conversation_id in conversation_ids:
            await self._sync_message_count(conversation_id)

        logger.info(
            "repo.message.removed",
            extra={"deleted": deleted, "conversations": [str(c) for c in conversation_ids]},
        )
        return deleted

    async def remove_customer_conversation_messages(self, customer_id: str) -> int:
        """
        Purge every message a customer sent, keeping conversation counts in sync.

        Returns:
            int: Number of deleted messages.
        """
        return await self.remove_messages(customer_id=customer_id)


# MessageRepository Method Summary
# | Method Name                                   | Returns                   | Conversation side effects                       |
# | --------------------------------------------- | ------------------------- | ----------------------------------------------- |
# | `create_message(**doc)`                       | Created message           | message_count, updated_at, participants         |
# | `add_message(conversation_id, ...)`           | Created message           | content, then as `create_message`               |
# | `get_conversation_messages(...)`              | List of messages          |                                                 |
# | `count_conversation_messages(id)`             | Integer count             |                                                 |
# | `get_non_answered_message(id)`                | Latest customer message   |                                                 |
# | `get_admin_messages(id)`                      | Unread agent replies      |                                                 |
# | `mark_sent_as_read_messages(id)`              | Number marked read        |                                                 |
# | `change_customer(new_id, old_ids)`            | New customer's messages   |                                                 |
# | `remove_messages(**selector)`                 | Number deleted            | message_count recomputed                        |
# | `remove_customer_conversation_messages(id)`   | Number deleted            | message_count recomputed                        |
