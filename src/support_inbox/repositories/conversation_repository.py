"""
Conversation repository for handling conversation-specific database operations.

The message store only needs a narrow slice of the conversation record: reading
it, updating it by id, and appending participants. Everything else a
conversation does lives outside this package.
"""

from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from support_inbox.models.conversation import Conversation
from support_inbox.models.message import utcnow
from support_inbox.exceptions.base import ConversationNotFoundError
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConversationRepository(BaseRepository[Conversation]):
    """
    Repository for Conversation entity operations.

    Inherits common CRUD methods from BaseRepository, and extends
    it with the operations the message store relies on:
      - Creating a conversation
      - Updating a conversation by id (bumps `updated_at`)
      - Appending participants without duplicates
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the ConversationRepository with an async session.

        Args:
            db (AsyncSession): The SQLAlchemy asynchronous database session.
        """
        super().__init__(Conversation, db)  # Binds the base repository to the Conversation model

    # =================================================================================================================
    # Create Operations
    # =================================================================================================================

    async def create_conversation(
        self,
        customer_id: str | None = None,
        content: str | None = None
    ) -> Conversation:
        """
        Create a new, empty conversation.

        Args:
            customer_id (str | None): External id of the customer, if known.
            content (str | None): Initial content shown for the conversation.

        Returns:
            Conversation: The newly created Conversation entity.
        """
        logger.info(f"Creating new conversation for customer: {customer_id}")

        return await self.create(
            customer_id=customer_id,
            content=content,
            message_count=0,
            participated_user_ids=[]
        )

    # =================================================================================================================
    # Update Operations
    # =================================================================================================================

    async def update_by_id(self, conversation_id: UUID, **fields) -> Conversation:
        """
        Update a conversation by id and bump its `updated_at`.

        Args:
            conversation_id (UUID): The ID of the conversation.
            **fields: Column values to set; None values are ignored.

        Returns:
            Conversation: The updated conversation.

        Raises:
            ConversationNotFoundError: If the conversation does not exist.
            InvalidFieldError: If a field is not a Conversation column.
        """
        values = {**fields, "updated_at": fields.get("updated_at") or utcnow()}
        conversation = await self.update(conversation_id, **values)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        logger.debug(f"Updated conversation {conversation_id} fields: {sorted(fields)}")
        return conversation

    async def add_participated_users(self, conversation_id: UUID, *user_ids: str | None) -> Conversation:
        """
        Add users to the conversation's participants.

        Participants behave like a set: ids already present are not added again,
        None and empty ids are ignored, and the existing order is kept.

        Args:
            conversation_id (UUID): The ID of the conversation.
            *user_ids: Agent ids to add.

        Returns:
            Conversation: The conversation with its updated participants.

        Raises:
            ConversationNotFoundError: If the conversation does not exist.
        """
        conversation = await self.get_by_id(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        participants = list(conversation.participated_user_ids or [])
        added = []
        for user_id in user_ids:
            if user_id and user_id not in participants:
                participants.append(user_id)
                added.append(user_id)

        if not added:
            return conversation

        logger.info(
            "repo.conversation.participants_added",
            extra={"conversation_id": str(conversation_id), "added": added},
        )
        # assign a new list; in-place mutation of a JSON column is not tracked
        return await self.update_by_id(conversation_id, participated_user_ids=participants)
