from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, timezone
from typing import Any
from support_inbox.database.base import Base
import uuid
from typing import TYPE_CHECKING

# Avoid circular import issues when using type hints for related models
if TYPE_CHECKING:
    from .conversation import Conversation


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ------------------------------
# Message Model
# ------------------------------
class Message(Base):
    """
    SQLAlchemy model representing a message in a conversation.

    Who wrote a message is told by which id is set:
      - customer_id: sent by the customer
      - user_id: sent by an agent (an internal note when `internal` is True)
    """
    __tablename__ = "conversation_messages"

    # Primary key - UUID for global uniqueness
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        index=True
    )

    # Message body, "" for attachment-only messages
    content: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False
    )

    # Opaque list of attachment descriptors (url, type, size, ...)
    attachments: Mapped[list[Any]] = mapped_column(
        JSON,
        default=list,
        nullable=False
    )

    mentioned_user_ids: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False
    )

    # Foreign key reference to parent conversation
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("conversations.id"),  # Points to Conversation model
        nullable=False,
        index=True
    )

    # Internal notes are only visible to agents
    internal: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )

    customer_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True
    )

    user_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True
    )

    # Stamped by the application (not the DB) so messages written in one
    # transaction still get distinct, ordered timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True
    )

    # Whether the customer has seen an agent reply; NULL for customer messages
    is_customer_read: Mapped[bool | None] = mapped_column(
        Boolean,
        nullable=True
    )

    # --- Platform specific payloads ---
    engage_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    form_widget_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    facebook_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    twitter_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # --- Relationships ---

    # Back-reference to the parent conversation
    conversation: Mapped["Conversation"] = relationship(
        "Conversation",
        back_populates="messages"
    )

    @property
    def is_agent_message(self) -> bool:
        return self.user_id is not None

    def __repr__(self) -> str:
        # Helpful for debugging/logging
        return (
            f"<Message(id={self.id!r}, conversation_id={self.conversation_id!r}, "
            f"user_id={self.user_id!r}, customer_id={self.customer_id!r}, internal={self.internal!r})>"
        )
