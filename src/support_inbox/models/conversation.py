from sqlalchemy import String, Text, Integer, DateTime, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from datetime import datetime
from support_inbox.database.base import Base
import uuid
from typing import TYPE_CHECKING

# Avoid circular import issues when using type hints for related models
if TYPE_CHECKING:
    from .message import Message

class Conversation(Base):
    """
    SQLAlchemy model for a Conversation.

    A support thread between one customer and any number of agents. Besides its own
    fields it carries values derived from its messages (message_count, content,
    participated_user_ids); the message store keeps those in sync.
    """
    __tablename__ = "conversations"

    # Primary key: UUID (generated using uuid4), indexed for faster lookup
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        index=True
    )

    # Customer who opened the conversation (external id, may be unknown)
    customer_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True
    )

    # Content of the last appended message
    content: Mapped[str | None] = mapped_column(
        Text,
        nullable=True
    )

    # Cached number of messages in this conversation
    message_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False
    )

    # Agents that sent or were mentioned in a message (no duplicates)
    participated_user_ids: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False
    )

    # Automatically set when the conversation is created
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Bumped by the repositories whenever the conversation changes
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # --- Relationships ---

    # One-to-Many: A conversation has many messages
    messages: Mapped[list["Message"]] = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="select",
        order_by="Message.created_at"
    )

    def __repr__(self) -> str:
        return (
            f"<Conversation(id={self.id!r}, customer_id={self.customer_id!r}, "
            f"message_count={self.message_count!r})>"
        )
