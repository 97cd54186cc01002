"""
Shapes of the social-network payloads stored on a message.

Messages that arrive through an integration carry the platform's identifiers so
replies and reactions can be routed back. The payloads are stored as JSON
columns; these models only guard what goes in.
"""

from pydantic import BaseModel, ConfigDict


class SocialData(BaseModel):
    # Unknown keys are a caller bug, not data to keep
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    def to_document(self) -> dict:
        """Return the JSON document to store, without unset keys."""
        return self.model_dump(exclude_none=True)


class FacebookData(SocialData):
    post_id: str | None = None
    comment_id: str | None = None
    parent_id: str | None = None

    # messenger message id
    message_id: str | None = None

    # comment, reaction, etc.
    item: str | None = None

    # shared photo / video
    photo_id: str | None = None
    video_id: str | None = None

    link: str | None = None
    reaction_type: str | None = None
    sender_id: str | None = None
    sender_name: str | None = None


class TwitterData(SocialData):
    id: str | None = None
