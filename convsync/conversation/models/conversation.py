"""Conversation and listing models."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from convsync.conversation.models.message import Message


class Conversation(BaseModel):
    """Authoritative conversation record as returned by the API.

    Accepts either ``conversationId`` or ``id`` for the identifier.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(
        ...,
        validation_alias=AliasChoices("conversationId", "id", "conversation_id"),
        serialization_alias="conversationId",
        description="Conversation identifier",
    )
    agent_id: str | None = Field(default=None, description="Associated agent")
    created_at: datetime = Field(..., description="Creation time")
    last_accessed_at: datetime = Field(..., description="Last access time")
    messages: tuple[Message, ...] = Field(default=(), description="Ordered messages")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Free-form metadata")

    def with_messages(self, messages: Iterable[Message]) -> "Conversation":
        """Return a copy carrying a different message sequence."""
        return self.model_copy(update={"messages": tuple(messages)})


class Pagination(BaseModel):
    """Offset pagination block of a listing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int = Field(default=0, ge=0)
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)
    has_more: bool = False


class ConversationPage(BaseModel):
    """One page of conversations."""

    conversations: list[Conversation] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class SendMessageResponse(BaseModel):
    """Acknowledgement of a send. Not trusted as the new conversation state."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    success: bool = True
    conversation_id: str | None = None
    message: str | None = None
    request_id: str | None = None


class CreateConversationResponse(BaseModel):
    """Result of creating a conversation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    success: bool = True
    conversation_id: str | None = None
    message: str | None = None
    queue_type: str | None = None
