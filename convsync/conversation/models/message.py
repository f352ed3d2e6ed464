"""Message models for conversation domain.

Messages are a tagged variant discriminated on ``role``. Only tool
messages carry tool fields. All messages are frozen: a newer merged
sequence supersedes them, they are never edited in place.
"""

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from convsync.conversation.models.enums import MessageSource


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class BaseMessage(BaseModel):
    """Fields shared by every message variant."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    content: str = Field(default="", description="Message text")
    timestamp: datetime = Field(..., description="Creation time")
    source: MessageSource | None = Field(default=None, description="Voice or text origin")
    message_id: str | None = Field(default=None, description="Server message identifier")

    @field_validator("content", mode="before")
    @classmethod
    def null_content_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Interpret naive timestamps as UTC so all messages sort together."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def dedup_key(self) -> str:
        """Identity used when reconciling local and server copies."""
        return f"{self.role}:{self.content}"  # type: ignore[attr-defined]

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape used by the API."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UserMessage(BaseMessage):
    """Message typed or spoken by the user."""

    role: Literal["user"] = "user"


class AssistantMessage(BaseMessage):
    """Message generated by the agent. May grow in place while streaming."""

    role: Literal["assistant"] = "assistant"


class SystemMessage(BaseMessage):
    """System event recorded in the conversation."""

    role: Literal["system"] = "system"


class ToolMessage(BaseMessage):
    """Record of a tool execution."""

    role: Literal["tool"] = "tool"
    tool_name: str | None = Field(default=None, description="Executed tool")
    tool_args: dict[str, Any] | None = Field(default=None, description="Tool arguments")
    tool_output: str | None = Field(default=None, description="Tool output")


Message = Annotated[
    UserMessage | AssistantMessage | SystemMessage | ToolMessage,
    Field(discriminator="role"),
]

_message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


def parse_message(data: dict[str, Any]) -> Message:
    """Validate a wire dict into the matching message variant."""
    return _message_adapter.validate_python(data)
