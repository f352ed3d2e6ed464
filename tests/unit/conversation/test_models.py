"""Tests for conversation and message models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from convsync.conversation.models import (
    AssistantMessage,
    Conversation,
    MessageSource,
    ToolMessage,
    UserMessage,
    parse_message,
)
from tests.factories import BASE_TIME, ConversationFactory, MessageFactory


class TestMessageVariants:
    """Tests for the role-discriminated message union."""

    def test_parse_by_role(self) -> None:
        """Should pick the variant from the role field."""
        message = parse_message(
            {"role": "assistant", "content": "Hi!", "timestamp": "2025-01-01T12:00:00Z"}
        )
        assert isinstance(message, AssistantMessage)

    def test_tool_fields(self) -> None:
        """Should carry tool fields only on tool messages."""
        message = parse_message(
            {
                "role": "tool",
                "content": "",
                "timestamp": "2025-01-01T12:00:00Z",
                "toolName": "lookup",
                "toolArgs": {"q": "x"},
                "toolOutput": "42",
            }
        )
        assert isinstance(message, ToolMessage)
        assert message.tool_name == "lookup"
        assert message.tool_args == {"q": "x"}

    def test_unknown_role_rejected(self) -> None:
        """Should reject roles outside the known set."""
        with pytest.raises(ValidationError):
            parse_message({"role": "robot", "content": "x", "timestamp": "2025-01-01T12:00:00Z"})

    def test_null_content_becomes_empty(self) -> None:
        """Should treat null content as an empty string."""
        message = parse_message(
            {"role": "tool", "content": None, "timestamp": "2025-01-01T12:00:00Z"}
        )
        assert message.content == ""

    def test_naive_timestamp_assumed_utc(self) -> None:
        """Should interpret naive timestamps as UTC."""
        message = UserMessage(content="x", timestamp=datetime(2025, 1, 1, 12, 0))
        assert message.timestamp == BASE_TIME

    def test_messages_are_frozen(self) -> None:
        """Should not allow editing a message."""
        message = MessageFactory.user("Hello")
        with pytest.raises(ValidationError):
            message.content = "changed"

    def test_dedup_key(self) -> None:
        """Should key on role and content only."""
        early = MessageFactory.user("Hello", seconds=0)
        late = MessageFactory.user("Hello", seconds=60, source=MessageSource.VOICE)
        assert early.dedup_key == late.dedup_key == "user:Hello"

    def test_to_wire_uses_camel_case(self) -> None:
        """Should serialize with camelCase keys and without nulls."""
        wire = MessageFactory.tool("lookup").to_wire()
        assert wire["role"] == "tool"
        assert wire["toolName"] == "lookup"
        assert "toolArgs" not in wire


class TestConversation:
    """Tests for the Conversation model."""

    def test_accepts_conversation_id_alias(self) -> None:
        """Should accept conversationId or id."""
        payload = ConversationFactory.payload(id="conv-1")
        assert Conversation.model_validate(payload).id == "conv-1"

        payload["id"] = payload.pop("conversationId")
        assert Conversation.model_validate(payload).id == "conv-1"

    def test_with_messages_returns_copy(self) -> None:
        """Should leave the original conversation unchanged."""
        conversation = ConversationFactory.create()
        updated = conversation.with_messages([MessageFactory.user()])

        assert conversation.messages == ()
        assert len(updated.messages) == 1
        assert updated.id == conversation.id

    def test_timestamps_parsed(self) -> None:
        """Should parse ISO timestamps."""
        conversation = Conversation.model_validate(ConversationFactory.payload())
        assert conversation.created_at == datetime(2025, 1, 1, 12, 0, tzinfo=UTC)
