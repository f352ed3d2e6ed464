"""Enums for conversation domain models."""

from enum import Enum


class MessageRole(str, Enum):
    """Role of a message sender."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


class MessageSource(str, Enum):
    """Where a message originated.

    VOICE and TEXT are current; the remaining values are legacy spellings
    still emitted by older backends.
    """

    VOICE = "voice"
    TEXT = "text"
    USER_INPUT = "user_input"
    AGENT_RESPONSE = "agent_response"
    TOOL_OUTPUT = "tool_output"
    SYSTEM_EVENT = "system_event"
