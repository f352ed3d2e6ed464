"""Conversation domain models.

Contains the pydantic models for the synchronized thread:
- Messages, one variant per role
- Conversations and listing pages
- API acknowledgements
"""

from convsync.conversation.models.conversation import (
    Conversation,
    ConversationPage,
    CreateConversationResponse,
    Pagination,
    SendMessageResponse,
)
from convsync.conversation.models.enums import MessageRole, MessageSource
from convsync.conversation.models.message import (
    AssistantMessage,
    BaseMessage,
    Message,
    SystemMessage,
    ToolMessage,
    UserMessage,
    parse_message,
    utc_now,
)

__all__ = [
    # Enums
    "MessageRole",
    "MessageSource",
    # Messages
    "AssistantMessage",
    "BaseMessage",
    "Message",
    "SystemMessage",
    "ToolMessage",
    "UserMessage",
    "parse_message",
    "utc_now",
    # Conversations
    "Conversation",
    "ConversationPage",
    "CreateConversationResponse",
    "Pagination",
    "SendMessageResponse",
]
