"""Conversation API client.

Usage:
    from convsync.client import ConversationClient

    async with ConversationClient("http://localhost:3000") as client:
        conversation = await client.get_agent_conversation("conv-123")
        lease = await client.get_voice_signed_url()

All failures are TransportError subclasses; see convsync.client.errors.
"""

from convsync.client.client import ConversationClient, ConversationResource
from convsync.client.errors import (
    ConvsyncClientError,
    InvalidRequestError,
    NetworkError,
    NotFoundError,
    ResponseFormatError,
    ServerError,
    SessionExpiredError,
    TransportError,
    UnexpectedContentTypeError,
)
from convsync.client.ws import PushConnection, build_ws_url, connect_push

__all__ = [
    "ConversationClient",
    "ConversationResource",
    "ConvsyncClientError",
    "InvalidRequestError",
    "NetworkError",
    "NotFoundError",
    "PushConnection",
    "ResponseFormatError",
    "ServerError",
    "SessionExpiredError",
    "TransportError",
    "UnexpectedContentTypeError",
    "build_ws_url",
    "connect_push",
]
