"""Test factories for creating test data."""

from tests.factories.conversation import BASE_TIME, ConversationFactory, MessageFactory
from tests.factories.websocket import FakeConnector, FakeWebSocket

__all__ = [
    "BASE_TIME",
    "ConversationFactory",
    "FakeConnector",
    "FakeWebSocket",
    "MessageFactory",
]
