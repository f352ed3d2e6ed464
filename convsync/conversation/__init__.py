"""Conversation state: models, the displayed store, reconciliation and writes."""

from convsync.conversation.models import Conversation, Message, MessageRole, MessageSource
from convsync.conversation.reconciliation import (
    MergeResult,
    ReconciliationEngine,
    merge_messages,
)
from convsync.conversation.store import MessageStore
from convsync.conversation.writer import OptimisticWriter, SendOutcome

__all__ = [
    "Conversation",
    "MergeResult",
    "Message",
    "MessageRole",
    "MessageSource",
    "MessageStore",
    "OptimisticWriter",
    "ReconciliationEngine",
    "SendOutcome",
    "merge_messages",
]
