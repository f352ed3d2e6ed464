"""ReconciliationEngine: merge server snapshots with optimistic messages.

Every poll tick and every push event goes through the engine, which is the
only producer of the displayed sequence. The merge is keyed on
``role:content`` rather than timestamps because an optimistic message is
stamped with client time and the server assigns its own.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from convsync.conversation.models import Message, MessageRole


def merge_messages(server: Sequence[Message], local: Sequence[Message]) -> list[Message]:
    """Merge a server snapshot with pending local messages.

    Server messages come first in server order; local messages whose key
    the server has not echoed yet are appended, then the whole list is
    stably sorted by timestamp.

    Merging is idempotent: ``merge_messages(merge_messages(s, l), l)``
    equals ``merge_messages(s, l)``.
    """
    server_keys = {message.dedup_key for message in server}
    merged = list(server)
    merged.extend(message for message in local if message.dedup_key not in server_keys)
    merged.sort(key=lambda m: m.timestamp)
    return merged


@dataclass(frozen=True)
class MergeResult:
    """Outcome of one reconciliation pass."""

    messages: tuple[Message, ...]
    update_occurred: bool
    stream_complete: bool


class ReconciliationEngine:
    """Stateful wrapper around merge_messages.

    Tracks the server message count and the content of the last server
    message between invocations, which is how new messages and in-place
    streaming growth of the final message are detected.
    """

    def __init__(self) -> None:
        self._last_count = 0
        self._last_content: str | None = None

    @property
    def last_count(self) -> int:
        return self._last_count

    @property
    def last_content(self) -> str | None:
        return self._last_content

    def prime(self, server: Sequence[Message]) -> None:
        """Seed the trackers from the initial authoritative load."""
        self._last_count = len(server)
        self._last_content = server[-1].content if server else None

    def merge(self, server: Sequence[Message], local: Sequence[Message]) -> MergeResult:
        """Merge a snapshot and update the trackers.

        An update occurred when the server gained messages or its last
        message changed. The stream is complete when the last message is
        from the assistant and its content did not change since the
        previous invocation.
        """
        merged = merge_messages(server, local)

        last = server[-1] if server else None
        last_content = last.content if last is not None else None

        update_occurred = len(server) > self._last_count or last_content != self._last_content
        stream_complete = (
            last is not None
            and last.role == MessageRole.ASSISTANT.value
            and last_content == self._last_content
        )

        self._last_count = len(server)
        self._last_content = last_content

        return MergeResult(
            messages=tuple(merged),
            update_occurred=update_occurred,
            stream_complete=stream_complete,
        )

    @staticmethod
    def confirmed(server: Sequence[Message], local: Sequence[Message]) -> list[Message]:
        """Local messages the server has now echoed back."""
        server_keys = {message.dedup_key for message in server}
        return [message for message in local if message.dedup_key in server_keys]
