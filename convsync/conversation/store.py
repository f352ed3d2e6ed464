"""MessageStore: the displayed state of one conversation."""

from collections.abc import Callable, Iterable

from convsync.conversation.models import Conversation, Message

Listener = Callable[[Conversation], None]


def _ordered(messages: Iterable[Message]) -> tuple[Message, ...]:
    # sorted() is stable, so equal timestamps keep insertion order
    return tuple(sorted(messages, key=lambda m: m.timestamp))


class MessageStore:
    """Canonical ordered message sequence and metadata for one conversation.

    The store never edits a message. Every change installs a new
    Conversation value and notifies subscribers when the visible
    sequence changed.
    """

    def __init__(self) -> None:
        self._conversation: Conversation | None = None
        self._listeners: list[Listener] = []

    @property
    def conversation(self) -> Conversation | None:
        return self._conversation

    @property
    def is_loaded(self) -> bool:
        return self._conversation is not None

    @property
    def messages(self) -> tuple[Message, ...]:
        if self._conversation is None:
            return ()
        return self._conversation.messages

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load(self, conversation: Conversation) -> None:
        """Install the initial authoritative record."""
        self._set(conversation.with_messages(_ordered(conversation.messages)))

    def apply(self, conversation: Conversation, messages: Iterable[Message]) -> bool:
        """Install a server snapshot carrying an already merged sequence.

        ``last_accessed_at`` never moves backwards, even when a stale
        snapshot arrives after a newer one.

        Returns:
            True if the visible message sequence changed
        """
        last_accessed_at = conversation.last_accessed_at
        if self._conversation is not None:
            last_accessed_at = max(last_accessed_at, self._conversation.last_accessed_at)

        updated = conversation.model_copy(
            update={
                "messages": _ordered(messages),
                "last_accessed_at": last_accessed_at,
            }
        )
        return self._set(updated)

    def replace_messages(self, messages: Iterable[Message]) -> bool:
        """Swap the message sequence, keeping the metadata.

        Used for optimistic appends and their wholesale revert.
        """
        if self._conversation is None:
            raise RuntimeError("conversation not loaded")
        return self._set(self._conversation.with_messages(_ordered(messages)))

    def _set(self, conversation: Conversation) -> bool:
        changed = self._conversation is None or conversation.messages != self._conversation.messages
        self._conversation = conversation
        if changed:
            for listener in list(self._listeners):
                listener(conversation)
        return changed
