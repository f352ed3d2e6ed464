"""OptimisticWriter: show a sent message before the server confirms it."""

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from convsync.client.classify import ErrorCategory, categorize, user_message
from convsync.conversation.models import Message, MessageSource, UserMessage, utc_now
from convsync.conversation.store import MessageStore
from convsync.observability.logging import get_logger
from convsync.observability.metrics import OPTIMISTIC_SENDS

logger = get_logger(__name__)

SendFn = Callable[[str, MessageSource | None], Awaitable[Any]]


@dataclass(frozen=True)
class SendOutcome:
    """Result of one submission."""

    sent: bool
    message: Message | None = None
    error: BaseException | None = None
    error_category: ErrorCategory | None = None
    error_message: str | None = None


class OptimisticWriter:
    """Appends tentative user messages and reverts them on failure.

    On success the send response is ignored; one authoritative re-fetch
    is requested instead so the server stays the source of truth.
    """

    def __init__(
        self,
        store: MessageStore,
        send: SendFn,
        refetch: Callable[[], Awaitable[None]],
        *,
        on_sent: Callable[[], None] | None = None,
        is_alive: Callable[[], bool] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize writer.

        Args:
            store: Displayed state to append to
            send: Coroutine posting ``(content, source)`` to the backend
            refetch: Coroutine re-reading the conversation after a send
            on_sent: Called after a successful send, before the re-fetch
            is_alive: Returns False once the owner is torn down; late send
                outcomes then leave the store alone
            clock: Source of optimistic timestamps
        """
        self._store = store
        self._send = send
        self._refetch = refetch
        self._on_sent = on_sent
        self._is_alive = is_alive or (lambda: True)
        self._clock = clock
        self._pending: list[Message] = []
        self._sending = False
        self.input_text = ""

    @property
    def pending(self) -> tuple[Message, ...]:
        """Optimistic messages the server has not echoed yet."""
        return tuple(self._pending)

    @property
    def is_sending(self) -> bool:
        return self._sending

    def prune(self, confirmed: Iterable[Message]) -> None:
        """Drop pending messages the server has confirmed."""
        confirmed_ids = {id(message) for message in confirmed}
        self._pending = [m for m in self._pending if id(m) not in confirmed_ids]

    async def submit(
        self,
        text: str | None = None,
        *,
        source: MessageSource | None = None,
    ) -> SendOutcome | None:
        """Send ``text`` (or the input buffer) optimistically.

        Returns:
            None when there was nothing to send or a send is in flight,
            otherwise the outcome of the send
        """
        original_text = self.input_text if text is None else text
        content = original_text.strip()
        if not content or self._sending:
            return None

        self._sending = True
        previous = self._store.messages
        tentative = UserMessage(content=content, timestamp=self._clock(), source=source)

        self._pending.append(tentative)
        self._store.replace_messages((*previous, tentative))
        self.input_text = ""

        try:
            await self._send(content, source)
        except Exception as e:
            # Restore exactly what was shown before the submit
            if self._is_alive():
                self._store.replace_messages(previous)
            self._pending = [m for m in self._pending if m is not tentative]
            self.input_text = original_text

            category = categorize(e)
            OPTIMISTIC_SENDS.labels(outcome="failed").inc()
            logger.warning(
                "optimistic_send_failed",
                error=str(e),
                error_type=type(e).__name__,
                category=category.value,
            )
            return SendOutcome(
                sent=False,
                error=e,
                error_category=category,
                error_message=user_message(e),
            )
        finally:
            self._sending = False

        OPTIMISTIC_SENDS.labels(outcome="sent").inc()
        logger.debug("optimistic_send_confirmed", content_length=len(content))

        if self._is_alive():
            if self._on_sent:
                self._on_sent()
            await self._refetch()

        return SendOutcome(sent=True, message=tentative)
