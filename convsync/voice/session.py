"""SessionLifecycleManager: voice session registration and expiry.

A session reference is short-lived and independent of the conversation it
belongs to. Expiry is never predicted on the client: it is discovered when
the backend answers an operation with a 404 carrying SESSION_EXPIRED. The
conversation and its history are untouched by anything in this module.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from convsync.client.errors import SessionExpiredError
from convsync.client.retry import Sleep, retry_with_backoff
from convsync.conversation.models import utc_now
from convsync.observability.logging import get_logger
from convsync.observability.metrics import SESSION_REGISTRATIONS
from convsync.voice.models import DEFAULT_SESSION_TTL_SECONDS, VoiceSession

if TYPE_CHECKING:
    from convsync.client.client import ConversationClient
    from convsync.config import Settings

logger = get_logger(__name__)

T = TypeVar("T")


class SessionState(str, Enum):
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    EXPIRED = "expired"


class SessionNotRegisteredError(RuntimeError):
    """A dependent operation was attempted without a live session."""


class SessionLifecycleManager:
    """Tracks one voice session for one conversation.

    States move unregistered -> registered -> expired. Registering again
    is always allowed and replaces the record.
    """

    def __init__(
        self,
        client: "ConversationClient",
        conversation_id: str,
        *,
        default_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        max_retries: int = 3,
        retry_initial_delay: float = 1.0,
        clock: Callable[[], datetime] = utc_now,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self.conversation_id = conversation_id
        self._default_ttl = default_ttl_seconds
        self._max_retries = max_retries
        self._retry_delay = retry_initial_delay
        self._clock = clock
        self._sleep = sleep
        self._state = SessionState.UNREGISTERED
        self._session: VoiceSession | None = None

    @classmethod
    def from_settings(
        cls,
        client: "ConversationClient",
        conversation_id: str,
        settings: "Settings | None" = None,
    ) -> "SessionLifecycleManager":
        """Create a manager using the voice configuration."""
        if settings is None:
            from convsync.config import get_settings

            settings = get_settings()
        voice = settings.voice
        return cls(
            client,
            conversation_id,
            default_ttl_seconds=voice.default_session_ttl_seconds,
            max_retries=voice.max_retries,
            retry_initial_delay=voice.retry_initial_delay_seconds,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> VoiceSession | None:
        """The last registered session record, kept after expiry."""
        return self._session

    @property
    def is_registered(self) -> bool:
        return self._state is SessionState.REGISTERED

    @property
    def is_expired(self) -> bool:
        return self._state is SessionState.EXPIRED

    def ttl_remaining(self, now: datetime | None = None) -> float | None:
        """Seconds until nominal expiry. Informational only."""
        if self._session is None or self._state is not SessionState.REGISTERED:
            return None
        return self._session.ttl_remaining(now or self._clock())

    async def register(
        self,
        session_url: str,
        *,
        session_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> VoiceSession:
        """Register a session with the backend.

        Network failures and 5xx answers are retried with backoff.
        SESSION_EXPIRED is never retried; calling register again after
        expiry is always allowed.

        Raises:
            SessionExpiredError: The backend rejected the session as expired
            TransportError: The registration call failed
        """
        try:
            response = await retry_with_backoff(
                lambda: self._client.register_session(
                    self.conversation_id,
                    session_url,
                    session_id=session_id,
                    metadata=metadata,
                ),
                name="register_session",
                max_retries=self._max_retries,
                initial_delay=self._retry_delay,
                sleep=self._sleep,
            )
        except SessionExpiredError:
            SESSION_REGISTRATIONS.labels(outcome="expired").inc()
            self._mark_expired("register")
            raise
        except Exception as e:
            SESSION_REGISTRATIONS.labels(outcome="failed").inc()
            logger.warning(
                "session_registration_failed",
                conversation_id=self.conversation_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        previous_state = self._state
        self._session = VoiceSession(
            conversation_id=self.conversation_id,
            session_id=session_id,
            session_url=session_url,
            created_at=response.created_at or self._clock(),
            ttl_seconds=response.ttl or self._default_ttl,
        )
        self._state = SessionState.REGISTERED

        SESSION_REGISTRATIONS.labels(outcome="registered").inc()
        logger.info(
            "session_registered",
            conversation_id=self.conversation_id,
            session_id=session_id,
            ttl_seconds=self._session.ttl_seconds,
            reregistered=previous_state is SessionState.EXPIRED,
        )
        return self._session

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run an operation that depends on the session.

        Raises:
            SessionNotRegisteredError: No session has been registered
            SessionExpiredError: The backend reported the session expired
        """
        if self._state is SessionState.UNREGISTERED:
            raise SessionNotRegisteredError(
                f"No voice session registered for conversation {self.conversation_id}"
            )
        if self._state is SessionState.EXPIRED:
            raise SessionExpiredError("Session expired. Register a new session to continue.")

        try:
            return await operation()
        except SessionExpiredError:
            self._mark_expired("operation")
            raise

    def _mark_expired(self, during: str) -> None:
        self._state = SessionState.EXPIRED
        logger.info(
            "session_expired_detected",
            conversation_id=self.conversation_id,
            during=during,
        )
