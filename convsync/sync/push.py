"""Push channel: server-initiated snapshots over a WebSocket.

Snapshots received here go through the same reconciliation path as poll
results. The channel never reconnects; passive refresh keeps the view
current once it closes.
"""

from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from convsync.client.ws import Connector, PushConnection, connect_push
from convsync.conversation.models import Conversation
from convsync.conversation.store import MessageStore
from convsync.observability.logging import get_logger
from convsync.observability.metrics import PUSH_EVENTS

logger = get_logger(__name__)

SNAPSHOT_EVENT_TYPES = frozenset(
    {
        "agent_conversation.snapshot",
        "agent_conversation.updated",
        "agent_conversation.created",
    }
)


class PushChannel:
    """One push connection for one conversation, opened at most once."""

    def __init__(
        self,
        conversation_id: str,
        path_with_query: str,
        store: MessageStore,
        on_snapshot: Callable[[Conversation], None],
        *,
        base_url: str,
        ws_base_url: str | None = None,
        connect: Connector | None = None,
    ) -> None:
        self.conversation_id = conversation_id
        self.path_with_query = path_with_query
        self._store = store
        self._on_snapshot = on_snapshot
        self._base_url = base_url
        self._ws_base_url = ws_base_url
        self._connect = connect
        self._connection: PushConnection | None = None
        self._opened = False
        self._closed = False
        self._live = False

    @property
    def is_live(self) -> bool:
        return self._live

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    def open(self) -> None:
        """Open the connection.

        Raises:
            RuntimeError: The conversation has not been loaded yet
        """
        if not self._store.is_loaded:
            raise RuntimeError("Push channel requires a loaded conversation")
        if self._opened:
            return
        self._opened = True

        self._connection = connect_push(
            self.path_with_query,
            base_url=self._base_url,
            ws_base_url=self._ws_base_url,
            on_open=self._handle_open,
            on_message=self._handle_frame,
            on_close=self._handle_close,
            on_error=self._handle_error,
            connect=self._connect,
        )
        logger.info(
            "push_channel_opening",
            conversation_id=self.conversation_id,
            url=self._connection.url,
        )

    def _handle_open(self) -> None:
        self._live = True
        logger.info("push_channel_open", conversation_id=self.conversation_id)

    def _handle_close(self) -> None:
        self._live = False
        logger.info("push_channel_closed", conversation_id=self.conversation_id)

    def _handle_error(self, error: BaseException) -> None:
        logger.warning(
            "push_channel_error",
            conversation_id=self.conversation_id,
            error=str(error),
        )

    def _handle_frame(self, frame: Any) -> None:
        if not isinstance(frame, dict):
            return

        event_type = frame.get("type")
        PUSH_EVENTS.labels(event_type=str(event_type)).inc()

        if event_type not in SNAPSHOT_EVENT_TYPES:
            return
        payload = frame.get("conversation")
        if not isinstance(payload, dict):
            return

        try:
            conversation = Conversation.model_validate(payload)
        except ValidationError as e:
            logger.debug("push_frame_invalid", event_type=event_type, error=str(e))
            return

        if conversation.id != self.conversation_id:
            logger.debug(
                "push_frame_other_conversation",
                expected=self.conversation_id,
                received=conversation.id,
            )
            return

        self._on_snapshot(conversation)

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._live = False
        if self._connection is not None:
            await self._connection.close()
