"""ConversationView: one mounted, continuously synchronized conversation.

The view owns every per-conversation handle: the message store, the
reconciliation trackers, the poll cadences, the push channel and the
notice board. Nothing is kept in module-level state, so any number of
views can be mounted side by side.

Usage:
    async with ConversationClient.from_settings() as client:
        async with ConversationView(client, "conv-123") as view:
            await view.send("Hello")
            ...
"""

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from convsync.client.classify import user_message
from convsync.client.client import ConversationClient, ConversationResource
from convsync.client.ws import Connector
from convsync.config.models import NoticeConfig, SyncConfig
from convsync.conversation.models import Conversation, Message, MessageSource, utc_now
from convsync.conversation.reconciliation import MergeResult, ReconciliationEngine
from convsync.conversation.store import MessageStore
from convsync.conversation.writer import OptimisticWriter, SendOutcome
from convsync.observability.logging import get_logger
from convsync.observability.metrics import MERGES, STALE_SNAPSHOTS
from convsync.sync.notices import NoticeBoard
from convsync.sync.poller import PASSIVE_REFRESH, REPLY_WAIT, PollScheduler
from convsync.sync.push import PushChannel
from convsync.sync.results import FetchResult, FetchSuccess, fetch_result

if TYPE_CHECKING:
    from convsync.config import Settings

logger = get_logger(__name__)

REFRESH_SUCCESS_TEXT = "Conversation refreshed"


class ConversationView:
    """Keeps a displayed conversation consistent with the server.

    Initial load, optimistic sends, reply-wait and passive polling, and
    push snapshots all converge through a single ReconciliationEngine.
    """

    def __init__(
        self,
        client: ConversationClient,
        conversation_id: str,
        *,
        resource: ConversationResource | None = None,
        sync_config: SyncConfig | None = None,
        notice_config: NoticeConfig | None = None,
        source: MessageSource | None = None,
        connect: Connector | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the view.

        Args:
            client: API client used for fetches and sends
            conversation_id: Conversation to synchronize
            resource: API to use; agent conversations by default
            sync_config: Poll intervals and push settings
            notice_config: Notice auto-clear delays
            source: Source recorded on sent messages
            connect: WebSocket connector override
            clock: Source of optimistic timestamps
        """
        if resource is None:
            resource = client.agent_conversations
            source = source or MessageSource.TEXT

        self.client = client
        self.conversation_id = conversation_id
        self.source = source
        self._resource = resource
        self._sync = sync_config or SyncConfig()
        self._connect = connect

        notice_config = notice_config or NoticeConfig()
        self.notices = NoticeBoard(
            error_clear_seconds=notice_config.error_clear_seconds,
            success_clear_seconds=notice_config.success_clear_seconds,
        )
        self.store = MessageStore()
        self.engine = ReconciliationEngine()
        self.scheduler = PollScheduler()
        self.writer = OptimisticWriter(
            self.store,
            send=self._send_message,
            refetch=self._refetch_after_send,
            on_sent=self._start_reply_wait,
            is_alive=lambda: self._alive,
            clock=clock,
        )
        self.push: PushChannel | None = None

        self.scheduler.add(
            REPLY_WAIT,
            self._sync.reply_wait_interval_seconds,
            fetch=self._poll,
            on_success=self._poll_handler(REPLY_WAIT),
        )
        self.scheduler.add(
            PASSIVE_REFRESH,
            self._sync.passive_refresh_interval_seconds,
            fetch=self._poll,
            on_success=self._poll_handler(PASSIVE_REFRESH),
        )

        self._mounted = False
        self._alive = False
        self._torn_down = False
        self._refreshing = False
        # Fetches are numbered as they start; results older than the
        # newest applied one are stale
        self._fetch_seq = 0
        self._applied_seq = 0

    @classmethod
    def from_settings(
        cls,
        client: ConversationClient,
        conversation_id: str,
        settings: "Settings | None" = None,
        **kwargs,
    ) -> "ConversationView":
        """Create a view using the sync and notice configuration."""
        if settings is None:
            from convsync.config import get_settings

            settings = get_settings()

        return cls(
            client,
            conversation_id,
            sync_config=settings.sync,
            notice_config=settings.notices,
            **kwargs,
        )

    async def __aenter__(self) -> "ConversationView":
        await self.mount()
        return self

    async def __aexit__(self, *args) -> None:
        await self.teardown()

    # State

    @property
    def conversation(self) -> Conversation | None:
        return self.store.conversation

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.store.messages

    @property
    def is_mounted(self) -> bool:
        return self._alive

    @property
    def is_live(self) -> bool:
        """True while the push channel is connected."""
        return self.push is not None and self.push.is_live

    @property
    def awaiting_reply(self) -> bool:
        return self.scheduler.is_running(REPLY_WAIT)

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    # Lifecycle

    async def mount(self) -> Conversation:
        """Load the conversation, then start passive refresh and push.

        Raises:
            TransportError: The initial load failed; the view stays unmounted
        """
        if self._mounted:
            if self.store.conversation is not None:
                return self.store.conversation
            raise RuntimeError("Conversation view is already mounting")
        if self._torn_down:
            raise RuntimeError("Conversation view was torn down")

        self._mounted = True
        self._alive = True
        issued = self._begin_fetch()
        try:
            conversation = await self._resource.fetch(self.conversation_id)
        except Exception as e:
            self._mounted = False
            self._alive = False
            logger.warning(
                "conversation_load_failed",
                conversation_id=self.conversation_id,
                error=str(e),
            )
            raise

        if not self._alive:
            return conversation

        self.store.load(conversation)
        self.engine.prime(conversation.messages)
        self._applied_seq = issued
        MERGES.labels(source="load").inc()

        self.scheduler.start(PASSIVE_REFRESH)
        if self._sync.push_enabled:
            self.push = PushChannel(
                self.conversation_id,
                self._resource.push_path(self.conversation_id),
                self.store,
                on_snapshot=self._handle_push_snapshot,
                base_url=self.client.base_url,
                ws_base_url=self._sync.ws_base_url,
                connect=self._connect,
            )
            self.push.open()

        logger.info(
            "conversation_mounted",
            conversation_id=self.conversation_id,
            message_count=len(conversation.messages),
        )
        return conversation

    async def teardown(self) -> None:
        """Stop timers, close push and clear notices. Idempotent."""
        if self._torn_down:
            return
        self._torn_down = True
        self._alive = False

        self.scheduler.stop_all()
        if self.push is not None:
            await self.push.close()
        self.notices.clear_all()

        logger.info("conversation_unmounted", conversation_id=self.conversation_id)

    async def wait_idle(self) -> None:
        """Wait for poll fetches in flight to finish."""
        await self.scheduler.wait_idle()

    # Reconciliation

    def apply_snapshot(
        self,
        conversation: Conversation,
        source: str = "poll",
        *,
        issued: int | None = None,
    ) -> MergeResult | None:
        """Merge a server snapshot into the displayed state.

        Snapshots arriving after teardown are dropped, and so are snapshots
        older than one already applied.

        Args:
            conversation: Server snapshot
            source: Label recorded in metrics and logs
            issued: Start number of the fetch that produced the snapshot;
                None for pushed snapshots

        Returns:
            The merge result, or None if the snapshot was dropped
        """
        if not self._alive or not self.store.is_loaded:
            return None

        if self._is_stale(conversation, issued):
            STALE_SNAPSHOTS.labels(source=source).inc()
            logger.debug(
                "stale_snapshot_dropped",
                conversation_id=self.conversation_id,
                source=source,
                issued=issued,
                message_count=len(conversation.messages),
            )
            return None

        pending = self.writer.pending
        result = self.engine.merge(conversation.messages, pending)
        self.writer.prune(self.engine.confirmed(conversation.messages, pending))
        self.store.apply(conversation, result.messages)
        if issued is not None:
            self._applied_seq = max(self._applied_seq, issued)
        MERGES.labels(source=source).inc()

        if result.stream_complete and not self.writer.pending and self.awaiting_reply:
            self.scheduler.stop(REPLY_WAIT)
            logger.info(
                "reply_wait_complete",
                conversation_id=self.conversation_id,
                message_count=len(result.messages),
            )

        return result

    def _is_stale(self, conversation: Conversation, issued: int | None) -> bool:
        if issued is not None and issued < self._applied_seq:
            return True
        current = self.store.conversation
        if current is not None and conversation.last_accessed_at < current.last_accessed_at:
            return True
        # Server conversations only grow, so fewer messages than the last
        # applied snapshot means an older read whatever its source
        return len(conversation.messages) < self.engine.last_count

    def _begin_fetch(self) -> int:
        self._fetch_seq += 1
        return self._fetch_seq

    def _poll_handler(self, source: str) -> Callable[[FetchSuccess], None]:
        def handle(result: FetchSuccess) -> None:
            self.apply_snapshot(result.conversation, source=source, issued=result.issued)

        return handle

    def _handle_push_snapshot(self, conversation: Conversation) -> None:
        self.apply_snapshot(conversation, source="push")

    async def _poll(self) -> FetchResult:
        return await fetch_result(
            self._resource.fetch, self.conversation_id, issued=self._begin_fetch()
        )

    # Writes

    async def send(
        self,
        text: str | None = None,
        *,
        source: MessageSource | None = None,
    ) -> SendOutcome | None:
        """Send a message optimistically and wait for the reply.

        Failures are reverted and posted as an error notice.
        """
        if not self.store.is_loaded:
            raise RuntimeError("Conversation not loaded")

        outcome = await self.writer.submit(text, source=source or self.source)
        if outcome is not None and not outcome.sent and self._alive:
            self.notices.error(outcome.error_message or "Failed to send message")
        return outcome

    async def _send_message(self, content: str, source: MessageSource | None) -> None:
        await self._resource.send_message(self.conversation_id, content, source=source)

    def _start_reply_wait(self) -> None:
        if self._alive:
            self.scheduler.start(REPLY_WAIT)

    async def _refetch_after_send(self) -> None:
        result = await fetch_result(
            self._resource.fetch, self.conversation_id, issued=self._begin_fetch()
        )
        if isinstance(result, FetchSuccess):
            self.apply_snapshot(result.conversation, source="send", issued=result.issued)
        else:
            logger.debug(
                "post_send_refetch_failed",
                conversation_id=self.conversation_id,
                error=str(result.error),
            )

    # Manual refresh

    async def refresh(self) -> Conversation | None:
        """Re-fetch on user request.

        Returns None when a refresh is already running.

        Raises:
            TransportError: The fetch failed; an error notice is posted
        """
        if self._refreshing:
            return None

        self._refreshing = True
        issued = self._begin_fetch()
        try:
            conversation = await self._resource.fetch(self.conversation_id)
        except Exception as e:
            logger.warning(
                "manual_refresh_failed",
                conversation_id=self.conversation_id,
                error=str(e),
            )
            if self._alive:
                self.notices.error(user_message(e))
            raise
        finally:
            self._refreshing = False

        self.apply_snapshot(conversation, source="refresh", issued=issued)
        if self._alive:
            self.notices.success(REFRESH_SUCCESS_TEXT)
        return conversation
