"""Signed URL lease cache for voice connections."""

import asyncio
import contextlib
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from convsync.client.retry import Sleep, retry_with_backoff
from convsync.conversation.models import utc_now
from convsync.observability.logging import get_logger
from convsync.voice.models import SignedUrlLease

if TYPE_CHECKING:
    from convsync.client.client import ConversationClient
    from convsync.config import Settings

logger = get_logger(__name__)


class SignedUrlLeaseManager:
    """Holds one signed URL lease and renews it before it lapses.

    ``current()`` renews lazily once the lease is inside the renewal
    margin. ``start_renewal()`` additionally renews in the background a
    fixed lead time before expiry. Lease lifetime is independent of any
    voice session, so the session manager is never consulted here.
    """

    def __init__(
        self,
        client: "ConversationClient",
        agent_id: str | None = None,
        *,
        renewal_margin_seconds: float = 60,
        renewal_lead_seconds: float = 300,
        max_retries: int = 3,
        retry_initial_delay: float = 1.0,
        clock: Callable[[], datetime] = utc_now,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the manager.

        Args:
            client: API client issuing signed URLs
            agent_id: Voice agent the URL is for; the backend default when None
            renewal_margin_seconds: ``current()`` renews inside this margin
            renewal_lead_seconds: Background renewal fires this long before expiry
            max_retries: Retries for transient fetch failures
            retry_initial_delay: First retry delay in seconds
            clock: Source of the current time
            sleep: Awaitable delay used for retries and the renewal timer
        """
        self._client = client
        self.agent_id = agent_id
        self._margin = renewal_margin_seconds
        self._lead = renewal_lead_seconds
        self._max_retries = max_retries
        self._retry_delay = retry_initial_delay
        self._clock = clock
        self._sleep = sleep
        self._lease: SignedUrlLease | None = None
        self._auto_renew = False
        self._renewal: asyncio.Task | None = None

    @classmethod
    def from_settings(
        cls,
        client: "ConversationClient",
        agent_id: str | None = None,
        settings: "Settings | None" = None,
    ) -> "SignedUrlLeaseManager":
        """Create a manager using the voice configuration."""
        if settings is None:
            from convsync.config import get_settings

            settings = get_settings()
        voice = settings.voice
        return cls(
            client,
            agent_id,
            renewal_margin_seconds=voice.lease_renewal_margin_seconds,
            renewal_lead_seconds=voice.lease_renewal_lead_seconds,
            max_retries=voice.max_retries,
            retry_initial_delay=voice.retry_initial_delay_seconds,
        )

    @property
    def lease(self) -> SignedUrlLease | None:
        return self._lease

    @property
    def is_renewing(self) -> bool:
        """True while a background renewal is scheduled."""
        return self._renewal is not None and not self._renewal.done()

    async def current(self) -> SignedUrlLease:
        """Return the held lease, fetching a new one when needed."""
        if self._lease is not None and not self._lease.expires_within(self._margin, self._clock()):
            return self._lease
        return await self.renew()

    async def renew(self) -> SignedUrlLease:
        """Fetch a fresh lease, retrying transient failures.

        Raises:
            TransportError: The last failure once retries are exhausted
        """
        renewing = self._lease is not None
        self._lease = await retry_with_backoff(
            lambda: self._client.get_voice_signed_url(self.agent_id),
            name="signed_url",
            max_retries=self._max_retries,
            initial_delay=self._retry_delay,
            sleep=self._sleep,
        )
        logger.info(
            "signed_url_renewed" if renewing else "signed_url_acquired",
            agent_id=self.agent_id,
            expires_at=self._lease.expires_at.isoformat() if self._lease.expires_at else None,
        )
        if self._auto_renew:
            self._schedule_renewal()
        return self._lease

    def start_renewal(self) -> None:
        """Renew in the background ahead of each lease's expiry.

        The timer is armed for the held lease, if any, and re-armed after
        every renewal. Leases without an expiry are never renewed.
        """
        self._auto_renew = True
        self._schedule_renewal()

    async def stop_renewal(self) -> None:
        """Cancel the background renewal. Idempotent."""
        self._auto_renew = False
        task, self._renewal = self._renewal, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def invalidate(self) -> None:
        """Drop the held lease so the next call fetches a fresh one."""
        self._lease = None
        self._cancel_timer()

    def _cancel_timer(self) -> None:
        task, self._renewal = self._renewal, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _schedule_renewal(self) -> None:
        self._cancel_timer()
        if self._lease is None or self._lease.expires_at is None:
            return

        remaining = (self._lease.expires_at - self._clock()).total_seconds()
        # Leases shorter than the lead time renew at half-life
        delay = max(remaining - self._lead, remaining / 2, 0.0)
        self._renewal = asyncio.create_task(
            self._renew_after(delay), name=f"signed-url-renewal:{self.agent_id}"
        )
        logger.debug("signed_url_renewal_scheduled", agent_id=self.agent_id, delay_seconds=delay)

    async def _renew_after(self, delay: float) -> None:
        await self._sleep(delay)
        try:
            await self.renew()
        except Exception as e:
            logger.error("signed_url_renewal_failed", agent_id=self.agent_id, error=str(e))
