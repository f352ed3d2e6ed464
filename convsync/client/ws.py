"""WebSocket push transport.

Opens one connection, decodes JSON frames and hands them to callbacks.
The connection never reconnects on its own; callers fall back to polling.
"""

import asyncio
import contextlib
import json
from collections.abc import Callable
from typing import Any
from urllib.parse import urljoin, urlsplit

import websockets
from websockets.exceptions import WebSocketException

from convsync.observability.logging import get_logger

logger = get_logger(__name__)

Connector = Callable[[str], Any]


def build_ws_url(path_with_query: str, *, base_url: str, ws_base_url: str | None = None) -> str:
    """Resolve a push path against the WebSocket origin.

    An explicit ``ws_base_url`` wins; otherwise the scheme of the HTTP
    base URL is mapped to ws/wss on the same host.
    """
    if ws_base_url:
        return urljoin(ws_base_url, path_with_query)

    parts = urlsplit(base_url)
    scheme = "wss" if parts.scheme == "https" else "ws"
    path = path_with_query if path_with_query.startswith("/") else f"/{path_with_query}"
    return f"{scheme}://{parts.netloc}{path}"


class PushConnection:
    """Handle for one push connection. ``close()`` is idempotent."""

    def __init__(
        self,
        url: str,
        *,
        on_message: Callable[[Any], None],
        on_open: Callable[[], None] | None = None,
        on_close: Callable[[], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
        connect: Connector | None = None,
    ) -> None:
        self.url = url
        self._on_message = on_message
        self._on_open = on_open
        self._on_close = on_close
        self._on_error = on_error
        self._connect = connect or websockets.connect
        self._ws: Any = None
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Begin connecting in the background."""
        if self._task is None and not self._closed:
            self._task = asyncio.create_task(self._run(), name=f"push:{self.url}")

    async def _run(self) -> None:
        try:
            async with self._connect(self.url) as ws:
                self._ws = ws
                if self._closed:
                    return
                logger.debug("push_connection_opened", url=self.url)
                if self._on_open:
                    self._on_open()
                async for raw in ws:
                    try:
                        frame = json.loads(raw)
                    except ValueError:
                        logger.debug("push_frame_malformed", url=self.url)
                        continue
                    try:
                        self._on_message(frame)
                    except Exception as e:
                        logger.error("push_frame_handler_error", url=self.url, error=str(e))
        except (WebSocketException, OSError) as e:
            logger.warning("push_connection_error", url=self.url, error=str(e))
            if self._on_error:
                self._on_error(e)
        finally:
            self._ws = None
            logger.debug("push_connection_closed", url=self.url)
            if self._on_close:
                self._on_close()

    async def close(self) -> None:
        """Close the connection and stop the reader task."""
        if self._closed:
            return
        self._closed = True

        ws = self._ws
        if ws is not None:
            with contextlib.suppress(WebSocketException, OSError):
                await ws.close(code=1000, reason="Client closing")

        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task


def connect_push(
    path_with_query: str,
    *,
    base_url: str,
    on_message: Callable[[Any], None],
    on_open: Callable[[], None] | None = None,
    on_close: Callable[[], None] | None = None,
    on_error: Callable[[BaseException], None] | None = None,
    ws_base_url: str | None = None,
    connect: Connector | None = None,
) -> PushConnection:
    """Open a push connection and return its handle."""
    connection = PushConnection(
        build_ws_url(path_with_query, base_url=base_url, ws_base_url=ws_base_url),
        on_message=on_message,
        on_open=on_open,
        on_close=on_close,
        on_error=on_error,
        connect=connect,
    )
    connection.start()
    return connection
