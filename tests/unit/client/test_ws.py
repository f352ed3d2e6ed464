"""Tests for the WebSocket push transport."""

import asyncio

import pytest
from websockets.exceptions import InvalidURI

from convsync.client.ws import PushConnection, build_ws_url, connect_push
from tests.factories import FakeConnector, FakeWebSocket


class TestBuildWsUrl:
    """Tests for build_ws_url."""

    def test_http_maps_to_ws(self) -> None:
        """Should switch http to ws on the same host."""
        url = build_ws_url(
            "/agent-conversations/api/ws?conversationId=c1", base_url="http://host:3000"
        )
        assert url == "ws://host:3000/agent-conversations/api/ws?conversationId=c1"

    def test_https_maps_to_wss(self) -> None:
        """Should switch https to wss."""
        assert build_ws_url("/ws", base_url="https://host").startswith("wss://host/")

    def test_explicit_ws_base_wins(self) -> None:
        """Should resolve against an explicit WebSocket origin."""
        url = build_ws_url("/ws?x=1", base_url="http://host", ws_base_url="wss://push.host")
        assert url == "wss://push.host/ws?x=1"


class TestPushConnection:
    """Tests for PushConnection."""

    @pytest.mark.asyncio
    async def test_delivers_decoded_frames(self) -> None:
        """Should decode JSON frames and skip malformed ones."""
        ws = FakeWebSocket()
        received: list = []
        opened = asyncio.Event()

        connection = connect_push(
            "/ws",
            base_url="http://host",
            on_message=received.append,
            on_open=opened.set,
            connect=FakeConnector(ws),
        )
        await asyncio.wait_for(opened.wait(), timeout=1)

        ws.feed("not json")
        ws.feed({"type": "ping"})
        for _ in range(5):
            await asyncio.sleep(0)

        assert received == [{"type": "ping"}]
        await connection.close()

    @pytest.mark.asyncio
    async def test_handler_error_keeps_reading(self) -> None:
        """Should log a failing frame handler and keep delivering later frames."""
        ws = FakeWebSocket()
        received: list = []
        errors: list[BaseException] = []
        opened = asyncio.Event()

        def on_message(frame) -> None:
            if frame["n"] == 1:
                raise RuntimeError("listener failed")
            received.append(frame)

        connection = connect_push(
            "/ws",
            base_url="http://host",
            on_message=on_message,
            on_open=opened.set,
            on_error=errors.append,
            connect=FakeConnector(ws),
        )
        await asyncio.wait_for(opened.wait(), timeout=1)

        ws.feed({"n": 1})
        ws.feed({"n": 2})
        for _ in range(5):
            await asyncio.sleep(0)

        assert received == [{"n": 2}]
        assert errors == []
        assert not connection.closed
        await connection.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        """Should close once with code 1000 and fire on_close."""
        ws = FakeWebSocket()
        closed: list[bool] = []
        opened = asyncio.Event()

        connection = PushConnection(
            "ws://host/ws",
            on_message=lambda frame: None,
            on_open=opened.set,
            on_close=lambda: closed.append(True),
            connect=FakeConnector(ws),
        )
        connection.start()
        await asyncio.wait_for(opened.wait(), timeout=1)

        await connection.close()
        await connection.close()

        assert connection.closed
        assert ws.close_code == 1000
        assert closed == [True]

    @pytest.mark.asyncio
    async def test_connect_failure_reports_error(self) -> None:
        """Should report a failed connect and never reconnect."""
        errors: list[BaseException] = []
        closed = asyncio.Event()
        attempts: list[str] = []

        def failing_connect(url: str):
            attempts.append(url)
            raise InvalidURI(url, "bad uri")

        connection = PushConnection(
            "ws://host/ws",
            on_message=lambda frame: None,
            on_error=errors.append,
            on_close=closed.set,
            connect=failing_connect,
        )
        connection.start()
        await asyncio.wait_for(closed.wait(), timeout=1)

        assert len(errors) == 1
        assert attempts == ["ws://host/ws"]
        await connection.close()
