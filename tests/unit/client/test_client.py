"""Tests for ConversationClient over httpx.MockTransport."""

import json

import httpx
import pytest

from convsync.client import (
    ConversationClient,
    InvalidRequestError,
    NetworkError,
    NotFoundError,
    ResponseFormatError,
    ServerError,
    SessionExpiredError,
    TransportError,
    UnexpectedContentTypeError,
)
from convsync.client.classify import ErrorCategory, categorize, user_message
from convsync.config import Settings
from convsync.conversation.models import MessageRole
from tests.factories import ConversationFactory, MessageFactory


def json_handler(status: int = 200, body=None, recorder: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if recorder is not None:
            recorder.append(request)
        return httpx.Response(status, json=body if body is not None else {})

    return handler


class TestFetchConversation:
    """Tests for fetching conversations."""

    @pytest.mark.asyncio
    async def test_fetch_agent_conversation(self, make_client) -> None:
        """Should GET the agent conversation and parse its messages."""
        requests: list[httpx.Request] = []
        payload = ConversationFactory.payload(
            messages=[MessageFactory.user("Hello"), MessageFactory.assistant("Hi!")]
        )
        client = make_client(json_handler(body=payload, recorder=requests))

        conversation = await client.get_agent_conversation("conv-123")

        assert requests[0].method == "GET"
        assert requests[0].url.path == "/agent-conversations/api/conv-123"
        assert conversation.id == "conv-123"
        assert [m.role for m in conversation.messages] == ["user", "assistant"]
        await client.close()

    @pytest.mark.asyncio
    async def test_not_found_message_per_resource(self, make_client) -> None:
        """Should name the resource in 404 messages."""
        client = make_client(json_handler(404, {"error": "nope"}))

        with pytest.raises(NotFoundError, match="^Agent conversation not found$"):
            await client.get_agent_conversation("missing")
        with pytest.raises(NotFoundError, match="^Conversation not found$"):
            await client.fetch_conversation("missing")
        await client.close()

    @pytest.mark.asyncio
    async def test_html_response_raises_content_type_error(self, make_client) -> None:
        """Should check content type before status and keep a body preview."""
        html = "<html>" + "x" * 500 + "</html>"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text=html, headers={"content-type": "text/html"})

        client = make_client(handler)

        with pytest.raises(UnexpectedContentTypeError) as exc_info:
            await client.get_agent_conversation("conv-123")

        error = exc_info.value
        assert isinstance(error, TransportError)
        assert not isinstance(error, NotFoundError)
        assert error.content_type == "text/html"
        assert len(error.raw_body) == 200
        assert "Expected JSON but received text/html" in str(error)
        await client.close()

    @pytest.mark.asyncio
    async def test_network_failure_raises_network_error(self, make_client) -> None:
        """Should wrap httpx transport failures."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        client = make_client(handler)

        with pytest.raises(NetworkError, match="Network error"):
            await client.get_agent_conversation("conv-123")
        await client.close()

    @pytest.mark.asyncio
    async def test_server_error_uses_body_error(self, make_client) -> None:
        """Should raise ServerError with the body's error text."""
        client = make_client(json_handler(500, {"error": "database down"}))

        with pytest.raises(ServerError, match="database down") as exc_info:
            await client.get_agent_conversation("conv-123")
        assert exc_info.value.status_code == 500
        await client.close()

    @pytest.mark.asyncio
    async def test_error_without_body_text(self, make_client) -> None:
        """Should fall back to 'Failed to <action>: <reason>'."""
        client = make_client(json_handler(400, {}))

        with pytest.raises(InvalidRequestError, match="^Failed to send message: Bad Request$"):
            await client.send_agent_message("conv-123", "Hello")
        await client.close()


class TestMalformedBodies:
    """Tests for 2xx JSON bodies with the wrong shape."""

    @pytest.mark.asyncio
    async def test_conversation_shape_raises_transport_error(self, make_client) -> None:
        """Should raise ResponseFormatError chained to the validation failure."""
        client = make_client(json_handler(body={"conversationId": "c", "messages": "oops"}))

        with pytest.raises(ResponseFormatError) as exc_info:
            await client.get_agent_conversation("conv-123")

        error = exc_info.value
        assert isinstance(error, TransportError)
        assert error.__cause__ is not None
        assert error.details
        assert categorize(error) is ErrorCategory.OTHER
        assert user_message(error) == (
            "Unexpected response format for fetch agent conversation"
        )
        await client.close()

    @pytest.mark.asyncio
    async def test_voice_endpoints_shape(self, make_client) -> None:
        """Should apply the same contract to signed URL and agent config bodies."""
        client = make_client(json_handler(body=["not", "an", "object"]))

        with pytest.raises(ResponseFormatError, match="get signed URL"):
            await client.get_voice_signed_url()
        with pytest.raises(ResponseFormatError, match="get agent config"):
            await client.get_agent_config()
        await client.close()


class TestSendMessage:
    """Tests for sending messages."""

    @pytest.mark.asyncio
    async def test_send_agent_message_payload(self, make_client) -> None:
        """Should POST role, content and text source."""
        requests: list[httpx.Request] = []
        client = make_client(
            json_handler(body={"success": True, "conversationId": "conv-123"}, recorder=requests)
        )

        response = await client.send_agent_message("conv-123", "Hello")

        assert requests[0].method == "POST"
        assert requests[0].url.path == "/agent-conversations/api/conv-123/message"
        assert json.loads(requests[0].content) == {
            "role": "user",
            "content": "Hello",
            "source": "text",
        }
        assert response.success is True
        assert response.conversation_id == "conv-123"
        await client.close()

    @pytest.mark.asyncio
    async def test_send_note_message_without_source(self, make_client) -> None:
        """Should omit source when none is given."""
        requests: list[httpx.Request] = []
        client = make_client(json_handler(body={"success": True}, recorder=requests))

        await client.send_message("conv-1", "Note", role=MessageRole.USER)

        assert requests[0].url.path == "/conversations/api/conv-1/message"
        assert json.loads(requests[0].content) == {"role": "user", "content": "Note"}
        await client.close()


class TestListAndCreate:
    """Tests for listing and creating conversations."""

    @pytest.mark.asyncio
    async def test_legacy_array_is_wrapped(self, make_client) -> None:
        """Should wrap a bare array response into a page."""
        body = [ConversationFactory.payload(id="a"), ConversationFactory.payload(id="b")]
        client = make_client(json_handler(body=body))

        page = await client.list_agent_conversations(limit=10)

        assert [c.id for c in page.conversations] == ["a", "b"]
        assert page.pagination.total == 2
        assert page.pagination.has_more is False
        await client.close()

    @pytest.mark.asyncio
    async def test_list_query_params(self, make_client) -> None:
        """Should send paging and sorting as camelCase query params."""
        requests: list[httpx.Request] = []
        body = {"conversations": [], "pagination": {"total": 0, "offset": 20, "hasMore": False}}
        client = make_client(json_handler(body=body, recorder=requests))

        await client.list_conversations(
            limit=10, offset=20, sort_by="lastAccessedAt", sort_order="desc"
        )

        params = requests[0].url.params
        assert requests[0].url.path == "/conversations/api/list"
        assert params["limit"] == "10"
        assert params["offset"] == "20"
        assert params["sortBy"] == "lastAccessedAt"
        assert params["sortOrder"] == "desc"
        await client.close()

    @pytest.mark.asyncio
    async def test_create_agent_conversation(self, make_client) -> None:
        """Should POST agentId and metadata to /new."""
        requests: list[httpx.Request] = []
        client = make_client(
            json_handler(body={"success": True, "conversationId": "conv-9"}, recorder=requests)
        )

        response = await client.create_agent_conversation("agent-123", {"channel": "web"})

        assert requests[0].url.path == "/agent-conversations/api/new"
        assert json.loads(requests[0].content) == {
            "agentId": "agent-123",
            "metadata": {"channel": "web"},
        }
        assert response.conversation_id == "conv-9"
        await client.close()


class TestVoiceEndpoints:
    """Tests for signed URL, session registration and agent config."""

    @pytest.mark.asyncio
    async def test_signed_url_without_agent_id(self, make_client) -> None:
        """Should request a URL ending in /signed-url."""
        requests: list[httpx.Request] = []
        client = make_client(json_handler(body={"signedUrl": "wss://voice/s"}, recorder=requests))

        lease = await client.get_voice_signed_url()

        assert str(requests[0].url).endswith("/signed-url")
        assert lease.signed_url == "wss://voice/s"
        assert lease.agent_id is None
        await client.close()

    @pytest.mark.asyncio
    async def test_signed_url_with_agent_id(self, make_client) -> None:
        """Should pass the agent id as a query parameter."""
        requests: list[httpx.Request] = []
        client = make_client(json_handler(body={"signedUrl": "wss://voice/s"}, recorder=requests))

        lease = await client.get_voice_signed_url("agent-123")

        assert str(requests[0].url).endswith("/signed-url?agentId=agent-123")
        assert lease.agent_id == "agent-123"
        await client.close()

    def test_session_endpoint_relative(self) -> None:
        """Should use the proxied path without an agent URL."""
        client = ConversationClient("http://test.local")
        assert client.session_endpoint("conv-123") == "/agent-session/conv-123"

    def test_session_endpoint_absolute(self) -> None:
        """Should use the full agent conversation path with an agent URL."""
        client = ConversationClient("http://test.local", agent_url="http://agent.local/")
        assert (
            client.session_endpoint("conv-123")
            == "http://agent.local/agent-conversations/api/conv-123/session"
        )

    @pytest.mark.asyncio
    async def test_register_session_expired(self, make_client) -> None:
        """Should raise SessionExpiredError for a 404 with SESSION_EXPIRED."""
        client = make_client(
            json_handler(404, {"error": "Session has expired", "code": "SESSION_EXPIRED"})
        )

        with pytest.raises(SessionExpiredError) as exc_info:
            await client.register_session("conv-123", "wss://voice/session")

        error = exc_info.value
        assert "Session expired" in str(error)
        assert error.code == "SESSION_EXPIRED"
        assert error.status_code == 404
        await client.close()

    @pytest.mark.asyncio
    async def test_register_session_payload(self, make_client) -> None:
        """Should POST the session URL and optional id."""
        requests: list[httpx.Request] = []
        client = make_client(json_handler(body={"success": True, "ttl": 300}, recorder=requests))

        response = await client.register_session(
            "conv-123", "wss://voice/session", session_id="sess-1"
        )

        assert requests[0].url.path == "/agent-session/conv-123"
        assert json.loads(requests[0].content) == {
            "sessionUrl": "wss://voice/session",
            "sessionId": "sess-1",
        }
        assert response.ttl == 300
        await client.close()

    @pytest.mark.asyncio
    async def test_agent_config_unwrapped(self, make_client) -> None:
        """Should unwrap the nested config object."""
        body = {"success": True, "config": {"agentId": "agent-123", "hasApiKey": True}}
        client = make_client(json_handler(body=body))

        config = await client.get_agent_config()

        assert config.agent_id == "agent-123"
        assert config.has_api_key is True
        await client.close()


class TestFromSettings:
    """Tests for building a client from configuration."""

    def test_uses_settings(self) -> None:
        """Should take base URL, paths and agent URL from settings."""
        settings = Settings(
            api={"base_url": "http://api.test/", "agent_conversations_path": "/agents/api"},
            voice={"agent_url": "http://voice.test"},
        )

        client = ConversationClient.from_settings(settings)

        assert client.base_url == "http://api.test"
        assert client.agent_conversations.path == "/agents/api"
        assert client.agent_url == "http://voice.test"
