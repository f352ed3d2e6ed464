"""Conversation API client.

Provides an async client for the conversation, agent conversation and
voice agent endpoints.

Usage:
    from convsync.client import ConversationClient

    async with ConversationClient("http://localhost:3000") as client:
        conversation = await client.fetch_conversation("conv-123")
        await client.send_message("conv-123", "Hello")

    # Built from config/default.toml and CONVSYNC_* variables
    async with ConversationClient.from_settings() as client:
        lease = await client.get_voice_signed_url("agent-123")
"""

from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from convsync.client.errors import (
    SESSION_EXPIRED_CODE,
    NetworkError,
    ResponseFormatError,
    TransportError,
    UnexpectedContentTypeError,
    error_for_status,
)
from convsync.conversation.models import (
    Conversation,
    ConversationPage,
    CreateConversationResponse,
    MessageRole,
    MessageSource,
    Pagination,
    SendMessageResponse,
)
from convsync.voice.models import AgentConfig, RegisterSessionResponse, SignedUrlLease

if TYPE_CHECKING:
    from convsync.config import Settings

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_response(model: type[ModelT], data: Any, *, action: str) -> ModelT:
    """Validate a decoded body, raising ResponseFormatError on a bad shape."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ResponseFormatError(
            f"Unexpected response format for {action}",
            details=e.errors(include_url=False, include_input=False),
        ) from e


class ConversationResource:
    """Endpoints of one conversation API (note or agent conversations).

    Both APIs share the same shape under different path prefixes.
    """

    def __init__(self, client: "ConversationClient", path: str, label: str) -> None:
        self._client = client
        self.path = path.rstrip("/")
        self.label = label

    async def fetch(self, conversation_id: str) -> Conversation:
        """Get a conversation by ID."""
        data = await self._client._request(
            "GET",
            f"{self.path}/{conversation_id}",
            action=f"fetch {self.label.lower()}",
            not_found_message=f"{self.label} not found",
        )
        return parse_response(Conversation, data, action=f"fetch {self.label.lower()}")

    async def send_message(
        self,
        conversation_id: str,
        content: str,
        *,
        role: MessageRole | str = MessageRole.USER,
        source: MessageSource | str | None = None,
    ) -> SendMessageResponse:
        """Post a message to a conversation."""
        payload: dict[str, Any] = {"role": MessageRole(role).value, "content": content}
        if source is not None:
            payload["source"] = MessageSource(source).value
        data = await self._client._request(
            "POST",
            f"{self.path}/{conversation_id}/message",
            action="send message",
            json=payload,
        )
        return parse_response(SendMessageResponse, data, action="send message")

    async def list(
        self,
        *,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> ConversationPage:
        """List conversations.

        Older backends return a bare array; it is wrapped into a page.
        """
        params: dict[str, Any] = {}
        if limit:
            params["limit"] = limit
        if offset:
            params["offset"] = offset
        if sort_by:
            params["sortBy"] = sort_by
        if sort_order:
            params["sortOrder"] = sort_order

        action = f"fetch {self.label.lower()}s"
        data = await self._client._request(
            "GET",
            f"{self.path}/list",
            action=action,
            params=params or None,
        )

        if isinstance(data, list):
            conversations = [parse_response(Conversation, c, action=action) for c in data]
            return ConversationPage(
                conversations=conversations,
                pagination=Pagination(
                    total=len(conversations),
                    limit=limit,
                    offset=offset or 0,
                    has_more=False,
                ),
            )
        return parse_response(ConversationPage, data, action=action)

    async def create(self, payload: dict[str, Any]) -> CreateConversationResponse:
        """Create a new conversation."""
        data = await self._client._request(
            "POST",
            f"{self.path}/new",
            action=f"create {self.label.lower()}",
            json=payload,
        )
        return parse_response(
            CreateConversationResponse, data, action=f"create {self.label.lower()}"
        )

    def push_path(self, conversation_id: str) -> str:
        """Path and query of the WebSocket feed for a conversation."""
        return f"{self.path}/ws?conversationId={quote(conversation_id, safe='')}"


class ConversationClient:
    """Async client for the conversation and voice agent APIs.

    Attributes:
        base_url: Origin of the conversation APIs
        conversations: Note conversation endpoints
        agent_conversations: Agent conversation endpoints
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        *,
        conversations_path: str = "/conversations/api",
        agent_conversations_path: str = "/agent-conversations/api",
        agent_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Origin of the conversation APIs
            conversations_path: Path prefix of the note conversation API
            agent_conversations_path: Path prefix of the agent conversation API
            agent_url: Absolute voice agent URL; relative paths are used when unset
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.agent_url = agent_url.rstrip("/") if agent_url else None
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self.conversations = ConversationResource(self, conversations_path, "Conversation")
        self.agent_conversations = ConversationResource(
            self, agent_conversations_path, "Agent conversation"
        )

    @classmethod
    def from_settings(
        cls,
        settings: "Settings | None" = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ConversationClient":
        """Create a client from loaded configuration."""
        if settings is None:
            from convsync.config import get_settings

            settings = get_settings()

        return cls(
            base_url=settings.api.base_url,
            conversations_path=settings.api.conversations_path,
            agent_conversations_path=settings.api.agent_conversations_path,
            agent_url=settings.voice.agent_url,
            timeout=settings.api.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ConversationClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        action: str,
        not_found_message: str | None = None,
        json: dict | None = None,
        params: dict | None = None,
        require_json: bool = True,
    ) -> Any:
        """Make an API request and return the decoded JSON body.

        The content type is checked before the status, so an HTML error
        page surfaces as UnexpectedContentTypeError rather than a domain
        error.
        """
        try:
            response = await self._client.request(method, url, json=json, params=params)
        except httpx.HTTPError as e:
            raise NetworkError(f"Network error: {e}") from e

        content_type = response.headers.get("content-type")
        if require_json and (not content_type or "application/json" not in content_type):
            raise UnexpectedContentTypeError(
                content_type, response.text, status_code=response.status_code
            )

        if not response.is_success:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            if not isinstance(error_data, dict):
                error_data = {}

            code = error_data.get("code")
            error_text = error_data.get("error")
            if isinstance(error_text, dict):
                error_text = error_text.get("message")

            if response.status_code == 404 and not_found_message and code != SESSION_EXPIRED_CODE:
                message = not_found_message
            else:
                message = error_text or f"Failed to {action}: {response.reason_phrase}"

            raise error_for_status(
                response.status_code,
                message,
                code=code,
                details=error_data or None,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON response: {response.text[:200]}",
                status_code=response.status_code,
            ) from e

    # Note conversations
    async def fetch_conversation(self, conversation_id: str) -> Conversation:
        """Get a note conversation by ID."""
        return await self.conversations.fetch(conversation_id)

    async def send_message(
        self,
        conversation_id: str,
        content: str,
        *,
        role: MessageRole | str = MessageRole.USER,
        source: MessageSource | str | None = None,
    ) -> SendMessageResponse:
        """Send a message to a note conversation."""
        return await self.conversations.send_message(
            conversation_id, content, role=role, source=source
        )

    async def list_conversations(
        self,
        *,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> ConversationPage:
        """List note conversations."""
        return await self.conversations.list(
            limit=limit, offset=offset, sort_by=sort_by, sort_order=sort_order
        )

    async def create_conversation(self, queue_type: str = "api") -> CreateConversationResponse:
        """Create a note conversation on the given queue."""
        return await self.conversations.create({"queueType": queue_type})

    # Agent conversations
    async def get_agent_conversation(self, conversation_id: str) -> Conversation:
        """Get an agent conversation by ID."""
        return await self.agent_conversations.fetch(conversation_id)

    async def send_agent_message(
        self,
        conversation_id: str,
        content: str,
        *,
        role: MessageRole | str = MessageRole.USER,
        source: MessageSource | str | None = MessageSource.TEXT,
    ) -> SendMessageResponse:
        """Send a text message to an agent conversation."""
        return await self.agent_conversations.send_message(
            conversation_id, content, role=role, source=source
        )

    async def list_agent_conversations(
        self,
        *,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> ConversationPage:
        """List agent conversations."""
        return await self.agent_conversations.list(
            limit=limit, offset=offset, sort_by=sort_by, sort_order=sort_order
        )

    async def create_agent_conversation(
        self,
        agent_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> CreateConversationResponse:
        """Create an agent conversation."""
        payload: dict[str, Any] = {}
        if agent_id:
            payload["agentId"] = agent_id
        if metadata:
            payload["metadata"] = metadata
        return await self.agent_conversations.create(payload)

    # Voice agent
    def _voice_base(self) -> str:
        return self.agent_url or ""

    def signed_url_endpoint(self, agent_id: str | None = None) -> str:
        """URL requested for a signed voice connection URL."""
        url = f"{self._voice_base()}/signed-url"
        if agent_id:
            url = f"{url}?agentId={quote(agent_id, safe='')}"
        return url

    def session_endpoint(self, conversation_id: str) -> str:
        """URL a session is registered at.

        With an absolute agent URL the full agent conversation path is used;
        otherwise the proxied /agent-session path.
        """
        if self.agent_url:
            return (
                f"{self.agent_url}{self.agent_conversations.path}/{conversation_id}/session"
            )
        return f"/agent-session/{conversation_id}"

    async def get_voice_signed_url(self, agent_id: str | None = None) -> SignedUrlLease:
        """Get a signed URL for connecting to a voice agent."""
        data = await self._request(
            "GET",
            self.signed_url_endpoint(agent_id),
            action="get signed URL",
        )
        if agent_id and isinstance(data, dict):
            data = {**data, "agentId": data.get("agentId") or agent_id}
        return parse_response(SignedUrlLease, data, action="get signed URL")

    async def register_session(
        self,
        conversation_id: str,
        session_url: str,
        *,
        session_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> RegisterSessionResponse:
        """Register a voice session against a conversation.

        Raises:
            SessionExpiredError: The backend reports the session as expired
        """
        payload: dict[str, Any] = {"sessionUrl": session_url}
        if session_id:
            payload["sessionId"] = session_id
        if metadata:
            payload["metadata"] = metadata
        data = await self._request(
            "POST",
            self.session_endpoint(conversation_id),
            action="register session",
            json=payload,
        )
        return parse_response(RegisterSessionResponse, data, action="register session")

    async def get_agent_config(self) -> AgentConfig:
        """Get the voice agent service configuration."""
        data = await self._request(
            "GET",
            f"{self._voice_base()}/config",
            action="get agent config",
            require_json=False,
        )
        return parse_response(AgentConfig, data, action="get agent config")
