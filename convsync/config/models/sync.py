"""Conversation synchronization configuration models."""

from pydantic import BaseModel, Field


class SyncConfig(BaseModel):
    """Polling and push settings for a mounted conversation."""

    reply_wait_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Poll cadence while an assistant reply is awaited",
    )
    passive_refresh_interval_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Poll cadence for the whole time a conversation is mounted",
    )
    push_enabled: bool = Field(
        default=True,
        description="Open a WebSocket push channel after the initial load",
    )
    ws_base_url: str | None = Field(
        default=None,
        description="WebSocket origin override; derived from the API base URL when unset",
    )


class NoticeConfig(BaseModel):
    """Auto-clear delays for user-facing notices."""

    error_clear_seconds: float = Field(default=5.0, gt=0, description="Error notice lifetime")
    success_clear_seconds: float = Field(
        default=3.0, gt=0, description="Success notice lifetime"
    )
