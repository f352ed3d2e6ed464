"""Voice session and signed URL models.

A VoiceSession and a SignedUrlLease have unrelated lifetimes: the session
reference is short-lived (about 10 minutes) while the signed URL is usually
valid for an hour. Nothing here ties one to the other.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_SESSION_TTL_SECONDS = 600


def _as_utc(v: datetime | None) -> datetime | None:
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=UTC)
    return v


class VoiceSession(BaseModel):
    """Registered session reference. Immutable once created."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    conversation_id: str = Field(..., description="Owning conversation")
    session_id: str | None = Field(default=None, description="Voice provider session id")
    session_url: str = Field(..., description="Session connection URL")
    created_at: datetime = Field(..., description="Registration time")
    ttl_seconds: int = Field(default=DEFAULT_SESSION_TTL_SECONDS, gt=0, description="TTL")

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @property
    def expires_at(self) -> datetime:
        """Nominal expiry. The backend may invalidate the session earlier."""
        return self.created_at + timedelta(seconds=self.ttl_seconds)

    def ttl_remaining(self, now: datetime) -> float:
        """Seconds left before the nominal expiry, never negative."""
        return max(0.0, (self.expires_at - now).total_seconds())


class SignedUrlLease(BaseModel):
    """Time-bounded authorization for opening a voice connection.

    The backend has used several spellings for these fields; all are accepted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    agent_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("agentId", "agent_id"),
    )
    signed_url: str = Field(
        ...,
        validation_alias=AliasChoices("signedUrl", "signed_url", "url"),
    )
    expires_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("expiresAt", "expires_at"),
    )

    @field_validator("expires_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    def expires_within(self, seconds: float, now: datetime) -> bool:
        """True when the lease lapses within ``seconds`` of ``now``.

        A lease without an expiry never lapses on the client side.
        """
        if self.expires_at is None:
            return False
        return self.expires_at <= now + timedelta(seconds=seconds)


class RegisterSessionResponse(BaseModel):
    """Backend acknowledgement of a session registration."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    success: bool = True
    message: str | None = None
    ttl: int | None = Field(default=None, gt=0, description="Server-side TTL in seconds")
    created_at: datetime | None = None

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)


class AgentConfig(BaseModel):
    """Voice agent service configuration as reported by the backend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    agent_id: str | None = None
    agent_url: str = ""
    cursor_runner_url: str = ""
    webhook_secret_configured: bool = False
    redis_url: str = ""
    has_api_key: bool = False

    @model_validator(mode="before")
    @classmethod
    def unwrap_envelope(cls, data: Any) -> Any:
        """Accept ``{"success": true, "config": {...}}`` as well as the bare object."""
        if isinstance(data, dict) and data.get("success") and isinstance(data.get("config"), dict):
            return data["config"]
        return data
