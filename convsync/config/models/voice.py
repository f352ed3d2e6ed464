"""Voice agent configuration models."""

from pydantic import BaseModel, Field


class VoiceConfig(BaseModel):
    """Configuration for voice session registration and signed URLs."""

    agent_url: str | None = Field(
        default=None,
        description="Absolute voice agent service URL; relative paths are used when unset",
    )
    default_session_ttl_seconds: int = Field(
        default=600,  # 10 minutes
        gt=0,
        description="Session TTL assumed when the backend does not report one",
    )
    lease_renewal_margin_seconds: int = Field(
        default=60,
        ge=0,
        description="Renew a signed URL lease this long before it expires",
    )
    lease_renewal_lead_seconds: int = Field(
        default=300,  # 5 minutes
        ge=0,
        description="Background renewal fires this long before a lease expires",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries for transient signed URL and registration failures",
    )
    retry_initial_delay_seconds: float = Field(
        default=1.0,
        gt=0,
        description="First retry delay; doubles on each further retry",
    )
