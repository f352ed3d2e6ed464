"""Backend API client configuration models."""

from pydantic import BaseModel, Field, field_validator


class APIConfig(BaseModel):
    """Configuration for the conversation HTTP API."""

    base_url: str = Field(
        default="http://localhost:3000",
        description="Origin serving the conversation APIs",
    )
    conversations_path: str = Field(
        default="/conversations/api",
        description="Path prefix of the note conversation API",
    )
    agent_conversations_path: str = Field(
        default="/agent-conversations/api",
        description="Path prefix of the agent conversation API",
    )
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Drop a trailing slash so paths can be appended directly."""
        return v.rstrip("/")
