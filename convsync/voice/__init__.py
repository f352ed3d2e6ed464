"""Voice sessions and signed URL leases."""

from convsync.voice.lease import SignedUrlLeaseManager
from convsync.voice.models import (
    AgentConfig,
    RegisterSessionResponse,
    SignedUrlLease,
    VoiceSession,
)
from convsync.voice.session import (
    SessionLifecycleManager,
    SessionNotRegisteredError,
    SessionState,
)

__all__ = [
    "AgentConfig",
    "RegisterSessionResponse",
    "SessionLifecycleManager",
    "SessionNotRegisteredError",
    "SessionState",
    "SignedUrlLease",
    "SignedUrlLeaseManager",
    "VoiceSession",
]
