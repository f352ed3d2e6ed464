"""Configuration model exports.

    from convsync.config.models import APIConfig, SyncConfig
"""

from convsync.config.models.api import APIConfig
from convsync.config.models.observability import LoggingConfig, ObservabilityConfig
from convsync.config.models.sync import NoticeConfig, SyncConfig
from convsync.config.models.voice import VoiceConfig

__all__ = [
    # API
    "APIConfig",
    # Observability
    "LoggingConfig",
    "ObservabilityConfig",
    # Sync
    "NoticeConfig",
    "SyncConfig",
    # Voice
    "VoiceConfig",
]
