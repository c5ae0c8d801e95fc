"""Core module - Shared configuration and status types."""

from notecompanion.core.config import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_MAX_ATTEMPTS,
    DEFAULT_TIMEOUT,
    DEFAULT_TRIGGER_BASE_DELAY,
    DEFAULT_TRIGGER_MAX_RETRIES,
    PipelineSettings,
    ServerConfig,
)
from notecompanion.core.types import UploadStatus

__all__ = [
    # Config
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_POLL_MAX_ATTEMPTS",
    "DEFAULT_TIMEOUT",
    "DEFAULT_TRIGGER_BASE_DELAY",
    "DEFAULT_TRIGGER_MAX_RETRIES",
    "PipelineSettings",
    "ServerConfig",
    # Types
    "UploadStatus",
]
