"""Shared configuration classes for notecompanion.

This module defines the connection settings and the immutable pipeline
settings object that every pipeline component receives at construction time.
"""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path

# Default tuning constants
DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_TRIGGER_MAX_RETRIES = 3
DEFAULT_TRIGGER_BASE_DELAY = 1.0  # seconds
DEFAULT_POLL_INTERVAL = 2.0  # seconds
DEFAULT_POLL_MAX_ATTEMPTS = 30


def default_staging_dir() -> Path:
    """Directory used to materialize inline text before upload."""
    return Path(tempfile.gettempdir()) / "notecompanion-staging"


def default_data_dir() -> Path:
    """Directory holding the local-first store and queue database."""
    return Path.home() / ".notecompanion"


@dataclass
class ServerConfig:
    """Configuration for connecting to the Note Companion service.

    Attributes:
        server_url: Base URL of the service (e.g., "https://app.notecompanion.ai").
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    timeout: float = DEFAULT_TIMEOUT
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")


@dataclass(frozen=True)
class PipelineSettings:
    """Immutable settings for one pipeline instance.

    Attributes:
        server: Connection settings for the remote service.
        trigger_max_retries: Maximum attempts for the processing trigger.
        trigger_base_delay: Delay before the second trigger attempt, in seconds.
            Doubles for every following attempt.
        poll_interval: Fixed delay between status polls, in seconds.
        poll_max_attempts: Number of status polls before declaring a timeout.
        staging_dir: Where inline text is written before upload.
        data_dir: Root of the local-first store (queue database and copies).
    """

    server: ServerConfig
    trigger_max_retries: int = DEFAULT_TRIGGER_MAX_RETRIES
    trigger_base_delay: float = DEFAULT_TRIGGER_BASE_DELAY
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS
    staging_dir: Path = field(default_factory=default_staging_dir)
    data_dir: Path = field(default_factory=default_data_dir)

    def __post_init__(self) -> None:
        """Validate tuning constants."""
        if self.trigger_max_retries < 1:
            raise ValueError("trigger_max_retries must be at least 1")
        if self.poll_max_attempts < 1:
            raise ValueError("poll_max_attempts must be at least 1")
        if self.trigger_base_delay < 0 or self.poll_interval < 0:
            raise ValueError("delays must not be negative")

    @property
    def max_poll_wait(self) -> float:
        """Upper bound of time spent sleeping between polls, in seconds."""
        return (self.poll_max_attempts - 1) * self.poll_interval

    @property
    def queue_db_path(self) -> Path:
        """SQLite database backing the background sync queue."""
        return self.data_dir / "queue.db"

    @property
    def files_dir(self) -> Path:
        """Directory holding local copies of queued shares."""
        return self.data_dir / "files"
