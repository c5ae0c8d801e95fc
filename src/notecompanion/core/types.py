"""Shared types for notecompanion.

This module defines the client-visible pipeline status.
"""

from __future__ import annotations

from enum import Enum


class UploadStatus(str, Enum):
    """Status of one pipeline run as seen by presentation code.

    Values follow pipeline progress (IDLE < UPLOADING < PROCESSING < COMPLETED).
    ERROR is reachable from any non-terminal state.
    """

    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transitions can follow this status."""
        return self in (UploadStatus.COMPLETED, UploadStatus.ERROR)

    @property
    def progress(self) -> int:
        """Position in the pipeline ordering (-1 for ERROR)."""
        if self is UploadStatus.ERROR:
            return -1
        return _PROGRESS_ORDER.index(self)


_PROGRESS_ORDER = (
    UploadStatus.IDLE,
    UploadStatus.UPLOADING,
    UploadStatus.PROCESSING,
    UploadStatus.COMPLETED,
)
