"""Shared types and dataclasses for the share pipeline.

This module provides:
- PipelineError, PreparationError, UploadError, TriggerError, MissingFileIdError:
  Exception classes
- SharedFile: Input descriptor handed over by the share mechanism
- PreparedPayload: Normalized, transport-ready form of a SharedFile
- UploadResult: Pipeline output
- StatusEvent: Status transition emitted by the orchestrator
- Type aliases for callbacks
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from notecompanion.client.api import ExtractedContent, RemoteFileStatus, ResultText
from notecompanion.core.types import UploadStatus


class PipelineError(Exception):
    """Base exception for pipeline stage failures."""


class PreparationError(PipelineError):
    """The shared file could not be turned into a payload."""


class UploadError(PipelineError):
    """Failed to upload a file."""


class TriggerError(PipelineError):
    """The service refused to start processing."""


class MissingFileIdError(PipelineError):
    """Upload reported success without returning a file identifier."""

    def __init__(self) -> None:
        super().__init__("No file ID returned from upload")


@dataclass(frozen=True)
class SharedFile:
    """A file or text snippet entering the pipeline.

    Attributes:
        uri: Location reference (file:// URI or plain local path).
        mime_type: Declared MIME type, inferred when absent.
        name: Display filename, generated when absent.
        text: Inline content in lieu of a file.
    """

    uri: str
    mime_type: str | None = None
    name: str | None = None
    text: str | None = None


@dataclass(frozen=True)
class PreparedPayload:
    """Transport-ready form of a SharedFile (never persisted)."""

    file_name: str
    mime_type: str
    location: Path


@dataclass
class UploadResult:
    """Final result of one pipeline run.

    Attributes:
        status: COMPLETED or ERROR.
        text: Extracted text, plain or structured.
        error: Error message when status is ERROR.
        file_id: Remote identifier (absent if the upload failed).
        url: Remote location of the processed artifact.
        timed_out: True when the client gave up polling (not a server error).
    """

    status: UploadStatus
    text: ResultText | None = None
    error: str | None = None
    file_id: str | None = None
    url: str | None = None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        """Check if the run completed successfully."""
        return self.status is UploadStatus.COMPLETED

    @property
    def plain_text(self) -> str | None:
        """Text content regardless of its shape."""
        if isinstance(self.text, ExtractedContent):
            return self.text.extracted_text
        return self.text

    @classmethod
    def failure(cls, message: str, file_id: str | None = None) -> UploadResult:
        """Create an ERROR result."""
        return cls(status=UploadStatus.ERROR, error=message, file_id=file_id)

    @classmethod
    def from_remote(cls, remote: RemoteFileStatus, file_id: str) -> UploadResult:
        """Create from a terminal status record."""
        status = (
            UploadStatus.COMPLETED
            if remote.status == UploadStatus.COMPLETED.value
            else UploadStatus.ERROR
        )
        error = remote.error
        if status is UploadStatus.ERROR and not error:
            error = "Processing failed"
        return cls(
            status=status,
            text=remote.text,
            error=error,
            file_id=file_id,
            url=remote.url,
        )


@dataclass(frozen=True)
class StatusEvent:
    """A status transition of one pipeline run."""

    status: UploadStatus
    file_name: str | None = None
    error: str | None = None
    timestamp: float = field(default_factory=time.time)


# Type aliases for callbacks
StatusCallback = Callable[[UploadStatus], None]
StatusListener = Callable[[StatusEvent], None]
SleepFunc = Callable[[float], Awaitable[None]]
