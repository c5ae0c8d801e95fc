"""Share pipeline: prepare, upload, trigger processing, poll for results.

Architecture:
    FilePreparator → UploadTransport → ProcessingTrigger → ResultPoller

Components:
- **FilePreparator**: Resolves filename, MIME type and local location
- **UploadTransport**: Base64-encodes the payload and uploads it
- **ProcessingTrigger**: Starts server-side analysis with exponential backoff
- **ResultPoller**: Bounded status polling until completed/error
- **PipelineOrchestrator**: Sequences the stages and emits status events
- **BackgroundSync**: Local-first intake with deferred sync passes

All public symbols are re-exported here.
"""

from notecompanion.client.api import ExtractedContent, RemoteFileStatus, UploadResponse
from notecompanion.client.pipeline.background import (
    BackgroundSync,
    SharePreview,
    SyncSummary,
)
from notecompanion.client.pipeline.orchestrator import (
    PipelineOrchestrator,
    strip_duplicate_image_references,
)
from notecompanion.client.pipeline.poller import (
    TIMEOUT_MESSAGE,
    OutcomeKind,
    PollOutcome,
    ResultPoller,
    poll_attempts,
)
from notecompanion.client.pipeline.preparer import (
    FilePreparator,
    resolve_file_name,
    resolve_mime_type,
)
from notecompanion.client.pipeline.queue import QueuedShare, QueueState, ShareQueue
from notecompanion.client.pipeline.retry import RetryState, next_delay, retry_with_backoff
from notecompanion.client.pipeline.transport import UploadTransport
from notecompanion.client.pipeline.trigger import ProcessingTrigger, is_transient_error
from notecompanion.client.pipeline.types import (
    MissingFileIdError,
    PipelineError,
    PreparationError,
    PreparedPayload,
    SharedFile,
    StatusEvent,
    TriggerError,
    UploadError,
    UploadResult,
)

__all__ = [
    # Types
    "ExtractedContent",
    "PreparedPayload",
    "RemoteFileStatus",
    "SharedFile",
    "StatusEvent",
    "UploadResponse",
    "UploadResult",
    # Errors
    "MissingFileIdError",
    "PipelineError",
    "PreparationError",
    "TriggerError",
    "UploadError",
    # Stages
    "FilePreparator",
    "ProcessingTrigger",
    "ResultPoller",
    "UploadTransport",
    "resolve_file_name",
    "resolve_mime_type",
    # Retry and polling
    "OutcomeKind",
    "PollOutcome",
    "RetryState",
    "TIMEOUT_MESSAGE",
    "is_transient_error",
    "next_delay",
    "poll_attempts",
    "retry_with_backoff",
    # Orchestration
    "PipelineOrchestrator",
    "strip_duplicate_image_references",
    # Background sync
    "BackgroundSync",
    "QueueState",
    "QueuedShare",
    "ShareQueue",
    "SharePreview",
    "SyncSummary",
]
