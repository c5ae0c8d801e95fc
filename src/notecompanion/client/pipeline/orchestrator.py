"""Drive one share through prepare -> upload -> trigger -> poll.

This module provides:
- strip_duplicate_image_references: Result post-processing
- PipelineOrchestrator: Sequences the stages and emits status events

Status sequence per run:
    uploading -> processing -> completed | error

Every stage failure is turned into an ERROR UploadResult and an ERROR
status event, whichever stage failed.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

import httpx

from notecompanion.client.api import APIError, ExtractedContent
from notecompanion.client.auth import require_token
from notecompanion.client.pipeline.poller import ResultPoller
from notecompanion.client.pipeline.preparer import FilePreparator
from notecompanion.client.pipeline.transport import UploadTransport
from notecompanion.client.pipeline.trigger import ProcessingTrigger
from notecompanion.client.pipeline.types import (
    MissingFileIdError,
    PipelineError,
    SharedFile,
    SleepFunc,
    StatusCallback,
    StatusEvent,
    StatusListener,
    UploadResult,
)
from notecompanion.core.types import UploadStatus

if TYPE_CHECKING:
    from notecompanion.client.api import ProcessingClient
    from notecompanion.core.config import PipelineSettings

logger = logging.getLogger(__name__)

# Errors a stage may raise that end the run with an ERROR result
STAGE_ERRORS: tuple[type[Exception], ...] = (
    APIError,
    PipelineError,
    httpx.HTTPError,
    OSError,
)

_BLANK_LINE_RUN = re.compile(r"\n\n\n+")


def strip_duplicate_image_references(text: str, filename: str) -> str:
    """Remove standard image embeds that duplicate a wiki-style embed.

    When `text` embeds `filename` as `![[...filename...]]`, any
    `![alt](...filename...)` reference to the same file is removed and
    runs of blank lines are collapsed.

    Args:
        text: Extracted text (markdown).
        filename: Name of the shared file.

    Returns:
        Cleaned text, or `text` unchanged when there is no wiki-style embed.
    """
    name = re.escape(filename)
    wiki_pattern = re.compile(rf"!\[\[.*?{name}.*?\]\]")
    if not wiki_pattern.search(text):
        return text
    standard_pattern = re.compile(rf"!\[.*?\]\(.*?{name}.*?\)")
    cleaned = standard_pattern.sub("", text)
    return _BLANK_LINE_RUN.sub("\n\n", cleaned).strip()


class PipelineOrchestrator:
    """Runs the share pipeline for one SharedFile at a time.

    Several runs may be in flight concurrently; they share no mutable state
    besides the listener list.

    Usage:
        async with ProcessingClient(settings.server) as client:
            orchestrator = PipelineOrchestrator(client, settings)
            orchestrator.add_listener(print)
            result = await orchestrator.run(shared_file, token)
    """

    def __init__(
        self,
        client: ProcessingClient,
        settings: PipelineSettings,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the orchestrator and its stages.

        Args:
            client: HTTP client for the service.
            settings: Pipeline settings.
            sleep: Sleep coroutine used by retry and polling (injected in tests).
        """
        self._settings = settings
        self._preparator = FilePreparator(settings.staging_dir)
        self._transport = UploadTransport(client)
        self._trigger = ProcessingTrigger(client, settings, sleep=sleep)
        self._poller = ResultPoller(client, settings, sleep=sleep)
        self._listeners: list[StatusListener] = []

    # === Status events ===

    def add_listener(self, listener: StatusListener) -> None:
        """Subscribe to status events of every run."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        """Unsubscribe a listener (no-op if unknown)."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(
        self,
        status: UploadStatus,
        file_name: str | None,
        on_status_change: StatusCallback | None,
        error: str | None = None,
    ) -> None:
        """Publish a status transition to the run callback and listeners."""
        logger.info(f"{file_name or 'share'}: {status.value}")
        event = StatusEvent(status=status, file_name=file_name, error=error)
        if on_status_change:
            try:
                on_status_change(status)
            except Exception:
                logger.exception("Status callback failed")
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Status listener failed")

    # === Pipeline ===

    async def run(
        self,
        shared: SharedFile,
        token: str | None,
        on_status_change: StatusCallback | None = None,
    ) -> UploadResult:
        """Process one share end to end.

        Args:
            shared: The incoming share.
            token: Bearer token.
            on_status_change: Optional callback invoked at each transition.

        Returns:
            Final UploadResult (COMPLETED or ERROR); never raises for stage
            failures.
        """
        label = shared.name or PurePosixPath(shared.uri).name
        try:
            require_token(token)
        except APIError as e:
            self._emit(UploadStatus.ERROR, label, on_status_change, str(e))
            return UploadResult.failure(str(e))

        file_id: str | None = None
        try:
            self._emit(UploadStatus.UPLOADING, label, on_status_change)
            payload = self._preparator.prepare(shared)
            upload = await self._transport.send(payload, token, inline_text=shared.text)

            self._emit(UploadStatus.PROCESSING, label, on_status_change)
            if not upload.file_id:
                raise MissingFileIdError()
            file_id = upload.file_id

            if upload.is_local:
                result = UploadResult(
                    status=UploadStatus.COMPLETED,
                    text=upload.text,
                    file_id=file_id,
                    url=upload.url,
                )
            else:
                await self._trigger.trigger(file_id, token)
                result = await self._poller.poll(file_id, token)
        except STAGE_ERRORS as e:
            message = str(e) or "Failed to process file"
            logger.error(f"Processing {label} failed: {message}")
            self._emit(UploadStatus.ERROR, label, on_status_change, message)
            return UploadResult.failure(message, file_id=file_id)

        if result.ok:
            self._clean_result(result, shared)
        if upload.url:
            result.url = upload.url

        self._emit(result.status, label, on_status_change, result.error)
        return result

    @staticmethod
    def _clean_result(result: UploadResult, shared: SharedFile) -> None:
        """Drop image references the extraction step already inlined."""
        if not shared.name or result.text is None:
            return
        filename = shared.name.split("/")[-1] or shared.name
        if isinstance(result.text, ExtractedContent):
            if result.text.extracted_text:
                result.text.extracted_text = strip_duplicate_image_references(
                    result.text.extracted_text, filename
                )
        else:
            result.text = strip_duplicate_image_references(result.text, filename)
