"""Local-first handling of shares with deferred remote processing.

This module provides:
- SharePreview: Lightweight preview reported as soon as a share is stored
- SyncSummary: Outcome of one sync pass
- BackgroundSync: Stores shares locally, then drives the orchestrator for
  queued items on sync passes

Perceived success (the share is stored locally) is decoupled from actual
completion (remote processing). A failed remote run never loses the share:
it stays queued for the next pass.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Literal

from PIL import Image, UnidentifiedImageError

from notecompanion.client.pipeline.preparer import (
    resolve_file_name,
    resolve_mime_type,
    uri_to_path,
)
from notecompanion.client.pipeline.queue import QueuedShare, ShareQueue
from notecompanion.client.pipeline.types import PreparationError, SharedFile

if TYPE_CHECKING:
    from notecompanion.client.pipeline.orchestrator import PipelineOrchestrator
    from notecompanion.core.config import PipelineSettings

logger = logging.getLogger(__name__)

PREVIEW_TEXT_LENGTH = 200
THUMBNAIL_SIZE = (256, 256)
# Synced rows are kept this long so the CLI can report them
SYNCED_RETENTION_SECONDS = 7 * 24 * 3600

PreviewType = Literal["text", "image", "other"]


@dataclass
class SharePreview:
    """Preview of a locally stored share."""

    preview_type: PreviewType
    preview_text: str | None = None
    thumbnail_path: Path | None = None


PreviewCallback = Callable[[SharePreview], None]


@dataclass
class SyncSummary:
    """Result of a sync pass."""

    synced: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of shares attempted."""
        return len(self.synced) + len(self.failed)


def thumbnail_target(local_path: Path) -> Path:
    """Where the thumbnail of a stored image is written."""
    return local_path.with_name(f"{local_path.stem}.thumb.jpg")


def make_thumbnail(source: Path, target: Path) -> Path:
    """Write a thumbnail of an image, falling back to the image itself.

    Args:
        source: Image file.
        target: Where to write the thumbnail.

    Returns:
        Path of the thumbnail (or `source` if the image can't be decoded).
    """
    try:
        with Image.open(source) as image:
            image.thumbnail(THUMBNAIL_SIZE)
            image.convert("RGB").save(target, format="JPEG")
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"No thumbnail for {source}: {e}")
        return source
    return target


class BackgroundSync:
    """Local-first share handling on top of a PipelineOrchestrator.

    Usage:
        background = BackgroundSync(orchestrator, settings)
        item = background.handle_shared_file(shared, on_preview=show)
        task = background.start_background_sync(token)  # does not block
    """

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        settings: PipelineSettings,
        queue: ShareQueue | None = None,
    ) -> None:
        """Initialize background sync.

        Args:
            orchestrator: Orchestrator used to process queued shares.
            settings: Pipeline settings (data_dir location).
            queue: Queue to use (default: opened at settings.queue_db_path).
        """
        self._orchestrator = orchestrator
        self._files_dir = settings.files_dir
        self._queue = queue or ShareQueue(settings.queue_db_path)
        self._sync_task: asyncio.Task[SyncSummary] | None = None

    @property
    def queue(self) -> ShareQueue:
        """The underlying share queue."""
        return self._queue

    def close(self) -> None:
        """Close the queue database."""
        self._queue.close()

    # === Local-first intake ===

    def handle_shared_file(
        self,
        shared: SharedFile,
        on_preview: PreviewCallback | None = None,
    ) -> QueuedShare:
        """Store a share locally and queue it for processing.

        Runs synchronously and does no network activity.

        Args:
            shared: The incoming share.
            on_preview: Called with the preview once the share is stored.

        Returns:
            The queued share.

        Raises:
            PreparationError: If the share content cannot be read or stored.
        """
        file_name = resolve_file_name(shared)
        # The local copy may not keep the source extension, pin name and type
        shared = SharedFile(
            uri=shared.uri,
            mime_type=resolve_mime_type(shared),
            name=file_name,
            text=shared.text,
        )

        item = QueuedShare(shared=shared, local_path=Path())
        item.local_path = self._store_locally(item.id, shared, file_name)
        self._queue.put(item)
        logger.info(f"Stored {file_name} locally and queued it ({item.id})")

        if on_preview:
            on_preview(self._build_preview(item))
        return item

    def _store_locally(self, item_id: str, shared: SharedFile, file_name: str) -> Path:
        """Copy the share's content into the local store."""
        target = self._files_dir / f"{item_id}-{PurePosixPath(file_name).name}"
        try:
            self._files_dir.mkdir(parents=True, exist_ok=True)
            if shared.text:
                target.write_text(shared.text, encoding="utf-8")
            else:
                source = uri_to_path(shared.uri)
                if not source.exists():
                    raise PreparationError(f"File does not exist: {source}")
                shutil.copyfile(source, target)
        except OSError as e:
            raise PreparationError(f"Could not store {file_name}: {e}") from e
        return target

    def _discard_local_copy(self, item: QueuedShare) -> None:
        """Delete the stored copy of a synced share and its thumbnail."""
        for path in (item.local_path, thumbnail_target(item.local_path)):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not delete {path}: {e}")

    def _build_preview(self, item: QueuedShare) -> SharePreview:
        """Build the preview of a stored share."""
        if item.shared.text:
            return SharePreview(
                preview_type="text",
                preview_text=item.shared.text[:PREVIEW_TEXT_LENGTH],
            )
        mime_type = resolve_mime_type(item.shared)
        if mime_type.startswith("image/"):
            target = thumbnail_target(item.local_path)
            return SharePreview(
                preview_type="image",
                thumbnail_path=make_thumbnail(item.local_path, target),
            )
        if mime_type.startswith("text/"):
            text = item.local_path.read_text(encoding="utf-8", errors="replace")
            return SharePreview(
                preview_type="text",
                preview_text=text[:PREVIEW_TEXT_LENGTH],
            )
        return SharePreview(preview_type="other")

    # === Sync passes ===

    def start_background_sync(self, token: str | None) -> asyncio.Task[SyncSummary]:
        """Schedule a sync pass without waiting for it.

        Only one pass runs at a time: while a pass is running, the running
        task is returned.

        Args:
            token: Bearer token.

        Returns:
            The task running the pass.
        """
        if self._sync_task is not None and not self._sync_task.done():
            logger.debug("Sync pass already running")
            return self._sync_task
        self._sync_task = asyncio.create_task(self.sync_pending(token))
        return self._sync_task

    async def sync_pending(self, token: str | None) -> SyncSummary:
        """Drive every pending share through the orchestrator.

        Completed shares are marked synced and their local copy is deleted;
        failed ones stay pending with their attempt count and last error.
        Synced rows older than SYNCED_RETENTION_SECONDS are pruned first.

        Args:
            token: Bearer token.

        Returns:
            Summary of the pass.
        """
        summary = SyncSummary()
        if not token:
            logger.warning("No token available, leaving queued shares for later")
            return summary

        self._queue.prune_synced(time.time() - SYNCED_RETENTION_SECONDS)
        pending = self._queue.pending()
        if not pending:
            return summary

        logger.info(f"Syncing {len(pending)} queued share(s)")
        started = time.monotonic()
        for item in pending:
            result = await self._orchestrator.run(item.to_shared_file(), token)
            if result.ok:
                self._queue.mark_synced(item.id, result.file_id)
                self._discard_local_copy(item)
                summary.synced.append(item.id)
            else:
                self._queue.mark_failed(item.id, result.error or "Unknown error")
                summary.failed.append(item.id)
                logger.warning(
                    f"Share {item.id} stays queued "
                    f"(attempt {item.attempts + 1}): {result.error}"
                )

        logger.info(
            f"Sync pass done in {time.monotonic() - started:.1f}s: "
            f"{len(summary.synced)} synced, {len(summary.failed)} failed"
        )
        return summary
