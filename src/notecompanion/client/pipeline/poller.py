"""Poll the service until processing reaches a final status.

This module provides:
- PollOutcome: Result of one status query
- poll_attempts: Bounded async iterator producing at most max_attempts outcomes
- ResultPoller: Consumes outcomes and turns them into an UploadResult

Outcome handling:
- completed / error status: final, returned as is
- any other status (uploaded, processing, ...): keep waiting
- 404: the record may not have propagated yet, keep waiting
- network failure: keep waiting
- any other HTTP failure: stop immediately with an error result
- iterator exhausted: client-declared timeout
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

import httpx

from notecompanion.client.api import APIError, NotFoundError, RemoteFileStatus
from notecompanion.client.pipeline.types import SleepFunc, UploadResult
from notecompanion.core.types import UploadStatus

if TYPE_CHECKING:
    from notecompanion.client.api import ProcessingClient
    from notecompanion.core.config import PipelineSettings

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Processing timeout: no result after {attempts} attempts"


class OutcomeKind(Enum):
    """Kind of a single poll outcome."""

    STATUS = auto()
    NOT_FOUND = auto()
    NETWORK_ERROR = auto()
    FAILED = auto()


@dataclass
class PollOutcome:
    """Result of one status query.

    Attributes:
        attempt: 1-based attempt number.
        kind: What happened.
        remote: Status record (STATUS only).
        error: Error message (NETWORK_ERROR and FAILED).
    """

    attempt: int
    kind: OutcomeKind
    remote: RemoteFileStatus | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        """Check if polling must stop at this outcome."""
        if self.kind is OutcomeKind.FAILED:
            return True
        return self.remote is not None and self.remote.is_terminal


async def poll_attempts(
    fetch: Callable[[], Awaitable[RemoteFileStatus]],
    max_attempts: int,
    interval: float,
    sleep: SleepFunc = asyncio.sleep,
) -> AsyncIterator[PollOutcome]:
    """Query status at most `max_attempts` times, `interval` seconds apart.

    Args:
        fetch: Coroutine function returning the current status record.
        max_attempts: Number of queries before giving up.
        interval: Delay between queries, in seconds.
        sleep: Sleep coroutine (injected in tests).

    Yields:
        One PollOutcome per query.
    """
    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            await sleep(interval)
        try:
            remote = await fetch()
        except NotFoundError:
            yield PollOutcome(attempt, OutcomeKind.NOT_FOUND)
        except APIError as e:
            yield PollOutcome(attempt, OutcomeKind.FAILED, error=str(e))
        except httpx.TransportError as e:
            yield PollOutcome(attempt, OutcomeKind.NETWORK_ERROR, error=str(e))
        else:
            yield PollOutcome(attempt, OutcomeKind.STATUS, remote=remote)


class ResultPoller:
    """Waits for a file to reach a final processing status."""

    def __init__(
        self,
        client: ProcessingClient,
        settings: PipelineSettings,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the poller.

        Args:
            client: HTTP client for the service.
            settings: Pipeline settings (interval and attempt cap).
            sleep: Sleep coroutine (injected in tests).
        """
        self._client = client
        self._interval = settings.poll_interval
        self._max_attempts = settings.poll_max_attempts
        self._sleep = sleep

    async def poll(self, file_id: str, token: str | None) -> UploadResult:
        """Poll until completed/error, a hard failure, or the attempt cap.

        Args:
            file_id: Remote file identifier.
            token: Bearer token.

        Returns:
            UploadResult with status COMPLETED or ERROR.
        """
        logger.info(f"Polling for results of {file_id}")

        async def fetch() -> RemoteFileStatus:
            return await self._client.get_file_status(file_id, token)

        async for outcome in poll_attempts(
            fetch, self._max_attempts, self._interval, self._sleep
        ):
            if outcome.kind is OutcomeKind.FAILED:
                logger.error(f"Polling {file_id} failed: {outcome.error}")
                return UploadResult.failure(
                    f"Failed to poll for results: {outcome.error}", file_id=file_id
                )
            if outcome.kind is OutcomeKind.NOT_FOUND:
                logger.debug(f"{file_id} not visible yet (attempt {outcome.attempt})")
                continue
            if outcome.kind is OutcomeKind.NETWORK_ERROR:
                logger.warning(
                    f"Network error polling {file_id} "
                    f"(attempt {outcome.attempt}): {outcome.error}"
                )
                continue

            remote = outcome.remote
            if remote is None:
                continue
            if outcome.is_terminal:
                logger.info(f"{file_id} finished with status {remote.status}")
                return UploadResult.from_remote(remote, file_id)
            logger.debug(f"{file_id} is {remote.status} (attempt {outcome.attempt})")

        logger.error(f"Timed out waiting for {file_id}")
        return UploadResult(
            status=UploadStatus.ERROR,
            error=TIMEOUT_MESSAGE.format(attempts=self._max_attempts),
            file_id=file_id,
            timed_out=True,
        )
