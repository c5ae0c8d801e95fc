"""Start server-side processing of an uploaded file.

This module provides:
- is_transient_error: Retry classification for trigger failures
- ProcessingTrigger: Requests processing with exponential backoff
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx

from notecompanion.client.api import APIError, AuthenticationError
from notecompanion.client.pipeline.retry import retry_with_backoff
from notecompanion.client.pipeline.types import SleepFunc, TriggerError

if TYPE_CHECKING:
    from notecompanion.client.api import ProcessingClient
    from notecompanion.core.config import PipelineSettings

logger = logging.getLogger(__name__)


def is_transient_error(error: Exception) -> bool:
    """Check if a trigger failure is worth retrying.

    5xx, 429 and network-level failures are transient. Authentication
    errors and other 4xx responses are not.
    """
    if isinstance(error, AuthenticationError):
        return False
    if isinstance(error, APIError):
        return error.is_transient
    return isinstance(error, httpx.TransportError)


class ProcessingTrigger:
    """Asks the service to begin analysing an uploaded file.

    Re-triggering the same file_id is safe on the server, which is what
    allows retrying this stage.
    """

    def __init__(
        self,
        client: ProcessingClient,
        settings: PipelineSettings,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the trigger.

        Args:
            client: HTTP client for the service.
            settings: Pipeline settings (retry cap and base delay).
            sleep: Sleep coroutine (injected in tests).
        """
        self._client = client
        self._max_attempts = settings.trigger_max_retries
        self._base_delay = settings.trigger_base_delay
        self._sleep = sleep

    async def trigger(self, file_id: str, token: str | None) -> None:
        """Request processing, retrying transient failures.

        Args:
            file_id: Remote file identifier.
            token: Bearer token.

        Raises:
            AuthenticationError: If no token is available or it is rejected.
            TriggerError: If the service refuses with a non-retryable status.
            APIError, httpx.TransportError: The last transient error once
                attempts are exhausted.
        """
        logger.info(f"Requesting processing of {file_id}")

        async def do_trigger() -> None:
            await self._client.trigger_processing(file_id, token)

        try:
            await retry_with_backoff(
                do_trigger,
                should_retry=is_transient_error,
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                sleep=self._sleep,
                description=f"process-file {file_id}",
            )
        except AuthenticationError:
            raise
        except APIError as e:
            if e.is_transient:
                raise
            logger.error(f"Processing of {file_id} refused: {e}")
            raise TriggerError(str(e)) from e

        logger.info(f"Processing requested for {file_id}")
