"""Upload of prepared payloads.

This module provides:
- UploadTransport: encodes a payload and submits it to the upload endpoint
"""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from typing import TYPE_CHECKING

import httpx

from notecompanion.client.api import APIError, AuthenticationError, UploadResponse
from notecompanion.client.pipeline.types import PreparedPayload, UploadError

if TYPE_CHECKING:
    from notecompanion.client.api import ProcessingClient

logger = logging.getLogger(__name__)

# MIME types that never need remote extraction when sent as inline text
TEXT_MIME_TYPES = frozenset({"text/plain", "text/markdown"})


def encode_payload(data: bytes) -> str:
    """Binary-safe wire encoding for file content."""
    return base64.b64encode(data).decode("ascii")


class UploadTransport:
    """Transmits a prepared payload and returns the remote file identifier.

    No retry is done here: an upload is not idempotent without a
    deduplication key.
    """

    def __init__(self, client: ProcessingClient) -> None:
        """Initialize the transport.

        Args:
            client: HTTP client for the service.
        """
        self._client = client

    async def send(
        self,
        payload: PreparedPayload,
        token: str | None,
        inline_text: str | None = None,
    ) -> UploadResponse:
        """Upload a payload.

        Args:
            payload: Prepared payload.
            token: Bearer token.
            inline_text: Inline text of the original share, if any.

        Returns:
            UploadResponse with the remote file identifier.

        Raises:
            AuthenticationError: If no token is available or it is rejected.
            UploadError: If the payload cannot be read or the upload fails.
        """
        if payload.mime_type in TEXT_MIME_TYPES and inline_text:
            logger.info(f"Text content for {payload.file_name}, skipping upload")
            return UploadResponse(
                success=True,
                file_id=f"text-{int(time.time() * 1000)}",
                status="processed",
                text=inline_text,
            )

        try:
            data = await asyncio.to_thread(payload.location.read_bytes)
        except OSError as e:
            raise UploadError(f"Could not read {payload.location}: {e}") from e

        logger.info(
            f"Uploading {payload.file_name} ({payload.mime_type}, {len(data)} bytes)"
        )
        try:
            response = await self._client.upload_file(
                name=payload.file_name,
                mime_type=payload.mime_type,
                data_b64=encode_payload(data),
                token=token,
            )
        except AuthenticationError:
            raise
        except APIError as e:
            logger.error(f"Upload of {payload.file_name} failed: {e}")
            raise UploadError(str(e) or "Upload failed") from e
        except httpx.TransportError as e:
            logger.error(f"Upload of {payload.file_name} failed: {e}")
            raise UploadError(f"Upload failed: {e}") from e

        logger.info(f"Uploaded {payload.file_name} as {response.file_id}")
        return response
