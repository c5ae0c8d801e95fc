"""HTTP client for the Note Companion service API.

This module provides:
- ProcessingClient: async HTTP client for communicating with the service
- UploadResponse, RemoteFileStatus, ExtractedContent: response records
- Upload, trigger-processing and status-query operations used by the pipeline
- Note listing and deletion
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from notecompanion.client.auth import require_token
from notecompanion.core.config import ServerConfig
from notecompanion.core.types import UploadStatus

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        """Check if the error is worth retrying (5xx or 429)."""
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500


class AuthenticationError(APIError):
    """Authentication failed or no token available."""


class NotFoundError(APIError):
    """Resource not found."""


def _error_message(response: httpx.Response, default: str) -> str:
    """Extract the server's error message from a response body."""
    try:
        data = response.json()
    except ValueError:
        return default
    if isinstance(data, dict):
        for key in ("error", "detail", "message"):
            if data.get(key):
                return str(data[key])
    return default


@dataclass
class UploadResponse:
    """Result of the upload stage.

    Attributes:
        success: Whether the service accepted the upload.
        file_id: Remote identifier (None if the service returned none).
        status: Server-side status after upload (e.g. "uploaded").
        url: Remote location of the stored artifact.
        text: Inline text when the upload was short-circuited locally.
    """

    success: bool
    file_id: str | None
    status: str
    url: str | None = None
    text: str | None = None

    @property
    def is_local(self) -> bool:
        """Check if this response was synthesized without a network call."""
        return self.text is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UploadResponse:
        """Create from API response dictionary."""
        file_id = data.get("fileId")
        return cls(
            success=bool(data.get("success", False)),
            file_id=str(file_id) if file_id not in (None, "") else None,
            status=data.get("status", ""),
            url=data.get("url"),
        )


@dataclass
class ExtractedContent:
    """Structured processing output."""

    extracted_text: str | None = None
    visual_elements: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtractedContent:
        """Create from API response dictionary."""
        return cls(
            extracted_text=data.get("extractedText"),
            visual_elements=data.get("visualElements"),
        )


# Processing output is either plain text or a structured object
ResultText = str | ExtractedContent


def parse_result_text(raw: Any) -> ResultText | None:
    """Parse the `text` field of a status response."""
    if raw is None:
        return None
    if isinstance(raw, dict):
        return ExtractedContent.from_dict(raw)
    return str(raw)


@dataclass
class RemoteFileStatus:
    """Status record for a remote file, as reported by the service.

    The server drives `uploaded -> processing -> completed|error`; the
    client only reads it.
    """

    status: str
    text: ResultText | None = None
    error: str | None = None
    url: str | None = None

    @property
    def is_terminal(self) -> bool:
        """Check if the server reports a final status."""
        return self.status in (UploadStatus.COMPLETED.value, UploadStatus.ERROR.value)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteFileStatus:
        """Create from API response dictionary."""
        return cls(
            status=str(data.get("status", "")),
            text=parse_result_text(data.get("text")),
            error=data.get("error"),
            url=data.get("url"),
        )


@dataclass
class RemoteNote:
    """Processed file as listed by the service."""

    id: str
    name: str
    mime_type: str | None
    status: str
    url: str | None
    created_at: str | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteNote:
        """Create from API response dictionary."""
        return cls(
            id=str(data["id"]),
            name=data.get("originalName") or data.get("name") or "",
            mime_type=data.get("fileType") or data.get("mimeType"),
            status=data.get("status", ""),
            url=data.get("blobUrl") or data.get("url"),
            created_at=data.get("createdAt"),
        )


@dataclass
class NotesPage:
    """One page of the note listing."""

    notes: list[RemoteNote]
    page: int
    total_pages: int
    total: int

    @property
    def has_more(self) -> bool:
        """Check if more pages follow this one."""
        return self.page < self.total_pages


class ProcessingClient:
    """Async HTTP client for the Note Companion service.

    The bearer token is passed per call: it is obtained on demand from a
    token provider and may change between calls.
    """

    def __init__(
        self,
        config: ServerConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Server configuration with URL, timeout and SSL settings.
            transport: Optional httpx transport (tests, proxies).
        """
        self._client = httpx.AsyncClient(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> ProcessingClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Context manager exit."""
        await self.aclose()

    @staticmethod
    def _auth_headers(token: str | None) -> dict[str, str]:
        """Build the Authorization header, failing when no token is available."""
        return {"Authorization": f"Bearer {require_token(token)}"}

    def _handle_response(
        self, response: httpx.Response, default_error: str
    ) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError(
                _error_message(response, "Invalid or expired token"), 401
            )
        if response.status_code == 404:
            raise NotFoundError(_error_message(response, "Resource not found"), 404)
        if response.status_code >= 400:
            raise APIError(
                _error_message(response, default_error), response.status_code
            )
        return response

    def _json_object(
        self, response: httpx.Response, default_error: str
    ) -> dict[str, Any]:
        """Handle API response and decode its JSON object body.

        A success status with a body that is not a JSON object (proxy
        login page, truncated body, list) raises APIError like any other
        failed call.
        """
        self._handle_response(response, default_error)
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error(
                f"Unexpected response body from {response.request.url}: "
                f"{response.text[:100]!r}"
            )
            raise APIError(
                "Unexpected response from server",
                response.status_code,
            )
        return data

    # === Health check ===

    async def health_check(self) -> bool:
        """Check if the service is reachable.

        Returns:
            True if service is healthy.
        """
        try:
            response = await self._client.get("/api/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Pipeline operations ===

    async def upload_file(
        self,
        name: str,
        mime_type: str,
        data_b64: str,
        token: str | None,
    ) -> UploadResponse:
        """Upload base64-encoded file content.

        Not retried: the endpoint has no deduplication key.

        Args:
            name: Filename to store.
            mime_type: MIME type of the content.
            data_b64: Base64-encoded file bytes.
            token: Bearer token.

        Returns:
            Upload response with the remote file identifier.

        Raises:
            AuthenticationError: If no token is available or it is rejected.
            APIError: For any other non-success status.
        """
        data = self._json_object(
            await self._client.post(
                "/api/upload",
                json={"name": name, "type": mime_type, "base64": data_b64},
                headers=self._auth_headers(token),
            ),
            "Upload failed",
        )
        return UploadResponse.from_dict(data)

    async def trigger_processing(self, file_id: str, token: str | None) -> None:
        """Ask the service to start analysing an uploaded file.

        Safe to repeat for the same file_id.

        Args:
            file_id: Remote file identifier.
            token: Bearer token.
        """
        self._handle_response(
            await self._client.post(
                "/api/process-file",
                json={"fileId": file_id},
                headers=self._auth_headers(token),
            ),
            "Failed to process file",
        )

    async def get_file_status(
        self, file_id: str, token: str | None
    ) -> RemoteFileStatus:
        """Query the processing status of a file.

        Args:
            file_id: Remote file identifier.
            token: Bearer token.

        Returns:
            Current status record.

        Raises:
            NotFoundError: If the record is not visible (yet).
        """
        data = self._json_object(
            await self._client.get(
                "/api/file-status",
                params={"fileId": file_id},
                headers=self._auth_headers(token),
            ),
            "Failed to poll for results",
        )
        return RemoteFileStatus.from_dict(data)

    # === Note operations ===

    async def list_files(
        self,
        token: str | None,
        page: int = 1,
        limit: int = 10,
    ) -> NotesPage:
        """List processed files, newest first.

        Args:
            token: Bearer token.
            page: 1-based page number.
            limit: Page size.

        Returns:
            One page of notes with pagination data.
        """
        data = self._json_object(
            await self._client.get(
                "/api/files",
                params={"page": str(page), "limit": str(limit)},
                headers=self._auth_headers(token),
            ),
            "Failed to fetch files",
        )
        pagination = data.get("pagination", {})
        notes = [RemoteNote.from_dict(f) for f in data.get("files", [])]
        return NotesPage(
            notes=notes,
            page=int(pagination.get("currentPage", page)),
            total_pages=int(pagination.get("totalPages", 1)),
            total=int(pagination.get("totalItems", len(notes))),
        )

    async def delete_file(self, file_id: str, token: str | None) -> None:
        """Delete a processed file.

        Args:
            file_id: Remote file identifier.
            token: Bearer token.
        """
        self._handle_response(
            await self._client.delete(
                f"/api/files/{file_id}",
                headers=self._auth_headers(token),
            ),
            "Failed to delete file",
        )
