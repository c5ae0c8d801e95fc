"""Turn a SharedFile into a concrete local payload.

This module provides:
- resolve_file_name / resolve_mime_type: filename and MIME policy
- uri_to_path: file:// URI normalization for the current platform
- FilePreparator: materializes inline text and checks the file exists
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from notecompanion.client.pipeline.types import (
    PreparationError,
    PreparedPayload,
    SharedFile,
)

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
PDF_MIME_TYPE = "application/pdf"

# Extension -> MIME type used when the share carries no MIME type
EXTENSION_MIME_TYPES: dict[str, str] = {
    "pdf": PDF_MIME_TYPE,
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "heic": "image/heic",
    "txt": "text/plain",
    "md": "text/markdown",
    "markdown": "text/markdown",
}

# Image extensions whose MIME type wins over mismatched declared metadata
IMAGE_MIME_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "heic": "image/heic",
}

FALLBACK_EXTENSION = "file"


def uri_extension(uri: str) -> str:
    """Lower-cased extension of the path a URI points to ("" if none)."""
    path = urlparse(uri).path if "://" in uri else uri
    return PurePosixPath(unquote(path)).suffix.lstrip(".").lower()


def resolve_file_name(shared: SharedFile, now_ms: int | None = None) -> str:
    """Use the declared name or synthesize `shared-<timestamp>.<ext>`.

    The extension comes from the declared MIME subtype, else the URI's
    extension, else the literal token "file".
    """
    if shared.name:
        return shared.name
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    ext = ""
    if shared.mime_type and "/" in shared.mime_type:
        ext = shared.mime_type.split("/", 1)[1]
    ext = ext or uri_extension(shared.uri) or FALLBACK_EXTENSION
    return f"shared-{now_ms}.{ext}"


def resolve_mime_type(shared: SharedFile) -> str:
    """Resolve the MIME type of a share.

    - The declared type wins, otherwise infer from the URI extension.
    - Anything mentioning PDF becomes exactly application/pdf.
    - An image extension overrides a non-image MIME type.
    """
    extension = uri_extension(shared.uri)
    mime_type = shared.mime_type or EXTENSION_MIME_TYPES.get(
        extension, DEFAULT_MIME_TYPE
    )

    if "pdf" in mime_type.lower():
        mime_type = PDF_MIME_TYPE

    if extension in IMAGE_MIME_TYPES and not mime_type.startswith("image/"):
        corrected = IMAGE_MIME_TYPES[extension]
        logger.debug(
            f"Overriding MIME type {mime_type} with {corrected} for {shared.uri}"
        )
        mime_type = corrected

    return mime_type


def uri_to_path(uri: str) -> Path:
    """Convert a file:// URI (or plain path) to a local path.

    Raises:
        PreparationError: If the URI uses a scheme that is not a local file.
    """
    if "://" not in uri:
        return Path(uri)
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        raise PreparationError(f"Unsupported URI scheme: {parsed.scheme}")
    return Path(url2pathname(unquote(parsed.path)))


class FilePreparator:
    """Produces a PreparedPayload from a SharedFile.

    Inline text is written to `staging_dir/<unique prefix>-<file name>`, so
    concurrent runs sharing a name never overwrite each other. At most one
    file is created per call and existing files are never deleted.
    """

    def __init__(self, staging_dir: Path) -> None:
        """Initialize the preparator.

        Args:
            staging_dir: Directory where inline text is materialized.
        """
        self._staging_dir = staging_dir

    def prepare(self, shared: SharedFile) -> PreparedPayload:
        """Normalize a share into a payload.

        Args:
            shared: The incoming share.

        Returns:
            Payload with resolved filename, MIME type and location.

        Raises:
            PreparationError: If the file does not exist or the URI is unusable.
        """
        if not shared.uri:
            raise PreparationError("Shared file is missing its uri")

        file_name = resolve_file_name(shared)
        mime_type = resolve_mime_type(shared)

        if shared.text:
            location = self._materialize_text(file_name, shared.text)
        else:
            location = uri_to_path(shared.uri)
            if not location.exists():
                raise PreparationError(f"File does not exist: {location}")

        logger.debug(f"Prepared {file_name} ({mime_type}) at {location}")
        return PreparedPayload(
            file_name=file_name,
            mime_type=mime_type,
            location=location,
        )

    def _materialize_text(self, file_name: str, text: str) -> Path:
        """Write inline text to the staging directory."""
        # Names may carry path segments from the share source
        base_name = PurePosixPath(file_name).name
        location = self._staging_dir / f"{uuid.uuid4().hex}-{base_name}"
        try:
            self._staging_dir.mkdir(parents=True, exist_ok=True)
            location.write_text(text, encoding="utf-8")
        except OSError as e:
            raise PreparationError(f"Could not stage text content: {e}") from e
        return location
