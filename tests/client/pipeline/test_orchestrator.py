"""Tests for the pipeline orchestrator."""

from __future__ import annotations

import asyncio
import base64
import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from notecompanion.client.api import ExtractedContent, ProcessingClient
from notecompanion.client.pipeline.orchestrator import (
    PipelineOrchestrator,
    strip_duplicate_image_references,
)
from notecompanion.client.pipeline.types import SharedFile, StatusEvent
from notecompanion.core.config import PipelineSettings
from notecompanion.core.types import UploadStatus

UPLOAD_URL = "http://test/api/upload"
PROCESS_URL = "http://test/api/process-file"
STATUS_URL = "http://test/api/file-status?fileId=f1"


@pytest.fixture
def orchestrator(
    client: ProcessingClient, settings: PipelineSettings, sleep: AsyncMock
) -> PipelineOrchestrator:
    """Orchestrator with mocked sleep."""
    return PipelineOrchestrator(client, settings, sleep=sleep)


@pytest.fixture
def pdf_share(tmp_path: Path) -> SharedFile:
    """A PDF file shared by reference."""
    source = tmp_path / "scan.pdf"
    source.write_bytes(b"%PDF-1.7")
    return SharedFile(uri=source.as_uri(), name="scan.pdf")


class TestStripDuplicateImageReferences:
    """Tests for strip_duplicate_image_references."""

    def test_removes_standard_reference(self) -> None:
        """A standard embed of a wiki-embedded file should be dropped."""
        text = "![[photo.png]]\n\n\n![photo](https://blob/photo.png)\n\nBody text"
        assert (
            strip_duplicate_image_references(text, "photo.png")
            == "![[photo.png]]\n\nBody text"
        )

    def test_keeps_text_without_wiki_embed(self) -> None:
        """Without a wiki embed the text should be returned unchanged."""
        text = "![photo](https://blob/photo.png)\n\n\n\nBody"
        assert strip_duplicate_image_references(text, "photo.png") == text

    def test_keeps_other_images(self) -> None:
        """References to other files should be kept."""
        text = "![[photo.png]]\n![other](https://blob/other.png)"
        assert "other.png" in strip_duplicate_image_references(text, "photo.png")

    def test_filename_is_literal(self) -> None:
        """Regex characters in the filename should match literally."""
        text = "![[scan (1).png]]\n![x](https://blob/scan (1).png)"
        assert strip_duplicate_image_references(text, "scan (1).png") == "![[scan (1).png]]"


class TestPipelineOrchestrator:
    """Tests for PipelineOrchestrator.run."""

    @pytest.mark.asyncio
    async def test_text_share_end_to_end(
        self, orchestrator: PipelineOrchestrator, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """An inline text share should complete locally with its text."""
        statuses: list[UploadStatus] = []

        with patch("notecompanion.client.pipeline.transport.encode_payload") as encode:
            result = await orchestrator.run(
                SharedFile(uri="file:///tmp/a.txt", text="hello"),
                "tok",
                on_status_change=statuses.append,
            )

        encode.assert_not_called()
        assert result.status is UploadStatus.COMPLETED
        assert result.text == "hello"
        assert isinstance(result.file_id, str)
        assert statuses == [
            UploadStatus.UPLOADING,
            UploadStatus.PROCESSING,
            UploadStatus.COMPLETED,
        ]
        assert httpx_mock.get_requests() == []

    @pytest.mark.asyncio
    async def test_binary_share_end_to_end(
        self, orchestrator: PipelineOrchestrator, pdf_share: SharedFile, sleep: AsyncMock, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """A file share should go through upload, trigger and poll."""
        httpx_mock.add_response(
            method="POST",
            url=UPLOAD_URL,
            json={"success": True, "fileId": "f1", "status": "uploaded", "url": "https://blob/scan.pdf"},
        )
        httpx_mock.add_response(method="POST", url=PROCESS_URL, json={"success": True})
        httpx_mock.add_response(url=STATUS_URL, status_code=404)
        httpx_mock.add_response(url=STATUS_URL, status_code=404)
        httpx_mock.add_response(url=STATUS_URL, json={"status": "completed", "text": "# Scan"})
        statuses: list[UploadStatus] = []

        result = await orchestrator.run(pdf_share, "tok", on_status_change=statuses.append)

        assert result.ok
        assert result.text == "# Scan"
        assert result.file_id == "f1"
        assert result.url == "https://blob/scan.pdf"
        assert statuses == [
            UploadStatus.UPLOADING,
            UploadStatus.PROCESSING,
            UploadStatus.COMPLETED,
        ]
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_token(
        self, orchestrator: PipelineOrchestrator, settings: PipelineSettings, pdf_share: SharedFile
    ) -> None:
        """Without a token the run should fail before any stage."""
        statuses: list[UploadStatus] = []

        result = await orchestrator.run(pdf_share, None, on_status_change=statuses.append)

        assert result.status is UploadStatus.ERROR
        assert result.error == "Authentication required"
        assert statuses == [UploadStatus.ERROR]
        assert not settings.staging_dir.exists()

    @pytest.mark.asyncio
    async def test_missing_file_id(
        self, orchestrator: PipelineOrchestrator, pdf_share: SharedFile, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """An upload without fileId should fail after entering processing."""
        httpx_mock.add_response(method="POST", url=UPLOAD_URL, json={"success": True})
        statuses: list[UploadStatus] = []

        result = await orchestrator.run(pdf_share, "tok", on_status_change=statuses.append)

        assert result.error == "No file ID returned from upload"
        assert statuses == [
            UploadStatus.UPLOADING,
            UploadStatus.PROCESSING,
            UploadStatus.ERROR,
        ]

    @pytest.mark.asyncio
    async def test_upload_error_message(
        self, orchestrator: PipelineOrchestrator, pdf_share: SharedFile, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """The server's upload error should reach the result unchanged."""
        httpx_mock.add_response(
            method="POST", url=UPLOAD_URL, status_code=413, json={"error": "File too large"}
        )
        statuses: list[UploadStatus] = []

        result = await orchestrator.run(pdf_share, "tok", on_status_change=statuses.append)

        assert result.error == "File too large"
        assert result.file_id is None
        assert statuses == [UploadStatus.UPLOADING, UploadStatus.ERROR]

    @pytest.mark.asyncio
    async def test_upload_html_body(
        self, orchestrator: PipelineOrchestrator, pdf_share: SharedFile, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """A non-JSON upload answer should end the run with an error result."""
        httpx_mock.add_response(method="POST", url=UPLOAD_URL, text="<html>login</html>")
        statuses: list[UploadStatus] = []

        result = await orchestrator.run(pdf_share, "tok", on_status_change=statuses.append)

        assert result.status is UploadStatus.ERROR
        assert result.error == "Unexpected response from server"
        assert statuses == [UploadStatus.UPLOADING, UploadStatus.ERROR]

    @pytest.mark.asyncio
    async def test_status_list_body(
        self, orchestrator: PipelineOrchestrator, pdf_share: SharedFile, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """A status answer that is not an object should stop polling with an error."""
        httpx_mock.add_response(
            method="POST", url=UPLOAD_URL, json={"success": True, "fileId": "f1"}
        )
        httpx_mock.add_response(method="POST", url=PROCESS_URL, json={"success": True})
        httpx_mock.add_response(url=STATUS_URL, json=[])
        statuses: list[UploadStatus] = []

        result = await orchestrator.run(pdf_share, "tok", on_status_change=statuses.append)

        assert result.error == "Failed to poll for results: Unexpected response from server"
        assert result.file_id == "f1"
        assert statuses == [
            UploadStatus.UPLOADING,
            UploadStatus.PROCESSING,
            UploadStatus.ERROR,
        ]

    @pytest.mark.asyncio
    async def test_failing_status_callback(
        self, orchestrator: PipelineOrchestrator, pdf_share: SharedFile, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """A raising status callback should not break the run or hide its error."""
        httpx_mock.add_response(
            method="POST", url=UPLOAD_URL, status_code=413, json={"error": "File too large"}
        )
        events: list[StatusEvent] = []
        orchestrator.add_listener(events.append)

        def broken(status: UploadStatus) -> None:
            raise RuntimeError("callback bug")

        result = await orchestrator.run(pdf_share, "tok", on_status_change=broken)

        assert result.error == "File too large"
        assert [e.status for e in events] == [UploadStatus.UPLOADING, UploadStatus.ERROR]

    @pytest.mark.asyncio
    async def test_concurrent_text_shares_keep_content(
        self, orchestrator: PipelineOrchestrator, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """Concurrent runs with the same name should each upload their own text."""
        for _ in range(2):
            httpx_mock.add_response(
                method="POST", url=UPLOAD_URL, json={"success": True, "fileId": "f1"}
            )
            httpx_mock.add_response(method="POST", url=PROCESS_URL, json={"success": True})
            httpx_mock.add_response(url=STATUS_URL, json={"status": "completed", "text": "ok"})

        results = await asyncio.gather(
            orchestrator.run(
                SharedFile(uri="note.json", name="note.json", mime_type="application/json", text="AAA"),
                "tok",
            ),
            orchestrator.run(
                SharedFile(uri="note.json", name="note.json", mime_type="application/json", text="BBB"),
                "tok",
            ),
        )

        assert all(r.ok for r in results)
        uploads = [
            json.loads(request.content)
            for request in httpx_mock.get_requests(url=UPLOAD_URL)
        ]
        assert sorted(base64.b64decode(u["base64"]).decode() for u in uploads) == ["AAA", "BBB"]
        assert {u["name"] for u in uploads} == {"note.json"}

    @pytest.mark.asyncio
    async def test_missing_file(
        self, orchestrator: PipelineOrchestrator, tmp_path: Path
    ) -> None:
        """A share pointing at nothing should fail in preparation."""
        missing = tmp_path / "gone.pdf"

        result = await orchestrator.run(SharedFile(uri=missing.as_uri()), "tok")

        assert result.status is UploadStatus.ERROR
        assert result.error is not None
        assert "File does not exist" in result.error

    @pytest.mark.asyncio
    async def test_trigger_refused(
        self, orchestrator: PipelineOrchestrator, pdf_share: SharedFile, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """A refused trigger should fail the run and keep the file id."""
        httpx_mock.add_response(
            method="POST", url=UPLOAD_URL, json={"success": True, "fileId": "f1"}
        )
        httpx_mock.add_response(
            method="POST", url=PROCESS_URL, status_code=400, json={"error": "Unsupported file"}
        )

        result = await orchestrator.run(pdf_share, "tok")

        assert result.error == "Unsupported file"
        assert result.file_id == "f1"

    @pytest.mark.asyncio
    async def test_poll_timeout(
        self,
        orchestrator: PipelineOrchestrator,
        settings: PipelineSettings,
        pdf_share: SharedFile,
        httpx_mock,  # type: ignore[no-untyped-def]
    ) -> None:
        """A poll timeout should surface as an error result."""
        httpx_mock.add_response(
            method="POST", url=UPLOAD_URL, json={"success": True, "fileId": "f1"}
        )
        httpx_mock.add_response(method="POST", url=PROCESS_URL, json={"success": True})
        for _ in range(settings.poll_max_attempts):
            httpx_mock.add_response(url=STATUS_URL, json={"status": "processing"})
        events: list[StatusEvent] = []
        orchestrator.add_listener(events.append)

        result = await orchestrator.run(pdf_share, "tok")

        assert result.timed_out
        assert events[-1].status is UploadStatus.ERROR
        assert events[-1].error == "Processing timeout: no result after 5 attempts"

    @pytest.mark.asyncio
    async def test_duplicate_image_reference_removed(
        self, orchestrator: PipelineOrchestrator, tmp_path: Path, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """Completed text should be cleaned of duplicate image embeds."""
        source = tmp_path / "photo.png"
        source.write_bytes(b"\x89PNG")
        httpx_mock.add_response(
            method="POST", url=UPLOAD_URL, json={"success": True, "fileId": "f1"}
        )
        httpx_mock.add_response(method="POST", url=PROCESS_URL, json={"success": True})
        httpx_mock.add_response(
            url=STATUS_URL,
            json={
                "status": "completed",
                "text": {
                    "extractedText": "![[photo.png]]\n\n\n![img](https://blob/photo.png)\n\nText",
                },
            },
        )

        result = await orchestrator.run(SharedFile(uri=source.as_uri(), name="photo.png"), "tok")

        assert isinstance(result.text, ExtractedContent)
        assert result.plain_text == "![[photo.png]]\n\nText"

    @pytest.mark.asyncio
    async def test_listeners(
        self, orchestrator: PipelineOrchestrator, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """Listeners should see every transition and a failing one is ignored."""
        events: list[StatusEvent] = []

        def broken(event: StatusEvent) -> None:
            raise RuntimeError("listener bug")

        orchestrator.add_listener(broken)
        orchestrator.add_listener(events.append)

        result = await orchestrator.run(SharedFile(uri="a.txt", name="a.txt", text="hi"), "tok")

        assert result.ok
        assert [e.status for e in events] == [
            UploadStatus.UPLOADING,
            UploadStatus.PROCESSING,
            UploadStatus.COMPLETED,
        ]
        assert all(e.file_name == "a.txt" for e in events)

        orchestrator.remove_listener(events.append)
        await orchestrator.run(SharedFile(uri="a.txt", name="a.txt", text="hi"), "tok")
        assert len(events) == 3
