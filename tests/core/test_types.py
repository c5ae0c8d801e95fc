"""Tests for core status types."""

from __future__ import annotations

from notecompanion.core.types import UploadStatus


class TestUploadStatus:
    """Tests for UploadStatus enum."""

    def test_values(self) -> None:
        """Status values should match the strings presentation code uses."""
        assert [s.value for s in UploadStatus] == [
            "idle",
            "uploading",
            "processing",
            "completed",
            "error",
        ]

    def test_progress_order(self) -> None:
        """Progress should follow idle < uploading < processing < completed."""
        assert UploadStatus.IDLE.progress < UploadStatus.UPLOADING.progress
        assert UploadStatus.UPLOADING.progress < UploadStatus.PROCESSING.progress
        assert UploadStatus.PROCESSING.progress < UploadStatus.COMPLETED.progress
        assert UploadStatus.ERROR.progress == -1

    def test_terminal_states(self) -> None:
        """Only completed and error should be terminal."""
        terminal = {s for s in UploadStatus if s.is_terminal}
        assert terminal == {UploadStatus.COMPLETED, UploadStatus.ERROR}

    def test_string_comparison(self) -> None:
        """Statuses should compare equal to their string value."""
        assert UploadStatus.COMPLETED == "completed"
