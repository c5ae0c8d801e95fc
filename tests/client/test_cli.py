"""Tests for CLI commands - config, login, share, sync, queue, notes."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from notecompanion.client.cli import cli

SERVER = "http://test"


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def config_dir(tmp_path: Path) -> Iterator[Path]:
    """Point the CLI configuration at a temporary directory."""
    config = tmp_path / ".notecompanion"
    with patch("notecompanion.client.cli.config.get_config_dir", return_value=config):
        yield config
    # Handlers installed by the CLI write to the runner's captured streams
    logging.getLogger("notecompanion").handlers.clear()


@pytest.fixture
def keyring_mock() -> Iterator[MagicMock]:
    """Replace the OS keyring (no token stored)."""
    with patch("notecompanion.client.auth.keyring") as mock_keyring:
        mock_keyring.get_password.return_value = None
        yield mock_keyring


class TestConfigCommand:
    """Tests for 'notecompanion config'."""

    def test_show_defaults(self, runner: CliRunner, config_dir: Path) -> None:
        """Should show the default server without writing a file."""
        result = runner.invoke(cli, ["config"])
        assert result.exit_code == 0
        assert "https://app.notecompanion.ai" in result.output
        assert not (config_dir / "config.json").exists()

    def test_set_server(self, runner: CliRunner, config_dir: Path) -> None:
        """Should persist the server URL."""
        result = runner.invoke(cli, ["config", "--server", "http://localhost:3000/"])
        assert result.exit_code == 0
        saved = json.loads((config_dir / "config.json").read_text())
        assert saved["server_url"] == "http://localhost:3000"
        assert "http://localhost:3000" in result.output


class TestLoginCommands:
    """Tests for 'notecompanion login' and 'logout'."""

    def test_login_stores_token(self, runner: CliRunner, keyring_mock: MagicMock) -> None:
        """Login should save the token in the keyring."""
        result = runner.invoke(cli, ["login", "--token", "tok"])
        assert result.exit_code == 0
        keyring_mock.set_password.assert_called_once_with("notecompanion", "default", "tok")

    def test_login_rejects_blank_token(self, runner: CliRunner, keyring_mock: MagicMock) -> None:
        """Login should refuse an empty token."""
        result = runner.invoke(cli, ["login", "--token", "  "])
        assert result.exit_code == 1
        keyring_mock.set_password.assert_not_called()

    def test_logout(self, runner: CliRunner, keyring_mock: MagicMock) -> None:
        """Logout should remove the stored token."""
        result = runner.invoke(cli, ["logout"])
        assert result.exit_code == 0
        assert "Logged out" in result.output
        keyring_mock.delete_password.assert_called_once()


class TestShareCommand:
    """Tests for 'notecompanion share'."""

    def test_share_text(self, runner: CliRunner) -> None:
        """A text share should complete locally and print its text."""
        result = runner.invoke(
            cli, ["share", "--text", "hello", "--token", "tok", "--server", SERVER]
        )
        assert result.exit_code == 0
        assert "[uploading]" in result.output
        assert "[completed]" in result.output
        assert "hello" in result.output

    def test_share_without_token(self, runner: CliRunner, keyring_mock: MagicMock) -> None:
        """Sharing without a token should fail with an auth error."""
        result = runner.invoke(cli, ["share", "--text", "hello", "--server", SERVER])
        assert result.exit_code == 1
        assert "Authentication required" in result.output

    def test_share_file(self, runner: CliRunner, tmp_path: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A file share should upload, trigger and print the extracted text."""
        source = tmp_path / "scan.pdf"
        source.write_bytes(b"%PDF-1.7")
        httpx_mock.add_response(
            method="POST",
            url=f"{SERVER}/api/upload",
            json={"success": True, "fileId": "f1", "url": "https://blob/scan.pdf"},
        )
        httpx_mock.add_response(method="POST", url=f"{SERVER}/api/process-file")
        httpx_mock.add_response(
            url=f"{SERVER}/api/file-status?fileId=f1",
            json={"status": "completed", "text": "# Scan"},
        )

        result = runner.invoke(
            cli, ["share", str(source), "--token", "tok", "--server", SERVER]
        )

        assert result.exit_code == 0
        assert "# Scan" in result.output
        assert "https://blob/scan.pdf" in result.output

    def test_share_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """Sharing a missing file should fail."""
        result = runner.invoke(
            cli,
            ["share", str(tmp_path / "gone.pdf"), "--token", "tok", "--server", SERVER],
        )
        assert result.exit_code == 1
        assert "File does not exist" in result.output

    def test_share_local_first(self, runner: CliRunner, config_dir: Path) -> None:
        """Local-first should preview, store and then process the share."""
        result = runner.invoke(
            cli,
            ["share", "--text", "hello", "--local-first", "--token", "tok", "--server", SERVER],
        )
        assert result.exit_code == 0
        assert "Preview: hello" in result.output
        assert "Share processed." in result.output
        assert (config_dir / "queue.db").exists()

    def test_share_local_first_without_token(
        self, runner: CliRunner, keyring_mock: MagicMock
    ) -> None:
        """Without a token the share should stay queued."""
        result = runner.invoke(
            cli, ["share", "--text", "hello", "--local-first", "--server", SERVER]
        )
        assert result.exit_code == 1
        assert "kept in queue" in result.output

        queue_result = runner.invoke(cli, ["queue"])
        assert queue_result.exit_code == 0
        assert "Pending: 1" in queue_result.output


class TestSyncCommands:
    """Tests for 'notecompanion sync' and 'queue'."""

    def test_sync_requires_login(self, runner: CliRunner, keyring_mock: MagicMock) -> None:
        """Sync should refuse to run without a token."""
        result = runner.invoke(cli, ["sync", "--server", SERVER])
        assert result.exit_code == 1
        assert "Not logged in" in result.output

    def test_sync_empty_queue(self, runner: CliRunner) -> None:
        """Sync with nothing queued should say so."""
        result = runner.invoke(cli, ["sync", "--token", "tok", "--server", SERVER])
        assert result.exit_code == 0
        assert "Nothing to sync" in result.output

    def test_queue_empty(self, runner: CliRunner) -> None:
        """An empty queue should be reported."""
        result = runner.invoke(cli, ["queue"])
        assert result.exit_code == 0
        assert "Queue is empty." in result.output


class TestNoteCommands:
    """Tests for 'notecompanion notes' and 'delete-note'."""

    def test_notes(self, runner: CliRunner, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should list notes with pagination."""
        httpx_mock.add_response(
            url=f"{SERVER}/api/files?page=1&limit=10",
            json={
                "files": [{"id": "f1", "originalName": "scan.pdf", "status": "completed"}],
                "pagination": {"currentPage": 1, "totalPages": 1, "totalItems": 1},
            },
        )

        result = runner.invoke(cli, ["notes", "--token", "tok", "--server", SERVER])

        assert result.exit_code == 0
        assert "scan.pdf" in result.output
        assert "Page 1/1 (1 notes)" in result.output

    def test_delete_note(self, runner: CliRunner, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should delete the note."""
        httpx_mock.add_response(method="DELETE", url=f"{SERVER}/api/files/f1")

        result = runner.invoke(cli, ["delete-note", "f1", "--token", "tok", "--server", SERVER])

        assert result.exit_code == 0
        assert "Deleted f1" in result.output

    def test_delete_missing_note(self, runner: CliRunner, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Deleting an unknown note should fail."""
        httpx_mock.add_response(
            method="DELETE",
            url=f"{SERVER}/api/files/f1",
            status_code=404,
            json={"error": "File not found"},
        )

        result = runner.invoke(cli, ["delete-note", "f1", "--token", "tok", "--server", SERVER])

        assert result.exit_code == 1
        assert "File not found" in result.output
