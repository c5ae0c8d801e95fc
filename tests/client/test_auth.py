"""Tests for bearer token providers."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from keyring.errors import KeyringError, PasswordDeleteError

from notecompanion.client.api import AuthenticationError
from notecompanion.client.auth import (
    KEYRING_SERVICE,
    KeyringTokenProvider,
    StaticTokenProvider,
    require_token,
)


class TestRequireToken:
    """Tests for require_token."""

    def test_returns_token(self) -> None:
        """Should pass a present token through."""
        assert require_token("tok") == "tok"

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, token: str | None) -> None:
        """Should fail hard on a missing or empty token."""
        with pytest.raises(AuthenticationError, match="Authentication required"):
            require_token(token)


class TestStaticTokenProvider:
    """Tests for StaticTokenProvider."""

    @pytest.mark.asyncio
    async def test_get_token(self) -> None:
        """Should return the configured token."""
        assert await StaticTokenProvider("tok").get_token() == "tok"
        assert await StaticTokenProvider(None).get_token() is None


class TestKeyringTokenProvider:
    """Tests for KeyringTokenProvider."""

    @pytest.mark.asyncio
    async def test_get_token(self) -> None:
        """Should read the token for the account from the keyring."""
        with patch("notecompanion.client.auth.keyring") as mock_keyring:
            mock_keyring.get_password.return_value = "tok"
            token = await KeyringTokenProvider("me").get_token()

        assert token == "tok"
        mock_keyring.get_password.assert_called_once_with(KEYRING_SERVICE, "me")

    @pytest.mark.asyncio
    async def test_backend_error_means_no_token(self) -> None:
        """Keyring failures should be reported as a missing token."""
        with patch("notecompanion.client.auth.keyring") as mock_keyring:
            mock_keyring.get_password.side_effect = KeyringError("locked")
            assert await KeyringTokenProvider().get_token() is None

    def test_store(self) -> None:
        """Should save the token under the service name."""
        with patch("notecompanion.client.auth.keyring") as mock_keyring:
            KeyringTokenProvider().store("tok")
        mock_keyring.set_password.assert_called_once_with(KEYRING_SERVICE, "default", "tok")

    def test_clear(self) -> None:
        """Should report whether a token was removed."""
        with patch("notecompanion.client.auth.keyring") as mock_keyring:
            assert KeyringTokenProvider().clear() is True
            mock_keyring.delete_password.side_effect = PasswordDeleteError("none")
            assert KeyringTokenProvider().clear() is False
