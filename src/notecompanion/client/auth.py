"""Bearer token providers.

This module provides:
- TokenProvider: Protocol for on-demand token retrieval
- StaticTokenProvider: Fixed token (tests, scripts)
- KeyringTokenProvider: Token cached in the OS keyring
- require_token: Turn a missing token into an AuthenticationError
"""

from __future__ import annotations

import logging
from typing import Protocol

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "notecompanion"
DEFAULT_ACCOUNT = "default"


class TokenProvider(Protocol):
    """Supplies a bearer token on demand (may return None)."""

    async def get_token(self) -> str | None:
        """Return the current token, or None if signed out."""
        ...


class StaticTokenProvider:
    """Token provider returning a fixed value."""

    def __init__(self, token: str | None) -> None:
        self._token = token

    async def get_token(self) -> str | None:
        """Return the configured token."""
        return self._token


class KeyringTokenProvider:
    """Token provider backed by the OS keyring."""

    def __init__(self, account: str = DEFAULT_ACCOUNT) -> None:
        self._account = account

    async def get_token(self) -> str | None:
        """Read the token from the keyring.

        Backend errors are logged and reported as "no token".
        """
        try:
            return keyring.get_password(KEYRING_SERVICE, self._account)
        except KeyringError as e:
            logger.warning(f"Could not read token from keyring: {e}")
            return None

    def store(self, token: str) -> None:
        """Save a token in the keyring."""
        keyring.set_password(KEYRING_SERVICE, self._account, token)

    def clear(self) -> bool:
        """Remove the stored token.

        Returns:
            True if a token was removed.
        """
        try:
            keyring.delete_password(KEYRING_SERVICE, self._account)
        except PasswordDeleteError:
            return False
        return True


def require_token(token: str | None) -> str:
    """Return the token or fail with an authentication error.

    Args:
        token: Token returned by a provider.

    Returns:
        The non-empty token.

    Raises:
        AuthenticationError: If the token is missing or empty.
    """
    # Import here to avoid circular import (api imports this module)
    from notecompanion.client.api import AuthenticationError

    if not token:
        raise AuthenticationError("Authentication required")
    return token
