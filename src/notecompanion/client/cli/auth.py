"""Credential commands for the notecompanion CLI.

Commands:
- login: Store a bearer token in the OS keyring
- logout: Remove the stored token
"""

from __future__ import annotations

import sys

import click
from keyring.errors import KeyringError

from notecompanion.client.auth import (
    KeyringTokenProvider,
    StaticTokenProvider,
    TokenProvider,
)


def token_provider(token: str | None) -> TokenProvider:
    """Token given on the command line, else the one stored by `login`."""
    if token:
        return StaticTokenProvider(token)
    return KeyringTokenProvider()


@click.command()
@click.option(
    "--token",
    prompt="API token",
    hide_input=True,
    help="API token from the Note Companion dashboard.",
)
def login(token: str) -> None:
    """Store an API token in the OS keyring."""
    token = token.strip()
    if not token:
        click.echo("Error: Token must not be empty.", err=True)
        sys.exit(1)
    try:
        KeyringTokenProvider().store(token)
    except KeyringError as e:
        click.echo(f"Error: Could not store token: {e}", err=True)
        sys.exit(1)
    click.echo("Token stored.")


@click.command()
def logout() -> None:
    """Remove the stored API token."""
    if KeyringTokenProvider().clear():
        click.echo("Logged out.")
    else:
        click.echo("No stored token.")
