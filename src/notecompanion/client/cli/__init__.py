"""Command-line interface for notecompanion.

This module provides the main CLI entry point and assembles all commands.

Commands:
- config: Show or update the CLI configuration
- login: Store an API token in the OS keyring
- logout: Remove the stored API token
- share: Send a file or text snippet for processing
- sync: Process shares waiting in the local queue
- queue: List the local queue
- notes: List processed files
- delete-note: Delete a processed file
"""

from __future__ import annotations

from pathlib import Path

import click

from notecompanion.client.cli.auth import login, logout
from notecompanion.client.cli.config import (
    build_settings,
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from notecompanion.client.cli.configure import config_cmd
from notecompanion.client.cli.notes import delete_note, notes
from notecompanion.client.cli.share import share
from notecompanion.client.cli.sync import queue, sync
from notecompanion.client.logs import setup_logging


@click.group()
@click.version_option()
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write logs to this file.",
)
def cli(verbose: bool, log_file: Path | None) -> None:
    """Note Companion - send files and notes for processing."""
    setup_logging(verbose=verbose, log_file=log_file)


# Configuration commands
cli.add_command(config_cmd)
cli.add_command(login)
cli.add_command(logout)

# Share commands
cli.add_command(share)
cli.add_command(sync)
cli.add_command(queue)

# Note commands
cli.add_command(notes)
cli.add_command(delete_note)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "build_settings",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]
