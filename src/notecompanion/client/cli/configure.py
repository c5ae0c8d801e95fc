"""Configuration command for the notecompanion CLI.

Commands:
- config: Show or update the CLI configuration
"""

from __future__ import annotations

from pathlib import Path

import click

from notecompanion.client.cli.config import (
    DEFAULT_SERVER_URL,
    get_config_file,
    get_data_dir,
    load_config,
    save_config,
)


@click.command(name="config")
@click.option("--server", default=None, help="Server URL to use from now on.")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for locally stored shares and the sync queue.",
)
def config_cmd(server: str | None, data_dir: Path | None) -> None:
    """Show or update the CLI configuration."""
    config = load_config()
    if server:
        config["server_url"] = server.rstrip("/")
    if data_dir:
        config["data_dir"] = str(data_dir.expanduser().resolve())
    if server or data_dir:
        save_config(config)
        click.echo(f"Saved {get_config_file()}")

    click.echo(f"Server: {config.get('server_url', DEFAULT_SERVER_URL)}")
    click.echo(f"Data directory: {get_data_dir()}")
