"""Remote note commands for the notecompanion CLI.

Commands:
- notes: List processed files
- delete-note: Delete a processed file
"""

from __future__ import annotations

import asyncio
import sys

import click
import httpx

from notecompanion.client.api import APIError, NotesPage, ProcessingClient
from notecompanion.client.cli.auth import token_provider
from notecompanion.client.cli.config import build_settings
from notecompanion.core.config import PipelineSettings


async def fetch_notes(
    settings: PipelineSettings, token: str | None, page: int, limit: int
) -> NotesPage:
    """Fetch one page of processed files."""
    async with ProcessingClient(settings.server) as client:
        return await client.list_files(
            await token_provider(token).get_token(), page=page, limit=limit
        )


async def remove_note(settings: PipelineSettings, token: str | None, file_id: str) -> None:
    """Delete one processed file."""
    async with ProcessingClient(settings.server) as client:
        await client.delete_file(file_id, await token_provider(token).get_token())


@click.command()
@click.option("--page", default=1, type=click.IntRange(min=1), help="Page number.")
@click.option("--limit", default=10, type=click.IntRange(min=1), help="Page size.")
@click.option("--server", envvar="NOTECOMPANION_SERVER_URL", default=None)
@click.option("--token", envvar="NOTECOMPANION_TOKEN", default=None)
def notes(page: int, limit: int, server: str | None, token: str | None) -> None:
    """List processed files, newest first."""
    settings = build_settings(server)
    try:
        result = asyncio.run(fetch_notes(settings, token, page, limit))
    except (APIError, httpx.HTTPError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not result.notes:
        click.echo("No notes.")
        return
    for note in result.notes:
        click.echo(f"{note.id}  {note.status:<10}  {note.name}")
    click.echo(f"\nPage {result.page}/{result.total_pages} ({result.total} notes)")


@click.command(name="delete-note")
@click.argument("file_id")
@click.option("--server", envvar="NOTECOMPANION_SERVER_URL", default=None)
@click.option("--token", envvar="NOTECOMPANION_TOKEN", default=None)
def delete_note(file_id: str, server: str | None, token: str | None) -> None:
    """Delete a processed file."""
    settings = build_settings(server)
    try:
        asyncio.run(remove_note(settings, token, file_id))
    except (APIError, httpx.HTTPError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Deleted {file_id}")
