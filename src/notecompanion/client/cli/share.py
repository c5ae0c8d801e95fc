"""Share command for the notecompanion CLI.

Commands:
- share: Send a file or a text snippet for processing
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from notecompanion.client.api import ProcessingClient
from notecompanion.client.cli.auth import token_provider
from notecompanion.client.cli.config import build_settings
from notecompanion.client.pipeline import (
    BackgroundSync,
    PipelineOrchestrator,
    PreparationError,
    SharedFile,
    SharePreview,
    StatusEvent,
    UploadResult,
)
from notecompanion.core.config import PipelineSettings

# URI standing in for the source of an inline text share
TEXT_SHARE_URI = "shared.txt"


def echo_status(event: StatusEvent) -> None:
    """Print a status transition."""
    line = f"[{event.status.value}] {event.file_name or ''}".rstrip()
    if event.error:
        line += f": {event.error}"
    click.echo(line)


def echo_preview(preview: SharePreview) -> None:
    """Print the preview of a locally stored share."""
    if preview.preview_type == "text":
        click.echo(f"Preview: {preview.preview_text}")
    elif preview.preview_type == "image":
        click.echo(f"Thumbnail: {preview.thumbnail_path}")
    else:
        click.echo("Stored (no preview available)")


def build_shared_file(
    source: str,
    as_text: bool,
    name: str | None,
    mime_type: str | None,
) -> SharedFile:
    """Turn command-line arguments into a SharedFile."""
    if as_text:
        return SharedFile(
            uri=name or TEXT_SHARE_URI,
            mime_type=mime_type,
            name=name,
            text=source,
        )
    path = Path(source).expanduser().resolve()
    return SharedFile(uri=path.as_uri(), mime_type=mime_type, name=name or path.name)


async def run_share(
    settings: PipelineSettings, shared: SharedFile, token: str | None
) -> UploadResult:
    """Run the pipeline once, printing every status transition."""
    provider = token_provider(token)
    async with ProcessingClient(settings.server) as client:
        orchestrator = PipelineOrchestrator(client, settings)
        orchestrator.add_listener(echo_status)
        return await orchestrator.run(shared, await provider.get_token())


async def run_local_first(
    settings: PipelineSettings, shared: SharedFile, token: str | None
) -> str | None:
    """Store the share locally, then run one sync pass.

    Returns:
        None if the share was processed, else the error that kept it queued.
    """
    provider = token_provider(token)
    async with ProcessingClient(settings.server) as client:
        orchestrator = PipelineOrchestrator(client, settings)
        orchestrator.add_listener(echo_status)
        background = BackgroundSync(orchestrator, settings)
        try:
            item = background.handle_shared_file(shared, on_preview=echo_preview)
            click.echo(f"Stored locally as {item.id}")
            summary = await background.start_background_sync(
                await provider.get_token()
            )
            if item.id in summary.synced:
                return None
            stored = background.queue.get(item.id)
            return (stored and stored.last_error) or "Not logged in"
        finally:
            background.close()


@click.command()
@click.argument("source")
@click.option(
    "--text",
    "as_text",
    is_flag=True,
    help="Treat SOURCE as inline text instead of a file path.",
)
@click.option("--name", default=None, help="Filename to store the share under.")
@click.option("--mime-type", default=None, help="MIME type (inferred when omitted).")
@click.option(
    "--local-first",
    is_flag=True,
    help="Store and queue the share before processing it.",
)
@click.option(
    "--server",
    envvar="NOTECOMPANION_SERVER_URL",
    default=None,
    help="Server URL (overrides the configured one).",
)
@click.option(
    "--token",
    envvar="NOTECOMPANION_TOKEN",
    default=None,
    help="API token (default: the one stored by 'login').",
)
def share(
    source: str,
    as_text: bool,
    name: str | None,
    mime_type: str | None,
    local_first: bool,
    server: str | None,
    token: str | None,
) -> None:
    """Send a file (or, with --text, a text snippet) for processing.

    Prints each status change and the extracted text once processing
    completes.
    """
    settings = build_settings(server)
    shared = build_shared_file(source, as_text, name, mime_type)

    if local_first:
        try:
            error = asyncio.run(run_local_first(settings, shared, token))
        except PreparationError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        if error:
            click.echo(f"Share kept in queue for the next sync: {error}", err=True)
            sys.exit(1)
        click.echo("Share processed.")
        return

    result = asyncio.run(run_share(settings, shared, token))
    if not result.ok:
        click.echo(f"Error: {result.error}", err=True)
        sys.exit(1)

    if result.url:
        click.echo(f"URL: {result.url}")
    if result.plain_text:
        click.echo("")
        click.echo(result.plain_text)
