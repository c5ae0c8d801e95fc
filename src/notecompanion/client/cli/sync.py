"""Background sync commands for the notecompanion CLI.

Commands:
- sync: Process every share waiting in the local queue
- queue: List the local queue
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime

import click

from notecompanion.client.api import ProcessingClient
from notecompanion.client.cli.auth import token_provider
from notecompanion.client.cli.config import build_settings
from notecompanion.client.cli.share import echo_status
from notecompanion.client.pipeline import (
    BackgroundSync,
    PipelineOrchestrator,
    ShareQueue,
    SyncSummary,
)
from notecompanion.core.config import PipelineSettings


async def run_sync(settings: PipelineSettings, token: str) -> SyncSummary:
    """Run one sync pass over the local queue."""
    async with ProcessingClient(settings.server) as client:
        orchestrator = PipelineOrchestrator(client, settings)
        orchestrator.add_listener(echo_status)
        background = BackgroundSync(orchestrator, settings)
        try:
            return await background.sync_pending(token)
        finally:
            background.close()


@click.command()
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
def sync(server: str | None, token: str | None) -> None:
    """Process shares waiting in the local queue.

    Shares that fail stay queued for the next run.
    """
    settings = build_settings(server)
    resolved = asyncio.run(token_provider(token).get_token())
    if not resolved:
        click.echo("Error: Not logged in. Run 'notecompanion login' first.", err=True)
        sys.exit(1)

    summary = asyncio.run(run_sync(settings, resolved))
    if summary.total == 0:
        click.echo("Nothing to sync.")
        return

    click.echo(f"Synced: {len(summary.synced)}, still queued: {len(summary.failed)}")
    if summary.failed:
        sys.exit(1)


@click.command()
def queue() -> None:
    """List shares waiting in the local queue."""
    settings = build_settings()
    share_queue = ShareQueue(settings.queue_db_path)
    try:
        pending = share_queue.pending()
        stats = share_queue.stats()
    finally:
        share_queue.close()

    if not pending:
        click.echo("Queue is empty.")
    for item in pending:
        created = datetime.fromtimestamp(item.created_at).strftime("%Y-%m-%d %H:%M:%S")
        line = f"{item.id}  {created}  {item.shared.name}"
        if item.attempts:
            line += f"  ({item.attempts} failed: {item.last_error})"
        click.echo(line)

    click.echo(f"\nPending: {stats['pending']}, synced: {stats['synced']}")
