"""
Cheerboard command-line interface.

Commands:
- serve: Run the HTTP API with uvicorn
- init-db: Create the documents table for a SQL store
- reconcile: Rebuild every performer's active_event_ids
"""

import asyncio
import sys
from typing import Optional

import click
import uvicorn

from cheerboard import __version__
from cheerboard.config.settings import get_settings
from cheerboard.services.crossref_service import CrossReferenceMaintainer
from cheerboard.services.exceptions import ServiceError
from cheerboard.store import StoreGateway, create_store
from cheerboard.utils.cache import MemoryCache
from cheerboard.utils.logging_config import get_logger, init_logging


@click.group()
@click.version_option(version=__version__, prog_name="cheerboard")
def cli() -> None:
    """
    Cheerboard - moderated performer and support-event catalog.

    Use 'cheerboard COMMAND --help' for more information on a command.
    """
    init_logging()


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the HTTP API."""
    uvicorn.run("cheerboard.main:app", host=host, port=port, reload=reload)


@cli.command("init-db")
@click.option("--store-url", default=None, help="Override CHEERBOARD_STORE_URL")
def init_db(store_url: Optional[str]) -> None:
    """Create the documents table if it does not exist."""
    url = store_url or get_settings().store_url
    if url.startswith("memory://"):
        click.echo("In-memory store configured; nothing to initialize.")
        return

    store = create_store(url)
    asyncio.run(store.close())
    click.echo(click.style("Database initialized.", fg="green"))


@cli.command()
@click.option("--store-url", default=None, help="Override CHEERBOARD_STORE_URL")
def reconcile(store_url: Optional[str]) -> None:
    """
    Rebuild performer cross-references.

    Re-derives active_event_ids from approved, not-ended events and rewrites
    performers whose stored list differs. Safe to run repeatedly.
    """
    logger = get_logger("jobs")
    settings = get_settings()
    store = create_store(store_url or settings.store_url)
    gateway = StoreGateway(
        store,
        timeout_seconds=settings.store_timeout_seconds,
        max_attempts=settings.store_max_attempts,
        retry_delay_seconds=settings.store_retry_delay_seconds,
    )
    crossref = CrossReferenceMaintainer(
        gateway,
        MemoryCache(),
        chunk_size=settings.membership_chunk_size,
        batch_write_limit=settings.batch_write_limit,
    )

    async def run():
        try:
            return await crossref.rebuild()
        finally:
            await store.close()

    logger.info("Reconcile started")
    try:
        report = asyncio.run(run())
    except ServiceError as e:
        logger.error(f"Reconcile failed: {e.message}")
        click.echo(click.style(f"Reconcile failed: {e.message}", fg="red"), err=True)
        sys.exit(1)

    click.echo(
        f"Scanned {report.events_scanned} event(s) and {report.performers_scanned} "
        f"performer(s); updated {report.performers_updated}."
    )


if __name__ == "__main__":
    cli()
