"""Command-line interface for the kiosk catalog."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.table import Table

from pubkiosk.log import configure_logging
from pubkiosk.models import Publication
from pubkiosk.services import CatalogCache, FeedError, IngestError, LiveCatalogSource
from pubkiosk.settings import get_settings

console = Console()
app = typer.Typer(help="pubkiosk – publication catalog cache for kiosk displays")
logger = structlog.get_logger(__name__)


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    configure_logging(get_settings().log_level)


def _cache() -> CatalogCache:
    settings = get_settings()
    return CatalogCache(settings, source=LiveCatalogSource(settings))


def _print_publications(publications: list[Publication], title: str) -> None:
    table = Table(title=title)
    table.add_column("#")
    table.add_column("ID")
    table.add_column("Title", overflow="fold")
    table.add_column("Authors", overflow="fold")
    table.add_column("ISBN")
    table.add_column("Cover")
    for index, publication in enumerate(publications):
        table.add_row(
            str(index),
            publication.catalog_id,
            publication.title,
            publication.author_line or "—",
            publication.isbns[0] if publication.isbns else "—",
            "Yes" if publication.cover_image is not None else "No",
        )
    console.print(table)


@app.command()
def config(
    json_output: bool = typer.Option(False, "--json", help="Output settings as JSON"),
) -> None:
    """Display the resolved settings."""
    settings = get_settings()
    if json_output:
        typer.echo(settings.model_dump_json(indent=2, exclude={"xid_secret"}))
        return
    table = Table(title="pubkiosk Settings")
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    for key, value in settings.model_dump(exclude={"xid_secret"}).items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def refresh() -> None:
    """Resolve the feed and replace the cached catalog."""

    async def runner() -> None:
        cache = _cache()
        try:
            count = await cache.refresh_from_source()
        except (FeedError, IngestError) as exc:
            console.print(f"[red]Refresh failed:[/red] {exc}")
            console.print("[yellow]The previous catalog was left in place.")
            raise typer.Exit(code=1) from exc
        console.print(f"[green]Cached {count} publications.[/green]")

    asyncio.run(runner())


@app.command("list")
def list_items() -> None:
    """List cached publications (builds the cache on first use)."""

    async def runner() -> None:
        try:
            publications = await _cache().read_all()
        except (FeedError, IngestError) as exc:
            console.print(f"[red]Could not build the catalog:[/red] {exc}")
            raise typer.Exit(code=1) from exc
        if not publications:
            console.print("[yellow]Catalog is empty. Use `pubkiosk refresh` to populate it.")
            return
        _print_publications(publications, "Cached Publications")

    asyncio.run(runner())


@app.command()
def cover(
    catalog_id: str = typer.Argument(..., help="Catalog identifier"),
    output: Path = typer.Option(..., "--output", "-o", help="PNG file to write"),
) -> None:
    """Export the cached cover of one publication."""

    async def runner() -> None:
        publication = await _cache().find(catalog_id)
        if publication is None or publication.cover_image is None:
            console.print(f"[red]No cached cover for {catalog_id}.")
            raise typer.Exit(code=1)
        output.parent.mkdir(parents=True, exist_ok=True)
        publication.cover_image.save(output, format="PNG")
        console.print(f"[green]Wrote[/green] {output}")

    asyncio.run(runner())


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """Launch the management endpoint."""
    import uvicorn

    uvicorn.run(
        "pubkiosk.web.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


if __name__ == "__main__":
    app()
