"""
CLI for supercache.

Commands:
    supercache plan FILE - Show how a file's text would be laid out in the store
    supercache config - Show current configuration
    supercache version - Print version
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from supercache import __version__
from supercache.cache.encoder import ChunkEncoder
from supercache.cache.layout import has_part_index
from supercache.config import Settings, clear_settings_cache, get_settings
from supercache.exceptions import SuperCacheError
from supercache.logging import setup_logging
from supercache.utils.size import estimate_bytes

app = typer.Typer(
    name="supercache",
    help="SuperCache - large values on top of a size-bounded key/value cache",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except ValueError:
        return None


@app.callback()
def configure() -> None:
    """Configure logging from settings before any command runs."""
    settings = _get_settings_safe()
    if settings is not None:
        setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)


@app.command()
def plan(
    file: Annotated[Path, typer.Argument(help="UTF-8 text file to lay out", exists=True, dir_okay=False)],
    key: Annotated[
        Optional[str],
        typer.Option("--key", "-k", help="Logical key (defaults to the file name)"),
    ] = None,
) -> None:
    """Show the physical entries a value would be stored as.

    Prints the layout kind (direct, compressed or split), every physical key
    with its size, and the manifest for split values.
    """
    settings = _get_settings_safe()
    if settings is None:
        error_console.print("[red]Error:[/red] Configuration is invalid. Run 'supercache config'.")
        raise typer.Exit(1)

    logical_key = key or file.name
    if len(logical_key) > settings.MAX_KEY_LENGTH:
        error_console.print(f"[red]Error:[/red] Key longer than {settings.MAX_KEY_LENGTH} characters")
        raise typer.Exit(1)

    if has_part_index(logical_key):
        error_console.print("[red]Error:[/red] Key may not end in a part index such as [1]")
        raise typer.Exit(1)

    try:
        value = file.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        error_console.print(f"[red]Error:[/red] {escape(str(file))} is not valid UTF-8")
        raise typer.Exit(1)

    encoder = ChunkEncoder(
        max_value_bytes=settings.MAX_VALUE_BYTES,
        max_parts=settings.MAX_PARTS,
        compresslevel=settings.COMPRESS_LEVEL,
    )

    try:
        layout = encoder.plan(logical_key, value)
    except SuperCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print()
    console.print(
        Panel(
            f"[bold]Key:[/bold] {escape(logical_key)}\n"
            f"[bold]Layout:[/bold] {layout.kind.value}\n"
            f"[bold]Value bytes:[/bold] {layout.value_bytes}\n"
            f"[bold]Compressed bytes:[/bold] {layout.zip_bytes if layout.zip_bytes is not None else '-'}\n"
            f"[bold]Parts:[/bold] {layout.num_parts}",
            title="[bold cyan]SuperCache Layout[/bold cyan]",
            border_style="cyan",
        )
    )

    table = Table(title="Physical entries", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Bytes", justify="right", style="green")
    for physical_key, physical_value in layout.entries.items():
        table.add_row(escape(physical_key), str(estimate_bytes(physical_value)))
    console.print(table)

    if layout.manifest is not None:
        console.print("\n[dim]Manifest:[/dim]")
        console.print_json(layout.manifest.to_json())

    console.print()


@app.command()
def config() -> None:
    """Show current configuration."""
    console.print()
    console.print("[bold]SuperCache Configuration[/bold]")
    console.print()

    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print()
        error_console.print("Check the SUPERCACHE_* environment variables or your .env file.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for name, value in settings.redacted_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(name, display_value)

    console.print(table)
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"supercache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
