"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from itemvault import __version__
from itemvault.core.catalog import ItemCatalog
from itemvault.core.session import catalog_session
from itemvault.exceptions import InvalidSelectionError, ItemVaultError
from itemvault.models.config import VaultConfig
from itemvault.storage.config_manager import ConfigManager
from itemvault.utils.structured_logger import create_structured_logger

from .formatters import (
    format_catalog_error,
    format_error_with_suggestions,
    print_config,
    print_item_summary,
    print_items_table,
)
from .screen import CatalogScreen

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("itemvault")

app = typer.Typer(
    name="itemvault",
    help=(
        "Download a remote asset, keep it in a record store, and manage the saved"
        " items. Use 'itemvault <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

T = TypeVar("T")


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "itemvault"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    log_json: Path | None = typer.Option(  # noqa: B008
        None,
        "--log-json",
        help="Write structured JSONL event logs into this directory.",
        file_okay=False,
    ),
):
    """Item Vault CLI"""
    if version:
        console.print(f"[bold]itemvault[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("itemvault").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]itemvault init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config = _load_config()
        print_config(CONFIG_FILE, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    ctx.obj = {"log_json": log_json}

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def _load_config() -> VaultConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config()
    except ItemVaultError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


def _run_with_catalog(
    ctx: typer.Context,
    action: Callable[[ItemCatalog], Awaitable[T]],
    open_viewer: bool | None = None,
) -> T:
    """Runs ``action`` against a fully wired catalog and returns its result."""
    config = _load_config()
    log_dir = (ctx.obj or {}).get("log_json")
    base_logger, catalog_logger = create_structured_logger(
        log_dir=log_dir, enable_json=log_dir is not None
    )
    base_logger.set_session_context(
        record_type=config.record_type, asset_url=config.asset_url
    )

    async def _run() -> T:
        async with catalog_session(
            config, events=catalog_logger, open_viewer=open_viewer
        ) as catalog:
            return await action(catalog)

    try:
        return asyncio.run(_run())
    except ItemVaultError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    finally:
        base_logger.close()


def _exit_on_error(catalog: ItemCatalog) -> None:
    if catalog.state.error:
        console.print(format_catalog_error(catalog.state.error))
        raise typer.Exit(code=1)


@app.command()
def init(
    asset_url: str | None = typer.Option(
        None, "--asset-url", help="URL of the asset downloaded for each new item."
    ),
    documents_dir: Path | None = typer.Option(  # noqa: B008
        None, "--documents-dir", help="Where staged and downloaded files are written."
    ),
    data_dir: Path | None = typer.Option(  # noqa: B008
        None, "--data-dir", help="Where the record database is kept."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Create the configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        key: str(value)
        for key, value in {
            "asset_url": asset_url,
            "documents_dir": documents_dir,
            "data_dir": data_dir,
        }.items()
        if value is not None
    }
    try:
        ConfigManager(CONFIG_FILE).save_new_config(settings)
    except ItemVaultError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready! Try: [cyan]itemvault add <NAME>[/cyan]")


@app.command()
def add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Display name of the new item."),
):
    """Download the asset and save it as a new item."""

    async def _add(catalog: ItemCatalog):
        catalog.set_text(name)
        with console.status(f"[cyan]Adding '{name}'...[/cyan]"):
            item = await catalog.submit()
        _exit_on_error(catalog)
        return item

    item = _run_with_catalog(ctx, _add)
    if item is None:
        console.print("[red]✗ Item name cannot be empty.[/red]")
        raise typer.Exit(code=1)
    print_item_summary(item, "✓ Item Added")


@app.command(name="list")
def list_command(ctx: typer.Context):
    """List the saved items, oldest first."""

    async def _list(catalog: ItemCatalog):
        with console.status("[cyan]Loading items...[/cyan]"):
            await catalog.load_all()
        print_items_table(catalog.state)
        _exit_on_error(catalog)

    _run_with_catalog(ctx, _list)


@app.command()
def download(
    ctx: typer.Context,
    position: int = typer.Argument(..., help="Position of the item, as shown by 'list'."),
    open_viewer: bool | None = typer.Option(
        None,
        "--open/--no-open",
        help="Reveal the downloaded file in the system file viewer.",
    ),
):
    """Download a saved item's asset to the documents directory."""

    async def _download(catalog: ItemCatalog):
        await catalog.load_all()
        _exit_on_error(catalog)
        try:
            target = catalog.item_at(position - 1)
        except InvalidSelectionError as e:
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e
        with console.status(f"[cyan]Downloading '{target.name}'...[/cyan]"):
            item = await catalog.download_item(target)
        _exit_on_error(catalog)
        return item

    item = _run_with_catalog(ctx, _download, open_viewer=open_viewer)
    print_item_summary(item, "✓ Item Downloaded")


@app.command()
def delete(
    ctx: typer.Context,
    position: int = typer.Argument(..., help="Position of the item, as shown by 'list'."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Bypass the confirmation prompt."
    ),
):
    """Delete a saved item."""

    async def _delete(catalog: ItemCatalog):
        await catalog.load_all()
        _exit_on_error(catalog)
        try:
            target = catalog.item_at(position - 1)
        except InvalidSelectionError as e:
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e
        if not force and not await asyncio.to_thread(
            typer.confirm, f"Delete '{target.name}'?"
        ):
            raise typer.Abort()
        await catalog.delete_item(target.record_ref)
        _exit_on_error(catalog)
        return target

    target = _run_with_catalog(ctx, _delete)
    console.print(f"[green]✓ Deleted '{target.name}'.[/green]")


@app.command()
def screen(ctx: typer.Context):
    """Open the interactive single-screen view."""

    async def _screen(catalog: ItemCatalog):
        await CatalogScreen(catalog, console).run()

    _run_with_catalog(ctx, _screen)


