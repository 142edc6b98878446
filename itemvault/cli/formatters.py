"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from itemvault.models.item import Item
from itemvault.models.state import CatalogError, CatalogState, LoadStatus
from itemvault.utils.formatting import format_size, format_timestamp

HELP_TEXT = (
    "Add a new item by typing a name and pressing Enter. The asset URL is fixed"
    " in the configuration but you can customize it.\n"
    "Type [cyan]d N[/cyan] to download item N, [cyan]x N[/cyan] to delete it,"
    " [cyan]r[/cyan] to reload, [cyan]q[/cyan] to quit."
)

SUGGESTIONS_MAP = {
    "NetworkError": [
        "• Check your internet connection.",
        "• The asset URL may be unavailable. Verify 'asset_url' with --show-config.",
    ],
    "FilesystemError": [
        "• Make sure the documents directory exists and is writable.",
        "• Check that the disk is not full.",
    ],
    "RecordStoreError": [
        "• The record store could not complete the request.",
        "• Reload the list with `itemvault list` and try again.",
    ],
    "RecordNotFoundError": [
        "• The record may have been deleted from another session.",
        "• Reload the list with `itemvault list`.",
    ],
    "InvalidNameError": ["• Give the item a non-empty name."],
    "InvalidSelectionError": ["• Use a position shown by `itemvault list`."],
    "ConfigurationError": [
        "• Run `itemvault init` to create a configuration file.",
        "• Run `itemvault --show-config` to inspect the current settings.",
    ],
}


def _error_panel(error_type: str, error_msg: str, context: dict | None) -> Panel:
    suggestions = SUGGESTIONS_MAP.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    return _error_panel(type(error).__name__, str(error), context)


def format_catalog_error(error: CatalogError) -> Panel:
    """Formats an error reported on the catalog state."""
    return _error_panel(error.error_type, error.message, {"operation": error.operation})


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def _item_label(item: Item) -> str:
    label = escape(item.name)
    if item.pending:
        label += " [dim](saving…)[/dim]"
    return label


def build_items_table(state: CatalogState) -> Table | Text:
    """Renders the catalog, or the empty or failed placeholder."""
    if state.load_status is LoadStatus.FAILED and not state.items:
        return Text("✗ Could not load items from the store.", style="bold red")
    if state.load_status is LoadStatus.NOT_LOADED and not state.items:
        return Text("Loading…" if state.is_loading else "Not loaded yet.", style="dim")
    if not state.items:
        return Text("No items yet. Add one by giving it a name.", style="dim")

    table = Table(box=box.SIMPLE_HEAD, expand=True)
    table.add_column("#", style="dim", justify="right", width=4)
    table.add_column("Name", style="bold cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Created", style="green")
    table.add_column("Record", style="dim", no_wrap=True)
    for position, item in enumerate(state.items, 1):
        table.add_row(
            str(position),
            _item_label(item),
            escape(item.content_type or "unknown"),
            format_timestamp(item.created_at),
            item.record_ref.record_name[:12],
        )
    return table


def _status_line(state: CatalogState) -> Text:
    flags = [
        ("loading", state.is_loading),
        ("adding", state.is_adding),
        ("downloading", state.is_downloading),
        ("deleting", state.is_deleting),
    ]
    if state.is_busy:
        active = [label for label, on in flags if on]
        return Text(f"⟳ {', '.join(active)}…", style="yellow")
    if state.load_status is LoadStatus.FAILED:
        return Text("⚠ Showing stale items: the last reload failed.", style="yellow")
    return Text(f"{len(state.items)} item(s)", style="dim")


def build_screen(state: CatalogState, title: str = "Item Vault") -> Panel:
    """Renders the full single-screen view of the catalog."""
    parts = [build_items_table(state), Text(), _status_line(state)]
    if state.text:
        parts.append(Text.assemble(("Name: ", "bold"), state.text))
    if state.error:
        parts.append(Text())
        parts.append(format_catalog_error(state.error))
    parts.append(Text())
    parts.append(Text.from_markup(HELP_TEXT, style="dim"))
    return Panel(
        Group(*parts),
        title=f"[bold]{title}[/bold]",
        border_style="cyan",
        padding=(1, 2),
    )


def print_items_table(state: CatalogState):
    """Displays the catalog as a table."""
    Console().print(build_items_table(state))


def print_item_summary(item: Item, title: str):
    """Displays the details of one item."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Name:", escape(item.name))
    table.add_row("Record:", item.record_ref.record_name)
    table.add_row("Type:", escape(item.content_type or "unknown"))
    if item.size is not None:
        table.add_row("Size:", format_size(item.size))
    if item.asset_local_path:
        table.add_row("Local Path:", f"[dim]{escape(str(item.asset_local_path))}[/dim]")
    table.add_row("Created:", format_timestamp(item.created_at))

    console.print(
        Panel(table, title=f"[bold green]{title}[/bold green]", border_style="green")
    )
