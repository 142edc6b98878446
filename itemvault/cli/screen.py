"""
An interactive single-screen view of the catalog, driven by typed commands.
"""

import asyncio
import logging
import re

from rich.console import Console
from rich.prompt import Prompt

from itemvault.core.catalog import ItemCatalog
from itemvault.exceptions import InvalidSelectionError
from itemvault.models.state import CatalogState

from .formatters import build_screen

log = logging.getLogger(__name__)

_COMMAND_PATTERN = re.compile(r"^(?P<verb>d|download|x|delete)\s+(?P<position>\d+)$")


class CatalogScreen:
    """
    Renders the catalog and forwards user intents to it.

    Plain text adds an item with that name. ``d N`` downloads and ``x N``
    deletes the item at position N, ``r`` reloads, ``q`` quits.
    """

    def __init__(self, catalog: ItemCatalog, console: Console):
        self.catalog = catalog
        self.console = console
        self._last_flags: tuple[bool, ...] | None = None
        self._unsubscribe = catalog.subscribe(self._on_state_change)

    def _on_state_change(self, state: CatalogState) -> None:
        flags = (state.is_loading, state.is_adding, state.is_downloading, state.is_deleting)
        if flags == self._last_flags:
            return
        self._last_flags = flags
        labels = ["loading", "adding", "downloading", "deleting"]
        active = [label for label, on in zip(labels, flags) if on]
        if active:
            self.console.print(f"[dim]⟳ {', '.join(active)}…[/dim]")

    def render(self) -> None:
        self.console.clear()
        self.console.print(build_screen(self.catalog.state))

    async def handle(self, command: str) -> bool:
        """Runs one typed command. Returns False when the screen should close."""
        command = command.strip()
        lowered = command.lower()
        if lowered in ("q", "quit", "exit"):
            return False
        if lowered in ("r", "reload"):
            await self.catalog.load_all()
            return True
        if not command:
            return True

        if match := _COMMAND_PATTERN.match(lowered):
            index = int(match.group("position")) - 1
            if match.group("verb") in ("d", "download"):
                try:
                    item = self.catalog.item_at(index)
                except InvalidSelectionError as e:
                    log.warning(f"[yellow]⚠ {e}[/yellow]")
                    return True
                await self.catalog.download_item(item)
            else:
                await self.catalog.delete_at(index)
            return True

        self.catalog.set_text(command)
        await self.catalog.submit()
        return True

    async def run(self) -> None:
        """Loads the catalog, then renders and reads commands until quit."""
        try:
            await self.catalog.load_all()
            while True:
                self.render()
                command = await asyncio.to_thread(
                    Prompt.ask, "[bold]Name or command[/bold]", console=self.console
                )
                if not await self.handle(command):
                    break
        finally:
            self._unsubscribe()
