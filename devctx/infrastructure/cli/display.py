import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from devctx.domain.interfaces.user_interface import UserInterface
from devctx.domain.models.common import PromptText

logger = logging.getLogger(__name__)

class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console.

        Args:
            console: Console to write to. Tests pass one backed by a StringIO.
        """
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_prompt(self, prompt: PromptText, **kwargs: Any) -> None:
        """Displays a composed prompt.

        In raw mode the text is written as-is with no wrapping or markup so it
        can be piped straight into an editor or clipboard.
        """
        if kwargs.get("raw"):
            self.console.print(str(prompt), markup=False, highlight=False, emoji=False, soft_wrap=True)
            return

        subtitle = kwargs.get("subtitle")
        panel = Panel(
            Text(str(prompt)),
            title=Text(kwargs.get("title", "Prompt"), style="bold cyan"),
            subtitle=Text(subtitle, style="dim") if subtitle else None,
            title_align="left",
            border_style="cyan",
            box=ROUNDED,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_entries(self, entries: List[Dict[str, Any]], **kwargs: Any) -> None:
        """Displays context history as a table, newest first."""
        if not entries:
            self.display_info("No saved context yet. Run 'devctx save' first.")
            return

        table = Table(title=kwargs.get("title", "Context history"), box=ROUNDED, border_style="cyan")
        table.add_column("Saved", style="dim")
        table.add_column("Branch", style="bold")
        table.add_column("ID", style="cyan")
        table.add_column("Tokens", justify="right")
        table.add_column("Task", style="white")
        for entry in entries:
            table.add_row(
                str(entry.get("timestamp") or "")[:16],
                str(entry.get("branch") or ""),
                str(entry.get("id") or ""),
                str(entry.get("tokenCount", "")),
                Text(str(entry.get("task") or "")),
            )
        self.console.print(table)

    def display_mapping(self, data: Mapping[str, Any], **kwargs: Any) -> None:
        """Displays key/value pairs; nested values are shown as compact JSON."""
        table = Table(title=kwargs.get("title"), show_header=False, box=SIMPLE, border_style="cyan")
        table.add_column("Key", style="bold cyan")
        table.add_column("Value", style="white")
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                value = json.dumps(value, ensure_ascii=False)
            table.add_row(Text(str(key)), Text(str(value)))
        self.console.print(table)
