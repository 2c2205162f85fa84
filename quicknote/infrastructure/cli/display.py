import logging
from typing import Any, List, Optional

from rich.box import HEAVY, SIMPLE
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from quicknote.domain.interfaces.user_interface import UserInterface
from quicknote.domain.models.errors import RecoveryAction
from quicknote.domain.models.pages import PageSummary
from quicknote.domain.models.rate_limit import RateLimitStatus, format_time_until

logger = logging.getLogger(__name__)

LEVEL_STYLES = {
    "normal": "green",
    "warning": "yellow",
    "critical": "red",
}


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: str, **kwargs: Any) -> None:
        """Renders output as Markdown."""
        self.console.print(Markdown(str(output)))

    def display_error(
        self,
        error_message: str,
        recovery_action: Optional[RecoveryAction] = None,
        **kwargs: Any,
    ) -> None:
        """Displays an error message and the suggested follow-up in a distinct style."""
        body = Text(error_message, style="white")
        if recovery_action is not None:
            body.append(f"\nSuggested action: {recovery_action.label}", style="bold")
        panel = Panel(
            body,
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
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_pages(self, pages: List[PageSummary], selected_page_id: str = "") -> None:
        """Displays the page listing as a table, marking the selected page."""
        if not pages:
            self.display_info("No pages found. Share a page with your integration in Notion first.")
            return

        table = Table(title="Notion Pages", box=SIMPLE, show_lines=False)
        table.add_column("", width=1)
        table.add_column("Title", style="bold")
        table.add_column("ID", style="dim")
        table.add_column("URL", style="cyan", overflow="fold")
        for page in pages:
            marker = "*" if page.id == selected_page_id else ""
            table.add_row(marker, page.display_title, page.id, page.url)
        self.console.print(table)

    def display_rate_limit_status(self, status: RateLimitStatus) -> None:
        """Displays a one-line quota summary, colored by usage level."""
        style = LEVEL_STYLES.get(status.level, "white")
        line = Text(status.describe(), style=style)
        if status.reset_at is not None:
            line.append(f"  (resets in {format_time_until(status.seconds_until_reset())})", style="dim")
        logger.debug(f"Rate limit status: {status.to_dict()}")
        self.console.print(line)

    def get_prompt(self, prompt_message: str = "Note: ") -> str:
        """Reads a line of input using a styled prompt."""
        return self.console.input(f"[bold green]{prompt_message}[/bold green]")
