"""Console output for the stagedfs CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from stagedfs.render import build_tree

if TYPE_CHECKING:
    from stagedfs.fs import Fs


class Output:
    """Non-interactive text output for CLI commands."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize output.

        Args:
            console: Console to print to. A new stdout console by default.
        """
        self.console = console or Console()

    def show_tree(self, fs: Fs, depth: int = -1) -> None:
        """Display an Fs as a tree.

        Args:
            fs: The Fs to display.
            depth: Levels to show, -1 for all.
        """
        self.console.print(build_tree(fs, depth))

    def show_paths(self, paths: list[str]) -> None:
        """Display one path per line.

        Args:
            paths: Paths to print.
        """
        if not paths:
            self.console.print("[yellow]No entries[/yellow]")
            return
        for path in paths:
            self.console.print(path, highlight=False, markup=False)

    def show_pending(self, fs: Fs) -> None:
        """Display pending deletions in removal order.

        Args:
            fs: The Fs whose pending deletions to show.
        """
        pending = fs.pending_deletions
        if not pending:
            self.console.print("[dim]No pending deletions[/dim]")
            return

        table = Table(title="Pending Deletions")
        table.add_column("#", justify="right")
        table.add_column("Path", style="red")
        table.add_column("Type")
        for index, path in enumerate(reversed(pending), start=1):
            kind = "dir" if fs.pending[path].is_directory else "file"
            table.add_row(str(index), path, kind)
        self.console.print(table)

    def confirm(self, message: str, default: bool = False) -> bool:
        """Show confirmation prompt.

        Args:
            message: Confirmation message.
            default: Default response.

        Returns:
            User's response.
        """
        return Confirm.ask(message, default=default, console=self.console)

    def show_success(self, message: str) -> None:
        """Show success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def show_error(self, message: str) -> None:
        """Show error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def show_info(self, message: str) -> None:
        """Show info message."""
        self.console.print(f"[blue]i[/blue] {message}")
