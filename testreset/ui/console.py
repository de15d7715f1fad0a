"""
ConsoleUI - Rich-based console output for reset operations.

Used by the host test runner to show reset summaries, snapshot status, site
information and drop progress.
"""

from typing import Iterable, Iterator, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import track
from rich.table import Table

from ..errors import ResetStatus, SnapshotStatus


class ConsoleUI:
    """
    Rich console interface for testreset.
    """

    def __init__(self, quiet: bool = False, console: Optional[Console] = None):
        self.quiet = quiet
        self.console = console or Console()

    def print(self, *args, **kwargs):
        """Print to console."""
        if self.quiet:
            return
        self.console.print(*args, **kwargs)

    def print_header(self, title: str):
        """Print a section header."""
        if self.quiet:
            return
        self.console.print()
        self.console.rule(f"[bold blue]{title}[/]")

    def print_error(self, message: str):
        """Errors are shown even in quiet mode."""
        self.console.print(f"[bold red]Error:[/] {message}")

    def print_site_info(self, site_info: str):
        if self.quiet:
            return
        self.console.print(Panel(site_info.strip(), title="Environment", border_style="cyan"))

    def print_status(self, status: SnapshotStatus):
        """Display snapshot status."""
        if self.quiet:
            return

        status_colors = {
            SnapshotStatus.CURRENT: "green",
            SnapshotStatus.STALE: "bold yellow",
            SnapshotStatus.NOT_INITIALIZED: "bold red",
        }
        color = status_colors.get(status, "white")
        self.console.print(f"Snapshot: [{color}]{status.value}[/]")

    def print_reset_result(self, result):
        """Display a ResetResult."""
        if self.quiet:
            return

        if result.status != ResetStatus.RESET:
            self.console.print(f"[dim]Database reset skipped ({result.status.value})[/]")
            return

        if not result.tables_changed and not result.tables_dropped:
            self.console.print("[dim]Database unchanged[/]")
            return

        table = Table(title="Database Reset", box=None)
        table.add_column("Table", style="cyan")
        table.add_column("Action")
        table.add_column("Sequence", justify="right", style="dim")

        rows = (
            [(name, "restored") for name in result.tables_restored]
            + [(name, "truncated") for name in result.tables_truncated]
            + [(name, "emptied") for name in result.tables_emptied]
            + [(name, "[red]dropped[/]") for name in result.tables_dropped]
        )
        for name, action in sorted(rows):
            sequence = result.sequences.get(name)
            table.add_row(name, action, str(sequence) if sequence is not None else "")

        self.console.print(table)
        if result.full_scan:
            self.console.print("[dim]Full scan (first reset of this session)[/]")

    def track(self, items: Iterable, description: str) -> Iterator:
        """Iterate with a progress bar (plain iteration when quiet)."""
        if self.quiet:
            return iter(items)
        return track(items, description=description, console=self.console)
