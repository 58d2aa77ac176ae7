"""Rich console output for scrape runs."""

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table

from github_org_scraper.scraper import RunSummary


class Console:
    """Wrapper for rich console output."""

    def __init__(self, quiet: bool = False, console: RichConsole | None = None):
        self.console = console or RichConsole()
        self.quiet = quiet

    def print(self, *args, **kwargs):
        """Print to console (respects quiet mode)."""
        if not self.quiet:
            self.console.print(*args, **kwargs)

    def print_error(self, message: str):
        """Print error message."""
        self.console.print(f"[red]Error:[/red] {message}")

    def print_warning(self, message: str):
        """Print warning message."""
        self.console.print(f"[yellow]Warning:[/yellow] {message}")

    def print_success(self, message: str):
        """Print success message."""
        if not self.quiet:
            self.console.print(f"[green]{message}[/green]")

    def print_header(self, org: str, start: str, end: str):
        """Print run header."""
        if self.quiet:
            return

        self.console.print()
        self.console.print(
            Panel(
                f"[bold blue]GitHub Organization Activity[/bold blue]\n"
                f"[dim]Org: {org}  Window: {start} to {end}[/dim]",
                expand=False,
            )
        )
        self.console.print()

    def print_summary(self, summary: RunSummary):
        """Print run summary and any per-user fetch failures."""
        if self.quiet:
            return

        table = Table(title="Run Summary", show_header=False, expand=False)
        table.add_column("Metric", style="dim")
        table.add_column("Value")

        table.add_row("Events", str(summary.event_count))
        table.add_row("Users This Run", str(len(summary.users)))
        table.add_row("Users In Dataset", str(summary.persisted_users))
        table.add_row("Fetch Failures", str(len(summary.failures)))
        if summary.discussion_count is not None:
            table.add_row("Discussions", str(summary.discussion_count))

        self.console.print(table)
        self.console.print()

        if summary.failures:
            failures = Table(title="Fetch Failures", expand=False)
            failures.add_column("User")
            failures.add_column("Source")
            failures.add_column("Error")
            for failure in summary.failures:
                failures.add_row(failure.user, failure.source.value, str(failure.error))
            self.console.print(failures)
            self.console.print()
