"""CLI interface for GitHub Org Scraper."""

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from github_org_scraper import __version__
from github_org_scraper.config import get_config
from github_org_scraper.exceptions import ScraperError
from github_org_scraper.output.console import Console as OutputConsole
from github_org_scraper.scraper import OrgScraper, RunSummary

app = typer.Typer(
    name="github-org-scraper",
    help="Collect per-user GitHub activity for an organization",
    add_completion=False,
)

console = Console()


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        console.print(f"github-org-scraper version {__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_end_date(value: Optional[str]) -> date:
    """Parse the window end date; a full ISO timestamp contributes its calendar date.

    Raises:
        ValueError: If the value is not an ISO-8601 date or timestamp
    """
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value).date()


def compute_window(end_day: date, num_days: int) -> tuple[datetime, datetime]:
    """Return ``(start, end)`` UTC midnights for ``[end_day - num_days, end_day)``."""
    end = datetime.combine(end_day, time.min, tzinfo=timezone.utc)
    return end - timedelta(days=num_days), end


@app.command()
def scrape(
    org: str = typer.Argument(..., help="GitHub organization to scrape"),
    data_dir: Path = typer.Argument(..., help="Directory holding the dataset"),
    date_arg: Optional[str] = typer.Argument(
        None,
        metavar="[DATE]",
        help="Window end date (YYYY-MM-DD), exclusive; defaults to today",
    ),
    num_days: int = typer.Argument(1, min=1, help="Number of days in the window"),
    skip_discussions: bool = typer.Option(
        False,
        "--skip-discussions",
        help="Do not collect discussions",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Verbose output",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Minimal output",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """Scrape an organization's activity for a date window and merge it into DATA_DIR.

    Examples:
        github-org-scraper acme ./data
        github-org-scraper acme ./data 2024-01-03 2
    """
    try:
        end_day = parse_end_date(date_arg)
    except ValueError:
        console.print(f"[red]Invalid date value: {date_arg}[/red]")
        raise typer.Exit(1)

    start_date, end_date = compute_window(end_day, num_days)

    setup_logging(verbose=verbose, quiet=quiet)
    output_console = OutputConsole(quiet=quiet)

    try:
        summary = asyncio.run(
            _run_scrape(
                org=org,
                data_dir=data_dir,
                start_date=start_date,
                end_date=end_date,
                include_discussions=not skip_discussions,
                output_console=output_console,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Scrape cancelled[/yellow]")
        raise typer.Exit(1)
    except ScraperError as e:
        output_console.print_error(str(e))
        raise typer.Exit(1)
    except Exception as e:
        output_console.print_error(str(e))
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(1)

    output_console.print_summary(summary)

    if summary.discussion_error is not None:
        output_console.print_error(f"Discussions failed: {summary.discussion_error}")
        raise typer.Exit(1)

    output_console.print_success("Done")


async def _run_scrape(
    org: str,
    data_dir: Path,
    start_date: datetime,
    end_date: datetime,
    include_discussions: bool,
    output_console: OutputConsole,
) -> RunSummary:
    """Run the scrape asynchronously."""
    config = get_config()

    output_console.print_header(org, start_date.date().isoformat(), end_date.date().isoformat())

    if not config.is_authenticated:
        output_console.print_warning(
            "No GitHub token found. Using unauthenticated access (60 requests/hour).\n"
            "Set GITHUB_TOKEN environment variable for higher rate limits and discussion data."
        )

    async with OrgScraper(config=config) as scraper:
        return await scraper.run(
            org,
            data_dir,
            start_date,
            end_date,
            include_discussions=include_discussions,
        )


if __name__ == "__main__":
    app()
