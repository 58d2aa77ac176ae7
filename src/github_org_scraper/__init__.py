"""GitHub Org Scraper - Collect per-user activity for a GitHub organization.

The pipeline fetches an organization's timeline events for a date window,
normalizes them into per-user activity, enriches every user with their merged
pull requests, authored issues and currently open pull requests, and merges
the result into a JSON dataset on disk.

Example usage:
    ```python
    from datetime import datetime, timezone
    from pathlib import Path

    from github_org_scraper import OrgScraper

    end = datetime(2024, 1, 3, tzinfo=timezone.utc)
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    async with OrgScraper(token="ghp_xxx") as scraper:
        summary = await scraper.run("acme", Path("data"), start, end)
        print(f"Users this run: {len(summary.users)}")
    ```
"""

from importlib.metadata import PackageNotFoundError, version

from github_org_scraper.config import Config
from github_org_scraper.exceptions import (
    FetchError,
    GitHubAPIError,
    GitHubGraphQLError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    ParseError,
    PersistError,
    RateLimitExceededError,
    ScraperError,
)
from github_org_scraper.models import (
    ActivityRecord,
    Discussion,
    EventKind,
    FetchFailure,
    FetchSource,
    FetchSuccess,
    ProcessData,
    PullRequestSummary,
    UserAggregate,
)
from github_org_scraper.scraper import OrgScraper, RunSummary, ScrapeResult

try:
    __version__ = version("github-org-scraper")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"

__all__ = [
    # Pipeline
    "OrgScraper",
    "RunSummary",
    "ScrapeResult",
    # Configuration
    "Config",
    # Exceptions
    "ScraperError",
    "FetchError",
    "GitHubAPIError",
    "GitHubRateLimitError",
    "GitHubNotFoundError",
    "GitHubGraphQLError",
    "RateLimitExceededError",
    "ParseError",
    "PersistError",
    # Models
    "ActivityRecord",
    "Discussion",
    "EventKind",
    "FetchFailure",
    "FetchSource",
    "FetchSuccess",
    "ProcessData",
    "PullRequestSummary",
    "UserAggregate",
]
