"""GitHub Org Scraper - high-level pipeline for collecting organization activity."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx

from github_org_scraper.config import Config, get_config
from github_org_scraper.exceptions import ScraperError
from github_org_scraper.models.activity import ProcessData
from github_org_scraper.models.results import FetchFailure
from github_org_scraper.services.discussion_scraper import DiscussionScraper
from github_org_scraper.services.event_fetcher import EventFetcher
from github_org_scraper.services.event_parser import parse_events
from github_org_scraper.services.github_graphql_client import GitHubGraphQLClient
from github_org_scraper.services.github_rest_client import GitHubRestClient
from github_org_scraper.services.user_data_fetcher import UserDataFetcher
from github_org_scraper.storage.data_store import merged_data
from github_org_scraper.utils.rate_limiter import RateLimiter, get_rate_limiter

logger = logging.getLogger(__name__)


@dataclass
class ScrapeResult:
    """In-memory result of fetching, parsing and enriching one window."""

    data: ProcessData
    event_count: int = 0
    failures: list[FetchFailure] = field(default_factory=list)


@dataclass
class RunSummary:
    """Outcome of a full run, for reporting."""

    org: str
    start_date: datetime
    end_date: datetime
    event_count: int = 0
    users: list[str] = field(default_factory=list)
    failures: list[FetchFailure] = field(default_factory=list)
    persisted_users: int = 0
    discussion_count: Optional[int] = None
    discussion_error: Optional[ScraperError] = None


class OrgScraper:
    """Collects per-user activity for an organization and merges it to disk.

    Example usage:
        ```python
        from github_org_scraper import OrgScraper

        async with OrgScraper(token="ghp_xxx") as scraper:
            summary = await scraper.run("acme", Path("data"), start, end)
        ```

    Args:
        token: GitHub personal access token (optional; required for discussions)
        config: Full configuration; overrides ``token`` when given
        transport: Optional httpx transport shared by both API clients
    """

    def __init__(
        self,
        token: Optional[str] = None,
        config: Optional[Config] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config or Config(github_token=token)
        self._transport = transport
        self._rate_limiter: Optional[RateLimiter] = None
        self._rest_client: Optional[GitHubRestClient] = None
        self._graphql_client: Optional[GitHubGraphQLClient] = None
        self._initialized = False

    @classmethod
    def from_env(cls) -> "OrgScraper":
        return cls(config=get_config())

    @property
    def is_authenticated(self) -> bool:
        return self._config.is_authenticated

    async def __aenter__(self) -> "OrgScraper":
        await self._initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _initialize(self) -> None:
        if self._initialized:
            return

        self._rate_limiter = get_rate_limiter()
        self._rest_client = GitHubRestClient(
            config=self._config,
            rate_limiter=self._rate_limiter,
            transport=self._transport,
        )
        if self._config.is_authenticated:
            self._graphql_client = GitHubGraphQLClient(
                config=self._config,
                rate_limiter=self._rate_limiter,
                transport=self._transport,
            )

        self._initialized = True
        logger.debug("OrgScraper initialized (authenticated=%s)", self.is_authenticated)

    async def close(self) -> None:
        """Close all HTTP connections."""
        if self._rest_client:
            await self._rest_client.close()
        if self._graphql_client:
            await self._graphql_client.close()
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise ScraperError(
                "Scraper not initialized. Use 'async with OrgScraper(...) as scraper:'"
            )

    async def scrape(self, org: str, start_date: datetime, end_date: datetime) -> ScrapeResult:
        """Fetch, parse and enrich one window of organization activity.

        Raises:
            FetchError: If the organization events cannot be fetched completely
        """
        self._ensure_initialized()
        logger.info(
            "Scraping GitHub data for %s from %s to %s",
            org,
            start_date.isoformat(),
            end_date.isoformat(),
        )

        events = await EventFetcher(self._rest_client).fetch_events(org, start_date, end_date)
        data = parse_events(events)
        logger.info("Found %d events from %d users", len(events), len(data))

        fetcher = UserDataFetcher(self._rest_client, max_workers=self._config.max_workers)
        data, failures = await fetcher.enrich(data, org)

        logger.info("Scraping completed")
        return ScrapeResult(data=data, event_count=len(events), failures=failures)

    async def scrape_discussions(
        self,
        org: str,
        data_dir: Path,
        end_date: datetime,
        start_date: datetime,
    ) -> Optional[int]:
        """Collect discussions for the window; None when no token is configured."""
        self._ensure_initialized()
        if self._graphql_client is None:
            logger.warning("Skipping discussions for %s: GraphQL API requires a token", org)
            return None

        scraper = DiscussionScraper(self._graphql_client, self._config)
        discussions = await scraper.scrape_discussions(org, data_dir, end_date, start_date)
        return len(discussions)

    async def run(
        self,
        org: str,
        data_dir: Path,
        start_date: datetime,
        end_date: datetime,
        include_discussions: bool = True,
    ) -> RunSummary:
        """Scrape a window, merge it into ``data_dir`` and collect discussions.

        Raises:
            FetchError: If the organization events cannot be fetched
            PersistError: If the merged data cannot be written
        """
        result = await self.scrape(org, start_date, end_date)
        merged = merged_data(
            data_dir, result.data, now=datetime.now(timezone.utc), config=self._config
        )

        summary = RunSummary(
            org=org,
            start_date=start_date,
            end_date=end_date,
            event_count=result.event_count,
            users=sorted(result.data),
            failures=result.failures,
            persisted_users=len(merged),
        )

        if include_discussions:
            # Activity data is already on disk; a failure here only affects discussions
            try:
                summary.discussion_count = await self.scrape_discussions(
                    org, data_dir, end_date, start_date
                )
            except ScraperError as e:
                logger.error("Error scraping discussions for %s: %s", org, e)
                summary.discussion_error = e

        logger.info("Done")
        return summary
