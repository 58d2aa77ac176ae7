"""Discussion collector service."""

import logging
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Optional

from github_org_scraper.config import Config, get_config
from github_org_scraper.exceptions import ParseError
from github_org_scraper.models.discussion import Discussion
from github_org_scraper.services.github_graphql_client import GitHubGraphQLClient
from github_org_scraper.storage.data_store import save_discussions

logger = logging.getLogger(__name__)


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


class DiscussionScraper:
    """Collects discussions updated within a window across an organization."""

    def __init__(self, graphql_client: GitHubGraphQLClient, config: Optional[Config] = None):
        self.graphql_client = graphql_client
        self.config = config or get_config()

    async def collect_repo_discussions(
        self,
        repo: str,
        start: datetime,
        end: datetime,
    ) -> list[Discussion]:
        """Collect discussions of one repository updated in ``[start, end)``.

        Discussions are read most recently updated first, so reading stops at
        the first one updated before ``start``.
        """
        owner, name = repo.split("/", 1)
        found: list[Discussion] = []
        cursor = None

        while True:
            nodes, cursor = await self.graphql_client.get_discussions_page(owner, name, cursor)
            for node in nodes:
                try:
                    discussion = Discussion.from_graphql(repo, node)
                except ParseError as e:
                    logger.warning("Skipping malformed discussion: %s", e)
                    continue
                if discussion.updated_at < start:
                    return found
                if discussion.updated_at < end:
                    found.append(discussion)
            if cursor is None:
                return found

    async def collect(
        self,
        org: str,
        start_date: date | datetime,
        end_date: date | datetime,
    ) -> list[Discussion]:
        """Collect discussions updated in the window across all org repositories."""
        start, end = _as_datetime(start_date), _as_datetime(end_date)

        repos = await self.graphql_client.get_org_repositories(org)
        enabled = [r["nameWithOwner"] for r in repos if r.get("hasDiscussionsEnabled")]
        logger.debug("%d of %d repositories in %s have discussions", len(enabled), len(repos), org)

        discussions: list[Discussion] = []
        for repo in enabled:
            discussions.extend(await self.collect_repo_discussions(repo, start, end))
        return discussions

    async def scrape_discussions(
        self,
        org: str,
        data_dir: Path,
        end_date: date | datetime,
        start_date: date | datetime,
    ) -> list[Discussion]:
        """Collect discussions for the window and merge them into the data directory.

        Args:
            org: Organization login
            data_dir: Data directory
            end_date: Exclusive window end; also names the output file
            start_date: Inclusive window start

        Returns:
            Discussions collected in this run
        """
        logger.info("Scraping discussions for %s", org)

        discussions = await self.collect(org, start_date, end_date)
        end_day = end_date.date() if isinstance(end_date, datetime) else end_date
        save_discussions(data_dir, end_day, discussions, self.config)

        logger.info("Found %d discussions for %s", len(discussions), org)
        return discussions
