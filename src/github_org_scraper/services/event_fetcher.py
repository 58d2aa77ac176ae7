"""Organization timeline event fetcher."""

import logging
from datetime import datetime
from typing import Any

from github_org_scraper.exceptions import FetchError
from github_org_scraper.models.activity import parse_datetime
from github_org_scraper.services.github_rest_client import GitHubRestClient

logger = logging.getLogger(__name__)

# The org Events API serves at most this many of the newest events
EVENTS_API_LIMIT = 300


class EventFetcher:
    """Retrieves raw organization events within a date window."""

    def __init__(self, rest_client: GitHubRestClient):
        self.rest_client = rest_client

    async def fetch_events(
        self,
        org: str,
        start_date: datetime,
        end_date: datetime,
    ) -> list[dict[str, Any]]:
        """Fetch all org events whose timestamp falls in ``[start_date, end_date)``.

        Every page is fetched before filtering; a failure on any page raises
        ``FetchError`` instead of returning a truncated window. So does a
        capped event feed whose oldest event is still after ``start_date``.

        Args:
            org: Organization login
            start_date: Inclusive window start (aware datetime)
            end_date: Exclusive window end (aware datetime)

        Returns:
            Raw event dicts, oldest first
        """
        logger.debug("Fetching events for %s", org)

        raw_events = await self.rest_client.get_org_events(org)
        self._check_coverage(org, raw_events, start_date)

        in_window = []
        for event in raw_events:
            created_at = parse_datetime(event.get("created_at"))
            # Undated events are passed through; the parser decides what to do with them
            if created_at is None or start_date <= created_at < end_date:
                in_window.append(event)

        in_window.sort(key=lambda e: e.get("created_at") or "")

        logger.debug(
            "Kept %d of %d events for %s in window", len(in_window), len(raw_events), org
        )
        return in_window

    @staticmethod
    def _check_coverage(
        org: str,
        raw_events: list[dict[str, Any]],
        start_date: datetime,
    ) -> None:
        """Raise if the feed was capped before it reached back to ``start_date``."""
        if len(raw_events) < EVENTS_API_LIMIT:
            return

        timestamps = [parse_datetime(e.get("created_at")) for e in raw_events]
        dated = [t for t in timestamps if t is not None]
        if dated and min(dated) > start_date:
            raise FetchError(
                f"Events for {org} only reach back to {min(dated).isoformat()}, "
                f"after the window start {start_date.isoformat()}; use a shorter window",
                transient=False,
            )
