"""Per-user supplemental fetches: merged work and currently open pull requests."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from github_org_scraper.exceptions import FetchError
from github_org_scraper.models.activity import (
    ActivityRecord,
    EventKind,
    ProcessData,
    PullRequestSummary,
    UserAggregate,
    parse_datetime,
    repo_from_api_item,
)
from github_org_scraper.models.results import (
    FetchFailure,
    FetchResult,
    FetchSource,
    FetchSuccess,
)
from github_org_scraper.services.github_rest_client import GitHubRestClient

logger = logging.getLogger(__name__)


def _authored_record(item: dict[str, Any], kind: EventKind) -> Optional[ActivityRecord]:
    """Build an authored issue/PR record from a Search API item."""
    number = item.get("number")
    if not isinstance(number, int):
        return None

    pull = item.get("pull_request") or {}
    timestamp = (
        parse_datetime(pull.get("merged_at"))
        or parse_datetime(item.get("closed_at"))
        or parse_datetime(item.get("created_at"))
    )
    if timestamp is None:
        return None

    return ActivityRecord(
        kind=kind,
        ref=number,
        timestamp=timestamp,
        repo=repo_from_api_item(item),
        title=item.get("title") or "",
        url=item.get("html_url") or "",
    )


class UserDataFetcher:
    """Fetches merged work and open pull requests for each discovered user.

    Each (user, source) fetch is isolated: a failure becomes a ``FetchFailure``
    result and contributes zero records, so one user's deleted or renamed
    account never costs the rest of the organization its data.
    """

    def __init__(self, rest_client: GitHubRestClient, max_workers: int = 4):
        self.rest_client = rest_client
        self.max_workers = max(1, max_workers)

    async def fetch_merge_events(self, user: str, org: str) -> list[ActivityRecord]:
        """Fetch merged pull requests and authored issues of ``user`` in ``org``."""
        logger.debug("Searching merged PRs and issues by %s in %s", user, org)

        merged = await self.rest_client.search_issues(
            f"org:{org} author:{user} is:pr is:merged"
        )
        issues = await self.rest_client.search_issues(f"org:{org} author:{user} is:issue")

        records = [_authored_record(item, EventKind.PR_MERGED) for item in merged]
        records += [_authored_record(item, EventKind.ISSUE_OPENED) for item in issues]
        return [r for r in records if r is not None]

    async def fetch_open_pulls(self, user: str, org: str) -> list[PullRequestSummary]:
        """Fetch pull requests of ``user`` in ``org`` that are currently open."""
        logger.debug("Searching open PRs by %s in %s", user, org)

        items = await self.rest_client.search_issues(f"org:{org} author:{user} is:pr is:open")
        return [PullRequestSummary.from_api(item) for item in items]

    async def _attempt(
        self,
        user: str,
        org: str,
        source: FetchSource,
        fetch: Callable[[str, str], Awaitable[list]],
    ) -> FetchResult:
        try:
            items = await fetch(user, org)
        except ValueError as e:
            # Includes pydantic's ValidationError for items the models reject
            logger.warning(
                "Unusable %s data for %s in %s: %s", source.value, user, org, e
            )
            error = FetchError(f"Unusable {source.value} data for {user}: {e}", transient=False)
            error.__cause__ = e
            return FetchFailure(user=user, source=source, error=error)
        except FetchError as e:
            logger.warning(
                "Error fetching %s for %s in %s (%s): %s",
                source.value,
                user,
                org,
                "transient" if e.transient else "permanent",
                e,
            )
            return FetchFailure(user=user, source=source, error=e)
        return FetchSuccess(user=user, source=source, items=items)

    async def fetch_user(
        self,
        user: str,
        org: str,
        semaphore: Optional[asyncio.Semaphore] = None,
    ) -> tuple[FetchResult, FetchResult]:
        """Run both supplemental fetches for one user."""
        semaphore = semaphore or asyncio.Semaphore(1)
        async with semaphore:
            merge_result = await self._attempt(
                user, org, FetchSource.MERGE_EVENTS, self.fetch_merge_events
            )
            open_result = await self._attempt(
                user, org, FetchSource.OPEN_PULLS, self.fetch_open_pulls
            )
        return merge_result, open_result

    async def enrich(
        self,
        data: ProcessData,
        org: str,
    ) -> tuple[ProcessData, list[FetchFailure]]:
        """Add supplemental records for every user in ``data``.

        Returns:
            Tuple of (new aggregate, failures encountered)
        """
        semaphore = asyncio.Semaphore(self.max_workers)
        users = list(data)
        results = await asyncio.gather(
            *(self.fetch_user(user, org, semaphore) for user in users)
        )

        enriched: ProcessData = {}
        failures: list[FetchFailure] = []

        for user, (merge_result, open_result) in zip(users, results):
            aggregate = data.get(user) or UserAggregate()
            enriched[user] = aggregate.model_copy(
                update={
                    "authored_issue_and_pr": [
                        *aggregate.authored_issue_and_pr,
                        *merge_result.items,
                    ],
                    "open_prs": (
                        [*(aggregate.open_prs or []), *open_result.items]
                        if open_result.ok
                        else None
                    ),
                }
            )
            failures.extend(r for r in (merge_result, open_result) if not r.ok)

        return enriched, failures
