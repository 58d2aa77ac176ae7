"""Tests for per-user supplemental fetches."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from github_org_scraper.exceptions import FetchError, GitHubNotFoundError
from github_org_scraper.models.activity import (
    ActivityRecord,
    EventKind,
    PullRequestSummary,
    UserAggregate,
)
from github_org_scraper.models.results import FetchFailure, FetchSource, FetchSuccess
from github_org_scraper.services.github_rest_client import GitHubRestClient
from github_org_scraper.services.user_data_fetcher import UserDataFetcher
from github_org_scraper.utils.rate_limiter import RateLimiter


def _search_client(responses: dict[str, list | Exception]) -> MagicMock:
    """Mock REST client answering search queries by exact query string."""

    async def search_issues(query, max_pages=None):
        result = responses.get(query, [])
        if isinstance(result, Exception):
            raise result
        return result

    client = MagicMock()
    client.search_issues = AsyncMock(side_effect=search_issues)
    return client


class TestFetchMergeEvents:
    """Tests for fetch_merge_events."""

    @pytest.mark.asyncio
    async def test_merged_prs_and_issues(self, make_search_item):
        """Test merged PRs and authored issues become authored records."""
        client = _search_client(
            {
                "org:acme author:alice is:pr is:merged": [
                    make_search_item(10, merged_at="2024-01-02T09:00:00Z"),
                ],
                "org:acme author:alice is:issue": [
                    make_search_item(4, is_pr=False, created_at="2023-12-01T00:00:00Z"),
                ],
            }
        )

        records = await UserDataFetcher(client).fetch_merge_events("alice", "acme")

        assert [(r.kind, r.ref) for r in records] == [
            (EventKind.PR_MERGED, 10),
            (EventKind.ISSUE_OPENED, 4),
        ]
        assert records[0].timestamp == datetime(2024, 1, 2, 9, tzinfo=timezone.utc)
        assert records[0].repo == "acme/widgets"

    @pytest.mark.asyncio
    async def test_items_without_number_are_dropped(self, make_search_item):
        """Test search items missing a number are ignored."""
        bad = make_search_item(1)
        bad["number"] = None
        client = _search_client({"org:acme author:alice is:pr is:merged": [bad]})

        assert await UserDataFetcher(client).fetch_merge_events("alice", "acme") == []


class TestFetchOpenPulls:
    """Tests for fetch_open_pulls."""

    @pytest.mark.asyncio
    async def test_open_pulls(self, make_search_item):
        """Test open PRs become summaries."""
        client = _search_client(
            {"org:acme author:bob is:pr is:open": [make_search_item(5, title="WIP")]}
        )

        pulls = await UserDataFetcher(client).fetch_open_pulls("bob", "acme")

        assert pulls == [
            PullRequestSummary(
                number=5,
                title="WIP",
                repo="acme/widgets",
                url="https://github.com/acme/widgets/pull/5",
                created_at=datetime(2024, 1, 1, 10, tzinfo=timezone.utc),
                updated_at=datetime(2024, 1, 1, 10, tzinfo=timezone.utc),
            )
        ]


class TestEnrich:
    """Tests for enriching the aggregate with per-user fetches."""

    @pytest.mark.asyncio
    async def test_failure_for_one_user_does_not_affect_others(self, make_search_item):
        """Test an open-pulls failure for bob leaves alice and carol intact."""
        client = _search_client(
            {
                "org:acme author:bob is:pr is:open": GitHubNotFoundError("gone"),
                "org:acme author:carol is:pr is:merged": [make_search_item(8)],
                "org:acme author:alice is:pr is:open": [make_search_item(2)],
            }
        )
        data = {"alice": UserAggregate(), "bob": UserAggregate(), "carol": UserAggregate()}

        enriched, failures = await UserDataFetcher(client, max_workers=2).enrich(data, "acme")

        assert set(enriched) == {"alice", "bob", "carol"}
        assert [p.number for p in enriched["alice"].open_prs] == [2]
        assert [r.ref for r in enriched["carol"].authored_issue_and_pr] == [8]
        # Unknown, so the persisted snapshot is kept at merge time
        assert enriched["bob"].open_prs is None
        assert len(failures) == 1
        assert failures[0].user == "bob"
        assert failures[0].source == FetchSource.OPEN_PULLS
        assert failures[0].error.transient is False

    @pytest.mark.asyncio
    async def test_both_sources_fail_independently(self, make_search_item):
        """Test a merge-events failure does not block the same user's open pulls."""
        client = _search_client(
            {
                "org:acme author:alice is:pr is:merged": FetchError("timeout"),
                "org:acme author:alice is:pr is:open": [make_search_item(3)],
            }
        )

        enriched, failures = await UserDataFetcher(client).enrich(
            {"alice": UserAggregate()}, "acme"
        )

        assert enriched["alice"].authored_issue_and_pr == []
        assert [p.number for p in enriched["alice"].open_prs] == [3]
        assert [f.source for f in failures] == [FetchSource.MERGE_EVENTS]

    @pytest.mark.asyncio
    async def test_preserves_parsed_activity(self):
        """Test enrichment keeps the activity the parser produced."""
        record = ActivityRecord(
            kind=EventKind.PR_OPENED,
            ref=10,
            timestamp=datetime(2024, 1, 2, tzinfo=timezone.utc),
        )
        data = {"alice": UserAggregate(activity=[record])}

        enriched, _ = await UserDataFetcher(_search_client({})).enrich(data, "acme")

        assert enriched["alice"].activity == [record]
        # Input aggregate is not mutated
        assert data["alice"].open_prs == []


class TestFetchUser:
    """Tests for the explicit result values of fetch_user."""

    @pytest.mark.asyncio
    async def test_results_are_discriminated(self):
        """Test success and failure results carry their source and user."""
        client = _search_client(
            {"org:acme author:alice is:pr is:merged": FetchError("boom")}
        )

        merge_result, open_result = await UserDataFetcher(client).fetch_user("alice", "acme")

        assert isinstance(merge_result, FetchFailure)
        assert merge_result.ok is False
        assert merge_result.items == ()
        assert isinstance(open_result, FetchSuccess)
        assert open_result.ok is True
        assert open_result.source == FetchSource.OPEN_PULLS


def _rest_client(test_config, handler) -> GitHubRestClient:
    return GitHubRestClient(
        config=test_config,
        rate_limiter=RateLimiter(),
        transport=httpx.MockTransport(handler),
    )


class TestEnrichOverHttp:
    """Tests for enrichment against the REST client."""

    @pytest.mark.asyncio
    async def test_search_budget_exhaustion_waits_for_reset(self, test_config):
        """Test more users than one Search window allows all succeed."""
        queries = []

        def handler(request: httpx.Request) -> httpx.Response:
            queries.append(request.url.params["q"])
            return httpx.Response(200, json={"total_count": 0, "items": []})

        # Three searches per user; twelve users exceed the 30-call window
        data = {f"u{i}": UserAggregate() for i in range(12)}

        with patch(
            "github_org_scraper.utils.rate_limiter.asyncio.sleep", new=AsyncMock()
        ) as sleep:
            async with _rest_client(test_config, handler) as client:
                enriched, failures = await UserDataFetcher(client, max_workers=2).enrich(
                    data, "acme"
                )

        assert failures == []
        assert set(enriched) == set(data)
        assert len(queries) == 36
        sleep.assert_awaited()

    @pytest.mark.asyncio
    async def test_non_json_body_fails_only_that_user(self, test_config, make_search_item):
        """Test an HTML body for bob leaves alice and carol enriched."""

        def handler(request: httpx.Request) -> httpx.Response:
            query = request.url.params["q"]
            if "author:bob" in query:
                return httpx.Response(200, text="<html>oops</html>")
            if query.endswith("is:pr is:open"):
                return httpx.Response(200, json={"items": [make_search_item(2)]})
            return httpx.Response(200, json={"items": []})

        data = {"alice": UserAggregate(), "bob": UserAggregate(), "carol": UserAggregate()}

        async with _rest_client(test_config, handler) as client:
            enriched, failures = await UserDataFetcher(client).enrich(data, "acme")

        assert [p.number for p in enriched["alice"].open_prs] == [2]
        assert [p.number for p in enriched["carol"].open_prs] == [2]
        assert sorted((f.user, f.source) for f in failures) == [
            ("bob", FetchSource.MERGE_EVENTS),
            ("bob", FetchSource.OPEN_PULLS),
        ]

    @pytest.mark.asyncio
    async def test_rejected_item_fails_only_that_source(self, test_config, make_search_item):
        """Test a search item the models reject becomes a failure, not an abort."""
        bad = make_search_item(3)
        bad["title"] = {"unexpected": "object"}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["q"] == "org:acme author:bob is:pr is:open":
                return httpx.Response(200, json={"items": [bad]})
            return httpx.Response(200, json={"items": []})

        data = {"alice": UserAggregate(), "bob": UserAggregate()}

        async with _rest_client(test_config, handler) as client:
            enriched, failures = await UserDataFetcher(client).enrich(data, "acme")

        assert enriched["alice"].open_prs == []
        assert enriched["bob"].open_prs is None
        assert [(f.user, f.source) for f in failures] == [("bob", FetchSource.OPEN_PULLS)]
        assert failures[0].error.transient is False
