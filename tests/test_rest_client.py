"""Tests for the GitHub REST client using an in-memory transport."""

import httpx
import pytest

from github_org_scraper.exceptions import (
    FetchError,
    GitHubAPIError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    RateLimitExceededError,
)
from github_org_scraper.services.github_rest_client import GitHubRestClient
from github_org_scraper.utils.rate_limiter import RateLimiter, RateLimitState


def _client(test_config, handler, rate_limiter=None) -> GitHubRestClient:
    return GitHubRestClient(
        config=test_config,
        rate_limiter=rate_limiter or RateLimiter(),
        transport=httpx.MockTransport(handler),
    )


class TestGetPaginated:
    """Tests for Link-header pagination."""

    @pytest.mark.asyncio
    async def test_follows_next_links(self, test_config):
        """Test all pages are fetched by following rel=next."""
        pages = {
            "1": ([{"id": "1"}, {"id": "2"}], '<https://api.github.test/orgs/acme/events?page=2>; rel="next"'),
            "2": ([{"id": "3"}], None),
        }

        def handler(request: httpx.Request) -> httpx.Response:
            body, link = pages[request.url.params.get("page", "1")]
            headers = {"Link": link} if link else {}
            return httpx.Response(200, json=body, headers=headers)

        async with _client(test_config, handler) as client:
            events = await client.get_org_events("acme")

        assert [e["id"] for e in events] == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_error_on_later_page_fails_whole_fetch(self, test_config):
        """Test a failing page raises rather than returning a truncated list."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("page", "1") == "1":
                return httpx.Response(
                    200,
                    json=[{"id": "1"}],
                    headers={"Link": '<https://api.github.test/orgs/acme/events?page=2>; rel="next"'},
                )
            return httpx.Response(502)

        async with _client(test_config, handler) as client:
            with pytest.raises(GitHubAPIError) as exc_info:
                await client.get_org_events("acme")

        assert exc_info.value.status_code == 502
        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_search_items_are_unwrapped(self, test_config):
        """Test search responses yield their items and pass the query through."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params["q"])
            return httpx.Response(200, json={"total_count": 1, "items": [{"number": 4}]})

        async with _client(test_config, handler) as client:
            items = await client.search_issues("org:acme author:alice is:pr is:open")

        assert items == [{"number": 4}]
        assert seen == ["org:acme author:alice is:pr is:open"]


class TestErrors:
    """Tests for mapping HTTP failures to exceptions."""

    @pytest.mark.asyncio
    async def test_not_found_is_permanent(self, test_config):
        """Test 404 raises a permanent not-found error."""

        def handler(request):
            return httpx.Response(404, json={"message": "Not Found"})

        async with _client(test_config, handler) as client:
            with pytest.raises(GitHubNotFoundError) as exc_info:
                await client.get("/orgs/nope")

        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    async def test_rate_limit_is_transient(self, test_config):
        """Test a rate limit response raises a transient error."""

        def handler(request):
            return httpx.Response(
                403,
                json={"message": "API rate limit exceeded for user"},
                headers={"x-ratelimit-reset": "1700000000"},
            )

        async with _client(test_config, handler) as client:
            with pytest.raises(GitHubRateLimitError) as exc_info:
                await client.get("/orgs/acme/events")

        assert exc_info.value.transient is True
        assert exc_info.value.reset_time == 1700000000.0

    @pytest.mark.asyncio
    async def test_unauthorized_is_permanent(self, test_config):
        """Test 401 raises a permanent API error."""

        def handler(request):
            return httpx.Response(401, json={"message": "Bad credentials"})

        async with _client(test_config, handler) as client:
            with pytest.raises(GitHubAPIError, match="Bad credentials") as exc_info:
                await client.get("/orgs/acme/events")

        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    async def test_transport_error_becomes_fetch_error(self, test_config):
        """Test non-retried transport errors are wrapped as transient fetch errors."""

        def handler(request):
            raise httpx.RemoteProtocolError("connection reset", request=request)

        async with _client(test_config, handler) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.get("/orgs/acme/events")

        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_local_rate_limit_prevents_request(self, test_config):
        """Test an exhausted local budget raises before any request is sent."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=[])

        limiter = RateLimiter(
            rest=RateLimitState(limit=60, remaining=0, reset_time=4_000_000_000)
        )

        async with _client(test_config, handler, rate_limiter=limiter) as client:
            with pytest.raises(RateLimitExceededError):
                await client.get("/orgs/acme/events")

        assert calls == []

    @pytest.mark.asyncio
    async def test_rate_limit_headers_update_state(self, test_config):
        """Test response headers refresh the local rate limit state."""

        def handler(request):
            return httpx.Response(
                200,
                json=[],
                headers={
                    "x-ratelimit-limit": "5000",
                    "x-ratelimit-remaining": "4321",
                    "x-ratelimit-reset": "1700000000",
                },
            )

        limiter = RateLimiter()
        async with _client(test_config, handler, rate_limiter=limiter) as client:
            await client.get("/orgs/acme/events")

        assert limiter.rest.remaining == 4321


class TestIncompleteResponses:
    """Tests for responses that cannot yield a complete result."""

    @pytest.mark.asyncio
    async def test_non_json_body_raises_api_error(self, test_config):
        """Test a 200 with an HTML body raises instead of a decode error."""

        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        async with _client(test_config, handler) as client:
            with pytest.raises(GitHubAPIError, match="Invalid JSON"):
                await client.search_issues("org:acme author:bob is:pr is:open")

    @pytest.mark.asyncio
    async def test_page_cap_with_more_pages_raises(self, test_config):
        """Test stopping at max_pages while a next link remains is an error."""

        def handler(request: httpx.Request) -> httpx.Response:
            page = int(request.url.params.get("page", "1"))
            return httpx.Response(
                200,
                json=[{"id": str(page)}],
                headers={
                    "Link": f'<https://api.github.test/orgs/acme/events?page={page + 1}>; rel="next"'
                },
            )

        async with _client(test_config, handler) as client:
            with pytest.raises(FetchError, match="more than 2 pages") as exc_info:
                await client.get_org_events("acme", max_pages=2)

        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    async def test_page_cap_reached_exactly_is_complete(self, test_config):
        """Test a last page landing on max_pages returns every item."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("page", "1") == "1":
                return httpx.Response(
                    200,
                    json=[{"id": "1"}],
                    headers={"Link": '<https://api.github.test/orgs/acme/events?page=2>; rel="next"'},
                )
            return httpx.Response(200, json=[{"id": "2"}])

        async with _client(test_config, handler) as client:
            events = await client.get_org_events("acme", max_pages=2)

        assert [e["id"] for e in events] == ["1", "2"]
