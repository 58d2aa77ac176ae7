"""GitHub REST API client."""

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from github_org_scraper.config import Config, get_config
from github_org_scraper.exceptions import (
    FetchError,
    GitHubAPIError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from github_org_scraper.utils.pagination import get_next_page_url, with_page_params
from github_org_scraper.utils.rate_limiter import RateLimiter, get_rate_limiter

logger = logging.getLogger(__name__)


class GitHubRestClient:
    """Async client for GitHub REST API."""

    def __init__(
        self,
        config: Optional[Config] = None,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or get_config()
        self.rate_limiter = rate_limiter or get_rate_limiter()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_headers(self) -> dict[str, str]:
        """Get headers for API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "github-org-scraper/0.1.0",
        }
        if self.config.github_token:
            headers["Authorization"] = f"Bearer {self.config.github_token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.github_api_url,
                headers=self._get_headers(),
                timeout=self.config.request_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "GitHubRestClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _update_rate_limit(self, headers: httpx.Headers, is_search: bool = False) -> None:
        """Update rate limiter from response headers."""
        state = self.rate_limiter.search if is_search else self.rate_limiter.rest
        state.update_from_headers(headers)

    @retry(
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _send(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        return await client.request(method, endpoint, **kwargs)

    async def _request(
        self,
        method: str,
        endpoint: str,
        is_search: bool = False,
        **kwargs,
    ) -> httpx.Response:
        """Make an API request with rate limiting and retries."""
        if is_search:
            await self.rate_limiter.acquire_search()
        else:
            await self.rate_limiter.acquire_rest()

        try:
            response = await self._send(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            raise FetchError(f"Request to {endpoint} failed: {e!r}", transient=True) from e

        self._update_rate_limit(response.headers, is_search)

        if response.status_code < 400:
            return response

        body = _json_body(response)
        message = body.get("message", "Unknown error")

        if response.status_code == 404:
            raise GitHubNotFoundError(
                f"Resource not found: {endpoint}",
                response_body=body,
            )
        if response.status_code in (403, 429) and "rate limit" in message.lower():
            reset = response.headers.get("x-ratelimit-reset")
            raise GitHubRateLimitError(
                "Rate limit exceeded",
                status_code=response.status_code,
                response_body=body,
                reset_time=float(reset) if reset else None,
            )
        if response.status_code >= 500:
            raise GitHubAPIError(
                f"Server error: {response.status_code}",
                status_code=response.status_code,
            )
        raise GitHubAPIError(
            f"API error ({response.status_code}): {message}",
            status_code=response.status_code,
            response_body=body,
        )

    async def get(self, endpoint: str, **kwargs) -> Any:
        """Make a GET request and return JSON response."""
        response = await self._request("GET", endpoint, **kwargs)
        return _decode(response, endpoint)

    async def get_paginated(
        self,
        endpoint: str,
        max_pages: Optional[int] = None,
        per_page: Optional[int] = None,
        is_search: bool = False,
    ) -> list[dict[str, Any]]:
        """Fetch all pages of a paginated endpoint.

        A failure on any page propagates, as does reaching ``max_pages`` while
        more pages remain; a partial list is never returned.

        Args:
            endpoint: API endpoint (will append pagination params)
            max_pages: Maximum number of pages to fetch (None for all)
            per_page: Items per page (max 100)
            is_search: Whether this is a Search API request

        Returns:
            List of all items across all pages
        """
        all_items: list[dict[str, Any]] = []
        page = 1
        url: Optional[str] = with_page_params(
            endpoint, per_page or self.config.default_per_page
        )

        while url:
            response = await self._request("GET", url, is_search=is_search)
            data = _decode(response, endpoint)

            if is_search and isinstance(data, dict):
                if data.get("incomplete_results"):
                    logger.warning("Search results for %s are incomplete", endpoint)
                items = data.get("items", [])
            elif isinstance(data, list):
                items = data
            else:
                raise GitHubAPIError(
                    f"Unexpected response shape for paginated endpoint {endpoint}",
                    status_code=response.status_code,
                )

            all_items.extend(items)

            url = get_next_page_url(response.headers.get("Link"))
            if url and max_pages is not None and page >= max_pages:
                raise FetchError(
                    f"{endpoint} has more than {max_pages} pages; refusing a truncated result",
                    transient=False,
                )
            page += 1

            # Small delay to be nice to the API
            if url:
                await asyncio.sleep(0.1)

        return all_items

    async def get_org_events(
        self,
        org: str,
        max_pages: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Get an organization's public events (max 300 events, last 90 days)."""
        return await self.get_paginated(
            f"/orgs/{org}/events",
            max_pages=max_pages or self.config.max_events_pages,
        )

    async def search_issues(
        self,
        query: str,
        max_pages: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Search issues and pull requests.

        Args:
            query: Search query (e.g., "org:acme author:alice is:pr is:open")
            max_pages: Maximum pages to fetch (each page = 100 results)

        Returns:
            List of matching issues/PRs
        """
        endpoint = f"/search/issues?q={quote(query)}&sort=updated&order=desc"
        return await self.get_paginated(
            endpoint,
            max_pages=max_pages or self.config.max_search_pages,
            is_search=True,
        )


def _json_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _decode(response: httpx.Response, endpoint: str) -> Any:
    """Decode a successful response body.

    Raises:
        GitHubAPIError: If the body is not JSON
    """
    try:
        return response.json()
    except ValueError as e:
        raise GitHubAPIError(
            f"Invalid JSON from {endpoint}: {e}",
            status_code=response.status_code,
        ) from e
