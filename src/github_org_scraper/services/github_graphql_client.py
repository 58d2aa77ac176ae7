"""GitHub GraphQL API client for discussion data."""

from typing import Any, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from github_org_scraper.config import Config, get_config
from github_org_scraper.exceptions import FetchError, GitHubGraphQLError
from github_org_scraper.utils.rate_limiter import RateLimiter, get_rate_limiter

# Organization repositories, with whether discussions are enabled
ORG_REPOSITORIES_QUERY = """
query($org: String!, $cursor: String) {
  organization(login: $org) {
    repositories(first: 100, after: $cursor, orderBy: {field: NAME, direction: ASC}) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        name
        nameWithOwner
        hasDiscussionsEnabled
      }
    }
  }
}
"""

# Most recently updated discussions of one repository
REPO_DISCUSSIONS_QUERY = """
query($owner: String!, $name: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    discussions(first: 50, after: $cursor, orderBy: {field: UPDATED_AT, direction: DESC}) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        number
        title
        url
        createdAt
        updatedAt
        author {
          login
        }
        category {
          name
        }
        comments {
          totalCount
        }
      }
    }
  }
}
"""


class GitHubGraphQLClient:
    """Async client for GitHub GraphQL API."""

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
        if not self.config.github_token:
            raise GitHubGraphQLError(
                "GitHub token is required for GraphQL API. "
                "Set GITHUB_TOKEN environment variable."
            )

        return {
            "Authorization": f"Bearer {self.config.github_token}",
            "Content-Type": "application/json",
            "User-Agent": "github-org-scraper/0.1.0",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.github_graphql_url,
                headers=self._get_headers(),
                timeout=self.config.request_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "GitHubGraphQLClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @retry(
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        client = await self._get_client()
        return await client.post("", json=payload)

    async def execute(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Execute a GraphQL query.

        Args:
            query: GraphQL query string
            variables: Query variables

        Returns:
            Query result data

        Raises:
            GitHubGraphQLError: If the query fails
            FetchError: If the request could not be sent
        """
        await self.rate_limiter.acquire_graphql()

        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            raise FetchError(f"GraphQL request failed: {e!r}", transient=True) from e

        self.rate_limiter.graphql.update_from_headers(response.headers)

        if response.status_code != 200:
            raise GitHubGraphQLError(
                f"GraphQL request failed with status {response.status_code}: {response.text}",
                transient=response.status_code >= 500,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise GitHubGraphQLError(f"Invalid JSON in GraphQL response: {e}") from e
        if not isinstance(result, dict):
            raise GitHubGraphQLError("Unexpected GraphQL response shape")

        if result.get("errors"):
            error_messages = [e.get("message", "Unknown error") for e in result["errors"]]
            raise GitHubGraphQLError(
                f"GraphQL errors: {'; '.join(error_messages)}",
                errors=result["errors"],
            )

        return result.get("data") or {}

    async def get_org_repositories(self, org: str) -> list[dict[str, Any]]:
        """Get all repositories of an organization.

        Args:
            org: Organization login

        Returns:
            Repository nodes (name, nameWithOwner, hasDiscussionsEnabled)
        """
        repos: list[dict[str, Any]] = []
        cursor = None
        while True:
            result = await self.execute(
                ORG_REPOSITORIES_QUERY, {"org": org, "cursor": cursor}
            )
            if not result.get("organization"):
                raise GitHubGraphQLError(f"Organization not found: {org}")

            connection = result["organization"]["repositories"]
            repos.extend(connection["nodes"])

            page_info = connection["pageInfo"]
            if not page_info["hasNextPage"]:
                return repos
            cursor = page_info["endCursor"]

    async def get_discussions_page(
        self,
        owner: str,
        name: str,
        cursor: Optional[str] = None,
    ) -> tuple[list[dict[str, Any]], Optional[str]]:
        """Get one page of a repository's discussions, most recently updated first.

        Returns:
            Tuple of (discussion nodes, cursor of the next page or None)
        """
        result = await self.execute(
            REPO_DISCUSSIONS_QUERY,
            {"owner": owner, "name": name, "cursor": cursor},
        )
        if not result.get("repository"):
            raise GitHubGraphQLError(f"Repository not found: {owner}/{name}")

        connection = result["repository"]["discussions"]
        page_info = connection["pageInfo"]
        next_cursor = page_info["endCursor"] if page_info["hasNextPage"] else None
        return connection["nodes"], next_cursor
