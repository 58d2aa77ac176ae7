"""Exceptions for GitHub Org Scraper.

Exception Hierarchy:
    ScraperError (base)
    ├── FetchError (remote data could not be retrieved; ``transient`` flag)
    │   ├── GitHubAPIError (HTTP API errors with status codes)
    │   │   ├── GitHubRateLimitError (403/429 rate limit from API response)
    │   │   └── GitHubNotFoundError (404 not found)
    │   ├── GitHubGraphQLError (GraphQL API errors)
    │   └── RateLimitExceededError (local rate limit tracking, before making request)
    ├── ParseError (a single raw event could not be normalized)
    └── PersistError (the data directory cannot be read or written)

Usage:
    - FetchError from the org event fetch aborts the run; from a per-user
      supplemental fetch it is logged and treated as an empty result.
    - ParseError never escapes the parser: the offending event is skipped.
    - PersistError is fatal for the run.
"""

__all__ = [
    "ScraperError",
    "FetchError",
    "GitHubAPIError",
    "GitHubRateLimitError",
    "GitHubNotFoundError",
    "GitHubGraphQLError",
    "RateLimitExceededError",
    "ParseError",
    "PersistError",
]


class ScraperError(Exception):
    """Base exception for all GitHub Org Scraper errors."""

    pass


class FetchError(ScraperError):
    """Raised when remote data could not be retrieved.

    ``transient`` is True for failures that may succeed on a later run
    (network errors, timeouts, rate limits, server errors) and False for
    permanent ones (not found, unauthorized).
    """

    def __init__(self, message: str, transient: bool = True):
        super().__init__(message)
        self.transient = transient


class GitHubAPIError(FetchError):
    """Base exception for GitHub API errors (HTTP responses with error status codes)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: dict | None = None,
    ):
        transient = status_code is None or status_code >= 500
        super().__init__(message, transient=transient)
        self.status_code = status_code
        self.response_body = response_body


class GitHubRateLimitError(GitHubAPIError):
    """Raised when GitHub API returns a rate limit error (HTTP 403/429)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = 403,
        response_body: dict | None = None,
        reset_time: float | None = None,
    ):
        super().__init__(message, status_code=status_code, response_body=response_body)
        self.transient = True
        self.reset_time = reset_time


class GitHubNotFoundError(GitHubAPIError):
    """Raised when a GitHub resource is not found (HTTP 404)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = 404,
        response_body: dict | None = None,
    ):
        super().__init__(message, status_code=status_code, response_body=response_body)


class GitHubGraphQLError(FetchError):
    """Exception for GraphQL API errors."""

    def __init__(self, message: str, errors: list | None = None, transient: bool = False):
        super().__init__(message, transient=transient)
        self.errors = errors or []


class RateLimitExceededError(FetchError):
    """Raised by local rate limiter when limits are exhausted.

    Raised before the request is sent, when the local tracker shows no
    remaining budget.
    """

    def __init__(self, message: str, reset_time: float | None = None):
        super().__init__(message, transient=True)
        self.reset_time = reset_time


class ParseError(ScraperError):
    """Raised when a raw event cannot be normalized into an activity record."""

    def __init__(self, message: str, event_id: str | None = None):
        super().__init__(message)
        self.event_id = event_id


class PersistError(ScraperError):
    """Raised when persisted data cannot be loaded or written."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path
