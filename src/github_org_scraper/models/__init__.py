"""Data models for GitHub Org Scraper."""

from github_org_scraper.models.activity import (
    ActivityRecord,
    EventKind,
    EventType,
    GitHubEvent,
    ProcessData,
    PullRequestSummary,
    UserAggregate,
)
from github_org_scraper.models.discussion import Discussion
from github_org_scraper.models.results import (
    FetchFailure,
    FetchResult,
    FetchSource,
    FetchSuccess,
)

__all__ = [
    "ActivityRecord",
    "EventKind",
    "EventType",
    "GitHubEvent",
    "ProcessData",
    "PullRequestSummary",
    "UserAggregate",
    "Discussion",
    "FetchSource",
    "FetchSuccess",
    "FetchFailure",
    "FetchResult",
]
