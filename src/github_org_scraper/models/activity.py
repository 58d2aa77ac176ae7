"""Activity, event and per-user aggregate data models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from github_org_scraper.exceptions import ParseError


class EventType(str, Enum):
    """GitHub event types the parser knows how to normalize."""

    PUSH = "PushEvent"
    PULL_REQUEST = "PullRequestEvent"
    PULL_REQUEST_REVIEW = "PullRequestReviewEvent"
    PULL_REQUEST_REVIEW_COMMENT = "PullRequestReviewCommentEvent"
    ISSUES = "IssuesEvent"
    ISSUE_COMMENT = "IssueCommentEvent"
    CREATE = "CreateEvent"
    RELEASE = "ReleaseEvent"
    OTHER = "Other"


class EventKind(str, Enum):
    """Normalized kind of a single user action."""

    ISSUE_OPENED = "issue_opened"
    ISSUE_CLOSED = "issue_closed"
    ISSUE_REOPENED = "issue_reopened"
    ISSUE_COMMENT = "issue_comment"
    PR_OPENED = "pr_opened"
    PR_CLOSED = "pr_closed"
    PR_MERGED = "pr_merged"
    PR_REOPENED = "pr_reopened"
    PR_REVIEWED = "pr_reviewed"
    PR_REVIEW_COMMENT = "pr_review_comment"
    PR_COMMENT = "pr_comment"
    PUSH = "push"
    CREATE = "create"
    RELEASE = "release"


class GitHubEvent(BaseModel):
    """Raw event from the organization Events API."""

    id: str
    type: str
    actor: str
    repo: str
    created_at: datetime
    payload: dict = Field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "GitHubEvent":
        """Create from GitHub Events API response.

        Raises:
            ParseError: If the event has no actor or no usable timestamp
        """
        if not isinstance(data, dict):
            raise ParseError(f"Event is not an object: {type(data).__name__}")

        event_id = str(data.get("id", ""))
        actor = (data.get("actor") or {}).get("login")
        if not actor:
            raise ParseError("Event has no actor login", event_id=event_id)

        created_at = parse_datetime(data.get("created_at"))
        if created_at is None:
            raise ParseError("Event has no valid created_at", event_id=event_id)

        try:
            return cls(
                id=event_id,
                type=data.get("type") or "",
                actor=actor,
                repo=(data.get("repo") or {}).get("name") or "",
                created_at=created_at,
                payload=data.get("payload") or {},
            )
        except ValidationError as e:
            raise ParseError(f"Event has invalid fields: {e}", event_id=event_id) from e

    @property
    def event_type(self) -> EventType:
        """Get typed event type."""
        try:
            return EventType(self.type)
        except ValueError:
            return EventType.OTHER


class ActivityRecord(BaseModel):
    """A single observed action by a user."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    ref: int | str  # issue/PR number, or commit SHA / git ref name
    timestamp: datetime
    repo: str = ""
    title: str = ""
    url: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def reference_key(self) -> tuple[str, str, str]:
        """Natural key for authored issues and pull requests."""
        return (self.repo, str(self.ref), self.kind.value)

    @property
    def activity_key(self) -> tuple[datetime, str, str, str]:
        """Natural key for timeline activity entries."""
        return (self.timestamp, self.kind.value, self.repo, str(self.ref))


class PullRequestSummary(BaseModel):
    """Point-in-time view of an open pull request."""

    model_config = ConfigDict(frozen=True)

    number: int
    title: str = ""
    repo: str = ""
    url: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    draft: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PullRequestSummary":
        """Create from a Search API issue item that is a pull request."""
        return cls(
            number=data.get("number") or 0,
            title=data.get("title") or "",
            repo=repo_from_api_item(data),
            url=data.get("html_url") or "",
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            draft=bool(data.get("draft", False)),
        )


class UserAggregate(BaseModel):
    """Per-user accumulator of activity within and across runs."""

    authored_issue_and_pr: list[ActivityRecord] = Field(default_factory=list)
    activity: list[ActivityRecord] = Field(default_factory=list)
    # None when this run could not fetch the snapshot; the persisted one is kept
    open_prs: list[PullRequestSummary] | None = Field(default_factory=list)
    last_updated: str = ""


# Username -> aggregate. The unit of both in-memory processing and persisted state.
ProcessData = dict[str, UserAggregate]


def repo_from_api_item(data: dict[str, Any]) -> str:
    """Extract ``owner/repo`` from an issue or pull request API item."""
    repo_url = data.get("repository_url") or ""
    if repo_url:
        parts = repo_url.split("/")
        return f"{parts[-2]}/{parts[-1]}" if len(parts) >= 2 else ""

    base_repo = (data.get("base") or {}).get("repo") or {}
    if base_repo.get("full_name"):
        return base_repo["full_name"]

    # Parse from https://github.com/owner/repo/issues/123
    parts = (data.get("html_url") or "").split("/")
    if len(parts) >= 5:
        return f"{parts[3]}/{parts[4]}"
    return ""


def parse_datetime(value: str | None) -> datetime | None:
    """Parse ISO datetime string into an aware UTC datetime."""
    if not value:
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except (ValueError, TypeError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
