"""Normalization of raw organization events into per-user activity."""

import logging
from typing import Any, Callable, Iterable, Optional

from pydantic import ValidationError

from github_org_scraper.exceptions import ParseError
from github_org_scraper.models.activity import (
    ActivityRecord,
    EventKind,
    EventType,
    GitHubEvent,
    ProcessData,
    UserAggregate,
)

logger = logging.getLogger(__name__)

_ISSUE_ACTIONS = {
    "opened": EventKind.ISSUE_OPENED,
    "closed": EventKind.ISSUE_CLOSED,
    "reopened": EventKind.ISSUE_REOPENED,
}

_PULL_REQUEST_ACTIONS = {
    "opened": EventKind.PR_OPENED,
    "reopened": EventKind.PR_REOPENED,
}


def _require(payload: dict[str, Any], key: str, event: GitHubEvent) -> dict[str, Any]:
    value = payload.get(key)
    if not isinstance(value, dict):
        raise ParseError(f"{event.type} payload has no '{key}'", event_id=event.id)
    return value


def _require_number(item: dict[str, Any], event: GitHubEvent) -> int:
    number = item.get("number")
    if not isinstance(number, int):
        raise ParseError(f"{event.type} payload has no item number", event_id=event.id)
    return number


def _record(event: GitHubEvent, kind: EventKind, ref: int | str, **fields) -> ActivityRecord:
    try:
        return ActivityRecord(
            kind=kind,
            ref=ref,
            timestamp=event.created_at,
            repo=event.repo,
            **fields,
        )
    except ValidationError as e:
        raise ParseError(f"{event.type} has invalid fields: {e}", event_id=event.id) from e


def _issues(event: GitHubEvent) -> Optional[ActivityRecord]:
    kind = _ISSUE_ACTIONS.get(event.payload.get("action", ""))
    if kind is None:
        return None
    issue = _require(event.payload, "issue", event)
    return _record(
        event,
        kind,
        _require_number(issue, event),
        title=issue.get("title") or "",
        url=issue.get("html_url") or "",
    )


def _pull_request(event: GitHubEvent) -> Optional[ActivityRecord]:
    action = event.payload.get("action", "")
    pull = _require(event.payload, "pull_request", event)

    if action == "closed":
        kind = EventKind.PR_MERGED if pull.get("merged") else EventKind.PR_CLOSED
    else:
        kind = _PULL_REQUEST_ACTIONS.get(action)
        if kind is None:
            return None

    return _record(
        event,
        kind,
        _require_number(pull, event),
        title=pull.get("title") or "",
        url=pull.get("html_url") or "",
    )


def _pull_request_review(event: GitHubEvent) -> Optional[ActivityRecord]:
    pull = _require(event.payload, "pull_request", event)
    review = event.payload.get("review") or {}
    return _record(
        event,
        EventKind.PR_REVIEWED,
        _require_number(pull, event),
        title=pull.get("title") or "",
        url=review.get("html_url") or pull.get("html_url") or "",
        payload={"state": review.get("state", "")},
    )


def _pull_request_review_comment(event: GitHubEvent) -> Optional[ActivityRecord]:
    pull = _require(event.payload, "pull_request", event)
    comment = event.payload.get("comment") or {}
    return _record(
        event,
        EventKind.PR_REVIEW_COMMENT,
        _require_number(pull, event),
        title=pull.get("title") or "",
        url=comment.get("html_url") or pull.get("html_url") or "",
    )


def _issue_comment(event: GitHubEvent) -> Optional[ActivityRecord]:
    if event.payload.get("action", "created") != "created":
        return None
    issue = _require(event.payload, "issue", event)
    comment = event.payload.get("comment") or {}
    kind = EventKind.PR_COMMENT if issue.get("pull_request") else EventKind.ISSUE_COMMENT
    return _record(
        event,
        kind,
        _require_number(issue, event),
        title=issue.get("title") or "",
        url=comment.get("html_url") or issue.get("html_url") or "",
    )


def _push(event: GitHubEvent) -> Optional[ActivityRecord]:
    head = event.payload.get("head")
    if not head:
        raise ParseError("PushEvent payload has no head commit", event_id=event.id)
    ref = event.payload.get("ref") or ""
    return _record(
        event,
        EventKind.PUSH,
        head,
        payload={
            "branch": ref.removeprefix("refs/heads/"),
            "commits": event.payload.get("size", len(event.payload.get("commits", []))),
        },
    )


def _create(event: GitHubEvent) -> Optional[ActivityRecord]:
    ref_type = event.payload.get("ref_type", "")
    # A created repository has no ref of its own
    ref = event.payload.get("ref") or event.repo
    return _record(event, EventKind.CREATE, ref, payload={"ref_type": ref_type})


def _release(event: GitHubEvent) -> Optional[ActivityRecord]:
    if event.payload.get("action") != "published":
        return None
    release = _require(event.payload, "release", event)
    tag = release.get("tag_name")
    if not tag:
        raise ParseError("ReleaseEvent payload has no tag_name", event_id=event.id)
    return _record(
        event,
        EventKind.RELEASE,
        tag,
        title=release.get("name") or tag,
        url=release.get("html_url") or "",
    )


_HANDLERS: dict[EventType, Callable[[GitHubEvent], Optional[ActivityRecord]]] = {
    EventType.ISSUES: _issues,
    EventType.PULL_REQUEST: _pull_request,
    EventType.PULL_REQUEST_REVIEW: _pull_request_review,
    EventType.PULL_REQUEST_REVIEW_COMMENT: _pull_request_review_comment,
    EventType.ISSUE_COMMENT: _issue_comment,
    EventType.PUSH: _push,
    EventType.CREATE: _create,
    EventType.RELEASE: _release,
}


def to_activity_record(event: GitHubEvent) -> Optional[ActivityRecord]:
    """Derive the activity record for one event.

    Returns:
        The record, or None if the event kind is not one we track

    Raises:
        ParseError: If a tracked event is missing required payload fields
    """
    handler = _HANDLERS.get(event.event_type)
    if handler is None:
        return None
    return handler(event)


def is_bot(login: str) -> bool:
    return login.endswith("[bot]")


def parse_events(raw_events: Iterable[dict[str, Any]]) -> ProcessData:
    """Build a per-user activity map from raw organization events.

    Unknown kinds, bot actors and malformed events are skipped; they never
    abort the parse. Activity order follows the input order.
    """
    data: ProcessData = {}
    skipped = 0

    for raw in raw_events:
        try:
            event = GitHubEvent.from_api(raw)
            record = to_activity_record(event)
        except ParseError as e:
            logger.debug("Skipping malformed event %s: %s", e.event_id, e)
            skipped += 1
            continue

        if record is None or is_bot(event.actor):
            skipped += 1
            continue

        data.setdefault(event.actor, UserAggregate()).activity.append(record)

    logger.debug("Parsed events for %d users (%d events skipped)", len(data), skipped)
    return data
