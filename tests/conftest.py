"""Pytest configuration and fixtures."""

import itertools
from typing import Any, Callable

import pytest

from github_org_scraper.config import Config, set_config
from github_org_scraper.utils.rate_limiter import reset_rate_limiter


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset global state before each test."""
    reset_rate_limiter()
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def test_config():
    """Create a test configuration."""
    config = Config(
        github_token="test_token",
        github_api_url="https://api.github.test",
        github_graphql_url="https://api.github.test/graphql",
        max_workers=2,
    )
    set_config(config)
    return config


@pytest.fixture
def unauthenticated_config():
    """Create a configuration without a token."""
    config = Config(
        github_token=None,
        github_api_url="https://api.github.test",
        github_graphql_url="https://api.github.test/graphql",
    )
    set_config(config)
    return config


@pytest.fixture
def make_event() -> Callable[..., dict[str, Any]]:
    """Factory for raw Events API payloads."""
    ids = itertools.count(1)

    def _make(
        event_type: str,
        actor: str,
        created_at: str,
        payload: dict[str, Any] | None = None,
        repo: str = "acme/widgets",
    ) -> dict[str, Any]:
        return {
            "id": str(next(ids)),
            "type": event_type,
            "actor": {"login": actor},
            "repo": {"name": repo},
            "created_at": created_at,
            "payload": payload or {},
            "public": True,
        }

    return _make


@pytest.fixture
def make_search_item() -> Callable[..., dict[str, Any]]:
    """Factory for Search API issue/PR items."""

    def _make(
        number: int,
        repo: str = "acme/widgets",
        title: str = "",
        created_at: str = "2024-01-01T10:00:00Z",
        merged_at: str | None = None,
        is_pr: bool = True,
    ) -> dict[str, Any]:
        kind = "pull" if is_pr else "issues"
        item: dict[str, Any] = {
            "number": number,
            "title": title or f"Item {number}",
            "state": "open",
            "html_url": f"https://github.com/{repo}/{kind}/{number}",
            "repository_url": f"https://api.github.com/repos/{repo}",
            "created_at": created_at,
            "updated_at": created_at,
            "closed_at": merged_at,
            "user": {"login": "someone"},
        }
        if is_pr:
            item["pull_request"] = {"merged_at": merged_at}
        return item

    return _make
