"""Pagination utilities for GitHub API."""

import re
from typing import Optional

_LINK_PATTERN = re.compile(r'<([^>]+)>;\s*rel="([^"]+)"')


def parse_link_header(link_header: Optional[str]) -> dict[str, str]:
    """Parse GitHub's Link header into a dictionary of rel -> url.

    Example Link header:
    <https://api.github.com/organizations/1/events?page=2>; rel="next",
    <https://api.github.com/organizations/1/events?page=10>; rel="last"
    """
    if not link_header:
        return {}

    return {rel: url for url, rel in _LINK_PATTERN.findall(link_header)}


def get_next_page_url(link_header: Optional[str]) -> Optional[str]:
    """Extract the 'next' page URL from a Link header."""
    return parse_link_header(link_header).get("next")


def with_page_params(endpoint: str, per_page: int, page: int = 1) -> str:
    """Append ``per_page`` and ``page`` query parameters to an endpoint."""
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}per_page={per_page}&page={page}"
