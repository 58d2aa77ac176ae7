"""Utility modules for GitHub Org Scraper."""

from github_org_scraper.utils.file_lock import DirectoryLock, atomic_write_json
from github_org_scraper.utils.pagination import (
    get_next_page_url,
    parse_link_header,
    with_page_params,
)
from github_org_scraper.utils.rate_limiter import RateLimiter, get_rate_limiter, reset_rate_limiter

__all__ = [
    "DirectoryLock",
    "atomic_write_json",
    "RateLimiter",
    "get_rate_limiter",
    "reset_rate_limiter",
    "parse_link_header",
    "get_next_page_url",
    "with_page_params",
]
