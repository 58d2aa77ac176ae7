"""Output handlers for GitHub Org Scraper."""

from github_org_scraper.output.console import Console

__all__ = [
    "Console",
]
