"""Configuration management for GitHub Org Scraper."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass
class Config:
    """Application configuration."""

    github_token: str | None
    github_api_url: str = "https://api.github.com"
    github_graphql_url: str = "https://api.github.com/graphql"

    # Pagination
    default_per_page: int = 100
    max_events_pages: int = 10  # Org events API max is 300 events
    max_search_pages: int = 10  # Search API limit is 1000 results

    # Per-request timeout (seconds)
    request_timeout: float = 30.0

    # Concurrent per-user fetches
    max_workers: int = 4

    # Persisted layout inside the data directory
    data_filename: str = "github_activity.json"
    discussions_dirname: str = "discussions"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        # override=False ensures environment variables take precedence over .env
        load_dotenv(override=False)

        # Support both GITHUB_ORG_SCRAPER_TOKEN (preferred) and GITHUB_TOKEN (fallback)
        token = os.getenv("GITHUB_ORG_SCRAPER_TOKEN") or os.getenv("GITHUB_TOKEN")

        return cls(
            github_token=token,
            github_api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
            github_graphql_url=os.getenv(
                "GITHUB_GRAPHQL_URL", "https://api.github.com/graphql"
            ),
            max_workers=int(os.getenv("GITHUB_ORG_SCRAPER_WORKERS", "4")),
        )

    @property
    def is_authenticated(self) -> bool:
        """Check if a GitHub token is configured."""
        return bool(self.github_token)


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def set_config(config: Config | None) -> None:
    """Set the global configuration instance (useful for testing)."""
    global _config
    _config = config
