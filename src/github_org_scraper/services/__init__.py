"""Services for GitHub data collection."""

from github_org_scraper.services.discussion_scraper import DiscussionScraper
from github_org_scraper.services.event_fetcher import EventFetcher
from github_org_scraper.services.event_parser import parse_events
from github_org_scraper.services.github_graphql_client import GitHubGraphQLClient
from github_org_scraper.services.github_rest_client import GitHubRestClient
from github_org_scraper.services.user_data_fetcher import UserDataFetcher

__all__ = [
    "DiscussionScraper",
    "EventFetcher",
    "GitHubGraphQLClient",
    "GitHubRestClient",
    "UserDataFetcher",
    "parse_events",
]
