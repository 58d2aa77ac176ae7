"""Discussion data models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from github_org_scraper.exceptions import ParseError
from github_org_scraper.models.activity import parse_datetime


class Discussion(BaseModel):
    """GitHub discussion within an organization repository."""

    repo: str
    number: int
    title: str = ""
    url: str = ""
    author: str = ""
    category: str = ""
    created_at: datetime
    updated_at: datetime
    comment_count: int = 0

    @classmethod
    def from_graphql(cls, repo: str, node: dict[str, Any]) -> "Discussion":
        """Create from a GraphQL discussion node.

        Raises:
            ParseError: If the node has no usable timestamp or invalid fields
        """
        if not isinstance(node, dict):
            raise ParseError(f"Discussion node in {repo} is not an object")

        created_at = parse_datetime(node.get("createdAt"))
        updated_at = parse_datetime(node.get("updatedAt")) or created_at
        if created_at is None:
            raise ParseError(f"Discussion {repo}#{node.get('number')} has no valid createdAt")

        try:
            return cls(
                repo=repo,
                number=node.get("number") or 0,
                title=node.get("title") or "",
                url=node.get("url") or "",
                # Deleted accounts come back as a null author
                author=(node.get("author") or {}).get("login") or "",
                category=(node.get("category") or {}).get("name") or "",
                created_at=created_at,
                updated_at=updated_at,
                comment_count=(node.get("comments") or {}).get("totalCount") or 0,
            )
        except ValidationError as e:
            raise ParseError(f"Discussion {repo}#{node.get('number')} has invalid fields: {e}") from e

    @property
    def key(self) -> tuple[str, int]:
        return (self.repo, self.number)
