"""Result types for per-user supplemental fetches."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class FetchSource(str, Enum):
    """Per-user data sources fetched after event parsing."""

    MERGE_EVENTS = "merge_events"
    OPEN_PULLS = "open_pulls"


@dataclass(frozen=True)
class FetchSuccess(Generic[T]):
    """Records fetched for one user from one source."""

    user: str
    source: FetchSource
    items: list[T] = field(default_factory=list)

    ok = True


@dataclass(frozen=True)
class FetchFailure:
    """A failed fetch for one user from one source; contributes no records."""

    user: str
    source: FetchSource
    error: Exception

    ok = False
    items: tuple = ()


FetchResult = Union[FetchSuccess[T], FetchFailure]
