"""
Search request/response data models for match, move and player queries.

Provides immutable filter, sort and pagination objects passed through to the
database layer, and the Page container returned by every search.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Optional, Sequence, TypeVar

from tictactoe.config import Config
from tictactoe.database.models import MatchStatus

T = TypeVar('T')


class SortDirection(Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


@dataclass(frozen=True)
class SortSpec:
    """One sort key; field names are matched case-insensitively."""
    field: str
    direction: SortDirection = SortDirection.ASCENDING


@dataclass(frozen=True)
class PageRequest:
    """1-based page number and page size."""
    page_number: int = 1
    page_size: int = Config.DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page_number - 1) * self.page_size


@dataclass(frozen=True)
class MatchFilter:
    status: Optional[MatchStatus] = None
    player_ids: Optional[Sequence[str]] = None  # Matches where any of these plays either side


@dataclass(frozen=True)
class MoveFilter:
    match_id: Optional[str] = None
    player_id: Optional[str] = None


@dataclass(frozen=True)
class PlayerFilter:
    usernames: Optional[Sequence[str]] = None  # Case-insensitive exact matches


@dataclass
class Page(Generic[T]):
    """One page of search results with the total count across all pages"""
    items: List[T] = field(default_factory=list)
    total_count: int = 0
    page_size: int = Config.DEFAULT_PAGE_SIZE
    page_number: int = 1

    @property
    def total_pages(self) -> int:
        if self.total_count == 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages
