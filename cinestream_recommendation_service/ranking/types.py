"""Domain types shared by the ranking pipeline."""
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class Dimension(str, Enum):
    """Content attributes a movie can be matched on."""
    CATEGORY = "category"
    LENGTH = "length"
    DIRECTOR = "director"
    ACTOR = "actor"
    KEYWORD = "keyword"


class Action(str, Enum):
    VIEW = "view"
    LIKE = "like"
    SHARE = "share"
    COMPLETE = "complete"


class ActivityLevel(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


def as_values(value: Any) -> tuple[str, ...]:
    """
    Normalize an attribute that may be missing, a scalar or a list.

    Args:
        value: Raw attribute value

    Returns:
        Tuple of non-empty string values
    """
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, Iterable):
        return tuple(str(v) for v in value if v not in (None, ""))
    return (str(value),)


def as_date(value: Any) -> date | None:
    """Parse a date from a date, datetime or ISO string; None when empty."""
    if value is None or value == "" or (isinstance(value, float) and math.isnan(value)):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class Item:
    """A movie as seen by the ranking pipeline. Never mutated by it."""
    id: str
    title: str | None = None
    categories: tuple[str, ...] = ()
    length_bucket: str | None = None
    directors: tuple[str, ...] = ()
    actors: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    popularity_score: float = 0.0
    release_date: date | None = None
    description: str | None = None
    thumbnail: str | None = None
    duration: int | None = None

    def values_for(self, dimension: Dimension) -> tuple[str, ...]:
        """Attribute values this item carries on one dimension."""
        if dimension is Dimension.CATEGORY:
            return self.categories
        if dimension is Dimension.LENGTH:
            return (self.length_bucket,) if self.length_bucket else ()
        if dimension is Dimension.DIRECTOR:
            return self.directors
        if dimension is Dimension.ACTOR:
            return self.actors
        return self.keywords

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "thumbnail": self.thumbnail,
            "duration": self.duration,
            "categories": list(self.categories),
            "length_category": self.length_bucket,
            "directors": list(self.directors),
            "actors": list(self.actors),
            "keywords": list(self.keywords),
            "score": self.popularity_score,
            "release_date": self.release_date.isoformat() if self.release_date else None,
        }


@dataclass
class Interaction:
    """One user event, with its movie resolved (None if the movie is gone)."""
    user_id: str
    item_id: str
    action: str
    timestamp: datetime
    item: Item | None = None


@dataclass
class PreferenceWeights:
    """Accumulated attribute weights for one user, built fresh per request."""
    categories: dict[str, float] = field(default_factory=dict)
    lengths: dict[str, float] = field(default_factory=dict)
    directors: dict[str, float] = field(default_factory=dict)
    actors: dict[str, float] = field(default_factory=dict)
    keywords: dict[str, float] = field(default_factory=dict)
    seen_ids: set[str] = field(default_factory=set)

    def for_dimension(self, dimension: Dimension) -> dict[str, float]:
        return {
            Dimension.CATEGORY: self.categories,
            Dimension.LENGTH: self.lengths,
            Dimension.DIRECTOR: self.directors,
            Dimension.ACTOR: self.actors,
            Dimension.KEYWORD: self.keywords,
        }[dimension]

    def is_empty(self) -> bool:
        return not any(self.for_dimension(d) for d in Dimension)


@dataclass
class ScoredCandidate:
    item: Item
    content_score: float = 0.0
    base_score: float = 0.0
    recency_bonus: float = 0.0
    total_score: float = 0.0
    is_serendipity: bool = False

    def to_dict(self) -> dict:
        """Item fields plus the ranking breakdown under 'reco'."""
        data = self.item.to_dict()
        data["reco"] = {
            "total_score": self.total_score,
            "content_score": self.content_score,
            "base_score": self.base_score,
            "recency_bonus": self.recency_bonus,
            "is_serendipity": self.is_serendipity,
        }
        return data


@dataclass
class CandidateCriteria:
    """Disjunctive retrieval filter: any listed value on any dimension matches."""
    filters: dict[Dimension, tuple[str, ...]]
    exclude_ids: frozenset[str] = frozenset()
    limit: int = 300
