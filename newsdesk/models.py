"""
Core data structures shared by every provider adapter and the aggregation layer.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

DEFAULT_IMAGE_WIDTH = 800
DEFAULT_IMAGE_HEIGHT = 600


class Feature(str, Enum):
    TOP_STORIES = "top_stories"
    SEARCH = "search"
    TOPICS = "topics"
    LOCAL_NEWS = "local_news"
    PUBLISHERS = "publishers"
    SPORTS = "sports"


@dataclass(frozen=True)
class Source:
    id: str
    name: str


@dataclass
class ArticleImage:
    url: str
    width: int = DEFAULT_IMAGE_WIDTH
    height: int = DEFAULT_IMAGE_HEIGHT


@dataclass
class Article:
    """
    Provider-agnostic article. ``source`` is the publisher, not the provider
    that fetched it; the provider is encoded in the ``id`` prefix.
    """

    id: str
    title: str
    url: str
    source: Source
    published_at: str = ""
    excerpt: Optional[str] = None
    body: Optional[str] = None
    author: Optional[str] = None
    section: Optional[str] = None
    topics: List[str] = field(default_factory=lambda: ["news"])
    image: Optional[ArticleImage] = None
    reading_time_min: int = 1

    def is_valid(self) -> bool:
        return bool((self.title or "").strip()) and bool((self.url or "").strip())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Topic:
    id: str
    name: str
    description: Optional[str] = None


@dataclass
class Publisher:
    id: str
    name: str
    description: Optional[str] = None
    homepage: Optional[str] = None


@dataclass
class DateRange:
    from_: str
    to: str


@dataclass
class SearchFilters:
    limit: int = 20
    query: Optional[str] = None
    sources: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    date_range: Optional[DateRange] = None
    region: Optional[str] = None


def estimate_reading_time(text: Optional[str], chars_per_minute: int = 200, default_length: int = 200) -> int:
    """Rough reading time in minutes from the length of whatever text we have."""
    length = len(text) if text else default_length
    return max(1, math.ceil(length / chars_per_minute))


def valid_articles(articles: List[Article]) -> List[Article]:
    return [article for article in articles if article.is_valid()]
