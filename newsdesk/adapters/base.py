"""
Provider protocol shared by every news source adapter.

An adapter translates one external API into the canonical ``Article`` /
``Topic`` / ``Publisher`` model. Adapters are stateless per call: the API key
and HTTP client are fixed at construction and all runtime bookkeeping
(cooldowns, counters) lives in ``ProviderManager``.
"""
from __future__ import annotations

import abc
import logging
from typing import Any, Dict, Iterable, List, Optional

from newsdesk.exceptions import ProviderError, ProviderErrorKind
from newsdesk.http_client import HttpClient
from newsdesk.models import Article, Publisher, SearchFilters, Topic
from newsdesk.security import is_configured_key

logger = logging.getLogger(__name__)


class NewsProvider(abc.ABC):
    """
    Capability set of a news source.

    Operations the upstream API cannot serve raise ``NotImplementedError``;
    the aggregation engine treats that as an empty result.
    """

    name: str = ""
    display_name: str = ""

    def is_available(self) -> bool:
        return True

    @abc.abstractmethod
    async def get_top_stories(self, limit: int = 20) -> List[Article]:
        ...

    @abc.abstractmethod
    async def get_articles_by_topic(self, topic_id: str, limit: int = 20) -> List[Article]:
        ...

    async def get_articles_by_publisher(self, publisher_id: str, limit: int = 20) -> List[Article]:
        raise NotImplementedError(f"{self.name} cannot filter by publisher")

    @abc.abstractmethod
    async def search(self, filters: SearchFilters) -> List[Article]:
        ...

    @abc.abstractmethod
    async def get_topics(self) -> List[Topic]:
        ...

    @abc.abstractmethod
    async def get_publishers(self) -> List[Publisher]:
        ...

    async def get_local_news(self, region: str, limit: int = 20) -> List[Article]:
        raise NotImplementedError(f"{self.name} has no regional feed")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class HttpNewsProvider(NewsProvider):
    """Base for adapters backed by a keyed REST API."""

    base_url: str = ""
    key_param: str = "apiKey"
    placeholder_keys: Iterable[str] = ()

    def __init__(self, api_key: Optional[str] = None, http: Optional[HttpClient] = None) -> None:
        self.api_key = (api_key or "").strip()
        self.http = http or HttpClient()

    def is_available(self) -> bool:
        return is_configured_key(self.api_key, self.placeholder_keys)

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if not self.is_available():
            raise ProviderError(
                ProviderErrorKind.AUTH_FAILURE,
                self.name,
                f"{self.display_name} API key not available or invalid",
            )
        query = {self.key_param: self.api_key}
        query.update(params or {})
        return await self.http.get_json(self.name, f"{self.base_url}{path}", params=query)

    def _malformed(self, detail: str) -> ProviderError:
        return ProviderError(ProviderErrorKind.MALFORMED_RESPONSE, self.name, f"{self.display_name}: {detail}")

    def _api_error(self, message: str, code: str = "") -> ProviderError:
        """Error reported inside a 200 response body."""
        lowered = f"{code} {message}".lower()
        if ("limit" in lowered and ("rate" in lowered or "usage" in lowered)) or "quota" in lowered or "too many" in lowered:
            kind = ProviderErrorKind.RATE_LIMITED
        elif "key" in lowered or "auth" in lowered or "access" in lowered:
            kind = ProviderErrorKind.AUTH_FAILURE
        else:
            kind = ProviderErrorKind.SERVER_ERROR
        return ProviderError(kind, self.name, f"{self.display_name} API error: {message or code}")

    def _finalize(self, articles: Iterable[Article], limit: Optional[int] = None) -> List[Article]:
        kept = [article for article in articles if article.is_valid()]
        if limit is not None:
            kept = kept[:limit]
        return kept
