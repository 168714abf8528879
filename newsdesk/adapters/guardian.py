"""
Adapter for the Guardian Open Platform content API.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List

from pydantic import ValidationError

from newsdesk.adapters.base import HttpNewsProvider
from newsdesk.adapters.schemas import GuardianEnvelope, GuardianItem, GuardianSection, parse_entries
from newsdesk.exceptions import NewsdeskError
from newsdesk.models import Article, ArticleImage, Publisher, SearchFilters, Source, Topic

logger = logging.getLogger(__name__)

GUARDIAN_SOURCE = Source(id="the-guardian", name="The Guardian")

DEFAULT_SECTIONS = [
    Topic(id="world", name="World news"),
    Topic(id="politics", name="Politics"),
    Topic(id="business", name="Business"),
    Topic(id="technology", name="Technology"),
    Topic(id="science", name="Science"),
    Topic(id="environment", name="Environment"),
    Topic(id="sport", name="Sport"),
    Topic(id="culture", name="Culture"),
]


def _reading_time(item: GuardianItem) -> int:
    fields = item.fields
    if fields and fields.wordcount not in (None, ""):
        try:
            return max(1, math.ceil(int(fields.wordcount) / 200))
        except (TypeError, ValueError):
            pass
    body_length = len(fields.body) if fields and fields.body else 1000
    return max(1, math.ceil(body_length / 1000))


class GuardianProvider(HttpNewsProvider):
    name = "guardian"
    display_name = "Guardian"
    base_url = "https://content.guardianapis.com"
    key_param = "api-key"
    placeholder_keys = ("test",)

    async def _search_results(self, params: Dict[str, Any]) -> List[GuardianItem]:
        query = {
            "show-fields": "thumbnail,trailText,body,wordcount",
            "show-tags": "keyword",
        }
        query.update(params)
        payload = await self._request("/search", query)
        return parse_entries(GuardianItem, self._unwrap(payload).results)

    def _unwrap(self, payload: Any):
        try:
            envelope = GuardianEnvelope.model_validate(payload)
        except ValidationError as exc:
            raise self._malformed("unexpected response shape") from exc
        if envelope.response.status == "error":
            raise self._api_error(envelope.response.message or "unknown error")
        return envelope.response

    def transform_article(self, item: GuardianItem) -> Article:
        fields = item.fields
        thumbnail = fields.thumbnail if fields else None
        section = item.sectionName
        return Article(
            id=f"guardian-{item.id or item.webUrl}",
            title=item.webTitle or "",
            url=item.webUrl or "",
            source=GUARDIAN_SOURCE,
            published_at=item.webPublicationDate or "",
            excerpt=(fields.trailText if fields and fields.trailText else item.webTitle),
            body=fields.body if fields else None,
            section=section,
            topics=[section.lower() if section else "news"],
            image=ArticleImage(url=thumbnail) if thumbnail else None,
            reading_time_min=_reading_time(item),
        )

    async def get_top_stories(self, limit: int = 20) -> List[Article]:
        items = await self._search_results({"order-by": "newest", "page-size": str(limit)})
        return self._finalize((self.transform_article(item) for item in items), limit)

    async def get_articles_by_topic(self, topic_id: str, limit: int = 20) -> List[Article]:
        items = await self._search_results({"q": topic_id, "order-by": "newest", "page-size": str(limit)})
        return self._finalize((self.transform_article(item) for item in items), limit)

    async def get_articles_by_publisher(self, publisher_id: str, limit: int = 20) -> List[Article]:
        # Single-publisher API
        return await self.get_top_stories(limit)

    async def search(self, filters: SearchFilters) -> List[Article]:
        limit = filters.limit or 50
        params: Dict[str, Any] = {"order-by": "newest", "page-size": str(limit)}
        if filters.query:
            params["q"] = filters.query
        if filters.date_range:
            params["from-date"] = filters.date_range.from_.split("T")[0]
            params["to-date"] = filters.date_range.to.split("T")[0]
        items = await self._search_results(params)
        return self._finalize((self.transform_article(item) for item in items), limit)

    async def get_topics(self) -> List[Topic]:
        try:
            payload = await self._request("/sections")
            sections = parse_entries(GuardianSection, self._unwrap(payload).results)
        except NewsdeskError as exc:
            logger.warning("Guardian sections unavailable, using defaults: %s", exc)
            return list(DEFAULT_SECTIONS)
        return [Topic(id=section.id, name=section.webTitle) for section in sections]

    async def get_publishers(self) -> List[Publisher]:
        return [
            Publisher(
                id=GUARDIAN_SOURCE.id,
                name=GUARDIAN_SOURCE.name,
                homepage="https://theguardian.com",
                description="Independent journalism",
            )
        ]

    async def get_local_news(self, region: str, limit: int = 20) -> List[Article]:
        return await self.get_top_stories(limit)
