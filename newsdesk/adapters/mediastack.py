"""
Adapter for the Mediastack live news API.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from newsdesk.adapters.base import HttpNewsProvider
from newsdesk.adapters.schemas import MediastackEnvelope, MediastackItem, parse_entries
from newsdesk.models import Article, ArticleImage, Publisher, SearchFilters, Source, Topic, estimate_reading_time

logger = logging.getLogger(__name__)

CATEGORIES = [
    Topic(id="technology", name="Technology"),
    Topic(id="business", name="Business"),
    Topic(id="sports", name="Sports"),
    Topic(id="health", name="Health"),
    Topic(id="science", name="Science"),
    Topic(id="entertainment", name="Entertainment"),
]


class MediastackProvider(HttpNewsProvider):
    name = "mediastack"
    display_name = "Mediastack"
    base_url = "http://api.mediastack.com/v1"
    key_param = "access_key"

    async def _news(self, params: Dict[str, Any], limit: int) -> List[Article]:
        query = {"languages": "en", "limit": str(limit)}
        query.update(params)
        payload = await self._request("/news", query)
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error = payload["error"]
            raise self._api_error(str(error.get("message", "")), str(error.get("code", "")))
        try:
            envelope = MediastackEnvelope.model_validate(payload)
        except ValidationError as exc:
            raise self._malformed("unexpected response shape") from exc
        items = parse_entries(MediastackItem, envelope.data)
        return self._finalize((self.transform_article(item) for item in items), limit)

    def transform_article(self, item: MediastackItem) -> Article:
        category = item.category or "general"
        return Article(
            id=f"mediastack-{item.url}",
            title=item.title or "",
            url=item.url or "",
            source=Source(id=item.source or "mediastack", name=item.source or "Mediastack"),
            published_at=item.published_at or "",
            excerpt=item.description or "",
            author=item.author or "Unknown",
            section=item.category or "General",
            topics=[category],
            image=ArticleImage(url=item.image) if item.image else None,
            reading_time_min=estimate_reading_time(item.description),
        )

    async def get_top_stories(self, limit: int = 20) -> List[Article]:
        return await self._news({"countries": "us"}, limit)

    async def get_articles_by_topic(self, topic_id: str, limit: int = 20) -> List[Article]:
        return await self._news({"categories": topic_id}, limit)

    async def search(self, filters: SearchFilters) -> List[Article]:
        return await self._news({"keywords": filters.query or ""}, filters.limit or 20)

    async def get_topics(self) -> List[Topic]:
        return list(CATEGORIES)

    async def get_publishers(self) -> List[Publisher]:
        return [Publisher(id="mediastack", name="Mediastack", homepage="https://mediastack.com")]
