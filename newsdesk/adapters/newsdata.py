"""
Adapter for the NewsData.io latest news API.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from newsdesk.adapters.base import HttpNewsProvider
from newsdesk.adapters.schemas import NewsDataEnvelope, NewsDataItem, parse_entries
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


class NewsDataProvider(HttpNewsProvider):
    name = "newsdata"
    display_name = "NewsData.io"
    base_url = "https://newsdata.io/api/1"
    key_param = "apikey"

    async def _news(self, params: Dict[str, Any], limit: int) -> List[Article]:
        query = {"language": "en"}
        query.update(params)
        payload = await self._request("/news", query)
        if isinstance(payload, dict) and payload.get("status") == "error":
            details = payload.get("results") if isinstance(payload.get("results"), dict) else {}
            raise self._api_error(str(details.get("message", "")), str(details.get("code", "")))
        try:
            envelope = NewsDataEnvelope.model_validate(payload)
        except ValidationError as exc:
            raise self._malformed("unexpected response shape") from exc
        items = parse_entries(NewsDataItem, envelope.results)
        # No page-size parameter on the free tier; truncate client-side
        return self._finalize((self.transform_article(item) for item in items), limit)

    def transform_article(self, item: NewsDataItem) -> Article:
        categories = [category for category in (item.category or []) if category]
        creators = [creator for creator in (item.creator or []) if creator]
        return Article(
            id=f"newsdata-{item.article_id or item.link}",
            title=item.title or "",
            url=item.link or "",
            source=Source(id="newsdata", name=item.source_id or "NewsData.io"),
            published_at=item.pubDate or "",
            excerpt=item.description or "",
            author=", ".join(creators) if creators else "Unknown",
            section=categories[0] if categories else "General",
            topics=categories or ["general"],
            image=ArticleImage(url=item.image_url) if item.image_url else None,
            reading_time_min=estimate_reading_time(item.description),
        )

    async def get_top_stories(self, limit: int = 20) -> List[Article]:
        return await self._news({"q": "top"}, limit)

    async def get_articles_by_topic(self, topic_id: str, limit: int = 20) -> List[Article]:
        return await self._news({"q": topic_id}, limit)

    async def search(self, filters: SearchFilters) -> List[Article]:
        return await self._news({"q": filters.query or ""}, filters.limit or 20)

    async def get_topics(self) -> List[Topic]:
        return list(CATEGORIES)

    async def get_publishers(self) -> List[Publisher]:
        return [Publisher(id="newsdata", name="NewsData.io", homepage="https://newsdata.io")]
