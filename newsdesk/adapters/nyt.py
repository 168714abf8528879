"""
Adapter for the New York Times Top Stories and Article Search APIs.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from newsdesk.adapters.base import HttpNewsProvider
from newsdesk.adapters.schemas import (
    NytMultimedia,
    NytSearchDoc,
    NytSearchEnvelope,
    NytTopStoriesEnvelope,
    NytTopStory,
    parse_entries,
)
from newsdesk.exceptions import ProviderError
from newsdesk.models import Article, ArticleImage, Publisher, SearchFilters, Source, Topic, estimate_reading_time

logger = logging.getLogger(__name__)

NYT_SOURCE = Source(id="nytimes", name="The New York Times")
STATIC_IMAGE_HOST = "https://static01.nyt.com/"
PREFERRED_IMAGE_FORMATS = ("superJumbo", "jumbo", "articleLarge", "Normal")

SECTION_MAP = {
    "technology": "technology",
    "world": "world",
    "business": "business",
    "science": "science",
    "health": "health",
    "sports": "sports",
    "arts": "arts",
    "politics": "politics",
    "opinion": "opinion",
    "food": "food",
    "travel": "travel",
    "us": "us",
    "national": "us",
    "international": "world",
}

SECTIONS = [
    ("home", "Home"),
    ("world", "World"),
    ("us", "U.S."),
    ("politics", "Politics"),
    ("business", "Business"),
    ("technology", "Technology"),
    ("science", "Science"),
    ("health", "Health"),
    ("sports", "Sports"),
    ("arts", "Arts"),
    ("books", "Books"),
    ("movies", "Movies"),
    ("theater", "Theater"),
    ("food", "Food"),
    ("travel", "Travel"),
    ("magazine", "Magazine"),
    ("realestate", "Real Estate"),
    ("fashion", "Fashion"),
    ("opinion", "Opinion"),
]


def _strip_byline(value: Optional[str]) -> str:
    if not value:
        return "NYT Staff"
    return re.sub(r"^By\s+", "", value).strip() or "NYT Staff"


def _to_image(media: NytMultimedia, prefix_relative: bool = False) -> Optional[ArticleImage]:
    if not media.url:
        return None
    url = media.url
    if prefix_relative and not url.startswith("http"):
        url = f"{STATIC_IMAGE_HOST}{url.lstrip('/')}"
    return ArticleImage(url=url, width=media.width or 800, height=media.height or 600)


def best_image(multimedia: Optional[List[Dict[str, Any]]]) -> Optional[ArticleImage]:
    media = parse_entries(NytMultimedia, multimedia or [])
    if not media:
        return None
    for fmt in PREFERRED_IMAGE_FORMATS:
        for entry in media:
            if entry.format == fmt:
                return _to_image(entry)
    return _to_image(media[0])


def _search_image(multimedia: Any) -> Optional[ArticleImage]:
    if isinstance(multimedia, dict):
        # Newer Article Search payloads nest the default crop under "default"
        multimedia = [multimedia.get("default") or multimedia]
    media = parse_entries(NytMultimedia, multimedia or [])
    if not media:
        return None
    return _to_image(media[0], prefix_relative=True)


def _compact_date(value: str) -> str:
    return re.sub(r"[-:T]", "", value)[:8]


class NYTProvider(HttpNewsProvider):
    name = "nyt"
    display_name = "New York Times"
    base_url = "https://api.nytimes.com/svc"
    key_param = "api-key"
    placeholder_keys = ("demo-key",)

    async def _request_checked(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        payload = await self._request(path, params)
        if isinstance(payload, dict) and payload.get("fault"):
            fault = payload["fault"] if isinstance(payload["fault"], dict) else {}
            detail = fault.get("detail") if isinstance(fault.get("detail"), dict) else {}
            raise self._api_error(str(fault.get("faultstring", "")), str(detail.get("errorcode", "")))
        return payload

    async def _top_stories(self, section: str, limit: int) -> List[Article]:
        payload = await self._request_checked(f"/topstories/v2/{section}.json")
        try:
            envelope = NytTopStoriesEnvelope.model_validate(payload)
        except ValidationError as exc:
            raise self._malformed("unexpected top stories shape") from exc
        stories = parse_entries(NytTopStory, envelope.results)
        return self._finalize((self.transform_top_story(story) for story in stories), limit)

    def transform_top_story(self, story: NytTopStory) -> Article:
        url = story.url or story.short_url or ""
        local_id = url.rstrip("/").split("/")[-1] if url else (story.uri or "")
        excerpt = story.abstract or (story.des_facet[0] if story.des_facet else "")
        return Article(
            id=f"nyt-{local_id}",
            title=story.title or "",
            url=url,
            source=NYT_SOURCE,
            published_at=story.published_date or story.created_date or "",
            excerpt=excerpt,
            author=_strip_byline(story.byline),
            section=story.section or "News",
            topics=[story.section or "news"],
            image=best_image(story.multimedia),
            reading_time_min=estimate_reading_time(story.abstract),
        )

    def transform_search_doc(self, doc: NytSearchDoc) -> Article:
        headline = doc.headline
        title = (headline.main or headline.print_headline) if headline else None
        excerpt = doc.abstract or doc.lead_paragraph or doc.snippet
        section = doc.section_name or doc.news_desk
        return Article(
            id=f"nyt-search-{doc.id or doc.web_url}",
            title=title or "",
            url=doc.web_url or "",
            source=NYT_SOURCE,
            published_at=doc.pub_date or "",
            excerpt=excerpt,
            author=_strip_byline(doc.byline.original if doc.byline else None),
            section=section,
            topics=[doc.section_name.lower()] if doc.section_name else ["news"],
            image=_search_image(doc.multimedia),
            reading_time_min=estimate_reading_time(doc.abstract or doc.lead_paragraph, default_length=300),
        )

    async def get_top_stories(self, limit: int = 20) -> List[Article]:
        return await self._top_stories("home", limit)

    async def get_articles_by_topic(self, topic_id: str, limit: int = 20) -> List[Article]:
        section = SECTION_MAP.get(topic_id.lower())
        if section:
            try:
                return await self._top_stories(section, limit)
            except ProviderError as exc:
                if exc.is_rate_limit:
                    raise
                logger.warning("NYT section %s not available: %s", section, exc)
        logger.info("Falling back to NYT search for topic %s", topic_id)
        return await self.search(SearchFilters(query=topic_id, limit=limit))

    async def get_articles_by_publisher(self, publisher_id: str, limit: int = 20) -> List[Article]:
        return await self.get_top_stories(limit)

    async def search(self, filters: SearchFilters) -> List[Article]:
        params: Dict[str, Any] = {"sort": "newest", "page": "0"}
        if filters.query:
            params["q"] = filters.query
        if filters.date_range:
            params["begin_date"] = _compact_date(filters.date_range.from_)
            params["end_date"] = _compact_date(filters.date_range.to)
        payload = await self._request_checked("/search/v2/articlesearch.json", params)
        try:
            envelope = NytSearchEnvelope.model_validate(payload)
        except ValidationError as exc:
            raise self._malformed("unexpected search shape") from exc
        docs = parse_entries(NytSearchDoc, envelope.response.docs)
        return self._finalize((self.transform_search_doc(doc) for doc in docs), filters.limit or 20)

    async def get_local_news(self, region: str, limit: int = 20) -> List[Article]:
        region_key = region.lower()
        if region_key in ("us", "usa"):
            try:
                return await self._top_stories("us", limit)
            except ProviderError as exc:
                if exc.is_rate_limit:
                    raise
                logger.warning("NYT US section not available, falling back to top stories: %s", exc)
                return await self.get_top_stories(limit)
        try:
            return await self.search(SearchFilters(query=f"{region} local news", limit=min(limit, 15)))
        except ProviderError as exc:
            if exc.is_rate_limit:
                raise
            logger.warning("NYT local news search failed, falling back to top stories: %s", exc)
            return await self.get_top_stories(min(limit, 15))

    async def get_topics(self) -> List[Topic]:
        return [Topic(id=section_id, name=name) for section_id, name in SECTIONS]

    async def get_publishers(self) -> List[Publisher]:
        return [
            Publisher(
                id=NYT_SOURCE.id,
                name=NYT_SOURCE.name,
                description="All the News That's Fit to Print",
                homepage="https://nytimes.com",
            )
        ]
