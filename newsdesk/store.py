"""
Consumer-facing store facade.

The UI layer calls the async ``load_*`` / ``search_news`` operations and reads
``NewsStore.state``. Every load marks its slice as loading, runs the
aggregation engine under the fallback policy, then commits the batch (or an
error message) and clears loading. Persisting the state is left to whoever
subscribes through ``on_change``.
"""
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field, fields
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from newsdesk.adapters.base import NewsProvider
from newsdesk.aggregator import AggregationEngine, ArticleFetch, strip_disambiguation
from newsdesk.exceptions import FallbackFailed, ProviderError
from newsdesk.fallback import FallbackPolicy, LoadResult
from newsdesk.http_client import HttpClient
from newsdesk.models import Article, Feature, Publisher, SearchFilters, Topic
from newsdesk.registry import ProviderConfig
from newsdesk.settings import NewsSettings

logger = logging.getLogger(__name__)

FOR_YOU = "for_you"
LOCAL = "local"
TOP_STORIES = "top_stories"
SPORTS = "sports"
MAX_FOR_YOU_TOPICS = 3
MAX_RECENT_QUERIES = 10
MAX_HISTORY = 100
FALLBACK_SEARCH_LIMIT = 15


@dataclass
class UserPreferences:
    followed_topics: List[str] = field(default_factory=lambda: ["technology", "world"])
    followed_publishers: List[str] = field(default_factory=list)
    region: str = "us"


@dataclass
class ArticlesState:
    sections: Dict[str, List[Article]] = field(default_factory=dict)
    saved: List[Article] = field(default_factory=list)
    downloaded: List[Article] = field(default_factory=list)
    history: List[Article] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None


@dataclass
class SearchState:
    results: List[Article] = field(default_factory=list)
    recent_queries: List[str] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None


@dataclass
class TopicsState:
    available: List[Topic] = field(default_factory=list)
    followed: List[Topic] = field(default_factory=list)
    loading: bool = False


@dataclass
class PublishersState:
    available: List[Publisher] = field(default_factory=list)
    followed: List[Publisher] = field(default_factory=list)
    loading: bool = False


@dataclass
class AppState:
    preferences: UserPreferences = field(default_factory=UserPreferences)
    articles: ArticlesState = field(default_factory=ArticlesState)
    search: SearchState = field(default_factory=SearchState)
    topics: TopicsState = field(default_factory=TopicsState)
    publishers: PublishersState = field(default_factory=PublishersState)


class NewsStore:
    def __init__(
        self,
        engine: AggregationEngine,
        fallback: FallbackPolicy,
        *,
        settings: Optional[NewsSettings] = None,
        state: Optional[AppState] = None,
        on_change: Optional[Callable[[AppState], None]] = None,
        http: Optional[HttpClient] = None,
    ) -> None:
        self.engine = engine
        self.fallback = fallback
        self.settings = settings or NewsSettings()
        self.state = state or AppState(preferences=UserPreferences(region=self.settings.region))
        self.on_change = on_change
        self._generations: Dict[str, int] = {}
        self._in_flight: Set[str] = set()
        # Closed by aclose(); None when the caller owns the client
        self._http = http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "NewsStore":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # Request generations: a load that completes after a newer load of the
    # same slot started is discarded instead of overwriting fresher data.

    def _begin(self, slot: str) -> int:
        generation = self._generations.get(slot, 0) + 1
        self._generations[slot] = generation
        self._in_flight.add(slot)
        return generation

    def _is_current(self, slot: str, generation: int) -> bool:
        return self._generations.get(slot) == generation

    def _finish(self, slot: str) -> None:
        self._in_flight.discard(slot)

    def _sections_loading(self) -> bool:
        return any(slot.startswith("section:") for slot in self._in_flight)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.state)

    async def _load_into_section(
        self,
        section: str,
        feature: Feature,
        fetch: ArticleFetch,
        fallback: Callable[[NewsProvider], Awaitable[List[Article]]],
        *,
        max_results: int,
        failure_message: str,
    ) -> None:
        slot = f"section:{section}"
        generation = self._begin(slot)
        articles_state = self.state.articles
        articles_state.loading = True
        articles_state.error = None

        async def primary() -> List[Article]:
            return await self.engine.aggregate_articles(feature, fetch, max_results=max_results, label=section)

        result: Optional[LoadResult] = None
        try:
            result = await self.fallback.run(primary, fallback, label=section)
        except FallbackFailed as exc:
            logger.error("Giving up on %s: %s", section, exc)

        if not self._is_current(slot, generation):
            logger.info("Discarding stale %s load (generation %s)", section, generation)
            return
        self._finish(slot)
        if result is None:
            articles_state.error = failure_message
        else:
            articles_state.sections[section] = result.articles
            articles_state.error = result.warning if result.degraded else None
        articles_state.loading = self._sections_loading()
        self._notify()

    async def load_top_stories(self) -> None:
        await self._load_into_section(
            TOP_STORIES,
            Feature.TOP_STORIES,
            lambda config, limit: config.instance.get_top_stories(limit),
            lambda provider: provider.get_top_stories(),
            max_results=self.settings.max_articles,
            failure_message="Failed to load top stories",
        )

    async def load_sports_news(self) -> None:
        await self._load_into_section(
            SPORTS,
            Feature.SPORTS,
            lambda config, limit: config.instance.get_articles_by_topic(SPORTS, limit),
            lambda provider: provider.get_articles_by_topic(SPORTS),
            max_results=self.settings.max_sports_articles,
            failure_message="Failed to load sports news",
        )

    async def load_section(self, section_type: str) -> None:
        if section_type == TOP_STORIES:
            await self.load_top_stories()
            return

        if section_type == FOR_YOU:
            feature, fetch = Feature.TOP_STORIES, self._for_you_fetch()
        elif section_type == LOCAL:
            feature, fetch = Feature.LOCAL_NEWS, self._local_fetch()
        else:
            feature, fetch = Feature.TOP_STORIES, self._topic_fetch(section_type)

        await self._load_into_section(
            section_type,
            feature,
            fetch,
            self._section_fallback(section_type),
            max_results=self.settings.max_articles,
            failure_message=f"Failed to load {section_type}",
        )

    @staticmethod
    def _section_fallback(section_type: str) -> Callable[[NewsProvider], Awaitable[List[Article]]]:
        async def fallback(provider: NewsProvider) -> List[Article]:
            if section_type in (FOR_YOU, LOCAL):
                return await provider.get_top_stories()
            return await provider.get_articles_by_topic(section_type)

        return fallback

    @staticmethod
    def _topic_fetch(topic_id: str) -> ArticleFetch:
        async def fetch(config: ProviderConfig, limit: int) -> List[Article]:
            return await config.instance.get_articles_by_topic(topic_id, limit)

        return fetch

    def _for_you_fetch(self) -> ArticleFetch:
        topics = list(self.state.preferences.followed_topics[:MAX_FOR_YOU_TOPICS])

        async def fetch(config: ProviderConfig, limit: int) -> List[Article]:
            if not topics:
                return await config.instance.get_top_stories(limit)
            per_topic = math.ceil(limit / MAX_FOR_YOU_TOPICS)
            results = await asyncio.gather(
                *(config.instance.get_articles_by_topic(topic, per_topic) for topic in topics),
                return_exceptions=True,
            )
            articles: List[Article] = []
            errors: List[BaseException] = []
            for result in results:
                if isinstance(result, BaseException):
                    logger.warning("%s topic fetch failed: %s", config.name, result)
                    errors.append(result)
                else:
                    articles.extend(result)
            if errors and len(errors) == len(results):
                provider_errors = [error for error in errors if isinstance(error, ProviderError)]
                raise (provider_errors or errors)[0]
            return articles[:limit]

        return fetch

    def _local_fetch(self) -> ArticleFetch:
        region = self.state.preferences.region

        async def fetch(config: ProviderConfig, limit: int) -> List[Article]:
            if config.supports(Feature.LOCAL_NEWS):
                articles = await config.instance.get_local_news(region, limit)
                return articles[:limit]
            return await config.instance.get_top_stories(limit)

        return fetch

    async def search_news(self, query: str) -> None:
        query = (query or "").strip()
        if not query:
            self.clear_search()
            return

        slot = "search"
        generation = self._begin(slot)
        search_state = self.state.search
        search_state.loading = True
        search_state.error = None

        async def primary() -> List[Article]:
            return await self.engine.aggregate_articles(
                Feature.SEARCH,
                lambda config, limit: config.instance.search(SearchFilters(query=query, limit=limit)),
                max_results=self.settings.max_search_results,
                delay=self.engine.search_delay,
                label=f"search '{query}'",
            )

        async def fallback(provider: NewsProvider) -> List[Article]:
            return await provider.search(SearchFilters(query=query, limit=FALLBACK_SEARCH_LIMIT))

        result: Optional[LoadResult] = None
        try:
            result = await self.fallback.run(primary, fallback, label="search")
        except FallbackFailed as exc:
            logger.error("Search failed: %s", exc)

        if not self._is_current(slot, generation):
            logger.info("Discarding stale search for %r", query)
            return
        self._finish(slot)
        search_state.loading = False
        if result is None:
            search_state.error = "Search failed"
        else:
            search_state.results = result.articles
            search_state.error = result.warning if result.degraded else None
            recent = [query] + [previous for previous in search_state.recent_queries if previous != query]
            search_state.recent_queries = recent[:MAX_RECENT_QUERIES]
        self._notify()

    async def perform_search(self, query: str) -> None:
        await self.search_news(query)

    async def load_topics(self) -> None:
        self.state.topics.loading = True
        try:
            available = await self.engine.aggregate_topics()
        finally:
            self.state.topics.loading = False
        if not available:
            logger.warning("No topics loaded; keeping %s cached", len(self.state.topics.available))
            self._notify()
            return
        self.state.topics.available = available
        self._refresh_followed_topics()
        self._notify()

    async def load_publishers(self) -> None:
        self.state.publishers.loading = True
        try:
            available = await self.engine.aggregate_publishers()
        finally:
            self.state.publishers.loading = False
        if not available:
            logger.warning("No publishers loaded; keeping %s cached", len(self.state.publishers.available))
            self._notify()
            return
        self.state.publishers.available = available
        self._refresh_followed_publishers()
        self._notify()

    def _refresh_followed_topics(self) -> None:
        followed = set(self.state.preferences.followed_topics)
        self.state.topics.followed = [
            topic for topic in self.state.topics.available if strip_disambiguation(topic.id) in followed
        ]

    def _refresh_followed_publishers(self) -> None:
        followed = set(self.state.preferences.followed_publishers)
        self.state.publishers.followed = [
            publisher for publisher in self.state.publishers.available if publisher.id in followed
        ]

    def follow_topic(self, topic_id: str) -> None:
        clean_id = strip_disambiguation(topic_id)
        if clean_id not in self.state.preferences.followed_topics:
            self.state.preferences.followed_topics.append(clean_id)
        self._refresh_followed_topics()
        self._notify()

    def unfollow_topic(self, topic_id: str) -> None:
        clean_id = strip_disambiguation(topic_id)
        self.state.preferences.followed_topics = [
            existing for existing in self.state.preferences.followed_topics if existing != clean_id
        ]
        self._refresh_followed_topics()
        self._notify()

    def follow_publisher(self, publisher_id: str) -> None:
        if publisher_id not in self.state.preferences.followed_publishers:
            self.state.preferences.followed_publishers.append(publisher_id)
        self._refresh_followed_publishers()
        self._notify()

    def unfollow_publisher(self, publisher_id: str) -> None:
        self.state.preferences.followed_publishers = [
            existing for existing in self.state.preferences.followed_publishers if existing != publisher_id
        ]
        self._refresh_followed_publishers()
        self._notify()

    def update_preferences(self, **changes: Any) -> None:
        known = {preference.name for preference in fields(UserPreferences)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown preferences: {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            setattr(self.state.preferences, name, value)
        if "followed_topics" in changes:
            self._refresh_followed_topics()
        if "followed_publishers" in changes:
            self._refresh_followed_publishers()
        self._notify()

    # Reading lists. Adding an article whose id is already listed is a no-op.

    def save_article(self, article: Article) -> None:
        self.state.articles.saved = _append_unique(self.state.articles.saved, article)
        self._notify()

    def unsave_article(self, article_id: str) -> None:
        self.state.articles.saved = _without(self.state.articles.saved, article_id)
        self._notify()

    def download_article(self, article: Article) -> None:
        self.state.articles.downloaded = _append_unique(self.state.articles.downloaded, article)
        self._notify()

    def remove_download(self, article_id: str) -> None:
        self.state.articles.downloaded = _without(self.state.articles.downloaded, article_id)
        self._notify()

    def add_to_history(self, article: Article) -> None:
        """Most recent first, one entry per article id."""
        history = [article] + _without(self.state.articles.history, article.id)
        self.state.articles.history = history[:MAX_HISTORY]
        self._notify()

    def clear_search(self) -> None:
        self.state.search.results = []
        self._notify()

    def clear_error(self) -> None:
        self.state.articles.error = None
        self.state.search.error = None
        self._notify()


def _append_unique(articles: List[Article], article: Article) -> List[Article]:
    if any(existing.id == article.id for existing in articles):
        return articles
    return articles + [article]


def _without(articles: List[Article], article_id: str) -> List[Article]:
    return [existing for existing in articles if existing.id != article_id]
