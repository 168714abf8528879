"""
Local, always-available demo dataset used as the last-resort provider.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from newsdesk.adapters.base import NewsProvider
from newsdesk.models import Article, ArticleImage, Publisher, SearchFilters, Source, Topic

DEMO_ARTICLE_COUNT = 20

DEMO_SOURCES = [
    Source(id="tech-news", name="Tech News"),
    Source(id="world-news", name="World News"),
    Source(id="business-news", name="Business News"),
    Source(id="health-news", name="Health News"),
    Source(id="sports-news", name="Sports News"),
]

DEMO_TOPICS = ["technology", "world", "business", "science", "health", "sports", "politics", "entertainment"]

DEMO_AUTHORS = ["Alex Chen", "Sarah Johnson", "Dr. Maria Rodriguez", "James Wilson", "Emma Thompson"]

DEMO_IMAGES = [
    "https://images.pexels.com/photos/8386440/pexels-photo-8386440.jpeg",
    "https://images.pexels.com/photos/313782/pexels-photo-313782.jpeg",
    "https://images.pexels.com/photos/263402/pexels-photo-263402.jpeg",
    "https://images.pexels.com/photos/2988232/pexels-photo-2988232.jpeg",
    "https://images.pexels.com/photos/1884574/pexels-photo-1884574.jpeg",
]

DEMO_PUBLISHERS = [
    Publisher(id="tech-news", name="Tech News", description="Latest technology news and insights",
              homepage="https://technews.example.com"),
    Publisher(id="world-news", name="World News", description="Global news and current events",
              homepage="https://worldnews.example.com"),
    Publisher(id="business-news", name="Business News", description="Business and financial news",
              homepage="https://businessnews.example.com"),
    Publisher(id="health-news", name="Health News", description="Health and medical news",
              homepage="https://healthnews.example.com"),
    Publisher(id="sports-news", name="Sports News", description="Sports coverage and analysis",
              homepage="https://sportsnews.example.com"),
]


def generate_demo_articles(now: Optional[datetime] = None, count: int = DEMO_ARTICLE_COUNT) -> List[Article]:
    now = now or datetime.now(timezone.utc)
    articles: List[Article] = []
    for i in range(count):
        number = i + 1
        source = DEMO_SOURCES[i % len(DEMO_SOURCES)]
        articles.append(
            Article(
                id=f"demo-{number}",
                title=f"Breaking News Article {number}: Important Development",
                url=f"https://example.com/news-article-{number}",
                source=Source(id=source.id, name=source.name),
                published_at=(now - timedelta(hours=i)).isoformat(),
                excerpt=(
                    f"This is a sample news excerpt for article {number}. It provides a brief summary of the "
                    "important news story that you would normally read from a real news source."
                ),
                author=DEMO_AUTHORS[i % len(DEMO_AUTHORS)],
                topics=[DEMO_TOPICS[i % len(DEMO_TOPICS)]],
                image=ArticleImage(url=DEMO_IMAGES[i % len(DEMO_IMAGES)]),
                reading_time_min=3 + (i % 6),
            )
        )
    return articles


class DemoProvider(NewsProvider):
    """
    Serves a fixed in-memory dataset. Never touches the network and never
    fails; ``latency`` only simulates a round trip for UI testing.
    """

    name = "demo"
    display_name = "Demo"

    def __init__(self, latency: float = 0.0, now: Optional[datetime] = None) -> None:
        self.latency = latency
        self.articles = generate_demo_articles(now)

    def is_available(self) -> bool:
        return True

    async def _simulate_latency(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    async def get_top_stories(self, limit: int = 20) -> List[Article]:
        await self._simulate_latency()
        return list(self.articles[:limit])

    async def get_articles_by_topic(self, topic_id: str, limit: int = 20) -> List[Article]:
        await self._simulate_latency()
        topic = topic_id.lower()
        return [article for article in self.articles if topic in article.topics][:limit]

    async def get_articles_by_publisher(self, publisher_id: str, limit: int = 20) -> List[Article]:
        await self._simulate_latency()
        return [article for article in self.articles if article.source.id == publisher_id][:limit]

    async def search(self, filters: SearchFilters) -> List[Article]:
        await self._simulate_latency()
        results = list(self.articles)
        if filters.query:
            query = filters.query.lower()
            results = [
                article
                for article in results
                if query in article.title.lower()
                or query in (article.excerpt or "").lower()
                or any(query in topic.lower() for topic in article.topics)
            ]
        if filters.sources:
            results = [article for article in results if article.source.id in filters.sources]
        return results[: filters.limit or 50]

    async def get_topics(self) -> List[Topic]:
        topics = [Topic(id=topic, name=topic.capitalize()) for topic in DEMO_TOPICS]
        topics.extend([Topic(id="climate", name="Climate"), Topic(id="medicine", name="Medicine")])
        return topics

    async def get_publishers(self) -> List[Publisher]:
        return list(DEMO_PUBLISHERS)

    async def get_local_news(self, region: str = "us", limit: int = 10) -> List[Article]:
        await self._simulate_latency()
        local = [article for article in self.articles if "world" in article.topics or "politics" in article.topics]
        return local[: min(limit, 10)]
