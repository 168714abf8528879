import unittest
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import httpx

from newsdesk.adapters import DemoProvider, GuardianProvider, MediastackProvider, NewsDataProvider, NYTProvider
from newsdesk.adapters.demo import generate_demo_articles
from newsdesk.adapters.guardian import DEFAULT_SECTIONS
from newsdesk.exceptions import ProviderError, ProviderErrorKind
from newsdesk.models import DateRange, SearchFilters
from newsdesk.tests.fakes import mock_http

GUARDIAN_SEARCH = {
    "response": {
        "status": "ok",
        "results": [
            {
                "id": "world/2024/may/01/storm",
                "webTitle": "  Storm hits the coast ",
                "webUrl": "https://www.theguardian.com/world/2024/may/01/storm",
                "webPublicationDate": "2024-05-01T10:00:00Z",
                "sectionName": "World news",
                "fields": {"thumbnail": "https://i.guim.co.uk/storm.jpg", "trailText": "Winds of 90mph", "wordcount": "450"},
            },
            {"id": "blank", "webTitle": "", "webUrl": "https://www.theguardian.com/blank"},
            {"id": "nourl", "webTitle": "Headline without a link"},
        ],
    }
}

NYT_TOP = {
    "status": "OK",
    "results": [
        {
            "title": "Markets rally",
            "abstract": "Stocks closed higher.",
            "url": "https://www.nytimes.com/2024/05/01/business/markets.html",
            "byline": "By Jane Doe",
            "published_date": "2024-05-01T08:00:00-04:00",
            "section": "business",
            "multimedia": [
                {"url": "https://static01.nyt.com/thumb.jpg", "format": "Standard Thumbnail", "width": 75, "height": 75},
                {"url": "https://static01.nyt.com/large.jpg", "format": "superJumbo", "width": 2048, "height": 1365},
            ],
        },
        {"title": "", "url": "https://www.nytimes.com/empty.html"},
    ],
}

NYT_SEARCH = {
    "response": {
        "docs": [
            {
                "_id": "nyt://article/1",
                "headline": {"main": "Climate summit opens"},
                "abstract": "Leaders gather.",
                "web_url": "https://www.nytimes.com/2024/05/01/climate/summit.html",
                "section_name": "Climate",
                "byline": {"original": "By Ann Lee"},
                "multimedia": [{"url": "images/2024/05/01/summit.jpg"}],
            }
        ]
    }
}


class GuardianProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_top_stories_transform_and_filter_invalid(self):
        seen = []
        provider = GuardianProvider("g-key", http=mock_http({"/search": GUARDIAN_SEARCH}, seen=seen))

        articles = await provider.get_top_stories(limit=5)

        self.assertEqual(len(articles), 1)
        article = articles[0]
        self.assertEqual(article.id, "guardian-world/2024/may/01/storm")
        self.assertEqual(article.title, "Storm hits the coast")
        self.assertEqual(article.source.name, "The Guardian")
        self.assertEqual(article.excerpt, "Winds of 90mph")
        self.assertEqual(article.topics, ["world news"])
        self.assertEqual(article.reading_time_min, 3)
        self.assertEqual(article.image.url, "https://i.guim.co.uk/storm.jpg")
        params = seen[0].url.params
        self.assertEqual(params["api-key"], "g-key")
        self.assertEqual(params["page-size"], "5")
        self.assertEqual(params["order-by"], "newest")

    async def test_articles_do_not_share_a_mutable_source(self):
        payload = {"response": {"results": [
            {"id": "a", "webTitle": "First", "webUrl": "https://www.theguardian.com/a"},
            {"id": "b", "webTitle": "Second", "webUrl": "https://www.theguardian.com/b"},
        ]}}
        provider = GuardianProvider("g-key", http=mock_http({"/search": payload}))

        first, second = await provider.get_top_stories(limit=2)

        self.assertEqual(first.source, second.source)
        with self.assertRaises(FrozenInstanceError):
            first.source.name = "Renamed"
        self.assertEqual(second.source.name, "The Guardian")

    async def test_search_sends_date_part_only(self):
        seen = []
        provider = GuardianProvider("g-key", http=mock_http({"/search": GUARDIAN_SEARCH}, seen=seen))
        filters = SearchFilters(
            query="storm",
            limit=10,
            date_range=DateRange(from_="2024-04-01T00:00:00Z", to="2024-05-01T23:59:59Z"),
        )

        await provider.search(filters)

        params = seen[0].url.params
        self.assertEqual(params["q"], "storm")
        self.assertEqual(params["from-date"], "2024-04-01")
        self.assertEqual(params["to-date"], "2024-05-01")

    async def test_error_body_is_classified(self):
        payload = {"response": {"status": "error", "message": "Invalid authentication credentials"}}
        provider = GuardianProvider("g-key", http=mock_http({"/search": payload}))
        with self.assertRaises(ProviderError) as ctx:
            await provider.get_top_stories()
        self.assertEqual(ctx.exception.kind, ProviderErrorKind.AUTH_FAILURE)

    async def test_unexpected_shape_is_malformed(self):
        provider = GuardianProvider("g-key", http=mock_http({"/search": ["not", "an", "envelope"]}))
        with self.assertRaises(ProviderError) as ctx:
            await provider.get_top_stories()
        self.assertEqual(ctx.exception.kind, ProviderErrorKind.MALFORMED_RESPONSE)

    async def test_topics_fall_back_to_static_sections(self):
        provider = GuardianProvider(
            "g-key", http=mock_http({"/sections": lambda request: httpx.Response(500, text="boom")})
        )
        topics = await provider.get_topics()
        self.assertEqual([topic.id for topic in topics], [topic.id for topic in DEFAULT_SECTIONS])

    async def test_placeholder_key_is_unavailable_and_never_calls_out(self):
        seen = []
        provider = GuardianProvider("test", http=mock_http({"/search": GUARDIAN_SEARCH}, seen=seen))
        self.assertFalse(provider.is_available())
        with self.assertRaises(ProviderError) as ctx:
            await provider.get_top_stories()
        self.assertEqual(ctx.exception.kind, ProviderErrorKind.AUTH_FAILURE)
        self.assertEqual(seen, [])


class NYTProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_top_stories_pick_preferred_image_and_strip_byline(self):
        provider = NYTProvider("n-key", http=mock_http({"/svc/topstories/v2/home.json": NYT_TOP}))

        articles = await provider.get_top_stories()

        self.assertEqual(len(articles), 1)
        article = articles[0]
        self.assertEqual(article.id, "nyt-markets.html")
        self.assertEqual(article.author, "Jane Doe")
        self.assertEqual(article.image.url, "https://static01.nyt.com/large.jpg")
        self.assertEqual(article.image.width, 2048)
        self.assertEqual(article.topics, ["business"])

    async def test_search_prefixes_relative_images(self):
        provider = NYTProvider("n-key", http=mock_http({"/svc/search/v2/articlesearch.json": NYT_SEARCH}))

        articles = await provider.search(SearchFilters(query="climate", limit=5))

        self.assertEqual(articles[0].id, "nyt-search-nyt://article/1")
        self.assertEqual(articles[0].image.url, "https://static01.nyt.com/images/2024/05/01/summit.jpg")
        self.assertEqual(articles[0].topics, ["climate"])
        self.assertEqual(articles[0].author, "Ann Lee")

    async def test_unmapped_topic_uses_search(self):
        seen = []
        provider = NYTProvider(
            "n-key", http=mock_http({"/svc/search/v2/articlesearch.json": NYT_SEARCH}, seen=seen)
        )

        articles = await provider.get_articles_by_topic("gardening", limit=3)

        self.assertEqual(len(articles), 1)
        self.assertEqual(seen[0].url.path, "/svc/search/v2/articlesearch.json")
        self.assertEqual(seen[0].url.params["q"], "gardening")

    async def test_rate_limited_section_is_not_masked_by_search(self):
        seen = []
        provider = NYTProvider(
            "n-key",
            http=mock_http(
                {
                    "/svc/topstories/v2/sports.json": lambda request: httpx.Response(429, json={}),
                    "/svc/search/v2/articlesearch.json": NYT_SEARCH,
                },
                seen=seen,
            ),
        )
        with self.assertRaises(ProviderError) as ctx:
            await provider.get_articles_by_topic("sports")
        self.assertTrue(ctx.exception.is_rate_limit)
        self.assertEqual(len(seen), 1)

    async def test_fault_body_is_rate_limit(self):
        fault = {
            "fault": {
                "faultstring": "Rate limit quota violation. Quota limit exceeded.",
                "detail": {"errorcode": "policies.ratelimit.QuotaViolation"},
            }
        }
        provider = NYTProvider("n-key", http=mock_http({"/svc/topstories/v2/home.json": fault}))
        with self.assertRaises(ProviderError) as ctx:
            await provider.get_top_stories()
        self.assertEqual(ctx.exception.kind, ProviderErrorKind.RATE_LIMITED)

    async def test_local_news_for_us_uses_us_section(self):
        seen = []
        provider = NYTProvider("n-key", http=mock_http({"/svc/topstories/v2/us.json": NYT_TOP}, seen=seen))
        articles = await provider.get_local_news("US")
        self.assertEqual(len(articles), 1)
        self.assertEqual(seen[0].url.path, "/svc/topstories/v2/us.json")

    def test_demo_key_is_a_placeholder(self):
        self.assertFalse(NYTProvider("demo-key").is_available())


class MediastackProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_articles_keep_publisher_and_category(self):
        payload = {
            "data": [
                {
                    "title": "Cup final tonight",
                    "url": "https://espn.example.com/cup",
                    "source": "ESPN",
                    "category": "sports",
                    "description": "Kick-off at eight.",
                    "published_at": "2024-05-01T00:00:00+00:00",
                },
                {"title": "Missing url", "source": "ESPN"},
            ]
        }
        seen = []
        provider = MediastackProvider("m-key", http=mock_http({"/v1/news": payload}, seen=seen))

        articles = await provider.get_articles_by_topic("sports", limit=10)

        self.assertEqual(len(articles), 1)
        self.assertEqual(articles[0].id, "mediastack-https://espn.example.com/cup")
        self.assertEqual(articles[0].source.name, "ESPN")
        self.assertEqual(articles[0].topics, ["sports"])
        self.assertEqual(seen[0].url.params["access_key"], "m-key")
        self.assertEqual(seen[0].url.params["categories"], "sports")

    async def test_usage_limit_error_is_rate_limit(self):
        payload = {"error": {"code": "usage_limit_reached", "message": "Your monthly usage limit has been reached."}}
        provider = MediastackProvider("m-key", http=mock_http({"/v1/news": payload}))
        with self.assertRaises(ProviderError) as ctx:
            await provider.get_top_stories()
        self.assertTrue(ctx.exception.is_rate_limit)

    async def test_local_news_is_not_supported(self):
        provider = MediastackProvider("m-key", http=mock_http({}))
        with self.assertRaises(NotImplementedError):
            await provider.get_local_news("us")


class NewsDataProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_transform_skips_null_creators(self):
        payload = {
            "status": "success",
            "results": [
                {
                    "article_id": "abc",
                    "title": "Rover lands on Mars",
                    "link": "https://space.example.com/rover",
                    "source_id": "space_news",
                    "creator": [None, "Ann Lee"],
                    "category": ["science"],
                    "pubDate": "2024-05-01 10:00:00",
                    "description": "Touchdown confirmed.",
                }
            ],
        }
        provider = NewsDataProvider("d-key", http=mock_http({"/api/1/news": payload}))

        articles = await provider.search(SearchFilters(query="rover", limit=5))

        self.assertEqual(articles[0].id, "newsdata-abc")
        self.assertEqual(articles[0].author, "Ann Lee")
        self.assertEqual(articles[0].source.name, "space_news")
        self.assertEqual(articles[0].topics, ["science"])

    async def test_error_status_in_body(self):
        payload = {"status": "error", "results": {"message": "API key is invalid", "code": "Unauthorized"}}
        provider = NewsDataProvider("d-key", http=mock_http({"/api/1/news": payload}))
        with self.assertRaises(ProviderError) as ctx:
            await provider.get_top_stories()
        self.assertEqual(ctx.exception.kind, ProviderErrorKind.AUTH_FAILURE)

    async def test_results_are_truncated_client_side(self):
        results = [
            {"article_id": str(i), "title": f"Story {i}", "link": f"https://nd.example.com/{i}"} for i in range(8)
        ]
        provider = NewsDataProvider("d-key", http=mock_http({"/api/1/news": {"status": "success", "results": results}}))
        articles = await provider.get_top_stories(limit=3)
        self.assertEqual([article.id for article in articles], ["newsdata-0", "newsdata-1", "newsdata-2"])


class DemoProviderTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        self.provider = DemoProvider(now=self.now)

    def test_dataset_is_deterministic(self):
        first = generate_demo_articles(self.now)
        second = generate_demo_articles(self.now)
        self.assertEqual(first, second)
        self.assertEqual(len(first), 20)
        self.assertEqual(first[1].published_at, "2024-05-01T11:00:00+00:00")
        self.assertTrue(all(article.is_valid() for article in first))

    async def test_filters_by_topic_and_publisher(self):
        sports = await self.provider.get_articles_by_topic("sports")
        self.assertTrue(sports)
        self.assertTrue(all("sports" in article.topics for article in sports))

        tech = await self.provider.get_articles_by_publisher("tech-news")
        self.assertTrue(tech)
        self.assertTrue(all(article.source.id == "tech-news" for article in tech))

    async def test_search_matches_title_and_respects_limit(self):
        results = await self.provider.search(SearchFilters(query="article 1", limit=3))
        self.assertEqual(len(results), 3)
        self.assertTrue(all("article 1" in article.title.lower() for article in results))

    async def test_local_news_is_capped(self):
        local = await self.provider.get_local_news("us", limit=50)
        self.assertLessEqual(len(local), 10)
        self.assertTrue(all({"world", "politics"} & set(article.topics) for article in local))


if __name__ == "__main__":
    unittest.main()
