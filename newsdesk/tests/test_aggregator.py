import unittest

from newsdesk.aggregator import AggregationEngine, deduplicate_articles, fair_distribution, merge_catalog
from newsdesk.exceptions import AggregationExhausted, NoProvidersAvailable, ProviderError, ProviderErrorKind
from newsdesk.manager import ProviderManager
from newsdesk.models import Feature, Publisher, Topic
from newsdesk.registry import ProviderConfig, ProviderRegistry, RateLimit
from newsdesk.tests.fakes import FakeClock, RecordingSleep, StubProvider, make_article


def _top(config, limit):
    return config.instance.get_top_stories(limit)


class MergeHelpersTests(unittest.TestCase):
    def test_fair_distribution_round_robins(self):
        first = ["B0", "B1", "B2", "B3", "B4"]
        second = ["A0", "A1", "A2"]
        self.assertEqual(
            fair_distribution([first, second]),
            ["B0", "A0", "B1", "A1", "B2", "A2", "B3", "B4"],
        )
        self.assertEqual(fair_distribution([]), [])

    def test_dedupe_ignores_case_and_whitespace(self):
        articles = [
            make_article("Foo", source="X"),
            make_article("foo ", source="x"),
            make_article("Foo", source="Y"),
        ]
        deduped = deduplicate_articles(articles)
        self.assertEqual([(a.title, a.source.name) for a in deduped], [("Foo", "X"), ("Foo", "Y")])

    def test_merge_catalog_first_seen_wins_and_disambiguates(self):
        merged = merge_catalog(
            [
                ("guardian", [Topic("sport", "Sport"), Topic("world", "World news")]),
                ("nyt", [Topic("sport", "Sports"), Topic("world", "Opinion"), Topic("arts", "Arts")]),
            ]
        )
        self.assertEqual([topic.id for topic in merged], ["sport", "world", "world@nyt", "arts"])
        self.assertEqual(merged[0].name, "Sport")


class AggregationEngineTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.sleep = RecordingSleep()

    def _engine(self, *providers, priorities=None) -> AggregationEngine:
        priorities = priorities or {}
        configs = [
            ProviderConfig(instance=provider, priority=priorities.get(provider.name, 1), rate_limit=RateLimit(100, 1000))
            for provider in providers
        ]
        self.manager = ProviderManager(ProviderRegistry(configs), clock=self.clock)
        return AggregationEngine(self.manager, sleep=self.sleep)

    async def test_execute_sequential_sleeps_between_calls_only(self):
        engine = self._engine()

        async def ok():
            return [1]

        async def boom():
            raise RuntimeError("provider exploded")

        results = await engine.execute_sequential([ok, boom, ok], delay=2.0)

        self.assertEqual(results, [[1], [], [1]])
        self.assertEqual(self.sleep.delays, [2.0, 2.0])

    async def test_single_call_never_sleeps(self):
        engine = self._engine()

        async def ok():
            return []

        await engine.execute_sequential([ok], delay=2.0)
        self.assertEqual(self.sleep.delays, [])

    async def test_merges_in_priority_order_and_truncates(self):
        guardian = StubProvider("guardian", [make_article(f"G{i}", "Guardian") for i in range(10)])
        nyt = StubProvider("nyt", [make_article(f"N{i}", "NYT") for i in range(10)])
        engine = self._engine(nyt, guardian, priorities={"guardian": 2, "nyt": 1})

        articles = await engine.aggregate_articles(Feature.TOP_STORIES, _top, max_results=5)

        self.assertEqual([a.title for a in articles], ["G0", "N0", "G1", "N1", "G2"])
        self.assertEqual(guardian.calls, [("top", 3)])
        self.assertEqual(nyt.calls, [("top", 3)])
        self.assertEqual(self.sleep.delays, [2.0])

    async def test_failing_provider_is_isolated_and_recorded(self):
        broken = StubProvider("broken", error=ProviderError(ProviderErrorKind.SERVER_ERROR, "broken", "HTTP 500"))
        healthy = StubProvider("healthy", [make_article("Only story")])
        engine = self._engine(broken, healthy)

        articles = await engine.aggregate_articles(Feature.TOP_STORIES, _top, max_results=20)

        self.assertEqual([a.title for a in articles], ["Only story"])
        self.assertEqual(self.manager.failure_count("broken"), 1)
        self.assertEqual(self.manager.failure_count("healthy"), 0)
        snapshot = self.manager.snapshot()
        self.assertEqual(snapshot["broken"]["requests_this_minute"], 1)
        self.assertEqual(snapshot["healthy"]["requests_this_minute"], 1)

    async def test_rate_limited_provider_is_benched(self):
        limited = StubProvider("limited", error=ProviderError(ProviderErrorKind.RATE_LIMITED, "limited", "HTTP 429"))
        healthy = StubProvider("healthy", [make_article("Story")])
        engine = self._engine(limited, healthy)

        await engine.aggregate_articles(Feature.TOP_STORIES, _top, max_results=20)

        self.assertEqual([c.name for c in self.manager.get_active_providers()], ["healthy"])

    async def test_not_implemented_is_an_empty_result(self):
        class NoLocal(StubProvider):
            async def get_local_news(self, region, limit=20):
                raise NotImplementedError

        engine = self._engine(NoLocal("nolocal"), StubProvider("local", [make_article("Town hall")]))

        articles = await engine.aggregate_articles(
            Feature.LOCAL_NEWS,
            lambda config, limit: config.instance.get_local_news("us", limit),
            max_results=20,
        )

        self.assertEqual([a.title for a in articles], ["Town hall"])
        self.assertEqual(self.manager.failure_count("nolocal"), 0)

    async def test_no_providers_raises(self):
        engine = self._engine(StubProvider("offline", available=False))
        with self.assertRaises(NoProvidersAvailable):
            await engine.aggregate_articles(Feature.TOP_STORIES, _top, max_results=20)

    async def test_all_empty_raises_exhausted(self):
        engine = self._engine(StubProvider("empty"), StubProvider("broken", error=RuntimeError("nope")))
        with self.assertRaises(AggregationExhausted) as ctx:
            await engine.aggregate_articles(Feature.SEARCH, _top, max_results=20, delay=1.5)
        self.assertEqual(ctx.exception.attempted, 2)
        self.assertEqual(self.sleep.delays, [1.5])

    async def test_catalogs_use_short_delay(self):
        engine = self._engine(
            StubProvider("guardian", publishers=[Publisher("the-guardian", "The Guardian")]),
            StubProvider("nyt", publishers=[Publisher("nytimes", "The New York Times")]),
        )

        publishers = await engine.aggregate_publishers()

        self.assertEqual([p.id for p in publishers], ["the-guardian", "nytimes"])
        self.assertEqual(self.sleep.delays, [1.0])

    async def test_catalog_without_providers_is_empty(self):
        engine = self._engine(StubProvider("offline", available=False))
        self.assertEqual(await engine.aggregate_topics(), [])


if __name__ == "__main__":
    unittest.main()
