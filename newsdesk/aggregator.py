"""
Aggregation engine: paced sequential provider calls, fair merge, dedupe.

Provider calls in one batch are issued one after another with a fixed delay
between them (never after the last) so the device as a whole stays under the
providers' shared rate limits.
"""
from __future__ import annotations

import asyncio
import logging
import math
from collections import Counter
from dataclasses import replace
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from newsdesk.exceptions import AggregationExhausted, NoProvidersAvailable
from newsdesk.manager import ProviderManager
from newsdesk.models import Article, Feature, Publisher, Topic
from newsdesk.registry import ProviderConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")
CatalogEntry = TypeVar("CatalogEntry", Topic, Publisher)

ArticleFetch = Callable[[ProviderConfig, int], Awaitable[List[Article]]]
Sleep = Callable[[float], Awaitable[None]]

DISAMBIGUATION_SEPARATOR = "@"


def dedupe_by_key(items: Iterable[T], key_fn) -> List[T]:
    seen = set()
    result: List[T] = []
    for item in items:
        key = key_fn(item)
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def article_key(article: Article) -> Tuple[str, str]:
    return (article.title or "").strip().lower(), (article.source.name or "").strip().lower()


def deduplicate_articles(articles: Iterable[Article]) -> List[Article]:
    """Drop later articles whose title and publisher match an earlier one (case and whitespace insensitive)."""
    return dedupe_by_key(articles, key_fn=article_key)


def fair_distribution(results: Sequence[Sequence[T]]) -> List[T]:
    """
    Round-robin merge: index 0 of every list (in the given order), then index
    1 of every list, and so on. Keeps one prolific provider from owning the
    head of the merged list.
    """
    longest = max((len(items) for items in results), default=0)
    distributed: List[T] = []
    for index in range(longest):
        for items in results:
            if index < len(items):
                distributed.append(items[index])
    return distributed


def strip_disambiguation(entry_id: str) -> str:
    return entry_id.split(DISAMBIGUATION_SEPARATOR, 1)[0]


def _same_identity(first: str, second: str) -> bool:
    a = first.strip().lower()
    b = second.strip().lower()
    return a in b or b in a


def merge_catalog(provider_results: Sequence[Tuple[str, Sequence[CatalogEntry]]]) -> List[CatalogEntry]:
    """
    Merge topics or publishers by id, first seen wins. When another provider
    reuses a raw id for something with an unrelated name, that entry is kept
    as ``"{id}@{provider}"``.
    """
    merged: Dict[str, CatalogEntry] = {}
    owners: Dict[str, str] = {}
    for provider, entries in provider_results:
        for entry in entries:
            existing = merged.get(entry.id)
            if existing is None:
                merged[entry.id] = entry
                owners[entry.id] = provider
                continue
            if owners[entry.id] == provider or _same_identity(existing.name, entry.name):
                continue
            alt_id = f"{entry.id}{DISAMBIGUATION_SEPARATOR}{provider}"
            if alt_id not in merged:
                merged[alt_id] = replace(entry, id=alt_id)
                owners[alt_id] = provider
    return list(merged.values())


class AggregationEngine:
    def __init__(
        self,
        manager: ProviderManager,
        *,
        load_delay: float = 2.0,
        search_delay: float = 1.5,
        catalog_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.manager = manager
        self.load_delay = load_delay
        self.search_delay = search_delay
        self.catalog_delay = catalog_delay
        self._sleep = sleep

    async def execute_sequential(self, calls: Sequence[Callable[[], Awaitable[List[T]]]], delay: float) -> List[List[T]]:
        results: List[List[T]] = []
        for index, call in enumerate(calls):
            try:
                result = await call()
                results.append(list(result or []))
            except Exception as exc:  # one provider must never sink the batch
                logger.warning("Provider request failed: %s", exc)
                results.append([])
            if index < len(calls) - 1 and delay > 0:
                await self._sleep(delay)
        return results

    def _guarded(self, config: ProviderConfig, call: Callable[[], Awaitable[List[T]]]) -> Callable[[], Awaitable[List[T]]]:
        async def run() -> List[T]:
            self.manager.record_request(config.name)
            try:
                return list(await call() or [])
            except NotImplementedError:
                logger.debug("%s does not implement this operation", config.name)
                return []
            except Exception as exc:
                self.manager.handle_error(config.name, exc)
                return []

        return run

    async def aggregate_articles(
        self,
        feature: Feature,
        fetch: ArticleFetch,
        *,
        max_results: int,
        delay: Optional[float] = None,
        label: Optional[str] = None,
    ) -> List[Article]:
        label = label or feature.value
        providers = self.manager.get_active_providers(feature)
        if not providers:
            raise NoProvidersAvailable(label)

        logger.info("Loading %s from: %s", label, ", ".join(config.name for config in providers))
        per_provider_limit = math.ceil(max_results / len(providers))
        calls = [
            self._guarded(config, lambda config=config: fetch(config, per_provider_limit))
            for config in providers
        ]
        results = await self.execute_sequential(calls, self.load_delay if delay is None else delay)

        articles = deduplicate_articles(fair_distribution(results))[:max_results]
        if not articles:
            raise AggregationExhausted(label, len(providers))

        counts = Counter(article.source.name for article in articles)
        logger.info("Loaded %s articles for %s: %s", len(articles), label, dict(counts))
        return articles

    async def _aggregate_catalog(
        self, feature: Feature, method: str
    ) -> List[Union[Topic, Publisher]]:
        providers = self.manager.get_active_providers(feature)
        if not providers:
            return []
        logger.info("Loading %s from: %s", feature.value, ", ".join(config.name for config in providers))
        calls = [
            self._guarded(config, getattr(config.instance, method))
            for config in providers
        ]
        results = await self.execute_sequential(calls, self.catalog_delay)
        return merge_catalog([(config.name, entries) for config, entries in zip(providers, results)])

    async def aggregate_topics(self) -> List[Topic]:
        return await self._aggregate_catalog(Feature.TOPICS, "get_topics")  # type: ignore[return-value]

    async def aggregate_publishers(self) -> List[Publisher]:
        return await self._aggregate_catalog(Feature.PUBLISHERS, "get_publishers")  # type: ignore[return-value]
