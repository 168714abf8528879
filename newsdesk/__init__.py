"""
Public API for the multi-provider news aggregation layer.

Build one ``NewsStore`` at application start and share it; nothing here is a
module-level singleton.
"""
from __future__ import annotations

from typing import Callable, Optional

from newsdesk.aggregator import AggregationEngine
from newsdesk.fallback import FallbackPolicy
from newsdesk.http_client import HttpClient
from newsdesk.manager import ProviderManager
from newsdesk.models import Article, Feature, Publisher, SearchFilters, Topic
from newsdesk.registry import ProviderRegistry, build_default_registry
from newsdesk.settings import NewsSettings, load_settings
from newsdesk.store import AppState, NewsStore

__all__ = [
    "AggregationEngine",
    "AppState",
    "Article",
    "FallbackPolicy",
    "Feature",
    "NewsSettings",
    "NewsStore",
    "ProviderManager",
    "ProviderRegistry",
    "Publisher",
    "SearchFilters",
    "Topic",
    "build_store",
    "load_settings",
]


def build_store(
    settings: Optional[NewsSettings] = None,
    *,
    registry: Optional[ProviderRegistry] = None,
    http: Optional[HttpClient] = None,
    on_change: Optional[Callable[[AppState], None]] = None,
) -> NewsStore:
    """
    Wire registry, manager, engine and fallback policy into a store.

    When no ``http`` client is passed, the store creates one and closes it in
    ``NewsStore.aclose()`` (or on leaving ``async with store``).
    """
    settings = settings or load_settings()
    owned_http: Optional[HttpClient] = None
    if registry is None:
        if http is None:
            http = owned_http = HttpClient(timeout=settings.http_timeout, user_agent=settings.user_agent)
        registry = build_default_registry(settings, http=http)
    manager = ProviderManager(registry)
    engine = AggregationEngine(
        manager,
        load_delay=settings.load_delay,
        search_delay=settings.search_delay,
        catalog_delay=settings.catalog_delay,
    )
    return NewsStore(engine, FallbackPolicy(registry), settings=settings, on_change=on_change, http=owned_http)
