"""
Static, ordered registry of configured providers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional

from newsdesk.adapters import DemoProvider, GuardianProvider, MediastackProvider, NewsDataProvider, NYTProvider
from newsdesk.adapters.base import NewsProvider
from newsdesk.config_loader import load_providers_config
from newsdesk.http_client import HttpClient
from newsdesk.models import Feature
from newsdesk.settings import NewsSettings

logger = logging.getLogger(__name__)

ALL_FEATURES: FrozenSet[Feature] = frozenset(Feature)


@dataclass(frozen=True)
class RateLimit:
    requests_per_minute: int
    requests_per_day: int


@dataclass(frozen=True)
class ProviderConfig:
    instance: NewsProvider
    priority: int
    rate_limit: RateLimit
    features: FrozenSet[Feature] = field(default_factory=lambda: ALL_FEATURES)
    fallback: bool = False

    @property
    def name(self) -> str:
        return self.instance.name

    def supports(self, feature: Optional[Feature]) -> bool:
        return feature is None or feature in self.features


class ProviderRegistry:
    """
    Keeps the configured providers in declaration order. Order matters: it
    breaks ties between providers of equal priority.
    """

    def __init__(self, configs: Iterable[ProviderConfig] = ()) -> None:
        self._configs: List[ProviderConfig] = []
        for config in configs:
            self.register(config)

    def register(self, config: ProviderConfig) -> None:
        if any(existing.name == config.name for existing in self._configs):
            raise ValueError(f"Provider '{config.name}' already registered")
        if config.fallback and self.fallback_provider() is not None:
            raise ValueError("Only one fallback provider may be registered")
        self._configs.append(config)

    def get(self, name: str) -> Optional[ProviderConfig]:
        for config in self._configs:
            if config.name == name:
                return config
        return None

    def fallback_provider(self) -> Optional[ProviderConfig]:
        for config in self._configs:
            if config.fallback:
                return config
        return None

    def names(self) -> List[str]:
        return [config.name for config in self._configs]

    def __iter__(self) -> Iterator[ProviderConfig]:
        return iter(list(self._configs))

    def __len__(self) -> int:
        return len(self._configs)


def _apply_overrides(config: ProviderConfig, overrides: Dict[str, Any]) -> Optional[ProviderConfig]:
    if not overrides:
        return config
    if overrides.get("enabled") is False:
        logger.info("Provider %s disabled by overrides file", config.name)
        return None
    try:
        rate_limit = RateLimit(
            requests_per_minute=int(overrides.get("requests_per_minute", config.rate_limit.requests_per_minute)),
            requests_per_day=int(overrides.get("requests_per_day", config.rate_limit.requests_per_day)),
        )
        features = config.features
        if "features" in overrides:
            features = frozenset(Feature(value) for value in overrides["features"] or [])
        return replace(
            config,
            priority=int(overrides.get("priority", config.priority)),
            rate_limit=rate_limit,
            features=features,
        )
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring invalid overrides for %s: %s", config.name, exc)
        return config


def build_default_registry(settings: NewsSettings, http: Optional[HttpClient] = None) -> ProviderRegistry:
    """Build the stock provider line-up, demo first as the last-resort fallback."""
    http = http or HttpClient(timeout=settings.http_timeout, user_agent=settings.user_agent)
    without_local = ALL_FEATURES - {Feature.LOCAL_NEWS}
    catalog = frozenset(
        {Feature.TOP_STORIES, Feature.SEARCH, Feature.TOPICS, Feature.PUBLISHERS, Feature.SPORTS}
    )
    defaults = [
        ProviderConfig(
            instance=DemoProvider(),
            priority=0,
            rate_limit=RateLimit(60, 10000),
            features=without_local,
            fallback=True,
        ),
        ProviderConfig(
            instance=GuardianProvider(settings.api_key("guardian"), http=http),
            priority=2,
            rate_limit=RateLimit(12, 5000),
            features=ALL_FEATURES,
        ),
        ProviderConfig(
            instance=NYTProvider(settings.api_key("nyt"), http=http),
            priority=1,
            rate_limit=RateLimit(5, 1000),
            features=ALL_FEATURES - {Feature.PUBLISHERS},
        ),
        ProviderConfig(
            instance=NewsDataProvider(settings.api_key("newsdata"), http=http),
            priority=1,
            rate_limit=RateLimit(10, 200),
            features=catalog,
        ),
        ProviderConfig(
            instance=MediastackProvider(settings.api_key("mediastack"), http=http),
            priority=1,
            rate_limit=RateLimit(5, 100),
            features=catalog,
        ),
    ]

    overrides = load_providers_config(settings.providers_file)
    registry = ProviderRegistry()
    for config in defaults:
        provider_overrides = overrides.get(config.name) or {}
        adjusted = _apply_overrides(config, provider_overrides if isinstance(provider_overrides, dict) else {})
        if adjusted is None:
            continue
        registry.register(adjusted)
        logger.debug(
            "Registered provider %s (priority=%s, available=%s)",
            adjusted.name,
            adjusted.priority,
            adjusted.instance.is_available(),
        )
    return registry
