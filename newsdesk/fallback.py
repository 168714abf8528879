"""
Fallback policy around every top-level load.

When aggregation produces nothing (or blows up), the same request is served
from the local demo provider and the batch is flagged as degraded. The flag
surfaces to the UI as an advisory, not as a blocking error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from newsdesk.adapters.base import NewsProvider
from newsdesk.exceptions import FallbackFailed
from newsdesk.models import Article
from newsdesk.registry import ProviderRegistry

logger = logging.getLogger(__name__)

DEGRADED_WARNING = "Using demo data due to API issues"


@dataclass
class LoadResult:
    articles: List[Article] = field(default_factory=list)
    degraded: bool = False
    warning: Optional[str] = None


class FallbackPolicy:
    def __init__(self, registry: ProviderRegistry, warning: str = DEGRADED_WARNING) -> None:
        self.registry = registry
        self.warning = warning

    async def run(
        self,
        primary: Callable[[], Awaitable[List[Article]]],
        fallback: Callable[[NewsProvider], Awaitable[List[Article]]],
        *,
        label: str = "articles",
    ) -> LoadResult:
        try:
            return LoadResult(articles=await primary())
        except Exception as exc:
            logger.error("Error loading %s: %s", label, exc)

        config = self.registry.fallback_provider()
        if config is None:
            raise FallbackFailed(f"No fallback provider configured for {label}", context={"label": label})
        try:
            articles = await fallback(config.instance)
        except Exception as exc:
            logger.error("Fallback provider %s failed for %s: %s", config.name, label, exc)
            raise FallbackFailed(f"Fallback failed for {label}", context={"label": label}) from exc

        logger.warning("Serving %s %s from fallback provider %s", len(articles), label, config.name)
        return LoadResult(articles=list(articles), degraded=True, warning=self.warning)
