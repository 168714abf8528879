"""
Status/health helpers for the aggregation layer.

The payload is meant for debug screens and the ``newsdesk status`` command;
it never includes API keys.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from newsdesk.manager import ProviderManager
from newsdesk.settings import NewsSettings


def build_status(manager: ProviderManager, settings: NewsSettings) -> Dict[str, Any]:
    providers = manager.snapshot()
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "providers": providers,
        "available_count": sum(1 for entry in providers.values() if entry["available"] and not entry["fallback"]),
        "config": {
            "http_timeout": settings.http_timeout,
            "load_delay": settings.load_delay,
            "search_delay": settings.search_delay,
            "catalog_delay": settings.catalog_delay,
            "max_articles": settings.max_articles,
            "max_sports_articles": settings.max_sports_articles,
            "region": settings.region,
            "providers_file": str(settings.providers_file) if settings.providers_file else None,
        },
    }
