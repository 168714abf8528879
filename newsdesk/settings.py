"""
Centralised settings for the aggregation layer (env-first, code-light).

API keys and pacing knobs are read once at process start. Keys are also
accepted under the ``EXPO_PUBLIC_`` prefix used by the mobile client build.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, TypeVar

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

N = TypeVar("N", int, float)

PROVIDER_KEY_ENV = {
    "guardian": "GUARDIAN_API_KEY",
    "nyt": "NYT_API_KEY",
    "mediastack": "MEDIASTACK_API_KEY",
    "newsdata": "NEWSDATA_API_KEY",
}


@dataclass
class NewsSettings:
    api_keys: Dict[str, str] = field(default_factory=dict)
    http_timeout: float = 10.0
    user_agent: str = "newsdesk/1.0"
    load_delay: float = 2.0
    search_delay: float = 1.5
    catalog_delay: float = 1.0
    max_articles: int = 20
    max_sports_articles: int = 25
    max_search_results: int = 20
    region: str = "us"
    providers_file: Optional[Path] = None

    def api_key(self, provider: str) -> str:
        return self.api_keys.get(provider, "")


def _number_from_env(key: str, default: N, cast: Callable[[str], N], allow_zero: bool) -> N:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not a %s); using %s", key, raw, cast.__name__, default)
        return default
    if value < 0 or (value == 0 and not allow_zero):
        logger.warning("Ignoring %s=%s (out of range); using %s", key, value, default)
        return default
    return value


def _int_from_env(key: str, default: int) -> int:
    return _number_from_env(key, default, int, allow_zero=False)


def _float_from_env(key: str, default: float) -> float:
    # 0 disables a delay
    return _number_from_env(key, default, float, allow_zero=True)


def _read_api_keys() -> Dict[str, str]:
    keys: Dict[str, str] = {}
    for provider, env_key in PROVIDER_KEY_ENV.items():
        value = os.getenv(env_key) or os.getenv(f"EXPO_PUBLIC_{env_key}") or ""
        keys[provider] = value.strip()
    return keys


def load_settings(dotenv_path: Optional[str] = None) -> NewsSettings:
    load_dotenv(dotenv_path or os.getenv("NEWSDESK_DOTENV", ".env"))
    providers_file = os.getenv("NEWSDESK_PROVIDERS_FILE")
    return NewsSettings(
        api_keys=_read_api_keys(),
        http_timeout=_number_from_env("NEWSDESK_HTTP_TIMEOUT", 10.0, float, allow_zero=False),
        user_agent=os.getenv("NEWSDESK_USER_AGENT") or "newsdesk/1.0",
        load_delay=_float_from_env("NEWSDESK_LOAD_DELAY", 2.0),
        search_delay=_float_from_env("NEWSDESK_SEARCH_DELAY", 1.5),
        catalog_delay=_float_from_env("NEWSDESK_CATALOG_DELAY", 1.0),
        max_articles=_int_from_env("NEWSDESK_MAX_ARTICLES", 20),
        max_sports_articles=_int_from_env("NEWSDESK_MAX_SPORTS_ARTICLES", 25),
        max_search_results=_int_from_env("NEWSDESK_MAX_SEARCH_RESULTS", 20),
        region=(os.getenv("NEWSDESK_REGION") or "us").strip().lower(),
        providers_file=Path(providers_file) if providers_file else None,
    )
