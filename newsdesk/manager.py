"""
Runtime gatekeeper over the provider registry.

Answers "which providers may serve this feature right now, in which order"
and owns every piece of per-provider runtime state: request counters,
cooldowns and failure counts. State lives for the process lifetime only.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from newsdesk.exceptions import ProviderError
from newsdesk.models import Feature
from newsdesk.registry import ProviderConfig, ProviderRegistry
from newsdesk.security import redact_secrets

logger = logging.getLogger(__name__)

MINUTE = 60.0
DAY = 24 * 60 * 60.0
RATE_LIMIT_COOLDOWN_MINUTES = 15
FAILURE_COOLDOWN_MINUTES = 5
FAILURE_THRESHOLD = 3
FAILURE_RESET_SECONDS = 15 * 60.0


@dataclass
class ProviderRuntimeState:
    cooldown_until: Optional[float] = None
    failure_count: int = 0
    failure_window_start: Optional[float] = None
    minute_count: int = 0
    minute_start: float = 0.0
    day_count: int = 0
    day_start: float = 0.0


def is_rate_limit_error(error: BaseException) -> bool:
    if isinstance(error, ProviderError):
        return error.is_rate_limit
    if getattr(error, "status", None) == 429:
        return True
    return "rate limit" in str(error).lower()


def _iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class ProviderManager:
    def __init__(self, registry: ProviderRegistry, clock: Callable[[], float] = time.time) -> None:
        self.registry = registry
        self.clock = clock
        self._state: Dict[str, ProviderRuntimeState] = {}

    def _get_state(self, name: str) -> ProviderRuntimeState:
        state = self._state.get(name)
        if state is None:
            now = self.clock()
            state = ProviderRuntimeState(minute_start=now, day_start=now)
            self._state[name] = state
        return state

    def _roll_windows(self, state: ProviderRuntimeState, now: float) -> None:
        if now - state.minute_start >= MINUTE:
            state.minute_count = 0
            state.minute_start = now
        if now - state.day_start >= DAY:
            state.day_count = 0
            state.day_start = now
        if state.failure_window_start is not None and now - state.failure_window_start >= FAILURE_RESET_SECONDS:
            state.failure_count = 0
            state.failure_window_start = None

    def get_active_providers(self, feature: Optional[Feature] = None) -> List[ProviderConfig]:
        configs = list(self.registry)
        only_fallback = len(configs) == 1 and configs[0].fallback
        active = []
        for config in configs:
            if config.fallback and not only_fallback:
                continue
            if not config.instance.is_available():
                continue
            if not config.supports(feature):
                continue
            if self.is_on_cooldown(config) or self.is_rate_limited(config):
                continue
            active.append(config)
        # sorted() is stable, so equal priorities keep registry order
        return sorted(active, key=lambda config: config.priority, reverse=True)

    def is_on_cooldown(self, config: ProviderConfig) -> bool:
        state = self._state.get(config.name)
        if state is None or state.cooldown_until is None:
            return False
        if self.clock() < state.cooldown_until:
            logger.debug("%s on cooldown until %s", config.name, _iso(state.cooldown_until))
            return True
        return False

    def is_rate_limited(self, config: ProviderConfig) -> bool:
        state = self._state.get(config.name)
        if state is None:
            return False
        self._roll_windows(state, self.clock())
        limit = config.rate_limit
        return state.minute_count >= limit.requests_per_minute or state.day_count >= limit.requests_per_day

    def set_cooldown(self, name: str, minutes: float = 10) -> None:
        state = self._get_state(name)
        state.cooldown_until = self.clock() + minutes * 60
        logger.warning("%s cooldown set for %s minutes", name, minutes)

    def record_request(self, name: str) -> None:
        state = self._get_state(name)
        self._roll_windows(state, self.clock())
        state.minute_count += 1
        state.day_count += 1

    def handle_error(self, name: str, error: BaseException) -> None:
        state = self._get_state(name)
        now = self.clock()
        self._roll_windows(state, now)
        if state.failure_window_start is None:
            state.failure_window_start = now
        state.failure_count += 1
        logger.error("%s failure %s: %s", name, state.failure_count, redact_secrets(str(error)))

        if is_rate_limit_error(error):
            self.set_cooldown(name, RATE_LIMIT_COOLDOWN_MINUTES)
        elif state.failure_count >= FAILURE_THRESHOLD:
            self.set_cooldown(name, FAILURE_COOLDOWN_MINUTES)

    def failure_count(self, name: str) -> int:
        state = self._state.get(name)
        if state is None:
            return 0
        self._roll_windows(state, self.clock())
        return state.failure_count

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        now = self.clock()
        payload: Dict[str, Dict[str, Any]] = {}
        for config in self.registry:
            state = self._state.get(config.name)
            if state is not None:
                self._roll_windows(state, now)
            cooldown_until = state.cooldown_until if state else None
            payload[config.name] = {
                "display_name": config.instance.display_name,
                "priority": config.priority,
                "fallback": config.fallback,
                "available": config.instance.is_available(),
                "features": sorted(feature.value for feature in config.features),
                "on_cooldown": cooldown_until is not None and now < cooldown_until,
                "cooldown_until": _iso(cooldown_until) if cooldown_until and now < cooldown_until else None,
                "failure_count": state.failure_count if state else 0,
                "requests_this_minute": state.minute_count if state else 0,
                "requests_today": state.day_count if state else 0,
                "rate_limit": {
                    "requests_per_minute": config.rate_limit.requests_per_minute,
                    "requests_per_day": config.rate_limit.requests_per_day,
                },
            }
        return payload
