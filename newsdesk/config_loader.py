"""
Load the optional provider overrides file, expanding ``${NAME}`` and
``${NAME:-default}`` references from the environment.

Example::

    guardian:
      priority: 3
      requests_per_minute: 10
    mediastack:
      enabled: false
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

_ENV_REF = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}")


def load_providers_config(path: Optional[Path]) -> Dict[str, Any]:
    if path is None:
        return {}
    if not path.exists():
        logger.warning("Provider overrides file not found at %s", path)
        return {}
    raw = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        logger.error("Could not parse provider overrides %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.error("Provider overrides %s must be a mapping, got %s", path, type(data).__name__)
        return {}
    return _expand_env(data)


def _expand_env(value: Any) -> Any:
    """Substitute ${NAME} and ${NAME:-default} references anywhere inside strings."""
    if isinstance(value, dict):
        return {key: _expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if isinstance(value, str):
        return _ENV_REF.sub(lambda match: os.getenv(match.group("name")) or match.group("default") or "", value)
    return value
