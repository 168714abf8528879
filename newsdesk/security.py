"""
Keep provider API keys out of logs and error strings.
"""
import re
from typing import Iterable

# Query parameter names the adapters put API keys in, plus generic ones
SECRET_PARAMS = ("api-key", "apikey", "api_key", "access_key", "access-key", "key", "token", "secret")

_PARAM_PATTERN = re.compile(
    r"(?i)\b(" + "|".join(re.escape(name) for name in SECRET_PARAMS) + r")=([^&\s\"']+)"
)
_BEARER_PATTERN = re.compile(r"(?i)\bBearer\s+[A-Za-z0-9._\-]+")

REDACTED = "***REDACTED***"
PLACEHOLDER_MARKERS = ("YOUR_", "your_")


def redact_secrets(text: str) -> str:
    if not isinstance(text, str):
        return text
    text = _PARAM_PATTERN.sub(lambda match: f"{match.group(1)}={REDACTED}", text)
    return _BEARER_PATTERN.sub(f"Bearer {REDACTED}", text)


def is_configured_key(value: str, placeholders: Iterable[str] = ()) -> bool:
    """True when ``value`` looks like a real key rather than empty or a template placeholder."""
    key = (value or "").strip()
    if not key or key in set(placeholders):
        return False
    return not any(marker in key for marker in PLACEHOLDER_MARKERS)
