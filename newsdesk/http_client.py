"""
Async HTTP helper with polite headers reused by every network adapter.

Maps transport failures and HTTP status classes onto ``ProviderError`` kinds so
adapters only deal with decoded JSON.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from newsdesk.exceptions import ProviderError, ProviderErrorKind
from newsdesk.security import redact_secrets

logger = logging.getLogger(__name__)


def _kind_for_status(status: int) -> ProviderErrorKind:
    if status in (401, 403):
        return ProviderErrorKind.AUTH_FAILURE
    if status == 429:
        return ProviderErrorKind.RATE_LIMITED
    return ProviderErrorKind.SERVER_ERROR


class HttpClient:
    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.headers = {
            "User-Agent": user_agent or "newsdesk/1.0",
            "Accept": "application/json",
        }
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self.headers,
                transport=self._transport,
            )
        return self._client

    async def get_json(self, provider: str, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        clean_params = {key: value for key, value in (params or {}).items() if value not in (None, "")}
        client = self._get_client()
        try:
            resp = await client.get(url, params=clean_params)
        except httpx.TimeoutException as exc:
            logger.warning("%s request timed out after %ss: %s", provider, self.timeout, redact_secrets(str(exc)))
            raise ProviderError(ProviderErrorKind.NETWORK_ERROR, provider, f"{provider} request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("%s transport error: %s", provider, redact_secrets(str(exc)))
            raise ProviderError(
                ProviderErrorKind.NETWORK_ERROR, provider, "Network error - check your internet connection"
            ) from exc

        logger.debug("%s GET %s -> %s", provider, redact_secrets(str(resp.request.url)), resp.status_code)
        if resp.status_code >= 400:
            kind = _kind_for_status(resp.status_code)
            logger.warning(
                "%s HTTP %s: %s", provider, resp.status_code, redact_secrets(resp.text[:200])
            )
            raise ProviderError(kind, provider, f"{provider} API error: HTTP {resp.status_code}", status=resp.status_code)

        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderError(
                ProviderErrorKind.MALFORMED_RESPONSE, provider, f"{provider} returned a non-JSON body"
            ) from exc

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
