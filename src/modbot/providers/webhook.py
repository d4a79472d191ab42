"""Client for channel-owner supplied webhook endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .http import ProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)


class RuleWebhookClient:
    """POSTs rule payloads to arbitrary URLs.

    No circuit breaker: every URL belongs to a different channel owner.
    """

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(transport=self._transport)
        return self._client

    async def post(self, url: str, payload: dict[str, Any], *, timeout: float) -> httpx.Response:
        client = await self._ensure_client()
        try:
            return await client.post(url, json=payload, timeout=httpx.Timeout(timeout))
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(f"webhook to {url} timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("webhook to %s failed: %s", url, exc)
            raise ProviderError(f"webhook to {url} failed: {exc}") from exc

    async def close(self) -> None:
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
