"""Shared HTTP plumbing for third-party API clients.

Every provider client wraps one lazily created ``httpx.AsyncClient`` and a
circuit breaker so a failing upstream is not hammered by every evaluation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_SERVER_ERROR = 500


class ProviderError(RuntimeError):
    """Base exception raised when a provider call fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderTimeoutError(ProviderError):
    """Raised when a provider does not answer within the request timeout."""


class ProviderUnavailableError(ProviderError):
    """Raised while the provider's circuit breaker is open."""


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation - requests allowed
    OPEN = "open"          # Circuit is open - requests blocked
    HALF_OPEN = "half_open"  # Testing if service is back - limited requests allowed


@dataclass
class CircuitBreaker:
    """Circuit breaker for provider operations."""

    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    success_threshold: int = 3

    _state: CircuitState = CircuitState.CLOSED
    _failure_count: int = 0
    _success_count: int = 0
    _last_failure_time: float = 0.0

    def is_open(self) -> bool:
        """Check if circuit is open."""
        if self._state == CircuitState.OPEN:
            if time.time() - self._last_failure_time > self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
            return self._state == CircuitState.OPEN
        return False

    def record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.success_threshold:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.time()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN

    def get_state(self) -> CircuitState:
        return self._state


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration for one provider client."""

    name: str
    base_url: str
    timeout_seconds: float
    headers: Mapping[str, str] = field(default_factory=dict)


class ApiClient:
    """HTTP client wrapper with lazy connection setup and a circuit breaker."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._circuit_breaker = CircuitBreaker()

    @property
    def name(self) -> str:
        return self.config.name

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    headers=dict(self.config.headers),
                    transport=self._transport,
                )
        return self._client

    @dataclass
    class RequestParams:
        """Parameters for HTTP requests."""
        method: str
        path: str
        json_data: Any | None = None
        params: Mapping[str, Any] | None = None
        headers: dict[str, str] | None = None
        timeout: float | None = None

    async def _request(self, params: RequestParams) -> httpx.Response:
        if self._circuit_breaker.is_open():
            raise ProviderUnavailableError(f"{self.name} circuit breaker is open - service unavailable")

        client = await self._ensure_client()
        endpoint = f"{params.method} {params.path}"
        extra: dict[str, Any] = {}
        if params.timeout is not None:
            extra["timeout"] = httpx.Timeout(params.timeout)

        try:
            response = await client.request(
                params.method,
                params.path,
                json=params.json_data,
                params=params.params,
                headers=params.headers,
                **extra,
            )
        except httpx.TimeoutException as exc:
            self._circuit_breaker.record_failure()
            logger.warning("%s request timed out: %s", self.name, endpoint)
            raise ProviderTimeoutError(f"{self.name} request timed out: {endpoint}") from exc
        except httpx.HTTPError as exc:
            self._circuit_breaker.record_failure()
            logger.warning("%s request failed: %s (%s)", self.name, endpoint, exc)
            raise ProviderError(f"{self.name} request failed: {exc}") from exc

        if response.status_code >= HTTP_INTERNAL_SERVER_ERROR:
            self._circuit_breaker.record_failure()
            logger.warning("%s responded with %s for %s", self.name, response.status_code, endpoint)
            raise ProviderError(
                f"{self.name} responded with {response.status_code}",
                status_code=response.status_code,
            )

        self._circuit_breaker.record_success()
        return response

    async def _json(self, params: RequestParams) -> Any:
        """Perform a request and decode a successful JSON body."""
        response = await self._request(params)
        if response.status_code >= HTTP_BAD_REQUEST:
            logger.warning(
                "%s responded with %s for %s %s",
                self.name,
                response.status_code,
                params.method,
                params.path,
            )
            raise ProviderError(
                f"{self.name} responded with {response.status_code}",
                status_code=response.status_code,
            )
        return response.json()

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
