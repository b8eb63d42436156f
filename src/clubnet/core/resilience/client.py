"""Resilient request paths composed from the resilience primitives.

Mutations:  ConcurrencyGuard -> RetryCoordinator -> transport
            (or OfflineQueue when the device is offline)
Reads:      ResponseCache -> RetryCoordinator -> transport
Refreshes:  bounded wait on mutation keys -> ConcurrencyGuard -> RetryCoordinator
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

import httpx

from clubnet.core.context import correlation_scope
from clubnet.core.network.monitor import NetworkMonitor
from clubnet.core.resilience.cache import ResponseCache
from clubnet.core.resilience.guard import ConcurrencyGuard
from clubnet.core.resilience.models import RetryPolicy
from clubnet.core.resilience.offline_queue import OfflineQueue
from clubnet.core.resilience.retry import RetryCoordinator

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class HttpTransport:
    """Thin httpx wrapper returning decoded JSON and raising on non-2xx.

    Errors are left raw (``httpx.HTTPStatusError``, ``httpx.TransportError``)
    for the classifier.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        monitor: Optional[NetworkMonitor] = None,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.monitor = monitor
        self._client = httpx.AsyncClient(base_url=base_url, headers=headers, transport=transport)

    async def request(
        self,
        method: str,
        url: str,
        body: Any = None,
        *,
        timeout_ms: Optional[float] = None,
    ) -> Any:
        """Send one request.

        Args:
            method: HTTP method
            url: Absolute URL or path relative to ``base_url``
            body: JSON-serialisable payload
            timeout_ms: Request timeout; defaults to the monitor's
                recommendation for the current quality

        Returns:
            Decoded JSON body, or None for an empty body.
        """
        if timeout_ms is None and self.monitor is not None:
            timeout_ms = self.monitor.recommended_timeout_ms()
        timeout = timeout_ms / 1000.0 if timeout_ms is not None else None

        response = await self._client.request(method, url, json=body, timeout=timeout)
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()


class ResilientClient:
    """Entry point used by page controllers.

    Example:
        >>> client = ResilientClient(stack.monitor, stack.coordinator,
        ...                          stack.guard, stack.queue, transport)
        >>> await client.mutate(
        ...     operation_key("join", club_id),
        ...     lambda: transport.request("POST", f"/clubs/{club_id}/join"),
        ...     "Join club",
        ... )
    """

    def __init__(
        self,
        monitor: NetworkMonitor,
        coordinator: RetryCoordinator,
        guard: ConcurrencyGuard,
        queue: OfflineQueue,
        transport: Optional[HttpTransport] = None,
    ):
        self.monitor = monitor
        self.coordinator = coordinator
        self.guard = guard
        self.queue = queue
        self.transport = transport

    async def mutate(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        context: str,
        policy: Optional[RetryPolicy] = None,
    ) -> T:
        """Run a mutating operation once per key, or queue it while offline.

        A call whose key is still waiting in the queue attaches to the
        queued operation instead of sending a second request.
        """
        with correlation_scope(key):
            if not self.monitor.is_online() or self.queue.has_pending(key):
                logger.info("Deferring %s to the offline queue", context)
                return await self.queue.enqueue(context, operation, key=key)
            return await self.guard.run_exclusive(
                key,
                lambda: self.coordinator.with_retry(operation, context, policy),
            )

    async def read(
        self,
        cache: ResponseCache[T],
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        context: str,
    ) -> T:
        """Cached read with stale fallback."""
        with correlation_scope(key):
            return await cache.fetch(key, fetcher, context, self.coordinator)

    async def refresh(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        context: str,
        blocking_keys: Iterable[str] = (),
    ) -> T:
        """Refresh after (bounded) waiting for overlapping mutations."""
        with correlation_scope(key):
            return await self.guard.run_refresh(
                key,
                lambda: self.coordinator.with_retry(operation, context),
                blocking_keys,
            )

    async def request(
        self,
        method: str,
        url: str,
        body: Any = None,
        *,
        context: str,
        key: Optional[str] = None,
    ) -> Any:
        """Send a request through the matching resilient path.

        Mutating methods go through ``mutate`` (keyed by ``key`` or by
        method and URL); other methods are retried without deduplication.
        """
        if self.transport is None:
            raise RuntimeError("ResilientClient has no transport configured")

        method = method.upper()
        transport = self.transport

        def send() -> Awaitable[Any]:
            return transport.request(method, url, body)

        if method in _MUTATING_METHODS:
            return await self.mutate(key or f"{method} {url}", send, context)
        with correlation_scope(key):
            return await self.coordinator.with_retry(send, context)

    async def aclose(self) -> None:
        if self.transport is not None:
            await self.transport.aclose()
