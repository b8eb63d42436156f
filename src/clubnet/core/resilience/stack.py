"""Process-wide resilience stack.

Builds one NetworkMonitor, RetryCoordinator, ConcurrencyGuard, OfflineQueue
and the two coordinate-keyed response caches from ``ResilienceSettings``,
and owns their shared lifecycle.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from clubnet.core.network.monitor import NetworkMonitor
from clubnet.core.network.probe import make_http_probe
from clubnet.core.resilience.cache import ResponseCache
from clubnet.core.resilience.client import HttpTransport, ResilientClient
from clubnet.core.resilience.guard import ConcurrencyGuard
from clubnet.core.resilience.offline_queue import OfflineQueue
from clubnet.core.resilience.retry import RetryCoordinator

if TYPE_CHECKING:
    from clubnet.config.settings import ResilienceSettings

logger = logging.getLogger(__name__)


@dataclass
class ResilienceStack:
    """The shared resilience components of one process."""

    monitor: NetworkMonitor
    coordinator: RetryCoordinator
    guard: ConcurrencyGuard
    queue: OfflineQueue
    weather_cache: ResponseCache[Any]
    geocode_cache: ResponseCache[Any]

    def client(self, transport: Optional[HttpTransport] = None) -> ResilientClient:
        """Build a ResilientClient over this stack's components."""
        return ResilientClient(
            self.monitor,
            self.coordinator,
            self.guard,
            self.queue,
            transport=transport,
        )

    async def shutdown(self) -> None:
        """Stop probing, reject queued operations and cancel debounces."""
        await self.monitor.stop()
        cleared = self.queue.clear()
        self.guard.cancel_all()
        logger.info("Resilience stack shut down (%d queued operations cancelled)", cleared)


def build_resilience_stack(config: Optional[ResilienceSettings] = None) -> ResilienceStack:
    """Create a fully wired stack from settings (default: ``get_config()``)."""
    if config is None:
        from clubnet.config import get_config

        config = get_config()

    probe = None
    if config.network.probe_url:
        probe = make_http_probe(
            config.network.probe_url,
            timeout_seconds=config.network.probe_timeout_seconds,
        )

    monitor = NetworkMonitor(
        probe=probe,
        probe_timeout_seconds=config.network.probe_timeout_seconds,
        online_probe_interval=config.network.online_probe_interval,
        offline_probe_interval=config.network.offline_probe_interval,
    )
    coordinator = RetryCoordinator(monitor, config.retry.to_policy())
    guard = ConcurrencyGuard(
        refresh_wait_cap_ms=config.guard.refresh_wait_cap_ms,
        poll_interval_ms=config.guard.poll_interval_ms,
    )
    queue = OfflineQueue(
        monitor,
        coordinator,
        max_age_seconds=config.queue.max_age_seconds,
        pacing_seconds=config.queue.pacing_seconds,
        guard=guard,
    )
    weather_cache: ResponseCache[Any] = ResponseCache(
        monitor,
        name="weather",
        fresh_ttl_seconds=config.cache.weather_fresh_ttl_seconds,
        stale_ttl_seconds=config.cache.weather_stale_ttl_seconds,
    )
    geocode_cache: ResponseCache[Any] = ResponseCache(
        monitor,
        name="geocode",
        fresh_ttl_seconds=config.cache.geocode_fresh_ttl_seconds,
        stale_ttl_seconds=config.cache.geocode_stale_ttl_seconds,
    )
    return ResilienceStack(
        monitor=monitor,
        coordinator=coordinator,
        guard=guard,
        queue=queue,
        weather_cache=weather_cache,
        geocode_cache=geocode_cache,
    )


# Global stack instance
_resilience_stack: Optional[ResilienceStack] = None
_resilience_stack_lock = threading.Lock()


def get_resilience_stack() -> ResilienceStack:
    """Get the singleton ResilienceStack instance.

    Thread-safe via double-checked locking.

    Returns:
        The global ResilienceStack instance
    """
    global _resilience_stack
    if _resilience_stack is None:
        with _resilience_stack_lock:
            if _resilience_stack is None:
                _resilience_stack = build_resilience_stack()
    return _resilience_stack


def reset_resilience_stack_for_testing(config: Optional[ResilienceSettings] = None) -> ResilienceStack:
    """Reset the singleton stack for test isolation.

    Creates a fresh stack with no state. Probing, queued operations and
    pending debounces of the previous stack are not touched; await its
    ``shutdown()`` first if it was used.
    """
    global _resilience_stack
    with _resilience_stack_lock:
        _resilience_stack = build_resilience_stack(config)
    return _resilience_stack
