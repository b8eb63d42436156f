"""Staleness-aware response cache for idempotent reads.

Entries are served while fresh; while the device is offline they may still
be served up to the stale TTL. ``fetch`` implements the full read path,
including falling back to a stale entry when a live fetch fails.
"""

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Optional, TypeVar

from clubnet.core.errors.resilience import ClassifiedError
from clubnet.core.network.monitor import NetworkMonitor
from clubnet.core.observability import audit_log
from clubnet.core.resilience.models import Clock, ErrorInfo, ErrorKind, SuggestedAction
from clubnet.core.resilience.retry import RetryCoordinator

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FRESH_TTL_SECONDS = 10 * 60
DEFAULT_STALE_TTL_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value with its storage time (epoch seconds)."""

    key: str
    value: T
    cached_at: float


class ResponseCache(Generic[T]):
    """Keyed, TTL-bound store with an offline stale window."""

    def __init__(
        self,
        monitor: NetworkMonitor,
        *,
        name: str = "cache",
        fresh_ttl_seconds: float = DEFAULT_FRESH_TTL_SECONDS,
        stale_ttl_seconds: float = DEFAULT_STALE_TTL_SECONDS,
        clock: Optional[Clock] = None,
    ):
        """Initialize cache.

        Args:
            monitor: Consulted for the offline flag
            name: Label used in logs
            fresh_ttl_seconds: Age below which entries are authoritative
            stale_ttl_seconds: Age below which entries may serve as fallback
            clock: Injectable wall clock
        """
        if stale_ttl_seconds < fresh_ttl_seconds:
            raise ValueError("stale_ttl_seconds must be >= fresh_ttl_seconds")
        self.monitor = monitor
        self.name = name
        self.fresh_ttl_seconds = fresh_ttl_seconds
        self.stale_ttl_seconds = stale_ttl_seconds
        self._clock = clock or time.time
        self._entries: Dict[str, CacheEntry[T]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str, allow_stale_offline: bool = False) -> Optional[T]:
        """Return the cached value for ``key`` if it may be served.

        Fresh entries are always served. Entries within the stale TTL are
        served only with ``allow_stale_offline`` while the device is offline.
        Unservable entries are evicted, except while offline and still within
        the stale TTL.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        age = self._clock() - entry.cached_at
        if age < self.fresh_ttl_seconds:
            logger.debug("%s: fresh hit for %s", self.name, key)
            return entry.value

        online = self.monitor.is_online()
        if allow_stale_offline and not online and age < self.stale_ttl_seconds:
            logger.debug("%s: stale hit for %s (offline)", self.name, key)
            return entry.value

        if online or age >= self.stale_ttl_seconds:
            del self._entries[key]
        return None

    def set(self, key: str, value: T) -> None:
        """Store ``value`` under ``key``, replacing any existing entry."""
        self._entries[key] = CacheEntry(key=key, value=value, cached_at=self._clock())

    def clean_expired(self) -> int:
        """Remove entries past the stale TTL.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items()
            if now - entry.cached_at >= self.stale_ttl_seconds
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("%s: cleaned %d expired entries", self.name, len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def _peek_usable(self, key: str) -> Optional[CacheEntry[T]]:
        entry = self._entries.get(key)
        if entry is None or self._clock() - entry.cached_at >= self.stale_ttl_seconds:
            return None
        return entry

    async def fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        context: str,
        coordinator: RetryCoordinator,
    ) -> T:
        """Serve ``key`` from cache or the network, favouring availability.

        Offline: the stale entry if any, else a ``network`` failure.
        Online: the fresh entry if any, else a live fetch through the
        coordinator; if that fails and a stale entry exists, the stale
        value is returned instead of the error.

        Raises:
            ClassifiedError: No usable entry and the live path failed.
        """
        self.clean_expired()

        if not self.monitor.is_online():
            cached = self.get(key, allow_stale_offline=True)
            if cached is not None:
                return cached
            raise ClassifiedError(
                ErrorInfo(
                    kind=ErrorKind.NETWORK,
                    retryable=True,
                    context=context,
                    suggested_action=SuggestedAction.CHECK_NETWORK,
                    message=f"No internet connection and no cached data for {key}",
                    user_message="You are offline and no saved data is available.",
                )
            )

        stale = self._peek_usable(key)
        fresh = self.get(key)
        if fresh is not None:
            return fresh

        try:
            value = await coordinator.with_retry(fetcher, context)
        except ClassifiedError as e:
            if stale is None:
                raise
            logger.warning("%s: live fetch failed for %s, serving stale data", self.name, key)
            audit_log(
                "cache_fallback",
                cache=self.name,
                key=key,
                context=context,
                kind=e.info.kind.value,
                age_seconds=round(self._clock() - stale.cached_at, 1),
            )
            return stale.value

        self.set(key, value)
        return value
