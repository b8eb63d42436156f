"""Process-wide connectivity and link-quality monitor.

NetworkMonitor is the single source of truth for "are we online, and how
good is the link". Platform adapters push raw signals through
``update_status`` / ``set_online``; everything else reads snapshots or
subscribes to ``status_stream``.

Example:
    monitor = NetworkMonitor(probe=make_http_probe("https://api.example/ping"))
    monitor.start()

    async for status in monitor.status_stream():
        if status.online:
            break
"""

import asyncio
import contextlib
import logging
from dataclasses import replace
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Set

from clubnet.core.network.models import (
    ConnectionQuality,
    NetworkStatus,
    derive_quality,
    recommended_retry_delays_ms,
    recommended_timeout_ms,
)
from clubnet.core.network.probe import ProbeFunc
from clubnet.core.observability import get_audit_logger

logger = logging.getLogger(__name__)


class NetworkMonitor:
    """Observe connectivity signals and publish status and quality.

    Subscribers of ``status_stream`` receive the current value immediately,
    then only changes. Each call to ``status_stream`` is an independent
    subscription; all of them share the one set of platform signals fed in
    through ``update_status``.
    """

    def __init__(
        self,
        initial_status: Optional[NetworkStatus] = None,
        *,
        probe: Optional[ProbeFunc] = None,
        probe_timeout_seconds: float = 5.0,
        online_probe_interval: float = 120.0,
        offline_probe_interval: float = 30.0,
        sleep_func: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """Initialize monitor.

        Args:
            initial_status: Starting snapshot (default: online, no metrics)
            probe: Async callable returning True when the backend is reachable
            probe_timeout_seconds: Hard cap on a single probe
            online_probe_interval: Seconds between probes while online
            offline_probe_interval: Seconds between probes while offline
            sleep_func: Injectable sleep for the probe loop
        """
        self._status = initial_status or NetworkStatus(online=True)
        self._quality = derive_quality(self._status)
        self._subscribers: Set["asyncio.Queue[NetworkStatus]"] = set()
        self._probe = probe
        self._probe_timeout = probe_timeout_seconds
        self._online_interval = online_probe_interval
        self._offline_interval = offline_probe_interval
        self._sleep = sleep_func or asyncio.sleep
        self._probe_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def current_status(self) -> NetworkStatus:
        """Get current network status synchronously."""
        return self._status

    def current_quality(self) -> ConnectionQuality:
        """Get current connection quality synchronously."""
        return self._quality

    def is_online(self) -> bool:
        return self._status.online

    def is_connection_good(self) -> bool:
        """Check if the connection is suitable for heavy operations."""
        return self._quality in (ConnectionQuality.EXCELLENT, ConnectionQuality.GOOD)

    def is_data_saver(self) -> bool:
        return bool(self._status.data_saver)

    def recommended_timeout_ms(self) -> int:
        """Request timeout suited to the current quality tier."""
        return recommended_timeout_ms(self._quality)

    def recommended_retry_delays_ms(self) -> List[int]:
        """Retry cadence suited to the current quality tier."""
        return recommended_retry_delays_ms(self._quality)

    # ------------------------------------------------------------------
    # Platform signals
    # ------------------------------------------------------------------

    def update_status(self, status: NetworkStatus) -> None:
        """Replace the published snapshot and notify subscribers on change."""
        if status == self._status:
            return

        previous = self._status
        self._status = status
        self._quality = derive_quality(status)

        if previous.online != status.online:
            logger.info(
                "Connectivity changed: %s (quality=%s)",
                "online" if status.online else "offline",
                self._quality.value,
            )
            get_audit_logger().connectivity_change(
                online=status.online,
                quality=self._quality.value,
            )

        for queue in list(self._subscribers):
            queue.put_nowait(status)

    def set_online(self, online: bool) -> None:
        """Apply a binary online/offline platform event."""
        self.update_status(replace(self._status, online=online))

    async def status_stream(self) -> AsyncIterator[NetworkStatus]:
        """Yield the current status, then every distinct change.

        Use ``contextlib.aclosing`` when breaking out early so the
        subscription is released promptly.
        """
        queue: "asyncio.Queue[NetworkStatus]" = asyncio.Queue()
        self._subscribers.add(queue)
        last = self._status
        try:
            yield last
            while True:
                status = await queue.get()
                if status == last:
                    continue
                last = status
                yield status
        finally:
            self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ------------------------------------------------------------------
    # Probing
    # ------------------------------------------------------------------

    async def probe_connectivity(self) -> bool:
        """Check actual reachability and correct the published status.

        Returns:
            True if the probe succeeded within the timeout. Without a
            configured probe the current ``online`` flag is returned.
        """
        if self._probe is None:
            logger.debug("No connectivity probe configured; keeping current status")
            return self._status.online

        try:
            is_online = bool(await asyncio.wait_for(self._probe(), timeout=self._probe_timeout))
        except Exception as e:
            logger.debug("Connectivity probe failed: %s", e)
            is_online = False

        if is_online != self._status.online:
            self.set_online(is_online)
        return is_online

    def start(self) -> None:
        """Start periodic probing (idempotent). Requires a running loop."""
        if self._probe_task is not None and not self._probe_task.done():
            return
        self._probe_task = asyncio.get_running_loop().create_task(self._probe_loop())

    async def stop(self) -> None:
        """Cancel periodic probing."""
        task = self._probe_task
        self._probe_task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    @property
    def is_probing(self) -> bool:
        return self._probe_task is not None and not self._probe_task.done()

    async def _probe_loop(self) -> None:
        while True:
            interval = self._online_interval if self._status.online else self._offline_interval
            await self._sleep(interval)
            await self.probe_connectivity()
