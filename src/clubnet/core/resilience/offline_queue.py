"""In-memory holding area for operations attempted while offline.

Operations are replayed strictly FIFO by a single worker once connectivity
returns, each through the retry coordinator, with a fixed pause between
items. Entries older than the replay window are rejected instead of run.

Keyed operations are deduplicated while pending and replayed through the
ConcurrencyGuard, so a key never has two network calls in flight.
"""

import asyncio
import contextlib
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, List, Optional, TypeVar

from ulid import ULID

from clubnet.core.context import correlation_scope
from clubnet.core.errors.resilience import OperationExpiredError, QueueClearedError
from clubnet.core.network.monitor import NetworkMonitor
from clubnet.core.observability import audit_log
from clubnet.core.resilience.guard import ConcurrencyGuard
from clubnet.core.resilience.models import Clock, SleepFunc
from clubnet.core.resilience.retry import RetryCoordinator

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_AGE_SECONDS = 10 * 60
DEFAULT_PACING_SECONDS = 0.5


@dataclass
class QueuedOperation:
    """A deferred operation owned by the queue until settled."""

    id: str
    factory: Callable[[], Awaitable[Any]]
    context: str
    enqueued_at: float
    key: Optional[str] = None
    waiters: List[asyncio.Future] = field(default_factory=list)

    def add_waiter(self) -> asyncio.Future:
        """Attach a caller. Each caller owns its future."""
        waiter = asyncio.get_running_loop().create_future()
        self.waiters.append(waiter)
        return waiter

    def set_result(self, result: Any) -> None:
        for waiter in self.waiters:
            if not waiter.done():
                waiter.set_result(result)

    def set_exception(self, error: BaseException) -> None:
        for waiter in self.waiters:
            if not waiter.done():
                waiter.set_exception(error)


class OfflineQueue:
    """FIFO replay queue for operations submitted while offline."""

    def __init__(
        self,
        monitor: NetworkMonitor,
        coordinator: RetryCoordinator,
        *,
        max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS,
        pacing_seconds: float = DEFAULT_PACING_SECONDS,
        guard: Optional[ConcurrencyGuard] = None,
        clock: Optional[Clock] = None,
        sleep_func: Optional[SleepFunc] = None,
    ):
        self.monitor = monitor
        self.coordinator = coordinator
        self.max_age_seconds = max_age_seconds
        self.pacing_seconds = pacing_seconds
        self.guard = guard
        self._clock = clock or time.time
        self._sleep = sleep_func or asyncio.sleep
        self._pending: Deque[QueuedOperation] = deque()
        self._processing = False
        self._worker: Optional[asyncio.Task] = None
        self._watcher: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        return self._processing

    def pending_contexts(self) -> List[str]:
        """Context labels of queued operations, head first."""
        return [op.context for op in self._pending]

    def has_pending(self, key: str) -> bool:
        """Whether an operation with ``key`` is waiting for replay."""
        return self._find(key) is not None

    def enqueue(
        self,
        context: str,
        factory: Callable[[], Awaitable[T]],
        *,
        key: Optional[str] = None,
    ) -> "asyncio.Future[T]":
        """Queue ``factory`` for replay.

        When ``key`` matches an operation that is still pending, the caller
        is attached to that operation and ``factory`` is dropped.

        Returns:
            Future settled when the operation is eventually executed,
            expires, or the queue is cleared. Cancelling it discards only
            this caller's result; the operation stays queued.
        """
        if key is not None:
            existing = self._find(key)
            if existing is not None:
                logger.debug("Attaching to queued operation %s", key)
                return existing.add_waiter()

        operation = QueuedOperation(
            id=str(ULID()),
            factory=factory,
            context=context,
            enqueued_at=self._clock(),
            key=key,
        )
        waiter = operation.add_waiter()
        self._pending.append(operation)
        logger.info("Queued operation: %s (%d pending)", context, len(self._pending))
        audit_log("operation_queued", context=context, operation_id=operation.id)

        if self.monitor.is_online():
            self._schedule_processing()
        else:
            self._watch_for_online()
        return waiter

    def clear(self) -> int:
        """Reject all pending operations and empty the queue.

        Returns:
            Number of operations cancelled.
        """
        cleared = 0
        while self._pending:
            operation = self._pending.popleft()
            operation.set_exception(QueueClearedError(context=operation.context))
            cleared += 1
        if self._watcher is not None and not self._watcher.done():
            self._watcher.cancel()
        self._watcher = None
        logger.info("Operation queue cleared (%d cancelled)", cleared)
        audit_log("queue_cleared", cancelled=cleared)
        return cleared

    async def join(self) -> None:
        """Wait for the current replay run (if any) to finish."""
        worker = self._worker
        if worker is not None and not worker.done():
            await asyncio.shield(worker)

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    def _find(self, key: str) -> Optional[QueuedOperation]:
        for operation in self._pending:
            if operation.key == key:
                return operation
        return None

    def _schedule_processing(self) -> None:
        if self._worker is not None and not self._worker.done():
            return
        self._worker = asyncio.get_running_loop().create_task(self.process())

    def _watch_for_online(self) -> None:
        if self._watcher is not None and not self._watcher.done():
            return
        self._watcher = asyncio.get_running_loop().create_task(self._wait_then_process())

    async def _wait_then_process(self) -> None:
        async with contextlib.aclosing(self.monitor.status_stream()) as stream:
            async for status in stream:
                if status.online:
                    break
        self._watcher = None
        self._schedule_processing()

    async def process(self) -> None:
        """Replay queued operations in order (single worker)."""
        if self._processing or not self._pending:
            return
        if not self.monitor.is_online():
            # Connectivity dropped again after the watcher fired
            self._watch_for_online()
            return

        self._processing = True
        logger.info("Processing %d queued operations", len(self._pending))
        try:
            while self._pending:
                if not self.monitor.is_online():
                    logger.info("Connectivity lost; pausing replay with %d pending", len(self._pending))
                    self._watch_for_online()
                    break

                operation = self._pending.popleft()
                age = self._clock() - operation.enqueued_at
                if age > self.max_age_seconds:
                    logger.warning("Discarding stale operation: %s", operation.context)
                    audit_log(
                        "operation_expired",
                        context=operation.context,
                        operation_id=operation.id,
                        age_seconds=round(age, 1),
                    )
                    operation.set_exception(
                        OperationExpiredError(
                            context=operation.context,
                            age_seconds=age,
                            max_age_seconds=self.max_age_seconds,
                        ),
                    )
                    continue

                try:
                    result = await self._replay(operation)
                except Exception as e:
                    logger.error("Failed to execute queued operation: %s", operation.context)
                    operation.set_exception(e)
                else:
                    logger.info("Successfully executed queued operation: %s", operation.context)
                    operation.set_result(result)

                # Pace replays so a reconnect does not burst the backend
                await self._sleep(self.pacing_seconds)
        finally:
            self._processing = False

    async def _replay(self, operation: QueuedOperation) -> Any:
        def run() -> Awaitable[Any]:
            return self.coordinator.with_retry(operation.factory, f"Queued: {operation.context}")

        with correlation_scope(operation.key):
            if self.guard is not None and operation.key is not None:
                return await self.guard.run_exclusive(operation.key, run)
            return await run()
