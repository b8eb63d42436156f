"""
Per-key concurrency control for mutating operations.

Provides in-flight deduplication, held-key locks, trailing-edge debounce and
a bounded wait-for-release used before refreshes.

Example:
    from clubnet.core.resilience.guard import ConcurrencyGuard, operation_key

    guard = ConcurrencyGuard()

    # Two taps on "Join" produce one request; both callers get its result
    key = operation_key("join", club_id)
    membership = await guard.run_exclusive(key, lambda: api.join(club_id))

    # Pull-to-refresh waits (bounded) for mutations on the same club
    await guard.run_refresh(
        operation_key("refresh", club_id),
        lambda: api.load_club(club_id),
        blocking_keys=[operation_key("join", club_id)],
    )
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Set, TypeVar

from clubnet.core.errors.resilience import OperationInProgressError
from clubnet.core.observability import audit_log
from clubnet.core.resilience.models import SleepFunc

logger = logging.getLogger(__name__)

T = TypeVar("T")


def operation_key(action: str, entity_id: Any) -> str:
    """Build an operation key such as ``join-42`` or ``approve-r7``."""
    return f"{action}-{entity_id}"


class ConcurrencyGuard:
    """Keyed mutual exclusion, deduplication and debounce.

    At most one in-flight call exists per key. A second caller with the same
    key attaches to the running call instead of starting another one.
    """

    def __init__(
        self,
        *,
        refresh_wait_cap_ms: float = 3000.0,
        poll_interval_ms: float = 100.0,
        sleep_func: Optional[SleepFunc] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        """Initialize guard.

        Args:
            refresh_wait_cap_ms: Default cap for ``wait_for_release``
            poll_interval_ms: Default poll interval for ``wait_for_release``
            sleep_func: Injectable sleep used by the poll loop
            monotonic: Injectable monotonic clock used by the poll loop
        """
        self.refresh_wait_cap_ms = refresh_wait_cap_ms
        self.poll_interval_ms = poll_interval_ms
        self._sleep = sleep_func or asyncio.sleep
        self._monotonic = monotonic
        self._inflight: Dict[str, asyncio.Task] = {}
        self._held: Set[str] = set()
        self._debounce_timers: Dict[str, asyncio.TimerHandle] = {}
        self._debounce_ops: Dict[str, Callable[[], Awaitable[Any]]] = {}
        self._debounce_waiters: Dict[str, List[asyncio.Future]] = {}
        self._debounce_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Locks and deduplication
    # ------------------------------------------------------------------

    def is_locked(self, key: str) -> bool:
        """Whether ``key`` is in flight or held (e.g. to disable a button)."""
        return key in self._inflight or key in self._held

    def active_keys(self) -> List[str]:
        """All keys currently in flight or held."""
        return sorted(set(self._inflight) | self._held)

    async def run_exclusive(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` unless ``key`` is already in flight.

        Concurrent callers with the same key share one execution and receive
        the identical result or exception. Cancelling one caller does not
        cancel the shared execution.
        """
        task = self._inflight.get(key)
        if task is None:
            if key in self._held:
                raise OperationInProgressError(f"Operation {key} is already in progress", key=key)
            task = asyncio.get_running_loop().create_task(self._run_and_release(key, operation))
            task.add_done_callback(self._consume_result)
            self._inflight[key] = task
        else:
            logger.debug("Joining in-flight operation %s", key)
        return await asyncio.shield(task)

    async def _run_and_release(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await operation()
        finally:
            self._inflight.pop(key, None)

    @staticmethod
    def _consume_result(task: asyncio.Task) -> None:
        # Every caller may have been cancelled; mark the failure as retrieved
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Shared operation failed: %s", task.exception())

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[str]:
        """Hold ``key`` for a multi-step mutation.

        Use as async context manager:

            async with guard.hold(operation_key("promote", member_id)):
                await api.promote(member_id)
                await api.notify(member_id)

        Raises:
            OperationInProgressError: If ``key`` is already held or in flight.
        """
        if self.is_locked(key):
            raise OperationInProgressError(f"Operation {key} is already in progress", key=key)
        self._held.add(key)
        try:
            yield key
        finally:
            self._held.discard(key)

    async def wait_for_release(
        self,
        keys: Iterable[str],
        *,
        max_wait_ms: Optional[float] = None,
        poll_interval_ms: Optional[float] = None,
    ) -> bool:
        """Poll until none of ``keys`` is locked, up to a cap.

        Returns:
            True if all keys were released, False if the cap elapsed first.
            Callers proceed either way.
        """
        keys = list(keys)
        cap = self.refresh_wait_cap_ms if max_wait_ms is None else max_wait_ms
        interval = self.poll_interval_ms if poll_interval_ms is None else poll_interval_ms
        deadline = self._monotonic() + cap / 1000.0

        while any(self.is_locked(k) for k in keys):
            if self._monotonic() >= deadline:
                busy = [k for k in keys if self.is_locked(k)]
                logger.warning("Proceeding after %.0fms wait; still locked: %s", cap, busy)
                audit_log("refresh_wait_timeout", keys=busy, max_wait_ms=cap)
                return False
            await self._sleep(interval / 1000.0)
        return True

    async def run_refresh(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        blocking_keys: Iterable[str],
        *,
        max_wait_ms: Optional[float] = None,
    ) -> T:
        """Wait (bounded) for mutations on ``blocking_keys``, then refresh."""
        await self.wait_for_release(blocking_keys, max_wait_ms=max_wait_ms)
        return await self.run_exclusive(key, operation)

    # ------------------------------------------------------------------
    # Debounce
    # ------------------------------------------------------------------

    def debounce(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        delay_ms: float,
    ) -> "asyncio.Future[T]":
        """Coalesce rapid triggers into one trailing-edge execution.

        Each call within the window cancels the pending timer and reschedules
        with the latest ``operation``. Every caller gets its own future,
        settled with the outcome of the single execution; cancelling one
        caller's future leaves the others untouched.
        """
        loop = asyncio.get_running_loop()

        timer = self._debounce_timers.pop(key, None)
        if timer is not None:
            timer.cancel()

        waiter = loop.create_future()
        self._debounce_waiters.setdefault(key, []).append(waiter)
        self._debounce_ops[key] = operation
        self._debounce_timers[key] = loop.call_later(delay_ms / 1000.0, self._fire_debounced, key)
        return waiter

    def _fire_debounced(self, key: str) -> None:
        self._debounce_timers.pop(key, None)
        operation = self._debounce_ops.pop(key)
        waiters = self._debounce_waiters.pop(key, [])
        task = asyncio.get_running_loop().create_task(self._settle(waiters, operation))
        self._debounce_tasks.add(task)
        task.add_done_callback(self._debounce_tasks.discard)

    @staticmethod
    async def _settle(waiters: List[asyncio.Future], operation: Callable[[], Awaitable[Any]]) -> None:
        try:
            result = await operation()
        except Exception as e:
            pending = [w for w in waiters if not w.done()]
            if not pending:
                logger.debug("Debounced operation failed after its callers went away: %s", e)
            for waiter in pending:
                waiter.set_exception(e)
            return
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(result)

    def is_debounce_pending(self, key: str) -> bool:
        return key in self._debounce_timers

    def cancel_debounce(self, key: str) -> bool:
        """Drop a pending debounced execution; its waiters are cancelled."""
        timer = self._debounce_timers.pop(key, None)
        self._debounce_ops.pop(key, None)
        waiters = self._debounce_waiters.pop(key, [])
        if timer is not None:
            timer.cancel()
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()
        return timer is not None

    def cancel_all(self) -> None:
        """Cancel every pending debounce (teardown)."""
        for key in list(self._debounce_timers):
            self.cancel_debounce(key)
