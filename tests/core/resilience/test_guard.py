"""Tests for ConcurrencyGuard."""

import asyncio
import logging

import pytest

from clubnet.core.errors import OperationInProgressError
from clubnet.core.resilience import ConcurrencyGuard, operation_key


def test_operation_key():
    assert operation_key("join", 42) == "join-42"
    assert operation_key("approve", "r7") == "approve-r7"


class TestRunExclusive:
    """In-flight deduplication."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_execution(self):
        """Two taps on the same key produce one call and one result."""
        guard = ConcurrencyGuard()
        gate = asyncio.Event()
        calls = [0]

        async def join():
            calls[0] += 1
            await gate.wait()
            return {"member": True}

        key = operation_key("join", 1)
        first = asyncio.create_task(guard.run_exclusive(key, join))
        second = asyncio.create_task(guard.run_exclusive(key, join))
        await asyncio.sleep(0)

        assert guard.is_locked(key) is True
        assert guard.active_keys() == [key]

        gate.set()
        results = await asyncio.gather(first, second)

        assert calls[0] == 1
        assert results[0] is results[1]
        assert guard.is_locked(key) is False

    @pytest.mark.asyncio
    async def test_shared_failure(self):
        """All joined callers receive the same exception."""
        guard = ConcurrencyGuard()
        gate = asyncio.Event()

        async def fail():
            await gate.wait()
            raise RuntimeError("boom")

        first = asyncio.create_task(guard.run_exclusive("leave-3", fail))
        second = asyncio.create_task(guard.run_exclusive("leave-3", fail))
        await asyncio.sleep(0)
        gate.set()

        outcomes = await asyncio.gather(first, second, return_exceptions=True)
        assert all(isinstance(o, RuntimeError) for o in outcomes)
        assert guard.is_locked("leave-3") is False

    @pytest.mark.asyncio
    async def test_key_released_after_failure(self):
        guard = ConcurrencyGuard()
        calls = [0]

        async def fail():
            calls[0] += 1
            raise RuntimeError("boom")

        for _ in range(2):
            with pytest.raises(RuntimeError):
                await guard.run_exclusive("leave-3", fail)

        assert calls[0] == 2

    @pytest.mark.asyncio
    async def test_cancelling_one_caller_keeps_shared_execution(self):
        """Cancellation of one waiter does not stop the operation."""
        guard = ConcurrencyGuard()
        gate = asyncio.Event()

        async def join():
            await gate.wait()
            return "joined"

        first = asyncio.create_task(guard.run_exclusive("join-5", join))
        second = asyncio.create_task(guard.run_exclusive("join-5", join))
        await asyncio.sleep(0)

        first.cancel()
        gate.set()

        assert await second == "joined"
        with pytest.raises(asyncio.CancelledError):
            await first

    @pytest.mark.asyncio
    async def test_failure_retrieved_when_every_caller_cancelled(self, caplog):
        """The shared task's exception is consumed even with no caller left."""
        caplog.set_level(logging.DEBUG, logger="clubnet.core.resilience.guard")
        guard = ConcurrencyGuard()
        gate = asyncio.Event()

        async def fail():
            await gate.wait()
            raise RuntimeError("boom")

        caller = asyncio.create_task(guard.run_exclusive("leave-9", fail))
        await asyncio.sleep(0)
        shared = guard._inflight["leave-9"]

        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller
        gate.set()
        for _ in range(5):
            await asyncio.sleep(0)

        assert shared.done()
        assert "Shared operation failed: boom" in caplog.text
        assert guard.is_locked("leave-9") is False


class TestHold:
    """Held keys for multi-step mutations."""

    @pytest.mark.asyncio
    async def test_hold_locks_key(self):
        guard = ConcurrencyGuard()

        async def noop():
            return None

        async with guard.hold("promote-9") as key:
            assert key == "promote-9"
            assert guard.is_locked("promote-9") is True
            with pytest.raises(OperationInProgressError) as exc_info:
                await guard.run_exclusive("promote-9", noop)
            assert exc_info.value.key == "promote-9"

        assert guard.is_locked("promote-9") is False

    @pytest.mark.asyncio
    async def test_reentry_rejected(self):
        guard = ConcurrencyGuard()
        async with guard.hold("promote-9"):
            with pytest.raises(OperationInProgressError):
                async with guard.hold("promote-9"):
                    pass


class TestWaitForRelease:
    """Bounded wait used before refreshes."""

    @pytest.mark.asyncio
    async def test_returns_immediately_when_free(self, clock):
        guard = ConcurrencyGuard(sleep_func=clock.sleep, monotonic=clock)
        assert await guard.wait_for_release(["join-1"]) is True
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_gives_up_after_cap(self, clock, audit_events):
        """A key held past the cap does not block the refresh forever."""
        guard = ConcurrencyGuard(sleep_func=clock.sleep, monotonic=clock)

        async with guard.hold("join-1"):
            released = await guard.wait_for_release(["join-1", "leave-1"])

        assert released is False
        assert all(s == pytest.approx(0.1) for s in clock.sleeps)
        assert sum(clock.sleeps) == pytest.approx(3.0, abs=0.11)
        assert audit_events("refresh_wait_timeout")[0]["details"]["keys"] == ["join-1"]

    @pytest.mark.asyncio
    async def test_refresh_runs_after_mutation(self, clock):
        """A refresh waits for an overlapping mutation to finish first."""
        guard = ConcurrencyGuard(sleep_func=clock.sleep, monotonic=clock)
        gate = asyncio.Event()
        order = []

        async def mutation():
            await gate.wait()
            order.append("mutation")

        async def refresh():
            order.append("refresh")
            return "fresh"

        mutating = asyncio.create_task(guard.run_exclusive("join-1", mutation))
        await asyncio.sleep(0)
        refreshing = asyncio.create_task(guard.run_refresh("refresh-1", refresh, ["join-1"]))
        await asyncio.sleep(0)
        gate.set()

        await mutating
        assert await refreshing == "fresh"
        assert order == ["mutation", "refresh"]


class TestDebounce:
    """Trailing-edge debounce."""

    @pytest.mark.asyncio
    async def test_coalesces_to_latest_operation(self):
        """Rapid triggers run once with the latest operation."""
        guard = ConcurrencyGuard()
        calls = []

        async def search(term):
            calls.append(term)
            return [term]

        first = guard.debounce("search", lambda: search("ten"), 10)
        second = guard.debounce("search", lambda: search("tennis"), 10)

        assert first is not second
        assert guard.is_debounce_pending("search") is True
        assert await first == ["tennis"]
        assert await second == ["tennis"]
        assert calls == ["tennis"]
        assert guard.is_debounce_pending("search") is False

    @pytest.mark.asyncio
    async def test_cancelling_one_caller_keeps_others(self):
        """A caller that goes away only discards its own result."""
        guard = ConcurrencyGuard()
        calls = []

        async def save():
            calls.append("save")
            return "saved"

        async def trigger():
            return await guard.debounce("save", save, 20)

        first = asyncio.create_task(trigger())
        second = asyncio.create_task(trigger())
        await asyncio.sleep(0)

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        assert await second == "saved"
        assert calls == ["save"]

    @pytest.mark.asyncio
    async def test_running_execution_is_tracked(self):
        """The fired execution is referenced by the guard until it finishes."""
        guard = ConcurrencyGuard()
        gate = asyncio.Event()

        async def save():
            await gate.wait()
            return "saved"

        waiter = guard.debounce("save", save, 1)
        while guard.is_debounce_pending("save"):
            await asyncio.sleep(0.005)

        assert len(guard._debounce_tasks) == 1
        gate.set()
        assert await waiter == "saved"
        await asyncio.sleep(0)
        assert guard._debounce_tasks == set()

    @pytest.mark.asyncio
    async def test_failure_reaches_callers(self):
        guard = ConcurrencyGuard()

        async def fail():
            raise RuntimeError("boom")

        waiter = guard.debounce("save", fail, 1)
        with pytest.raises(RuntimeError):
            await waiter

    @pytest.mark.asyncio
    async def test_cancel_debounce(self):
        guard = ConcurrencyGuard()
        calls = []

        async def save():
            calls.append("save")

        waiter = guard.debounce("save", save, 10)
        assert guard.cancel_debounce("save") is True
        assert waiter.cancelled()
        assert guard.cancel_debounce("save") is False

        await asyncio.sleep(0.03)
        assert calls == []

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        guard = ConcurrencyGuard()

        async def save():
            return None

        waiters = [guard.debounce(f"save-{i}", save, 50) for i in range(3)]
        guard.cancel_all()

        assert all(w.cancelled() for w in waiters)
        assert not any(guard.is_debounce_pending(f"save-{i}") for i in range(3))
