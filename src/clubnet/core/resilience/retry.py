"""Quality-aware retry with exponential backoff and jitter.

RetryCoordinator wraps one asynchronous operation. Failures are classified
exactly once; terminal failures always surface as ``ClassifiedError`` so
callers handle a single failure shape.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, Awaitable, Callable, Literal, Optional, TypeVar, Union

from clubnet.core.errors.resilience import ClassifiedError
from clubnet.core.observability import audit_log, get_audit_logger
from clubnet.core.resilience.classifier import classify_error
from clubnet.core.resilience.models import ErrorInfo, RetryPolicy, SleepFunc

if TYPE_CHECKING:
    from clubnet.core.network.monitor import NetworkMonitor

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_POLICY = RetryPolicy()


class RetryCoordinator:
    """Execute operations with bounded, jittered, quality-aware backoff.

    Example:
        >>> coordinator = RetryCoordinator(monitor)
        >>> club = await coordinator.with_retry(
        ...     lambda: client.post(f"/clubs/{club_id}/join"),
        ...     "Join club",
        ... )

    Testing example:
        >>> sleeps = []
        >>> async def fake_sleep(s): sleeps.append(s)
        >>> coordinator = RetryCoordinator(
        ...     monitor, rng=random.Random(42), sleep_func=fake_sleep
        ... )
    """

    def __init__(
        self,
        monitor: Optional[NetworkMonitor] = None,
        policy: Optional[RetryPolicy] = None,
        *,
        rng: Optional[random.Random] = None,
        sleep_func: Optional[SleepFunc] = None,
    ):
        """Initialize coordinator.

        Args:
            monitor: Source of quality-based retry delays and timeouts.
                Without one, only exponential backoff is used.
            policy: Default policy (overridable per call)
            rng: Injectable Random instance for deterministic jitter
            sleep_func: Injectable sleep function for time control in tests
        """
        self.monitor = monitor
        self.policy = policy or DEFAULT_RETRY_POLICY
        self._rng = rng or random.Random()
        self._sleep = sleep_func or asyncio.sleep

    def compute_delay_ms(self, retry_number: int, policy: Optional[RetryPolicy] = None) -> float:
        """Delay before the given retry (1-based).

        Uses the monitor's cadence for the current quality when enabled and
        it has an entry for this retry; otherwise exponential backoff with
        symmetric jitter, capped at ``max_delay_ms``.
        """
        policy = policy or self.policy

        if policy.use_network_based_delays and self.monitor is not None:
            network_delays = self.monitor.recommended_retry_delays_ms()
            if retry_number <= len(network_delays):
                return float(network_delays[retry_number - 1])

        delay = policy.base_delay_ms * (policy.backoff_multiplier ** (retry_number - 1))
        if policy.jitter_fraction > 0:
            jitter = min(max(policy.jitter_fraction, 0.0), 1.0)
            delay = delay * (1.0 + (self._rng.random() * 2.0 - 1.0) * jitter)
        return min(delay, policy.max_delay_ms)

    def should_retry(self, info: ErrorInfo, retry_number: int, policy: RetryPolicy) -> bool:
        """Whether a failure classified as ``info`` earns retry ``retry_number``."""
        if not info.retryable or retry_number > policy.max_retries:
            return False
        if info.status_code is not None and info.status_code not in policy.retryable_status_codes:
            return False
        return True

    async def with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        context: str,
        policy: Optional[RetryPolicy] = None,
        *,
        timeout_ms: Union[float, Literal["auto"], None] = None,
    ) -> T:
        """Run ``operation`` until it succeeds or the policy gives up.

        Args:
            operation: Zero-argument callable returning an awaitable; called
                once per attempt (use a lambda for arguments).
            context: Human-readable operation label for logs and ErrorInfo.
            policy: Per-call policy override.
            timeout_ms: Per-attempt timeout. ``"auto"`` uses the monitor's
                recommended timeout for the current quality.

        Returns:
            Result of the first successful attempt.

        Raises:
            ClassifiedError: Non-retryable failure or retry budget exhausted.
        """
        policy = policy or self.policy
        attempt_timeout = self._resolve_timeout(timeout_ms)
        retry_number = 0

        while True:
            try:
                if attempt_timeout is not None:
                    return await asyncio.wait_for(operation(), timeout=attempt_timeout)
                return await operation()
            except Exception as e:
                if isinstance(e, ClassifiedError):
                    info = e.info
                else:
                    info = classify_error(e, context)
                retry_number += 1

                if not self.should_retry(info, retry_number, policy):
                    logger.error(
                        "Failed %s after %d retries: %s (%s)",
                        context,
                        retry_number - 1,
                        info.message,
                        info.kind.value,
                    )
                    audit_log(
                        "retry_exhausted",
                        context=context,
                        retries=retry_number - 1,
                        kind=info.kind.value,
                        status_code=info.status_code,
                        retryable=info.retryable,
                    )
                    if isinstance(e, ClassifiedError):
                        raise
                    raise ClassifiedError(info) from e

                delay_ms = self.compute_delay_ms(retry_number, policy)
                logger.warning(
                    "Retrying %s (attempt %d/%d) after %.0fms: %s",
                    context,
                    retry_number,
                    policy.max_retries,
                    delay_ms,
                    info.message,
                )
                get_audit_logger().retry_attempt(
                    context,
                    retry_number,
                    delay_ms,
                    kind=info.kind.value,
                    status_code=info.status_code,
                )
                await self._sleep(delay_ms / 1000.0)

    def _resolve_timeout(self, timeout_ms: Union[float, Literal["auto"], None]) -> Optional[float]:
        if timeout_ms is None:
            return None
        if timeout_ms == "auto":
            if self.monitor is None:
                return None
            return self.monitor.recommended_timeout_ms() / 1000.0
        return float(timeout_ms) / 1000.0
