"""Operation-scoped context for log and audit correlation.

The correlation id is carried in a ContextVar so that every task spawned
while an operation is running (retries, queued replays) reports under the
same id.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Return the correlation id of the current operation ('' if none)."""
    return correlation_id.get()


@contextmanager
def correlation_scope(value: Optional[str]) -> Iterator[str]:
    """Bind a correlation id for the duration of the block.

    A falsy value keeps whatever id is already bound.

    Example:
        with correlation_scope("join-42"):
            await coordinator.with_retry(join, "Join club")
    """
    if not value:
        yield correlation_id.get()
        return
    token = correlation_id.set(value)
    try:
        yield value
    finally:
        correlation_id.reset(token)


__all__ = [
    "correlation_id",
    "correlation_scope",
    "get_correlation_id",
]
