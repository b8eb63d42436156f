"""Lightweight HTTP connectivity probe.

Issues a HEAD request against a small static asset; any 2xx answer means
the device can reach the backend.
"""

import logging
from typing import Awaitable, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[], Awaitable[bool]]


def make_http_probe(
    url: str,
    *,
    timeout_seconds: float = 5.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProbeFunc:
    """Build a probe that HEADs ``url`` with caching disabled.

    Args:
        url: Absolute URL of a cheap static resource.
        timeout_seconds: Request timeout (the monitor applies its own cap too).
        transport: Optional httpx transport, mainly for tests.

    Returns:
        Async callable returning True when the resource answered 2xx.
        Transport errors propagate; the monitor treats them as offline.
    """

    async def probe() -> bool:
        async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
            response = await client.head(url, headers={"Cache-Control": "no-cache"})
            logger.debug("Connectivity probe %s -> %s", url, response.status_code)
            return response.is_success

    return probe
