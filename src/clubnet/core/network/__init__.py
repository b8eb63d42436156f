"""Connectivity monitoring.

- NetworkStatus / ConnectionQuality models and the quality derivation
- NetworkMonitor, the process-wide status publisher
- make_http_probe, the default reachability check
"""

from clubnet.core.network.models import (
    QUALITY_PRESENTATION,
    RECOMMENDED_TIMEOUTS_MS,
    RETRY_INTERVALS_MS,
    ConnectionQuality,
    NetworkStatus,
    derive_quality,
    recommended_retry_delays_ms,
    recommended_timeout_ms,
)
from clubnet.core.network.monitor import NetworkMonitor
from clubnet.core.network.probe import ProbeFunc, make_http_probe

__all__ = [
    "ConnectionQuality",
    "NetworkStatus",
    "QUALITY_PRESENTATION",
    "RECOMMENDED_TIMEOUTS_MS",
    "RETRY_INTERVALS_MS",
    "derive_quality",
    "recommended_retry_delays_ms",
    "recommended_timeout_ms",
    "NetworkMonitor",
    "ProbeFunc",
    "make_http_probe",
]
