"""Connectivity data models and quality derivation.

Quality tiers are derived deterministically from a NetworkStatus snapshot;
the recommended timeout and retry cadence are pure functions of the tier.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class NetworkStatus:
    """Immutable connectivity snapshot.

    Attributes:
        online: Whether the platform reports connectivity
        link_type: Physical link ('wifi', 'cellular', ...) when known
        effective_type: Effective link class ('4g', '3g', ...) when known
        downlink_mbps: Downlink estimate in Mbps
        round_trip_ms: Round-trip estimate in milliseconds
        data_saver: Whether the user enabled reduced data usage
    """

    online: bool
    link_type: Optional[str] = None
    effective_type: Optional[str] = None
    downlink_mbps: Optional[float] = None
    round_trip_ms: Optional[float] = None
    data_saver: Optional[bool] = None


class ConnectionQuality(str, Enum):
    """Coarse classification of current network conditions."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    OFFLINE = "offline"


# (description, color, icon) for the status indicator
QUALITY_PRESENTATION: Dict[ConnectionQuality, Tuple[str, str, str]] = {
    ConnectionQuality.EXCELLENT: ("Excellent connection", "success", "wifi-outline"),
    ConnectionQuality.GOOD: ("Good connection", "primary", "wifi-outline"),
    ConnectionQuality.FAIR: ("Fair connection", "warning", "cellular-outline"),
    ConnectionQuality.POOR: ("Slow connection", "danger", "cellular-outline"),
    ConnectionQuality.OFFLINE: ("No internet connection", "danger", "cloud-offline-outline"),
}

RECOMMENDED_TIMEOUTS_MS: Dict[ConnectionQuality, int] = {
    ConnectionQuality.EXCELLENT: 10000,
    ConnectionQuality.GOOD: 15000,
    ConnectionQuality.FAIR: 25000,
    ConnectionQuality.POOR: 35000,
    ConnectionQuality.OFFLINE: 5000,  # fail fast
}

RETRY_INTERVALS_MS: Dict[ConnectionQuality, List[int]] = {
    ConnectionQuality.EXCELLENT: [1000, 2000, 4000, 8000],
    ConnectionQuality.GOOD: [2000, 4000, 8000, 16000],
    ConnectionQuality.FAIR: [3000, 6000, 12000, 24000],
    ConnectionQuality.POOR: [5000, 10000, 20000, 40000],
    ConnectionQuality.OFFLINE: [10000, 20000, 40000],
}


def derive_quality(status: NetworkStatus) -> ConnectionQuality:
    """Derive the quality tier from a status snapshot.

    Offline overrides everything. Without both RTT and downlink metrics the
    link is assumed to be ``good``.
    """
    if not status.online:
        return ConnectionQuality.OFFLINE

    rtt = status.round_trip_ms
    downlink = status.downlink_mbps
    if rtt is None or downlink is None:
        return ConnectionQuality.GOOD

    if rtt < 100 and downlink > 10:
        return ConnectionQuality.EXCELLENT
    if rtt < 200 and downlink > 5:
        return ConnectionQuality.GOOD
    if rtt < 500 and downlink > 1:
        return ConnectionQuality.FAIR
    return ConnectionQuality.POOR


def recommended_timeout_ms(quality: ConnectionQuality) -> int:
    return RECOMMENDED_TIMEOUTS_MS[quality]


def recommended_retry_delays_ms(quality: ConnectionQuality) -> List[int]:
    return list(RETRY_INTERVALS_MS[quality])
