"""Domain-specific configuration dataclasses.

Contains small, focused configuration classes for the resilience domains:
retry, network monitoring, offline queue, response caches and the
concurrency guard.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

from clubnet.config.parsing import _parse_bool, _parse_status_codes
from clubnet.core.resilience.models import DEFAULT_RETRYABLE_STATUS_CODES, RetryPolicy


@dataclass
class RetrySettings:
    """Default retry policy.

    Attributes:
        max_retries: Retries after the first attempt
        base_delay_ms: First exponential delay
        max_delay_ms: Cap on any computed delay
        backoff_multiplier: Growth factor per retry
        retryable_status_codes: HTTP statuses eligible for retry
        jitter_fraction: Symmetric jitter range (0.15 => +/-15%)
        use_network_based_delays: Prefer quality-tier cadence when available
    """

    max_retries: int = 3
    base_delay_ms: float = 1000.0
    max_delay_ms: float = 30000.0
    backoff_multiplier: float = 2.0
    retryable_status_codes: FrozenSet[int] = field(
        default_factory=lambda: DEFAULT_RETRYABLE_STATUS_CODES
    )
    jitter_fraction: float = 0.15
    use_network_based_delays: bool = True

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            max_delay_ms=self.max_delay_ms,
            backoff_multiplier=self.backoff_multiplier,
            retryable_status_codes=frozenset(self.retryable_status_codes),
            jitter_fraction=self.jitter_fraction,
            use_network_based_delays=self.use_network_based_delays,
        )

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "RetrySettings":
        """Create settings from TOML dict (typically [retry] section)."""
        codes = data.get("retryable_status_codes")
        return cls(
            max_retries=int(data.get("max_retries", 3)),
            base_delay_ms=float(data.get("base_delay_ms", 1000.0)),
            max_delay_ms=float(data.get("max_delay_ms", 30000.0)),
            backoff_multiplier=float(data.get("backoff_multiplier", 2.0)),
            retryable_status_codes=(
                _parse_status_codes(codes) if codes is not None else DEFAULT_RETRYABLE_STATUS_CODES
            ),
            jitter_fraction=float(data.get("jitter_fraction", 0.15)),
            use_network_based_delays=_parse_bool(data.get("use_network_based_delays", True)),
        )


@dataclass
class NetworkSettings:
    """Connectivity probing.

    Attributes:
        probe_url: Resource HEAD-requested by the probe (None disables probing)
        probe_timeout_seconds: Cap on a single probe
        online_probe_interval: Seconds between probes while online
        offline_probe_interval: Seconds between probes while offline
    """

    probe_url: Optional[str] = None
    probe_timeout_seconds: float = 5.0
    online_probe_interval: float = 120.0
    offline_probe_interval: float = 30.0

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "NetworkSettings":
        """Create settings from TOML dict (typically [network] section)."""
        return cls(
            probe_url=data.get("probe_url") or None,
            probe_timeout_seconds=float(data.get("probe_timeout_seconds", 5.0)),
            online_probe_interval=float(data.get("online_probe_interval", 120.0)),
            offline_probe_interval=float(data.get("offline_probe_interval", 30.0)),
        )


@dataclass
class QueueSettings:
    """Offline replay queue.

    Attributes:
        max_age_seconds: Entries older than this are rejected on replay
        pacing_seconds: Pause between replayed operations
    """

    max_age_seconds: float = 600.0
    pacing_seconds: float = 0.5

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "QueueSettings":
        """Create settings from TOML dict (typically [queue] section)."""
        return cls(
            max_age_seconds=float(data.get("max_age_seconds", 600.0)),
            pacing_seconds=float(data.get("pacing_seconds", 0.5)),
        )


@dataclass
class CacheSettings:
    """TTLs for the weather and reverse-geocoding caches (seconds)."""

    weather_fresh_ttl_seconds: float = 600.0
    weather_stale_ttl_seconds: float = 86400.0
    geocode_fresh_ttl_seconds: float = 3600.0
    geocode_stale_ttl_seconds: float = 86400.0

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "CacheSettings":
        """Create settings from TOML dict (typically [cache] section)."""
        return cls(
            weather_fresh_ttl_seconds=float(data.get("weather_fresh_ttl_seconds", 600.0)),
            weather_stale_ttl_seconds=float(data.get("weather_stale_ttl_seconds", 86400.0)),
            geocode_fresh_ttl_seconds=float(data.get("geocode_fresh_ttl_seconds", 3600.0)),
            geocode_stale_ttl_seconds=float(data.get("geocode_stale_ttl_seconds", 86400.0)),
        )


@dataclass
class GuardSettings:
    """Refresh-versus-mutation ordering."""

    refresh_wait_cap_ms: float = 3000.0
    poll_interval_ms: float = 100.0

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "GuardSettings":
        """Create settings from TOML dict (typically [guard] section)."""
        return cls(
            refresh_wait_cap_ms=float(data.get("refresh_wait_cap_ms", 3000.0)),
            poll_interval_ms=float(data.get("poll_interval_ms", 100.0)),
        )
