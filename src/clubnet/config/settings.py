"""ResilienceSettings dataclass and global configuration state.

This module defines the ``ResilienceSettings`` class (field declarations and
logging setup) and the global ``get_config`` / ``set_config`` helpers.
Loading logic lives in the ``_ResilienceSettingsLoader`` mixin
(``loader.py``) which ``ResilienceSettings`` inherits from.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from clubnet.config.domains import (
    CacheSettings,
    GuardSettings,
    NetworkSettings,
    QueueSettings,
    RetrySettings,
)
from clubnet.config.loader import _ResilienceSettingsLoader


@dataclass
class ResilienceSettings(_ResilienceSettingsLoader):
    """Resilience configuration with support for env vars and TOML overrides."""

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    retry: RetrySettings = field(default_factory=RetrySettings)
    network: NetworkSettings = field(default_factory=NetworkSettings)
    queue: QueueSettings = field(default_factory=QueueSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    guard: GuardSettings = field(default_factory=GuardSettings)

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.structured_logging:
            # JSON-style structured logging
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        handler = logging.StreamHandler()
        handler.setFormatter(formatter)

        root_logger = logging.getLogger("clubnet")
        root_logger.setLevel(level)
        root_logger.addHandler(handler)


# Global configuration instance
_config: Optional[ResilienceSettings] = None


def get_config() -> ResilienceSettings:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ResilienceSettings.from_env()
    return _config


def set_config(config: Optional[ResilienceSettings]) -> None:
    """Set (or with None, reset) the global configuration instance."""
    global _config
    _config = config
