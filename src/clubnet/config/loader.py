"""ResilienceSettings loading logic.

Provides ``_ResilienceSettingsLoader``, a mixin class whose methods are
inherited by ``ResilienceSettings`` (defined in ``settings.py``). Keeping
loading in its own module leaves ``settings.py`` focused on field
definitions.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, cast

if TYPE_CHECKING:
    from clubnet.config.settings import ResilienceSettings

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from clubnet.config.domains import (
    CacheSettings,
    GuardSettings,
    NetworkSettings,
    QueueSettings,
    RetrySettings,
)
from clubnet.config.parsing import _normalize_log_level, _parse_bool, _try_parse_bool

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV_VAR = "CLUBNET_CONFIG_FILE"


class _ResilienceSettingsLoader:
    """Mixin providing config-loading methods for ``ResilienceSettings``."""

    if TYPE_CHECKING:
        log_level: str
        structured_logging: bool
        retry: RetrySettings
        network: NetworkSettings
        queue: QueueSettings
        cache: CacheSettings
        guard: GuardSettings

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ResilienceSettings":
        """
        Create settings from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. Project TOML config (./clubnet.toml)
        3. User TOML config (~/.clubnet.toml)
        4. XDG config (~/.config/clubnet/config.toml)
        5. Default values
        """
        settings = cls()

        toml_path = config_file or os.environ.get(CONFIG_FILE_ENV_VAR)
        if toml_path:
            settings._load_toml(Path(toml_path))
        else:
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
            xdg_config = Path(xdg_config_home) / "clubnet" / "config.toml"
            if xdg_config.exists():
                settings._load_toml(xdg_config)
                logger.debug(f"Loaded XDG config from {xdg_config}")

            home_config = Path.home() / ".clubnet.toml"
            if home_config.exists():
                settings._load_toml(home_config)
                logger.debug(f"Loaded user config from {home_config}")

            project_config = Path("clubnet.toml")
            if project_config.exists():
                settings._load_toml(project_config)
                logger.debug(f"Loaded project config from {project_config}")

        settings._load_env()
        return cast("ResilienceSettings", settings)

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file; later files override earlier ones."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            return

        self.apply_toml_dict(data)

    def apply_toml_dict(self, data: dict[str, Any]) -> None:
        """Apply parsed TOML sections to this settings object."""
        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = _normalize_log_level(log["level"])
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])

        if "retry" in data:
            self.retry = RetrySettings.from_toml_dict(data["retry"])
        if "network" in data:
            self.network = NetworkSettings.from_toml_dict(data["network"])
        if "queue" in data:
            self.queue = QueueSettings.from_toml_dict(data["queue"])
        if "cache" in data:
            self.cache = CacheSettings.from_toml_dict(data["cache"])
        if "guard" in data:
            self.guard = GuardSettings.from_toml_dict(data["guard"])

    def _load_env(self) -> None:
        """Apply ``CLUBNET_*`` environment overrides."""
        if level := os.environ.get("CLUBNET_LOG_LEVEL"):
            self.log_level = _normalize_log_level(level)

        if structured := os.environ.get("CLUBNET_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)

        if max_retries := os.environ.get("CLUBNET_MAX_RETRIES"):
            try:
                self.retry.max_retries = int(max_retries)
            except ValueError:
                logger.warning("Ignoring invalid CLUBNET_MAX_RETRIES=%r", max_retries)

        if network_delays := os.environ.get("CLUBNET_USE_NETWORK_DELAYS"):
            parsed = _try_parse_bool(network_delays)
            if parsed is None:
                logger.warning("Ignoring invalid CLUBNET_USE_NETWORK_DELAYS=%r", network_delays)
            else:
                self.retry.use_network_based_delays = parsed

        if probe_url := os.environ.get("CLUBNET_PROBE_URL"):
            self.network.probe_url = probe_url

        if max_age := os.environ.get("CLUBNET_QUEUE_MAX_AGE_SECONDS"):
            try:
                self.queue.max_age_seconds = float(max_age)
            except ValueError:
                logger.warning("Ignoring invalid CLUBNET_QUEUE_MAX_AGE_SECONDS=%r", max_age)
