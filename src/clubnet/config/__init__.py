"""Configuration package for clubnet.

Sub-modules:
    parsing  – Boolean/log-level/status-code parsing helpers
    domains  – RetrySettings, NetworkSettings, QueueSettings, CacheSettings,
               GuardSettings
    settings – ResilienceSettings dataclass, get_config/set_config globals
    loader   – ResilienceSettings loading mixin (_ResilienceSettingsLoader)
"""

from clubnet.config.domains import (  # noqa: F401
    CacheSettings,
    GuardSettings,
    NetworkSettings,
    QueueSettings,
    RetrySettings,
)
from clubnet.config.parsing import (  # noqa: F401
    _normalize_log_level,
    _parse_bool,
    _parse_status_codes,
    _try_parse_bool,
)
from clubnet.config.settings import (  # noqa: F401
    ResilienceSettings,
    get_config,
    set_config,
)
