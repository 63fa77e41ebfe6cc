from __future__ import annotations

"""Public configuration API for LogLens."""

from LogLens.config.app import (
    AppConfig,
    apply_env_overrides,
    load_config,
    load_config_with_defaults,
    merge_config_dicts,
    parse_config_dict,
)
from LogLens.config.backend import BackendConfig
from LogLens.config.rate_limit import RateLimitConfig
from LogLens.config.runtime import RuntimeConfig
from LogLens.config.search import SearchConfig
from LogLens.config.view import ViewConfig

__all__ = [
    "RuntimeConfig",
    "BackendConfig",
    "SearchConfig",
    "RateLimitConfig",
    "ViewConfig",
    "AppConfig",
    "load_config",
    "load_config_with_defaults",
    "parse_config_dict",
    "merge_config_dicts",
    "apply_env_overrides",
]
