from __future__ import annotations

"""Application config orchestration and YAML loading entrypoints."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from LogLens.config.backend import BackendConfig, check_backend, load_backend
from LogLens.config.rate_limit import RateLimitConfig, check_rate_limit, load_rate_limit
from LogLens.config.runtime import RuntimeConfig, check_runtime, load_runtime
from LogLens.config.search import SearchConfig, check_search, load_search
from LogLens.config.view import ViewConfig, check_view, load_view

# env var -> (section, key, type)
ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "LOGLENS_URL": ("backend", "url", str),
    "LOGLENS_INDEX": ("search", "index", str),
    "LOGLENS_TIMEFRAME": ("search", "timeframe", str),
    "LOGLENS_NUM_RESULTS": ("search", "num_results", int),
    "LOGLENS_PAGE_SIZE": ("view", "page_size", int),
}


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application root configuration."""

    runtime: RuntimeConfig
    backend: BackendConfig
    search: SearchConfig
    rate_limit: RateLimitConfig
    view: ViewConfig


def parse_config_dict(raw: Mapping[str, Any]) -> AppConfig:
    """Parse normalized mapping into AppConfig."""
    runtime = load_runtime(raw)
    backend = load_backend(raw)
    search = load_search(raw)
    rate_limit = load_rate_limit(raw)
    view = load_view(raw)

    check_runtime(runtime)
    check_backend(backend)
    check_search(search)
    check_rate_limit(rate_limit)
    check_view(view)

    return AppConfig(
        runtime=runtime,
        backend=backend,
        search=search,
        rate_limit=rate_limit,
        view=view,
    )


def load_config(path: Path, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Load YAML config file without default merge."""
    return load_config_with_defaults(path, default_path=path, environ=environ)


def load_config_with_defaults(
    config_path: Path,
    default_path: Path = Path("config/default.yml"),
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load config by merging defaults, an optional override and the environment."""
    merged = parse_yaml(default_path.read_text(encoding="utf-8"))
    if config_path != default_path:
        override = parse_yaml(config_path.read_text(encoding="utf-8"))
        merged = merge_config_dicts(merged, override)
    merged = apply_env_overrides(merged, os.environ if environ is None else environ)
    return parse_config_dict(merged)


def apply_env_overrides(raw: Mapping[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Overlay `LOGLENS_*` environment variables onto a config mapping.

    Blank variables are ignored.

    Raises:
        ValueError: If an integer variable does not hold an integer.
    """
    overrides: dict[str, Any] = {}
    for name, (section, key, kind) in ENV_OVERRIDES.items():
        value = environ.get(name, "").strip()
        if not value:
            continue
        if kind is int:
            try:
                converted: Any = int(value)
            except ValueError as e:
                raise ValueError(f"{name} must be an integer, got {value!r}") from e
        else:
            converted = value
        overrides.setdefault(section, {})[key] = converted
    return merge_config_dicts(raw, overrides)


def parse_yaml(text: str) -> dict[str, Any]:
    """Parse raw YAML text into a mapping."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, Mapping):
        raise ValueError("Config root must be a mapping/object")
    return dict(data)


def merge_config_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two config mappings."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged
