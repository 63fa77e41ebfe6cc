"""Rate limiter configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from LogLens.config.common import expect_float, get_optional_value, get_section


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Store validated backoff settings, in seconds."""

    initial_delay: float
    max_delay: float
    multiplier: float


def load_rate_limit(raw: Mapping[str, Any]) -> RateLimitConfig:
    section = get_section(raw, "rate_limit", required=False)
    return RateLimitConfig(
        initial_delay=expect_float(
            get_optional_value(section, "initial_delay", 1.0),
            "rate_limit.initial_delay",
        ),
        max_delay=expect_float(get_optional_value(section, "max_delay", 30.0), "rate_limit.max_delay"),
        multiplier=expect_float(get_optional_value(section, "multiplier", 2.0), "rate_limit.multiplier"),
    )


def check_rate_limit(config: RateLimitConfig) -> None:
    """Validate backoff constraints.

    Raises:
        ValueError: If values violate backoff constraints.
    """
    if config.initial_delay < 0:
        raise ValueError("rate_limit.initial_delay must be non-negative")
    if config.max_delay < config.initial_delay:
        raise ValueError("rate_limit.max_delay must be >= rate_limit.initial_delay")
    if config.multiplier <= 1:
        raise ValueError("rate_limit.multiplier must be greater than 1")
