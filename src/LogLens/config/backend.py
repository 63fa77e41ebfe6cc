"""Backend connection configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from LogLens.config.common import (
    check_positive,
    expect_bool,
    expect_float,
    expect_optional_str,
    expect_str,
    get_optional_value,
    get_required_value,
    get_section,
)


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """Store validated backend connection settings.

    The password itself never lives in the YAML file; `password_env` names
    the environment variable that holds it.
    """

    url: str
    username: str | None
    password_env: str | None
    verify_tls: bool
    request_timeout: float

    def password(self) -> str | None:
        """Read the password from the configured environment variable."""
        if not self.password_env:
            return None
        return os.getenv(self.password_env) or None


def load_backend(raw: Mapping[str, Any]) -> BackendConfig:
    """Load the `backend` section.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If `backend.url` is missing.
    """
    section = get_section(raw, "backend", required=True)
    return BackendConfig(
        url=expect_str(get_required_value(section, "url", "backend.url"), "backend.url").strip(),
        username=expect_optional_str(get_optional_value(section, "username", None), "backend.username"),
        password_env=expect_optional_str(
            get_optional_value(section, "password_env", None),
            "backend.password_env",
        ),
        verify_tls=expect_bool(get_optional_value(section, "verify_tls", True), "backend.verify_tls"),
        request_timeout=expect_float(
            get_optional_value(section, "request_timeout", 30.0),
            "backend.request_timeout",
        ),
    )


def check_backend(config: BackendConfig) -> None:
    """Validate backend constraints.

    Raises:
        ValueError: If values violate backend constraints.
    """
    if not config.url.startswith(("http://", "https://")):
        raise ValueError("backend.url must start with http:// or https://")
    check_positive(config.request_timeout, "backend.request_timeout")
    if config.password_env and not config.username:
        raise ValueError("backend.password_env requires backend.username")
