"""Result view configuration: paging and default columns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from LogLens.config.common import (
    expect_bool,
    expect_int,
    expect_str_list,
    get_optional_value,
    get_section,
)


@dataclass(frozen=True, slots=True)
class ViewConfig:
    """Store validated view settings."""

    page_size: int
    min_page_size: int
    max_page_size: int
    auto_select_fields: tuple[str, ...]
    show_row_numbers: bool


def load_view(raw: Mapping[str, Any]) -> ViewConfig:
    """Load the `view` section.

    Raises:
        TypeError: If config types are invalid.
    """
    section = get_section(raw, "view", required=False)
    return ViewConfig(
        page_size=expect_int(get_optional_value(section, "page_size", 50), "view.page_size"),
        min_page_size=expect_int(get_optional_value(section, "min_page_size", 10), "view.min_page_size"),
        max_page_size=expect_int(get_optional_value(section, "max_page_size", 1000), "view.max_page_size"),
        auto_select_fields=expect_str_list(
            get_optional_value(section, "auto_select_fields", ["@timestamp", "message"]),
            "view.auto_select_fields",
            unique=True,
        ),
        show_row_numbers=expect_bool(
            get_optional_value(section, "show_row_numbers", True),
            "view.show_row_numbers",
        ),
    )


def check_view(config: ViewConfig) -> None:
    """Validate view constraints.

    Raises:
        ValueError: If values violate view constraints.
    """
    if config.min_page_size < 1:
        raise ValueError("view.min_page_size must be positive")
    if config.max_page_size < config.min_page_size:
        raise ValueError("view.max_page_size must be >= view.min_page_size")
    if not config.min_page_size <= config.page_size <= config.max_page_size:
        raise ValueError(
            f"view.page_size must be between {config.min_page_size} and {config.max_page_size}"
        )
