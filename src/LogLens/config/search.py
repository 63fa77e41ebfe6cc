"""Search domain configuration: default query, result counts and fetch limits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from LogLens.config.common import (
    check_positive,
    expect_float,
    expect_int,
    expect_optional_str,
    expect_str,
    expect_str_list,
    expect_ttl,
    get_optional_value,
    get_section,
)
from LogLens.sources.elastic.query import build_query

MAX_NUM_RESULTS = 50_000


@dataclass(frozen=True, slots=True)
class SearchConfig:
    """Store validated search defaults and fetch limits."""

    index: str
    num_results: int
    timeframe: str
    filters: tuple[str, ...]
    sort_field: str | None
    large_result_limit: int
    scroll_batch_size: int
    scroll_ttl: str
    max_attempts: int
    refresh_timeout: float
    document_timeout: float


def load_search(raw: Mapping[str, Any]) -> SearchConfig:
    """Load the `search` section.

    Args:
        raw: Root configuration mapping.

    Returns:
        Parsed search configuration.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If `search.scroll_ttl` is malformed.
    """
    section = get_section(raw, "search", required=False)
    return SearchConfig(
        index=expect_str(get_optional_value(section, "index", "*"), "search.index").strip(),
        num_results=expect_int(get_optional_value(section, "num_results", 1000), "search.num_results"),
        timeframe=expect_str(get_optional_value(section, "timeframe", "today"), "search.timeframe").strip(),
        filters=expect_str_list(get_optional_value(section, "filters", []), "search.filters", unique=True),
        sort_field=expect_optional_str(get_optional_value(section, "sort_field", None), "search.sort_field"),
        large_result_limit=expect_int(
            get_optional_value(section, "large_result_limit", 10_000),
            "search.large_result_limit",
        ),
        scroll_batch_size=expect_int(
            get_optional_value(section, "scroll_batch_size", 1_000),
            "search.scroll_batch_size",
        ),
        scroll_ttl=expect_ttl(get_optional_value(section, "scroll_ttl", "5m"), "search.scroll_ttl"),
        max_attempts=expect_int(get_optional_value(section, "max_attempts", 3), "search.max_attempts"),
        refresh_timeout=expect_float(
            get_optional_value(section, "refresh_timeout", 45.0),
            "search.refresh_timeout",
        ),
        document_timeout=expect_float(
            get_optional_value(section, "document_timeout", 15.0),
            "search.document_timeout",
        ),
    )


def check_search(config: SearchConfig) -> None:
    """Validate search domain constraints.

    The configured filters and timeframe are compiled once so a broken
    default query is reported at startup.

    Raises:
        ValueError: If values violate search constraints.
    """
    if not config.index:
        raise ValueError("search.index must not be empty")
    check_positive(config.num_results, "search.num_results")
    if config.num_results > MAX_NUM_RESULTS:
        raise ValueError(f"search.num_results must be <= {MAX_NUM_RESULTS}")
    check_positive(config.large_result_limit, "search.large_result_limit")
    check_positive(config.scroll_batch_size, "search.scroll_batch_size")
    if config.scroll_batch_size > config.large_result_limit:
        raise ValueError("search.scroll_batch_size must be <= search.large_result_limit")
    if config.max_attempts < 1:
        raise ValueError("search.max_attempts must be at least 1")
    check_positive(config.refresh_timeout, "search.refresh_timeout")
    check_positive(config.document_timeout, "search.document_timeout")
    build_query(config.filters, config.num_results, config.timeframe)
