"""Service layer for LogLens.

Provides the browse service and a factory that wires it from configuration.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from LogLens.services.browse import BrowseService, PageView, RefreshResult
from LogLens.utils.log import log_status

if TYPE_CHECKING:
    from LogLens.config import AppConfig
    from LogLens.sources.elastic.fetch import SearchBackend


def create_browse_service(
    config: AppConfig,
    *,
    client: SearchBackend | None = None,
    on_status: Callable[[str], None] = log_status,
) -> BrowseService:
    """Create a browse service with the configured backend and limits.

    Args:
        config: Application configuration.
        client: Optional backend client; an `ElasticApiClient` is built from
            `config.backend` when omitted.
        on_status: Sink for user-facing status messages.

    Returns:
        Configured BrowseService instance.
    """
    from LogLens.sources.elastic.client import ElasticApiClient
    from LogLens.sources.elastic.fetch import SearchExecutor
    from LogLens.sources.elastic.ratelimit import RateLimiter, RetryPolicy
    from LogLens.state.catalog import FieldCatalog
    from LogLens.state.window import ResultWindow

    if client is None:
        client = ElasticApiClient(
            config.backend.url,
            username=config.backend.username,
            password=config.backend.password(),
            verify_tls=config.backend.verify_tls,
            timeout=config.backend.request_timeout,
        )

    executor = SearchExecutor(
        client=client,
        rate_limiter=RateLimiter(
            initial_delay=config.rate_limit.initial_delay,
            max_delay=config.rate_limit.max_delay,
            multiplier=config.rate_limit.multiplier,
        ),
        policy=RetryPolicy(max_attempts=config.search.max_attempts),
        large_result_limit=config.search.large_result_limit,
        scroll_batch_size=config.search.scroll_batch_size,
        scroll_ttl=config.search.scroll_ttl,
        on_status=on_status,
    )
    return BrowseService(
        executor,
        index=config.search.index,
        num_results=config.search.num_results,
        timeframe=config.search.timeframe,
        filters=config.search.filters,
        sort_field=config.search.sort_field,
        catalog=FieldCatalog(auto_select=config.view.auto_select_fields),
        window=ResultWindow(
            config.view.page_size,
            min_page_size=config.view.min_page_size,
            max_page_size=config.view.max_page_size,
        ),
        refresh_timeout=config.search.refresh_timeout,
        document_timeout=config.search.document_timeout,
        on_status=on_status,
    )


__all__ = [
    "BrowseService",
    "PageView",
    "RefreshResult",
    "create_browse_service",
]
