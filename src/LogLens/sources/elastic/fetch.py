"""Search execution strategy.

Chooses between a single bounded request and a scroll (cursor) walk based on
the requested result count, and routes every network call through the
shared retry driver.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from LogLens.core.models import DocumentEntry
from LogLens.core.query import CompositeQuery
from LogLens.sources.elastic.parser import parse_document, parse_search_response
from LogLens.sources.elastic.ratelimit import RateLimiter, RetryPolicy, call_with_retry
from LogLens.utils.log import log

LARGE_RESULT_LIMIT = 10_000
SCROLL_BATCH_SIZE = 1_000
SCROLL_TTL = "5m"


class SearchBackend(Protocol):
    """Subset of `ElasticApiClient` used by the executor."""

    def search(self, index: str, body: dict[str, Any], *, scroll: str | None = None, timeout: float | None = None) -> Any: ...

    def scroll(self, scroll_id: str, *, scroll: str, timeout: float | None = None) -> Any: ...

    def clear_scroll(self, scroll_id: str, *, timeout: float | None = None) -> None: ...

    def get_document(self, index: str, doc_id: str, *, timeout: float | None = None) -> Any: ...

    def list_indices(self, pattern: str = "*", *, timeout: float | None = None) -> list[str]: ...

    def close(self) -> None: ...


@dataclass(frozen=True, slots=True)
class SearchResult:
    """Outcome of one fetch.

    Attributes:
        entries: Retrieved documents in backend order.
        total_hits: Backend total in bounded mode; number of entries
            retrieved in cursor mode.
        cursor_mode: Whether the scroll walk was used.
    """

    entries: tuple[DocumentEntry, ...]
    total_hits: int
    cursor_mode: bool = False


@dataclass(slots=True)
class SearchExecutor:
    """Run composite queries against the backend."""

    client: SearchBackend
    rate_limiter: RateLimiter = field(default_factory=RateLimiter)
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    large_result_limit: int = LARGE_RESULT_LIMIT
    scroll_batch_size: int = SCROLL_BATCH_SIZE
    scroll_ttl: str = SCROLL_TTL
    on_status: Callable[[str], None] | None = None
    clock: Callable[[], float] = time.monotonic

    def fetch(
        self,
        query: CompositeQuery,
        index: str,
        expected_size: int,
        *,
        deadline: float | None = None,
    ) -> SearchResult:
        """Fetch up to `expected_size` hits for `query`.

        Args:
            query: Compiled query; its size is replaced per request.
            index: Index name or pattern.
            expected_size: Requested number of results.
            deadline: Optional monotonic deadline for the whole fetch.

        Returns:
            Retrieved entries and the hit total.

        Raises:
            SearchTimeoutError: If the deadline passes.
            RetryExhaustedError: If a request stays throttled.
            BackendError: On any other backend failure. Partial cursor
                results are discarded.
        """
        if expected_size > self.large_result_limit:
            log.info(
                "Large result request (%d > %d); using scroll with batch size %d",
                expected_size,
                self.large_result_limit,
                self.scroll_batch_size,
            )
            return self._fetch_cursor(query, index, deadline)
        return self._fetch_bounded(query, index, expected_size, deadline)

    def list_indices(self, pattern: str = "*", *, deadline: float | None = None) -> list[str]:
        return self._call(
            lambda: self.client.list_indices(pattern, timeout=self._remaining(deadline)),
            deadline,
            "list indices",
        )

    def get_document(self, index: str, doc_id: str, *, deadline: float | None = None) -> DocumentEntry:
        """Fetch a single document by id.

        Raises:
            DocumentNotFoundError: If the backend has no such document.
        """
        payload = self._call(
            lambda: self.client.get_document(index, doc_id, timeout=self._remaining(deadline)),
            deadline,
            "get document",
        )
        return parse_document(payload)

    def _fetch_bounded(
        self,
        query: CompositeQuery,
        index: str,
        size: int,
        deadline: float | None,
    ) -> SearchResult:
        body = query.with_size(size).to_body()
        payload = self._call(
            lambda: self.client.search(index, body, timeout=self._remaining(deadline)),
            deadline,
            "search",
        )
        page = parse_search_response(payload)
        log.debug("Bounded search returned %d hits (total %d %s)", len(page.entries), page.total_hits, page.total_relation)
        return SearchResult(entries=page.entries, total_hits=page.total_hits)

    def _fetch_cursor(self, query: CompositeQuery, index: str, deadline: float | None) -> SearchResult:
        body = query.with_size(self.scroll_batch_size).to_body()
        entries: list[DocumentEntry] = []
        scroll_id: str | None = None
        try:
            payload = self._call(
                lambda: self.client.search(
                    index,
                    body,
                    scroll=self.scroll_ttl,
                    timeout=self._remaining(deadline),
                ),
                deadline,
                "scroll search",
            )
            scroll_id = _scroll_id_of(payload)
            page = parse_search_response(payload)
            batches = 0
            while page.hit_count:
                entries.extend(page.entries)
                batches += 1
                log.debug("Scroll batch %d: %d entries (total %d)", batches, len(page.entries), len(entries))
                if not scroll_id:
                    break
                current_id = scroll_id
                payload = self._call(
                    lambda: self.client.scroll(
                        current_id,
                        scroll=self.scroll_ttl,
                        timeout=self._remaining(deadline),
                    ),
                    deadline,
                    "scroll",
                )
                scroll_id = _scroll_id_of(payload) or scroll_id
                page = parse_search_response(payload)
        finally:
            if scroll_id:
                self._release(scroll_id)

        log.info("Scroll finished: %d entries retrieved", len(entries))
        return SearchResult(entries=tuple(entries), total_hits=len(entries), cursor_mode=True)

    def _release(self, scroll_id: str) -> None:
        try:
            self.client.clear_scroll(scroll_id)
        except Exception as e:  # noqa: BLE001 - release is best-effort
            log.warning("Failed to clear scroll context: %s", e)
        else:
            log.debug("Scroll context released")

    def _call(self, call: Callable[[], Any], deadline: float | None, operation: str) -> Any:
        return call_with_retry(
            call,
            policy=self.policy,
            limiter=self.rate_limiter,
            on_status=self.on_status,
            deadline=deadline,
            operation=operation,
            clock=self.clock,
        )

    def _remaining(self, deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return max(0.001, deadline - self.clock())


def _scroll_id_of(payload: Any) -> str | None:
    if isinstance(payload, dict) and payload.get("_scroll_id"):
        return str(payload["_scroll_id"])
    return None
