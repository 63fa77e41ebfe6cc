"""Browse service: query state, background refresh and the result view.

Holds everything a browsing session mutates (filters, index, timeframe,
field activation, local filter and paging) behind one reader/writer lock,
and runs fetches on a worker thread so the caller's thread never blocks on
the network.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from LogLens.core.models import DocumentEntry
from LogLens.core.query import CompositeQuery
from LogLens.sources.elastic.fetch import SearchExecutor
from LogLens.sources.elastic.query import build_query, build_time_range, parse_filter
from LogLens.state.catalog import FieldCatalog
from LogLens.state.window import ResultWindow
from LogLens.utils.log import log, log_status
from LogLens.utils.rwlock import ReadWriteLock


@dataclass(frozen=True, slots=True)
class RefreshResult:
    """Summary of one completed refresh."""

    total_hits: int
    retrieved: int
    new_fields: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class PageView:
    """Rendered snapshot of the current page.

    Attributes:
        headers: Active field names, in column order.
        rows: Formatted cell values, one tuple per entry.
        page: Current page (1-based).
        total_pages: Page count of the filtered set.
        start: Offset of the first row within the filtered set.
        filtered_count: Entries left after the local filter.
        total_count: Entries retrieved by the last refresh.
        total_hits: Hit total reported for the last refresh.
    """

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    page: int
    total_pages: int
    start: int
    filtered_count: int
    total_count: int
    total_hits: int


class BrowseService:
    """Coordinate query state, background refreshes and the result window.

    At most one refresh runs at a time: `start_refresh()` returns None while
    another one is in flight. A failed refresh leaves the previous results
    untouched.
    """

    def __init__(
        self,
        executor: SearchExecutor,
        *,
        index: str,
        num_results: int,
        timeframe: str = "",
        filters: Sequence[str] = (),
        sort_field: str | None = None,
        catalog: FieldCatalog | None = None,
        window: ResultWindow | None = None,
        refresh_timeout: float = 45.0,
        document_timeout: float = 15.0,
        on_status: Callable[[str], None] = log_status,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._executor = executor
        self._index = index
        self._num_results = num_results
        self._timeframe = timeframe
        self._filters: list[str] = []
        self._sort_field = sort_field
        self._catalog = catalog if catalog is not None else FieldCatalog()
        self._window = window if window is not None else ResultWindow()
        self._refresh_timeout = refresh_timeout
        self._document_timeout = document_timeout
        self._on_status = on_status
        self._clock = clock
        self._total_hits = 0

        self._lock = ReadWriteLock()
        self._loading_lock = threading.Lock()
        self._loading = False
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="loglens-refresh")

        for expr in filters:
            self.add_filter(expr)

    def __enter__(self) -> BrowseService:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Wait for an in-flight refresh, stop the worker thread and close the client."""
        self._pool.shutdown(wait=True)
        self._executor.client.close()

    @property
    def is_loading(self) -> bool:
        with self._loading_lock:
            return self._loading

    @property
    def index(self) -> str:
        with self._lock.read():
            return self._index

    @property
    def timeframe(self) -> str:
        with self._lock.read():
            return self._timeframe

    @property
    def filters(self) -> tuple[str, ...]:
        with self._lock.read():
            return tuple(self._filters)

    def field_order(self) -> list[str]:
        with self._lock.read():
            return self._catalog.order()

    def matching_fields(self, text: str) -> list[str]:
        with self._lock.read():
            return self._catalog.matching(text)

    def add_filter(self, expr: str) -> bool:
        """Add a filter expression after validating it.

        Returns:
            False when the expression is blank or already present.

        Raises:
            FilterParseError: If the expression does not compile.
        """
        text = expr.strip()
        if not text:
            return False
        parse_filter(text)
        with self._lock.write():
            if text in self._filters:
                return False
            self._filters.append(text)
        log.debug("Filter added: %s", text)
        return True

    def remove_filter(self, position: int) -> bool:
        with self._lock.write():
            if not 0 <= position < len(self._filters):
                return False
            removed = self._filters.pop(position)
        log.debug("Filter removed: %s", removed)
        return True

    def clear_filters(self) -> None:
        with self._lock.write():
            self._filters.clear()

    def set_index(self, index: str) -> None:
        """Switch index; known fields and results belong to the old index and are dropped."""
        name = index.strip()
        if not name:
            raise ValueError("index must not be empty")
        with self._lock.write():
            if name == self._index:
                return
            self._index = name
            self._catalog.reset()
            self._window.replace((), ())
            self._total_hits = 0
        log.info("Index set to %s", name)

    def set_timeframe(self, timeframe: str) -> None:
        """Set the relative timeframe; an empty string removes the time bound.

        Raises:
            TimeframeError: If the expression is invalid.
        """
        text = timeframe.strip()
        if text:
            build_time_range(text, datetime.now().astimezone())
        with self._lock.write():
            self._timeframe = text

    def set_num_results(self, count: int) -> None:
        if count <= 0:
            raise ValueError("number of results must be positive")
        with self._lock.write():
            self._num_results = count

    def build_query(self, now: datetime | None = None) -> CompositeQuery:
        """Compile the current filters and timeframe.

        Raises:
            QueryBuildError: If any filter or the timeframe is invalid.
        """
        with self._lock.read():
            filters = list(self._filters)
            size = self._num_results
            timeframe = self._timeframe
            sort_field = self._sort_field
        return build_query(filters, size, timeframe, now, sort_field=sort_field)

    def start_refresh(self, now: datetime | None = None) -> Future[RefreshResult] | None:
        """Start a background refresh.

        Returns:
            Future for the refresh, or None when one is already running.

        Raises:
            QueryBuildError: If the current query cannot be compiled; no
                request is made in that case.
        """
        with self._loading_lock:
            if self._loading:
                log.debug("Refresh already in progress; ignoring request")
                return None
            self._loading = True

        try:
            query = self.build_query(now)
            with self._lock.read():
                index = self._index
                expected = self._num_results
            future = self._pool.submit(self._run_refresh, query, index, expected)
        except BaseException:
            with self._loading_lock:
                self._loading = False
            raise
        return future

    def refresh(self, now: datetime | None = None) -> RefreshResult | None:
        """Run a refresh and wait for it; None when one was already running."""
        future = self.start_refresh(now)
        if future is None:
            return None
        return future.result()

    def apply_filter(self, text: str) -> None:
        with self._lock.write():
            self._window.apply_filter(text, self._catalog.active_fields())

    def page(self, number: int) -> int:
        with self._lock.write():
            return self._window.page(number)

    def next_page(self) -> bool:
        with self._lock.write():
            moved = self._window.next_page()
        if not moved:
            self._on_status("Already on the last page.")
        return moved

    def previous_page(self) -> bool:
        with self._lock.write():
            moved = self._window.previous_page()
        if not moved:
            self._on_status("Already on the first page.")
        return moved

    def set_page_size(self, size: int) -> int:
        with self._lock.write():
            self._window.page_size = size
            return self._window.page_size

    def toggle_field(self, field: str) -> bool:
        """Toggle a column; the local filter is re-applied to the new column set.

        Raises:
            KeyError: If the field is unknown.
        """
        with self._lock.write():
            active = self._catalog.toggle_active(field)
            self._window.refilter(self._catalog.active_fields())
        return active

    def move_field(self, field: str, up: bool) -> bool:
        with self._lock.write():
            return self._catalog.reorder(field, up)

    def select_fields(self, fields: Sequence[str]) -> list[str]:
        """Show exactly `fields` as columns; returns names not yet discovered."""
        with self._lock.write():
            missing = self._catalog.set_active(fields)
            self._window.refilter(self._catalog.active_fields())
        return missing

    def current_page(self) -> PageView:
        """Snapshot the current page; cells are formatted outside the lock."""
        with self._lock.read():
            headers = tuple(self._catalog.active_fields())
            entries = self._window.slice()
            start, _ = self._window.bounds()
            page = self._window.current_page
            total_pages = self._window.total_pages
            filtered_count = len(self._window.filtered)
            total_count = len(self._window.entries)
            total_hits = self._total_hits

        rows = tuple(tuple(entry.formatted(header) for header in headers) for entry in entries)
        return PageView(
            headers=headers,
            rows=rows,
            page=page,
            total_pages=total_pages,
            start=start,
            filtered_count=filtered_count,
            total_count=total_count,
            total_hits=total_hits,
        )

    def list_indices(self, pattern: str = "*") -> list[str]:
        return self._executor.list_indices(pattern, deadline=self._clock() + self._refresh_timeout)

    def fetch_document(self, index: str, doc_id: str) -> DocumentEntry:
        """Fetch one full document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            SearchTimeoutError: If `document_timeout` elapses.
        """
        return self._executor.get_document(index, doc_id, deadline=self._clock() + self._document_timeout)

    def _run_refresh(self, query: CompositeQuery, index: str, expected: int) -> RefreshResult:
        try:
            log.debug("Refreshing index=%s size=%d query=%s", index, expected, query.to_body())
            result = self._executor.fetch(
                query,
                index,
                expected,
                deadline=self._clock() + self._refresh_timeout,
            )
            discovered: set[str] = set()
            for entry in result.entries:
                discovered.update(entry.available_fields())

            with self._lock.write():
                added = self._catalog.merge(sorted(discovered))
                self._window.replace(result.entries, self._catalog.active_fields())
                self._total_hits = result.total_hits

            self._on_status(f"Found {result.total_hits} results total (displaying {len(result.entries)})")
            return RefreshResult(
                total_hits=result.total_hits,
                retrieved=len(result.entries),
                new_fields=tuple(added),
            )
        except Exception as e:
            self._on_status(f"Error: {e}")
            raise
        finally:
            with self._loading_lock:
                self._loading = False
