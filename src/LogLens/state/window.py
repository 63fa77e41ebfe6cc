"""Local filtering and pagination over fetched results."""

from __future__ import annotations

import math
from typing import Sequence

from LogLens.core.models import DocumentEntry

DEFAULT_PAGE_SIZE = 50
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 1000


class ResultWindow:
    """Full result set, the locally filtered subset and the current page.

    Pages are 1-based. `current_page` always lies in `[1, total_pages]` and
    `total_pages` is at least 1, even when nothing matched.
    """

    def __init__(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        *,
        min_page_size: int = MIN_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        if min_page_size < 1 or max_page_size < min_page_size:
            raise ValueError("page size bounds must satisfy 1 <= min <= max")
        self._min_page_size = min_page_size
        self._max_page_size = max_page_size
        self._page_size = self._clamp_page_size(page_size)
        self._entries: tuple[DocumentEntry, ...] = ()
        self._filtered: list[DocumentEntry] = []
        self._filter_text = ""
        self._current_page = 1

    @property
    def entries(self) -> tuple[DocumentEntry, ...]:
        return self._entries

    @property
    def filtered(self) -> list[DocumentEntry]:
        return list(self._filtered)

    @property
    def filter_text(self) -> str:
        return self._filter_text

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def page_size(self) -> int:
        return self._page_size

    @page_size.setter
    def page_size(self, value: int) -> None:
        self._page_size = self._clamp_page_size(value)
        self._current_page = min(self._current_page, self.total_pages)

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(len(self._filtered) / self._page_size))

    def replace(self, entries: Sequence[DocumentEntry], fields: Sequence[str]) -> None:
        """Install a freshly fetched result set.

        The current filter text is re-applied and the window returns to page 1.
        """
        self._entries = tuple(entries)
        self._filtered = self._matching(self._filter_text, fields)
        self._current_page = 1

    def apply_filter(self, text: str, fields: Sequence[str]) -> None:
        """Keep entries where any of `fields` contains `text` (case-insensitive).

        An empty text shows every entry. Always returns to page 1.
        """
        self._filter_text = text
        self._filtered = self._matching(text, fields)
        self._current_page = 1

    def refilter(self, fields: Sequence[str]) -> None:
        """Re-apply the current filter after the active fields changed."""
        self._filtered = self._matching(self._filter_text, fields)
        self._current_page = min(self._current_page, self.total_pages)

    def page(self, number: int) -> int:
        """Jump to `number`, clamped into `[1, total_pages]`; returns the page shown."""
        self._current_page = min(max(number, 1), self.total_pages)
        return self._current_page

    def next_page(self) -> bool:
        if self._current_page >= self.total_pages:
            return False
        self._current_page += 1
        return True

    def previous_page(self) -> bool:
        if self._current_page <= 1:
            return False
        self._current_page -= 1
        return True

    def bounds(self) -> tuple[int, int]:
        """Return `(start, end)` offsets of the current page into the filtered set."""
        total = len(self._filtered)
        if total == 0:
            return 0, 0
        page = self._current_page
        start = (page - 1) * self._page_size
        if start >= total:
            page = math.ceil(total / self._page_size)
            start = (page - 1) * self._page_size
        return start, min(start + self._page_size, total)

    def slice(self) -> list[DocumentEntry]:
        start, end = self.bounds()
        return self._filtered[start:end]

    def _matching(self, text: str, fields: Sequence[str]) -> list[DocumentEntry]:
        needle = text.lower()
        if not needle:
            return list(self._entries)
        return [
            entry
            for entry in self._entries
            if any(needle in entry.formatted(field).lower() for field in fields)
        ]

    def _clamp_page_size(self, value: int) -> int:
        return min(max(value, self._min_page_size), self._max_page_size)
