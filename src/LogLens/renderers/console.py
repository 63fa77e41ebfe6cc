"""Console text output renderers.

Renders result pages as a fixed-width text table and writes it through the
logger, one line per record.
"""

from __future__ import annotations

import json
from typing import Sequence

from LogLens.core.models import DocumentEntry
from LogLens.renderers.base import OutputWriter
from LogLens.services.browse import PageView
from LogLens.utils.log import log

MAX_CELL_WIDTH = 40


def _clip(text: str, width: int = MAX_CELL_WIDTH) -> str:
    flat = " ".join(text.split())
    if len(flat) <= width:
        return flat
    return flat[: width - 3] + "..."


def render_table(view: PageView, *, show_row_numbers: bool = True) -> list[str]:
    """Render a page into text table lines.

    Args:
        view: Page snapshot.
        show_row_numbers: Whether to prefix a `#` column with 1-based row
            numbers counted across pages.

    Returns:
        Lines of the table followed by a page summary line.
    """
    if not view.headers:
        return ["No fields selected. Select a field to see data."]
    if not view.rows:
        return ["No results to display."]

    headers = list(view.headers)
    rows = [[_clip(cell) for cell in row] for row in view.rows]
    if show_row_numbers:
        headers.insert(0, "#")
        for offset, row in enumerate(rows, start=view.start + 1):
            row.insert(0, str(offset))

    widths = [len(header) for header in headers]
    for row in rows:
        for col, cell in enumerate(row):
            widths[col] = max(widths[col], len(cell))

    def _line(cells: Sequence[str]) -> str:
        return "  ".join(cell.ljust(widths[col]) for col, cell in enumerate(cells)).rstrip()

    lines = [_line(headers), _line(["-" * width for width in widths])]
    lines.extend(_line(row) for row in rows)
    end = view.start + len(view.rows)
    lines.append(
        f"Page {view.page}/{view.total_pages} "
        f"(rows {view.start + 1}-{end} of {view.filtered_count}; "
        f"{view.total_count} retrieved, {view.total_hits} total hits)"
    )
    return lines


class ConsoleOutputWriter(OutputWriter):
    """Write results to console via logging."""

    def __init__(self, *, show_row_numbers: bool = True) -> None:
        self.show_row_numbers = show_row_numbers

    def write_page(self, view: PageView) -> None:
        for line in render_table(view, show_row_numbers=self.show_row_numbers):
            log.info(line)

    def write_document(self, entry: DocumentEntry) -> None:
        for line in json.dumps(entry.to_dict(), ensure_ascii=False, indent=2).splitlines():
            log.info(line)

    def write_indices(self, names: Sequence[str]) -> None:
        if not names:
            log.info("No indices found")
            return
        for name in names:
            log.info(name)
