"""Output renderers for command results.

Provides the OutputWriter base class, console and JSON implementations, and
a factory function to pick one by format name.
"""

from __future__ import annotations

from LogLens.renderers.base import OutputWriter
from LogLens.renderers.console import ConsoleOutputWriter, render_table
from LogLens.renderers.json import JsonOutputWriter, render_page

OUTPUT_FORMATS = ("console", "json")


def create_output_writer(fmt: str, *, show_row_numbers: bool = True) -> OutputWriter:
    """Create an output writer for `fmt`.

    Args:
        fmt: One of `console` or `json`.
        show_row_numbers: Whether console tables carry a row number column.

    Returns:
        OutputWriter instance for the format.

    Raises:
        ValueError: If the format is unknown.
    """
    name = fmt.strip().lower()
    if name == "console":
        return ConsoleOutputWriter(show_row_numbers=show_row_numbers)
    if name == "json":
        return JsonOutputWriter()
    raise ValueError(f"Unsupported output format: {fmt}")


__all__ = [
    "OUTPUT_FORMATS",
    "OutputWriter",
    "ConsoleOutputWriter",
    "JsonOutputWriter",
    "render_page",
    "render_table",
    "create_output_writer",
]
