"""JSON output renderers.

Renders pages, documents and index lists as JSON on stdout so the output
can be piped into other tools.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

import click

from LogLens.core.models import DocumentEntry
from LogLens.renderers.base import OutputWriter
from LogLens.services.browse import PageView


def render_page(view: PageView) -> dict[str, Any]:
    """Render a page into a JSON-serializable mapping.

    Rows are keyed by field name so consumers do not depend on column order.
    """
    return {
        "page": view.page,
        "total_pages": view.total_pages,
        "filtered": view.filtered_count,
        "retrieved": view.total_count,
        "total_hits": view.total_hits,
        "fields": list(view.headers),
        "rows": [dict(zip(view.headers, row)) for row in view.rows],
    }


class JsonOutputWriter(OutputWriter):
    """Echo JSON documents to stdout."""

    def __init__(self, *, indent: int | None = 2) -> None:
        self.indent = indent

    def write_page(self, view: PageView) -> None:
        self._echo(render_page(view))

    def write_document(self, entry: DocumentEntry) -> None:
        self._echo(entry.to_dict())

    def write_indices(self, names: Sequence[str]) -> None:
        self._echo(list(names))

    def _echo(self, payload: Any) -> None:
        click.echo(json.dumps(payload, ensure_ascii=False, indent=self.indent))
