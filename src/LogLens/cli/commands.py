"""Command implementations for LogLens CLI.

Encapsulates what each command does, separated from CLI parameter handling
and output formatting.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime

import click

from LogLens.config import AppConfig
from LogLens.renderers import OutputWriter
from LogLens.services.browse import BrowseService
from LogLens.sources.elastic.query import build_query
from LogLens.utils.log import log


@dataclass(slots=True)
class SearchCommand:
    """Fetch results for the configured query and write one page.

    Filters given on the command line are added to the configured ones;
    every other option overrides its configured value when set.
    """

    service: BrowseService
    output_writer: OutputWriter
    filters: tuple[str, ...] = ()
    timeframe: str | None = None
    index: str | None = None
    size: int | None = None
    grep: str | None = None
    fields: tuple[str, ...] = ()
    page: int = 1

    def execute(self) -> None:
        if self.index:
            self.service.set_index(self.index)
        if self.timeframe is not None:
            self.service.set_timeframe(self.timeframe)
        if self.size is not None:
            self.service.set_num_results(self.size)
        for expr in self.filters:
            self.service.add_filter(expr)

        log.info(
            "Searching index=%s filters=%s timeframe=%s",
            self.service.index,
            list(self.service.filters),
            self.service.timeframe or "-",
        )
        result = self.service.refresh()
        if result is None:
            raise RuntimeError("a refresh is already running")
        if result.new_fields:
            log.debug("Discovered %d fields", len(result.new_fields))

        if self.fields:
            missing = self.service.select_fields(self.fields)
            if missing:
                log.warning("Fields not present in results: %s", ", ".join(missing))
        if self.grep:
            self.service.apply_filter(self.grep)
        if self.page != 1:
            self.service.page(self.page)

        self.output_writer.write_page(self.service.current_page())


@dataclass(slots=True)
class QueryCommand:
    """Print the compiled request body without contacting the backend."""

    config: AppConfig
    filters: tuple[str, ...] = ()
    timeframe: str | None = None
    size: int | None = None
    now: datetime | None = field(default=None)

    def execute(self) -> None:
        search = self.config.search
        query = build_query(
            [*search.filters, *self.filters],
            search.num_results if self.size is None else self.size,
            search.timeframe if self.timeframe is None else self.timeframe,
            self.now,
            sort_field=search.sort_field,
        )
        click.echo(json.dumps(query.to_body(), ensure_ascii=False, indent=2))


@dataclass(slots=True)
class IndicesCommand:
    service: BrowseService
    output_writer: OutputWriter
    pattern: str = "*"

    def execute(self) -> None:
        names = self.service.list_indices(self.pattern)
        log.debug("Found %d indices for pattern %s", len(names), self.pattern)
        self.output_writer.write_indices(names)


@dataclass(slots=True)
class DocumentCommand:
    service: BrowseService
    output_writer: OutputWriter
    index: str
    doc_id: str

    def execute(self) -> None:
        entry = self.service.fetch_document(self.index, self.doc_id)
        self.output_writer.write_document(entry)
