"""Base class for output writers.

Separates what a command produces (a page, a document, an index list) from
how it is shown.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from LogLens.core.models import DocumentEntry
from LogLens.services.browse import PageView


class OutputWriter(ABC):
    """Abstract base class for command output writers."""

    @abstractmethod
    def write_page(self, view: PageView) -> None:
        """Write one page of results.

        Args:
            view: Snapshot of the page to display.
        """

    @abstractmethod
    def write_document(self, entry: DocumentEntry) -> None:
        """Write a single full document."""

    @abstractmethod
    def write_indices(self, names: Sequence[str]) -> None:
        """Write a list of index names."""
