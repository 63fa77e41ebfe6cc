"""Discovered field names and which of them are shown as columns."""

from __future__ import annotations

from typing import Iterable, Sequence


class FieldCatalog:
    """Ordered set of known fields split into an active and an inactive block.

    The display order is the active block followed by the inactive block.
    Discovery only ever appends; a field is never dropped until `reset()`.

    Args:
        auto_select: Field names activated automatically the first time they
            are discovered, in this order.
    """

    def __init__(self, auto_select: Sequence[str] = ()) -> None:
        self._auto_select = tuple(auto_select)
        self._active: list[str] = []
        self._inactive: list[str] = []

    def __contains__(self, field: object) -> bool:
        return field in self._active or field in self._inactive

    def __len__(self) -> int:
        return len(self._active) + len(self._inactive)

    def merge(self, fields: Iterable[str]) -> list[str]:
        """Append fields not seen before.

        Args:
            fields: Candidate field names; duplicates are ignored.

        Returns:
            Names that were added, in input order.
        """
        added: list[str] = []
        for name in fields:
            if name in self or name in added:
                continue
            added.append(name)

        for name in self._auto_select:
            if name in added:
                self._active.append(name)
        self._inactive.extend(name for name in added if name not in self._auto_select)
        return added

    def toggle_active(self, field: str) -> bool:
        """Flip activation of `field`.

        Activating moves the field to the front of the active block;
        deactivating moves it to the end of the full order.

        Returns:
            True when the field is now active.

        Raises:
            KeyError: If the field is unknown.
        """
        if field in self._active:
            self._active.remove(field)
            self._inactive.append(field)
            return False
        if field in self._inactive:
            self._inactive.remove(field)
            self._active.insert(0, field)
            return True
        raise KeyError(field)

    def activate(self, field: str) -> None:
        if not self.is_active(field):
            self.toggle_active(field)

    def deactivate(self, field: str) -> None:
        if self.is_active(field):
            self.toggle_active(field)

    def set_active(self, fields: Sequence[str]) -> list[str]:
        """Make exactly `fields` active, in the given order.

        Unknown names are skipped.

        Returns:
            Names that are not in the catalog.
        """
        missing = [name for name in fields if name not in self]
        wanted = [name for name in dict.fromkeys(fields) if name in self]
        for name in list(self._active):
            if name not in wanted:
                self._active.remove(name)
                self._inactive.append(name)
        for name in wanted:
            if name in self._inactive:
                self._inactive.remove(name)
        self._active = wanted
        return missing

    def reorder(self, field: str, up: bool) -> bool:
        """Move an active field one step within the active block.

        Returns:
            True when the field moved; False for inactive/unknown fields or
            when it already sits at the edge of the block.
        """
        if field not in self._active:
            return False
        pos = self._active.index(field)
        target = pos - 1 if up else pos + 1
        if target < 0 or target >= len(self._active):
            return False
        self._active[pos], self._active[target] = self._active[target], self._active[pos]
        return True

    def order(self) -> list[str]:
        return self._active + self._inactive

    def active_fields(self) -> list[str]:
        return list(self._active)

    def inactive_fields(self) -> list[str]:
        return list(self._inactive)

    def is_active(self, field: str) -> bool:
        return field in self._active

    def matching(self, text: str) -> list[str]:
        """Inactive fields whose name contains `text` (case-insensitive)."""
        needle = text.strip().lower()
        if not needle:
            return list(self._inactive)
        return [name for name in self._inactive if needle in name.lower()]

    def reset(self) -> None:
        """Forget every field, e.g. after switching index."""
        self._active.clear()
        self._inactive.clear()
