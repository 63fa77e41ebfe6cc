from __future__ import annotations

import json
import re
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from dateutil import tz

_ARRAY_ACCESS_RE = re.compile(r"^(?P<key>[^\[\]]*)\[(?P<index>\d+)\]$")

TIMESTAMP_FIELD = "unixTime"
SEVERITY_FIELD = "severity"


@dataclass(frozen=True, slots=True)
class DocumentEntry:
    """One search hit: backend metadata plus the raw document payload.

    The payload is frozen on construction. Objects become read-only mapping
    proxies and arrays become tuples, so an entry can be shared between the
    fetch worker and any number of reader threads without locking.

    Attributes:
        id: Document id (`_id`).
        index: Index the hit came from (`_index`).
        type: Mapping type (`_type`), empty on backends without types.
        score: Relevance score when the backend reported one.
        version: Document version when the backend reported one.
        source: Nested payload (`_source`).
    """

    id: str
    index: str
    type: str = ""
    score: float | None = None
    version: int | None = None
    source: Mapping[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", _freeze(dict(self.source)))

    def metadata_fields(self) -> list[str]:
        fields = ["_id", "_index", "_type"]
        if self.score is not None:
            fields.append("_score")
        if self.version is not None:
            fields.append("_version")
        return fields

    def available_fields(self) -> list[str]:
        """List every addressable field of this document.

        Nested objects are flattened with `.`; an array is listed once under
        its own path rather than per element.

        Returns:
            Sorted, unique field paths including metadata fields.
        """
        fields = set(self.metadata_fields())
        _collect_paths(self.source, "", fields)
        return sorted(fields)

    def value(self, path: str) -> Any:
        """Resolve a dot-separated path inside the payload.

        A segment may carry one index (`key[n]`) to step into an array
        element. Returns None on any missing key, type mismatch or
        out-of-range index.
        """
        parts = path.split(".")
        current: Mapping[str, Any] = self.source
        last = len(parts) - 1

        for position, part in enumerate(parts):
            if part.endswith("]"):
                match = _ARRAY_ACCESS_RE.match(part)
                if match is None:
                    return None
                items = current.get(match["key"])
                index = int(match["index"])
                if not isinstance(items, tuple) or index >= len(items):
                    return None
                item = items[index]
                if position == last:
                    return item
                if not isinstance(item, Mapping):
                    return None
                current = item
                continue

            if position == last:
                return current.get(part)
            child = current.get(part)
            if not isinstance(child, Mapping):
                return None
            current = child
        return None

    def formatted(self, field: str) -> str:
        """Render a field value for display. Absent values render as ""."""
        if field == "_id":
            return self.id
        if field == "_index":
            return self.index
        if field == "_type":
            return self.type
        if field == "_score":
            return "" if self.score is None else _format_number(self.score)
        if field == "_version":
            return "" if self.version is None else str(self.version)

        value = self.value(field)
        if value is None:
            return ""
        if field == TIMESTAMP_FIELD and _is_number(value):
            rendered = _format_unix_seconds(value)
            if rendered is not None:
                return rendered
        if field == SEVERITY_FIELD:
            return _format_severity(value)
        return _stringify(value)

    def to_dict(self) -> dict[str, Any]:
        """Return the hit as plain JSON-compatible data."""
        out: dict[str, Any] = {"_id": self.id, "_index": self.index, "_type": self.type}
        if self.score is not None:
            out["_score"] = self.score
        if self.version is not None:
            out["_version"] = self.version
        out["_source"] = thaw(self.source)
        return out


def thaw(value: Any) -> Any:
    """Convert a frozen payload value back into dicts and lists."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    return value


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(key): _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _collect_paths(node: Mapping[str, Any], prefix: str, out: set[str]) -> None:
    for key, value in node.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, Mapping):
            _collect_paths(value, path, out)
        else:
            out.add(path)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return str(value)


def _format_unix_seconds(value: float) -> str | None:
    try:
        moment = datetime.fromtimestamp(int(value), tz=tz.tzlocal())
    except (OverflowError, OSError, ValueError):
        return None
    return moment.isoformat()


def _format_severity(value: Any) -> str:
    if isinstance(value, bool):
        return _stringify(value)
    if isinstance(value, float):
        return f"{value:.0f}"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value
    return _stringify(value)


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, (Mapping, tuple)):
        return json.dumps(thaw(value), ensure_ascii=False, separators=(",", ":"))
    return str(value)
