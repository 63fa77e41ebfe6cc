"""Search response parser.

Parses backend search responses into `DocumentEntry` lists plus the
reported hit total.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from LogLens.core.errors import SearchDecodeError
from LogLens.core.models import DocumentEntry
from LogLens.utils.log import log

_TOTAL_RELATIONS = {"eq", "gte"}


@dataclass(frozen=True, slots=True)
class SearchPage:
    """One decoded search or scroll response.

    `hit_count` counts raw hits, including ones skipped for lacking an
    object `_source`; a scroll walk ends only when it reaches zero.
    """

    entries: tuple[DocumentEntry, ...]
    total_hits: int
    total_relation: str
    scroll_id: str | None
    took: int | None = None
    hit_count: int = 0


def parse_search_response(payload: Any) -> SearchPage:
    """Parse a search or scroll response body.

    Args:
        payload: Decoded JSON body.

    Returns:
        Decoded page. A missing `hits.total` falls back to the number of hits.

    Raises:
        SearchDecodeError: If the body does not have the search response shape.
    """
    if not isinstance(payload, Mapping):
        raise SearchDecodeError("search response must be an object")
    hits_obj = payload.get("hits")
    if not isinstance(hits_obj, Mapping):
        raise SearchDecodeError("search response has no hits object")
    raw_hits = hits_obj.get("hits", [])
    if not isinstance(raw_hits, list):
        raise SearchDecodeError("hits.hits must be an array")

    entries = []
    for raw in raw_hits:
        entry = parse_hit(raw)
        if entry is None:
            log.debug("Skip hit without object _source: %s", raw.get("_id") if isinstance(raw, Mapping) else raw)
            continue
        entries.append(entry)

    if "total" in hits_obj:
        total, relation = parse_total(hits_obj["total"])
    else:
        total, relation = len(raw_hits), "eq"

    scroll_id = payload.get("_scroll_id")
    took = payload.get("took")
    return SearchPage(
        entries=tuple(entries),
        total_hits=total,
        total_relation=relation,
        scroll_id=str(scroll_id) if scroll_id else None,
        took=took if isinstance(took, int) and not isinstance(took, bool) else None,
        hit_count=len(raw_hits),
    )


def parse_total(value: Any) -> tuple[int, str]:
    """Decode `hits.total`, which is either an integer or `{value, relation}`.

    Returns:
        `(count, relation)` with relation `eq` or `gte`.

    Raises:
        SearchDecodeError: On a negative count, unknown relation or bad shape.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            raise SearchDecodeError(f"negative total hits: {value}")
        return value, "eq"
    if isinstance(value, Mapping):
        count = value.get("value")
        relation = value.get("relation", "eq")
        if isinstance(count, bool) or not isinstance(count, int):
            raise SearchDecodeError(f"total hits value must be an integer: {count!r}")
        if count < 0:
            raise SearchDecodeError(f"negative total hits: {count}")
        if relation not in _TOTAL_RELATIONS:
            raise SearchDecodeError(f"invalid total hits relation: {relation!r}")
        return count, relation
    raise SearchDecodeError(f"unsupported total hits format: {value!r}")


def parse_hit(raw: Any) -> DocumentEntry | None:
    """Map one raw hit into a `DocumentEntry`; None when `_source` is not an object."""
    if not isinstance(raw, Mapping):
        return None
    source = raw.get("_source")
    if not isinstance(source, Mapping):
        return None
    score = raw.get("_score")
    version = raw.get("_version")
    return DocumentEntry(
        id=str(raw.get("_id", "")),
        index=str(raw.get("_index", "")),
        type=str(raw.get("_type") or ""),
        score=float(score) if _is_number(score) else None,
        version=version if isinstance(version, int) and not isinstance(version, bool) else None,
        source=source,
    )


def parse_document(payload: Any) -> DocumentEntry:
    """Map a single-document GET response into a `DocumentEntry`."""
    entry = parse_hit(payload)
    if entry is None:
        raise SearchDecodeError("document response has no object _source")
    return entry


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
