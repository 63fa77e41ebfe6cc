"""Filter expression compiler.

Compiles the textual filter language typed by the user into structured
clauses (`LogLens.core.query`) and combines them with a relative timeframe
into one `CompositeQuery`.

Syntax
- `field=value`            term / wildcard / match, depending on the value
- `field>N`, `>=`, `<`, `<=` numeric range
- `field=null` / `nil`     field does not exist
- `_id=value`              id lookup
- `*` / `?` in a value     wildcard, escapable with `\\`

Value classification order for `field=value`
- null / nil     -> NullCheck
- finite number  -> Equality (float)
- true / false   -> Equality (bool)
- unescaped * ?  -> Wildcard (leading wildcard rejected)
- anything else  -> FreeTextMatch
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Sequence

from LogLens.core.errors import FilterParseError, QueryBuildError, TimeframeError
from LogLens.core.query import (
    Clause,
    CompositeQuery,
    Equality,
    FreeTextMatch,
    IdLookup,
    NullCheck,
    ParsedClause,
    Range,
    TimeRange,
    Wildcard,
)

TIME_FIELD_SECONDS = "unixTime"
TIME_FIELD_MILLIS = "detectionGeneratedTime"
DEDUP_FIELD = "detection_id_dedup"

_FIELD_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*(?:\.[A-Za-z][A-Za-z0-9_-]*)*$")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_TIMEFRAME_RE = re.compile(r"^(?P<amount>\d+)(?P<unit>.*)$")

_RANGE_OPS = {">": "gt", ">=": "gte", "<": "lt", "<=": "lte"}
_ESCAPABLE = {"\\", "*", "?", "="}
_WILDCARDS = {"*", "?"}

_TIMEFRAME_KEYWORDS = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "quarter": timedelta(days=90),
    "year": timedelta(days=365),
}
_TIMEFRAME_UNITS = {
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


def parse_filter(expr: str) -> ParsedClause:
    """Compile one filter expression into a clause.

    Args:
        expr: Raw filter text, e.g. `status=active` or `age>=5`.

    Returns:
        The clause matching the expression.

    Raises:
        FilterParseError: If the expression is empty, malformed, names an
            invalid field, or carries an invalid range value or wildcard.
    """
    text = expr.strip()
    if not text:
        raise FilterParseError("", "empty filter")

    if text.startswith("_id="):
        return IdLookup(values=(text[len("_id="):].strip(),))
    if text.startswith(f"{DEDUP_FIELD}="):
        return Equality(field=DEDUP_FIELD, value=text[len(DEDUP_FIELD) + 1:].strip())

    clause = _parse_range(text)
    if clause is not None:
        return clause

    if "=" not in text:
        raise FilterParseError(text, "invalid filter format, expected 'field=value' or range query")
    field, value = (part.strip() for part in text.split("=", 1))
    if not _FIELD_NAME_RE.match(field):
        raise FilterParseError(field, "invalid field name")

    if value.lower() in ("null", "nil"):
        return NullCheck(field=field)

    number = _parse_number(value)
    if number is not None:
        return Equality(field=field, value=number)

    lowered = value.lower()
    if lowered in ("true", "false"):
        return Equality(field=field, value=lowered == "true")

    if _has_unescaped_wildcard(field, value):
        return Wildcard(field=field, pattern=unescape_value(value))

    return FreeTextMatch(field=field, text=unescape_value(value))


def unescape_value(value: str) -> str:
    r"""Resolve `\\`, `\*`, `\?` and `\=` escapes.

    Any other escaped character keeps its backslash, and a trailing lone
    backslash is kept as is.
    """
    if "\\" not in value:
        return value

    out: list[str] = []
    escaped = False
    for ch in value:
        if escaped:
            if ch not in _ESCAPABLE:
                out.append("\\")
            out.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        else:
            out.append(ch)
    if escaped:
        out.append("\\")
    return "".join(out)


def resolve_timeframe(expr: str, now: datetime) -> timedelta:
    """Turn a relative timeframe expression into a duration.

    Args:
        expr: Keyword (`today`, `week`, `month`, `quarter`, `year`) or
            `<digits><unit>` with unit `h`, `d` or `w`.
        now: Reference time; `today` is measured from its local midnight.

    Returns:
        Non-negative duration.

    Raises:
        TimeframeError: If the expression is empty, non-numeric, negative
            or uses an unknown unit, or does not fit a duration.
    """
    text = expr.strip().lower()
    if not text:
        raise TimeframeError("empty timeframe")

    if text == "today":
        return now - now.replace(hour=0, minute=0, second=0, microsecond=0)
    keyword = _TIMEFRAME_KEYWORDS.get(text)
    if keyword is not None:
        return keyword

    if text.startswith("-"):
        raise TimeframeError(f"negative timeframe: {expr.strip()}")
    match = _TIMEFRAME_RE.match(text)
    if match is None:
        raise TimeframeError(f"invalid number in timeframe: {expr.strip()}")
    unit = _TIMEFRAME_UNITS.get(match["unit"])
    if unit is None:
        raise TimeframeError(f"invalid timeframe unit: {match['unit'] or '(none)'}")
    try:
        return unit * int(match["amount"])
    except OverflowError as e:
        raise TimeframeError(f"timeframe too large: {expr.strip()}") from e


def build_time_range(expr: str, now: datetime) -> TimeRange:
    """Build the dual-field time range clause ending at `now`."""
    duration = resolve_timeframe(expr, now)
    end = now
    try:
        start = now - duration
    except OverflowError as e:
        raise TimeframeError(f"timeframe too large: {expr.strip()}") from e
    return TimeRange(
        seconds_field=TIME_FIELD_SECONDS,
        millis_field=TIME_FIELD_MILLIS,
        start_s=int(start.timestamp()),
        end_s=int(end.timestamp()),
        start_ms=_to_millis(start),
        end_ms=_to_millis(end),
    )


def build_query(
    filters: Sequence[str],
    size: int,
    timeframe: str = "",
    now: datetime | None = None,
    *,
    sort_field: str | None = None,
) -> CompositeQuery:
    """Compile filters and a timeframe into one composite query.

    Every filter is parsed before failing so all problems are reported
    together.

    Args:
        filters: Filter expressions in submission order.
        size: Requested number of hits; must not be negative.
        timeframe: Optional relative timeframe; empty means unbounded.
        now: Reference time for the timeframe (defaults to local now).
        sort_field: Optional field to sort on, newest first.

    Returns:
        Composite query with filter clauses followed by the time range.

    Raises:
        QueryBuildError: If the size is negative, any filter is invalid or
            the timeframe is invalid.
    """
    if size < 0:
        raise QueryBuildError([f"size must be non-negative, got {size}"])

    clauses: list[Clause] = []
    problems: list[str] = []
    errors: list[Exception] = []
    for idx, expr in enumerate(filters):
        try:
            clauses.append(parse_filter(expr))
        except FilterParseError as e:
            problems.append(f"filter[{idx}]: {e}")
            errors.append(e)

    if timeframe.strip():
        reference = now or datetime.now().astimezone()
        try:
            clauses.append(build_time_range(timeframe, reference))
        except TimeframeError as e:
            problems.append(f"timeframe: {e}")
            errors.append(e)

    if problems:
        raise QueryBuildError(problems, errors)
    return CompositeQuery(clauses=tuple(clauses), size=size, sort_field=sort_field or None)


def _parse_range(text: str) -> Range | None:
    start = next((i for i, ch in enumerate(text) if ch in "<>"), -1)
    if start == -1:
        return None

    field = text[:start].strip()
    if not _FIELD_NAME_RE.match(field):
        raise FilterParseError(field, "invalid field name in range query")

    end = start + 1
    if end < len(text) and text[end] == "=":
        end += 1
    op = _RANGE_OPS[text[start:end]]

    raw = text[end:].strip()
    if not raw:
        raise FilterParseError(field, "missing value in range query")
    number = _parse_number(raw)
    if number is None:
        raise FilterParseError(field, f"invalid numeric value in range query: {raw}")
    return Range(field=field, op=op, value=number)


def _parse_number(value: str) -> float | None:
    if not _NUMBER_RE.match(value):
        return None
    number = float(value)
    # Overflowing literals such as 1e999 become inf.
    if number in (float("inf"), float("-inf")):
        return None
    return number


def _has_unescaped_wildcard(field: str, value: str) -> bool:
    found = False
    escaped = False
    for idx, ch in enumerate(value):
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch in _WILDCARDS:
            if idx == 0:
                raise FilterParseError(field, "wildcard query cannot start with *")
            found = True
    return found


def _to_millis(moment: datetime) -> int:
    return int(moment.timestamp()) * 1000 + moment.microsecond // 1000
