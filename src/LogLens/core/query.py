from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class Equality:
    """Exact term match; `value` keeps its coerced type (float, bool or str)."""

    field: str
    value: float | bool | str

    def to_dict(self) -> dict[str, Any]:
        return {"term": {self.field: self.value}}


@dataclass(frozen=True, slots=True)
class Range:
    """Numeric range bound. `op` is one of gt/gte/lt/lte."""

    field: str
    op: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"range": {self.field: {self.op: self.value}}}


@dataclass(frozen=True, slots=True)
class Wildcard:
    field: str
    pattern: str

    def to_dict(self) -> dict[str, Any]:
        return {"wildcard": {self.field: self.pattern}}


@dataclass(frozen=True, slots=True)
class NullCheck:
    """Matches documents where `field` does not exist."""

    field: str

    def to_dict(self) -> dict[str, Any]:
        return {"bool": {"must_not": {"exists": {"field": self.field}}}}


@dataclass(frozen=True, slots=True)
class IdLookup:
    values: tuple[str, ...]
    field: str = "_id"

    def to_dict(self) -> dict[str, Any]:
        return {"ids": {"values": list(self.values)}}


@dataclass(frozen=True, slots=True)
class FreeTextMatch:
    field: str
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"match": {self.field: self.text}}


ParsedClause = Union[Equality, Range, Wildcard, NullCheck, IdLookup, FreeTextMatch]


@dataclass(frozen=True, slots=True)
class TimeRange:
    """Relative time window checked against two timestamp fields.

    Documents carry either a second-precision or a millisecond-precision
    timestamp, so the clause matches when at least one of the two ranges does.

    Attributes:
        seconds_field: Field holding unix seconds.
        millis_field: Field holding unix milliseconds.
        start_s: Inclusive lower bound in seconds.
        end_s: Inclusive upper bound in seconds.
        start_ms: Inclusive lower bound in milliseconds.
        end_ms: Inclusive upper bound in milliseconds.
    """

    seconds_field: str
    millis_field: str
    start_s: int
    end_s: int
    start_ms: int
    end_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "bool": {
                "should": [
                    {"range": {self.seconds_field: {"gte": self.start_s, "lte": self.end_s}}},
                    {"range": {self.millis_field: {"gte": self.start_ms, "lte": self.end_ms}}},
                ],
                "minimum_should_match": 1,
            }
        }


Clause = Union[ParsedClause, TimeRange]


@dataclass(frozen=True, slots=True)
class CompositeQuery:
    """AND-combination of clauses sent to the backend as one request body.

    Attributes:
        clauses: Filter clauses in submission order, followed by the time
            range clause when a timeframe was given.
        size: Requested number of hits.
        sort_field: Optional field to sort on, newest first.
    """

    clauses: tuple[Clause, ...]
    size: int
    sort_field: str | None = None

    @property
    def is_match_all(self) -> bool:
        return not self.clauses

    @property
    def time_range(self) -> TimeRange | None:
        for clause in self.clauses:
            if isinstance(clause, TimeRange):
                return clause
        return None

    def with_size(self, size: int) -> CompositeQuery:
        return replace(self, size=size)

    def to_body(self) -> dict[str, Any]:
        """Render the backend request body.

        Returns:
            Mapping with `query`, `size` and, when configured, `sort`.
        """
        if self.is_match_all:
            query: dict[str, Any] = {"match_all": {}}
        else:
            query = {"bool": {"must": [clause.to_dict() for clause in self.clauses]}}
        body: dict[str, Any] = {"query": query, "size": self.size}
        if self.sort_field:
            body["sort"] = [{self.sort_field: {"order": "desc"}}]
        return body
