"""Tests for the filter expression compiler."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from LogLens.core.errors import FilterParseError
from LogLens.core.query import (
    Equality,
    FreeTextMatch,
    IdLookup,
    NullCheck,
    Range,
    Wildcard,
)
from LogLens.sources.elastic.query import parse_filter, unescape_value


class TestParseFilter(unittest.TestCase):
    def test_range_operators(self) -> None:
        self.assertEqual(parse_filter("age>=5"), Range(field="age", op="gte", value=5.0))
        self.assertEqual(parse_filter("age>5"), Range(field="age", op="gt", value=5.0))
        self.assertEqual(parse_filter("age<=1.5"), Range(field="age", op="lte", value=1.5))
        self.assertEqual(parse_filter("age < -2"), Range(field="age", op="lt", value=-2.0))

    def test_range_renders_backend_clause(self) -> None:
        self.assertEqual(parse_filter("age>=5").to_dict(), {"range": {"age": {"gte": 5.0}}})

    def test_range_errors_are_field_scoped(self) -> None:
        with self.assertRaises(FilterParseError) as ctx:
            parse_filter("age>abc")
        self.assertEqual(ctx.exception.field, "age")
        self.assertIn("invalid numeric value in range query", ctx.exception.message)

        with self.assertRaises(FilterParseError) as ctx:
            parse_filter("age>=")
        self.assertEqual(ctx.exception.message, "missing value in range query")

        with self.assertRaises(FilterParseError) as ctx:
            parse_filter("1age>5")
        self.assertEqual(ctx.exception.message, "invalid field name in range query")

    def test_double_greater_than_is_not_an_operator(self) -> None:
        with self.assertRaises(FilterParseError):
            parse_filter("age>>5")

    def test_range_rejects_non_finite_numbers(self) -> None:
        for expr in ("age>inf", "age>nan", "age>1e999"):
            with self.subTest(expr=expr), self.assertRaises(FilterParseError):
                parse_filter(expr)

    def test_range_wins_over_equals(self) -> None:
        with self.assertRaises(FilterParseError):
            parse_filter("msg=a>b")

    def test_empty_and_missing_equals(self) -> None:
        with self.assertRaises(FilterParseError) as ctx:
            parse_filter("   ")
        self.assertEqual(ctx.exception.message, "empty filter")

        with self.assertRaises(FilterParseError) as ctx:
            parse_filter("*abc")
        self.assertIn("invalid filter format", ctx.exception.message)

    def test_invalid_field_names(self) -> None:
        for expr in ("1abc=x", "a..b=x", "a.=x", "_private=x", "a b=x", "a\\*b=x"):
            with self.subTest(expr=expr), self.assertRaises(FilterParseError):
                parse_filter(expr)

    def test_dotted_and_dashed_field_names(self) -> None:
        self.assertEqual(
            parse_filter("host.name-raw=web"),
            FreeTextMatch(field="host.name-raw", text="web"),
        )

    def test_id_lookup(self) -> None:
        clause = parse_filter("_id= abc123 ")
        self.assertEqual(clause, IdLookup(values=("abc123",)))
        self.assertEqual(clause.to_dict(), {"ids": {"values": ["abc123"]}})

    def test_dedup_key_is_literal_term(self) -> None:
        clause = parse_filter("detection_id_dedup=42*")
        self.assertEqual(clause, Equality(field="detection_id_dedup", value="42*"))
        self.assertEqual(clause.to_dict(), {"term": {"detection_id_dedup": "42*"}})

    def test_null_values(self) -> None:
        for value in ("null", "NULL", "nil", "Nil"):
            with self.subTest(value=value):
                self.assertEqual(parse_filter(f"user={value}"), NullCheck(field="user"))
        self.assertEqual(
            parse_filter("user=null").to_dict(),
            {"bool": {"must_not": {"exists": {"field": "user"}}}},
        )

    def test_numeric_and_boolean_equality(self) -> None:
        self.assertEqual(parse_filter("code=404"), Equality(field="code", value=404.0))
        self.assertEqual(parse_filter("ratio=-.5"), Equality(field="ratio", value=-0.5))
        self.assertEqual(parse_filter("ok=TRUE"), Equality(field="ok", value=True))
        self.assertEqual(parse_filter("ok=false"), Equality(field="ok", value=False))
        self.assertEqual(parse_filter("ok=true").to_dict(), {"term": {"ok": True}})

    def test_non_finite_words_are_text(self) -> None:
        self.assertEqual(parse_filter("x=inf"), FreeTextMatch(field="x", text="inf"))
        self.assertEqual(parse_filter("x=NaN"), FreeTextMatch(field="x", text="NaN"))

    def test_wildcards(self) -> None:
        self.assertEqual(parse_filter("host=web-*"), Wildcard(field="host", pattern="web-*"))
        self.assertEqual(parse_filter("host=w?b"), Wildcard(field="host", pattern="w?b"))
        self.assertEqual(parse_filter("host=web*").to_dict(), {"wildcard": {"host": "web*"}})

    def test_leading_wildcard_is_rejected(self) -> None:
        for expr in ("host=*web", "host=?eb"):
            with self.subTest(expr=expr), self.assertRaises(FilterParseError) as ctx:
                parse_filter(expr)
            self.assertEqual(ctx.exception.field, "host")

    def test_escaped_wildcard_is_literal_text(self) -> None:
        self.assertEqual(parse_filter("name=a\\*b"), FreeTextMatch(field="name", text="a*b"))
        self.assertEqual(parse_filter("name=\\*abc"), FreeTextMatch(field="name", text="*abc"))

    def test_mixed_escaped_and_real_wildcard(self) -> None:
        self.assertEqual(parse_filter("name=a\\*b*"), Wildcard(field="name", pattern="a*b*"))

    def test_value_keeps_later_equals(self) -> None:
        self.assertEqual(parse_filter("query=a=b"), FreeTextMatch(field="query", text="a=b"))

    def test_free_text_match(self) -> None:
        clause = parse_filter(" message = hello world ")
        self.assertEqual(clause, FreeTextMatch(field="message", text="hello world"))
        self.assertEqual(clause.to_dict(), {"match": {"message": "hello world"}})

    def test_error_message_format(self) -> None:
        with self.assertRaises(FilterParseError) as ctx:
            parse_filter("1x=y")
        self.assertEqual(str(ctx.exception), "parse error on field '1x': invalid field name")
        self.assertIsInstance(ctx.exception, ValueError)


class TestUnescapeValue(unittest.TestCase):
    def test_known_escapes(self) -> None:
        self.assertEqual(unescape_value("a\\\\b"), "a\\b")
        self.assertEqual(unescape_value("a\\*b\\?c\\=d"), "a*b?c=d")

    def test_unknown_escape_keeps_backslash(self) -> None:
        self.assertEqual(unescape_value("a\\nb"), "a\\nb")

    def test_trailing_backslash_is_kept(self) -> None:
        self.assertEqual(unescape_value("abc\\"), "abc\\")

    def test_plain_value_is_unchanged(self) -> None:
        self.assertEqual(unescape_value("plain"), "plain")


if __name__ == "__main__":
    unittest.main()
