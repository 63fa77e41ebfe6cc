"""Tests for DocumentEntry field discovery, lookup and formatting."""

from __future__ import annotations

import sys
import threading
import unittest
from datetime import datetime
from pathlib import Path

from dateutil import tz

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from LogLens.core.models import DocumentEntry


def _entry(**source) -> DocumentEntry:
    return DocumentEntry(id="doc-1", index="logs-2024", type="_doc", source=source)


class TestAvailableFields(unittest.TestCase):
    def test_flattens_objects_and_keeps_arrays_opaque(self) -> None:
        entry = _entry(a={"b": 1, "c": {"d": None}}, tags=["x", "y"], msg="hi")
        self.assertEqual(
            entry.available_fields(),
            ["_id", "_index", "_type", "a.b", "a.c.d", "msg", "tags"],
        )

    def test_optional_metadata(self) -> None:
        entry = DocumentEntry(id="1", index="i", score=1.5, version=3, source={"z": 1})
        self.assertEqual(entry.available_fields(), ["_id", "_index", "_score", "_type", "_version", "z"])

    def test_empty_object_leaves_no_path(self) -> None:
        self.assertEqual(_entry(empty={}).available_fields(), ["_id", "_index", "_type"])


class TestValue(unittest.TestCase):
    def setUp(self) -> None:
        self.entry = _entry(
            user={"name": "ana", "roles": ["admin", "dev"]},
            events=[{"kind": "login", "meta": {"ip": "10.0.0.1"}}, {"kind": "logout"}],
            count=3,
        )

    def test_nested_lookup(self) -> None:
        self.assertEqual(self.entry.value("user.name"), "ana")
        self.assertEqual(self.entry.value("count"), 3)

    def test_array_index(self) -> None:
        self.assertEqual(self.entry.value("events[1].kind"), "logout")
        self.assertEqual(self.entry.value("events[0].meta.ip"), "10.0.0.1")
        self.assertEqual(self.entry.value("user.roles[0]"), "admin")

    def test_misses_return_none(self) -> None:
        for path in ("missing", "user.missing", "count.x", "events[5].kind", "user[0]", "events[x].kind", "user.roles[0].x"):
            with self.subTest(path=path):
                self.assertIsNone(self.entry.value(path))


class TestFormatted(unittest.TestCase):
    def test_metadata(self) -> None:
        entry = DocumentEntry(id="1", index="idx", type="t", score=2.0, version=7)
        self.assertEqual(entry.formatted("_id"), "1")
        self.assertEqual(entry.formatted("_index"), "idx")
        self.assertEqual(entry.formatted("_type"), "t")
        self.assertEqual(entry.formatted("_score"), "2")
        self.assertEqual(entry.formatted("_version"), "7")

    def test_unix_time_renders_local_timestamp(self) -> None:
        entry = _entry(unixTime=1_700_000_000.0)
        expected = datetime.fromtimestamp(1_700_000_000, tz=tz.tzlocal()).isoformat()
        self.assertEqual(entry.formatted("unixTime"), expected)

    def test_unix_time_string_is_left_alone(self) -> None:
        self.assertEqual(_entry(unixTime="yesterday").formatted("unixTime"), "yesterday")

    def test_severity(self) -> None:
        self.assertEqual(_entry(severity=3.0).formatted("severity"), "3")
        self.assertEqual(_entry(severity=2.6).formatted("severity"), "3")
        self.assertEqual(_entry(severity=5).formatted("severity"), "5")
        self.assertEqual(_entry(severity="high").formatted("severity"), "high")

    def test_generic_values(self) -> None:
        entry = _entry(flag=True, ratio=0.5, whole=4.0, obj={"a": [1, 2]}, arr=[1, "x"], nothing=None)
        self.assertEqual(entry.formatted("flag"), "true")
        self.assertEqual(entry.formatted("ratio"), "0.5")
        self.assertEqual(entry.formatted("whole"), "4")
        self.assertEqual(entry.formatted("obj"), '{"a":[1,2]}')
        self.assertEqual(entry.formatted("arr"), '[1,"x"]')
        self.assertEqual(entry.formatted("nothing"), "")
        self.assertEqual(entry.formatted("absent"), "")


class TestImmutability(unittest.TestCase):
    def test_payload_is_read_only(self) -> None:
        raw = {"a": {"b": [1, 2]}}
        entry = _entry(**raw)
        raw["a"]["b"].append(3)
        self.assertEqual(entry.value("a.b"), (1, 2))
        with self.assertRaises(TypeError):
            entry.source["a"]["c"] = 1  # type: ignore[index]

    def test_to_dict_round_trips_plain_data(self) -> None:
        entry = DocumentEntry(id="1", index="i", score=1.0, source={"a": {"b": [1, {"c": 2}]}})
        self.assertEqual(
            entry.to_dict(),
            {"_id": "1", "_index": "i", "_type": "", "_score": 1.0, "_source": {"a": {"b": [1, {"c": 2}]}}},
        )

    def test_concurrent_readers(self) -> None:
        entry = _entry(a={"b": {"c": "v"}}, items=[{"k": i} for i in range(50)])
        errors: list[str] = []

        def _read() -> None:
            for _ in range(200):
                if entry.value("a.b.c") != "v" or entry.formatted("items[49].k") != "49":
                    errors.append("mismatch")
                entry.available_fields()

        threads = [threading.Thread(target=_read) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(errors, [])


if __name__ == "__main__":
    unittest.main()
