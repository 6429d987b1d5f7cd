# tests/core/test_paths.py
"""
Testes de key-paths pontuados.

Paths são comparados por segmento: `db` cobre `db.host` mas não `dbx`.
"""

import pytest

from configweave.core.paths import filtered_digest, format_path, lookup, parse_path, parse_paths


def test_parse_path_from_string_and_sequence():
    assert parse_path("db.host") == ("db", "host")
    assert parse_path(["db", "host"]) == ("db", "host")


def test_parse_path_trailing_dot_is_same_prefix():
    assert parse_path("db.") == ("db",)
    assert parse_path(" db ") == ("db",)


@pytest.mark.parametrize("bad", ["", ".", "a..b", []])
def test_parse_path_rejects_empty_segments(bad):
    with pytest.raises(ValueError):
        parse_path(bad)


def test_parse_paths_dedupes_preserving_order():
    assert parse_paths(["b", "a", "b.", ("a",)]) == (("b",), ("a",))


def test_format_path():
    assert format_path(("db", "host")) == "db.host"


def test_lookup_found_and_missing():
    tree = {"db": {"host": "h", "port": None}}
    assert lookup(tree, ("db", "host")) == (True, "h")
    assert lookup(tree, ("db", "port")) == (True, None)
    assert lookup(tree, ("db", "user")) == (False, None)
    assert lookup(tree, ("db", "host", "x")) == (False, None)


def test_filtered_digest_ignores_unwatched_keys():
    a = {"db": {"host": "h"}, "cache": {"ttl": 1}}
    b = {"db": {"host": "h"}, "cache": {"ttl": 2}}
    assert filtered_digest(a, [("db",)]) == filtered_digest(b, [("db",)])
    assert filtered_digest(a, [("cache",)]) != filtered_digest(b, [("cache",)])


def test_filtered_digest_segment_prefix_does_not_match_longer_key():
    a = {"db": 1, "dbx": 1}
    b = {"db": 1, "dbx": 2}
    assert filtered_digest(a, [("db",)]) == filtered_digest(b, [("db",)])


def test_filtered_digest_distinguishes_absent_from_null():
    assert filtered_digest({}, [("db",)]) != filtered_digest({"db": None}, [("db",)])
