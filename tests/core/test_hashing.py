# tests/core/test_hashing.py
"""
Testes do hashing canônico (checksum de records e version de snapshots).

Invariantes verificadas:
    - Bytes idênticos produzem o mesmo hash
    - Estruturas equivalentes produzem o mesmo hash independente da
      ordem das chaves
    - O hash é SHA-256 hexadecimal (64 caracteres)
"""

import hashlib

import pytest

from configweave.core.hashing import (
    canonical_json,
    compute_checksum,
    compute_structure_hash,
    compute_version,
)


def test_checksum_is_sha256_hex():
    data = b'{"a":1}'
    assert compute_checksum(data) == hashlib.sha256(data).hexdigest()
    assert len(compute_checksum(data)) == 64


def test_checksum_changes_with_content():
    assert compute_checksum(b"a") != compute_checksum(b"b")


def test_checksum_accepts_bytearray():
    assert compute_checksum(bytearray(b"x")) == compute_checksum(b"x")


def test_checksum_rejects_text():
    with pytest.raises(TypeError):
        compute_checksum("not bytes")


def test_version_matches_checksum_of_canonical_bytes():
    canonical = canonical_json({"a": 1})
    assert compute_version(canonical) == compute_checksum(canonical)


def test_canonical_json_sorts_keys_and_is_compact():
    assert canonical_json({"b": 1, "a": {"d": 2, "c": 3}}) == b'{"a":{"c":3,"d":2},"b":1}'


def test_canonical_json_keeps_unicode():
    assert canonical_json({"nome": "ação"}) == '{"nome":"ação"}'.encode("utf-8")


def test_structure_hash_is_order_independent():
    """
    A ordem de inserção das chaves não altera o hash estrutural.
    """
    a = {"x": 1, "y": {"b": 2, "a": 1}}
    b = {"y": {"a": 1, "b": 2}, "x": 1}
    assert compute_structure_hash(a) == compute_structure_hash(b)


def test_structure_hash_stringifies_non_json_values():
    import datetime as dt

    value = {"when": dt.date(2026, 1, 16)}
    assert compute_structure_hash(value) == compute_structure_hash({"when": "2026-01-16"})
