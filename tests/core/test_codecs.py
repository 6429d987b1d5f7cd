# tests/core/test_codecs.py
"""
Testes dos codecs de formato e do registry.

Os testes asseguram que:
- JSON e YAML decodificam para árvores estruturais
- payload vazio decodifica para None
- falhas de decode viram MergeError com causa encadeada
- o registry resolve formatos sem diferenciar maiúsculas e aceita aliases
"""

import json

import pytest
import yaml

from configweave.core.codecs import CodecRegistry, JsonCodec, YamlCodec, default_codecs
from configweave.core.errors import MergeError, UnsupportedFormatError


def test_json_codec_decode_and_canonical_encode():
    codec = JsonCodec()
    assert codec.decode(b'{"b": 1, "a": [1, 2]}') == {"b": 1, "a": [1, 2]}
    assert codec.encode({"b": 1, "a": 2}) == b'{"a":2,"b":1}'


def test_yaml_codec_decode_and_sorted_encode():
    codec = YamlCodec()
    assert codec.decode(b"a: 1\nb:\n  - x\n") == {"a": 1, "b": ["x"]}
    assert codec.encode({"b": 1, "a": 2}) == b"a: 2\nb: 1\n"


@pytest.mark.parametrize("codec", [JsonCodec(), YamlCodec()])
def test_empty_payload_decodes_to_none(codec):
    assert codec.decode(b"") is None
    assert codec.decode(b"  \n") is None


def test_invalid_json_raises_merge_error_with_cause():
    with pytest.raises(MergeError) as exc:
        JsonCodec().decode(b"{broken")
    assert isinstance(exc.value.__cause__, json.JSONDecodeError)


def test_invalid_yaml_raises_merge_error_with_cause():
    with pytest.raises(MergeError) as exc:
        YamlCodec().decode(b"a: [unclosed")
    assert isinstance(exc.value.__cause__, yaml.YAMLError)


def test_invalid_utf8_raises_merge_error():
    with pytest.raises(MergeError):
        JsonCodec().decode(b"\xff\xfe")


def test_default_registry_formats_and_aliases():
    registry = default_codecs()
    assert registry.formats() == ["json", "yaml"]
    assert isinstance(registry.get("yml"), YamlCodec)
    assert isinstance(registry.get("JSON"), JsonCodec)
    assert "yml" in registry
    assert "toml" not in registry
    assert 42 not in registry


def test_registry_unknown_format():
    with pytest.raises(UnsupportedFormatError):
        default_codecs().get("toml")


def test_registry_register_replaces_and_validates():
    class UpperJson(JsonCodec):
        def encode(self, value):
            return super().encode(value).upper()

    registry = CodecRegistry([JsonCodec()])
    registry.register(UpperJson())
    assert registry.get("json").encode({"a": "b"}) == b'{"A":"B"}'

    with pytest.raises(TypeError):
        registry.register(object())
