# src/configweave/core/codecs.py
"""
Codecs plugáveis de formato para o config-weave.

Um codec traduz bytes de um formato (`json`, `yaml`, ...) em uma árvore
estrutural genérica (dicts, listas e escalares) e de volta para bytes
canônicos. O Merger depende apenas do contrato `Codec`, nunca de um
formato concreto.

Formatos suportados (v1):
    - JSON (`json`)
    - YAML (`yaml`, alias `yml`)

Decisões arquiteturais:
    - Payload vazio (ou apenas espaços) decodifica para `None`
    - A codificação é sempre canônica (chaves ordenadas)
    - Falhas de decode viram `MergeError` com a causa encadeada

Limites explícitos:
    - Não valida a raiz (responsabilidade do Merger)
    - Não valida semântica de domínio
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional, Protocol, runtime_checkable

import yaml  # PyYAML

from .errors import MergeError, UnsupportedFormatError
from .hashing import canonical_json


@runtime_checkable
class Codec(Protocol):
    """
    Contrato mínimo de um codec de formato.

    Atributos obrigatórios:
        - format: tag estável do formato (ex.: "json")

    Invariantes:
        - `encode` é determinístico para a mesma árvore
        - `decode(encode(v))` é estruturalmente igual a `v`
    """

    format: str

    def decode(self, data: bytes) -> Any:
        ...

    def encode(self, value: Any) -> bytes:
        ...


class JsonCodec:
    format = "json"

    def decode(self, data: bytes) -> Any:
        if not data.strip():
            return None
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MergeError(f"JSON inválido: {e}") from e

    def encode(self, value: Any) -> bytes:
        return canonical_json(value)


class YamlCodec:
    format = "yaml"

    def decode(self, data: bytes) -> Any:
        if not data.strip():
            return None
        try:
            return yaml.safe_load(data.decode("utf-8"))
        except (UnicodeDecodeError, yaml.YAMLError) as e:
            raise MergeError(f"YAML inválido: {e}") from e

    def encode(self, value: Any) -> bytes:
        text = yaml.safe_dump(
            value,
            sort_keys=True,
            default_flow_style=False,
            allow_unicode=True,
        )
        return text.encode("utf-8")


class CodecRegistry:
    """
    Registro de codecs por tag de formato.

    A busca é case-insensitive e aceita aliases (`yml` → `yaml`).
    Registrar um formato já existente substitui o codec anterior.
    """

    def __init__(self, codecs: Optional[Iterable[Codec]] = None):
        self._codecs: Dict[str, Codec] = {}
        self._aliases: Dict[str, str] = {}
        for codec in codecs or ():
            self.register(codec)

    def register(self, codec: Codec, *aliases: str) -> None:
        if not isinstance(codec, Codec):
            raise TypeError(f"Codec inválido: {type(codec).__name__}")
        fmt = codec.format.lower()
        self._codecs[fmt] = codec
        for alias in aliases:
            self._aliases[alias.lower()] = fmt

    def get(self, fmt: str) -> Codec:
        key = (fmt or "").lower()
        key = self._aliases.get(key, key)
        try:
            return self._codecs[key]
        except KeyError:
            raise UnsupportedFormatError(f"Formato não suportado: {fmt!r}") from None

    def __contains__(self, fmt: object) -> bool:
        if not isinstance(fmt, str):
            return False
        key = fmt.lower()
        return self._aliases.get(key, key) in self._codecs

    def formats(self) -> list:
        return sorted(self._codecs)


def default_codecs() -> CodecRegistry:
    """Registry com JSON e YAML (alias `yml`)."""
    registry = CodecRegistry([JsonCodec()])
    registry.register(YamlCodec(), "yml")
    return registry
