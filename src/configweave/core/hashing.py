# src/configweave/core/hashing.py
"""
Hashing canônico do config-weave.

Este módulo implementa as duas identidades de conteúdo usadas pelo engine:
    - checksum de um change record (detecção de updates no-op)
    - version de um snapshot (identidade do payload mesclado)

Política de hashing (v1):
    - Algoritmo criptográfico estável (SHA-256)
    - Resultado em string hexadecimal de 64 caracteres
    - Estruturas são serializadas em JSON canônico antes do hash
      (chaves ordenadas, separadores compactos, UTF-8)

Invariantes:
    - Bytes idênticos produzem o mesmo hash
    - Estruturas equivalentes produzem o mesmo hash, independente da
      ordem original das chaves

Limites explícitos:
    - Não decodifica payloads
    - Não depende de estado externo
"""

import hashlib
import json
from typing import Any


def compute_checksum(data: bytes) -> str:
    """
    Gera o checksum SHA-256 de um payload bruto.

    Args:
        data (bytes): Payload codificado de um change record.

    Returns:
        str: Hash hexadecimal de 64 caracteres.

    Raises:
        TypeError: Se `data` não for bytes.
    """
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"Checksum requer bytes, recebido: {type(data).__name__}")
    return hashlib.sha256(bytes(data)).hexdigest()


def compute_version(canonical: bytes) -> str:
    """Version de um snapshot: hash dos bytes canônicos já re-encodados."""
    return compute_checksum(canonical)


def canonical_json(value: Any) -> bytes:
    """
    Serializa uma estrutura em JSON canônico.

    Usado como codificação interna estável (digests de filtros por path,
    payload do codec JSON). Valores não serializáveis em JSON (ex.: datas
    vindas de YAML) são convertidos via `str`.
    """
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    ).encode("utf-8")


def compute_structure_hash(value: Any) -> str:
    """Hash SHA-256 da serialização canônica de `value`."""
    return compute_checksum(canonical_json(value))
