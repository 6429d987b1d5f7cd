# src/configweave/core/merge.py
"""
Merger canônico do config-weave.

Este módulo implementa a política oficial de merge utilizada para combinar
os change records de várias fontes (em ordem de prioridade) em um único
record canônico e versionado.

Política de merge (v1):
    - dict + dict → merge recursivo por chave
    - list        → sobrescrita total (sem concatenação ou merge por índice)
    - escalar     → sobrescrita direta pela fonte posterior
    - conflito de tipos → a fonte posterior vence (last-writer-wins)

Princípios fundamentais:
    - O merge é determinístico e puramente funcional
    - Nenhum input é mutado durante o processo
    - Falhas de decode de um record são isoladas (fail-open)

Invariantes:
    - A mesma lista de records sempre produz os mesmos bytes e a mesma version
    - Chaves não sobrescritas são preservadas
    - Lista vazia produz o payload `{}` e sua version bem definida

Limites explícitos:
    - Não lê fontes
    - Não valida semântica de domínio
    - Não instala snapshots nem notifica watchers
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .codecs import CodecRegistry, default_codecs
from .errors import (
    STAGE_DECODE,
    InvalidRootTypeError,
    MergeError,
    SourceDiagnostic,
    UnsupportedFormatError,
)
from .hashing import compute_version
from .paths import SEPARATOR
from .record import ChangeRecord

MERGED_SOURCE = "merge"


@dataclass(frozen=True)
class MergeResult:
    """
    Resultado imutável de `merge_records`.

    Campos:
        - record: ChangeRecord canônico mesclado
        - version: hash de conteúdo de `record.data`
        - tree: árvore mesclada (não compartilhada com os inputs)
        - provenance: path folha pontuado → fonte que o escreveu
        - merged_sources: fontes efetivamente incluídas, em ordem
        - diagnostics: records excluídos por falha de decode
    """

    record: ChangeRecord
    version: str
    tree: Dict[str, Any] = field(default_factory=dict, repr=False)
    provenance: Dict[str, str] = field(default_factory=dict, repr=False)
    merged_sources: Tuple[str, ...] = ()
    diagnostics: Tuple[SourceDiagnostic, ...] = ()


def _normalize(value: Any) -> Any:
    # chaves não-string (ex.: inteiros em YAML) viram string
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


def _drop_provenance(provenance: Dict[str, str], prefix: str) -> None:
    nested = prefix + SEPARATOR
    for key in [k for k in provenance if k == prefix or k.startswith(nested)]:
        del provenance[key]


def _record_leaves(provenance: Dict[str, str], value: Any, prefix: str, source: str) -> None:
    if isinstance(value, dict) and value:
        for key, child in value.items():
            _record_leaves(provenance, child, f"{prefix}{SEPARATOR}{key}", source)
    else:
        provenance[prefix] = source


def _merge_into(
    result: Dict[str, Any],
    override: Dict[str, Any],
    provenance: Optional[Dict[str, str]],
    source: str,
    prefix: str = "",
) -> None:
    for key, override_value in override.items():
        path = f"{prefix}{SEPARATOR}{key}" if prefix else key
        base_value = result.get(key)

        # dict -> merge recursivo
        if isinstance(base_value, dict) and isinstance(override_value, dict):
            # mapa vazio registrado como folha deixa de ser folha
            if provenance is not None and override_value:
                provenance.pop(path, None)
            _merge_into(base_value, override_value, provenance, source, path)
            continue

        # qualquer outro caso -> sobrescrita total
        result[key] = deepcopy(override_value)
        if provenance is not None:
            _drop_provenance(provenance, path)
            _record_leaves(provenance, override_value, path, source)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Realiza um deep-merge determinístico entre dois dicionários.

    Política de merge (v1):
        - dict + dict → merge recursivo por chave
        - list        → sobrescrita total
        - escalar     → sobrescrita direta pelo override
        - conflito de tipos → o override vence

    Invariantes:
        - A estrutura retornada é sempre um novo dicionário
        - Chaves não presentes no override são preservadas da base
        - Nenhum input é mutado

    Args:
        base (Dict[str, Any]): Configuração de menor prioridade.
        override (Dict[str, Any]): Configuração de maior prioridade.

    Returns:
        Dict[str, Any]: Nova configuração resultante do deep-merge.

    Raises:
        InvalidRootTypeError: Se algum dos inputs não for dict.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise InvalidRootTypeError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)
    _merge_into(result, override, None, "")
    return result


def decode_record(record: ChangeRecord, codecs: CodecRegistry) -> Dict[str, Any]:
    """
    Decodifica um record em uma árvore com raiz dict.

    Payload vazio é interpretado como `{}`.

    Raises:
        MergeError: Formato sem codec, payload inválido ou raiz não-dict.
    """
    try:
        codec = codecs.get(record.format)
    except UnsupportedFormatError as e:
        raise MergeError(str(e), source=record.source) from e

    try:
        data = codec.decode(record.data)
    except MergeError as e:
        raise MergeError(str(e), source=record.source) from e.__cause__

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}",
            source=record.source,
        )
    return _normalize(data)


def merge_records(
    records: Sequence[ChangeRecord],
    *,
    codecs: Optional[CodecRegistry] = None,
    output_format: str = "json",
) -> MergeResult:
    """
    Mescla change records em ordem de prioridade (o último vence).

    Algoritmo:
        1. Decodifica cada record pelo codec do seu formato; falhas são
           excluídas e reportadas como diagnóstico `decode`
        2. Aplica o fold da esquerda para a direita com `deep_merge`
        3. Re-encoda a árvore no formato de saída, de forma canônica
        4. Calcula a version como hash dos bytes canônicos

    Args:
        records: Records em ordem de prioridade crescente.
        codecs: Registry de codecs (default: JSON + YAML).
        output_format: Formato do record mesclado.

    Returns:
        MergeResult: Record mesclado, version, árvore e diagnósticos.

    Raises:
        UnsupportedFormatError: Se `output_format` não possuir codec.
    """
    registry = codecs or default_codecs()
    output_codec = registry.get(output_format)

    tree: Dict[str, Any] = {}
    provenance: Dict[str, str] = {}
    merged_sources: List[str] = []
    diagnostics: List[SourceDiagnostic] = []

    for record in records:
        try:
            decoded = decode_record(record, registry)
        except MergeError as e:
            diagnostics.append(
                SourceDiagnostic.from_exception(source=record.source, stage=STAGE_DECODE, exc=e)
            )
            continue

        _merge_into(tree, decoded, provenance, record.source)
        merged_sources.append(record.source)

    data = output_codec.encode(tree)
    version = compute_version(data)

    return MergeResult(
        record=ChangeRecord(data=data, format=output_codec.format, source=MERGED_SOURCE),
        version=version,
        tree=tree,
        provenance=provenance,
        merged_sources=tuple(merged_sources),
        diagnostics=tuple(diagnostics),
    )
