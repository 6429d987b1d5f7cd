# src/configweave/core/options.py
"""
Opções de execução do Loader.

As opções controlam timeouts, tamanho das filas de entrega, formato de
saída do merge e a política de reinício dos streams de fontes. Podem ser
construídas diretamente, a partir de um dict, ou de um arquivo YAML/JSON.

Formatos de arquivo suportados (v1):
    - YAML (.yaml, .yml)
    - JSON (.json)

Invariantes:
    - Opções são imutáveis e validadas na construção
    - Chaves desconhecidas são rejeitadas, nunca ignoradas
    - Arquivo vazio produz as opções default
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml  # PyYAML

from .errors import InvalidOptionsError, InvalidRootTypeError, UnsupportedFormatError


@dataclass(frozen=True)
class LoaderOptions:
    """
    Opções imutáveis do Loader.

    Campos:
        - read_timeout: limite (s) de cada rodada de `read()` das fontes
        - watcher_queue_size: capacidade da fila de entrega por Watcher
        - output_format: codec do record mesclado
        - restart_backoff_base / restart_backoff_max: backoff (s) para
          reiniciar o stream de uma fonte após falha
        - max_restarts: limite de reinícios consecutivos (None = sem limite)
        - close_timeout: limite (s) para encerrar threads em `close()`
        - max_read_workers: threads do pool de leitura
    """

    read_timeout: float = 5.0
    watcher_queue_size: int = 16
    output_format: str = "json"
    restart_backoff_base: float = 0.5
    restart_backoff_max: float = 30.0
    max_restarts: Optional[int] = None
    close_timeout: float = 2.0
    max_read_workers: int = 8

    def __post_init__(self) -> None:
        for name in ("read_timeout", "restart_backoff_base", "restart_backoff_max", "close_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise InvalidOptionsError(f"{name} deve ser número positivo, recebido: {value!r}")

        for name in ("watcher_queue_size", "max_read_workers"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidOptionsError(f"{name} deve ser inteiro >= 1, recebido: {value!r}")

        if self.max_restarts is not None and (
            isinstance(self.max_restarts, bool)
            or not isinstance(self.max_restarts, int)
            or self.max_restarts < 0
        ):
            raise InvalidOptionsError(f"max_restarts deve ser inteiro >= 0 ou None, recebido: {self.max_restarts!r}")

        if not isinstance(self.output_format, str) or not self.output_format.strip():
            raise InvalidOptionsError("output_format deve ser string não vazia")

        if self.restart_backoff_max < self.restart_backoff_base:
            raise InvalidOptionsError("restart_backoff_max deve ser >= restart_backoff_base")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LoaderOptions":
        if not isinstance(data, Mapping):
            raise InvalidRootTypeError(f"Opções devem ser dict, recebido: {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidOptionsError(f"Opções desconhecidas: {unknown}")
        return cls(**dict(data))


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Arquivo de opções não encontrado: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedFormatError(f"Formato não suportado: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidRootTypeError(
            f"Root do arquivo de opções deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def load_options(path: Union[str, Path], *, section: Optional[str] = "loader") -> LoaderOptions:
    """
    Carrega `LoaderOptions` de um arquivo YAML ou JSON.

    Quando `section` está presente como chave de topo (default `loader`),
    apenas aquele bloco é usado; caso contrário o arquivo inteiro é
    interpretado como as opções.

    Raises:
        FileNotFoundError: Se o arquivo não existir.
        UnsupportedFormatError: Se a extensão não for suportada.
        InvalidRootTypeError: Se o conteúdo não for um dict.
        InvalidOptionsError: Se alguma opção for inválida ou desconhecida.
    """
    data = _load_file(Path(path))
    if section is not None and section in data:
        data = data[section] or {}
    return LoaderOptions.from_mapping(data)
