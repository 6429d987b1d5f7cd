# src/configweave/core/source.py
"""
Contrato canônico de fonte de configuração do config-weave.

Uma fonte é um colaborador externo capaz de produzir seu change record
corrente sob demanda e, opcionalmente, um stream preguiçoso e reiniciável
de records sempre que o meio subjacente muda.

Princípios fundamentais:
    - Fontes não conhecem o Loader, o Merger nem os Watchers
    - Cada item do stream significa "o estado desta fonte agora é X",
      nunca um diff
    - Conformidade é garantida por duck typing (@runtime_checkable)

Invariantes:
    - `name` é único entre as fontes ativas de um Loader
    - Esgotar o stream normalmente é o marcador terminal de fim de stream
    - Uma exceção no stream é transitória: o Loader reinicia o watch

Limites explícitos:
    - Não define políticas de retry ou timeout
    - Não registra eventos
"""

from __future__ import annotations

from typing import Iterator, Protocol, runtime_checkable

from .record import ChangeRecord


@runtime_checkable
class SourceWatcher(Protocol):
    """
    Stream de change records de uma fonte.

    A iteração suspende enquanto o meio não muda. `stop()` deve
    desbloquear uma iteração em andamento e encerrar o stream.
    """

    def __iter__(self) -> Iterator[ChangeRecord]:
        ...

    def stop(self) -> None:
        ...


@runtime_checkable
class Source(Protocol):
    """
    Contrato mínimo de uma fonte.

    Atributos obrigatórios:
        - name: identidade estável usada no merge e nos diagnósticos

    Raises em `read()`:
        - SourceError: falha de I/O ou de formato
    """

    name: str

    def read(self) -> ChangeRecord:
        ...


@runtime_checkable
class WatchableSource(Source, Protocol):
    """Fonte que também publica um stream de mudanças."""

    def watch(self) -> SourceWatcher:
        ...


def source_name(source: object) -> str:
    name = getattr(source, "name", None)
    if not isinstance(name, str) or not name.strip():
        raise ValueError("source.name must be a non-empty string")
    return name
