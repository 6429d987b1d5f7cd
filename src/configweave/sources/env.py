# src/configweave/sources/env.py
"""
Fonte de variáveis de ambiente.

Underscores delimitam aninhamento e as chaves são convertidas para
minúsculas:

    DATABASE_SERVER_HOST=localhost
    →  {"database": {"server": {"host": "localhost"}}}

Valores inteiros e booleanos são convertidos; o resto permanece string.
Com `prefixes`, apenas variáveis com um dos prefixos são consideradas;
com `strip_prefixes`, o prefixo também é removido da chave.

A fonte não possui stream de mudanças: o ambiente do processo é relido
apenas em `load()` e `sync()`.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional, Sequence

from ..core.merge import deep_merge
from ..core.record import ChangeRecord

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def parse_value(raw: str) -> Any:
    """Inteiro, depois booleano; qualquer outro valor permanece string."""
    try:
        return int(raw)
    except ValueError:
        pass
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    return raw


def _match_prefix(prefixes: Sequence[str], key: str) -> Optional[str]:
    for prefix in prefixes:
        if key.startswith(prefix):
            return prefix
    return None


class EnvSource:
    """
    Args:
        name: Identidade da fonte.
        prefixes: Prefixos aceitos (mantidos na chave).
        strip_prefixes: Prefixos aceitos e removidos da chave.
        environ: Mapeamento alternativo a `os.environ` (testes, sandbox).
    """

    def __init__(
        self,
        name: str = "env",
        *,
        prefixes: Sequence[str] = (),
        strip_prefixes: Sequence[str] = (),
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.name = name
        self.prefixes = tuple(prefixes)
        self.strip_prefixes = tuple(strip_prefixes)
        self._environ = environ

    def _select(self, key: str) -> Optional[str]:
        if not self.prefixes and not self.strip_prefixes:
            return key
        selected = None
        if _match_prefix(self.prefixes, key) is not None:
            selected = key
        stripped = _match_prefix(self.strip_prefixes, key)
        if stripped is not None:
            selected = key[len(stripped):]
        return selected

    def values(self) -> Dict[str, Any]:
        environ = os.environ if self._environ is None else self._environ
        changes: Dict[str, Any] = {}
        for key in sorted(environ):
            selected = self._select(key)
            if selected is None:
                continue
            segments = [s for s in selected.lower().split("_") if s]
            if not segments:
                continue

            node: Any = parse_value(environ[key])
            for segment in reversed(segments):
                node = {segment: node}
            changes = deep_merge(changes, node)
        return changes

    def read(self) -> ChangeRecord:
        return ChangeRecord.from_value(self.values(), source=self.name, format="json")

    def __repr__(self) -> str:
        return f"EnvSource(name={self.name!r}, prefixes={list(self.prefixes)!r})"
