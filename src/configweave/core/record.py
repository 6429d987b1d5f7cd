# src/configweave/core/record.py
"""
Tipos canônicos do config-weave.

Este módulo define as estruturas imutáveis trocadas entre fontes, Merger,
Loader e Watchers.

Componentes principais:
    - ChangeRecord → estado corrente de uma fonte (bytes + formato + checksum)
    - Snapshot     → estado mesclado e versionado de todas as fontes ativas
    - LoadReport   → resultado por fonte de um `load()` ou `sync()`

Princípios fundamentais:
    - Tipos são imutáveis (frozen) e seguros para compartilhar entre threads
    - Um ChangeRecord é substituído, nunca mutado
    - Um Snapshot entregue continua válido após a instalação do próximo

Invariantes:
    - `ChangeRecord.checksum` é sempre o SHA-256 de `data`
    - Snapshots com o mesmo conteúdo mesclado possuem a mesma `version`
    - Leituras de valores de um Snapshot devolvem cópias (copy-on-read)

Limites explícitos:
    - Não lê fontes
    - Não executa merge
    - Não decide políticas de entrega
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Type, TypeVar, get_type_hints

from .codecs import CodecRegistry, default_codecs
from .errors import ScanError, SourceDiagnostic
from .hashing import compute_checksum
from .paths import PathLike, format_path, lookup, parse_path


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ChangeRecord:
    """
    Menor unidade de estado de uma fonte.

    Campos:
        - data: payload codificado (opaco para o engine)
        - format: tag do codec que sabe decodificar `data`
        - source: nome da fonte de origem
        - checksum: SHA-256 de `data` (calculado quando omitido)
        - timestamp: instante UTC de criação (fora da igualdade)

    Decisões arquiteturais:
        - Dois records com os mesmos bytes, formato e fonte são iguais,
          independente do instante de criação
        - Um checksum informado que não confere com `data` é rejeitado
    """

    data: bytes
    format: str
    source: str = ""
    checksum: str = ""
    timestamp: datetime = field(default_factory=_utcnow, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.data, bytearray):
            object.__setattr__(self, "data", bytes(self.data))
        if not isinstance(self.data, bytes):
            raise TypeError(f"ChangeRecord.data deve ser bytes, recebido: {type(self.data).__name__}")

        actual = compute_checksum(self.data)
        if not self.checksum:
            object.__setattr__(self, "checksum", actual)
        elif self.checksum != actual:
            raise ValueError(f"Checksum não confere para a fonte {self.source!r}")

    @classmethod
    def from_value(
        cls,
        value: Any,
        *,
        source: str,
        format: str = "json",
        codecs: Optional[CodecRegistry] = None,
    ) -> "ChangeRecord":
        """Codifica uma árvore estrutural no formato pedido e cria o record."""
        registry = codecs or default_codecs()
        data = registry.get(format).encode(value)
        return cls(data=data, format=format, source=source)

    def with_source(self, source: str) -> "ChangeRecord":
        return ChangeRecord(
            data=self.data,
            format=self.format,
            source=source,
            checksum=self.checksum,
            timestamp=self.timestamp,
        )


T = TypeVar("T")

_MISSING = object()


def _build(target: Any, value: Any, where: str) -> Any:
    # dataclasses aninhadas são construídas recursivamente; o resto é copiado
    if not (isinstance(target, type) and is_dataclass(target)):
        return value
    if not isinstance(value, dict):
        raise ScanError(
            f"{where or '<raiz>'}: esperado mapa para {target.__name__}, "
            f"recebido {type(value).__name__}"
        )

    try:
        hints = get_type_hints(target)
    except (NameError, TypeError):
        hints = {}

    kwargs: Dict[str, Any] = {}
    for f in fields(target):
        if not f.init or f.name not in value:
            continue
        child = f"{where}.{f.name}" if where else f.name
        kwargs[f.name] = _build(hints.get(f.name, f.type), value[f.name], child)

    try:
        return target(**kwargs)
    except TypeError as e:
        raise ScanError(f"{where or '<raiz>'}: {e}") from e


@dataclass(frozen=True)
class Snapshot:
    """
    Estado mesclado e versionado de todas as fontes ativas.

    Campos:
        - merged: ChangeRecord canônico resultante do merge
        - version: hash de conteúdo de `merged.data`
        - sequence: número de instalação, crescente por Loader

    A árvore decodificada e a proveniência são mantidas internamente e só
    são expostas por cópia (`values()`, `get()`, `origin()`).
    """

    merged: ChangeRecord
    version: str
    sequence: int = 0
    _tree: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    _provenance: Dict[str, str] = field(default_factory=dict, repr=False, compare=False)

    def values(self) -> Dict[str, Any]:
        return deepcopy(self._tree)

    def get(self, path: PathLike, default: Any = None) -> Any:
        found, value = lookup(self._tree, parse_path(path))
        if not found:
            return default
        return deepcopy(value)

    def origin(self, path: PathLike) -> Optional[str]:
        """Nome da fonte que escreveu o valor folha em `path`, se houver."""
        return self._provenance.get(format_path(parse_path(path)))

    def scan(self, target: Type[T], path: Optional[PathLike] = None) -> T:
        """
        Constrói uma dataclass a partir do valor mesclado.

        Campos são preenchidos por nome; chaves sem campo correspondente são
        ignoradas e campos ausentes usam o default da dataclass. Campos cujo
        tipo é outra dataclass são construídos recursivamente.

        Args:
            target: Classe dataclass alvo.
            path: Subárvore a usar (default: a raiz).

        Raises:
            TypeError: Se `target` não for uma classe dataclass.
            ScanError: Path ausente, subárvore que não é mapa ou campo
                obrigatório faltando.
        """
        if not (isinstance(target, type) and is_dataclass(target)):
            raise TypeError(f"scan requer uma classe dataclass, recebido: {target!r}")

        if path is None:
            value, where = self.values(), ""
        else:
            where = format_path(parse_path(path))
            value = self.get(path, _MISSING)
            if value is _MISSING:
                raise ScanError(f"{where}: path ausente no snapshot")
        return _build(target, value, where)

    @property
    def data(self) -> bytes:
        return self.merged.data


@dataclass(frozen=True)
class LoadReport:
    """
    Resultado de uma rodada de leitura + merge (`load()` ou `sync()`).

    Campos:
        - version: version do snapshot corrente após a rodada
        - sequence: sequence do snapshot corrente após a rodada
        - installed: se a rodada instalou um novo snapshot
        - succeeded: fontes lidas e decodificadas com sucesso, em ordem
        - diagnostics: falhas isoladas por fonte (não fatais)
    """

    version: str
    sequence: int
    installed: bool
    succeeded: Tuple[str, ...] = ()
    diagnostics: Tuple[SourceDiagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    @property
    def failed(self) -> Tuple[str, ...]:
        seen = []
        for diag in self.diagnostics:
            if diag.source not in seen:
                seen.append(diag.source)
        return tuple(seen)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "sequence": self.sequence,
            "installed": self.installed,
            "succeeded": list(self.succeeded),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
