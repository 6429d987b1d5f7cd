# src/configweave/core/errors.py
"""
Exceções e diagnósticos canônicos do config-weave.

Este módulo define a hierarquia oficial de exceções utilizadas durante a
leitura de fontes, o merge de change records, a instalação de snapshots e
a entrega de notificações a watchers.

Princípios fundamentais:
    - Exceções são tipadas e semânticas
    - Falhas de uma única fonte são isoladas (fail-open)
    - Apenas a falha simultânea de todas as fontes é fatal

Componentes principais:
    - ConfigError        → base de toda a hierarquia
    - SourceError        → falha de leitura/watch de uma fonte
    - MergeError         → falha de decode de um record durante o fold
    - LoadError          → todas as fontes falharam na mesma rodada
    - SourceDiagnostic   → payload serializável de uma falha por fonte

Invariantes:
    - Todas as exceções herdam de `ConfigError`
    - Diagnósticos são imutáveis e serializáveis via `to_dict()`

Limites explícitos:
    - Não realiza logging
    - Não decide políticas de retry
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple


STAGE_READ = "read"
STAGE_DECODE = "decode"
STAGE_WATCH = "watch"


class ConfigError(Exception):
    """
    Exceção base para erros do config-weave.

    Permite captura genérica de qualquer falha do engine de agregação
    sem confundir com erros de programação (TypeError, KeyError, ...).
    """


class SourceError(ConfigError):
    """
    Falha de uma fonte ao produzir seu change record.

    Levantada por `Source.read()` em caso de erro de I/O ou de formato,
    e usada pelo Loader para encapsular qualquer exceção inesperada de
    uma fonte.

    Decisões arquiteturais:
        - O erro é isolado na rodada de merge corrente
        - A fonte é excluída do merge, as demais seguem normalmente
    """

    def __init__(self, message: str, *, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class SourceTimeoutError(SourceError):
    """Leitura de uma fonte excedeu `read_timeout`."""


class MergeError(ConfigError):
    """
    Falha ao decodificar um change record durante o fold.

    Mesma política de isolamento de `SourceError`: o record é excluído e
    o merge prossegue com as fontes restantes.
    """

    def __init__(self, message: str, *, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class InvalidRootTypeError(MergeError):
    """
    Conteúdo decodificado cuja raiz não é um mapa (`dict`).

    Exemplo:
        - payload JSON `[1, 2, 3]` ou YAML escalar `debug`

    Limites explícitos:
        - Não tenta encapsular a estrutura inválida em um dict
    """


class UnsupportedFormatError(ConfigError):
    """Formato sem codec registrado ou extensão de arquivo desconhecida."""


class LoadError(ConfigError):
    """
    Todas as fontes configuradas falharam na mesma rodada.

    É a única condição que impede a instalação de um Snapshot.
    Carrega os diagnósticos individuais em `diagnostics`.
    """

    def __init__(self, message: str, *, diagnostics: Tuple["SourceDiagnostic", ...] = ()):
        super().__init__(message)
        self.diagnostics = tuple(diagnostics)


class ClosedError(ConfigError):
    """Operação chamada após `Loader.close()`."""


class NotLoadedError(ConfigError):
    """`Loader.snapshot()` chamado antes de qualquer load bem-sucedido."""


class WatcherStoppedError(ConfigError):
    """Sinal terminal de um Watcher parado (por `stop()` ou pelo Loader)."""


class WatchTimeoutError(ConfigError):
    """`Watcher.next(timeout=...)` expirou sem entrega."""


class DuplicateSourceError(ValueError, ConfigError):
    """
    Duas fontes com o mesmo `name` na mesma chamada de `load()`.

    Decisões arquiteturais:
        - O nome é a identidade estável da fonte (merge e diagnósticos)
        - A duplicidade é rejeitada antes de qualquer leitura
    """


class InvalidOptionsError(ConfigError):
    """Opções do Loader inválidas (tipo, faixa ou chave desconhecida)."""


class ScanError(ConfigError):
    """
    Valor mesclado incompatível com o tipo alvo de `Snapshot.scan()`.

    Exemplo:
        - campo obrigatório ausente ou subárvore que não é um mapa
    """


@dataclass(frozen=True)
class SourceDiagnostic:
    """
    Diagnóstico serializável de uma falha isolada de fonte.

    Campos:
    - source: nome da fonte
    - stage: etapa onde a falha ocorreu (`read`, `decode`, `watch`)
    - type: nome estável do erro (classe da exceção)
    - message: mensagem curta e humana
    - details: dados estruturados adicionais
    """

    source: str
    stage: str
    type: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, *, source: str, stage: str, exc: BaseException) -> "SourceDiagnostic":
        details: Dict[str, Any] = {}
        cause = exc.__cause__
        if cause is not None:
            details["cause"] = cause.__class__.__name__
        return cls(
            source=source,
            stage=stage,
            type=exc.__class__.__name__,
            message=str(exc) or exc.__class__.__name__,
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
