# src/configweave/__init__.py
"""
config-weave: agregação determinística e observável de configuração.

Este pacote raiz define o namespace público do config-weave, um engine
que combina configuração de várias fontes independentes (arquivos,
ambiente, overrides em memória, stores remotos) em uma única visão
versionada e notifica consumidores quando qualquer fonte muda.

Arquitetura em alto nível:
    - core     → change records, merge, Loader e Watchers
    - sources  → fontes de referência (memória, arquivo, ambiente)
    - log      → logging estruturado (structlog)

Limites explícitos:
    - Não implementa consenso distribuído nem resolução de conflitos
      de escrita entre réplicas
    - Não valida schema de negócio do valor mesclado
    - Não garante entrega exactly-once (at-least-once + re-merge idempotente)
"""

from .core import (
    ChangeRecord,
    ClosedError,
    ConfigError,
    LoadError,
    LoadReport,
    Loader,
    LoaderOptions,
    MergeError,
    NotLoadedError,
    Snapshot,
    Source,
    SourceError,
    Watcher,
    WatcherStoppedError,
    merge_records,
)
from .log import configure_logging

__all__ = [
    "ChangeRecord",
    "ClosedError",
    "ConfigError",
    "LoadError",
    "LoadReport",
    "Loader",
    "LoaderOptions",
    "MergeError",
    "NotLoadedError",
    "Snapshot",
    "Source",
    "SourceError",
    "Watcher",
    "WatcherStoppedError",
    "configure_logging",
    "merge_records",
]
