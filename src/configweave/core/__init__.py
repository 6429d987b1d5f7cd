# src/configweave/core/__init__.py
"""
Core do config-weave.

Este pacote reúne o engine de agregação: change records, merge
determinístico e versionado, Loader com cache do snapshot corrente e
Watchers com entrega filtrada por key-path.

Componentes principais:
    - record   → ChangeRecord, Snapshot, LoadReport
    - codecs   → codecs plugáveis (JSON, YAML) e registry
    - merge    → deep-merge e merge de records em ordem de prioridade
    - source   → contrato de fonte (Protocol)
    - loader   → orquestração de fontes, merge, instalação e fan-out
    - watcher  → assinatura de snapshots por consumidor

Limites explícitos:
    - Não contém backends concretos (ver `configweave.sources`)
    - Não valida semântica de domínio
"""

from .codecs import Codec, CodecRegistry, JsonCodec, YamlCodec, default_codecs
from .errors import (
    ClosedError,
    ConfigError,
    DuplicateSourceError,
    InvalidOptionsError,
    InvalidRootTypeError,
    LoadError,
    MergeError,
    NotLoadedError,
    ScanError,
    SourceDiagnostic,
    SourceError,
    SourceTimeoutError,
    UnsupportedFormatError,
    WatcherStoppedError,
    WatchTimeoutError,
)
from .hashing import compute_checksum, compute_version
from .loader import Loader
from .merge import MergeResult, deep_merge, merge_records
from .options import LoaderOptions, load_options
from .record import ChangeRecord, LoadReport, Snapshot
from .source import Source, SourceWatcher, WatchableSource
from .watcher import Watcher

__all__ = [
    "ChangeRecord",
    "ClosedError",
    "Codec",
    "CodecRegistry",
    "ConfigError",
    "DuplicateSourceError",
    "InvalidOptionsError",
    "InvalidRootTypeError",
    "JsonCodec",
    "LoadError",
    "LoadReport",
    "Loader",
    "LoaderOptions",
    "MergeError",
    "MergeResult",
    "NotLoadedError",
    "ScanError",
    "Snapshot",
    "Source",
    "SourceDiagnostic",
    "SourceError",
    "SourceTimeoutError",
    "SourceWatcher",
    "UnsupportedFormatError",
    "WatchableSource",
    "WatchTimeoutError",
    "Watcher",
    "WatcherStoppedError",
    "YamlCodec",
    "compute_checksum",
    "compute_version",
    "deep_merge",
    "default_codecs",
    "load_options",
    "merge_records",
]
