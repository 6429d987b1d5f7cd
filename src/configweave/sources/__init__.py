# src/configweave/sources/__init__.py
"""
Fontes de referência do config-weave.

    - memory → overrides programáticos com stream de updates
    - file   → arquivo YAML/JSON observado via watchdog
    - env    → variáveis de ambiente (sem stream)

Qualquer objeto com `name` e `read()` é uma fonte válida; estas
implementações existem como ponto de partida e para testes.
"""

from .env import EnvSource
from .file import FileSource, FileStream
from .memory import MemorySource, MemoryStream

__all__ = [
    "EnvSource",
    "FileSource",
    "FileStream",
    "MemorySource",
    "MemoryStream",
]
