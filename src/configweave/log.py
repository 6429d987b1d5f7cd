# src/configweave/log.py
"""
Logging estruturado do config-weave.

Eventos são nomes curtos em snake_case com contexto chave/valor
(`source=`, `version=`, `sequence=`), emitidos via structlog sobre o
logging da stdlib. A configuração é opt-in: a aplicação que embute o
engine decide renderer e nível.
"""

from __future__ import annotations

import logging
import sys

import structlog


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def configure_logging(level: str = "INFO", *, json: bool = False) -> None:
    """
    Instala a cadeia de processors do structlog.

    Args:
        level: Nível mínimo (nome da stdlib, ex.: "DEBUG").
        json: Renderiza JSON em vez do console colorido.

    Raises:
        ValueError: Se o nível não existir.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Nível de log desconhecido: {level}")

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric)
    logging.getLogger("configweave").setLevel(numeric)
