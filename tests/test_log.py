# tests/test_log.py
"""
Testes da configuração de logging estruturado.
"""

import io
import json
import logging

import pytest
import structlog

from configweave.log import configure_logging, get_logger


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
    logging.getLogger("configweave").setLevel(logging.NOTSET)


def test_configure_logging_json_renders_events():
    """
    Com `json=True`, cada evento vira uma linha JSON com nome do evento,
    nível, logger e o contexto chave/valor.
    """
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(message)s"))
    std_logger = logging.getLogger("configweave.test")
    std_logger.addHandler(handler)
    try:
        configure_logging("INFO", json=True)
        get_logger("configweave.test").info("snapshot_installed", version="abc", sequence=1)
    finally:
        std_logger.removeHandler(handler)

    event = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert event["event"] == "snapshot_installed"
    assert event["version"] == "abc"
    assert event["sequence"] == 1
    assert event["level"] == "info"
    assert event["logger"] == "configweave.test"
    assert "timestamp" in event


def test_configure_logging_filters_by_level():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    std_logger = logging.getLogger("configweave.quiet")
    std_logger.addHandler(handler)
    try:
        configure_logging("WARNING", json=True)
        get_logger("configweave.quiet").info("merge_noop")
    finally:
        std_logger.removeHandler(handler)

    assert stream.getvalue() == ""


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        configure_logging("LOUD")
