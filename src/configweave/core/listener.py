# src/configweave/core/listener.py
"""
Listener por fonte: consome o stream de mudanças de uma fonte em uma
thread dedicada e entrega cada record ao Loader por handoff de mensagem.

O listener nunca toca o estado do Loader diretamente: apenas chama o
callback `submit(listener, record)`, que enfileira para o dispatcher.
"""

from __future__ import annotations

import random
import threading
from typing import Callable, Optional

from .errors import SourceError
from .options import LoaderOptions
from .record import ChangeRecord
from .source import SourceWatcher, WatchableSource
from ..log import get_logger

logger = get_logger(__name__)


def jittered_backoff(attempt: int, base: float, max_delay: float) -> float:
    """Backoff exponencial com full jitter (attempt começa em 0)."""
    exp = min(max_delay, base * (2 ** attempt))
    return random.uniform(0, exp)


class SourceListener(threading.Thread):
    """
    Thread que itera o stream de uma fonte até ser parada.

    Política:
        - item recebido → `submit(self, record)`
        - stream esgotado → fim de stream terminal, a thread encerra
        - exceção no stream → reinício com backoff e releitura da fonte,
          até `max_restarts` falhas consecutivas
    """

    def __init__(
        self,
        source: WatchableSource,
        *,
        submit: Callable[["SourceListener", ChangeRecord], None],
        resync: Callable[["SourceListener"], None],
        options: LoaderOptions,
    ):
        super().__init__(name=f"configweave-listener-{source.name}", daemon=True)
        self.source = source
        self._submit = submit
        self._resync = resync
        self._options = options
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._stream: Optional[SourceWatcher] = None
        self._primed: Optional[SourceWatcher] = None

    @property
    def source_name(self) -> str:
        return self.source.name

    def stop(self) -> None:
        self._stop_event.set()
        with self._lock:
            stream = self._stream
        if stream is not None:
            self._close_stream(stream)

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def prime(self) -> None:
        """
        Abre o stream na thread chamadora, antes da leitura inicial.

        Mudanças ocorridas entre o `read()` do load e o início da thread
        ficam retidas no stream em vez de se perderem.
        """
        try:
            self._primed = self._open_stream()
        except Exception as e:
            # a thread tenta abrir de novo ao iniciar
            logger.warning("source_watch_failed", source=self.source_name, error=str(e), attempt=0)
            self._primed = None

    def _open_stream(self) -> Optional[SourceWatcher]:
        stream = self.source.watch()
        with self._lock:
            self._stream = stream
        # stop() pode ter rodado antes do stream existir
        if self._stop_event.is_set():
            stream.stop()
            return None
        return stream

    def run(self) -> None:
        failures = 0
        restarted = False
        while not self._stop_event.is_set():
            stream = None
            try:
                stream, self._primed = self._primed, None
                if stream is None:
                    stream = self._open_stream()
                if stream is None:
                    break
                if restarted:
                    self._resync(self)
                for record in stream:
                    if self._stop_event.is_set():
                        break
                    failures = 0
                    self._submit(self, record)
                else:
                    if not self._stop_event.is_set():
                        logger.info("source_watch_ended", source=self.source_name)
                break
            except Exception as e:
                if self._stop_event.is_set():
                    break
                failures += 1
                level = "warning" if isinstance(e, SourceError) else "error"
                getattr(logger, level)(
                    "source_watch_failed",
                    source=self.source_name,
                    error=str(e),
                    error_type=e.__class__.__name__,
                    attempt=failures,
                )
                limit = self._options.max_restarts
                if limit is not None and failures > limit:
                    logger.error("source_watch_abandoned", source=self.source_name, attempts=failures)
                    break
                delay = jittered_backoff(
                    failures - 1,
                    self._options.restart_backoff_base,
                    self._options.restart_backoff_max,
                )
                if self._stop_event.wait(delay):
                    break
                restarted = True
            finally:
                with self._lock:
                    self._stream = None
                if stream is not None:
                    self._close_stream(stream)

    def _close_stream(self, stream: SourceWatcher) -> None:
        try:
            stream.stop()
        except Exception:
            logger.warning("source_watch_stop_failed", source=self.source_name, exc_info=True)
