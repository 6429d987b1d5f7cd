# src/configweave/core/watcher.py
"""
Watcher: handle de assinatura de snapshots por consumidor.

Cada Watcher possui sua própria fila limitada de entrega, seu filtro de
key-paths e seu cursor (digest da última porção filtrada enfileirada).
O Loader oferece cada snapshot instalado a todos os Watchers vivos; o
Watcher decide localmente se a oferta qualifica.

Máquina de estados:
    created → delivering → stopped

Decisões arquiteturais:
    - Oferta nunca bloqueia o produtor
    - Estouro da fila descarta o snapshot pendente mais antigo; como cada
      snapshot é estado completo, o mais novo já é um resync exato
    - `stop()` é seguro em concorrência com `next()` e o desbloqueia

Invariantes:
    - Nenhum Watcher bloqueia ou é bloqueado por outro Watcher
    - Após parado, `next()` sempre levanta `WatcherStoppedError`
    - Erros de merge nunca chegam ao consumidor
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import TYPE_CHECKING, Callable, Deque, Iterator, Optional, Sequence

from .errors import WatcherStoppedError, WatchTimeoutError
from .paths import KeyPath, filtered_digest, format_path
from .record import Snapshot

if TYPE_CHECKING:  # pragma: no cover
    from .loader import Loader


class Watcher:
    """
    Entrega sequencial de snapshots a um consumidor.

    Criado exclusivamente por `Loader.watch(*paths)`. Pode ser usado como
    iterador (termina quando parado) e como context manager (para ao sair).
    """

    def __init__(
        self,
        *,
        paths: Sequence[KeyPath] = (),
        max_pending: int = 16,
        on_stop: Optional[Callable[["Watcher"], None]] = None,
    ):
        if max_pending < 1:
            raise ValueError("max_pending must be >= 1")
        self._paths = tuple(paths)
        self._max_pending = max_pending
        self._on_stop = on_stop

        self._cond = threading.Condition()
        self._pending: Deque[Snapshot] = deque()
        self._cursor: Optional[str] = None
        self._stopped = False
        self._dropped = 0

    @property
    def paths(self) -> tuple:
        return tuple(format_path(p) for p in self._paths)

    @property
    def stopped(self) -> bool:
        with self._cond:
            return self._stopped

    @property
    def dropped(self) -> int:
        """Snapshots descartados por estouro da fila."""
        with self._cond:
            return self._dropped

    def _digest(self, snapshot: Snapshot) -> str:
        if not self._paths:
            return snapshot.version
        return filtered_digest(snapshot._tree, self._paths)

    def offer(self, snapshot: Snapshot) -> bool:
        """
        Enfileira o snapshot se a porção filtrada mudou.

        Chamado pelo Loader durante o fan-out. Retorna se o snapshot foi
        enfileirado.
        """
        digest = self._digest(snapshot)
        with self._cond:
            if self._stopped or digest == self._cursor:
                return False
            self._cursor = digest
            if len(self._pending) >= self._max_pending:
                self._pending.popleft()
                self._dropped += 1
            self._pending.append(snapshot)
            self._cond.notify_all()
            return True

    def next(self, timeout: Optional[float] = None) -> Snapshot:
        """
        Bloqueia até o próximo snapshot qualificado.

        Raises:
            WatcherStoppedError: Watcher ou Loader parado.
            WatchTimeoutError: `timeout` expirou sem entrega.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                if self._stopped:
                    raise WatcherStoppedError("watcher stopped")
                if self._pending:
                    return self._pending.popleft()
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise WatchTimeoutError(f"no snapshot within {timeout}s")
                self._cond.wait(remaining)

    def stop(self) -> None:
        with self._cond:
            if self._stopped:
                return
            self._stopped = True
            self._pending.clear()
            self._cond.notify_all()

        if self._on_stop is not None:
            self._on_stop(self)

    def __iter__(self) -> Iterator[Snapshot]:
        while True:
            try:
                yield self.next()
            except WatcherStoppedError:
                return

    def __enter__(self) -> "Watcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def __repr__(self) -> str:
        state = "stopped" if self.stopped else "delivering"
        return f"Watcher(paths={list(self.paths)!r}, state={state})"
