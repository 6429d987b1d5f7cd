# src/configweave/sources/memory.py
"""
Fonte em memória para overrides programáticos.

`update()` substitui o estado da fonte e publica o novo record em todos
os streams abertos por `watch()`. Útil para overrides de runtime e como
fonte de referência em testes.
"""

from __future__ import annotations

import queue
import threading
from typing import Any, Iterator, List, Optional

from ..core.codecs import CodecRegistry
from ..core.record import ChangeRecord

_STOP = object()


class MemoryStream:
    """Stream de um `MemorySource`; cada update é entregue em ordem."""

    def __init__(self, owner: "MemorySource"):
        self._owner = owner
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._stopped = threading.Event()

    def push(self, record: ChangeRecord) -> None:
        if not self._stopped.is_set():
            self._queue.put(record)

    def __iter__(self) -> Iterator[ChangeRecord]:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            yield item  # type: ignore[misc]

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        self._queue.put(_STOP)
        self._owner._detach(self)


class MemorySource:
    """
    Fonte cujo estado vive em memória.

    Args:
        name: Identidade da fonte.
        value: Estado inicial (árvore estrutural ou bytes já codificados).
        format: Formato usado para codificar/rotular o payload.
        codecs: Registry usado para codificar árvores.
    """

    def __init__(
        self,
        name: str = "memory",
        value: Any = None,
        *,
        format: str = "json",
        codecs: Optional[CodecRegistry] = None,
    ):
        self.name = name
        self.format = format
        self._codecs = codecs
        self._lock = threading.Lock()
        self._streams: List[MemoryStream] = []
        self._record = self._to_record({} if value is None else value)

    def _to_record(self, value: Any) -> ChangeRecord:
        if isinstance(value, (bytes, bytearray)):
            return ChangeRecord(data=bytes(value), format=self.format, source=self.name)
        return ChangeRecord.from_value(value, source=self.name, format=self.format, codecs=self._codecs)

    def read(self) -> ChangeRecord:
        with self._lock:
            return self._record

    def update(self, value: Any) -> ChangeRecord:
        """Substitui o estado e notifica os streams abertos."""
        record = self._to_record(value)
        with self._lock:
            self._record = record
            for stream in self._streams:
                stream.push(record)
        return record

    def watch(self) -> MemoryStream:
        stream = MemoryStream(self)
        with self._lock:
            self._streams.append(stream)
        return stream

    def _detach(self, stream: MemoryStream) -> None:
        with self._lock:
            if stream in self._streams:
                self._streams.remove(stream)

    def __repr__(self) -> str:
        return f"MemorySource(name={self.name!r}, format={self.format!r})"
