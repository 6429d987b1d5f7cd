# src/configweave/sources/file.py
"""
Fonte de arquivo YAML/JSON.

O formato é inferido pela extensão quando não informado:
    - YAML (.yaml, .yml)
    - JSON (.json)

`watch()` observa o diretório pai com watchdog e emite um novo record
sempre que o checksum do arquivo muda (escritas que não alteram o
conteúdo não geram itens).
"""

from __future__ import annotations

import os
import queue
from pathlib import Path
from typing import Iterator, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..core.errors import SourceError, UnsupportedFormatError
from ..core.record import ChangeRecord

_STOP = object()
_CHANGED = object()

SUFFIX_FORMATS = {
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
}


def format_for_path(path: Path) -> str:
    suffix = path.suffix.lower()
    try:
        return SUFFIX_FORMATS[suffix]
    except KeyError:
        raise UnsupportedFormatError(f"Formato não suportado: {path.suffix}") from None


class _TargetHandler(FileSystemEventHandler):
    def __init__(self, target: Path, notify):
        super().__init__()
        self._target = target
        self._notify = notify

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        candidates = [event.src_path, getattr(event, "dest_path", "")]
        for raw in candidates:
            if raw and Path(os.fsdecode(raw)).resolve() == self._target:
                self._notify(_CHANGED)
                return


class FileStream:
    """Stream de mudanças de um `FileSource`, baseado em watchdog."""

    def __init__(self, source: "FileSource", *, join_timeout: float = 1.0):
        self._source = source
        self._join_timeout = join_timeout
        self._events: "queue.Queue[object]" = queue.Queue()
        self._last: Optional[str] = None
        try:
            self._last = source.read().checksum
        except SourceError:
            self._last = None

        target = source.path.resolve()
        self._observer = Observer()
        self._observer.schedule(_TargetHandler(target, self._events.put), str(target.parent), recursive=False)
        self._observer.start()

    def __iter__(self) -> Iterator[ChangeRecord]:
        while True:
            item = self._events.get()
            if item is _STOP:
                return
            # coalesce rajadas de eventos da mesma escrita
            while True:
                try:
                    extra = self._events.get_nowait()
                except queue.Empty:
                    break
                if extra is _STOP:
                    return

            try:
                record = self._source.read()
            except SourceError:
                # arquivo removido ou em escrita; o próximo evento reavalia
                continue
            if record.checksum != self._last:
                self._last = record.checksum
                yield record

    def stop(self) -> None:
        if not self._observer.is_alive():
            self._events.put(_STOP)
            return
        self._observer.stop()
        self._events.put(_STOP)
        self._observer.join(self._join_timeout)


class FileSource:
    """
    Fonte baseada em um arquivo do filesystem.

    Args:
        path: Caminho do arquivo.
        name: Identidade da fonte (default: `file:<path>`).
        format: Formato explícito; inferido pela extensão quando omitido.

    Raises:
        UnsupportedFormatError: Extensão desconhecida sem `format` explícito.
    """

    def __init__(self, path: Union[str, Path], *, name: Optional[str] = None, format: Optional[str] = None):
        self.path = Path(path)
        self.name = name or f"file:{self.path}"
        self.format = format or format_for_path(self.path)

    def read(self) -> ChangeRecord:
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise SourceError(f"Falha ao ler {self.path}: {e}", source=self.name) from e
        return ChangeRecord(data=data, format=self.format, source=self.name)

    def watch(self) -> FileStream:
        return FileStream(self)

    def __repr__(self) -> str:
        return f"FileSource(path={str(self.path)!r}, format={self.format!r})"
