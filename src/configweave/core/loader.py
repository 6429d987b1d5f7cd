# src/configweave/core/loader.py
"""
Loader canônico do config-weave.

O Loader é dono da lista ordenada de fontes ativas, do último record
conhecido de cada fonte, do snapshot corrente e dos Watchers vivos.

Responsabilidades do módulo:
    - Ler todas as fontes com timeout por rodada (`load`, `sync`)
    - Mesclar os records em ordem de prioridade e instalar o snapshot
    - Consumir o stream de mudanças de cada fonte (um listener por fonte)
    - Distribuir snapshots novos aos Watchers (fan-out)

Modelo de concorrência:
    - N listeners (um por fonte com `watch()`) + 1 dispatcher + chamadores
    - Listeners só enfileiram mensagens; o dispatcher aplica os updates
    - Um único merge-and-install em andamento por Loader (`_merge_lock`)
    - Snapshot corrente e conjunto de Watchers protegidos por `_state_lock`;
      o fan-out ocorre sob esse lock, na ordem das instalações

Princípios fundamentais:
    - Fail-open: falhas de uma fonte excluem apenas essa fonte da rodada
    - Apenas a falha de todas as fontes impede a instalação (`LoadError`)
    - Recarregar fontes inalteradas não muda a version nem notifica ninguém

Invariantes:
    - O conjunto de fontes ativas só muda via `load()`
    - Leitores veem nenhum snapshot ou exatamente um snapshot completo
    - `close()` encerra listeners, dispatcher e Watchers em tempo limitado

Limites explícitos:
    - Não implementa fontes concretas nem codecs
    - Não valida semântica de domínio do valor mesclado
    - Não garante entrega exactly-once
"""

from __future__ import annotations

import queue
import threading
import time
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import partial
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .codecs import CodecRegistry, default_codecs
from .errors import (
    STAGE_READ,
    ClosedError,
    DuplicateSourceError,
    LoadError,
    NotLoadedError,
    SourceDiagnostic,
    SourceError,
    SourceTimeoutError,
)
from .listener import SourceListener
from .merge import MergeResult, merge_records
from .options import LoaderOptions
from .paths import PathLike, parse_paths
from .record import ChangeRecord, LoadReport, Snapshot
from .source import Source, WatchableSource, source_name
from .watcher import Watcher
from ..log import get_logger

logger = get_logger(__name__)

_SHUTDOWN = object()

Records = Dict[str, Optional[ChangeRecord]]


class Loader:
    """
    Orquestrador de fontes, merge, snapshots e Watchers.

    Uso típico:

        loader = Loader()
        report = loader.load(defaults, env, overrides)
        with loader.watch("db") as watcher:
            for snapshot in watcher:
                ...
        loader.close()

    Args:
        options: Opções de execução (default: `LoaderOptions()`).
        codecs: Registry de codecs (default: JSON + YAML).

    Raises:
        UnsupportedFormatError: Se `options.output_format` não tiver codec.
    """

    def __init__(
        self,
        options: Optional[LoaderOptions] = None,
        *,
        codecs: Optional[CodecRegistry] = None,
    ):
        self.options = options or LoaderOptions()
        self.codecs = codecs or default_codecs()
        self.codecs.get(self.options.output_format)

        self._state_lock = threading.RLock()
        self._merge_lock = threading.Lock()

        self._sources: List[Source] = []
        self._records: Records = {}
        self._snapshot: Optional[Snapshot] = None
        self._sequence = 0
        self._last_report: Optional[LoadReport] = None

        self._watchers: Set[Watcher] = set()
        self._listeners: Dict[str, SourceListener] = {}
        self._updates: "queue.Queue[object]" = queue.Queue()
        self._dispatcher: Optional[threading.Thread] = None

        self._pool = ThreadPoolExecutor(
            max_workers=self.options.max_read_workers,
            thread_name_prefix="configweave-read",
        )
        # leitura ainda em andamento por fonte; nunca reenviada enquanto pendente
        self._inflight: Dict[str, Future] = {}
        self._inflight_lock = threading.Lock()
        self._closed = threading.Event()

    # ------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def sources(self) -> Tuple[str, ...]:
        """Nomes das fontes ativas, em ordem de prioridade crescente."""
        with self._state_lock:
            return tuple(s.name for s in self._sources)

    @property
    def last_report(self) -> Optional[LoadReport]:
        return self._last_report

    def load(self, *sources: Source) -> LoadReport:
        """
        Adiciona fontes, lê todas as fontes ativas, mescla e instala.

        Uma fonte cujo nome já está ativo substitui a anterior na mesma
        posição; nomes novos entram no fim da lista (maior prioridade).
        Se todas as fontes falharem, nada é alterado.

        Raises:
            DuplicateSourceError: Nome repetido na mesma chamada.
            LoadError: Todas as fontes ativas falharam.
            ClosedError: Loader já fechado.
        """
        self._ensure_open()
        names = [source_name(s) for s in sources]
        seen: Set[str] = set()
        for name in names:
            if name in seen:
                raise DuplicateSourceError(f"Duplicate source name: {name}")
            seen.add(name)

        with self._merge_lock:
            self._ensure_open()
            active = list(self._sources)
            for source in sources:
                index = next((i for i, s in enumerate(active) if s.name == source.name), None)
                if index is None:
                    active.append(source)
                else:
                    active[index] = source

            # streams abertos antes da leitura: nenhuma mudança posterior se perde
            prepared = self._prepare_listeners(sources)
            try:
                records, diagnostics = self._read_all(active)
                result = self._fold(active, records)
                diagnostics.extend(result.diagnostics)
                self._raise_if_all_failed(active, result, diagnostics)

                with self._state_lock:
                    self._ensure_open()
                    self._sources = active
                    self._records = records
                    installed = self._install(result)
                    self._swap_listeners(prepared)
            except BaseException:
                for listener in prepared.values():
                    if listener is not None:
                        listener.stop()
                raise

            return self._report(result, installed, diagnostics)

    def snapshot(self) -> Snapshot:
        """
        Snapshot corrente, sem reler fontes.

        Raises:
            NotLoadedError: Nenhum load bem-sucedido ainda.
            ClosedError: Loader já fechado.
        """
        self._ensure_open()
        with self._state_lock:
            snap = self._snapshot
        if snap is None:
            raise NotLoadedError("loader has no snapshot yet; call load() first")
        return snap

    def sync(self) -> LoadReport:
        """
        Relê todas as fontes e re-mescla, mesmo sem notificação.

        Instala apenas se a version mudar. Fontes que falham nesta rodada
        ficam fora do merge até voltarem a responder.

        Raises:
            NotLoadedError: `load()` nunca concluiu com sucesso.
            LoadError: Todas as fontes ativas falharam.
            ClosedError: Loader já fechado.
        """
        self._ensure_open()
        with self._merge_lock:
            self._ensure_open()
            if self._snapshot is None:
                raise NotLoadedError("loader has no snapshot yet; call load() first")

            active = list(self._sources)
            records, diagnostics = self._read_all(active)
            result = self._fold(active, records)
            diagnostics.extend(result.diagnostics)
            self._raise_if_all_failed(active, result, diagnostics)

            with self._state_lock:
                self._ensure_open()
                self._records = records
                installed = self._install(result)

            return self._report(result, installed, diagnostics)

    def watch(self, *paths: PathLike, max_pending: Optional[int] = None) -> Watcher:
        """
        Cria um Watcher restrito aos key-paths informados (ou irrestrito).

        Se já existe snapshot, ele é a primeira entrega do Watcher.

        Raises:
            ValueError: Path vazio ou inválido.
            ClosedError: Loader já fechado.
        """
        self._ensure_open()
        watcher = Watcher(
            paths=parse_paths(paths),
            max_pending=max_pending if max_pending is not None else self.options.watcher_queue_size,
            on_stop=self._discard_watcher,
        )
        with self._state_lock:
            self._ensure_open()
            self._watchers.add(watcher)
            if self._snapshot is not None:
                watcher.offer(self._snapshot)
        return watcher

    def close(self) -> None:
        """Encerra listeners, dispatcher e Watchers. Idempotente."""
        with self._state_lock:
            if self._closed.is_set():
                return
            self._closed.set()
            listeners = list(self._listeners.values())
            self._listeners.clear()
            watchers = list(self._watchers)
            self._watchers.clear()

        for listener in listeners:
            listener.stop()
        self._updates.put(_SHUTDOWN)
        for watcher in watchers:
            watcher.stop()

        threads: List[threading.Thread] = list(listeners)
        if self._dispatcher is not None:
            threads.append(self._dispatcher)
        deadline = time.monotonic() + self.options.close_timeout
        current = threading.current_thread()
        for thread in threads:
            if thread is current or not thread.is_alive():
                continue
            thread.join(max(0.0, deadline - time.monotonic()))
            if thread.is_alive():
                logger.warning("thread_join_timeout", thread=thread.name)

        self._pool.shutdown(wait=False, cancel_futures=True)
        logger.info("loader_closed", sources=len(self._sources), watchers=len(watchers))

    def __enter__(self) -> "Loader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Leitura e merge
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed.is_set():
            raise ClosedError("loader is closed")

    def _read_source(self, source: Source) -> ChangeRecord:
        name = source.name
        try:
            record = source.read()
        except SourceError:
            raise
        except Exception as e:
            raise SourceError(f"read failed: {e}", source=name) from e

        if not isinstance(record, ChangeRecord):
            raise SourceError(
                f"Source.read() must return ChangeRecord, got {type(record).__name__}",
                source=name,
            )
        if record.source != name:
            record = record.with_source(name)
        return record

    def _submit_read(self, source: Source) -> Optional[Future]:
        """
        Envia a leitura ao pool, exceto se a anterior ainda estiver pendente.

        Uma fonte travada ocupa no máximo um worker; rodadas seguintes a
        reportam como timeout sem reenviar.

        Raises:
            ClosedError: Pool encerrado por `close()`.
        """
        name = source.name
        with self._inflight_lock:
            pending = self._inflight.get(name)
            if pending is not None and not pending.done():
                return None
            try:
                future = self._pool.submit(self._read_source, source)
            except RuntimeError as e:
                raise ClosedError("loader is closed") from e
            self._inflight[name] = future
        future.add_done_callback(partial(self._clear_inflight, name))
        return future

    def _clear_inflight(self, name: str, future: Future) -> None:
        with self._inflight_lock:
            if self._inflight.get(name) is future:
                del self._inflight[name]

    def _read_all(self, sources: Sequence[Source]) -> Tuple[Records, List[SourceDiagnostic]]:
        """
        Lê as fontes em paralelo; a rodada inteira respeita `read_timeout`.

        Raises:
            ClosedError: `close()` concorrente cancelou a rodada.
        """
        timeout = self.options.read_timeout
        futures = [(s.name, self._submit_read(s)) for s in sources]
        deadline = time.monotonic() + timeout

        records: Records = {}
        diagnostics: List[SourceDiagnostic] = []
        for name, future in futures:
            error: Exception
            if future is None:
                error = SourceTimeoutError(f"previous read still pending after {timeout}s", source=name)
            else:
                try:
                    records[name] = future.result(timeout=max(0.0, deadline - time.monotonic()))
                    continue
                except FutureTimeoutError:
                    future.cancel()
                    error = SourceTimeoutError(f"read exceeded {timeout}s", source=name)
                except CancelledError as e:
                    raise ClosedError("loader is closed") from e
                except SourceError as e:
                    error = e

            records[name] = None
            diagnostics.append(SourceDiagnostic.from_exception(source=name, stage=STAGE_READ, exc=error))
            logger.warning(
                "source_read_failed",
                source=name,
                error=str(error),
                error_type=error.__class__.__name__,
            )
        return records, diagnostics

    def _fold(self, sources: Sequence[Source], records: Records) -> MergeResult:
        ordered = [records[s.name] for s in sources if records.get(s.name) is not None]
        result = merge_records(ordered, codecs=self.codecs, output_format=self.options.output_format)
        for diag in result.diagnostics:
            logger.warning("source_decode_failed", source=diag.source, error=diag.message, error_type=diag.type)
        return result

    @staticmethod
    def _raise_if_all_failed(
        sources: Sequence[Source],
        result: MergeResult,
        diagnostics: List[SourceDiagnostic],
    ) -> None:
        if sources and not result.merged_sources:
            failed = ", ".join(s.name for s in sources)
            raise LoadError(f"all sources failed: {failed}", diagnostics=tuple(diagnostics))

    def _install(self, result: MergeResult) -> bool:
        """Instala e distribui o snapshot se a version mudou. Requer `_merge_lock`."""
        with self._state_lock:
            current = self._snapshot
            if current is not None and current.version == result.version:
                logger.debug("merge_noop", version=result.version, sequence=current.sequence)
                return False

            self._sequence += 1
            snap = Snapshot(
                merged=result.record,
                version=result.version,
                sequence=self._sequence,
                _tree=result.tree,
                _provenance=result.provenance,
            )
            self._snapshot = snap
            delivered = sum(1 for w in list(self._watchers) if w.offer(snap))

        logger.info(
            "snapshot_installed",
            version=snap.version,
            sequence=snap.sequence,
            sources=list(result.merged_sources),
            delivered=delivered,
        )
        return True

    def _report(
        self,
        result: MergeResult,
        installed: bool,
        diagnostics: Iterable[SourceDiagnostic],
    ) -> LoadReport:
        with self._state_lock:
            snap = self._snapshot
        report = LoadReport(
            version=snap.version if snap is not None else result.version,
            sequence=snap.sequence if snap is not None else 0,
            installed=installed,
            succeeded=result.merged_sources,
            diagnostics=tuple(diagnostics),
        )
        self._last_report = report
        return report

    # ------------------------------------------------------------------
    # Listeners e dispatcher
    # ------------------------------------------------------------------

    def _prepare_listeners(self, sources: Sequence[Source]) -> Dict[str, Optional[SourceListener]]:
        """Cria e prepara (sem iniciar) um listener por fonte com `watch()`."""
        prepared: Dict[str, Optional[SourceListener]] = {}
        for source in sources:
            if not isinstance(source, WatchableSource):
                prepared[source.name] = None
                continue
            listener = SourceListener(
                source,
                submit=self._submit,
                resync=self._resync_source,
                options=self.options,
            )
            listener.prime()
            prepared[source.name] = listener
        return prepared

    def _swap_listeners(self, prepared: Dict[str, Optional[SourceListener]]) -> None:
        """Substitui os listeners das fontes recém-carregadas. Requer `_state_lock`."""
        for name, listener in prepared.items():
            previous = self._listeners.pop(name, None)
            if previous is not None:
                previous.stop()
            if listener is None:
                continue
            self._listeners[name] = listener
            self._ensure_dispatcher()
            listener.start()

    def _ensure_dispatcher(self) -> None:
        if self._dispatcher is None:
            self._dispatcher = threading.Thread(
                target=self._dispatch_loop,
                name="configweave-dispatcher",
                daemon=True,
            )
            self._dispatcher.start()

    def _submit(self, listener: SourceListener, record: ChangeRecord) -> None:
        if not self._closed.is_set():
            self._updates.put((listener, record))

    def _resync_source(self, listener: SourceListener) -> None:
        # releitura após reinício do stream: recupera mudanças perdidas
        if self._closed.is_set():
            return
        try:
            records, _ = self._read_all([listener.source])
        except ClosedError:
            return
        record = records.get(listener.source_name)
        if record is not None:
            self._submit(listener, record)

    def _dispatch_loop(self) -> None:
        while True:
            item = self._updates.get()
            if item is _SHUTDOWN:
                return
            listener, record = item  # type: ignore[misc]
            try:
                self._apply_update(listener, record)
            except Exception:
                logger.exception("source_update_failed", source=listener.source_name)

    def _apply_update(self, listener: SourceListener, record: object) -> None:
        with self._merge_lock:
            if self._closed.is_set():
                return
            name = listener.source_name
            with self._state_lock:
                if self._listeners.get(name) is not listener:
                    logger.debug("stale_update_dropped", source=name)
                    return

            if not isinstance(record, ChangeRecord):
                logger.warning("source_watch_invalid_item", source=name, item_type=type(record).__name__)
                return
            if record.source != name:
                record = record.with_source(name)

            previous = self._records.get(name)
            if previous is not None and previous.checksum == record.checksum and previous.format == record.format:
                logger.debug("source_update_noop", source=name, checksum=record.checksum)
                return

            records = dict(self._records)
            records[name] = record
            result = self._fold(self._sources, records)
            with self._state_lock:
                self._records = records
                if self._sources and not result.merged_sources:
                    logger.warning("merge_all_failed", source=name)
                    return
                self._install(result)

    def _discard_watcher(self, watcher: Watcher) -> None:
        with self._state_lock:
            self._watchers.discard(watcher)
