# tests/sources/test_memory.py
"""
Testes da fonte em memória (MemorySource).

Os testes asseguram que:
- o estado inicial é lido como um record do formato configurado
- `update()` substitui o estado e publica em todos os streams abertos
- streams parados deixam de receber updates
"""

import threading

from configweave.core import ChangeRecord, Source, WatchableSource
from configweave.sources import MemorySource


def test_memory_source_satisfies_protocols():
    src = MemorySource("m")
    assert isinstance(src, Source)
    assert isinstance(src, WatchableSource)


def test_read_initial_value():
    src = MemorySource("m", {"a": 1})
    record = src.read()
    assert isinstance(record, ChangeRecord)
    assert record.source == "m"
    assert record.format == "json"
    assert record.data == b'{"a":1}'


def test_default_value_is_empty_map():
    assert MemorySource("m").read().data == b"{}"


def test_raw_bytes_are_kept():
    src = MemorySource("m", b"a: 1\n", format="yaml")
    record = src.read()
    assert record.data == b"a: 1\n"
    assert record.format == "yaml"


def test_update_publishes_to_open_streams():
    src = MemorySource("m", {"a": 1})
    first = src.watch()
    second = src.watch()

    record = src.update({"a": 2})

    assert src.read() == record
    for stream in (first, second):
        it = iter(stream)
        assert next(it) == record
        stream.stop()


def test_stopped_stream_ends_iteration_and_detaches():
    src = MemorySource("m")
    stream = src.watch()
    received = []

    def consume():
        for record in stream:
            received.append(record)

    thread = threading.Thread(target=consume)
    thread.start()
    src.update({"a": 1})
    stream.stop()
    stream.stop()
    thread.join(2.0)

    assert not thread.is_alive()
    assert len(received) <= 1
    src.update({"a": 2})
    assert len(received) <= 1


def test_updates_are_delivered_in_order():
    src = MemorySource("m")
    stream = src.watch()
    for i in range(5):
        src.update({"n": i})
    stream.stop()

    values = [r.data for r in stream]
    assert values == [ChangeRecord.from_value({"n": i}, source="m").data for i in range(5)]
