# tests/conftest.py
"""
Fixtures compartilhados para testes do config-weave.

Este módulo define fixtures reutilizáveis que fornecem:
- payloads YAML determinísticos (defaults + override local)
- fábrica de fontes em memória
- fontes duck-typed com comportamento controlado (lenta, falha, flaky)
- Loader com timeouts curtos, sempre fechado no teardown

Decisões arquiteturais:
    - Fontes de teste utilizam duck typing em vez de herança
    - Timeouts são curtos para manter a suíte rápida e limitada
    - Imports do pacote são realizados de forma lazy para melhorar
      a clareza de erros durante falhas

Invariantes:
    - Todo Loader criado por fixture é fechado ao fim do teste
    - Nenhuma fixture depende de variáveis de ambiente reais

Limites explícitos:
    - Não substituir testes de integração com arquivos reais
    - Não conter lógica condicional complexa
"""

import threading

import pytest


@pytest.fixture
def defaults_yaml() -> str:
    """
    YAML de configuração base semelhante ao uso real.

    Returns:
        str: Conteúdo YAML de defaults.
    """
    return """\
db:
  host: localhost
  port: 5432
  replicas: [a, b]
cache:
  ttl: 60
log_level: INFO
"""


@pytest.fixture
def local_yaml() -> str:
    """YAML de override local (maior prioridade que os defaults)."""
    return """\
db:
  host: db.internal
  replicas: [c]
log_level: DEBUG
"""


@pytest.fixture
def memory_source():
    """
    Fixture factory de `MemorySource`.

    Returns:
        Callable: `make(name, value=None, format="json")`.
    """
    from configweave.sources import MemorySource

    def make(name, value=None, format="json"):
        return MemorySource(name, value, format=format)

    return make


@pytest.fixture
def loader_options():
    """Opções com timeouts e backoff curtos para testes."""
    from configweave.core import LoaderOptions

    return LoaderOptions(
        read_timeout=0.5,
        restart_backoff_base=0.01,
        restart_backoff_max=0.05,
        close_timeout=1.0,
    )


@pytest.fixture
def loader(loader_options):
    """
    Loader isolado por teste.

    Decisões arquiteturais:
        - Fechado no teardown, mesmo quando o teste falha
        - `close()` é idempotente, portanto testes podem fechá-lo antes
    """
    from configweave.core import Loader

    instance = Loader(loader_options)
    yield instance
    instance.close()


@pytest.fixture
def StaticSource():
    """
    Fixture factory que fornece uma fonte duck-typed mínima.

    A fonte retorna sempre o mesmo record e pode ser configurada para
    falhar (`error`) ou demorar (`delay`) na leitura. Não possui `watch()`.

    Returns:
        type: Classe _StaticSource instanciável pelos testes.
    """
    from configweave.core import ChangeRecord

    class _StaticSource:
        def __init__(self, name, value=None, *, data=None, format="json", error=None, delay=0.0):
            self.name = name
            self.error = error
            self.delay = delay
            self.reads = 0
            self._release = threading.Event()
            if data is not None:
                self.record = ChangeRecord(data=data, format=format, source=name)
            else:
                self.record = ChangeRecord.from_value(value or {}, source=name, format=format)

        def set(self, value):
            self.record = ChangeRecord.from_value(value, source=self.name)

        def release(self):
            self._release.set()

        def read(self):
            self.reads += 1
            if self.delay:
                self._release.wait(self.delay)
            if self.error is not None:
                raise self.error
            return self.record

    return _StaticSource
