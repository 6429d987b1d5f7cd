# tests/core/test_options.py
"""
Testes das opções do Loader (LoaderOptions / load_options).

Este módulo valida:
- defaults e validação na construção
- rejeição de chaves desconhecidas
- carregamento a partir de arquivos YAML/JSON (com e sem seção `loader`)
- erros tipados para arquivo ausente, formato e raiz inválidos

Limites explícitos:
    - Não valida o comportamento do Loader em si
"""

import pytest

try:
    from configweave.core.errors import (
        InvalidOptionsError,
        InvalidRootTypeError,
        UnsupportedFormatError,
    )
    from configweave.core.options import LoaderOptions, load_options
except Exception as e:  # noqa: BLE001
    LoaderOptions = None
    load_options = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """
    Garante que as opções do Loader e suas exceções estejam disponíveis.
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Não foi possível importar LoaderOptions/load_options "
            f"(configweave.core.options). Erro: {_IMPORT_ERR}"
        )


def test_defaults():
    _require_imports()
    opts = LoaderOptions()
    assert opts.read_timeout == 5.0
    assert opts.watcher_queue_size == 16
    assert opts.output_format == "json"
    assert opts.max_restarts is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"read_timeout": 0},
        {"read_timeout": -1.0},
        {"read_timeout": True},
        {"watcher_queue_size": 0},
        {"watcher_queue_size": 1.5},
        {"max_restarts": -1},
        {"output_format": ""},
        {"restart_backoff_base": 2.0, "restart_backoff_max": 1.0},
    ],
)
def test_invalid_values_are_rejected(kwargs):
    _require_imports()
    with pytest.raises(InvalidOptionsError):
        LoaderOptions(**kwargs)


def test_from_mapping_rejects_unknown_keys():
    _require_imports()
    with pytest.raises(InvalidOptionsError):
        LoaderOptions.from_mapping({"read_timeout": 1.0, "retries": 3})


def test_from_mapping_rejects_non_mapping():
    _require_imports()
    with pytest.raises(InvalidRootTypeError):
        LoaderOptions.from_mapping([("read_timeout", 1.0)])


def test_load_options_yaml_with_section(tmp_path):
    """
    Quando o arquivo possui a chave de topo `loader`, apenas ela é usada.
    """
    _require_imports()
    path = tmp_path / "options.yaml"
    path.write_text("loader:\n  read_timeout: 1.5\n  max_restarts: 3\n", encoding="utf-8")

    opts = load_options(path)

    assert opts.read_timeout == 1.5
    assert opts.max_restarts == 3


def test_load_options_json_without_section(tmp_path):
    _require_imports()
    path = tmp_path / "options.json"
    path.write_text('{"watcher_queue_size": 4}', encoding="utf-8")
    assert load_options(path).watcher_queue_size == 4


def test_load_options_empty_file_gives_defaults(tmp_path):
    _require_imports()
    path = tmp_path / "options.yml"
    path.write_text("", encoding="utf-8")
    assert load_options(path) == LoaderOptions()


def test_load_options_missing_file(tmp_path):
    _require_imports()
    with pytest.raises(FileNotFoundError):
        load_options(tmp_path / "nope.yaml")


def test_load_options_unsupported_suffix(tmp_path):
    _require_imports()
    path = tmp_path / "options.toml"
    path.write_text("read_timeout = 1", encoding="utf-8")
    with pytest.raises(UnsupportedFormatError):
        load_options(path)


def test_load_options_non_mapping_root(tmp_path):
    _require_imports()
    path = tmp_path / "options.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(InvalidRootTypeError):
        load_options(path)
