# src/configweave/core/paths.py
"""
Key-paths pontuados sobre a árvore de configuração.

Um path `db.host` endereça `tree["db"]["host"]`. Paths são comparados por
segmento, portanto o prefixo `db` cobre `db.host` mas não `dbx.host`.
Um ponto final (`db.`) é aceito e equivale a `db`.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence, Tuple, Union

from .hashing import compute_structure_hash

PathLike = Union[str, Sequence[str]]
KeyPath = Tuple[str, ...]

SEPARATOR = "."


def parse_path(path: PathLike) -> KeyPath:
    if isinstance(path, str):
        segments = path.strip().strip(SEPARATOR).split(SEPARATOR)
    else:
        segments = [str(s) for s in path]

    if not segments or any(not s for s in segments):
        raise ValueError(f"Key-path inválido: {path!r}")
    return tuple(segments)


def parse_paths(paths: Iterable[PathLike]) -> Tuple[KeyPath, ...]:
    """Normaliza e deduplica paths preservando a ordem de declaração."""
    out = []
    for p in paths:
        parsed = parse_path(p)
        if parsed not in out:
            out.append(parsed)
    return tuple(out)


def format_path(path: KeyPath) -> str:
    return SEPARATOR.join(path)


def lookup(tree: Any, path: KeyPath) -> Tuple[bool, Any]:
    """Retorna `(encontrado, valor)` para o path na árvore."""
    node = tree
    for segment in path:
        if not isinstance(node, dict) or segment not in node:
            return False, None
        node = node[segment]
    return True, node


def filtered_digest(tree: Any, paths: Sequence[KeyPath]) -> str:
    """
    Digest da porção da árvore coberta pelos paths.

    Paths ausentes participam do digest como ausentes, de modo que a
    criação ou remoção de uma chave observada também conta como mudança.
    """
    view = []
    for path in paths:
        found, value = lookup(tree, path)
        view.append([format_path(path), found, value])
    return compute_structure_hash(view)
