"""Map referenced file names onto project paths."""
from __future__ import annotations

from typing import Iterable, Iterator, Optional

from codelink.common.models import NodeKind, ProjectNode


def iter_file_paths(structure: Iterable[ProjectNode]) -> Iterator[str]:
    """Yield file paths depth-first in tree order (directories first, sorted)."""
    for node in structure:
        if node.kind is NodeKind.FILE:
            yield node.path
        elif node.kind is NodeKind.DIRECTORY and node.children:
            yield from iter_file_paths(node.children)


class FileUniverse:
    """The flattened, ordered set of file paths a project exposes.

    Order is sorted tree order; it is the tie-break when several files share
    a base name.
    """

    def __init__(self, paths: Iterable[str] = ()):
        self._paths = tuple(dict.fromkeys(paths))
        self._members = frozenset(self._paths)

    @classmethod
    def from_tree(cls, structure: Iterable[ProjectNode]) -> "FileUniverse":
        return cls(iter_file_paths(structure))

    def __contains__(self, path: object) -> bool:
        return path in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    @property
    def paths(self) -> tuple[str, ...]:
        return self._paths


def resolve_path(name: str, universe: FileUniverse) -> Optional[str]:
    """Return the project path for ``name`` or ``None``.

    Exact members resolve to themselves; otherwise the first path whose last
    segment equals ``name`` wins. Matching is case-sensitive and never fuzzy.
    """
    if not name:
        return None
    if name in universe:
        return name
    suffix = f"/{name}"
    for path in universe:
        if path.endswith(suffix) or path == name:
            return path
    return None
