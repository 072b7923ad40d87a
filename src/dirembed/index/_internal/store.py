"""In-memory arena of directory indexes.

Keys are absolute, normalised directory paths. There are no parent/child
links: subtree membership is derived from path prefixes when needed.
The store does no locking and assumes a single logical caller.
"""

from __future__ import annotations

import os
from collections.abc import Iterator

from dirembed.index.models import DirectoryIndex


def _normalize(path: str) -> str:
    return os.path.normpath(path)


def is_within(path: str, root: str) -> bool:
    """True if ``path`` is ``root`` or lies below it."""
    path = _normalize(path)
    root = _normalize(root)
    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)


class DirectoryIndexStore:
    """Owns every DirectoryIndex held in memory."""

    def __init__(self, indexes: dict[str, DirectoryIndex] | None = None) -> None:
        self._indexes: dict[str, DirectoryIndex] = {}
        for path, dir_index in (indexes or {}).items():
            self.put(path, dir_index)

    def __len__(self) -> int:
        return len(self._indexes)

    def __contains__(self, dir_path: object) -> bool:
        return isinstance(dir_path, str) and _normalize(dir_path) in self._indexes

    def __iter__(self) -> Iterator[str]:
        return iter(self._indexes)

    def get(self, dir_path: str) -> DirectoryIndex | None:
        return self._indexes.get(_normalize(dir_path))

    def put(self, dir_path: str, dir_index: DirectoryIndex) -> None:
        """Insert or wholesale-replace the record for ``dir_path``."""
        self._indexes[_normalize(dir_path)] = dir_index

    def remove(self, dir_path: str) -> DirectoryIndex | None:
        return self._indexes.pop(_normalize(dir_path), None)

    def items(self) -> Iterator[tuple[str, DirectoryIndex]]:
        """Iterate (directory, index) pairs in insertion order."""
        yield from self._indexes.items()

    def under(self, root: str) -> list[str]:
        """Tracked directories at or below ``root``."""
        return [path for path in self._indexes if is_within(path, root)]

    def indexed_files(self) -> list[str]:
        """Absolute paths of every file with a cached entry."""
        return [
            os.path.join(dir_path, name)
            for dir_path, dir_index in self._indexes.items()
            for name in dir_index.files
        ]
