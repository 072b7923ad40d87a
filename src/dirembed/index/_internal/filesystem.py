"""Filesystem capability used by the index.

Everything the index reads or writes goes through a ``FileSystem`` so
tests can substitute an in-memory implementation. Paths are plain
absolute strings; callers normalise them with ``os.path.abspath``.

Failures are raised as ``OSError`` subclasses with ``filename`` set,
never wrapped.

Directory listings do not follow symbolic links: a link is reported with
``is_link`` set and ``is_dir`` false whatever it points to, and ``walk``
lists links under file names. Only an explicit ``stat`` follows a link.
"""

from __future__ import annotations

import os
import stat as stat_mod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class FileInfo:
    """Result of a stat call."""

    name: str
    is_dir: bool
    mtime: float
    size: int
    is_link: bool = False


@runtime_checkable
class FileSystem(Protocol):
    """Minimal filesystem surface needed for indexing and search."""

    def stat(self, path: str) -> FileInfo: ...

    def list_dir(self, path: str) -> list[FileInfo]:
        """Immediate entries of a directory, sorted by name, links not followed."""
        ...

    def open_read(self, path: str) -> BinaryIO: ...

    def open_write(self, path: str) -> BinaryIO:
        """Open for writing, creating or truncating the file."""
        ...

    def remove(self, path: str) -> None: ...

    def walk(self, top: str) -> Iterator[tuple[str, list[str], list[str]]]:
        """Top-down ``os.walk``-shaped traversal; errors are raised, not skipped.

        Directory and file name lists are sorted. Callers may prune
        ``dirnames`` in place.
        """
        ...

    def exists(self, path: str) -> bool:
        """Follows links, so a dangling link does not exist."""
        ...


def _raise(err: OSError) -> None:
    raise err


class OsFileSystem:
    """FileSystem backed by the local disk."""

    def stat(self, path: str) -> FileInfo:
        st = os.stat(path)
        return FileInfo(
            name=os.path.basename(path) or path,
            is_dir=stat_mod.S_ISDIR(st.st_mode),
            mtime=st.st_mtime,
            size=st.st_size,
        )

    def list_dir(self, path: str) -> list[FileInfo]:
        entries: list[FileInfo] = []
        with os.scandir(path) as it:
            for entry in it:
                st = entry.stat(follow_symlinks=False)
                entries.append(
                    FileInfo(
                        name=entry.name,
                        is_dir=stat_mod.S_ISDIR(st.st_mode),
                        mtime=st.st_mtime,
                        size=st.st_size,
                        is_link=stat_mod.S_ISLNK(st.st_mode),
                    )
                )
        entries.sort(key=lambda e: e.name)
        return entries

    def open_read(self, path: str) -> BinaryIO:
        return open(path, "rb")  # noqa: SIM115

    def open_write(self, path: str) -> BinaryIO:
        return open(path, "wb")  # noqa: SIM115

    def remove(self, path: str) -> None:
        os.remove(path)

    def walk(self, top: str) -> Iterator[tuple[str, list[str], list[str]]]:
        for dirpath, dirnames, filenames in os.walk(top, onerror=_raise):
            links = [name for name in dirnames if os.path.islink(os.path.join(dirpath, name))]
            for name in links:
                dirnames.remove(name)
            filenames.extend(links)
            dirnames.sort()
            filenames.sort()
            yield dirpath, dirnames, filenames

    def exists(self, path: str) -> bool:
        return os.path.exists(path)
