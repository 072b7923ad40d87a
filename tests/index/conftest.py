"""Shared fixtures for index tests.

``MemoryFileSystem`` is an in-memory stand-in for ``OsFileSystem`` and
``MockEmbedder`` produces a one-hot vector keyed on the first character
of each text, so similarity is easy to reason about.
"""

from __future__ import annotations

import errno
import io
import os
import posixpath
from collections.abc import Callable, Iterator
from typing import Any, BinaryIO

import numpy as np
import pytest

from dirembed.config.models import IndexConfig
from dirembed.index._internal.filesystem import FileInfo, OsFileSystem
from dirembed.index.ops import DiskCachedEmbeddingIndex


def _not_found(path: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)


class _WriteBuffer(io.BytesIO):
    """BytesIO that commits its content to the owning filesystem on close."""

    def __init__(self, fs: MemoryFileSystem, path: str) -> None:
        super().__init__()
        self._fs = fs
        self._path = path

    def close(self) -> None:
        if not self.closed:
            self._fs.files[self._path] = self.getvalue()
            self._fs.mtimes[self._path] = self._fs.now
            self._fs.writes.append(self._path)
        super().close()


class MemoryFileSystem:
    """Dict-backed FileSystem with explicit mtimes."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.mtimes: dict[str, float] = {}
        self.dirs: set[str] = {"/"}
        self.writes: list[str] = []
        self.now = 0.0

    # -- helpers used by tests --------------------------------------------

    def mkdir(self, path: str) -> None:
        path = posixpath.normpath(path)
        while path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def write(self, path: str, content: bytes | str, *, mtime: float | None = None) -> None:
        path = posixpath.normpath(path)
        self.mkdir(posixpath.dirname(path))
        self.files[path] = content.encode() if isinstance(content, str) else content
        self.mtimes[path] = self.now if mtime is None else mtime

    # -- FileSystem protocol ----------------------------------------------

    def stat(self, path: str) -> FileInfo:
        path = posixpath.normpath(path)
        name = posixpath.basename(path) or path
        if path in self.dirs:
            return FileInfo(name=name, is_dir=True, mtime=0.0, size=0)
        if path in self.files:
            return FileInfo(
                name=name, is_dir=False, mtime=self.mtimes[path], size=len(self.files[path])
            )
        raise _not_found(path)

    def list_dir(self, path: str) -> list[FileInfo]:
        path = posixpath.normpath(path)
        if path not in self.dirs:
            if path in self.files:
                raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), path)
            raise _not_found(path)
        children = [
            p for p in (*self.dirs, *self.files) if p != path and posixpath.dirname(p) == path
        ]
        return sorted((self.stat(p) for p in children), key=lambda e: e.name)

    def open_read(self, path: str) -> BinaryIO:
        path = posixpath.normpath(path)
        if path in self.dirs:
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path)
        if path not in self.files:
            raise _not_found(path)
        return io.BytesIO(self.files[path])

    def open_write(self, path: str) -> BinaryIO:
        path = posixpath.normpath(path)
        if posixpath.dirname(path) not in self.dirs:
            raise _not_found(path)
        return _WriteBuffer(self, path)

    def remove(self, path: str) -> None:
        path = posixpath.normpath(path)
        if path not in self.files:
            raise _not_found(path)
        del self.files[path]
        del self.mtimes[path]

    def walk(self, top: str) -> Iterator[tuple[str, list[str], list[str]]]:
        top = posixpath.normpath(top)
        entries = self.list_dir(top)
        dirnames = [e.name for e in entries if e.is_dir]
        filenames = [e.name for e in entries if not e.is_dir]
        yield top, dirnames, filenames
        for name in dirnames:
            yield from self.walk(posixpath.join(top, name))

    def exists(self, path: str) -> bool:
        path = posixpath.normpath(path)
        return path in self.dirs or path in self.files


class MockEmbedder:
    """One-hot embedder: position ``ord(text[0])`` is set to 1."""

    def __init__(self, dim: int = 128) -> None:
        self.dim = dim
        self.calls = 0
        self.batches: list[list[str]] = []

    def embed(self, texts: list[str]) -> list[np.ndarray[Any, np.dtype[np.float32]]]:
        self.calls += 1
        self.batches.append(list(texts))
        vectors = []
        for text in texts:
            vec = np.zeros(self.dim, dtype=np.float32)
            if text:
                vec[ord(text[0]) % self.dim] = 1.0
            vectors.append(vec)
        return vectors


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def sample_fs(memory_fs: MemoryFileSystem) -> MemoryFileSystem:
    """The /a tree: one, two, b/nine and b/c/d/four."""
    memory_fs.write("/a/one", "111111")
    memory_fs.write("/a/two", "222222")
    memory_fs.write("/a/b/nine", "999999")
    memory_fs.write("/a/b/c/d/four", "444444")
    return memory_fs


@pytest.fixture
def make_engine(
    memory_fs: MemoryFileSystem,
) -> Callable[..., tuple[DiskCachedEmbeddingIndex, MockEmbedder]]:
    """Factory for a fresh engine over ``memory_fs`` with its own MockEmbedder."""

    def _make(**config: Any) -> tuple[DiskCachedEmbeddingIndex, MockEmbedder]:
        embedder = MockEmbedder()
        engine = DiskCachedEmbeddingIndex(
            embedder,
            fs=memory_fs,
            config=IndexConfig(**{"max_chunks": 8, **config}),
            verbosity=2,
        )
        return engine, embedder

    return _make


@pytest.fixture
def make_disk_engine() -> Callable[..., tuple[DiskCachedEmbeddingIndex, MockEmbedder]]:
    """Like ``make_engine`` but over the real filesystem, for ``tmp_path`` trees."""

    def _make(**config: Any) -> tuple[DiskCachedEmbeddingIndex, MockEmbedder]:
        embedder = MockEmbedder()
        engine = DiskCachedEmbeddingIndex(
            embedder,
            fs=OsFileSystem(),
            config=IndexConfig(**{"max_chunks": 8, **config}),
            verbosity=2,
        )
        return engine, embedder

    return _make
