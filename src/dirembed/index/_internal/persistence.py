"""Per-directory persistence of DirectoryIndex records.

Each tracked directory holds one dotfile (``.dirembed_index`` by default)
containing a compressed NumPy archive of named arrays:

- ``format_version``  int64 scalar
- ``names``           (F,)   unicode, keys of ``DirectoryIndex.files``
- ``paths``           (F,)   unicode, ``FileEmbeddings.path``
- ``updated_at``      (F,)   float64 POSIX seconds
- ``offsets``         (F+1,) int64, row span of each file in ``ranges``/``vectors``
- ``ranges``          (N, 2) uint64 ``[start, end)``
- ``vectors``         (N, D) float32

Archives are loaded with ``allow_pickle=False``. Any structural problem is a
SerializationError; there is no partial recovery.
"""

from __future__ import annotations

import io
import os
import threading
import zipfile
import zlib
from typing import Any

import numpy as np
import structlog

from dirembed.config.constants import INDEX_FORMAT_VERSION
from dirembed.core.errors import CancellationError, SerializationError
from dirembed.index._internal.filesystem import FileSystem
from dirembed.index.models import AnnotatedEmbedding, DirectoryIndex, FileEmbeddings

log = structlog.get_logger()

_REQUIRED_ARRAYS = ("format_version", "names", "paths", "updated_at", "offsets", "ranges", "vectors")


# ===================================================================
# Codec
# ===================================================================


def encode_directory_index(dir_index: DirectoryIndex, *, source: str = "<memory>") -> bytes:
    """Serialize a DirectoryIndex to npz bytes."""
    names: list[str] = []
    paths: list[str] = []
    updated_at: list[float] = []
    offsets: list[int] = [0]
    ranges: list[tuple[int, int]] = []
    vectors: list[np.ndarray[Any, np.dtype[np.float32]]] = []

    dim: int | None = None
    for name, file_embeddings in dir_index.files.items():
        names.append(name)
        paths.append(file_embeddings.path)
        updated_at.append(file_embeddings.updated_at)
        for emb in file_embeddings.embeddings:
            vec = np.asarray(emb.vector, dtype=np.float32)
            if dim is None:
                dim = vec.shape[0]
            elif vec.shape[0] != dim:
                raise SerializationError.corrupt(
                    source,
                    f"mixed vector dimensions in one directory ({dim} and {vec.shape[0]})",
                )
            ranges.append((emb.start, emb.end))
            vectors.append(vec)
        offsets.append(len(ranges))

    vector_matrix = (
        np.vstack(vectors).astype(np.float32)
        if vectors
        else np.zeros((0, 0), dtype=np.float32)
    )

    buf = io.BytesIO()
    np.savez_compressed(
        buf,
        format_version=np.array(INDEX_FORMAT_VERSION, dtype=np.int64),
        names=np.array(names, dtype="U"),
        paths=np.array(paths, dtype="U"),
        updated_at=np.array(updated_at, dtype=np.float64),
        offsets=np.array(offsets, dtype=np.int64),
        ranges=np.array(ranges, dtype=np.uint64).reshape(-1, 2),
        vectors=vector_matrix,
    )
    return buf.getvalue()


def decode_directory_index(data: bytes, *, source: str = "<memory>") -> DirectoryIndex:
    """Deserialize npz bytes produced by ``encode_directory_index``."""
    try:
        loaded = np.load(io.BytesIO(data), allow_pickle=False)
        if not isinstance(loaded, np.lib.npyio.NpzFile):
            raise SerializationError.corrupt(source, "not an npz archive")
        with loaded as archive:
            missing = [key for key in _REQUIRED_ARRAYS if key not in archive.files]
            if missing:
                raise SerializationError.corrupt(source, f"missing arrays: {', '.join(missing)}")
            version_arr = archive["format_version"]
            if version_arr.shape != () or version_arr.dtype.kind not in "iu":
                raise SerializationError.corrupt(source, "format_version must be an integer scalar")
            version = int(version_arr)
            if version != INDEX_FORMAT_VERSION:
                raise SerializationError.incompatible(source, version, INDEX_FORMAT_VERSION)
            arrays = {key: archive[key] for key in _REQUIRED_ARRAYS}
    except (zipfile.BadZipFile, zlib.error, ValueError, TypeError, OSError, EOFError) as e:
        raise SerializationError.corrupt(source, str(e) or type(e).__name__) from e

    names = arrays["names"]
    paths = arrays["paths"]
    updated_at = arrays["updated_at"]
    offsets = arrays["offsets"]
    ranges = arrays["ranges"]
    vectors = arrays["vectors"]

    if any(a.ndim != 1 for a in (names, paths, updated_at, offsets)):
        raise SerializationError.corrupt(source, "file arrays must be one-dimensional")
    n_files = len(names)
    if len(paths) != n_files or len(updated_at) != n_files or len(offsets) != n_files + 1:
        raise SerializationError.corrupt(source, "file arrays have inconsistent lengths")
    if ranges.ndim != 2 or ranges.shape[1] != 2 or vectors.ndim != 2:
        raise SerializationError.corrupt(source, "ranges/vectors have unexpected shapes")
    if offsets.dtype.kind not in "iu" or ranges.dtype.kind not in "iu":
        raise SerializationError.corrupt(source, "offsets and ranges must be integers")
    if updated_at.dtype.kind not in "iuf" or vectors.dtype.kind not in "iuf":
        raise SerializationError.corrupt(source, "timestamps and vectors must be numeric")
    if len(ranges) != len(vectors) or int(offsets[-1]) != len(ranges):
        raise SerializationError.corrupt(source, "row counts do not match offsets")
    if int(offsets[0]) != 0 or np.any(np.diff(offsets) < 0):
        raise SerializationError.corrupt(source, "offsets are not monotonic")

    dir_index = DirectoryIndex()
    try:
        for i in range(n_files):
            lo, hi = int(offsets[i]), int(offsets[i + 1])
            embeddings = [
                AnnotatedEmbedding(
                    start=int(ranges[row, 0]),
                    end=int(ranges[row, 1]),
                    vector=vectors[row].astype(np.float32, copy=True),
                )
                for row in range(lo, hi)
            ]
            dir_index.files[str(names[i])] = FileEmbeddings(
                path=str(paths[i]),
                updated_at=float(updated_at[i]),
                embeddings=embeddings,
            )
    except (ValueError, TypeError) as e:
        raise SerializationError.corrupt(source, str(e)) from e
    return dir_index


# ===================================================================
# Dotfile I/O
# ===================================================================


class IndexPersistence:
    """Reads, writes, finds and removes dotfiles through a FileSystem."""

    def __init__(self, fs: FileSystem, dotfile_name: str) -> None:
        if not dotfile_name:
            raise ValueError("dotfile_name must not be empty")
        self._fs = fs
        self.dotfile_name = dotfile_name

    def dotfile_path(self, dir_path: str) -> str:
        return os.path.join(dir_path, self.dotfile_name)

    def save(self, dir_path: str, dir_index: DirectoryIndex) -> str:
        """Overwrite the dotfile in ``dir_path``. Returns its path."""
        dotfile = self.dotfile_path(dir_path)
        payload = encode_directory_index(dir_index, source=dotfile)
        with self._fs.open_write(dotfile) as f:
            f.write(payload)
        return dotfile

    def load(self, dotfile: str) -> tuple[str, DirectoryIndex]:
        """Read one dotfile. Returns (owning directory, record)."""
        dotfile = os.path.abspath(dotfile)
        with self._fs.open_read(dotfile) as f:
            data = f.read()
        return os.path.dirname(dotfile), decode_directory_index(data, source=dotfile)

    def remove(self, dotfile: str) -> None:
        self._fs.remove(dotfile)

    def discover(
        self,
        root: str,
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[str]:
        """Find every dotfile at or below ``root``.

        A regular file ``root`` matches only if it is itself a dotfile.
        """
        root = os.path.abspath(root)
        info = self._fs.stat(root)
        if not info.is_dir:
            return [root] if info.name == self.dotfile_name else []

        found: list[str] = []
        for dirpath, _dirnames, filenames in self._fs.walk(root):
            if cancel_event is not None and cancel_event.is_set():
                raise CancellationError.at("discover", path=dirpath)
            if self.dotfile_name in filenames:
                found.append(os.path.join(dirpath, self.dotfile_name))
        log.debug("persistence.discovered", root=root, count=len(found))
        return found
