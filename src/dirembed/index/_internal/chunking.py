"""Fixed-width chunking of file bytes.

Chunk ``i`` covers bytes ``[i * chunk_size, i * chunk_size + len(chunk))``.
Only the final chunk may be shorter than ``chunk_size``. Files longer than
``max_chunks`` windows are truncated; there is no overlap or sliding.
A ``max_chunks`` of zero or less disables the cap.
"""

from __future__ import annotations

from dirembed.core.errors import ConfigError
from dirembed.index._internal.filesystem import FileSystem


def validate_chunk_size(chunk_size: int) -> None:
    """Reject chunk widths that cannot address a file."""
    if chunk_size <= 0:
        raise ConfigError.invalid_value(
            "chunk_size", chunk_size, "Chunk size must be greater than 0"
        )


def read_file_chunks(
    fs: FileSystem,
    path: str,
    chunk_size: int,
    max_chunks: int,
) -> list[bytes]:
    """Read a file window by window, stopping at EOF or the chunk cap."""
    validate_chunk_size(chunk_size)
    chunks: list[bytes] = []
    with fs.open_read(path) as f:
        while max_chunks <= 0 or len(chunks) < max_chunks:
            buf = f.read(chunk_size)
            if not buf:
                break
            # Short reads are legal for some streams; top up to a full window
            while len(buf) < chunk_size:
                more = f.read(chunk_size - len(buf))
                if not more:
                    break
                buf += more
            chunks.append(buf)
            if len(buf) < chunk_size:
                break
    return chunks


def chunk_range(index: int, chunk_size: int, chunk: bytes) -> tuple[int, int]:
    """Byte range of the chunk at global position ``index``."""
    start = index * chunk_size
    return start, start + len(chunk)
