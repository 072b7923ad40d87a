"""Tests for fixed-width chunking."""

from __future__ import annotations

import pytest

from dirembed.core.errors import ConfigError
from dirembed.index._internal.chunking import chunk_range, read_file_chunks, validate_chunk_size


class TestValidateChunkSize:
    @pytest.mark.parametrize("size", [0, -5])
    def test_non_positive_rejected(self, size: int) -> None:
        with pytest.raises(ConfigError):
            validate_chunk_size(size)

    def test_positive_accepted(self) -> None:
        validate_chunk_size(1)


class TestReadFileChunks:
    """Chunk boundaries and the per-file cap."""

    def test_exact_multiple(self, memory_fs) -> None:
        memory_fs.write("/f", b"aabbcc")

        assert read_file_chunks(memory_fs, "/f", 2, 0) == [b"aa", b"bb", b"cc"]

    def test_last_chunk_may_be_short(self, memory_fs) -> None:
        memory_fs.write("/f", b"aabbc")

        assert read_file_chunks(memory_fs, "/f", 2, 0) == [b"aa", b"bb", b"c"]

    def test_max_chunks_truncates(self, memory_fs) -> None:
        memory_fs.write("/f", b"aabbccdd")

        assert read_file_chunks(memory_fs, "/f", 2, 2) == [b"aa", b"bb"]

    def test_empty_file_has_no_chunks(self, memory_fs) -> None:
        memory_fs.write("/f", b"")

        assert read_file_chunks(memory_fs, "/f", 4, 8) == []

    def test_missing_file_raises_os_error(self, memory_fs) -> None:
        with pytest.raises(FileNotFoundError) as exc_info:
            read_file_chunks(memory_fs, "/nope", 4, 8)
        assert exc_info.value.filename == "/nope"


class TestChunkRange:
    def test_ranges_are_contiguous(self) -> None:
        assert chunk_range(0, 4, b"abcd") == (0, 4)
        assert chunk_range(1, 4, b"abcd") == (4, 8)
        assert chunk_range(2, 4, b"ab") == (8, 10)
