"""Tests for dotfile encoding, decoding and discovery."""

from __future__ import annotations

import io
import threading

import numpy as np
import pytest

from dirembed.config.constants import INDEX_FORMAT_VERSION
from dirembed.core.errors import CancellationError, ErrorCode, SerializationError
from dirembed.index._internal.persistence import (
    IndexPersistence,
    decode_directory_index,
    encode_directory_index,
)
from dirembed.index.models import AnnotatedEmbedding, DirectoryIndex, FileEmbeddings


def _sample_index() -> DirectoryIndex:
    return DirectoryIndex(
        files={
            "one": FileEmbeddings(
                path="one",
                updated_at=1700000000.25,
                embeddings=[
                    AnnotatedEmbedding(0, 4, np.array([1.0, 0.0, 0.5], dtype=np.float32)),
                    AnnotatedEmbedding(4, 6, np.array([0.0, -1.0, 0.125], dtype=np.float32)),
                ],
            ),
            "empty": FileEmbeddings(path="empty", updated_at=1700000001.0),
        }
    )


class TestCodec:
    def test_round_trip_is_exact(self) -> None:
        original = _sample_index()

        decoded = decode_directory_index(encode_directory_index(original))

        assert list(decoded.files) == ["one", "empty"]
        one = decoded.files["one"]
        assert one.path == "one"
        assert one.updated_at == 1700000000.25
        assert [(e.start, e.end) for e in one.embeddings] == [(0, 4), (4, 6)]
        for got, want in zip(one.embeddings, original.files["one"].embeddings, strict=True):
            assert got.vector.dtype == np.float32
            np.testing.assert_array_equal(got.vector, want.vector)
        assert decoded.files["empty"].embeddings == []

    def test_empty_index_round_trips(self) -> None:
        decoded = decode_directory_index(encode_directory_index(DirectoryIndex()))
        assert len(decoded) == 0

    def test_mixed_dimensions_rejected(self) -> None:
        dir_index = DirectoryIndex(
            files={
                "a": FileEmbeddings(
                    path="a",
                    updated_at=0.0,
                    embeddings=[AnnotatedEmbedding(0, 1, np.ones(3, dtype=np.float32))],
                ),
                "b": FileEmbeddings(
                    path="b",
                    updated_at=0.0,
                    embeddings=[AnnotatedEmbedding(0, 1, np.ones(4, dtype=np.float32))],
                ),
            }
        )
        with pytest.raises(SerializationError):
            encode_directory_index(dir_index)

    @pytest.mark.parametrize("data", [b"", b"garbage", b"PK\x03\x04truncated"])
    def test_garbage_is_corrupt(self, data: bytes) -> None:
        with pytest.raises(SerializationError) as exc_info:
            decode_directory_index(data, source="/x/.dirembed_index")

        assert exc_info.value.code == ErrorCode.INDEX_CORRUPT
        assert exc_info.value.details["path"] == "/x/.dirembed_index"

    def test_truncated_archive_is_corrupt(self) -> None:
        data = encode_directory_index(_sample_index())

        with pytest.raises(SerializationError):
            decode_directory_index(data[: len(data) // 2])

    def test_missing_arrays_is_corrupt(self) -> None:
        buf = io.BytesIO()
        np.savez_compressed(buf, format_version=np.array(INDEX_FORMAT_VERSION))

        with pytest.raises(SerializationError) as exc_info:
            decode_directory_index(buf.getvalue())

        assert "missing arrays" in exc_info.value.message

    def test_future_version_is_incompatible(self) -> None:
        buf = io.BytesIO()
        np.savez_compressed(
            buf,
            format_version=np.array(INDEX_FORMAT_VERSION + 1),
            names=np.array([], dtype="U"),
            paths=np.array([], dtype="U"),
            updated_at=np.array([], dtype=np.float64),
            offsets=np.array([0], dtype=np.int64),
            ranges=np.zeros((0, 2), dtype=np.uint64),
            vectors=np.zeros((0, 0), dtype=np.float32),
        )

        with pytest.raises(SerializationError) as exc_info:
            decode_directory_index(buf.getvalue())

        assert exc_info.value.code == ErrorCode.INDEX_INCOMPATIBLE

    def test_inconsistent_offsets_is_corrupt(self) -> None:
        buf = io.BytesIO()
        np.savez_compressed(
            buf,
            format_version=np.array(INDEX_FORMAT_VERSION),
            names=np.array(["a"]),
            paths=np.array(["a"]),
            updated_at=np.array([0.0]),
            offsets=np.array([0, 3], dtype=np.int64),
            ranges=np.array([[0, 1]], dtype=np.uint64),
            vectors=np.ones((1, 2), dtype=np.float32),
        )

        with pytest.raises(SerializationError):
            decode_directory_index(buf.getvalue())

    @pytest.mark.parametrize(
        "field, value",
        [
            ("format_version", np.array([1, 2])),
            ("format_version", np.array("1")),
            ("offsets", np.array(["0", "1"])),
            ("updated_at", np.array(["yesterday"])),
        ],
    )
    def test_wrongly_typed_arrays_are_corrupt(self, field: str, value: np.ndarray) -> None:
        arrays = {
            "format_version": np.array(INDEX_FORMAT_VERSION),
            "names": np.array(["a"]),
            "paths": np.array(["a"]),
            "updated_at": np.array([0.0]),
            "offsets": np.array([0, 1], dtype=np.int64),
            "ranges": np.array([[0, 1]], dtype=np.uint64),
            "vectors": np.ones((1, 2), dtype=np.float32),
        }
        arrays[field] = value
        buf = io.BytesIO()
        np.savez_compressed(buf, **arrays)

        with pytest.raises(SerializationError) as exc_info:
            decode_directory_index(buf.getvalue(), source="/x/.dirembed_index")

        assert exc_info.value.code == ErrorCode.INDEX_CORRUPT


class TestIndexPersistence:
    def test_save_then_load(self, memory_fs) -> None:
        memory_fs.mkdir("/a/b")
        persistence = IndexPersistence(memory_fs, ".dirembed_index")

        dotfile = persistence.save("/a/b", _sample_index())
        dir_path, loaded = persistence.load(dotfile)

        assert dotfile == "/a/b/.dirembed_index"
        assert dir_path == "/a/b"
        assert list(loaded.files) == ["one", "empty"]

    def test_save_overwrites(self, memory_fs) -> None:
        memory_fs.mkdir("/a")
        persistence = IndexPersistence(memory_fs, ".dirembed_index")

        persistence.save("/a", _sample_index())
        persistence.save("/a", DirectoryIndex())
        _, loaded = persistence.load("/a/.dirembed_index")

        assert len(loaded) == 0

    def test_load_corrupt_file(self, memory_fs) -> None:
        memory_fs.write("/a/.dirembed_index", b"not an archive")
        persistence = IndexPersistence(memory_fs, ".dirembed_index")

        with pytest.raises(SerializationError):
            persistence.load("/a/.dirembed_index")

    def test_discover_finds_nested_dotfiles(self, memory_fs) -> None:
        for d in ("/a", "/a/b/c", "/z"):
            memory_fs.write(f"{d}/.dirembed_index", b"x")
        memory_fs.write("/a/b/readme", "hi")
        persistence = IndexPersistence(memory_fs, ".dirembed_index")

        found = persistence.discover("/a")

        assert found == ["/a/.dirembed_index", "/a/b/c/.dirembed_index"]

    def test_discover_on_dotfile_itself(self, memory_fs) -> None:
        memory_fs.write("/a/.dirembed_index", b"x")
        memory_fs.write("/a/readme", "hi")
        persistence = IndexPersistence(memory_fs, ".dirembed_index")

        assert persistence.discover("/a/.dirembed_index") == ["/a/.dirembed_index"]
        assert persistence.discover("/a/readme") == []

    def test_discover_missing_root_raises(self, memory_fs) -> None:
        persistence = IndexPersistence(memory_fs, ".dirembed_index")

        with pytest.raises(FileNotFoundError):
            persistence.discover("/missing")

    def test_discover_cancelled(self, memory_fs) -> None:
        memory_fs.mkdir("/a/b")
        persistence = IndexPersistence(memory_fs, ".dirembed_index")
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(CancellationError):
            persistence.discover("/a", cancel_event=cancel)
