"""Tests for DiskCachedEmbeddingIndex load/save/clear operations."""

from __future__ import annotations

from collections.abc import Iterator

import numpy as np
import pytest
import structlog
from structlog.testing import LogCapture

from dirembed.config.models import DirEmbedConfig, IndexConfig
from dirembed.core.errors import ConfigError, ErrorCode, SerializationError
from dirembed.index.ops import DiskCachedEmbeddingIndex


class TestConstruction:
    def test_defaults_from_config(self) -> None:
        engine = DiskCachedEmbeddingIndex()

        assert engine.dotfile_name == ".dirembed_index"
        assert engine.embedder is None
        assert engine.verbosity == 0
        assert len(engine.store) == 0

    def test_from_config(self, memory_fs) -> None:
        config = DirEmbedConfig.model_validate(
            {"index": {"dotfile_name": ".custom", "verbosity": 1}}
        )

        engine = DiskCachedEmbeddingIndex.from_config(config, fs=memory_fs)

        assert engine.dotfile_name == ".custom"
        assert engine.verbosity == 1

    def test_explicit_verbosity_wins(self) -> None:
        engine = DiskCachedEmbeddingIndex(config=IndexConfig(verbosity=1), verbosity=2)
        assert engine.verbosity == 2

    def test_chunks_per_call_must_be_positive(self) -> None:
        config = IndexConfig.model_construct(**{**IndexConfig().model_dump(), "chunks_per_call": 0})

        with pytest.raises(ConfigError):
            DiskCachedEmbeddingIndex(config=config)

    def test_set_embedder_takes_effect(self, memory_fs, make_engine) -> None:
        memory_fs.write("/d/f", "abc")
        engine, first = make_engine()
        engine.set_embedder(None)
        engine.set_embedder(first)

        engine.index_path("/d")

        assert first.calls == 1


class TestLoad:
    def test_load_path_restores_records(self, sample_fs, make_engine) -> None:
        writer, _ = make_engine()
        writer.index_path("/a")
        reader, _ = make_engine()

        loaded = reader.load_path("/a")

        assert sorted(loaded) == ["/a", "/a/b", "/a/b/c/d"]
        assert sorted(reader.indexed_files()) == sorted(writer.indexed_files())
        original = writer.store.get("/a").files["one"]
        restored = reader.store.get("/a").files["one"]
        assert restored.updated_at == original.updated_at
        np.testing.assert_array_equal(
            restored.embeddings[0].vector, original.embeddings[0].vector
        )

    def test_load_path_of_file_uses_its_directory(self, sample_fs, make_engine) -> None:
        writer, _ = make_engine()
        writer.index_path("/a/b")
        reader, _ = make_engine()

        reader.load_path("/a/b/nine")

        assert sorted(reader.indexed_files()) == ["/a/b/c/d/four", "/a/b/nine"]

    def test_load_replaces_in_memory_record(self, sample_fs, make_engine) -> None:
        engine, _ = make_engine()
        engine.index_path("/a/one")
        engine.index_path("/a/two")
        engine.store.get("/a").files.pop("one")

        engine.load_dotfile("/a/.dirembed_index")

        assert sorted(engine.store.get("/a").files) == ["one", "two"]

    def test_load_paths_stops_at_first_error(self, sample_fs, make_engine) -> None:
        sample_fs.write("/a/b/.dirembed_index", b"corrupt")
        engine, _ = make_engine()

        with pytest.raises(SerializationError):
            engine.load_paths(["/a/b", "/a"])

    def test_load_missing_path(self, memory_fs, make_engine) -> None:
        engine, _ = make_engine()

        with pytest.raises(FileNotFoundError):
            engine.load_path("/missing")


class TestSave:
    def test_save_untracked_raises(self, memory_fs, make_engine) -> None:
        memory_fs.mkdir("/a")
        engine, _ = make_engine()

        with pytest.raises(ConfigError) as exc_info:
            engine.save_path("/a")

        assert exc_info.value.code == ErrorCode.CONFIG_INDEX_NOT_TRACKED

    def test_save_paths(self, sample_fs, make_engine) -> None:
        engine, _ = make_engine()
        engine.index_path("/a")
        sample_fs.writes.clear()

        written = engine.save_paths(["/a", "/a/b"])

        assert written == ["/a/.dirembed_index", "/a/b/.dirembed_index"]
        assert sample_fs.writes == written


class TestClear:
    def test_clear_subtree_keeps_ancestors(self, sample_fs, make_engine) -> None:
        engine, _ = make_engine()
        engine.index_path("/a")

        removed = engine.clear_path("/a/b")

        assert removed == ["/a/b/.dirembed_index", "/a/b/c/d/.dirembed_index"]
        assert sample_fs.exists("/a/.dirembed_index")
        assert sorted(engine.indexed_files()) == ["/a/one", "/a/two"]
        assert "/a/b/nine" not in [r.file_path for r in engine.search("9", 5)]

    def test_clear_without_dotfiles_is_noop(self, memory_fs, make_engine) -> None:
        memory_fs.mkdir("/empty")
        engine, _ = make_engine()

        assert engine.clear_path("/empty") == []

    def test_find_dotfiles_does_not_remove(self, sample_fs, make_engine) -> None:
        engine, _ = make_engine()
        engine.index_path("/a")

        found = engine.find_dotfiles("/a/b")

        assert found == ["/a/b/.dirembed_index", "/a/b/c/d/.dirembed_index"]
        assert sample_fs.exists("/a/b/.dirembed_index")


class TestIndexedFiles:
    def test_filter_under(self, sample_fs, make_engine) -> None:
        engine, _ = make_engine()
        engine.index_path("/a")

        assert sorted(engine.indexed_files(under="/a/b")) == ["/a/b/c/d/four", "/a/b/nine"]


class TestLogEvents:
    @pytest.fixture
    def captured(self) -> Iterator[LogCapture]:
        capture = LogCapture()
        structlog.reset_defaults()
        structlog.configure(processors=[structlog.contextvars.merge_contextvars, capture])
        yield capture
        structlog.reset_defaults()

    def test_events_carry_operation_and_counts(
        self, captured: LogCapture, sample_fs, make_engine
    ) -> None:
        # Given - "four" is twelve bytes, so three 4-byte chunks
        sample_fs.write("/a/b/c/d/four", "444444444444")
        engine, _ = make_engine(chunk_size=4)

        # When
        engine.index_path("/a/b/c")
        engine.load_path("/a/b/c")

        # Then
        saved = [e for e in captured.entries if e["event"] == "persistence.saved"]
        assert saved == [
            {
                "event": "persistence.saved",
                "log_level": "info",
                "operation": "index_path",
                "path": "/a/b/c/d/.dirembed_index",
                "files": 1,
                "embeddings": 3,
            }
        ]
        loaded = [e for e in captured.entries if e["event"] == "persistence.loaded"]
        assert [(e["operation"], e["embeddings"]) for e in loaded] == [("load_path", 3)]

    def test_operation_is_unbound_afterwards(
        self, captured: LogCapture, sample_fs, make_engine
    ) -> None:
        engine, _ = make_engine()
        engine.index_path("/a")
        engine.search("1", 1)

        assert captured.entries
        assert "operation" not in structlog.contextvars.get_contextvars()
