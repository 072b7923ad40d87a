"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (DIREMBED__SECTION__KEY)
3. Explicit YAML (--config PATH)
4. Global YAML (~/.config/dirembed/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    DIREMBED__<SECTION>__<KEY>=<VALUE>

Examples:
    DIREMBED__LOGGING__LEVEL=DEBUG
    DIREMBED__INDEX__CHUNK_SIZE=1024
    DIREMBED__EMBEDDER__MODEL_NAME=BAAI/bge-base-en-v1.5
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from dirembed.config.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CHUNKS_PER_CALL,
    DEFAULT_DOTFILE_NAME,
    DEFAULT_EMBED_MODEL,
    DEFAULT_MAX_CHUNKS,
    DEFAULT_SEARCH_K,
    VERBOSITY_MAX,
)
from dirembed.core.excludes import DEFAULT_IGNORE_DIRS, DEFAULT_IGNORE_FILES

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        DIREMBED__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG also shows per-file diagnostics.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Indexing configuration.

    Env vars:
        DIREMBED__INDEX__CHUNK_SIZE: Bytes per chunk window
        DIREMBED__INDEX__MAX_CHUNKS: Chunks kept per file (0 = no cap)
        DIREMBED__INDEX__CHUNKS_PER_CALL: Chunks per embedder call
        DIREMBED__INDEX__DOTFILE_NAME: Name of the per-directory cache file
        DIREMBED__INDEX__VERBOSITY: Diagnostic detail (0 = silent)
    """

    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        description="Bytes per chunk window. Larger windows mean fewer, coarser results.",
    )
    max_chunks: int = Field(
        default=DEFAULT_MAX_CHUNKS,
        description="Maximum chunks embedded per file; the rest of the file is skipped. "
        "0 disables the cap.",
    )
    chunks_per_call: int = Field(
        default=DEFAULT_CHUNKS_PER_CALL,
        description="Chunks sent to the embedder in one call.",
    )
    dotfile_name: str = Field(
        default=DEFAULT_DOTFILE_NAME,
        description="File name of the per-directory cache. Must be a hidden name "
        "so the cache is never indexed itself.",
    )
    ignore_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE_DIRS),
        description="Directory base names that are never recursed into.",
    )
    ignore_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE_FILES),
        description="File base names that are never indexed.",
    )
    verbosity: int = Field(
        default=0,
        description="Diagnostic detail: 0 silent, 1 key events, 2 per-file detail.",
    )

    @field_validator("chunk_size", "chunks_per_call")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Must be greater than 0, got {v}")
        return v

    @field_validator("dotfile_name")
    @classmethod
    def validate_dotfile_name(cls, v: str) -> str:
        if not v.startswith(".") or "/" in v or v in (".", ".."):
            raise ValueError(f"Dotfile name must be a hidden base name, got {v!r}")
        return v

    @field_validator("verbosity")
    @classmethod
    def validate_verbosity(cls, v: int) -> int:
        if not (0 <= v <= VERBOSITY_MAX):
            raise ValueError(f"Verbosity must be 0-{VERBOSITY_MAX}, got {v}")
        return v


class EmbedderConfig(BaseModel):
    """Embedding model configuration.

    Env vars:
        DIREMBED__EMBEDDER__MODEL_NAME: fastembed model name
        DIREMBED__EMBEDDER__THREADS: ONNX runtime threads (default: half the CPUs)
    """

    model_name: str = Field(
        default=DEFAULT_EMBED_MODEL,
        description="fastembed model. Changing it invalidates existing caches "
        "(vector dimensions differ between models).",
    )
    threads: int | None = Field(
        default=None,
        description="ONNX runtime threads. None picks half the available CPUs.",
    )
    cache_dir: str | None = Field(
        default=None,
        description="Where fastembed stores downloaded model files.",
    )


class SearchConfig(BaseModel):
    """Search defaults.

    Env vars:
        DIREMBED__SEARCH__DEFAULT_K: Results returned when -k is not given
    """

    default_k: int = Field(
        default=DEFAULT_SEARCH_K,
        description="Default number of results.",
    )

    @field_validator("default_k")
    @classmethod
    def validate_default_k(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Must be greater than 0, got {v}")
        return v


class DirEmbedConfig(BaseModel):
    """Root configuration for dirembed.

    All settings can be configured via:
    1. Environment variables: DIREMBED__SECTION__KEY
    2. YAML config files (explicit or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
