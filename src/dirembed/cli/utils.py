"""CLI utilities."""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import FrameType
from typing import Any

import click
import structlog

from dirembed.config import DirEmbedConfig, load_config
from dirembed.core.errors import DirEmbedError
from dirembed.core.logging import get_log_file_path
from dirembed.embedding import Embedder, FastEmbedEmbedder
from dirembed.index.ops import DiskCachedEmbeddingIndex

log = structlog.get_logger()


def load_cli_config(config_path: Path | None) -> DirEmbedConfig:
    """Load config for a CLI invocation, surfacing errors as ClickException."""
    with handle_errors():
        return load_config(config_path)


def make_embedder(config: DirEmbedConfig) -> Embedder:
    """Build the embedder named by the config. The model loads on first use."""
    return FastEmbedEmbedder(
        config.embedder.model_name,
        threads=config.embedder.threads,
        cache_dir=config.embedder.cache_dir,
    )


def build_index(ctx: click.Context, *, with_embedder: bool = True) -> DiskCachedEmbeddingIndex:
    """Create the engine for the current command from ``ctx.obj``.

    Commands that only read or delete caches pass ``with_embedder=False``.
    """
    config: DirEmbedConfig = ctx.obj["config"]
    embedder = make_embedder(config) if with_embedder else None
    verbosity = ctx.obj["verbose"] or None
    return DiskCachedEmbeddingIndex.from_config(config, embedder, verbosity=verbosity)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Translate library and filesystem errors into ClickException.

    When a log file is configured the failure is also logged there and the
    message points at it.
    """
    try:
        yield
    except DirEmbedError as e:
        message = _with_log_pointer(e.message, error=e.error_name, **e.details)
        raise click.ClickException(message) from e
    except OSError as e:
        where = f"{e.filename}: " if e.filename else ""
        message = _with_log_pointer(
            f"{where}{e.strerror or e}", error=type(e).__name__, path=e.filename
        )
        raise click.ClickException(message) from e


def _with_log_pointer(message: str, **context: Any) -> str:
    log_file = get_log_file_path()
    if log_file is None:
        return message
    log.error("cli.failed", message=message, **context)
    return f"{message} See {log_file} for details."


@contextmanager
def cancel_on_interrupt() -> Iterator[threading.Event]:
    """Yield an event that is set on Ctrl-C, for cooperative cancellation.

    The first SIGINT sets the event so the running operation stops at its
    next checkpoint; the previous handler is restored on exit.
    """
    event = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield event
        return

    def _on_interrupt(_signum: int, _frame: FrameType | None) -> None:
        event.set()

    previous = signal.signal(signal.SIGINT, _on_interrupt)
    try:
        yield event
    finally:
        signal.signal(signal.SIGINT, previous)
