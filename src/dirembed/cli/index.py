"""dirembed index command - embed new and changed files."""

from pathlib import Path

import click

from dirembed.cli.utils import build_index, cancel_on_interrupt, handle_errors
from dirembed.core.progress import pluralize, status, task


@click.command()
@click.argument(
    "paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@click.option("--force", is_flag=True, help="Re-embed files even if their cache is current")
@click.option("--chunk-size", type=int, default=None, help="Bytes per chunk (default from config)")
@click.option(
    "--max-chunks", type=int, default=None, help="Chunks kept per file, 0 for no cap"
)
@click.pass_context
def index_command(
    ctx: click.Context,
    paths: tuple[Path, ...],
    force: bool,
    chunk_size: int | None,
    max_chunks: int | None,
) -> None:
    """Index files under PATHS, reusing caches that are still current.

    Existing dotfiles below each path are loaded first so that only new or
    modified files are sent to the embedder.
    """
    embedded = 0
    with handle_errors(), cancel_on_interrupt() as cancel_event:
        engine = build_index(ctx)
        for path in paths:
            engine.load_path(path, cancel_event=cancel_event)
            with task(f"Indexing {path}"):
                embedded += engine.index_path(
                    path,
                    force_update=force,
                    chunk_size=chunk_size,
                    max_chunks=max_chunks,
                    cancel_event=cancel_event,
                )

    status(f"Embedded {pluralize(embedded, 'file')}", style="success")
