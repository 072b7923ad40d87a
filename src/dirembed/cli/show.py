"""dirembed show command - list cached files."""

import json
from pathlib import Path

import click

from dirembed.cli.utils import build_index, cancel_on_interrupt, handle_errors
from dirembed.core.progress import pluralize, status


@click.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show_command(ctx: click.Context, paths: tuple[Path, ...], as_json: bool) -> None:
    """List the files cached under PATHS (default: current directory)."""
    roots = paths or (Path("."),)
    files: list[str] = []

    with handle_errors(), cancel_on_interrupt() as cancel_event:
        engine = build_index(ctx, with_embedder=False)
        for root in roots:
            engine.load_path(root, cancel_event=cancel_event)
        for root in roots:
            files.extend(f for f in engine.indexed_files(under=root) if f not in files)

    if as_json:
        click.echo(json.dumps({"files": files, "directories": list(engine.store)}))
        return

    for file_path in files:
        click.echo(file_path)
    status(
        f"{pluralize(len(files), 'file')} in {pluralize(len(engine.store), 'directory', 'directories')}",
        style="none",
    )
