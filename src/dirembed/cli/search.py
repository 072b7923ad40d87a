"""dirembed search command - semantic search over cached directories."""

import json
from pathlib import Path

import click

from dirembed.cli.utils import build_index, cancel_on_interrupt, handle_errors
from dirembed.config import DirEmbedConfig
from dirembed.core.progress import status


@click.command()
@click.argument("query")
@click.option(
    "-p",
    "--path",
    "paths",
    multiple=True,
    type=click.Path(exists=True, path_type=Path),
    help="Directory whose caches are searched (repeatable, default: .)",
)
@click.option("-k", "num_results", type=int, default=None, help="Number of results")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def search_command(
    ctx: click.Context,
    query: str,
    paths: tuple[Path, ...],
    num_results: int | None,
    as_json: bool,
) -> None:
    """Find the chunks most similar to QUERY.

    Only directories that already have a cache are searched; run
    'dirembed index' first.
    """
    config: DirEmbedConfig = ctx.obj["config"]
    k = config.search.default_k if num_results is None else num_results

    with handle_errors(), cancel_on_interrupt() as cancel_event:
        engine = build_index(ctx)
        engine.load_paths(paths or (Path("."),), cancel_event=cancel_event)
        if len(engine.store) == 0:
            raise click.ClickException("No index found. Run 'dirembed index PATH' first.")
        results = engine.search(query, k, cancel_event=cancel_event)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
        return

    if not results:
        status("No results", style="warning")
        return

    for result in results:
        click.echo(f"{result.score:.4f}  {result.file_path}  [{result.start}:{result.end}]")
        for line in (result.content or "").splitlines():
            click.echo(f"    {line}")
