"""dirembed CLI - dirembed command."""

from pathlib import Path

import click

from dirembed import __version__
from dirembed.cli.clear import clear_command
from dirembed.cli.index import index_command
from dirembed.cli.search import search_command
from dirembed.cli.show import show_command
from dirembed.cli.utils import load_cli_config
from dirembed.config.constants import VERBOSITY_MAX
from dirembed.core.logging import configure_logging, level_for_verbosity


@click.group()
@click.version_option(version=__version__, prog_name="dirembed")
@click.option("-v", "--verbose", count=True, help="Diagnostic output (-v key events, -vv detail)")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Extra YAML config layered over the global one",
)
@click.pass_context
def cli(ctx: click.Context, verbose: int, config_path: Path | None) -> None:
    """dirembed - Embedding cache and semantic search for directories."""
    ctx.ensure_object(dict)
    config = load_cli_config(config_path)
    ctx.obj["verbose"] = min(verbose, VERBOSITY_MAX)
    ctx.obj["config"] = config
    if verbose:
        configure_logging(level=level_for_verbosity(verbose))
    else:
        configure_logging(config=config.logging)


cli.add_command(index_command, name="index")
cli.add_command(search_command, name="search")
cli.add_command(show_command, name="show")
cli.add_command(clear_command, name="clear")


if __name__ == "__main__":
    cli()
