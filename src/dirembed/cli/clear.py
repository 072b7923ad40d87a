"""dirembed clear command - remove cached dotfiles."""

from pathlib import Path

import click
import questionary
from rich.console import Console

from dirembed.cli.utils import build_index, cancel_on_interrupt, handle_errors


@click.command()
@click.argument(
    "paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clear_command(ctx: click.Context, paths: tuple[Path, ...], yes: bool) -> None:
    """Delete every cache dotfile at or below PATHS.

    Parent directories of PATHS keep their caches.
    """
    console = Console(stderr=True)

    with handle_errors(), cancel_on_interrupt() as cancel_event:
        engine = build_index(ctx, with_embedder=False)
        dotfiles = [
            dotfile
            for path in paths
            for dotfile in engine.find_dotfiles(path, cancel_event=cancel_event)
        ]

        if not dotfiles:
            console.print("[yellow]Nothing to clear[/yellow] - no cache files found")
            return

        console.print("\n[bold]The following will be permanently deleted:[/bold]\n")
        for dotfile in dotfiles:
            console.print(f"  [cyan]•[/cyan] {dotfile}")
        console.print()

        if not yes:
            answer = questionary.select(
                "This action cannot be undone. Are you sure?",
                choices=[
                    questionary.Choice("No, keep the caches", value=False),
                    questionary.Choice("Yes, delete them", value=True),
                ],
                style=questionary.Style(
                    [
                        ("question", "bold"),
                        ("highlighted", "fg:red bold"),
                        ("selected", "fg:red"),
                    ]
                ),
            ).ask()

            if not answer:
                console.print("[dim]Cancelled[/dim]")
                return

        removed = engine.clear_paths(paths, cancel_event=cancel_event)

    for dotfile in removed:
        console.print(f"  [green]✓[/green] Removed {dotfile}")
