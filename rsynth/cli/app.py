from __future__ import annotations

import typer

from rsynth import __version__
from rsynth.cli.commands.plan import plan
from rsynth.cli.commands.synth import synth


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(synth)
app.command()(plan)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Generate release workflows and tasks from rsynth.toml."""


def main() -> None:
    app()
