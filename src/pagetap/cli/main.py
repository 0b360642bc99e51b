"""pagetap CLI entry point."""

import typer

app = typer.Typer(
    name="pagetap",
    help="pagetap — browser acceptance tests with TAP output",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        from pagetap import __version__

        typer.echo(f"pagetap {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """pagetap — browser acceptance tests with TAP output."""


# -- Register commands --------------------------------------------------------

from pagetap.cli.commands.config_cmd import config_app  # noqa: E402
from pagetap.cli.commands.run_cmd import run_command  # noqa: E402

app.command(name="run")(run_command)
app.add_typer(config_app, name="config")
