"""pagetap config — configuration inspection."""

from __future__ import annotations

from pathlib import Path

import typer
import yaml

from pagetap.core.config import load_config
from pagetap.core.exceptions import ConfigError

config_app = typer.Typer(
    name="config",
    help="Configuration commands.",
    no_args_is_help=True,
)


@config_app.command(name="show")
def config_show(
    config_path: str | None = typer.Option(None, "--config", "-c", help="Config file path."),
) -> None:
    """Show the merged configuration."""
    try:
        path = Path(config_path) if config_path else None
        config = load_config(config_path=path)
        data = config.model_dump(mode="json")
        output = yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
        typer.echo(output)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None
