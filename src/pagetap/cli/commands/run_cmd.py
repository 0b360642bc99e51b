"""pagetap run — execute one test script and exit with its TAP status."""

from __future__ import annotations

import logging
import runpy
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import typer

from pagetap.core.config import load_config
from pagetap.core.exceptions import ConfigError, PageTapError, ScriptError
from pagetap.core.models import Config
from pagetap.core.session import Session
from pagetap.engine import DRIVER_REGISTRY
from pagetap.reporters import REPORTER_REGISTRY

SCRIPT_ENTRY_POINT = "main"


def run_command(
    script_path: str = typer.Argument(help="Test script (.py) defining main(t)."),
    base_url: str | None = typer.Option(None, "--base-url", "-u", help="Base URL for navigate()."),
    config_path: str | None = typer.Option(None, "--config", "-c", help="Config file path."),
    timeout: int | None = typer.Option(None, "--timeout", help="Async step timeout in ms."),
    width: int | None = typer.Option(None, "--width", help="Viewport width."),
    height: int | None = typer.Option(None, "--height", help="Viewport height."),
    headed: bool = typer.Option(False, "--headed", help="Show the browser window."),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging on stderr."),
) -> None:
    """Run a test script, print TAP and exit with its status."""
    _configure_logging(verbose)
    session: Session | None = None
    try:
        path = Path(script_path)
        entry = load_script(path)
        overrides = _build_overrides(base_url, timeout, width, height, headed)
        config = load_config(
            config_path=Path(config_path) if config_path else None,
            overrides=overrides,
        )
        session = build_session(config)
        _call_entry(entry, session, path)
        if not session.finish_queued:
            session.finish()
    except PageTapError as e:
        typer.echo(f"Error: {e}", err=True)
        if session is not None:
            session.close()
        raise typer.Exit(code=1) from None

    raise typer.Exit(code=session.run())


def build_session(config: Config) -> Session:
    """Create a Session with the driver and reporter the config selects.

    Raises:
        ConfigError: If ``driver.type`` or ``report.format`` is not registered.
    """
    driver_cls = DRIVER_REGISTRY.get(config.driver.type)
    if driver_cls is None:
        msg = f"Unknown driver type: {config.driver.type}"
        raise ConfigError(msg)
    reporter_cls = REPORTER_REGISTRY.get(config.report.format)
    if reporter_cls is None:
        msg = f"Unknown report format: {config.report.format}"
        raise ConfigError(msg)
    return Session(
        config=config.session,
        driver=driver_cls(config.driver),
        reporter=reporter_cls(),
    )


def load_script(path: Path) -> Callable[[Session], Any]:
    """Load a test script and return its ``main`` function.

    Raises:
        ScriptError: If the file is missing, fails to import or defines no
            callable ``main``.
    """
    if not path.is_file():
        msg = f"Script not found: {path}"
        raise ScriptError(msg)
    try:
        namespace = runpy.run_path(str(path), run_name="__pagetap__")
    except Exception as e:
        msg = f"Failed to load {path}: {type(e).__name__}: {e}"
        raise ScriptError(msg) from e
    entry = namespace.get(SCRIPT_ENTRY_POINT)
    if not callable(entry):
        msg = f"{path} does not define {SCRIPT_ENTRY_POINT}(t)"
        raise ScriptError(msg)
    return entry


def _call_entry(entry: Callable[[Session], Any], session: Session, path: Path) -> None:
    try:
        entry(session)
    except PageTapError:
        raise
    except Exception as e:
        msg = f"{path}: {SCRIPT_ENTRY_POINT}(t) raised {type(e).__name__}: {e}"
        raise ScriptError(msg) from e


def _build_overrides(
    base_url: str | None,
    timeout: int | None,
    width: int | None,
    height: int | None,
    headed: bool,
) -> dict[str, Any]:
    session = {
        key: value
        for key, value in (
            ("base_url", base_url),
            ("timeout", timeout),
            ("width", width),
            ("height", height),
        )
        if value is not None
    }
    overrides: dict[str, Any] = {}
    if session:
        overrides["session"] = session
    if headed:
        overrides["driver"] = {"headless": False}
    return overrides


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
