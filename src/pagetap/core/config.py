"""pagetap configuration — layered option loading.

Layers, later wins:
    1. Model defaults
    2. ``pagetap.config.yaml`` (explicit path, or found in cwd / parents / ``.pagetap/``)
    3. ``PAGETAP_<SECTION>__<OPTION>`` environment variables
    4. Command-line overrides

Each layer is checked on its own, so an unknown option is reported together
with the file or source that introduced it. The ``session`` section accepts
exactly the options a script may change with ``Session.set``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from pagetap.core.exceptions import ConfigError
from pagetap.core.models import Config, DriverConfig, ReportConfig, SessionConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "pagetap.config.yaml"
ENV_PREFIX = "PAGETAP_"
ENV_DELIMITER = "__"

SECTIONS: dict[str, type[BaseModel]] = {
    "session": SessionConfig,
    "driver": DriverConfig,
    "report": ReportConfig,
}


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Config:
    """Build the Config for one run.

    Args:
        config_path: YAML file to use. Searched for when None.
        overrides: Command-line values, nested by section.

    Raises:
        ConfigError: On a missing or unreadable file, an unknown section or
            option, or a value that fails validation.
    """
    layers: list[tuple[str, dict[str, Any]]] = []

    path = _resolve_config_path(config_path)
    if path is not None:
        logger.debug("Using config file %s", path)
        layers.append((str(path), _load_yaml(path)))
    layers.append(("environment", _collect_env_vars()))
    if overrides:
        layers.append(("command line", overrides))

    merged: dict[str, Any] = {}
    for source, data in layers:
        _check_options(source, data)
        merged = _deep_merge(merged, data)

    try:
        return Config(**merged)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        msg = f"Config validation failed: {problems}"
        raise ConfigError(msg) from e


def _resolve_config_path(config_path: Path | None) -> Path | None:
    if config_path is None:
        return _find_config_file()
    if not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise ConfigError(msg)
    return config_path


def _find_config_file() -> Path | None:
    """Search cwd, then parent directories."""
    current = Path.cwd()
    for directory in [current, *current.parents]:
        for candidate in (
            directory / DEFAULT_CONFIG_FILENAME,
            directory / ".pagetap" / DEFAULT_CONFIG_FILENAME,
        ):
            if candidate.is_file():
                return candidate
    return None


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:  # noqa: PTH123
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse YAML: {path}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Failed to read config: {path}: {e}"
        raise ConfigError(msg) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Config file must be a YAML mapping, got {type(data).__name__}: {path}"
        raise ConfigError(msg)
    return data


def _check_options(source: str, data: dict[str, Any]) -> None:
    """Reject sections and options the models do not define."""
    for section, values in data.items():
        model = SECTIONS.get(section)
        if model is None:
            msg = f"{source}: unknown config section {section!r}"
            raise ConfigError(msg)
        if not isinstance(values, dict):
            msg = f"{source}: section {section!r} must be a mapping"
            raise ConfigError(msg)
        unknown = sorted(set(values) - set(model.model_fields))
        if unknown:
            msg = f"{source}: unknown {section} option(s): {', '.join(unknown)}"
            raise ConfigError(msg)


def _collect_env_vars() -> dict[str, Any]:
    """Collect ``PAGETAP_<SECTION>__<OPTION>`` variables into a nested dict.

    Prefixed variables that name no section (``PAGETAP_HOME`` and the like)
    belong to other tools and are skipped.
    """
    result: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        section, sep, option = key[len(ENV_PREFIX) :].lower().partition(ENV_DELIMITER)
        if not sep or section not in SECTIONS:
            logger.debug("Ignoring environment variable %s", key)
            continue
        result.setdefault(section, {})[option] = value
    return result


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override wins on conflicts."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
