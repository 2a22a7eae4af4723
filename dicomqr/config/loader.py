"""
YAML configuration loader for *dicomqr*.

Search order for the configuration file (first hit wins):

1. An explicit path argument (``--config`` on the CLI).
2. Path specified via the ``DICOMQR_CONFIG`` environment variable.
3. ``$(pwd)/dicomqr.yaml`` relative to the current process.
4. The packaged default ``dicomqr/config/config.yaml``.

The parsed document is validated against
:class:`dicomqr.config.schema.ConfigSchema`; every failure surfaces as a
:class:`dicomqr.errors.ConfigError`.
"""

from __future__ import annotations

import os
from importlib.resources import files
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog
from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from dicomqr.errors import ConfigError

from .schema import ConfigSchema

log = structlog.get_logger()

LOCAL_NAME = "dicomqr.yaml"


def _packaged_default() -> Path:
    try:
        return Path(str(files("dicomqr.config") / "config.yaml"))
    except ModuleNotFoundError:
        return Path(__file__).with_name("config.yaml")


def _candidate_paths() -> Iterable[Path]:
    """Yield configuration paths in priority order without existence checks."""
    env_override = os.getenv("DICOMQR_CONFIG")
    if env_override:
        yield Path(env_override).expanduser()
    yield Path.cwd() / LOCAL_NAME
    yield _packaged_default()


def resolve_config_path(config_path: Optional[str | Path] = None) -> Path:
    """Return the configuration file that :func:`load_config` would read.

    Raises:
        ConfigError: If an explicit path is given but does not exist, or no
            candidate exists at all.
    """
    if config_path:
        explicit = Path(config_path).expanduser()
        if not explicit.is_file():
            raise ConfigError(f"Configuration file not found at {explicit}")
        return explicit

    for candidate in _candidate_paths():
        if candidate.is_file():
            return candidate
    raise ConfigError("No configuration file found")


def _load_yaml(path: Path) -> dict[str, Any]:
    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as stream:
            data = yaml.load(stream)
    except YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_config(config_path: Optional[str | Path] = None) -> ConfigSchema:
    """Load, validate and return the configuration.

    Args:
        config_path: Optional explicit YAML path.

    Returns:
        Validated :class:`ConfigSchema` instance.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid.
    """
    path = resolve_config_path(config_path)
    raw = _load_yaml(path)
    try:
        cfg = ConfigSchema.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}:\n{exc}") from exc
    log.debug("config.loaded", path=str(path), servers=len(cfg.servers))
    return cfg
