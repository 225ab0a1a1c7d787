"""Configuration resolution with precedence and XDG paths.

A ``connect`` run is driven by one :class:`~specbind.models.GenerationConfig`.
This module builds it from four layers:

1. CLI flags passed to :func:`resolve_config` (highest precedence).
2. Environment variables (``SPECBIND_BASE_URL``, ``SPECBIND_FRAMEWORK``,
   ``SPECBIND_OUTPUT``, ``SPECBIND_AUTH``, ``SPECBIND_MOCK``,
   ``SPECBIND_SPEC``).
3. Project-local ``./specbind.json`` (also the place for policy knobs such as
   ``public_paths`` or ``csrf`` that have no CLI flag).
4. Model defaults.

Nothing is persisted between runs. The only directory specbind writes to
outside the output directory is the data directory used for crash logs
(:func:`get_data_dir`).
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specbind.exceptions import ConfigError
from specbind.models import GenerationConfig

_APP_NAME = "specbind"
_PROJECT_CONFIG_FILENAME = "specbind.json"

_ENV_VARS: dict[str, str] = {
    "base_url": "SPECBIND_BASE_URL",
    "framework": "SPECBIND_FRAMEWORK",
    "output_dir": "SPECBIND_OUTPUT",
    "auth_mode": "SPECBIND_AUTH",
    "mock": "SPECBIND_MOCK",
    "spec": "SPECBIND_SPEC",
}

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off", ""})


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/specbind/`` (default ``~/.local/share/specbind/``).
    On macOS/Windows: ``~/.specbind/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Project-local config ---


def load_project_config(directory: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``specbind.json``.

    Args:
        directory: Directory to look in. Defaults to the current working
            directory.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = (directory or Path.cwd()) / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a JSON object")
    return data


def _env_overrides() -> dict[str, Any]:
    """Collect ``SPECBIND_*`` environment overrides."""
    overrides: dict[str, Any] = {}
    for field, var in _ENV_VARS.items():
        value = os.environ.get(var)
        if value is None:
            continue
        if field == "mock":
            lowered = value.strip().lower()
            if lowered in _TRUTHY:
                overrides[field] = True
            elif lowered in _FALSY:
                overrides[field] = False
            else:
                raise ConfigError(f"{var} must be a boolean, got '{value}'")
        elif value:
            overrides[field] = value
    return overrides


# --- Precedence resolution ---


def resolve_config(
    project_dir: Optional[Path] = None,
    **cli_overrides: Any,
) -> GenerationConfig:
    """Resolve the effective :class:`~specbind.models.GenerationConfig`.

    Precedence (high to low):
        1. Keyword arguments whose value is not ``None`` (CLI flags)
        2. ``SPECBIND_*`` environment variables
        3. Project config (``./specbind.json``)
        4. Model defaults

    Args:
        project_dir: Where to look for ``specbind.json``. Defaults to the
            current working directory.
        **cli_overrides: Field values from the command line. ``None`` means
            "not given".

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If the merged values fail validation (missing base URL,
            unknown keys in ``specbind.json``, out-of-range numbers).
    """
    merged: dict[str, Any] = {}

    project = load_project_config(project_dir)
    if project is not None:
        merged.update(project)

    merged.update(_env_overrides())

    merged.update({k: v for k, v in cli_overrides.items() if v is not None})

    if not merged.get("base_url"):
        raise ConfigError(
            "A backend base URL is required (argument or SPECBIND_BASE_URL)"
        )
    merged["base_url"] = str(merged["base_url"]).rstrip("/")

    try:
        return GenerationConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
