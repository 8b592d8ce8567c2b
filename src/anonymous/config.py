"""Settings for builders, loaded from TOML files and environment variables."""

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ANONYMOUS_CONFIG"

# Setting name -> environment variable overriding it
ENV_OVERRIDES = {
    "strict_annotations": "ANONYMOUS_STRICT_ANNOTATIONS",
    "single_use_builders": "ANONYMOUS_SINGLE_USE_BUILDERS",
}


class ConfigError(Exception):
    """Configuration error."""

    pass


class AnonymousSettings(BaseModel):
    """Builder behavior switches.

    strict_annotations: unannotated parameters and return types on a
        candidate implementation no longer match any declared type or mode.
    single_use_builders: a builder rejects further registrations and
        further ``build()`` / ``create()`` calls once it has built.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    strict_annotations: bool = False
    single_use_builders: bool = False


def _read_section(path: Path) -> dict[str, Any]:
    """Read the ``[anonymous]`` table, or ``[tool.anonymous]`` in pyproject.toml."""
    with path.open("rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    if section := raw.get("anonymous"):
        return dict(section)
    return dict(raw.get("tool", {}).get("anonymous", {}))


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    for key, env_var in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value is not None and value.strip():
            data[key] = value.strip()
    return data


def load_settings(path: Path | str | None = None) -> AnonymousSettings:
    """Load settings from a TOML file plus environment overrides.

    Args:
        path: Config file. If None, ``$ANONYMOUS_CONFIG`` is used when set;
            otherwise only the environment is consulted.

    Returns:
        Validated AnonymousSettings instance.

    Raises:
        ConfigError: If the file is missing or a value is invalid.
    """
    if path is None and (env_path := os.environ.get(CONFIG_ENV_VAR)):
        path = env_path

    data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        data = _read_section(config_path)
        logger.debug("Loaded settings", extra={"path": str(config_path)})

    data = _apply_env_overrides(data)
    try:
        return AnonymousSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e


_settings: AnonymousSettings | None = None
_settings_lock = threading.Lock()


def get_settings() -> AnonymousSettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    with _settings_lock:
        if _settings is None:
            _settings = load_settings()
        return _settings


def set_settings(settings: AnonymousSettings | None) -> None:
    """Replace the process-wide settings. None reloads them on next use."""
    global _settings
    with _settings_lock:
        _settings = settings
