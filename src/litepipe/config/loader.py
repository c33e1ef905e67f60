"""Load the stream configuration from ~/.litepipe/config.yml or LITEPIPE_CONFIG.

The YAML file may hold any field of ``StreamConfigModel``. A handful of
environment variables override the file so a single run can be adjusted
without editing it.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from litepipe.sdk.stream.models import StreamConfigModel

logger = logging.getLogger(__name__)

__all__ = ["load_stream_config", "default_config_path"]


def _as_flag(value: str) -> bool:
    return value.lower() in ("1", "true", "yes")


# Environment variable -> (config key, converter)
_ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "LITEPIPE_SQLITE_PROGRAM": ("program", str),
    "LITEPIPE_QUIT_TIMEOUT": ("quit_timeout", float),
    "LITEPIPE_USE_PTY": ("use_pty", _as_flag),
    "LITEPIPE_PTY_RELAY": ("pty_relay", str),
    "LITEPIPE_CONVERT_NUMBERS": ("convert_numbers", _as_flag),
}


def default_config_path() -> Path:
    return Path(os.environ.get("LITEPIPE_CONFIG", Path.home() / ".litepipe" / "config.yml"))


def _apply_env_overrides(config_data: dict[str, Any]) -> None:
    for env_var, (key, convert) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if raw is None or raw == "":
            continue
        try:
            config_data[key] = convert(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {env_var}: {raw!r}") from e
        logger.debug(f"{key} overridden by {env_var}")


def load_stream_config(path: str | Path | None = None) -> StreamConfigModel:
    """Load the stream configuration.

    Args:
        path: Explicit config file; defaults to LITEPIPE_CONFIG or ~/.litepipe/config.yml

    Returns:
        StreamConfigModel, with defaults when no file exists

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist
        ValueError: If the file is not a valid configuration
    """
    explicit = path is not None or "LITEPIPE_CONFIG" in os.environ
    config_path = Path(path) if path is not None else default_config_path()

    config_data: dict[str, Any] = {}
    if config_path.exists():
        logger.debug(f"Loading stream config from: {config_path}")
        with open(config_path) as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"litepipe config at {config_path} must be a mapping")
        config_data.update(loaded)
    elif explicit:
        raise FileNotFoundError(f"litepipe config not found at {config_path}")

    _apply_env_overrides(config_data)

    try:
        return StreamConfigModel.model_validate(config_data)
    except ValidationError as exc:
        raise ValueError(f"Invalid litepipe config at {config_path}: {exc}") from exc
