"""Utilities for loading the local (gitignored) mirror configuration file."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ConfigError

DEFAULT_CONFIG_FILENAME = "config.json"


def _default_config_path() -> Path:
    return Path(os.getenv("MIRROR_CONFIG_FILE") or DEFAULT_CONFIG_FILENAME)


def load_local_config(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load the JSON config object; raise ConfigError when it cannot be used."""

    config_path = Path(path or _default_config_path()).expanduser()
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise ConfigError(
            f"cannot read config file {config_path}: {exc}",
            details={"path": str(config_path)},
        ) from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(
            f"parse config file {config_path} failed: {exc}",
            details={"path": str(config_path)},
        ) from exc

    if not isinstance(data, dict):
        raise ConfigError(f"config file {config_path} must contain a JSON object")
    return data


__all__ = ["load_local_config", "DEFAULT_CONFIG_FILENAME"]
