"""Project configuration: codec defaults loaded from ``ason.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ason.contracts.options import CodecOptions
from ason.io.fileops import read_text_safe

CONFIG_FILENAME = "ason.yaml"


class ConfigError(ValueError):
    """The configuration file is not a mapping of codec options."""


def load_config(path: str | Path) -> dict[str, Any]:
    """Load codec option overrides from a YAML file.

    Keys use the option names (``indent``, ``delimiter``, ``strict``, ...);
    dashes are accepted in place of underscores.
    """
    text = read_text_safe(path)
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping of codec options")
    overrides = {str(k).replace("-", "_"): v for k, v in data.items()}
    unknown = sorted(set(overrides) - set(CodecOptions.model_fields))
    if unknown:
        raise ConfigError(f"Unknown option(s) in {path}: {', '.join(unknown)}")
    return overrides


def find_config(directory: str | Path) -> Path | None:
    """Return ``ason.yaml`` in ``directory`` when it exists."""
    path = Path(directory) / CONFIG_FILENAME
    return path if path.exists() else None
