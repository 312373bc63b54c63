"""Load service YAML files into plain dicts for the pydantic config models."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def load_yaml(config_path: str) -> dict[str, Any]:
    """Read *config_path* with ``yaml.safe_load``.

    An empty document yields ``{}``. The result is not schema-checked; hand
    it to a model such as
    [RouterConfig][nostrpush.services.router.configs.RouterConfig].

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: On invalid YAML.
        ConfigurationError: If the top level is not a mapping.
    """
    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {config_path} must contain a mapping, got {type(data).__name__}"
        )
    return data
