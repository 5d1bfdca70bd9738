"""
Engine configuration.

The single public entry point for runtime config is ``get_active_config()``:
it loads the YAML file named by ``LINEN_CONFIG_PATH`` when set, otherwise
returns the defaults.
"""

import os
from pathlib import Path

from linen_config.loader import compute_checksum, load_config
from linen_config.schema import EngineConfig

CONFIG_PATH_ENV = "LINEN_CONFIG_PATH"


def get_active_config(path: Path | str | None = None) -> EngineConfig:
    """Return the EngineConfig for this process."""
    path = path or os.environ.get(CONFIG_PATH_ENV)
    if path:
        return load_config(path)
    return EngineConfig.with_defaults()


__all__ = [
    "CONFIG_PATH_ENV",
    "EngineConfig",
    "compute_checksum",
    "get_active_config",
    "load_config",
]
