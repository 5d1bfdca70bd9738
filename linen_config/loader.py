"""
Configuration Loader (``linen_config.loader``).

Loads an ``EngineConfig`` from a YAML file.  The file holds a flat mapping
of ``EngineConfig`` field names, optionally nested under an ``engine`` key:

    engine:
      vat_rate: "0.15"
      max_unit_price: 1000

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from linen_config.schema import EngineConfig
from linen_kernel.logging_config import get_logger

logger = get_logger("config.loader")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping, got {type(data).__name__}")
    return data


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """Build an EngineConfig from a parsed document."""
    section = data.get("engine", data)
    if not isinstance(section, dict):
        raise ValueError("'engine' section must be a mapping")
    return EngineConfig.from_dict(dict(section))


def load_config(path: Path | str) -> EngineConfig:
    """Load and validate an EngineConfig from a YAML file."""
    path = Path(path)
    config = parse_engine_config(load_yaml_file(path))
    logger.info(
        "engine_config_loaded",
        extra={"path": str(path), "checksum": compute_checksum(config)},
    )
    return config


def compute_checksum(config: EngineConfig) -> str:
    """Deterministic SHA-256 of the effective configuration values."""
    canonical = json.dumps(config.to_dict(), sort_keys=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
