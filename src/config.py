"""Resolution settings: built-in defaults, config file, then CLI overrides."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import yaml

from constants import Constants, DefaultResolution
from common.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class ResolutionConfig:
    """Tunables consumed by the evaluator and the metadata cache."""
    allowed_major_versions: int = DefaultResolution.MAJOR_VERSIONS.value
    allowed_minor_and_patch_versions: int = DefaultResolution.MINOR_AND_PATCH_VERSIONS.value
    allow_pre_releases: bool = Constants.ALLOW_PRE_RELEASES
    pin_versions: bool = False
    force: bool = False
    bundles: List[str] = field(default_factory=lambda: list(Constants.PACKAGE_BUNDLES))
    cache_dir: str = Constants.CACHE_DIR

    def update(self, values: Dict[str, Any]) -> None:
        """Apply overrides, ignoring unknown keys and None values."""
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                logger.warning("Ignoring unknown resolution setting: %s", key)
                continue
            if value is None:
                continue
            setattr(self, key, _coerce(key, value, getattr(self, key)))


def _coerce(key: str, value: Any, current: Any) -> Any:
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(current, int):
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{key} must be an integer, got {value!r}") from exc
        if number < 0:
            raise ConfigError(f"{key} must not be negative")
        return number
    if isinstance(current, list):
        if isinstance(value, str):
            return [value]
        return [str(v) for v in value]
    return str(value)


def load_config_file(path: str) -> Dict[str, Any]:
    """Read the ``resolution`` section of a YAML or JSON config file.

    Raises:
        ConfigError: the file is missing, unreadable or not a mapping.
    """
    if not os.path.isfile(path):
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {path}: {exc}") from exc
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping")
    section = data.get("resolution", data)
    if not isinstance(section, dict):
        raise ConfigError(f"'resolution' in {path} must be a mapping")
    return section


def build_config(config_path: Optional[str] = None,
                 overrides: Optional[Dict[str, Any]] = None) -> ResolutionConfig:
    """Defaults, then the config file, then CLI overrides (highest precedence)."""
    config = ResolutionConfig()
    if config_path:
        config.update(load_config_file(config_path))
        logger.debug("Loaded config from %s", config_path)
    if overrides:
        config.update(overrides)
    return config
