"""Loader settings.

Settings come from an optional YAML file and environment overrides:

    # amd-loader.yaml
    root: ./static
    watchdog_interval: 5
    imports:
      foo: /s/foo.py
      widget: [/s/widget.py, /s/widget.css]

Environment variables (highest priority):
- AMD_LOADER_CONFIG: settings file path when none is passed explicitly
- AMD_LOADER_WATCHDOG_INTERVAL
- AMD_LOADER_BASE_URL
- AMD_LOADER_ROOT
- AMD_LOADER_DETECT_CYCLES
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic import Field
from pydantic import field_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "AMD_LOADER_"


class LoaderSettings(BaseModel):
    """Configuration for a Loader instance.

    Attributes:
        watchdog_interval: Seconds between stall diagnostics
        default_suffix: Suffix appended to locations without an extension
        transpiled_suffixes: Source suffix -> executable suffix replacements
        detect_cycles: Fail cyclic definitions instead of hanging on them
        fetch_timeout: HTTP timeout in seconds
        base_url: Base URL for non-network locations (None = read from root)
        root: Directory non-network locations are read from
        imports: Location table (name -> location or list of locations)
    """

    watchdog_interval: float = Field(default=5.0, gt=0)
    default_suffix: str = ".py"
    transpiled_suffixes: dict[str, str] = Field(default_factory=lambda: {".coco": ".py"})
    detect_cycles: bool = True
    fetch_timeout: float = Field(default=10.0, gt=0)
    base_url: str | None = None
    root: Path = Path(".")
    imports: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("imports", mode="before")
    @classmethod
    def _normalize_imports(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {name: [locations] if isinstance(locations, str) else locations for name, locations in value.items()}
        return value


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for field_name in ("watchdog_interval", "base_url", "root", "detect_cycles"):
        env_value = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if env_value is not None:
            overrides[field_name] = env_value
    return overrides


def load_settings(path: str | Path | None = None) -> LoaderSettings:
    """Load settings from YAML and the environment.

    Args:
        path: Settings file; defaults to $AMD_LOADER_CONFIG when set

    Returns:
        Validated LoaderSettings

    Raises:
        FileNotFoundError: An explicitly requested settings file does not exist
        pydantic.ValidationError: Invalid setting values
    """
    if path is None and (env_path := os.environ.get(f"{ENV_PREFIX}CONFIG")):
        path = env_path

    data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Loader settings not found: {config_path}")
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.debug(f"Loaded loader settings from {config_path}")

    data.update(_env_overrides())
    return LoaderSettings.model_validate(data)
