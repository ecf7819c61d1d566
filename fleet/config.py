"""Runtime settings.

Defaults can be overridden by a YAML settings file (camelCase keys) and then
by FLEET_* environment variables, e.g. FLEET_AVG_DAILY_DISTANCE=80.
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Mapping, Optional, Union

import yaml


@dataclass(frozen=True)
class Settings:
    odometer_warning_threshold: int = 1000
    avg_daily_distance: float = 50
    due_soon_distance: float = 1000
    due_soon_days: int = 30
    low_fuel_threshold: float = 25
    store_timeout: float = 5.0
    data_file: str = "fleet.yaml"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _coerce(field_type, value):
    if field_type in (int, "int"):
        return int(value)
    if field_type in (float, "float"):
        return float(value)
    return str(value)


def load_settings(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build Settings from defaults, an optional YAML file and the environment."""
    environ = os.environ if environ is None else environ
    overrides = {}

    if path is not None:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        for f in fields(Settings):
            key = _camel(f.name)
            if key in data:
                overrides[f.name] = _coerce(f.type, data[key])

    for f in fields(Settings):
        env_key = f"FLEET_{f.name.upper()}"
        if env_key in environ:
            try:
                overrides[f.name] = _coerce(f.type, environ[env_key])
            except ValueError as e:
                raise ValueError(f"{env_key}: {e}") from e

    return replace(Settings(), **overrides)
