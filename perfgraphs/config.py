# perfgraphs/config.py
"""Run settings, read from an optional YAML file and overridden by CLI arguments."""
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, List, Optional, Tuple

import yaml

from perfgraphs.errors import ConfigError


@dataclass
class Settings:
    filter_text: str = ""
    time_zone_offset_ms: int = 0
    charts: List[str] = field(default_factory=list)
    figure_size: Tuple[float, float] = (12, 6)
    overview_size: Tuple[float, float] = (12, 2)
    dpi: int = 100
    strict: bool = False
    metrics_file: Optional[Path] = None
    seaborn_style: str = "whitegrid"

    def to_dict(self) -> dict:
        data = asdict(self)
        data['metrics_file'] = str(self.metrics_file) if self.metrics_file else None
        data['figure_size'] = list(self.figure_size)
        data['overview_size'] = list(self.overview_size)
        return data


def _coerce(name: str, value: Any) -> Any:
    """Validates one settings value coming from YAML or the command line."""
    if name in ('figure_size', 'overview_size'):
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ConfigError(f"'{name}' must be a [width, height] pair, got {value!r}")
        try:
            return (float(value[0]), float(value[1]))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"'{name}' must hold numbers: {e}") from e
    if name in ('time_zone_offset_ms', 'dpi'):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"'{name}' must be an integer, got {value!r}")
        return value
    if name == 'strict':
        if not isinstance(value, bool):
            raise ConfigError(f"'strict' must be true or false, got {value!r}")
        return value
    if name == 'charts':
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)) or not all(isinstance(c, str) for c in value):
            raise ConfigError(f"'charts' must be a list of metric keys, got {value!r}")
        return list(value)
    if name == 'metrics_file':
        return Path(value) if value else None
    if not isinstance(value, str):
        raise ConfigError(f"'{name}' must be a string, got {value!r}")
    return value


def load_settings(path: Optional[Path] = None, **overrides) -> Settings:
    """Builds Settings from a YAML file (optional), then applies non-None overrides."""
    values = {}
    if path is not None:
        path = Path(path)
        logging.info(f"Loading settings from {path}...")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load settings from {path}: {e}") from e
        if not isinstance(config_data, dict):
            raise ConfigError(f"Settings file {path} must hold a mapping")
        values.update(config_data)

    values.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown setting(s): {', '.join(unknown)}")

    return Settings(**{k: _coerce(k, v) for k, v in values.items()})
