# perfgraphs/metrics.py
"""
Declarative chart descriptors.

One table, loaded from metrics.yaml, maps each metric key to its axis labels,
tooltip template, drawing style and empty-series policy. A single generic
adapter (perfgraphs.chart) consumes it.
"""
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from perfgraphs.errors import ConfigError
from perfgraphs.payload import MetricPayload
from perfgraphs.timestamps import connect_time_label, elapsed_time_label, format_elapsed, time_format

DEFAULT_METRICS_PATH = Path(__file__).parent / "metrics.yaml"

KINDS = ('line', 'area', 'stacked_area', 'bar', 'scatter')
X_MODES = ('linear', 'time')
X_LABEL_MODES = ('static', 'elapsed', 'connect')
BAR_ALIGNS = ('edge', 'center')


@dataclass(frozen=True)
class MetricDescriptor:
    key: str
    title: str
    y_label: str
    tooltip: str
    x_label: str = ""
    kind: str = 'line'
    x_mode: str = 'linear'
    x_label_mode: str = 'static'
    hide_when_empty: bool = False
    show_points: bool = True
    legend_columns: int = 2
    overview: bool = True
    fix_timestamps: bool = False
    apply_filter: bool = True
    force_overall: bool = False
    default_render: bool = False
    bar_width: Union[float, str, None] = None
    bar_align: str = 'edge'
    ticks_from_payload: bool = False
    x_min: Optional[float] = None
    x_max: Optional[float] = None

    # --- Page element ids ---

    @property
    def _suffix(self) -> str:
        return self.key[:1].upper() + self.key[1:]

    @property
    def plot_id(self) -> str:
        return f"flot{self._suffix}"

    @property
    def overview_id(self) -> str:
        return f"overview{self._suffix}"

    @property
    def legend_id(self) -> str:
        return f"choices{self._suffix}"

    @property
    def body_id(self) -> str:
        return f"body{self._suffix}"

    # --- Payload-dependent options ---

    def x_axis_label(self, payload: MetricPayload) -> str:
        if self.x_label_mode == 'elapsed':
            return elapsed_time_label(payload.granularity)
        if self.x_label_mode == 'connect':
            return connect_time_label(payload.granularity)
        return self.x_label

    def resolve_bar_width(self, payload: MetricPayload) -> float:
        if self.bar_width == 'granularity':
            return float(payload.granularity or 1)
        if self.bar_width is None:
            return 0.8
        return float(self.bar_width)

    def tooltip_text(self, label: str, x: float, y: float, payload: MetricPayload) -> str:
        """Formats the hover text for one point, the way the report page words it."""
        x_value: Any = x
        if self.x_mode == 'time':
            x_value = format_elapsed(x, time_format(payload.granularity))
        return self.tooltip.format(label=label, x=x_value, y=y, x_end=x + payload.granularity)


def _check_choice(key: str, field_name: str, value: Any, choices: tuple):
    if value not in choices:
        raise ConfigError(f"Metric '{key}': {field_name} must be one of {', '.join(choices)}, got {value!r}")


def _build_descriptor(key: str, entry: Dict[str, Any], defaults: Dict[str, Any]) -> MetricDescriptor:
    if not isinstance(entry, dict):
        raise ConfigError(f"Metric '{key}' must be a mapping")
    known = {f.name for f in fields(MetricDescriptor)} - {'key'}
    merged = {**defaults, **entry}
    unknown = sorted(set(merged) - known)
    if unknown:
        raise ConfigError(f"Metric '{key}' has unknown field(s): {', '.join(unknown)}")
    for required in ('title', 'y_label', 'tooltip'):
        if not merged.get(required):
            raise ConfigError(f"Metric '{key}' is missing '{required}'")

    _check_choice(key, 'kind', merged.get('kind', 'line'), KINDS)
    _check_choice(key, 'x_mode', merged.get('x_mode', 'linear'), X_MODES)
    _check_choice(key, 'x_label_mode', merged.get('x_label_mode', 'static'), X_LABEL_MODES)
    _check_choice(key, 'bar_align', merged.get('bar_align', 'edge'), BAR_ALIGNS)

    bar_width = merged.get('bar_width')
    if bar_width is not None and bar_width != 'granularity' and not isinstance(bar_width, (int, float)):
        raise ConfigError(f"Metric '{key}': bar_width must be a number or 'granularity'")
    if merged.get('x_label_mode', 'static') == 'static' and not merged.get('x_label'):
        raise ConfigError(f"Metric '{key}' needs an x_label unless x_label_mode derives one")

    return MetricDescriptor(key=key, **merged)


def load_metric_table(path: Optional[Path] = None) -> Dict[str, MetricDescriptor]:
    """Loads the descriptor table; keys keep the file's order, which is the page order."""
    path = Path(path) if path else DEFAULT_METRICS_PATH
    try:
        with open(path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load metric table from {path}: {e}") from e

    if not config_data or not isinstance(config_data.get('metrics'), dict):
        raise ConfigError(f"Metric table {path} has no 'metrics' section")

    defaults = config_data.get('defaults') or {}
    return {key: _build_descriptor(key, entry, defaults) for key, entry in config_data['metrics'].items()}
