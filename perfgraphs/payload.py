# perfgraphs/payload.py
"""
Metric payloads as exported by the load-testing tool's report generator.

Each payload is a read-only bundle of pre-computed series plus the axis bounds
the exporter measured. Nothing here computes statistics; it only validates and
wraps what the exporter wrote.
"""
import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import pandas as pd

from perfgraphs.errors import PayloadError

Point = Tuple[float, float]

REQUIRED_KEYS = ('minX', 'maxX', 'minY', 'maxY', 'series', 'title')


@dataclass(frozen=True)
class Series:
    """A named, ordered sequence of (x, y) samples."""

    label: str
    data: Tuple[Point, ...]
    is_controller: bool = False
    is_overall: bool = False
    color: Optional[str] = None

    def with_data(self, points: Iterable[Point]) -> "Series":
        return replace(self, data=tuple((float(x), float(y)) for x, y in points))

    def to_frame(self) -> pd.DataFrame:
        """Returns the points as an x-sorted DataFrame (bucketed payloads are not ordered)."""
        df = pd.DataFrame(list(self.data), columns=['x', 'y'])
        return df.sort_values('x', kind='stable').reset_index(drop=True)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], position: int = 0) -> "Series":
        if not isinstance(raw, dict):
            raise PayloadError(f"series[{position}] must be an object, got {type(raw).__name__}")
        if 'label' not in raw:
            raise PayloadError(f"series[{position}] is missing 'label'")
        points = raw.get('data', [])
        if not isinstance(points, list):
            raise PayloadError(f"series[{position}].data must be a list of [x, y] pairs")

        parsed = []
        for i, point in enumerate(points):
            if not isinstance(point, (list, tuple)) or len(point) != 2:
                raise PayloadError(f"series[{position}].data[{i}] is not an [x, y] pair: {point!r}")
            try:
                parsed.append((float(point[0]), float(point[1])))
            except (TypeError, ValueError) as e:
                raise PayloadError(f"series[{position}].data[{i}] has a non-numeric value: {e}") from e

        return cls(
            label=str(raw['label']),
            data=tuple(parsed),
            is_controller=bool(raw.get('isController', False)),
            is_overall=bool(raw.get('isOverall', False)),
            color=raw.get('color'),
        )


@dataclass(frozen=True)
class MetricPayload:
    """Immutable result bundle for one metric; only timestamps are ever re-based."""

    title: str
    series: Tuple[Series, ...]
    min_x: float
    max_x: float
    min_y: float
    max_y: float
    granularity: int = 0
    supports_controllers_discrimination: bool = False
    ticks: Tuple[Tuple[float, str], ...] = ()

    @property
    def is_time_based(self) -> bool:
        return self.granularity > 0

    def with_series(self, series: Iterable[Series]) -> "MetricPayload":
        return replace(self, series=tuple(series))

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "MetricPayload":
        """Builds a payload from the exporter's JSON, unwrapping a 'result' envelope."""
        if not isinstance(raw, dict):
            raise PayloadError(f"Payload must be an object, got {type(raw).__name__}")
        if 'result' in raw and isinstance(raw['result'], dict):
            raw = raw['result']

        missing = [k for k in REQUIRED_KEYS if k not in raw]
        if missing:
            raise PayloadError(f"Payload is missing required field(s): {', '.join(missing)}")
        if not isinstance(raw['series'], list):
            raise PayloadError("Payload field 'series' must be a list")

        try:
            bounds = {k: float(raw[k]) for k in ('minX', 'maxX', 'minY', 'maxY')}
            granularity = int(raw.get('granularity') or 0)
            ticks = tuple((float(pos), str(text)) for pos, text in raw.get('ticks', []))
        except (TypeError, ValueError) as e:
            raise PayloadError(f"Payload '{raw.get('title')}' has a malformed numeric field: {e}") from e

        return cls(
            title=str(raw['title']),
            series=tuple(Series.from_dict(s, i) for i, s in enumerate(raw['series'])),
            min_x=bounds['minX'],
            max_x=bounds['maxX'],
            min_y=bounds['minY'],
            max_y=bounds['maxY'],
            granularity=granularity,
            supports_controllers_discrimination=bool(raw.get('supportsControllersDiscrimination', False)),
            ticks=ticks,
        )


# --- LOADING ---

def _read_json(path: Path) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise PayloadError(f"Could not read payload file {path}: {e}") from e


def load_payloads(path: Path, known_keys: Optional[Iterable[str]] = None) -> Dict[str, MetricPayload]:
    """
    Loads metric payloads from either a single JSON object keyed by metric key,
    or a directory of '<metricKey>.json' files.
    """
    path = Path(path)
    if path.is_dir():
        files = sorted(path.glob('*.json'))
        if not files:
            raise PayloadError(f"No '*.json' payload files found in {path}")
        raw_payloads = {f.stem: _read_json(f) for f in files}
    elif path.is_file():
        raw_payloads = _read_json(path)
        if not isinstance(raw_payloads, dict):
            raise PayloadError(f"{path} must hold an object keyed by metric key")
    else:
        raise PayloadError(f"Payload path not found: {path}")

    known = set(known_keys) if known_keys is not None else None
    payloads = {}
    for key, raw in raw_payloads.items():
        try:
            payloads[key] = MetricPayload.from_dict(raw)
        except PayloadError as e:
            raise PayloadError(f"Metric '{key}': {e}") from e
        if known is not None and key not in known:
            logging.warning(f"Payload '{key}' has no chart descriptor and will not be rendered.")

    logging.info(f"Loaded {len(payloads)} metric payload(s) from {path}")
    return payloads
