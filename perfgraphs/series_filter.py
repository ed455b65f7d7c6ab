# perfgraphs/series_filter.py
"""Selects which series of a payload a chart plots."""
from dataclasses import dataclass
from typing import Dict, List, Tuple

from perfgraphs.payload import MetricPayload, Series


@dataclass(frozen=True)
class FilterRequest:
    """Snapshot of the active series-name filter, handed to one render call."""

    text: str = ""

    @property
    def active(self) -> bool:
        return bool(self.text)


@dataclass(frozen=True)
class FilterResult:
    series: Tuple[Series, ...]
    filter_text: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.series

    @property
    def labels(self) -> List[str]:
        return [s.label for s in self.series]


def _merge_variants(series: List[Series], force_overall: bool) -> List[Series]:
    """Collapses controller/leaf variants sharing a label into one entry at the first position."""
    positions: Dict[str, int] = {}
    merged: List[Series] = []
    for s in series:
        if s.label not in positions:
            positions[s.label] = len(merged)
            merged.append(s)
            continue
        idx = positions[s.label]
        current = merged[idx]
        # Leaf data wins unless the caller asks for the controller aggregate.
        wanted_controller = force_overall
        if s.is_controller == wanted_controller and current.is_controller != wanted_controller:
            merged[idx] = s
    return merged


def filter_series(
    payload: MetricPayload,
    request: FilterRequest,
    apply_filter: bool = True,
    force_overall: bool = False,
) -> FilterResult:
    """
    Returns the series to plot for `payload`.

    Labels must contain `request.text` (case-sensitive) when `apply_filter` is set
    and the text is non-empty. Payloads supporting controller discrimination get
    one entry per label. Survivors keep their original relative order; an empty
    result is returned as-is for the caller to show a placeholder.
    """
    survivors = list(payload.series)
    if apply_filter and request.active:
        survivors = [s for s in survivors if request.text in s.label]

    if payload.supports_controllers_discrimination:
        survivors = _merge_variants(survivors, force_overall)

    return FilterResult(series=tuple(survivors), filter_text=request.text)
