# perfgraphs/timestamps.py
"""Time-axis helpers: re-basing epoch timestamps and building time-axis labels."""
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Tuple

from perfgraphs.payload import Series

# Epoch milliseconds for 1973-03-03; anything smaller is an elapsed time.
EPOCH_THRESHOLD_MS = 1e11

_DURATION_UNITS = (
    (3600000, 'hour'),
    (60000, 'min'),
    (1000, 'sec'),
)


def is_epoch(x: float) -> bool:
    return abs(x) >= EPOCH_THRESHOLD_MS


def epoch_baseline(series: Iterable[Series]) -> Optional[float]:
    """Smallest epoch-like x over all series, or None when the chart has none."""
    xs = [x for s in series for x, _ in s.data if is_epoch(x)]
    return min(xs) if xs else None


def fix_timestamps(series: Iterable[Series], offset_ms: float) -> Tuple[Series, ...]:
    """
    Re-bases absolute epoch x values onto a common zero, then shifts them by `offset_ms`.

    Elapsed-time values (below EPOCH_THRESHOLD_MS) are left untouched, so running
    the function on its own output changes nothing.
    """
    series = tuple(series)
    baseline = epoch_baseline(series)
    if baseline is None:
        return series

    fixed = []
    for s in series:
        fixed.append(s.with_data(
            (x - baseline + offset_ms if is_epoch(x) else x, y) for x, y in s.data
        ))
    return tuple(fixed)


# --- AXIS LABELS ---

def format_duration(ms: float) -> str:
    """Formats a bucket width, e.g. 500 -> '500 ms', 60000 -> '1 min', 7200000 -> '2 hours'."""
    for size, unit in _DURATION_UNITS:
        if ms >= size:
            value = ms / size
            text = f"{value:g}"
            if unit == 'hour' and value != 1:
                unit = 'hours'
            return f"{text} {unit}"
    return f"{ms:g} ms"


def elapsed_time_label(granularity: int) -> str:
    return f"Elapsed Time (granularity: {format_duration(granularity)})"


def connect_time_label(granularity: int) -> str:
    return f"Elapsed time (granularity: {format_duration(granularity)})"


def time_format(granularity: int) -> str:
    """strftime pattern for tick labels; sub-second buckets keep milliseconds."""
    if 0 < granularity < 1000:
        return '%H:%M:%S.%f'
    return '%H:%M:%S'


def format_elapsed(ms: float, fmt: str = '%H:%M:%S') -> str:
    """Renders an x value (milliseconds from the shared zero) as a clock time."""
    moment = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=ms)
    text = moment.strftime(fmt)
    if '%f' in fmt:
        # strftime gives microseconds; the axis only needs milliseconds.
        text = text[:-3]
    return text
