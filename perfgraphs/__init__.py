# perfgraphs/__init__.py
"""Chart preparation and rendering for pre-computed load-test report metrics."""

from perfgraphs.errors import ConfigError, MissingTargetError, PayloadError, PerfGraphsError, RenderError
from perfgraphs.payload import MetricPayload, Series, load_payloads
from perfgraphs.series_filter import FilterRequest, FilterResult, filter_series
from perfgraphs.timestamps import fix_timestamps

__version__ = "0.3.0"

__all__ = [
    "ConfigError",
    "FilterRequest",
    "FilterResult",
    "MetricPayload",
    "MissingTargetError",
    "PayloadError",
    "PerfGraphsError",
    "RenderError",
    "Series",
    "filter_series",
    "fix_timestamps",
    "load_payloads",
]
