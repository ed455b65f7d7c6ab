# perfgraphs/errors.py
"""Exception types raised by perfgraphs."""

from typing import Optional


class PerfGraphsError(Exception):
    """Base class for every error raised by this package."""


class PayloadError(PerfGraphsError, ValueError):
    """A metric payload does not match the exporter's JSON contract."""


class ConfigError(PerfGraphsError, ValueError):
    """Settings or the metric descriptor table are malformed."""


class MissingTargetError(PerfGraphsError, LookupError):
    """A render asked for a plot target, legend or panel that the page does not have."""

    def __init__(self, target_id: str):
        super().__init__(f"No element with id '{target_id}' on the report page")
        self.target_id = target_id


class RenderError(PerfGraphsError, RuntimeError):
    """A chart failed to render while the dashboard runs in strict mode."""

    def __init__(self, metric_key: str, cause: Optional[BaseException] = None):
        message = f"Chart '{metric_key}' failed to render"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.metric_key = metric_key
        self.cause = cause
