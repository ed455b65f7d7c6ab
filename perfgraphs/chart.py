# perfgraphs/chart.py
"""
Generic chart adapter: one instance per metric, driven by its MetricDescriptor.

render() never lets a plotting failure escape; it reports Ok, Skipped or
Failed and leaves the policy to the caller. A missing page element is a
broken precondition and is raised.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from perfgraphs.config import Settings
from perfgraphs.errors import MissingTargetError
from perfgraphs.metrics import MetricDescriptor
from perfgraphs.payload import MetricPayload, Series
from perfgraphs.series_filter import FilterRequest, filter_series
from perfgraphs.surface import PlotOptions, ReportPage, Viewport, ZoomLink
from perfgraphs import timestamps

EMPTY_GRAPH_MESSAGE = "No graph series with filter={}"


# --- RENDER RESULTS ---

@dataclass(frozen=True)
class Ok:
    metric_key: str
    series_labels: Tuple[str, ...] = ()
    ok = True
    skipped = False
    failed = False


@dataclass(frozen=True)
class Skipped:
    metric_key: str
    reason: str
    ok = False
    skipped = True
    failed = False


@dataclass(frozen=True)
class Failed:
    metric_key: str
    error: BaseException
    ok = False
    skipped = False
    failed = True


RenderResult = Union[Ok, Skipped, Failed]


# --- ADAPTER ---

class ChartAdapter:
    def __init__(self, descriptor: MetricDescriptor, payload: MetricPayload, page: ReportPage, settings: Optional[Settings] = None):
        self.descriptor = descriptor
        self.payload = payload
        self.page = page
        self.settings = settings or Settings()
        self.rendered = False
        self.last_result: Optional[RenderResult] = None
        self.last_series: Tuple[Series, ...] = ()
        self._timestamp_offset: Optional[float] = None
        self._zoom: Optional[ZoomLink] = None

    @property
    def key(self) -> str:
        return self.descriptor.key

    @property
    def legend(self):
        return self.page.legend(self.descriptor.legend_id)

    @property
    def timestamps_fixed(self) -> bool:
        return self._timestamp_offset is not None

    def normalize_timestamps(self, offset_ms: float):
        """Re-bases the payload's epoch x values once; repeating the same offset is a no-op."""
        if self._timestamp_offset == offset_ms:
            return
        if self._timestamp_offset is not None:
            logging.warning(
                f"Chart '{self.key}' timestamps were already shifted by {self._timestamp_offset} ms; "
                f"ignoring new offset {offset_ms} ms."
            )
            return
        self.payload = self.payload.with_series(timestamps.fix_timestamps(self.payload.series, offset_ms))
        self._timestamp_offset = offset_ms

    def build_options(self, colors: Sequence[Optional[str]] = ()) -> PlotOptions:
        d = self.descriptor
        payload = self.payload
        return PlotOptions(
            title=payload.title,
            x_label=d.x_axis_label(payload),
            y_label=d.y_label,
            kind=d.kind,
            x_mode=d.x_mode,
            time_format=timestamps.time_format(payload.granularity),
            show_points=d.show_points,
            legend_columns=d.legend_columns,
            bar_width=d.resolve_bar_width(payload) if d.kind == 'bar' else 0.8,
            bar_align=d.bar_align,
            ticks=payload.ticks if d.ticks_from_payload else (),
            x_min=d.x_min,
            x_max=d.x_max,
            colors=tuple(colors),
            tooltip=lambda label, x, y: d.tooltip_text(label, x, y, payload),
            figure_size=self.settings.figure_size,
            dpi=self.settings.dpi,
        )

    def render(self, request: FilterRequest, fix_timestamps: bool = True) -> RenderResult:
        d = self.descriptor
        main = self.page.target(d.plot_id)
        overview = self.page.target(d.overview_id) if d.overview else None
        panel = self.page.panel(d.body_id)
        legend = self.legend

        if fix_timestamps and d.fix_timestamps:
            self.normalize_timestamps(self.settings.time_zone_offset_ms)

        result = filter_series(self.payload, request, apply_filter=d.apply_filter, force_overall=d.force_overall)
        if result.is_empty and d.hide_when_empty:
            message = EMPTY_GRAPH_MESSAGE.format(request.text)
            main.show_text(message)
            panel.placeholder = message
            self.rendered = False
            self.last_series = ()
            self.last_result = Skipped(self.key, message)
            logging.info(f"Chart '{self.key}': {message}")
            return self.last_result

        try:
            legend.sync(result.series)
            chosen = legend.selection(result.series)
            visible = [s for _, s in chosen]
            options = self.build_options(legend.colors_for(k for k, _ in chosen))
            viewport = self._zoom.viewport if self._zoom is not None else None
            main.plot(visible, options, viewport=viewport)
            if overview is not None:
                overview.plot(visible, options.overview(self.settings.overview_size))
        except MissingTargetError:
            raise
        except Exception as e:
            logging.debug(f"Chart '{self.key}' raised while plotting", exc_info=True)
            self.last_series = ()
            self.last_result = Failed(self.key, e)
            return self.last_result

        if self._zoom is None:
            self._zoom = ZoomLink(main, overview)
        self._zoom.attach()

        panel.placeholder = None
        self.rendered = True
        self.last_series = tuple(visible)
        self.last_result = Ok(self.key, tuple(s.label for s in visible))
        return self.last_result

    # --- Interaction ---

    def toggle_series(self, key: str, request: FilterRequest, checked: Optional[bool] = None) -> RenderResult:
        """Flips one checkbox; repeated labels are addressed as 'label#2' and so on."""
        self.legend.toggle(key, checked)
        return self.render(request, fix_timestamps=False)

    def toggle_all(self, checked: bool, request: FilterRequest) -> RenderResult:
        self.legend.set_all(checked)
        return self.render(request, fix_timestamps=False)

    def select(self, viewport: Viewport):
        if self._zoom is None:
            raise MissingTargetError(self.descriptor.overview_id)
        self._zoom.select(viewport)

    def reset_zoom(self):
        if self._zoom is not None:
            self._zoom.reset()

    @property
    def viewport(self) -> Optional[Viewport]:
        return self._zoom.viewport if self._zoom is not None else None
