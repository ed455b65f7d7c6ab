# perfgraphs/dashboard.py
"""
Page-level controller: owns one ChartAdapter per metric, the active name
filter, panel expansion and the legend toggles.

Every entry point treats render results the same way: a Failed result is
logged and returned, or raised as RenderError when settings.strict is on.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional

from perfgraphs.chart import ChartAdapter, RenderResult
from perfgraphs.config import Settings
from perfgraphs.errors import MissingTargetError, RenderError
from perfgraphs.metrics import MetricDescriptor
from perfgraphs.payload import MetricPayload
from perfgraphs.series_filter import FilterRequest
from perfgraphs.surface import ReportPage, apply_theme


class Dashboard:
    def __init__(
        self,
        payloads: Dict[str, MetricPayload],
        table: Dict[str, MetricDescriptor],
        settings: Optional[Settings] = None,
        page: Optional[ReportPage] = None,
    ):
        self.settings = settings or Settings()
        self.table = table
        apply_theme(self.settings.seaborn_style)

        # Page order follows the descriptor table, not the payload file.
        descriptors = [d for key, d in table.items() if key in payloads]
        self.page = page or ReportPage.for_metrics(descriptors)
        self.charts: Dict[str, ChartAdapter] = {
            d.key: ChartAdapter(d, payloads[d.key], self.page, self.settings) for d in descriptors
        }
        self._by_legend = {d.legend_id: d.key for d in descriptors}
        self._by_body = {d.body_id: d.key for d in descriptors}
        self.filter_text = self.settings.filter_text

        missing = [key for key in table if key not in payloads]
        if missing:
            logging.info(f"No payload for chart(s): {', '.join(missing)}")

    # --- Lookup ---

    def chart(self, metric_key: str) -> ChartAdapter:
        try:
            return self.charts[metric_key]
        except KeyError:
            raise MissingTargetError(metric_key) from None

    def chart_for_legend(self, container_id: str) -> ChartAdapter:
        if container_id not in self._by_legend:
            raise MissingTargetError(container_id)
        return self.charts[self._by_legend[container_id]]

    def request(self) -> FilterRequest:
        return FilterRequest(self.filter_text)

    # --- Result policy ---

    def _handle(self, result: RenderResult) -> RenderResult:
        if result.failed:
            logging.error(f"Chart '{result.metric_key}' failed to render: {result.error}")
            if self.settings.strict:
                raise RenderError(result.metric_key, result.error)
        return result

    def render(self, metric_key: str, fix_timestamps: bool = True) -> RenderResult:
        return self._handle(self.chart(metric_key).render(self.request(), fix_timestamps=fix_timestamps))

    # --- Page events ---

    def load(self) -> List[RenderResult]:
        """Renders the charts shown when the page opens."""
        results = []
        for key, adapter in self.charts.items():
            if adapter.descriptor.default_render:
                self.page.panel(adapter.descriptor.body_id).collapsed = False
                results.append(self.render(key))
        logging.info(f"Rendered {len(results)} default chart(s).")
        return results

    def expand(self, metric_key: str) -> Optional[RenderResult]:
        """Opens a panel, drawing its chart the first time."""
        adapter = self.chart(metric_key)
        self.page.panel(adapter.descriptor.body_id).collapsed = False
        if self.page.target(adapter.descriptor.plot_id).is_graph:
            return None
        return self.render(metric_key)

    def expand_body(self, body_id: str) -> Optional[RenderResult]:
        if body_id not in self._by_body:
            raise MissingTargetError(body_id)
        return self.expand(self._by_body[body_id])

    def collapse(self, metric_key: str):
        adapter = self.chart(metric_key)
        self.page.panel(adapter.descriptor.body_id).collapsed = True

    def set_filter(self, text: str) -> List[RenderResult]:
        """Changes the series-name filter and redraws every chart already on screen."""
        self.filter_text = text
        results = []
        for key, adapter in self.charts.items():
            panel = self.page.panel(adapter.descriptor.body_id)
            if adapter.rendered or panel.placeholder is not None:
                results.append(self.render(key, fix_timestamps=False))
        logging.info(f"Filter set to '{text}'; re-rendered {len(results)} chart(s).")
        return results

    def toggle_all(self, container_id: str, checked: bool) -> RenderResult:
        """Checks or unchecks every series of one legend and rebuilds that chart."""
        adapter = self.chart_for_legend(container_id)
        return self._handle(adapter.toggle_all(checked, self.request()))

    def toggle_series(self, container_id: str, key: str, checked: Optional[bool] = None) -> RenderResult:
        adapter = self.chart_for_legend(container_id)
        return self._handle(adapter.toggle_series(key, self.request(), checked))

    # --- Output ---

    def export(self, output_dir: Path) -> Dict[str, List[Path]]:
        """Saves every drawn chart (main plot, then overview) as PNG files."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        written: Dict[str, List[Path]] = {}
        for key, adapter in self.charts.items():
            d = adapter.descriptor
            main = self.page.target(d.plot_id)
            if not main.is_graph:
                continue
            paths = [main.save(output_dir / f"{key}.png")]
            if d.overview:
                overview = self.page.target(d.overview_id)
                if overview.is_graph:
                    paths.append(overview.save(output_dir / f"{key}_overview.png"))
            written[key] = paths
        logging.info(f"Exported {len(written)} chart(s) to {output_dir}")
        return written

    def close(self):
        self.page.close()
