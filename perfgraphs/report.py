# perfgraphs/report.py
"""Builds the Markdown report: one section per chart with its exported images and a series summary."""
import logging
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from perfgraphs.chart import ChartAdapter, RenderResult
from perfgraphs.config import Settings
from perfgraphs.dashboard import Dashboard
from perfgraphs.metrics import MetricDescriptor, load_metric_table
from perfgraphs.payload import load_payloads


def series_summary(adapter: ChartAdapter) -> pd.DataFrame:
    """One row per series the chart last plotted: how many points and its y range."""
    rows = []
    for s in adapter.last_series:
        df = s.to_frame()
        rows.append({
            'Series': s.label.replace('\n', ' '),
            'Points': len(df),
            'Min Y': df['y'].min() if not df.empty else None,
            'Max Y': df['y'].max() if not df.empty else None,
        })
    return pd.DataFrame(rows, columns=['Series', 'Points', 'Min Y', 'Max Y'])


class ReportBuilder:
    """
    Runs the whole pipeline: load payloads, render the default charts, then the
    requested ones, export the figures and write report.md next to them.
    """
    def __init__(self, input_path: Path, output_dir: Path, settings: Optional[Settings] = None,
                 table: Optional[Dict[str, MetricDescriptor]] = None):
        self.input_path = Path(input_path)
        self.output_dir = Path(output_dir)
        self.settings = settings or Settings()
        self.table = table

        self.plots_dir = self.output_dir / "plots"
        self.report_path = self.output_dir / "report.md"

        self.dashboard: Optional[Dashboard] = None
        self.results: Dict[str, RenderResult] = {}
        self.images: Dict[str, List[Path]] = {}

    def run(self) -> Path:
        """Executes the pipeline and returns the path of the written report."""
        logging.info(f"Building report from: {self.input_path}")
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self._load()
        try:
            self._render_charts()
            self.images = self.dashboard.export(self.plots_dir)
            self._write_report(self._generate_report())
        finally:
            self.dashboard.close()

        logging.info(f"Markdown report saved to: {self.report_path}")
        return self.report_path

    # --------------------------------------------------------------------------
    # STAGE 1: LOADING
    # --------------------------------------------------------------------------

    def _load(self):
        if self.table is None:
            self.table = load_metric_table(self.settings.metrics_file)
        payloads = load_payloads(self.input_path, known_keys=self.table)
        self.dashboard = Dashboard(payloads, self.table, self.settings)

    # --------------------------------------------------------------------------
    # STAGE 2: RENDERING
    # --------------------------------------------------------------------------

    def _requested_charts(self) -> List[str]:
        if not self.settings.charts:
            return list(self.dashboard.charts)
        unknown = [c for c in self.settings.charts if c not in self.dashboard.charts]
        for key in unknown:
            logging.warning(f"Requested chart '{key}' has no payload or descriptor. Skipping.")
        return [c for c in self.settings.charts if c in self.dashboard.charts]

    def _render_charts(self):
        for result in self.dashboard.load():
            self.results[result.metric_key] = result
        for key in self._requested_charts():
            if key in self.results:
                continue
            result = self.dashboard.expand(key)
            if result is not None:
                self.results[key] = result

    # --------------------------------------------------------------------------
    # STAGE 3: REPORT GENERATION
    # --------------------------------------------------------------------------

    def _generate_report(self) -> str:
        logging.info("Generating report content...")
        report_parts = [f"# Load Test Report for `{self.input_path.stem}`"]
        if self.dashboard.filter_text:
            report_parts.append(f"\nSeries filter: `{self.dashboard.filter_text}`")
        for key, adapter in self.dashboard.charts.items():
            if key in self.results:
                report_parts.append(self._render_chart_md(adapter, self.results[key]))
        report_parts.append(self._render_status_md())
        return "\n".join(report_parts)

    def _render_chart_md(self, adapter: ChartAdapter, result: RenderResult) -> str:
        md = [f"\n## {adapter.payload.title}"]
        if result.skipped:
            md.append(f"*{result.reason}*")
            return "\n".join(md)
        if result.failed:
            md.append(f"**Rendering failed:** `{result.error}`")
            return "\n".join(md)

        for path in self.images.get(adapter.key, []):
            md.append(f"![{adapter.payload.title}]({path.relative_to(self.output_dir).as_posix()})")
        summary = series_summary(adapter)
        if summary.empty:
            md.append("\n*No series selected.*")
        else:
            md.append("")
            md.append(summary.to_markdown(index=False))
        return "\n".join(md)

    def _render_status_md(self) -> str:
        counts = {'Rendered': 0, 'Skipped': 0, 'Failed': 0}
        for result in self.results.values():
            if result.ok:
                counts['Rendered'] += 1
            elif result.skipped:
                counts['Skipped'] += 1
            else:
                counts['Failed'] += 1
        md = ["\n## Appendix: Render Status", "| Status | Charts |", "|---|---|"]
        md.extend(f"| {status} | {count} |" for status, count in counts.items())
        return "\n".join(md)

    def _write_report(self, content: str):
        with open(self.report_path, 'w', encoding='utf-8') as f:
            f.write(content)

    @property
    def failed(self) -> List[str]:
        return [key for key, result in self.results.items() if result.failed]
