# perfgraphs/surface.py
"""
The drawable side of the report page: plot targets backed by matplotlib,
legends with per-series checkboxes, panels, and the overview/zoom link.

Element ids follow the exported page ('flot<Key>', 'overview<Key>',
'choices<Key>', 'body<Key>'). Asking for an id the page does not have raises
MissingTargetError instead of drawing nowhere.
"""
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.colors import to_hex
from matplotlib.ticker import FuncFormatter
from matplotlib.widgets import RectangleSelector

from perfgraphs.errors import MissingTargetError
from perfgraphs.payload import Series
from perfgraphs.timestamps import format_elapsed

PALETTE_SIZE = 12

TooltipFn = Callable[[str, float, float], str]


def apply_theme(style: str = "whitegrid"):
    sns.set_theme(style=style)


def palette_color(index: int) -> str:
    """Stable color for the index-th series of a chart, independent of how many are visible."""
    palette = sns.color_palette("husl", PALETTE_SIZE)
    return to_hex(palette[index % PALETTE_SIZE])


# --- OPTIONS AND VIEWPORT ---

@dataclass(frozen=True)
class PlotOptions:
    title: str = ""
    x_label: str = ""
    y_label: str = ""
    kind: str = 'line'
    x_mode: str = 'linear'
    time_format: str = '%H:%M:%S'
    show_points: bool = True
    show_legend: bool = True
    legend_columns: int = 2
    bar_width: float = 0.8
    bar_align: str = 'edge'
    ticks: Tuple[Tuple[float, str], ...] = ()
    x_min: Optional[float] = None
    x_max: Optional[float] = None
    colors: Tuple[Optional[str], ...] = ()
    tooltip: Optional[TooltipFn] = None
    figure_size: Tuple[float, float] = (12, 6)
    dpi: int = 100

    def overview(self, figure_size: Tuple[float, float] = (12, 2)) -> "PlotOptions":
        """Options for the small pan/zoom plot mirroring this one."""
        return replace(
            self, title="", x_label="", y_label="", show_points=False,
            show_legend=False, tooltip=None, figure_size=figure_size,
        )


@dataclass(frozen=True)
class Viewport:
    x_min: float
    x_max: float
    y_min: float
    y_max: float

    @classmethod
    def from_axes(cls, axes) -> "Viewport":
        (x_min, x_max), (y_min, y_max) = axes.get_xlim(), axes.get_ylim()
        return cls(x_min, x_max, y_min, y_max)

    def normalized(self) -> "Viewport":
        return Viewport(
            min(self.x_min, self.x_max), max(self.x_min, self.x_max),
            min(self.y_min, self.y_max), max(self.y_min, self.y_max),
        )


# --- PLOT TARGET ---

class PlotTarget:
    """A drawable area. Every plot() is a full rebuild; series are never patched in place."""

    def __init__(self, target_id: str):
        self.target_id = target_id
        self.figure = None
        self.axes = None
        self.text: Optional[str] = None
        self.plot_count = 0
        self.drawn_labels: List[str] = []
        self._points: List[Tuple[str, pd.DataFrame]] = []
        self._tooltip: Optional[TooltipFn] = None
        self._hover_cid = None
        self._annotation = None

    @property
    def is_graph(self) -> bool:
        return self.axes is not None and self.text is None and self.plot_count > 0

    def _ensure_axes(self, figure_size: Tuple[float, float], dpi: int):
        if self.figure is None:
            self.figure, self.axes = plt.subplots(figsize=figure_size, dpi=dpi)
        else:
            self.axes.clear()
            self.axes.axis('on')
        self._annotation = None

    def plot(self, series: Sequence[Series], options: PlotOptions, viewport: Optional[Viewport] = None):
        self._ensure_axes(options.figure_size, options.dpi)
        ax = self.axes
        self.text = None
        self._points = [(s.label, s.to_frame()) for s in series]
        self._tooltip = options.tooltip

        if options.kind == 'stacked_area':
            self._draw_stacked(series, options)
        elif options.kind == 'bar':
            self._draw_bars(series, options)
        else:
            for i, s in enumerate(series):
                self._draw_series(i, s, options)

        if options.x_mode == 'time':
            fmt = options.time_format
            ax.xaxis.set_major_formatter(FuncFormatter(lambda v, _: format_elapsed(v, fmt)))
        if options.ticks:
            ax.set_xticks([pos for pos, _ in options.ticks])
            ax.set_xticklabels([text for _, text in options.ticks])
        if options.x_min is not None or options.x_max is not None:
            ax.set_xlim(left=options.x_min, right=options.x_max)

        if options.title:
            ax.set_title(options.title, fontsize=14)
        ax.set_xlabel(options.x_label)
        ax.set_ylabel(options.y_label)
        ax.grid(True, which='both', linestyle='--', linewidth=0.5)
        if options.show_legend and series:
            ax.legend(ncol=options.legend_columns, loc='upper left', fontsize='small')

        if viewport is not None:
            self.apply_viewport(viewport)
        if self._tooltip is not None:
            self._connect_hover()

        self.figure.tight_layout()
        self.drawn_labels = [s.label for s in series]
        self.plot_count += 1

    def _color(self, index: int, s: Series, options: PlotOptions) -> Optional[str]:
        if index < len(options.colors) and options.colors[index]:
            return options.colors[index]
        return s.color

    def _draw_series(self, index: int, s: Series, options: PlotOptions):
        df = self._points[index][1]
        color = self._color(index, s, options)
        if options.kind == 'scatter':
            self.axes.scatter(df['x'], df['y'], label=s.label, color=color, s=12)
            return
        marker = 'o' if options.show_points else None
        self.axes.plot(df['x'], df['y'], label=s.label, color=color, marker=marker, markersize=3)
        if options.kind == 'area':
            self.axes.fill_between(df['x'], df['y'], color=color, alpha=0.2)

    def _draw_stacked(self, series: Sequence[Series], options: PlotOptions):
        if not series:
            return
        # Columns are series positions; labels may repeat.
        frames = [df.assign(position=i) for i, (_, df) in enumerate(self._points)]
        wide = pd.concat(frames).pivot_table(index='x', columns='position', values='y', aggfunc='sum')
        wide = wide.reindex(columns=range(len(series))).fillna(0)
        colors = [self._color(i, s, options) for i, s in enumerate(series)]
        self.axes.stackplot(
            wide.index, *[wide[c] for c in wide.columns],
            labels=[s.label for s in series], colors=colors if all(colors) else None, alpha=0.6,
        )
        if options.show_points:
            stacked = wide.cumsum(axis=1)
            for c, color in zip(stacked.columns, colors):
                self.axes.plot(stacked.index, stacked[c], linestyle='none', marker='o', markersize=3, color=color)

    def _draw_bars(self, series: Sequence[Series], options: PlotOptions):
        n = max(len(series), 1)
        width = options.bar_width / n
        for i, s in enumerate(series):
            df = self._points[i][1]
            if options.bar_align == 'center':
                offset = (i - (n - 1) / 2) * width
            else:
                offset = i * width
            self.axes.bar(
                np.asarray(df['x']) + offset, df['y'], width=width, align=options.bar_align,
                label=s.label, color=self._color(i, s, options), alpha=0.75,
            )

    def show_text(self, message: str):
        """Replaces whatever the target showed with a text placeholder."""
        if self.figure is None:
            self.figure, self.axes = plt.subplots(figsize=(12, 2))
        else:
            self.axes.clear()
        self._annotation = None
        self.axes.axis('off')
        self.axes.text(0.5, 0.5, message, ha='center', va='center', fontsize=12)
        self.text = message
        self.drawn_labels = []
        self._points = []

    def apply_viewport(self, viewport: Viewport):
        vp = viewport.normalized()
        self.axes.set_xlim(vp.x_min, vp.x_max)
        self.axes.set_ylim(vp.y_min, vp.y_max)

    def autoscale(self):
        if self.axes is not None:
            self.axes.relim()
            self.axes.autoscale()

    def current_viewport(self) -> Optional[Viewport]:
        return Viewport.from_axes(self.axes) if self.axes is not None else None

    # --- Tooltips ---

    def tooltip_at(self, x: float, y: float) -> Optional[str]:
        """Text for the drawn point nearest to (x, y), scaled by the axis ranges."""
        if self._tooltip is None or not self._points:
            return None
        vp = self.current_viewport()
        x_span = (vp.x_max - vp.x_min) or 1.0
        y_span = (vp.y_max - vp.y_min) or 1.0

        best = None
        for label, df in self._points:
            if df.empty:
                continue
            dist = np.hypot((df['x'].to_numpy() - x) / x_span, (df['y'].to_numpy() - y) / y_span)
            i = int(np.argmin(dist))
            if best is None or dist[i] < best[0]:
                best = (dist[i], label, float(df['x'].iloc[i]), float(df['y'].iloc[i]))
        if best is None:
            return None
        _, label, px, py = best
        return self._tooltip(label, px, py)

    def _connect_hover(self):
        if self._hover_cid is not None:
            return
        self._hover_cid = self.figure.canvas.mpl_connect('motion_notify_event', self._on_hover)

    def _on_hover(self, event):
        if event.inaxes is not self.axes or event.xdata is None:
            return
        text = self.tooltip_at(event.xdata, event.ydata)
        if text is None:
            return
        if self._annotation is None or self._annotation.axes is not self.axes:
            self._annotation = self.axes.annotate(
                "", xy=(0, 0), xytext=(10, 10), textcoords='offset points',
                bbox={'boxstyle': 'round', 'fc': 'w', 'alpha': 0.9},
            )
        self._annotation.xy = (event.xdata, event.ydata)
        self._annotation.set_text(text)
        self._annotation.set_visible(True)
        self.figure.canvas.draw_idle()

    # --- Output ---

    def save(self, path: Path) -> Path:
        if self.figure is None:
            raise MissingTargetError(self.target_id)
        path = Path(path)
        self.figure.savefig(path)
        return path

    def close(self):
        if self.figure is not None:
            plt.close(self.figure)
        self.figure = None
        self.axes = None
        self._hover_cid = None
        self._annotation = None


# --- ZOOM LINK ---

class ZoomLink:
    """Mirrors selections made on the overview plot onto the main plot, and keeps them across re-renders."""

    def __init__(self, main: PlotTarget, overview: Optional[PlotTarget] = None):
        self.main = main
        self.overview = overview
        self.viewport: Optional[Viewport] = None
        self._selector = None

    def attach(self):
        """(Re)binds the interactive rectangle selector to the freshly drawn overview axes."""
        if self.overview is None or self.overview.axes is None:
            return
        self._selector = RectangleSelector(self.overview.axes, self._on_select, useblit=False, interactive=False)

    def _on_select(self, press, release):
        if None in (press.xdata, press.ydata, release.xdata, release.ydata):
            return
        self.select(Viewport(press.xdata, release.xdata, press.ydata, release.ydata))

    def select(self, viewport: Viewport):
        self.viewport = viewport.normalized()
        self.main.apply_viewport(self.viewport)

    def restore(self):
        if self.viewport is not None:
            self.main.apply_viewport(self.viewport)

    def reset(self):
        self.viewport = None
        self.main.autoscale()


# --- LEGEND ---

def series_keys(series: Iterable[Series]) -> List[str]:
    """One checkbox key per series: the label, then 'label#2', 'label#3' for repeats."""
    seen: Dict[str, int] = {}
    keys = []
    for s in series:
        n = seen.get(s.label, 0) + 1
        seen[s.label] = n
        keys.append(s.label if n == 1 else f"{s.label}#{n}")
    return keys


@dataclass
class LegendEntry:
    key: str
    label: str
    color: str
    checked: bool = True

    @property
    def disabled(self) -> bool:
        return not self.checked


class Legend:
    """Series checkboxes of one chart. Colors are fixed when a key first appears."""

    def __init__(self, container_id: str):
        self.container_id = container_id
        self.entries: Dict[str, LegendEntry] = {}

    @property
    def created(self) -> bool:
        return bool(self.entries)

    @property
    def labels(self) -> List[str]:
        return list(self.entries)

    @property
    def disabled_labels(self) -> List[str]:
        return [e.key for e in self.entries.values() if e.disabled]

    @property
    def colors(self) -> Dict[str, str]:
        return {e.key: e.color for e in self.entries.values()}

    def sync(self, series: Sequence[Series]):
        for key, s in zip(series_keys(series), series):
            if key not in self.entries:
                color = s.color or palette_color(len(self.entries))
                self.entries[key] = LegendEntry(key=key, label=s.label, color=color)

    def selection(self, series: Sequence[Series]) -> List[Tuple[str, Series]]:
        """Checked (key, series) pairs in plot order; unknown keys count as checked."""
        return [
            (key, s) for key, s in zip(series_keys(series), series)
            if key not in self.entries or self.entries[key].checked
        ]

    def selected(self, series: Sequence[Series]) -> List[Series]:
        return [s for _, s in self.selection(series)]

    def colors_for(self, keys: Iterable[str]) -> Tuple[Optional[str], ...]:
        return tuple(self.entries[k].color if k in self.entries else None for k in keys)

    def set_all(self, checked: bool):
        for entry in self.entries.values():
            entry.checked = checked

    def toggle(self, key: str, checked: Optional[bool] = None) -> bool:
        if key not in self.entries:
            raise MissingTargetError(f"{self.container_id}/{key}")
        entry = self.entries[key]
        entry.checked = (not entry.checked) if checked is None else checked
        return entry.checked


# --- PAGE ---

@dataclass
class Panel:
    body_id: str
    collapsed: bool = True
    placeholder: Optional[str] = None


class ReportPage:
    """Registry of the page elements a chart may draw into."""

    def __init__(self):
        self._targets: Dict[str, PlotTarget] = {}
        self._legends: Dict[str, Legend] = {}
        self._panels: Dict[str, Panel] = {}

    @classmethod
    def for_metrics(cls, descriptors: Iterable) -> "ReportPage":
        page = cls()
        for d in descriptors:
            page.add_target(d.plot_id)
            if d.overview:
                page.add_target(d.overview_id)
            page.add_legend(d.legend_id)
            page.add_panel(d.body_id)
        return page

    def add_target(self, target_id: str) -> PlotTarget:
        return self._targets.setdefault(target_id, PlotTarget(target_id))

    def add_legend(self, container_id: str) -> Legend:
        return self._legends.setdefault(container_id, Legend(container_id))

    def add_panel(self, body_id: str) -> Panel:
        return self._panels.setdefault(body_id, Panel(body_id))

    def has_target(self, target_id: str) -> bool:
        return target_id in self._targets

    def target(self, target_id: str) -> PlotTarget:
        try:
            return self._targets[target_id]
        except KeyError:
            raise MissingTargetError(target_id) from None

    def legend(self, container_id: str) -> Legend:
        try:
            return self._legends[container_id]
        except KeyError:
            raise MissingTargetError(container_id) from None

    def panel(self, body_id: str) -> Panel:
        try:
            return self._panels[body_id]
        except KeyError:
            raise MissingTargetError(body_id) from None

    def close(self):
        for target in self._targets.values():
            target.close()
        logging.info(f"Closed {len(self._targets)} plot target(s).")
