"""Unit tests for the generic chart adapter."""

from typing import Optional

import pytest

from perfgraphs.chart import ChartAdapter, Failed, Ok, Skipped
from perfgraphs.config import Settings
from perfgraphs.errors import MissingTargetError
from perfgraphs.payload import MetricPayload, Series
from perfgraphs.series_filter import FilterRequest
from perfgraphs.surface import ReportPage, Viewport

pytestmark = pytest.mark.unit


def _adapter(table, key: str, payload: MetricPayload, settings: Optional[Settings] = None) -> ChartAdapter:
    page = ReportPage.for_metrics([table[key]])
    return ChartAdapter(table[key], payload, page, settings)


def _simple_payload(*series: Series) -> MetricPayload:
    return MetricPayload(title="Simple", series=series, min_x=0, max_x=1, min_y=1, max_y=2)


def test_single_series_plots_unchanged(table) -> None:
    """One series with two points is drawn as given."""

    adapter = _adapter(table, "responseTimeVsRequest", _simple_payload(Series("A", ((0.0, 1.0), (1.0, 2.0)))))
    result = adapter.render(FilterRequest(""))

    assert result == Ok("responseTimeVsRequest", ("A",))
    main = adapter.page.target(table["responseTimeVsRequest"].plot_id)
    assert main.is_graph
    assert main.drawn_labels == ["A"]
    assert main.axes.collections[0].get_offsets().tolist() == [[0.0, 1.0], [1.0, 2.0]]
    assert adapter.payload.series[0].data == ((0.0, 1.0), (1.0, 2.0))


def test_empty_filter_result_shows_placeholder(table, payloads) -> None:
    """Charts hiding empty results show the filter text and skip plotting."""

    adapter = _adapter(table, "responseTimesOverTime", payloads["responseTimesOverTime"])
    result = adapter.render(FilterRequest("zzz"))

    assert isinstance(result, Skipped)
    assert result.reason == "No graph series with filter=zzz"
    main = adapter.page.target(table["responseTimesOverTime"].plot_id)
    assert main.text == "No graph series with filter=zzz"
    assert main.plot_count == 0
    assert adapter.page.panel(table["responseTimesOverTime"].body_id).placeholder == result.reason
    assert not adapter.rendered


def test_empty_result_draws_empty_chart_when_not_hidden(table, payloads) -> None:
    """Charts that keep empty results draw empty axes instead of a placeholder."""

    adapter = _adapter(table, "codesPerSecond", payloads["codesPerSecond"])
    result = adapter.render(FilterRequest("zzz"))

    assert result == Ok("codesPerSecond", ())
    assert adapter.page.target(table["codesPerSecond"].plot_id).is_graph


def test_plotting_error_is_reported_as_failed(table) -> None:
    """An exception while drawing becomes a Failed result."""

    payload = _simple_payload(Series("A", ((0.0, 1.0),), color="not-a-color"))
    adapter = _adapter(table, "timeVsThreads", payload)
    result = adapter.render(FilterRequest(""))

    assert isinstance(result, Failed)
    assert isinstance(result.error, ValueError)
    assert not adapter.rendered


def test_missing_target_is_raised(table) -> None:
    """Rendering into a page without the chart's element fails fast."""

    adapter = ChartAdapter(table["hitsPerSecond"], _simple_payload(), ReportPage())
    with pytest.raises(MissingTargetError, match="flotHitsPerSecond"):
        adapter.render(FilterRequest(""))


def test_timestamps_normalized_once(table, payloads) -> None:
    """Re-rendering does not shift timestamps a second time."""

    adapter = _adapter(table, "hitsPerSecond", payloads["hitsPerSecond"], Settings(time_zone_offset_ms=36000000))
    adapter.render(FilterRequest(""))
    first = adapter.payload.series[0].data
    adapter.render(FilterRequest(""))
    adapter.normalize_timestamps(36000000)

    assert first[0][0] == 36000000.0
    assert adapter.payload.series[0].data == first
    assert adapter.timestamps_fixed


def test_linear_chart_keeps_raw_x(table, payloads) -> None:
    """Charts without a time axis never re-base x values."""

    adapter = _adapter(table, "responseTimePercentiles", payloads["responseTimePercentiles"])
    adapter.render(FilterRequest(""))
    assert adapter.payload == payloads["responseTimePercentiles"]
    assert not adapter.timestamps_fixed


def test_toggle_round_trip(table, payloads) -> None:
    """Unchecking then re-checking a series restores the original series set."""

    adapter = _adapter(table, "responseTimesOverTime", payloads["responseTimesOverTime"])
    original = adapter.render(FilterRequest(""))

    off = adapter.toggle_series("RoundUp Request", FilterRequest(""))
    assert off.series_labels == ("Login Request",)
    on = adapter.toggle_series("RoundUp Request", FilterRequest(""))
    assert on == original


def test_toggle_all_off_and_on(table, payloads) -> None:
    """toggle_all clears and restores every series."""

    adapter = _adapter(table, "responseTimesOverTime", payloads["responseTimesOverTime"])
    adapter.render(FilterRequest(""))

    assert adapter.toggle_all(False, FilterRequest("")).series_labels == ()
    assert adapter.legend.disabled_labels == ["RoundUp Request", "Login Request"]
    assert adapter.toggle_all(True, FilterRequest("")).series_labels == ("RoundUp Request", "Login Request")


def test_zoom_persists_across_rerender(table, payloads) -> None:
    """A selection on the overview survives a legend toggle."""

    adapter = _adapter(table, "responseTimesOverTime", payloads["responseTimesOverTime"])
    adapter.render(FilterRequest(""))
    adapter.select(Viewport(0, 60000, 0, 50))
    adapter.toggle_series("Login Request", FilterRequest(""))

    main = adapter.page.target(table["responseTimesOverTime"].plot_id)
    assert main.axes.get_xlim() == (0.0, 60000.0)
    assert adapter.viewport == Viewport(0, 60000, 0, 50)


def test_select_before_render_raises(table, payloads) -> None:
    """There is no overview to zoom from until the chart is drawn."""

    adapter = _adapter(table, "hitsPerSecond", payloads["hitsPerSecond"])
    with pytest.raises(MissingTargetError):
        adapter.select(Viewport(0, 1, 0, 1))


def test_total_tps_ignores_filter(table, duplicate_label_payload) -> None:
    """The total chart plots controller aggregates whatever the filter says."""

    adapter = _adapter(table, "totalTPS", duplicate_label_payload)
    result = adapter.render(FilterRequest("no such series"))
    assert result.series_labels == ("Req-success", "Req-failure")
    assert adapter.legend.labels == ["Req-success", "Req-failure"]


def test_unmerged_duplicate_labels_draw_their_own_data(table) -> None:
    """Series sharing a label without controller discrimination each plot their own points."""

    payload = _simple_payload(
        Series("X", ((0.0, 1.0), (1.0, 1.0))),
        Series("X", ((0.0, 5.0), (1.0, 5.0))),
    )
    adapter = _adapter(table, "timeVsThreads", payload)
    result = adapter.render(FilterRequest(""))

    main = adapter.page.target(table["timeVsThreads"].plot_id)
    assert result.series_labels == ("X", "X")
    assert [list(line.get_ydata()) for line in main.axes.get_lines()] == [[1.0, 1.0], [5.0, 5.0]]
    assert adapter.legend.labels == ["X", "X#2"]
    assert main.tooltip_at(0.0, 1.2) == "X: At 0.00 active threads, Average response time was 1.00 ms"


def test_duplicate_labels_toggle_independently(table) -> None:
    """Each repeated label has its own checkbox."""

    payload = _simple_payload(
        Series("X", ((0.0, 1.0), (1.0, 1.0))),
        Series("X", ((0.0, 5.0), (1.0, 5.0))),
    )
    adapter = _adapter(table, "timeVsThreads", payload)
    adapter.render(FilterRequest(""))
    adapter.toggle_series("X#2", FilterRequest(""))

    main = adapter.page.target(table["timeVsThreads"].plot_id)
    assert [list(line.get_ydata()) for line in main.axes.get_lines()] == [[1.0, 1.0]]
    assert [s.data for s in adapter.last_series] == [((0.0, 1.0), (1.0, 1.0))]


def test_last_series_tracks_plotted_variant(table) -> None:
    """The adapter remembers the merged variant it drew, not the payload's first one."""

    payload = MetricPayload(
        title="R",
        series=(
            Series("R", ((0.0, 9.0),), is_controller=True, is_overall=True),
            Series("R", ((0.0, 1.0), (1.0, 2.0))),
        ),
        min_x=0, max_x=1, min_y=0, max_y=9,
        supports_controllers_discrimination=True,
    )
    adapter = _adapter(table, "timeVsThreads", payload)
    adapter.render(FilterRequest(""))

    assert len(adapter.last_series) == 1
    assert not adapter.last_series[0].is_controller
    assert adapter.last_series[0].data == ((0.0, 1.0), (1.0, 2.0))
