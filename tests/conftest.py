"""Pytest fixtures shared across the perfgraphs test suite."""

import json
from pathlib import Path
from typing import Dict, List, Sequence

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402

from perfgraphs.metrics import load_metric_table  # noqa: E402
from perfgraphs.payload import MetricPayload  # noqa: E402

EPOCH_START = 1.74790848e12


def raw_payload(title: str, series: List[dict], **extra) -> dict:
    """Return an exporter-shaped payload wrapped in its 'result' envelope."""

    result = {
        "minX": 0.0,
        "maxX": 1.0,
        "minY": 0.0,
        "maxY": 1.0,
        "title": title,
        "series": series,
        "supportsControllersDiscrimination": True,
    }
    result.update(extra)
    return {"result": result}


@pytest.fixture
def table():
    """Return the packaged metric descriptor table."""

    return load_metric_table()


@pytest.fixture
def duplicate_label_payload() -> MetricPayload:
    """Return a payload where 'Req-success' exists as a leaf and as a controller aggregate."""

    return MetricPayload.from_dict(
        raw_payload(
            "Transactions Per Second",
            [
                {"label": "Req-success", "isController": False, "isOverall": False, "data": [[0, 1.0], [1, 2.0]]},
                {"label": "Req-failure", "isController": False, "isOverall": False, "data": [[0, 0.5]]},
                {"label": "Req-success", "isController": True, "isOverall": True, "data": [[0, 9.0], [1, 9.5]]},
            ],
        )
    )


@pytest.fixture
def time_raw_payloads() -> dict:
    """Return raw payloads for the three charts drawn on page load plus two lazy ones."""

    def over_time(title: str, labels: List[str]) -> dict:
        series = [
            {
                "label": label,
                "isController": False,
                "isOverall": False,
                "data": [[EPOCH_START + 60000 * i, float(10 * (n + 1) + i)] for i in range(3)],
            }
            for n, label in enumerate(labels)
        ]
        return raw_payload(title, series, granularity=60000, minX=EPOCH_START, maxX=EPOCH_START + 120000)

    return {
        "hitsPerSecond": over_time("Hits Per Second", ["hitsPerSecond"]),
        "responseTimesOverTime": over_time("Response Time Over Time", ["RoundUp Request", "Login Request"]),
        "responseTimePercentiles": raw_payload(
            "Response Time Percentiles",
            [{"label": "RoundUp Request", "isController": False, "isOverall": False,
              "data": [[0.0, 3.0], [50.0, 20.0], [99.9, 30002.0]]}],
            maxX=100.0,
        ),
        "codesPerSecond": over_time("Codes Per Second", ["200", "Non HTTP response code: java.net.SocketTimeoutException"]),
        "responseTimeDistribution": raw_payload(
            "Response Time Distribution",
            [{"label": "RoundUp Request", "isController": False, "isOverall": False,
              "data": [[0.0, 4807.0], [600.0, 1.0], [200.0, 1.0]]}],
            granularity=100,
        ),
    }


@pytest.fixture
def payloads(time_raw_payloads) -> Dict[str, MetricPayload]:
    """Return parsed payloads keyed by metric key."""

    return {key: MetricPayload.from_dict(raw) for key, raw in time_raw_payloads.items()}


@pytest.fixture
def payload_file(tmp_path: Path, time_raw_payloads) -> Path:
    """Write the raw payloads to a single JSON file and return its path."""

    path = tmp_path / "graph_data.json"
    path.write_text(json.dumps(time_raw_payloads), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close("all")


def pytest_collection_modifyitems(items: Sequence[pytest.Item]) -> None:
    """Enforce that every test has exactly one speed marker (`unit` or `integration`)."""

    invalid: List[str] = []
    for item in items:
        has_unit = item.get_closest_marker("unit") is not None
        has_integration = item.get_closest_marker("integration") is not None
        if has_unit == has_integration:
            invalid.append(item.nodeid)
    if invalid:
        raise pytest.UsageError(
            "Each test must be marked with exactly one of @pytest.mark.unit or @pytest.mark.integration:\n"
            + "\n".join(f"- {nodeid}" for nodeid in invalid)
        )
