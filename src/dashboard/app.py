from __future__ import annotations

import importlib
import os
from collections.abc import Sequence

from src.analysis.contracts import InsightResult
from src.ingestion.cli import build_http_client
from src.ingestion.config import load_settings
from src.ingestion.errors import ErrorInfo
from src.ingestion.pipeline import TIME_RANGES, RefreshResult, fetch_and_refresh
from src.series.contracts import TimeSeries

TREND_BADGES: dict[str, str] = {
    "increasing": "📈 increasing",
    "decreasing": "📉 decreasing",
    "stable": "➖ stable",
}
DEFAULT_SOURCE1 = "airQuality"
DEFAULT_SOURCE2 = "cryptocurrency"


def _format_stat(value: float) -> str:
    return f"{value:,.2f}"


def build_series_card(series: TimeSeries) -> dict[str, object]:
    metadata = series.metadata
    if series.is_empty:
        return {
            "title": series.source_name,
            "unit": metadata.unit,
            "status": "empty",
            "stats": {},
            "chart": {"label": [], "value": []},
        }
    return {
        "title": series.source_name,
        "unit": metadata.unit,
        "status": "ok",
        "stats": {
            "min": _format_stat(metadata.min),
            "max": _format_stat(metadata.max),
            "mean": _format_stat(metadata.mean),
            "count": str(metadata.count),
        },
        "chart": {
            "label": [point.label for point in series.data_points],
            "value": [point.original_value for point in series.data_points],
        },
    }


def build_spike_rows(insights: InsightResult) -> list[dict[str, object]]:
    return [
        {
            "source": spike.source,
            "timestamp": spike.timestamp,
            "value": spike.value,
            "percent_change": spike.percent_change,
            "z_score": spike.z_score,
        }
        for spike in insights.spikes
    ]


def _chart_columns(series1: TimeSeries, series2: TimeSeries) -> tuple[str, str]:
    name1 = series1.source_name or "Series 1"
    name2 = series2.source_name or "Series 2"
    if name1 == name2:
        name2 = f"{name2} (2)"
    return name1, name2


def build_combined_chart(series1: TimeSeries, series2: TimeSeries) -> dict[str, list[object]]:
    """Both series' ``value`` fields on one timeline; gaps are ``None``."""
    name1, name2 = _chart_columns(series1, series2)
    by_timestamp: dict[int, dict[str, object]] = {}
    for column, series in ((name1, series1), (name2, series2)):
        for point in series.data_points:
            row = by_timestamp.setdefault(point.timestamp, {"label": point.label})
            row.setdefault(column, point.value)

    chart: dict[str, list[object]] = {"label": [], name1: [], name2: []}
    for timestamp in sorted(by_timestamp):
        row = by_timestamp[timestamp]
        chart["label"].append(row["label"])
        chart[name1].append(row.get(name1))
        chart[name2].append(row.get(name2))
    return chart


def render_series_card(series: TimeSeries) -> None:
    st = importlib.import_module("streamlit")
    card = build_series_card(series)

    st.subheader(f"{card['title']} ({card['unit']})" if card["unit"] else str(card["title"]))
    if card["status"] == "empty":
        st.info(f"No data available for {card['title']}.")
        return

    stats = card["stats"]
    for label in ("min", "max", "mean", "count"):
        st.write(f"{label}: {stats[label]}")  # type: ignore[index]
    st.line_chart(card["chart"], x="label", y="value")


def render_insights(insights: InsightResult, names: tuple[str, str]) -> None:
    st = importlib.import_module("streamlit")

    st.subheader("Insights")
    st.write(insights.summary)

    st.write(f"{names[0]}: {TREND_BADGES.get(insights.trends.source1, insights.trends.source1)}")
    st.write(f"{names[1]}: {TREND_BADGES.get(insights.trends.source2, insights.trends.source2)}")

    correlation = insights.correlation
    st.caption(
        f"correlation r={correlation.coefficient} · strength={correlation.strength} · "
        f"direction={correlation.direction}"
    )

    spike_rows = build_spike_rows(insights)
    if spike_rows:
        st.dataframe(spike_rows, use_container_width=True)


def render_errors(errors: Sequence[ErrorInfo]) -> None:
    if not errors:
        return
    st = importlib.import_module("streamlit")
    for error in errors:
        suffix = " (retryable)" if error.retryable else ""
        st.error(f"[{error.kind.value}] {error.message}{suffix}")


def render_combined_chart(series1: TimeSeries, series2: TimeSeries) -> None:
    if series1.is_empty and series2.is_empty:
        return
    st = importlib.import_module("streamlit")
    name1, name2 = _chart_columns(series1, series2)
    st.subheader("Comparison")
    st.line_chart(build_combined_chart(series1, series2), x="label", y=[name1, name2])


def render_dashboard(result: RefreshResult) -> None:
    st = importlib.import_module("streamlit")
    series1 = result.series1
    series2 = result.series2

    render_errors(result.errors)

    left, right = st.columns(2)
    with left:
        render_series_card(series1)
    with right:
        render_series_card(series2)

    render_combined_chart(series1, series2)
    render_insights(result.insights, (series1.source_name, series2.source_name))


def run_streamlit_app(configure_page: bool = True) -> None:
    st = importlib.import_module("streamlit")

    if configure_page:
        st.set_page_config(page_title="series-insights", layout="wide")
    st.title("series-insights")

    source1 = os.getenv("DASHBOARD_SOURCE1", DEFAULT_SOURCE1)
    source2 = os.getenv("DASHBOARD_SOURCE2", DEFAULT_SOURCE2)
    st.caption(f"Comparing {source1} with {source2}")

    settings = load_settings()
    options = list(TIME_RANGES)
    default_range = settings.time_range if settings.time_range in TIME_RANGES else options[0]
    time_range = st.selectbox("Time range", options, index=options.index(default_range))

    result = fetch_and_refresh(
        source1,
        source2,
        client=build_http_client(settings),
        settings=settings,
        time_range=time_range,
    )
    render_dashboard(result)
