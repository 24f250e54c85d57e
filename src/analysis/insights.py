"""Descriptive statistics over two canonical series.

Every function here is pure: it reads the series it is given and returns a
fresh result. Trend uses the point index (not the timestamp) as the
regressor, spikes use the population standard deviation, and correlation runs
on the aligned, possibly normalized, ``value`` fields.
"""

import math
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Optional

from src.series.alignment import DEFAULT_TOLERANCE_MS, align_points
from src.series.contracts import TimeSeries

from .contracts import (
    INSUFFICIENT_DATA_MESSAGE,
    STABLE_PATTERNS_MESSAGE,
    Correlation,
    Direction,
    InsightResult,
    Spike,
    Strength,
    Trend,
    TrendSummary,
)


DEFAULT_SPIKE_THRESHOLD = 1.5
TREND_THRESHOLD = 0.01
MIN_STD_DEV = 0.0001


def _round_half_up(value: float, digits: int) -> float:
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _format_date(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).date().isoformat()


def detect_trend(series: Optional[TimeSeries]) -> Trend:
    if series is None or len(series.data_points) < 2:
        return "stable"

    n = len(series.data_points)
    sum_x = sum_y = sum_xy = sum_x2 = 0.0
    for index, point in enumerate(series.data_points):
        sum_x += index
        sum_y += point.value
        sum_xy += index * point.value
        sum_x2 += index * index

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    mean_value = sum_y / n
    normalized_slope = slope / mean_value if mean_value != 0 else slope

    if normalized_slope > TREND_THRESHOLD:
        return "increasing"
    if normalized_slope < -TREND_THRESHOLD:
        return "decreasing"
    return "stable"


def detect_spikes(series: Optional[TimeSeries], threshold: float = DEFAULT_SPIKE_THRESHOLD) -> list[Spike]:
    """Return interior local extrema whose z-score exceeds ``threshold``."""
    if series is None or len(series.data_points) < 3:
        return []

    points = series.data_points
    values = [point.value for point in points]
    mean = sum(values) / len(values)
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    std_dev = math.sqrt(variance)

    if std_dev < MIN_STD_DEV:
        return []

    spikes: list[Spike] = []
    for index in range(1, len(points) - 1):
        current = values[index]
        previous = values[index - 1]
        following = values[index + 1]

        z_score = abs(current - mean) / std_dev
        if z_score <= threshold:
            continue

        is_local_max = current > previous and current > following
        is_local_min = current < previous and current < following
        if not (is_local_max or is_local_min):
            continue

        percent_change = (current - previous) / abs(previous) * 100 if previous != 0 else 0.0
        spikes.append(
            Spike(
                source=series.source_name,
                timestamp=points[index].timestamp,
                value=points[index].original_value,
                percent_change=_round_half_up(percent_change, 2),
                z_score=_round_half_up(z_score, 2),
            )
        )

    return spikes


def _classify_strength(coefficient: float) -> Strength:
    magnitude = abs(coefficient)
    if magnitude >= 0.7:
        return "strong"
    if magnitude >= 0.4:
        return "moderate"
    if magnitude >= 0.1:
        return "weak"
    return "none"


def _classify_direction(coefficient: float) -> Direction:
    # bands are independent of strength: r == 0.1 is "weak" with direction "none"
    if coefficient > 0.1:
        return "positive"
    if coefficient < -0.1:
        return "negative"
    return "none"


def pearson(values1: Sequence[float], values2: Sequence[float]) -> float:
    n = len(values1)
    if n == 0 or n != len(values2):
        return 0.0
    mean1 = sum(values1) / n
    mean2 = sum(values2) / n

    numerator = sum_sq1 = sum_sq2 = 0.0
    for value1, value2 in zip(values1, values2):
        diff1 = value1 - mean1
        diff2 = value2 - mean2
        numerator += diff1 * diff2
        sum_sq1 += diff1 * diff1
        sum_sq2 += diff2 * diff2

    denominator = math.sqrt(sum_sq1 * sum_sq2)
    if denominator == 0:
        return 0.0
    return numerator / denominator


def calculate_correlation(
    series1: Optional[TimeSeries],
    series2: Optional[TimeSeries],
    tolerance_ms: int = DEFAULT_TOLERANCE_MS,
) -> Correlation:
    if series1 is None or series2 is None or series1.is_empty or series2.is_empty:
        return Correlation()

    pairs = align_points(series1.data_points, series2.data_points, tolerance_ms)
    if len(pairs) < 2:
        return Correlation()

    coefficient = pearson([pair.value1 for pair in pairs], [pair.value2 for pair in pairs])
    return Correlation(
        coefficient=_round_half_up(coefficient, 3),
        strength=_classify_strength(coefficient),
        direction=_classify_direction(coefficient),
    )


def _display_name(series: TimeSeries, fallback: str) -> str:
    return series.source_name or fallback


def _trend_sentence(name1: str, name2: str, trends: TrendSummary) -> str:
    if trends.source1 == "stable" and trends.source2 == "stable":
        return f"Both {name1} and {name2} show stable patterns over the observed period."

    parts: list[str] = []
    if trends.source1 != "stable":
        parts.append(f"{name1} is {trends.source1}")
    if trends.source2 != "stable":
        parts.append(f"{name2} is {trends.source2}")
    return ", while ".join(parts) + "."


def _spike_sentence(spikes: Sequence[Spike]) -> str:
    if not spikes:
        return ""

    top = sorted(spikes, key=lambda spike: abs(spike.percent_change), reverse=True)[0]
    kind = "spike" if top.percent_change > 0 else "drop"
    change = _format_number(abs(top.percent_change))
    date = _format_date(top.timestamp)

    if len(spikes) == 1:
        return f"A notable {kind} of {change}% was detected in {top.source} on {date}."
    return f"Notable fluctuations were detected, including a {change}% {kind} in {top.source} on {date}."


def _correlation_sentence(name1: str, name2: str, correlation: Correlation) -> str:
    """Render ``A {strength} {direction} correlation (r=...) exists between ...``.

    The direction bands (|r| > 0.1) are narrower than the strength bands
    (|r| >= 0.1), so r of exactly 0.1 or -0.1 is "weak" with direction "none".
    In that case the direction word is left out (``A weak correlation ...``)
    instead of being reported as "negative".
    """
    if correlation.strength == "none":
        return f"No significant correlation was found between {name1} and {name2}."

    descriptor = correlation.strength
    if correlation.direction != "none":
        descriptor = f"{descriptor} {correlation.direction}"
    return (
        f"A {descriptor} correlation (r={_format_number(correlation.coefficient)}) "
        f"exists between {name1} and {name2}."
    )


def generate_insight_text(
    series1: Optional[TimeSeries],
    series2: Optional[TimeSeries],
    trends: TrendSummary,
    spikes: Sequence[Spike],
    correlation: Correlation,
) -> str:
    if series1 is None or series2 is None:
        return INSUFFICIENT_DATA_MESSAGE

    name1 = _display_name(series1, "First dataset")
    name2 = _display_name(series2, "Second dataset")

    sentences = [
        _trend_sentence(name1, name2, trends),
        _spike_sentence(spikes),
        _correlation_sentence(name1, name2, correlation),
    ]
    sentences = [sentence for sentence in sentences if sentence]
    if not sentences:
        return STABLE_PATTERNS_MESSAGE
    return " ".join(sentences)


def analyze_data(
    series1: Optional[TimeSeries],
    series2: Optional[TimeSeries],
    spike_threshold: float = DEFAULT_SPIKE_THRESHOLD,
    tolerance_ms: int = DEFAULT_TOLERANCE_MS,
) -> InsightResult:
    if series1 is None or series2 is None:
        return InsightResult()

    threshold = spike_threshold if spike_threshold > 0 else DEFAULT_SPIKE_THRESHOLD
    trends = TrendSummary(source1=detect_trend(series1), source2=detect_trend(series2))
    spikes = tuple(detect_spikes(series1, threshold) + detect_spikes(series2, threshold))
    correlation = calculate_correlation(series1, series2, tolerance_ms)

    return InsightResult(
        trends=trends,
        spikes=spikes,
        correlation=correlation,
        summary=generate_insight_text(series1, series2, trends, spikes, correlation),
    )
