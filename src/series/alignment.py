from collections.abc import Sequence
from typing import Optional

from .contracts import AlignedPair, Alignment, DataPoint, TimeSeries, empty_time_series


DEFAULT_TOLERANCE_MS = 3_600_000


def align_points(
    points1: Sequence[DataPoint],
    points2: Sequence[DataPoint],
    tolerance_ms: int = DEFAULT_TOLERANCE_MS,
) -> tuple[AlignedPair, ...]:
    """Pair each point of ``points1`` with its nearest neighbour in ``points2``.

    Points without a partner within ``tolerance_ms`` are dropped. On equal
    gaps the earliest candidate in ``points2`` order wins.
    """
    pairs: list[AlignedPair] = []
    for point1 in points1:
        closest: Optional[DataPoint] = None
        min_diff = float("inf")
        for point2 in points2:
            diff = abs(point1.timestamp - point2.timestamp)
            if diff < min_diff and diff <= tolerance_ms:
                min_diff = diff
                closest = point2

        if closest is None:
            continue
        pairs.append(
            AlignedPair(
                timestamp=point1.timestamp,
                value1=point1.value,
                value2=closest.value,
                original_value1=point1.original_value,
                original_value2=closest.original_value,
                time_diff=abs(point1.timestamp - closest.timestamp),
            )
        )
    return tuple(pairs)


def align_time_series(
    series1: Optional[TimeSeries],
    series2: Optional[TimeSeries],
    tolerance_ms: int = DEFAULT_TOLERANCE_MS,
) -> Alignment:
    resolved1 = series1 if series1 is not None else empty_time_series("Series 1")
    resolved2 = series2 if series2 is not None else empty_time_series("Series 2")
    if resolved1.is_empty or resolved2.is_empty:
        return Alignment(series1=resolved1, series2=resolved2, aligned_pairs=())

    pairs = align_points(resolved1.data_points, resolved2.data_points, tolerance_ms)
    return Alignment(series1=resolved1, series2=resolved2, aligned_pairs=pairs)
