import importlib


alignment = importlib.import_module("src.series.alignment")
contracts = importlib.import_module("src.series.contracts")

DataPoint = contracts.DataPoint
TimeSeries = contracts.TimeSeries
SeriesMetadata = contracts.SeriesMetadata


def _series(name, points):
    data_points = tuple(
        DataPoint(timestamp=t, value=v, original_value=v * 10, label=str(t)) for t, v in points
    )
    return TimeSeries(
        source_name=name,
        data_points=data_points,
        metadata=SeriesMetadata(unit="", count=len(data_points)),
    )


def test_aligns_to_nearest_point_within_tolerance():
    series1 = _series("A", [(0, 1.0)])
    series2 = _series("B", [(3_700_000, 2.0), (3_500_000, 3.0)])

    result = alignment.align_time_series(series1, series2, tolerance_ms=3_600_000)

    assert len(result.aligned_pairs) == 1
    pair = result.aligned_pairs[0]
    assert pair.timestamp == 0
    assert pair.value2 == 3.0
    assert pair.original_value2 == 30.0
    assert pair.time_diff == 3_500_000


def test_points_without_partner_are_dropped():
    series1 = _series("A", [(0, 1.0), (10_000_000, 2.0), (20_000_000, 3.0)])
    series2 = _series("B", [(100, 5.0), (20_000_500, 6.0)])

    result = alignment.align_time_series(series1, series2, tolerance_ms=1000)

    assert [pair.timestamp for pair in result.aligned_pairs] == [0, 20_000_000]
    assert all(pair.time_diff <= 1000 for pair in result.aligned_pairs)


def test_first_candidate_wins_on_equal_gap():
    series1 = _series("A", [(1000, 1.0)])
    series2 = _series("B", [(500, 7.0), (1500, 8.0)])

    result = alignment.align_time_series(series1, series2)

    assert result.aligned_pairs[0].value2 == 7.0


def test_empty_or_missing_series_yield_no_pairs_but_pass_through():
    series = _series("A", [(0, 1.0)])
    empty = _series("B", [])

    result = alignment.align_time_series(series, empty)
    assert result.aligned_pairs == ()
    assert result.series1 is series
    assert result.series2 is empty

    missing = alignment.align_time_series(None, series)
    assert missing.aligned_pairs == ()
    assert missing.series1.source_name == "Series 1"
    assert missing.series2 is series


def test_output_follows_first_series_order():
    series1 = _series("A", [(0, 1.0), (1000, 2.0), (2000, 3.0)])
    series2 = _series("B", [(2100, 9.0), (900, 8.0), (50, 7.0)])

    pairs = alignment.align_points(series1.data_points, series2.data_points, tolerance_ms=500)

    assert [(p.timestamp, p.value2) for p in pairs] == [(0, 7.0), (1000, 8.0), (2000, 9.0)]
