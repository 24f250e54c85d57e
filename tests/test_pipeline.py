import importlib
from datetime import datetime, timezone


pipeline = importlib.import_module("src.ingestion.pipeline")
config = importlib.import_module("src.ingestion.config")
registry = importlib.import_module("src.ingestion.source_registry")
errors = importlib.import_module("src.ingestion.errors")

BASE_SECONDS = 1_704_067_200


def _air_quality_payload():
    return {
        "list": [
            {"dt": BASE_SECONDS + hour * 3600, "main": {"aqi": aqi}}
            for hour, aqi in enumerate([1, 2, 3, 4, 5])
        ]
    }


def _crypto_payload():
    return {
        "prices": [
            [(BASE_SECONDS + hour * 3600) * 1000, price]
            for hour, price in enumerate([100.0, 110.0, 120.0, 130.0, 140.0])
        ]
    }


def test_run_refresh_canonicalizes_aligns_and_analyzes():
    result = pipeline.run_refresh(
        registry.get_source("airQuality"),
        _air_quality_payload(),
        registry.get_source("cryptocurrency"),
        {"source": "coingecko", "entity_id": "bitcoin", "payload": _crypto_payload()},
        settings=config.Settings(),
    )

    assert result.series1.source_name == "Air Quality"
    assert result.series2.source_name == "Cryptocurrency"
    assert result.series1.metadata.count == 5
    assert result.series1.data_points[0].value == 0.0
    assert result.series1.data_points[-1].value == 1.0
    assert result.series2.data_points[-1].original_value == 140.0
    assert len(result.alignment.aligned_pairs) == 5
    assert result.insights.trends.source1 == "increasing"
    assert result.insights.trends.source2 == "increasing"
    assert result.insights.correlation.coefficient == 1.0
    assert result.insights.correlation.strength == "strong"
    assert result.errors == ()


def test_run_refresh_applies_max_points_from_settings():
    result = pipeline.run_refresh(
        registry.get_source("airQuality"),
        _air_quality_payload(),
        registry.get_source("cryptocurrency"),
        _crypto_payload(),
        settings=config.Settings(max_points=3),
    )

    assert result.series1.metadata.count == 3
    assert result.series2.metadata.count == 3


def test_refresh_result_to_dict_reports_pair_count():
    result = pipeline.run_refresh(
        registry.get_source("airQuality"),
        _air_quality_payload(),
        registry.get_source("cryptocurrency"),
        _crypto_payload(),
        settings=config.Settings(),
    )

    payload = result.to_dict()

    assert payload["aligned_pairs"] == 5
    assert payload["errors"] == []
    assert payload["insights"]["correlation"]["direction"] == "positive"


class RoutingClient:
    def __init__(self, routes):
        self.routes = routes
        self.urls = []

    def request_json(self, url, headers=None):
        self.urls.append(url)
        for fragment, response in self.routes.items():
            if fragment in url:
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"unexpected url {url}")


def test_fetch_and_refresh_uses_adapters_for_both_sources(monkeypatch):
    monkeypatch.setenv("OPENWEATHER_API_KEY", "OWKEY")
    client = RoutingClient(
        {
            "air_pollution/history": _air_quality_payload(),
            "market_chart": _crypto_payload(),
        }
    )

    result = pipeline.fetch_and_refresh(
        "airQuality",
        "cryptocurrency",
        client=client,
        settings=config.Settings(),
        now=datetime(2024, 1, 2, tzinfo=timezone.utc),
    )

    assert len(client.urls) == 2
    assert "appid=OWKEY" in client.urls[0]
    assert result.errors == ()
    assert len(result.alignment.aligned_pairs) == 5


def test_fetch_and_refresh_reports_failed_source_and_keeps_the_other():
    client = RoutingClient(
        {
            "air_pollution/history": _air_quality_payload(),
            "market_chart": errors.FetchError(
                "request failed with status 429",
                kind=errors.FailureKind.RATE_LIMIT,
                status_code=429,
            ),
        }
    )

    result = pipeline.fetch_and_refresh(
        "airQuality",
        "cryptocurrency",
        client=client,
        settings=config.Settings(),
        now=datetime(2024, 1, 2, tzinfo=timezone.utc),
    )

    assert result.series1.metadata.count == 5
    assert result.series2.is_empty
    assert result.series2.source_name == "Cryptocurrency"
    assert len(result.errors) == 1
    assert result.errors[0].kind == errors.FailureKind.RATE_LIMIT
    assert result.errors[0].context == "data-fetch:cryptocurrency"
    assert result.alignment.aligned_pairs == ()


def test_fetch_payload_builds_currency_window_from_time_range():
    client = RoutingClient({"frankfurter": {"rates": {}}})
    window = pipeline.time_window("7d", datetime(2024, 3, 11, 8, 0, tzinfo=timezone.utc))

    envelope = pipeline.fetch_payload(registry.get_source("currency"), client, window)

    assert "2024-03-04..2024-03-11" in client.urls[0]
    assert envelope["source"] == "frankfurter"


def test_time_window_defaults_to_24h_for_unknown_ranges():
    now = datetime(2024, 3, 11, 8, 0, tzinfo=timezone.utc)

    assert pipeline.time_window("30d", now).days == 30
    assert pipeline.time_window("24h", now).days == 1
    assert pipeline.time_window("1y", now).start == datetime(2024, 3, 10, 8, 0, tzinfo=timezone.utc)
    assert pipeline.time_window(None, now).days == 1


def test_fetch_and_refresh_shares_one_window_across_sources():
    client = RoutingClient(
        {
            "air_pollution/history": _air_quality_payload(),
            "market_chart": _crypto_payload(),
        }
    )
    now = datetime(2024, 1, 31, tzinfo=timezone.utc)

    pipeline.fetch_and_refresh(
        "airQuality",
        "cryptocurrency",
        client=client,
        settings=config.Settings(),
        now=now,
        time_range="30d",
    )

    start = int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp())
    assert f"start={start}" in client.urls[0]
    assert "days=30" in client.urls[1]


def test_fetch_and_refresh_uses_time_range_from_settings():
    client = RoutingClient({"open-meteo": {"hourly": {"time": [], "temperature_2m": []}}})

    pipeline.fetch_and_refresh(
        "weather",
        "weather",
        client=client,
        settings=config.Settings(time_range="7d"),
        now=datetime(2024, 1, 31, tzinfo=timezone.utc),
    )

    assert all("past_days=7" in url for url in client.urls)


def test_currency_series_follows_configured_symbol(monkeypatch):
    monkeypatch.setenv("CURRENCY_SYMBOL", "GBP")
    client = RoutingClient(
        {
            "frankfurter": {
                "rates": {
                    "2024-01-01": {"GBP": 0.86},
                    "2024-01-02": {"GBP": 0.87},
                }
            }
        }
    )

    result = pipeline.fetch_and_refresh(
        "currency",
        "currency",
        client=client,
        settings=config.Settings(),
        now=datetime(2024, 1, 2, tzinfo=timezone.utc),
    )

    assert "to=GBP" in client.urls[0]
    assert result.errors == ()
    assert result.series1.metadata.count == 2
    assert result.series1.metadata.unit == "GBP"
    assert result.series1.data_points[0].original_value == 0.86
