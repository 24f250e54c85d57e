import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from src.analysis.contracts import InsightResult
from src.analysis.insights import analyze_data
from src.series.alignment import align_time_series
from src.series.contracts import Alignment, TimeSeries, TransformConfig, empty_time_series
from src.series.normalization import AIR_QUALITY, CRYPTO, CURRENCY, WEATHER, normalize_payload

from .adapters.coingecko import CoinGeckoAdapter
from .adapters.frankfurter import FrankfurterAdapter
from .adapters.open_meteo import OpenMeteoAdapter
from .adapters.openweather import ApiClient, OpenWeatherAirQualityAdapter
from .config import Settings, env_float, env_text, load_settings
from .errors import ErrorInfo, handle_error
from .source_registry import SourceDescriptor, get_source


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshResult:
    series1: TimeSeries
    series2: TimeSeries
    alignment: Alignment
    insights: InsightResult
    errors: tuple[ErrorInfo, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, object]:
        return {
            "series1": self.series1.to_dict(),
            "series2": self.series2.to_dict(),
            "aligned_pairs": len(self.alignment.aligned_pairs),
            "insights": self.insights.to_dict(),
            "errors": [error.to_dict() for error in self.errors],
        }


def build_series(
    descriptor: SourceDescriptor,
    payload: object,
    transform: Optional[TransformConfig] = None,
    settings: Optional[Settings] = None,
) -> TimeSeries:
    effective = transform or descriptor.effective_transform()
    if transform is None:
        if settings is not None:
            effective = replace(effective, max_points=settings.max_points)
        if descriptor.shape == CURRENCY and effective.value_field is None:
            symbol = _currency_symbol()
            effective = replace(effective, value_field=symbol, unit=descriptor.transform.unit or symbol)
    series = normalize_payload(descriptor.shape, payload, effective)
    LOGGER.info(
        "canonicalized %s: %d points (unit=%s)",
        series.source_name,
        series.metadata.count,
        series.metadata.unit,
    )
    return series


def analyze_series(
    series1: TimeSeries,
    series2: TimeSeries,
    settings: Optional[Settings] = None,
    errors: tuple[ErrorInfo, ...] = (),
) -> RefreshResult:
    resolved = settings or Settings()
    return RefreshResult(
        series1=series1,
        series2=series2,
        alignment=align_time_series(series1, series2, resolved.alignment_tolerance_ms),
        insights=analyze_data(
            series1,
            series2,
            spike_threshold=resolved.spike_threshold,
            tolerance_ms=resolved.alignment_tolerance_ms,
        ),
        errors=errors,
    )


def run_refresh(
    descriptor1: SourceDescriptor,
    payload1: object,
    descriptor2: SourceDescriptor,
    payload2: object,
    settings: Optional[Settings] = None,
) -> RefreshResult:
    resolved = settings or load_settings()
    series1 = build_series(descriptor1, payload1, settings=resolved)
    series2 = build_series(descriptor2, payload2, settings=resolved)
    return analyze_series(series1, series2, resolved)


TIME_RANGES: dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_TIME_RANGE = "24h"


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    @property
    def days(self) -> int:
        return max(1, math.ceil((self.end - self.start).total_seconds() / 86_400))


def time_window(time_range: Optional[str], now: Optional[datetime] = None) -> TimeWindow:
    """Window shared by every source fetch; unknown ranges fall back to 24h."""
    end = now or datetime.now(timezone.utc)
    span = TIME_RANGES.get((time_range or "").strip(), TIME_RANGES[DEFAULT_TIME_RANGE])
    return TimeWindow(start=end - span, end=end)


def _currency_symbol() -> str:
    return env_text("CURRENCY_SYMBOL", "USD")


def _fetch_air_quality(client: ApiClient, window: TimeWindow) -> Mapping[str, object]:
    adapter = OpenWeatherAirQualityAdapter(client=client, api_key=env_text("OPENWEATHER_API_KEY", ""))
    return adapter.fetch_air_pollution_history(
        lat=env_float("AIR_QUALITY_LAT", 40.7128),
        lon=env_float("AIR_QUALITY_LON", -74.0060),
        start=int(window.start.timestamp()),
        end=int(window.end.timestamp()),
    )


def _fetch_crypto(client: ApiClient, window: TimeWindow) -> Mapping[str, object]:
    return CoinGeckoAdapter(client=client).fetch_market_chart(
        coin_id=env_text("CRYPTO_COIN_ID", "bitcoin"),
        vs_currency=env_text("CRYPTO_VS_CURRENCY", "usd"),
        days=window.days,
    )


def _fetch_weather(client: ApiClient, window: TimeWindow) -> Mapping[str, object]:
    return OpenMeteoAdapter(client=client).fetch_hourly_temperature(
        lat=env_float("WEATHER_LAT", 40.7128),
        lon=env_float("WEATHER_LON", -74.0060),
        past_days=window.days,
    )


def _fetch_currency(client: ApiClient, window: TimeWindow) -> Mapping[str, object]:
    return FrankfurterAdapter(client=client).fetch_rates(
        start_date=window.start.date(),
        end_date=window.end.date(),
        base=env_text("CURRENCY_BASE", "EUR"),
        symbol=_currency_symbol(),
    )


FETCHERS: dict[str, Callable[[ApiClient, TimeWindow], Mapping[str, object]]] = {
    AIR_QUALITY: _fetch_air_quality,
    CRYPTO: _fetch_crypto,
    WEATHER: _fetch_weather,
    CURRENCY: _fetch_currency,
}


def fetch_payload(descriptor: SourceDescriptor, client: ApiClient, window: TimeWindow) -> Mapping[str, object]:
    fetcher = FETCHERS.get(descriptor.shape)
    if fetcher is None:
        raise ValueError(f"no fetch config for source '{descriptor.key}'")
    return fetcher(client, window)


def _fetch_series(
    descriptor: SourceDescriptor,
    client: ApiClient,
    settings: Settings,
    window: TimeWindow,
) -> tuple[TimeSeries, Optional[ErrorInfo]]:
    try:
        payload = fetch_payload(descriptor, client, window)
    except Exception as error:
        info = handle_error(error, context=f"data-fetch:{descriptor.key}")
        return empty_time_series(descriptor.name, descriptor.unit), info
    return build_series(descriptor, payload, settings=settings), None


def fetch_and_refresh(
    source_key1: str,
    source_key2: str,
    client: ApiClient,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
    time_range: Optional[str] = None,
) -> RefreshResult:
    """Fetch both sources over one shared time window and analyse them.

    A source that fails to fetch is reported in ``errors`` and contributes an
    empty series, so the caller always receives a complete result.
    """
    resolved = settings or load_settings()
    descriptor1 = get_source(source_key1)
    descriptor2 = get_source(source_key2)
    window = time_window(time_range or resolved.time_range, now)
    LOGGER.info(
        "refreshing %s and %s over %s..%s",
        descriptor1.key,
        descriptor2.key,
        window.start.isoformat(),
        window.end.isoformat(),
    )

    series1, error1 = _fetch_series(descriptor1, client, resolved, window)
    series2, error2 = _fetch_series(descriptor2, client, resolved, window)
    errors = tuple(error for error in (error1, error2) if error is not None)
    return analyze_series(series1, series2, resolved, errors)
