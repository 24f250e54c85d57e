import logging
import math
import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Callable, Optional

from .contracts import (
    DEFAULT_MAX_POINTS,
    DataPoint,
    SeriesMetadata,
    TimeSeries,
    TransformConfig,
    empty_time_series,
)
from .paths import extract_path, parse_key_path


LOGGER = logging.getLogger(__name__)

SECONDS_TIMESTAMP_CUTOFF = 10_000_000_000

AIR_QUALITY = "air_quality"
CRYPTO = "crypto"
WEATHER = "weather"
CURRENCY = "currency"
GENERIC = "generic"

# shape -> (default source name, default unit)
SHAPE_DEFAULTS: dict[str, tuple[str, str]] = {
    AIR_QUALITY: ("Air Quality", "AQI"),
    CRYPTO: ("Cryptocurrency", "USD"),
    WEATHER: ("Weather", "°C"),
    CURRENCY: ("Currency", "USD"),
    GENERIC: ("Unknown", ""),
}


def _parse_datetime(value: object) -> Optional[datetime]:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    for fmt in ("%Y-%m-%d", "%Y%m%d", "%Y-%m"):
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            pass

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _to_number(value: object) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def _to_float(value: object) -> Optional[float]:
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned or cleaned in {".", "NA", "NaN"}:
            return None
        try:
            parsed = float(cleaned)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return _to_number(value)


def _epoch_ms(number: float) -> Optional[int]:
    if not math.isfinite(number):
        return None
    return int(round(number))


def _datetime_to_ms(value: object) -> Optional[int]:
    dt = _parse_datetime(value)
    if dt is None:
        return None
    return _epoch_ms(dt.timestamp() * 1000)


def _label_for(timestamp_ms: int) -> Optional[str]:
    try:
        moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return moment.isoformat(timespec="seconds")


def _make_point(timestamp_ms: Optional[int], value: Optional[float]) -> Optional[DataPoint]:
    if timestamp_ms is None or value is None:
        return None
    label = _label_for(timestamp_ms)
    if label is None:
        return None
    return DataPoint(timestamp=timestamp_ms, value=value, original_value=value, label=label)


def limit_points(points: Sequence[DataPoint], max_points: int = DEFAULT_MAX_POINTS) -> tuple[DataPoint, ...]:
    """Keep the ``max_points`` most recent points of an ascending sequence."""
    if max_points <= 0:
        return ()
    if len(points) > max_points:
        return tuple(points[len(points) - max_points:])
    return tuple(points)


def calculate_metadata(values: Sequence[float], unit: str) -> SeriesMetadata:
    if not values:
        return SeriesMetadata(unit=unit)
    return SeriesMetadata(
        unit=unit,
        min=min(values),
        max=max(values),
        mean=sum(values) / len(values),
        count=len(values),
    )


def scale_points(points: Sequence[DataPoint], metadata: SeriesMetadata) -> tuple[DataPoint, ...]:
    """Min-max rescale ``value`` into [0, 1] using the metadata range.

    A zero range leaves the values untouched.
    """
    value_range = metadata.max - metadata.min
    if not points or value_range <= 0:
        return tuple(points)
    return tuple(
        DataPoint(
            timestamp=point.timestamp,
            value=(point.original_value - metadata.min) / value_range,
            original_value=point.original_value,
            label=point.label,
        )
        for point in points
    )


def _resolve_identity(shape: str, transform: TransformConfig) -> tuple[str, str]:
    default_name, default_unit = SHAPE_DEFAULTS.get(shape, SHAPE_DEFAULTS[GENERIC])
    source_name = transform.source_name or default_name
    unit = transform.unit if transform.unit is not None else default_unit
    return source_name, unit


def _build_series(
    source_name: str,
    unit: str,
    candidates: Iterable[Optional[DataPoint]],
    transform: TransformConfig,
) -> TimeSeries:
    collected: list[DataPoint] = []
    skipped = 0
    for point in candidates:
        if point is None:
            skipped += 1
            continue
        collected.append(point)

    if skipped:
        LOGGER.debug("skipped %d unparsable points for %s", skipped, source_name)

    ordered = sorted(collected, key=lambda p: p.timestamp)
    limited = limit_points(ordered, transform.max_points)
    metadata = calculate_metadata([p.value for p in limited], unit)

    if transform.normalize and limited:
        limited = scale_points(limited, metadata)

    return TimeSeries(source_name=source_name, data_points=limited, metadata=metadata)


def _empty_for(source_name: str, unit: str, reason: str) -> TimeSeries:
    LOGGER.warning("%s payload malformed (%s); returning empty series", source_name, reason)
    return empty_time_series(source_name, unit)


def _air_quality_point(item: object) -> Optional[DataPoint]:
    if not isinstance(item, Mapping):
        return None
    seconds = _to_number(item.get("dt"))
    main = item.get("main")
    if seconds is None or not isinstance(main, Mapping):
        return None
    return _make_point(_epoch_ms(seconds * 1000), _to_float(main.get("aqi")))


def normalize_air_quality(
    payload: Optional[Mapping[str, object]], transform: Optional[TransformConfig] = None
) -> TimeSeries:
    """OpenWeather air pollution history: ``{"list": [{"dt": s, "main": {"aqi": n}}]}``."""
    config = transform or TransformConfig()
    source_name, unit = _resolve_identity(AIR_QUALITY, config)
    records = payload.get("list") if isinstance(payload, Mapping) else None
    if not isinstance(records, list):
        return _empty_for(source_name, unit, "missing list")
    return _build_series(source_name, unit, (_air_quality_point(item) for item in records), config)


def _crypto_point(entry: object) -> Optional[DataPoint]:
    if not isinstance(entry, (list, tuple)) or len(entry) < 2:
        return None
    timestamp = _to_number(entry[0])
    if timestamp is None:
        return None
    return _make_point(_epoch_ms(timestamp), _to_number(entry[1]))


def normalize_crypto(
    payload: Optional[Mapping[str, object]], transform: Optional[TransformConfig] = None
) -> TimeSeries:
    """CoinGecko market chart: ``{"prices": [[ms, price], ...]}``."""
    config = transform or TransformConfig()
    source_name, unit = _resolve_identity(CRYPTO, config)
    prices = payload.get("prices") if isinstance(payload, Mapping) else None
    if not isinstance(prices, list):
        return _empty_for(source_name, unit, "missing prices")
    return _build_series(source_name, unit, (_crypto_point(entry) for entry in prices), config)


def normalize_weather(
    payload: Optional[Mapping[str, object]], transform: Optional[TransformConfig] = None
) -> TimeSeries:
    """Open-Meteo hourly forecast: parallel ``hourly.time`` / ``hourly.temperature_2m`` arrays."""
    config = transform or TransformConfig()
    source_name, unit = _resolve_identity(WEATHER, config)
    hourly = payload.get("hourly") if isinstance(payload, Mapping) else None
    if not isinstance(hourly, Mapping):
        return _empty_for(source_name, unit, "missing hourly")

    times = hourly.get("time")
    value_key = config.value_field or "temperature_2m"
    temperatures = hourly.get(value_key)
    if not isinstance(times, list) or not isinstance(temperatures, list):
        return _empty_for(source_name, unit, f"missing hourly.time or hourly.{value_key}")

    candidates = (
        _make_point(_datetime_to_ms(time_raw), _to_float(temperature))
        for time_raw, temperature in zip(times, temperatures)
    )
    return _build_series(source_name, unit, candidates, config)


def _currency_point(date_key: object, rates: object, symbol: str) -> Optional[DataPoint]:
    if not isinstance(date_key, str) or not isinstance(rates, Mapping):
        return None
    return _make_point(_datetime_to_ms(f"{date_key.strip()}T12:00:00Z"), _to_float(rates.get(symbol)))


def normalize_currency(
    payload: Optional[Mapping[str, object]], transform: Optional[TransformConfig] = None
) -> TimeSeries:
    """Frankfurter time series: ``{"rates": {"YYYY-MM-DD": {"USD": rate}}}``.

    Each day is stamped at 12:00 UTC.
    """
    config = transform or TransformConfig()
    source_name, unit = _resolve_identity(CURRENCY, config)
    rates = payload.get("rates") if isinstance(payload, Mapping) else None
    if not isinstance(rates, Mapping):
        return _empty_for(source_name, unit, "missing rates")

    symbol = config.value_field or "USD"
    candidates = (_currency_point(date_key, day_rates, symbol) for date_key, day_rates in rates.items())
    return _build_series(source_name, unit, candidates, config)


def _generic_timestamp_ms(raw: object) -> Optional[int]:
    number = _to_number(raw)
    if number is not None:
        if number < SECONDS_TIMESTAMP_CUTOFF:
            number *= 1000
        return _epoch_ms(number)
    if isinstance(raw, bool):
        return None
    return _datetime_to_ms(raw)


def create_time_series(
    data: object,
    value_key: Optional[str],
    timestamp_key: Optional[str],
    transform: Optional[TransformConfig] = None,
) -> TimeSeries:
    """Canonicalize a generic list of records using caller-supplied key paths."""
    config = transform or TransformConfig()
    source_name, unit = _resolve_identity(GENERIC, config)
    if not isinstance(data, list) or not data:
        return empty_time_series(source_name, unit)

    value_path = parse_key_path(value_key)
    timestamp_path = parse_key_path(timestamp_key)
    if value_path is None or timestamp_path is None:
        LOGGER.warning(
            "unsupported key path for %s (value=%r, timestamp=%r)", source_name, value_key, timestamp_key
        )

    def candidates() -> Iterable[Optional[DataPoint]]:
        for item in data:
            if item is None:
                yield None
                continue
            value = _to_float(extract_path(item, value_path))
            timestamp = extract_path(item, timestamp_path)
            if timestamp is None:
                yield None
                continue
            yield _make_point(_generic_timestamp_ms(timestamp), value)

    return _build_series(source_name, unit, candidates(), config)


def _normalize_generic(
    payload: Optional[Mapping[str, object]], transform: Optional[TransformConfig] = None
) -> TimeSeries:
    config = transform or TransformConfig()
    return create_time_series(payload, config.value_field, config.timestamp_field, config)


_NORMALIZERS: dict[str, Callable[[Optional[Mapping[str, object]], Optional[TransformConfig]], TimeSeries]] = {
    AIR_QUALITY: normalize_air_quality,
    CRYPTO: normalize_crypto,
    WEATHER: normalize_weather,
    CURRENCY: normalize_currency,
    GENERIC: _normalize_generic,
}


def supported_shapes() -> list[str]:
    return list(_NORMALIZERS)


def normalize_payload(
    shape: str,
    payload: object,
    transform: Optional[TransformConfig] = None,
) -> TimeSeries:
    """Dispatch a raw payload (optionally wrapped in an adapter envelope) by shape."""
    config = transform or TransformConfig()
    raw_payload = payload
    if isinstance(payload, Mapping) and "payload" in payload and "source" in payload:
        raw_payload = payload.get("payload")

    normalizer = _NORMALIZERS.get(re.sub(r"[\s-]+", "_", shape.strip().lower()))
    if normalizer is None:
        source_name, unit = _resolve_identity(GENERIC, config)
        return _empty_for(source_name, unit, f"unsupported shape {shape!r}")
    return normalizer(raw_payload, config)  # type: ignore[arg-type]
