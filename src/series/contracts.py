from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional


DEFAULT_MAX_POINTS = 100


def _optional_text(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class TransformConfig:
    normalize: bool = False
    unit: Optional[str] = None
    source_name: Optional[str] = None
    timestamp_field: Optional[str] = None
    value_field: Optional[str] = None
    max_points: int = DEFAULT_MAX_POINTS

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, object]]) -> "TransformConfig":
        """Build a config from a camelCase or snake_case mapping.

        Unknown keys are ignored; a missing mapping yields the defaults.
        """
        if not raw:
            return cls()

        def pick(*names: str) -> object:
            for name in names:
                if name in raw:
                    return raw[name]
            return None

        max_points_raw = pick("maxPoints", "max_points")
        try:
            max_points = int(max_points_raw) if max_points_raw is not None else DEFAULT_MAX_POINTS  # type: ignore[arg-type]
        except (TypeError, ValueError):
            max_points = DEFAULT_MAX_POINTS

        unit_raw = pick("unit")
        return cls(
            normalize=bool(pick("normalize")),
            unit=None if unit_raw is None else str(unit_raw),
            source_name=_optional_text(pick("sourceName", "source_name")),
            timestamp_field=_optional_text(pick("timestampField", "timestamp_field")),
            value_field=_optional_text(pick("valueField", "value_field")),
            max_points=max_points,
        )


@dataclass(frozen=True)
class DataPoint:
    timestamp: int
    value: float
    original_value: float
    label: str

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "value": self.value,
            "original_value": self.original_value,
            "label": self.label,
        }


@dataclass(frozen=True)
class SeriesMetadata:
    unit: str
    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    count: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "unit": self.unit,
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "count": self.count,
        }


@dataclass(frozen=True)
class TimeSeries:
    source_name: str
    data_points: tuple[DataPoint, ...] = ()
    metadata: SeriesMetadata = field(default_factory=lambda: SeriesMetadata(unit=""))

    @property
    def is_empty(self) -> bool:
        return not self.data_points

    def to_dict(self) -> dict[str, object]:
        return {
            "source_name": self.source_name,
            "data_points": [point.to_dict() for point in self.data_points],
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class AlignedPair:
    timestamp: int
    value1: float
    value2: float
    original_value1: float
    original_value2: float
    time_diff: int

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "value1": self.value1,
            "value2": self.value2,
            "original_value1": self.original_value1,
            "original_value2": self.original_value2,
            "time_diff": self.time_diff,
        }


@dataclass(frozen=True)
class Alignment:
    series1: TimeSeries
    series2: TimeSeries
    aligned_pairs: tuple[AlignedPair, ...] = ()


def empty_time_series(source_name: str, unit: str = "") -> TimeSeries:
    return TimeSeries(source_name=source_name, data_points=(), metadata=SeriesMetadata(unit=unit))
