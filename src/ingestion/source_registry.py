from dataclasses import dataclass, field

from src.series.contracts import TransformConfig
from src.series.normalization import AIR_QUALITY, CRYPTO, CURRENCY, SHAPE_DEFAULTS, WEATHER


@dataclass(frozen=True)
class SourceDescriptor:
    key: str
    name: str
    shape: str
    unit: str
    transform: TransformConfig = field(default_factory=TransformConfig)

    def effective_transform(self) -> TransformConfig:
        """Transform config with the descriptor's name and unit filled in."""
        return TransformConfig(
            normalize=self.transform.normalize,
            unit=self.transform.unit if self.transform.unit is not None else self.unit,
            source_name=self.transform.source_name or self.name,
            timestamp_field=self.transform.timestamp_field,
            value_field=self.transform.value_field,
            max_points=self.transform.max_points,
        )


def _descriptor(key: str, shape: str) -> SourceDescriptor:
    name, unit = SHAPE_DEFAULTS[shape]
    return SourceDescriptor(
        key=key,
        name=name,
        shape=shape,
        unit=unit,
        transform=TransformConfig(normalize=True),
    )


DEFAULT_SOURCES: dict[str, SourceDescriptor] = {
    "airQuality": _descriptor("airQuality", AIR_QUALITY),
    "cryptocurrency": _descriptor("cryptocurrency", CRYPTO),
    "weather": _descriptor("weather", WEATHER),
    "currency": _descriptor("currency", CURRENCY),
}


def source_keys() -> list[str]:
    return list(DEFAULT_SOURCES)


def get_source(key: str) -> SourceDescriptor:
    descriptor = DEFAULT_SOURCES.get(key.strip())
    if descriptor is None:
        raise ValueError(f"source config not found for '{key}'; expected one of {source_keys()}")
    return descriptor
