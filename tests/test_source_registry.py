import importlib

import pytest


registry = importlib.import_module("src.ingestion.source_registry")


def test_default_sources_cover_all_feed_shapes():
    assert registry.source_keys() == ["airQuality", "cryptocurrency", "weather", "currency"]
    assert {descriptor.shape for descriptor in registry.DEFAULT_SOURCES.values()} == {
        "air_quality",
        "crypto",
        "weather",
        "currency",
    }


def test_default_sources_request_normalized_values():
    for descriptor in registry.DEFAULT_SOURCES.values():
        assert descriptor.transform.normalize is True


def test_get_source_returns_descriptor_with_display_identity():
    descriptor = registry.get_source("weather")

    assert descriptor.name == "Weather"
    assert descriptor.unit == "°C"

    transform = descriptor.effective_transform()
    assert transform.source_name == "Weather"
    assert transform.unit == "°C"


def test_get_source_rejects_unknown_key():
    with pytest.raises(ValueError) as excinfo:
        registry.get_source("stocks")

    assert "source config not found for 'stocks'" in str(excinfo.value)
