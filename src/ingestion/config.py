import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Callable, Optional


@dataclass(frozen=True)
class Settings:
    max_points: int = 100
    alignment_tolerance_ms: int = 3_600_000
    spike_threshold: float = 1.5
    rate_limit_per_second: float = 5.0
    max_retries: int = 2
    request_timeout_seconds: float = 30.0
    time_range: str = "24h"


SETTINGS_ENV_MAP: dict[str, str] = {
    "max_points": "SERIES_MAX_POINTS",
    "alignment_tolerance_ms": "ALIGNMENT_TOLERANCE_MS",
    "spike_threshold": "SPIKE_THRESHOLD",
    "rate_limit_per_second": "HTTP_RATE_LIMIT_PER_SECOND",
    "max_retries": "HTTP_MAX_RETRIES",
    "request_timeout_seconds": "HTTP_TIMEOUT_SECONDS",
    "time_range": "TIME_RANGE",
}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    defaults = Settings()
    overrides: dict[str, object] = {}
    for setting in fields(Settings):
        env_name = SETTINGS_ENV_MAP[setting.name]
        raw = env.get(env_name)
        if raw is None or raw.strip() == "":
            continue
        cast: Callable[[str], object] = type(getattr(defaults, setting.name))
        try:
            overrides[setting.name] = cast(raw.strip())
        except ValueError:
            continue
    return replace(defaults, **overrides)


def env_text(name: str, default: str, environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


def env_float(name: str, default: float, environ: Optional[Mapping[str, str]] = None) -> float:
    try:
        return float(env_text(name, str(default), environ))
    except ValueError:
        return default
