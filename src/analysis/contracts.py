from dataclasses import dataclass, field
from typing import Literal


Trend = Literal["increasing", "decreasing", "stable"]
Strength = Literal["strong", "moderate", "weak", "none"]
Direction = Literal["positive", "negative", "none"]

INSUFFICIENT_DATA_MESSAGE = "Insufficient data to generate insights."
STABLE_PATTERNS_MESSAGE = (
    "The data shows stable patterns with no significant trends or correlations detected."
)


@dataclass(frozen=True)
class Spike:
    source: str
    timestamp: int
    value: float
    percent_change: float
    z_score: float

    def to_dict(self) -> dict[str, object]:
        return {
            "source": self.source,
            "timestamp": self.timestamp,
            "value": self.value,
            "percent_change": self.percent_change,
            "z_score": self.z_score,
        }


@dataclass(frozen=True)
class Correlation:
    coefficient: float = 0.0
    strength: Strength = "none"
    direction: Direction = "none"

    def to_dict(self) -> dict[str, object]:
        return {
            "coefficient": self.coefficient,
            "strength": self.strength,
            "direction": self.direction,
        }


@dataclass(frozen=True)
class TrendSummary:
    source1: Trend = "stable"
    source2: Trend = "stable"

    def to_dict(self) -> dict[str, object]:
        return {"source1": self.source1, "source2": self.source2}


@dataclass(frozen=True)
class InsightResult:
    trends: TrendSummary = field(default_factory=TrendSummary)
    spikes: tuple[Spike, ...] = ()
    correlation: Correlation = field(default_factory=Correlation)
    summary: str = INSUFFICIENT_DATA_MESSAGE

    def to_dict(self) -> dict[str, object]:
        return {
            "trends": self.trends.to_dict(),
            "spikes": [spike.to_dict() for spike in self.spikes],
            "correlation": self.correlation.to_dict(),
            "summary": self.summary,
        }
