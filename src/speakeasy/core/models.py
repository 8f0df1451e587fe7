"""Pydantic data models: the shared business objects.

The scoring engine, the feedback helpers, the journey store and the MCP
server all exchange these models. Raw analysis payloads stay untyped until
``scoring.extract_metrics`` turns them into ``ExtractedMetrics``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Rating(str, Enum):
    """Qualitative ratings the analysis service may return instead of numbers."""

    EXCELLENT = "excellent"
    VERY_GOOD = "very good"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    VERY_POOR = "very poor"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


RATING_SCORES: dict[Rating, int] = {
    Rating.EXCELLENT: 95,
    Rating.VERY_GOOD: 88,
    Rating.GOOD: 78,
    Rating.FAIR: 65,
    Rating.POOR: 45,
    Rating.VERY_POOR: 25,
    Rating.HIGH: 85,
    Rating.MEDIUM: 65,
    Rating.LOW: 45,
    Rating.POSITIVE: 80,
    Rating.NEUTRAL: 60,
    Rating.NEGATIVE: 40,
}


class Metric(str, Enum):
    """Scored components of the communication score."""

    CLARITY = "clarity"
    CONFIDENCE = "confidence"
    FLUENCY = "fluency"
    ARTICULATION = "articulation"
    COHERENCE = "coherence"
    ENGAGEMENT = "engagement"
    PRONUNCIATION = "pronunciation"
    INTONATION = "intonation"
    PACE = "pace"
    VOLUME = "volume"
    FILLER = "filler"
    PAUSES = "pauses"
    SENTIMENT = "sentiment"


DIRECT_METRICS: tuple[Metric, ...] = (
    Metric.CLARITY,
    Metric.CONFIDENCE,
    Metric.FLUENCY,
    Metric.ARTICULATION,
    Metric.COHERENCE,
    Metric.ENGAGEMENT,
    Metric.PRONUNCIATION,
    Metric.INTONATION,
)


class Normalization(str, Enum):
    """How a metric's raw value is mapped onto 0-100."""

    DIRECT = "direct"
    PACE = "pace"
    PAUSES = "pauses"
    VOLUME = "volume"
    FILLER = "filler"
    SENTIMENT = "sentiment"


class MetricSpec(BaseModel):
    """Fixed engine configuration for one scored component."""

    metric: Metric
    normalization: Normalization
    weight: float = Field(gt=0.0, description="Relative importance in the weighted average")
    aliases: tuple[str, ...] = Field(default=(), description="Keys searched in priority order")

    model_config = {"frozen": True}


class ExtractedMetrics(BaseModel):
    """Typed lookup table built from an untrusted analysis payload.

    Numeric quantities are finite floats or None. Direct metrics, volume and
    sentiment keep their raw value because their normalization depends on
    whether the service sent a number or a rating word.
    """

    direct: dict[Metric, Any] = Field(default_factory=dict)
    word_count: Optional[float] = None
    duration_sec: Optional[float] = None
    words_per_minute: Optional[float] = None
    filler_rate: Optional[float] = None
    pauses_per_minute: Optional[float] = None
    volume: Any = None
    sentiment: Any = None
    key_count: int = 0


class ScoreBreakdown(BaseModel):
    """Everything the engine computed on the way to the final score."""

    score: int = Field(ge=0, le=100, description="Overall communication score")
    components: dict[Metric, float] = Field(default_factory=dict, description="Normalized 0-100 sub-scores that contributed")
    weighted_sum: float = 0.0
    total_weight: float = 0.0
    contributing: int = Field(0, description="Number of components that contributed")
    weighted_mean: Optional[float] = None
    blend_factor: float = 0.0
    fallback: bool = Field(False, description="True when no component contributed and the key-count heuristic was used")


class ScoreBand(str, Enum):
    """Qualitative band shown next to the score."""

    EXCELLENT = "excellent"
    GOOD_PROGRESS = "good_progress"
    KEEP_PRACTICING = "keep_practicing"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


class Suggestion(BaseModel):
    """A single improvement tip."""

    icon: str = Field(description="Icon hint for the presentation layer")
    title: str
    tip: str
    priority: Priority


class AnalysisReport(BaseModel):
    """Score, band and tips derived from one analysis result."""

    score: int = Field(ge=0, le=100)
    band: ScoreBand
    message: str = Field(description="Banner text for the band")
    suggestions: list[Suggestion] = Field(default_factory=list)
    breakdown: ScoreBreakdown
    structured: bool = Field(description="Whether the service returned a JSON object")
    source: Optional[str] = Field(None, description="Audio file the result came from")
    computed_at: datetime = Field(default_factory=datetime.utcnow)
