"""Communication score engine.

Reduces an arbitrary analysis payload to a single 0-100 score. The payload
comes from an opaque third-party service, so nothing about its shape is
trusted: ``extract_metrics`` is the only place that looks at raw keys and
types, everything after it works on ``ExtractedMetrics``.

Pipeline:
1. Extract: resolve alias keys (top level first, then ``metrics``) and
   derive pace and filler rate from counts when they are missing.
2. Normalize: map each component onto 0-100 (rating words, scale
   auto-detection, triangular curves around an ideal value).
3. Aggregate: fold the (score, weight) pairs, dividing by the weight that
   was actually used so missing components do not drag the score down.
4. Smooth: pull results built from only one or two components toward a
   neutral baseline.

The engine never raises; unusable input degrades to a fallback score.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from functools import reduce
from typing import Any, Iterable, NamedTuple, Optional

from .models import (
    DIRECT_METRICS,
    RATING_SCORES,
    ExtractedMetrics,
    Metric,
    MetricSpec,
    Normalization,
    Rating,
    ScoreBreakdown,
)

logger = logging.getLogger(__name__)

NON_RECORD_SCORE = 50
BASELINE_SCORE = 60.0

PACE_TARGET_WPM = 150.0
PACE_TOLERANCE_WPM = 50.0
PAUSES_TARGET_PM = 6.0
PAUSES_TOLERANCE_PM = 5.0
VOLUME_TARGET = 60.0
VOLUME_TOLERANCE = 25.0
FILLER_ZERO_SCORE_PCT = 5.0
SENTIMENT_MISS_SCORE = 60.0

WORD_COUNT_KEYS = ("wordCount", "words")
DURATION_KEYS = ("duration", "durationSec", "seconds")
WPM_KEYS = ("wordsPerMinute", "wpm", "paceWpm", "speech_rate", "rate")
FILLER_RATE_KEYS = ("fillerWordRate", "fillerRate")
FILLER_COUNT_KEYS = ("fillerWordCount", "fillerCount", "umUhCount")
PAUSES_KEYS = ("pausesPerMinute", "pauseRate", "pauses_pm")
VOLUME_KEYS = ("volume", "loudness", "rms")
SENTIMENT_KEYS = ("sentiment", "polarity")

METRIC_SPECS: tuple[MetricSpec, ...] = (
    MetricSpec(metric=Metric.CLARITY, normalization=Normalization.DIRECT, weight=0.12, aliases=("clarity",)),
    MetricSpec(metric=Metric.CONFIDENCE, normalization=Normalization.DIRECT, weight=0.12, aliases=("confidence",)),
    MetricSpec(metric=Metric.FLUENCY, normalization=Normalization.DIRECT, weight=0.10, aliases=("fluency",)),
    MetricSpec(metric=Metric.ARTICULATION, normalization=Normalization.DIRECT, weight=0.08, aliases=("articulation",)),
    MetricSpec(metric=Metric.COHERENCE, normalization=Normalization.DIRECT, weight=0.08, aliases=("coherence",)),
    MetricSpec(metric=Metric.ENGAGEMENT, normalization=Normalization.DIRECT, weight=0.06, aliases=("engagement",)),
    MetricSpec(metric=Metric.PRONUNCIATION, normalization=Normalization.DIRECT, weight=0.08, aliases=("pronunciation",)),
    MetricSpec(metric=Metric.INTONATION, normalization=Normalization.DIRECT, weight=0.06, aliases=("intonation",)),
    MetricSpec(metric=Metric.PACE, normalization=Normalization.PACE, weight=0.12, aliases=WPM_KEYS),
    MetricSpec(metric=Metric.VOLUME, normalization=Normalization.VOLUME, weight=0.06, aliases=VOLUME_KEYS),
    MetricSpec(metric=Metric.FILLER, normalization=Normalization.FILLER, weight=0.06, aliases=FILLER_RATE_KEYS),
    MetricSpec(metric=Metric.PAUSES, normalization=Normalization.PAUSES, weight=0.06, aliases=PAUSES_KEYS),
    MetricSpec(metric=Metric.SENTIMENT, normalization=Normalization.SENTIMENT, weight=0.10, aliases=SENTIMENT_KEYS),
)

METRIC_WEIGHTS: dict[Metric, float] = {spec.metric: spec.weight for spec in METRIC_SPECS}


class Accumulation(NamedTuple):
    """Result of folding (score, weight) pairs."""

    weighted_sum: float = 0.0
    total_weight: float = 0.0
    count: int = 0


# ─── Numeric helpers ─────────────────────────────────────────────────────────


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (84.5 -> 85)."""
    return int(math.floor(value + 0.5))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """Lenient numeric coercion. Returns NaN for anything that is not a number.

    Numeric strings are accepted (blank strings count as 0). Booleans,
    containers and None are not numbers.
    """
    if _is_number(value):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


# ─── Extraction ──────────────────────────────────────────────────────────────


def lookup(record: Mapping, *keys: str) -> Any:
    """Return the first non-null value among ``keys``.

    Each key is tried at the top level and then inside a nested ``metrics``
    mapping before moving on to the next key.
    """
    nested = record.get("metrics")
    if not isinstance(nested, Mapping):
        nested = None
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
        if nested is not None:
            value = nested.get(key)
            if value is not None:
                return value
    return None


def extract_metrics(record: Mapping) -> ExtractedMetrics:
    """Build the typed lookup table from an untrusted analysis payload."""
    word_count = to_number(lookup(record, *WORD_COUNT_KEYS))
    duration = to_number(lookup(record, *DURATION_KEYS))

    wpm = to_number(lookup(record, *WPM_KEYS))
    # Zero and NaN both mean "not reported" here; derive from counts when possible.
    if (wpm == 0 or math.isnan(wpm)) and _truthy(word_count) and _truthy(duration) and duration > 0:
        wpm = word_count / duration * 60

    filler_rate = to_number(lookup(record, *FILLER_RATE_KEYS))
    filler_count = to_number(lookup(record, *FILLER_COUNT_KEYS))
    if not math.isfinite(filler_rate) and _truthy(filler_count) and _truthy(word_count):
        filler_rate = filler_count / word_count

    return ExtractedMetrics(
        direct={metric: lookup(record, metric.value) for metric in DIRECT_METRICS},
        word_count=_finite_or_none(word_count),
        duration_sec=_finite_or_none(duration),
        words_per_minute=_finite_or_none(wpm),
        filler_rate=_finite_or_none(filler_rate),
        pauses_per_minute=_finite_or_none(to_number(lookup(record, *PAUSES_KEYS))),
        volume=lookup(record, *VOLUME_KEYS),
        sentiment=lookup(record, *SENTIMENT_KEYS),
        key_count=len(record),
    )


def _truthy(value: float) -> bool:
    return value != 0 and not math.isnan(value)


# ─── Normalization ───────────────────────────────────────────────────────────


def rating_score(value: str, strip: bool = True) -> Optional[float]:
    """Look up a rating word (case-insensitive). Unknown words return None."""
    if strip:
        value = value.strip()
    try:
        rating = Rating(value.lower())
    except ValueError:
        return None
    return float(RATING_SCORES[rating])


def scale_score(value: float) -> Optional[float]:
    """Map a number onto 0-100 by guessing its native scale from its magnitude.

    0-1 is a fraction, up to 5 a five-point scale, up to 10 a ten-point
    scale; anything else is taken as already 0-100 and clamped.
    """
    if math.isnan(value):
        return None
    if 0 <= value <= 1:
        return value * 100
    if 1 < value <= 5:
        return (value / 5) * 100
    if 5 < value <= 10:
        return (value / 10) * 100
    return clamp(value)


def normalize_rating_or_number(value: Any) -> Optional[float]:
    """Normalize a direct metric. Returns None when the value is unusable."""
    if value is None:
        return None
    if isinstance(value, str):
        return rating_score(value)
    if _is_number(value):
        return scale_score(to_number(value))
    return None


def triangular_score(value: Optional[float], target: float, tolerance: float) -> Optional[int]:
    """100 at ``target``, falling linearly to 0 at ``tolerance`` away from it."""
    if value is None or math.isnan(value):
        return None
    ratio = clamp(1 - abs(value - target) / tolerance, 0.0, 1.0)
    return round_half_up(ratio * 100)


def pace_score(words_per_minute: Optional[float]) -> Optional[int]:
    return triangular_score(words_per_minute, PACE_TARGET_WPM, PACE_TOLERANCE_WPM)


def pauses_score(pauses_per_minute: Optional[float]) -> Optional[int]:
    return triangular_score(pauses_per_minute, PAUSES_TARGET_PM, PAUSES_TOLERANCE_PM)


def volume_score(volume: Any) -> Optional[float]:
    """Use the direct-metric rules first, then a curve around a comfortable level."""
    score = normalize_rating_or_number(volume)
    if score is not None:
        return score
    if _is_number(volume):
        # NaN volume: the direct rules already rejected it.
        return None
    return triangular_score(_volume_level(volume), VOLUME_TARGET, VOLUME_TOLERANCE)


def _volume_level(volume: Any) -> float:
    """Coerce a volume that is not a rating or plain number.

    Booleans read as 1/0, an empty list as 0 and a one-item list as its item.
    """
    if isinstance(volume, bool):
        return float(volume)
    if isinstance(volume, (list, tuple)):
        if not volume:
            return 0.0
        if len(volume) == 1:
            return to_number(volume[0])
        return math.nan
    return to_number(volume)


def filler_score(filler_rate: Optional[float]) -> Optional[float]:
    """0% filler words scores 100, 5% or more scores 0."""
    if filler_rate is None:
        return None
    pct = clamp(filler_rate * 100)
    return clamp(100 - (pct / FILLER_ZERO_SCORE_PCT) * 100)


def sentiment_score(sentiment: Any) -> Optional[float]:
    """Rating words map through the vocabulary; numbers are read as -1..1."""
    if isinstance(sentiment, str):
        # Sentiment labels are matched exactly apart from case.
        score = rating_score(sentiment, strip=False)
        return SENTIMENT_MISS_SCORE if score is None else score
    if _is_number(sentiment):
        value = to_number(sentiment)
        if math.isnan(value):
            return None
        return clamp(((value + 1) / 2) * 100)
    return None


def component_score(spec: MetricSpec, metrics: ExtractedMetrics) -> Optional[float]:
    """Normalized 0-100 score for one component, or None when it has no signal."""
    if spec.normalization is Normalization.DIRECT:
        return normalize_rating_or_number(metrics.direct.get(spec.metric))
    if spec.normalization is Normalization.PACE:
        return pace_score(metrics.words_per_minute)
    if spec.normalization is Normalization.PAUSES:
        return pauses_score(metrics.pauses_per_minute)
    if spec.normalization is Normalization.VOLUME:
        return volume_score(metrics.volume)
    if spec.normalization is Normalization.FILLER:
        return filler_score(metrics.filler_rate)
    if spec.normalization is Normalization.SENTIMENT:
        return sentiment_score(metrics.sentiment)
    return None


def component_scores(
    metrics: ExtractedMetrics,
    specs: Iterable[MetricSpec] = METRIC_SPECS,
) -> list[tuple[MetricSpec, Optional[float]]]:
    return [(spec, component_score(spec, metrics)) for spec in specs]


# ─── Aggregation ─────────────────────────────────────────────────────────────


def _fold(acc: Accumulation, pair: tuple[Optional[float], float]) -> Accumulation:
    score, weight = pair
    if score is None or math.isnan(score):
        return acc
    return Accumulation(
        weighted_sum=acc.weighted_sum + clamp(score) * weight,
        total_weight=acc.total_weight + weight,
        count=acc.count + 1,
    )


def accumulate(pairs: Iterable[tuple[Optional[float], float]]) -> Accumulation:
    """Fold (score, weight) pairs into (weighted sum, weight used, count)."""
    return reduce(_fold, pairs, Accumulation())


def blend_factor(contributing: int) -> float:
    """How far to pull toward the baseline when evidence is thin."""
    if contributing == 1:
        return 0.6
    if contributing == 2:
        return 0.3
    return 0.0


def fallback_score(key_count: int) -> int:
    """Score for a payload with no recognizable metrics, based on its size."""
    if key_count > 3:
        return 70
    if key_count > 1:
        return 60
    return 50


# ─── Entry points ────────────────────────────────────────────────────────────


def score_breakdown(analysis_data: Any) -> ScoreBreakdown:
    """Score an analysis payload and return the intermediate values."""
    if not isinstance(analysis_data, Mapping):
        return ScoreBreakdown(score=NON_RECORD_SCORE, fallback=True)

    metrics = extract_metrics(analysis_data)
    scored = component_scores(metrics)
    acc = accumulate((score, spec.weight) for spec, score in scored)

    if acc.total_weight == 0:
        score = fallback_score(metrics.key_count)
        logger.debug("No recognized metrics in %d keys, fallback score %d", metrics.key_count, score)
        return ScoreBreakdown(score=score, fallback=True)

    weighted = acc.weighted_sum / acc.total_weight
    blend = blend_factor(acc.count)
    mixed = weighted * (1 - blend) + BASELINE_SCORE * blend
    final = round_half_up(clamp(mixed))

    components = {spec.metric: float(score) for spec, score in scored if score is not None and not math.isnan(score)}
    logger.debug("Scored %d components (blend %.1f): %s -> %d", acc.count, blend, components, final)

    return ScoreBreakdown(
        score=final,
        components=components,
        weighted_sum=acc.weighted_sum,
        total_weight=acc.total_weight,
        contributing=acc.count,
        weighted_mean=weighted,
        blend_factor=blend,
    )


def compute_score(analysis_data: Any) -> int:
    """Overall communication score (0-100) for any analysis payload."""
    return score_breakdown(analysis_data).score
