"""Score banding and improvement tips for the results view."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from .models import AnalysisReport, Priority, ScoreBand, Suggestion
from .scoring import score_breakdown

EXCELLENT_THRESHOLD = 80
GOOD_PROGRESS_THRESHOLD = 60
MAX_SUGGESTIONS = 4

BAND_MESSAGES: dict[ScoreBand, str] = {
    ScoreBand.EXCELLENT: "Excellent work! You're demonstrating strong communication skills.",
    ScoreBand.GOOD_PROGRESS: "Good progress! Keep practicing to reach the next level.",
    ScoreBand.KEEP_PRACTICING: "Keep practicing! Regular recording sessions will help you improve significantly.",
}

FUNDAMENTALS = Suggestion(
    icon="volume",
    title="Focus on Fundamentals",
    tip="Start with basic speaking exercises. Practice reading aloud daily and record yourself to identify areas for improvement.",
    priority=Priority.HIGH,
)
VOCAL_CLARITY = Suggestion(
    icon="volume",
    title="Vocal Clarity",
    tip="Practice speaking at a moderate pace with clear articulation. Record yourself regularly to monitor progress.",
    priority=Priority.HIGH,
)
ADVANCED_TECHNIQUES = Suggestion(
    icon="trending_up",
    title="Advanced Techniques",
    tip="Experiment with advanced speaking techniques like storytelling, rhetorical questions, and strategic pauses.",
    priority=Priority.MEDIUM,
)
CONFIDENCE_BUILDING = Suggestion(
    icon="target",
    title="Confidence Building",
    tip="Maintain steady breathing and pause strategically. Practice your content beforehand to reduce filler words.",
    priority=Priority.MEDIUM,
)
ENGAGEMENT = Suggestion(
    icon="trending_up",
    title="Engagement",
    tip="Vary your tone and pace to keep listeners engaged. Use emphasis on key points and natural pauses.",
    priority=Priority.MEDIUM,
)
SPEAKING_PACE = Suggestion(
    icon="lightbulb",
    title="Speaking Pace",
    tip="Your speaking pace affects comprehension. Aim for 150-160 words per minute for optimal clarity.",
    priority=Priority.HIGH,
)
VOICE_PROJECTION = Suggestion(
    icon="target",
    title="Voice Projection",
    tip="Practice diaphragmatic breathing to improve voice strength and reduce vocal strain.",
    priority=Priority.MEDIUM,
)


def score_band(score: int) -> ScoreBand:
    if score >= EXCELLENT_THRESHOLD:
        return ScoreBand.EXCELLENT
    if score >= GOOD_PROGRESS_THRESHOLD:
        return ScoreBand.GOOD_PROGRESS
    return ScoreBand.KEEP_PRACTICING


def band_message(score: int) -> str:
    return BAND_MESSAGES[score_band(score)]


def generate_suggestions(results: Any, score: int) -> list[Suggestion]:
    """Pick up to four tips.

    The first tip depends on the score tier, three generic tips follow, and
    pace or projection tips are appended when the result mentions them.
    Only the first four survive, so the record-specific tips show up only
    if fewer generic tips were added.
    """
    if score < GOOD_PROGRESS_THRESHOLD:
        suggestions = [FUNDAMENTALS]
    elif score < EXCELLENT_THRESHOLD:
        suggestions = [VOCAL_CLARITY]
    else:
        suggestions = [ADVANCED_TECHNIQUES]

    suggestions += [VOCAL_CLARITY, CONFIDENCE_BUILDING, ENGAGEMENT]

    if isinstance(results, Mapping) and results:
        if results.get("pace") or results.get("speed"):
            suggestions.append(SPEAKING_PACE)
        if results.get("confidence") or results.get("clarity"):
            suggestions.append(VOICE_PROJECTION)

    return suggestions[:MAX_SUGGESTIONS]


def build_report(results: Any, source: Optional[str] = None) -> AnalysisReport:
    """Turn a raw service result into the score, band and tips shown to the user."""
    breakdown = score_breakdown(results)
    return AnalysisReport(
        score=breakdown.score,
        band=score_band(breakdown.score),
        message=band_message(breakdown.score),
        suggestions=generate_suggestions(results, breakdown.score),
        breakdown=breakdown,
        structured=isinstance(results, Mapping),
        source=source,
    )
