"""Speaking journey: stored score history and change detection.

Every analysis scored through the server is saved as a snapshot. History
and change queries read those snapshots back so a speaker can see whether
practice is paying off.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import select

from .core.feedback import score_band
from .core.models import AnalysisReport
from .db import get_session_factory
from .sqlmodels import AnalysisSnapshot

logger = logging.getLogger(__name__)

SIGNIFICANT_CHANGE = 10
MIN_COMPONENT_CHANGE = 5.0


async def record_analysis(report: AnalysisReport, results: Any) -> int:
    """Persist a scored result. Returns the snapshot id."""
    session_factory = get_session_factory()
    components = {metric.value: round(score, 2) for metric, score in report.breakdown.components.items()}

    async with session_factory() as session:
        snapshot = AnalysisSnapshot(
            score=report.score,
            band=report.band.value,
            contributing=report.breakdown.contributing,
            weighted_mean=report.breakdown.weighted_mean,
            fallback=report.breakdown.fallback,
            components=json.dumps(components),
            raw_result=json.dumps(results, default=str),
            source=report.source,
            analyzed_at=report.computed_at,
        )
        session.add(snapshot)
        await session.commit()
        snapshot_id = snapshot.id

    logger.info("Recorded analysis %d (score %d, %s)", snapshot_id, report.score, report.band.value)
    return snapshot_id


def _snapshot_to_dict(row: AnalysisSnapshot) -> dict:
    return {
        "id": row.id,
        "score": row.score,
        "band": row.band,
        "contributing": row.contributing,
        "fallback": row.fallback,
        "components": json.loads(row.components) if row.components else {},
        "source": row.source,
        "analyzed_at": row.analyzed_at.isoformat(),
    }


async def get_score_history(days: int = 30, limit: Optional[int] = None) -> list[dict]:
    """Retrieve stored scores, oldest first.

    Args:
        days: How many days of history to return.
        limit: Keep only the most recent ``limit`` entries.
    """
    session_factory = get_session_factory()
    cutoff = datetime.utcnow() - timedelta(days=days)

    async with session_factory() as session:
        result = await session.execute(
            select(AnalysisSnapshot)
            .where(AnalysisSnapshot.analyzed_at >= cutoff)
            .order_by(AnalysisSnapshot.analyzed_at.asc(), AnalysisSnapshot.id.asc())
        )
        rows = result.scalars().all()

    if limit is not None and limit >= 0:
        rows = rows[-limit:] if limit else []
    return [_snapshot_to_dict(r) for r in rows]


async def get_raw_result(snapshot_id: int) -> Any:
    """Return the raw service payload stored with a snapshot, or None."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        row = await session.get(AnalysisSnapshot, snapshot_id)
    if row is None:
        return None
    return json.loads(row.raw_result)


def _change_type(delta: float) -> str:
    if delta >= SIGNIFICANT_CHANGE:
        return "significant_increase"
    if delta > 0:
        return "increase"
    if delta <= -SIGNIFICANT_CHANGE:
        return "significant_decrease"
    if delta < 0:
        return "decrease"
    return "unchanged"


async def detect_changes(since_days: int = 7) -> dict:
    """Compare the latest score to the latest one recorded ``since_days`` ago or earlier.

    Component scores that moved by at least 5 points are listed, largest
    movement first.
    """
    session_factory = get_session_factory()
    compare_at = datetime.utcnow() - timedelta(days=since_days)

    async with session_factory() as session:
        latest_result = await session.execute(
            select(AnalysisSnapshot)
            .order_by(AnalysisSnapshot.analyzed_at.desc(), AnalysisSnapshot.id.desc())
            .limit(1)
        )
        latest = latest_result.scalar_one_or_none()

        prior_result = await session.execute(
            select(AnalysisSnapshot)
            .where(AnalysisSnapshot.analyzed_at <= compare_at)
            .order_by(AnalysisSnapshot.analyzed_at.desc(), AnalysisSnapshot.id.desc())
            .limit(1)
        )
        prior = prior_result.scalar_one_or_none()

    if latest is None:
        return {
            "current_score": None,
            "previous_score": None,
            "change": None,
            "change_type": "none",
            "band_changed": False,
            "component_changes": [],
        }

    if prior is None or prior.id == latest.id:
        return {
            "current_score": latest.score,
            "previous_score": None,
            "change": None,
            "change_type": "new",
            "band_changed": False,
            "current_band": latest.band,
            "component_changes": [],
            "analyzed_at": latest.analyzed_at.isoformat(),
        }

    delta = latest.score - prior.score
    latest_components = json.loads(latest.components or "{}")
    prior_components = json.loads(prior.components or "{}")

    component_changes = []
    for name, current in latest_components.items():
        previous = prior_components.get(name)
        if previous is None:
            continue
        component_delta = current - previous
        if abs(component_delta) < MIN_COMPONENT_CHANGE:
            continue
        component_changes.append({
            "component": name,
            "current_score": current,
            "previous_score": previous,
            "change": round(component_delta, 2),
            "change_type": _change_type(component_delta),
        })
    component_changes.sort(key=lambda c: abs(c["change"]), reverse=True)

    return {
        "current_score": latest.score,
        "previous_score": prior.score,
        "change": delta,
        "change_type": _change_type(delta),
        "band_changed": score_band(latest.score) != score_band(prior.score),
        "current_band": latest.band,
        "previous_band": prior.band,
        "component_changes": component_changes,
        "analyzed_at": latest.analyzed_at.isoformat(),
        "compared_to": prior.analyzed_at.isoformat(),
    }
