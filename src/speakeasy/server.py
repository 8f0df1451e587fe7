"""SpeakEasy MCP server.

FastMCP server that scores speech analysis results, uploads recordings to
the analysis service, and tracks the speaker's progress over time.
Run: speakeasy-mcp
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from .core.clients import analyzer
from .core.feedback import build_report
from .db import close_db, get_exports_dir, init_db
from .journey import detect_changes, get_raw_result, get_score_history, record_analysis

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=False)
UPLOAD = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=False, openWorldHint=True)
LOCAL_WRITE = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=True, openWorldHint=False)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Configure logging and open the journey database."""
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    await init_db()
    try:
        yield
    finally:
        await close_db()


mcp = FastMCP(
    "SpeakEasy",
    instructions="Analyze a speech recording and get an overall communication score, a qualitative band, and personalized improvement tips. Tracks your speaking journey across sessions.",
    lifespan=lifespan,
)


async def _save(report, results: Any) -> int | None:
    try:
        return await record_analysis(report, results)
    except Exception as exc:
        logger.warning("Could not save analysis to the journey store: %s", exc)
        return None


# ─── Tool 1: Score ───────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def speech_score(analysis: Any) -> dict:
    """Score an analysis result you already have: any JSON the analysis service returned.

    Args:
        analysis: The raw result. Objects are scored from the metrics they contain;
                  anything else gets the neutral score of 50.
    """
    report = build_report(analysis)
    return {
        "title": "Communication Score",
        "report": report.model_dump(mode="json"),
        "summary": f"Overall communication score: {report.score}%. {report.message}",
    }


# ─── Tool 2: Analyze a file ──────────────────────────────────────────────────


@mcp.tool(annotations=UPLOAD)
async def speech_analyze_file(file_path: str, save: bool = True) -> dict:
    """Upload an audio file (MP3, WAV, M4A, FLAC, WebM ...) for analysis and score the result.

    Args:
        file_path: Path to the audio file on this machine.
        save: Record the result in your speaking journey. Default True.
    """
    results = await analyzer.analyze_audio(file_path)
    report = build_report(results, source=os.path.basename(file_path))
    snapshot_id = await _save(report, results) if save else None
    return {
        "title": "Analysis Results",
        "results": results,
        "report": report.model_dump(mode="json"),
        "snapshot_id": snapshot_id,
        "summary": f"Overall communication score: {report.score}%. {report.message}",
    }


# ─── Tool 3: Export ──────────────────────────────────────────────────────────


@mcp.tool(annotations=LOCAL_WRITE)
async def speech_export(snapshot_id: int = 0, results: Any = None, directory: str = "") -> dict:
    """Download raw analysis results as speakeasy-analysis-YYYY-MM-DD.json.

    Args:
        snapshot_id: Journey entry to export. Use 0 to export `results` instead.
        results: Raw result to export when no snapshot_id is given.
        directory: Output directory. Defaults to the exports folder in DATA_DIR.
    """
    if snapshot_id:
        results = await get_raw_result(snapshot_id)
        if results is None:
            raise ValueError(f"No analysis with id {snapshot_id} in the journey store")
    elif results is None:
        raise ValueError("Pass either snapshot_id or results")

    out_dir = directory or str(get_exports_dir())
    path = analyzer.export_results(results, out_dir)
    return {
        "title": "Export",
        "path": str(path),
        "summary": f"Analysis results written to {path}",
    }


# ─── Tool 4: History (Stateful) ─────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def speech_history(days: int = 30, limit: int = 50) -> dict:
    """Your speaking journey: scores of past analyses, oldest first.

    Args:
        days: How many days back to look. Default 30.
        limit: Maximum number of entries (most recent kept). Default 50.
    """
    history = await get_score_history(days=days, limit=limit)
    scores = [h["score"] for h in history]

    if not scores:
        summary = f"No analyses recorded in the last {days} days."
    else:
        average = sum(scores) / len(scores)
        summary = f"{len(scores)} analyses in the last {days} days. Average {average:.0f}%, best {max(scores)}%, latest {scores[-1]}%."

    return {
        "title": "Speaking Journey",
        "days": days,
        "history": history,
        "count": len(scores),
        "average_score": round(sum(scores) / len(scores), 1) if scores else None,
        "best_score": max(scores) if scores else None,
        "summary": summary,
    }


# ─── Tool 5: Changes (Stateful) ─────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def speech_changes(since_days: int = 7) -> dict:
    """How your latest score compares to where you were a while ago.

    Args:
        since_days: Compare against the latest analysis at least this many days old. Default 7.
    """
    changes = await detect_changes(since_days)

    if changes["change_type"] == "none":
        summary = "No analyses recorded yet."
    elif changes["change_type"] == "new":
        summary = f"Latest score is {changes['current_score']}%. Nothing recorded {since_days}+ days ago to compare against."
    else:
        summary = (
            f"Score went from {changes['previous_score']}% to {changes['current_score']}% "
            f"({changes['change']:+d}) compared to {since_days}+ days ago."
        )
        if changes["band_changed"]:
            summary += f" Band moved from {changes['previous_band']} to {changes['current_band']}."

    return {
        "title": "Score Changes",
        "since_days": since_days,
        **changes,
        "summary": summary,
    }


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()
