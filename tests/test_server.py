"""
Tests for the MCP tool functions. The analysis service is replaced with a stub.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from speakeasy import server


@pytest.mark.asyncio
async def test_speech_score_tool():
    result = await server.speech_score({"clarity": "excellent", "confidence": "excellent"})
    assert result["report"]["score"] == 85
    assert result["report"]["band"] == "excellent"
    assert result["summary"].startswith("Overall communication score: 85%.")


@pytest.mark.asyncio
async def test_speech_score_tool_with_non_object():
    result = await server.speech_score("just text")
    assert result["report"]["score"] == 50
    assert result["report"]["structured"] is False


@pytest.mark.asyncio
async def test_speech_analyze_file_records_journey(journey_db, tmp_path, monkeypatch, full_result):
    async def fake_analyze_audio(path, url=None, transport=None):
        return full_result

    monkeypatch.setattr(server.analyzer, "analyze_audio", fake_analyze_audio)

    result = await server.speech_analyze_file(str(tmp_path / "talk.wav"))

    assert result["results"] == full_result
    assert result["report"]["score"] == 79
    assert result["report"]["source"] == "talk.wav"
    assert isinstance(result["snapshot_id"], int)

    history = await server.speech_history(days=30)
    assert history["count"] == 1
    assert history["best_score"] == 79
    assert "latest 79%" in history["summary"]


@pytest.mark.asyncio
async def test_speech_analyze_file_without_saving(journey_db, tmp_path, monkeypatch):
    async def fake_analyze_audio(path, url=None, transport=None):
        return {"wpm": 150}

    monkeypatch.setattr(server.analyzer, "analyze_audio", fake_analyze_audio)

    result = await server.speech_analyze_file(str(tmp_path / "talk.wav"), save=False)

    assert result["snapshot_id"] is None
    assert (await server.speech_history())["count"] == 0


@pytest.mark.asyncio
async def test_speech_export_from_snapshot(journey_db, tmp_path, monkeypatch, full_result):
    async def fake_analyze_audio(path, url=None, transport=None):
        return full_result

    monkeypatch.setattr(server.analyzer, "analyze_audio", fake_analyze_audio)
    analyzed = await server.speech_analyze_file(str(tmp_path / "talk.wav"))

    exported = await server.speech_export(snapshot_id=analyzed["snapshot_id"], directory=str(tmp_path / "exports"))

    with open(exported["path"], encoding="utf-8") as fh:
        assert json.load(fh) == full_result


@pytest.mark.asyncio
async def test_speech_export_defaults_to_data_dir_exports(journey_db, tmp_path, full_result):
    exported = await server.speech_export(results=full_result)

    path = Path(exported["path"])
    assert path.parent == tmp_path / "data" / "exports"
    assert path.name.startswith("speakeasy-analysis-")
    with open(path, encoding="utf-8") as fh:
        assert json.load(fh) == full_result


@pytest.mark.asyncio
async def test_speech_export_requires_input(journey_db):
    with pytest.raises(ValueError, match="snapshot_id or results"):
        await server.speech_export()
    with pytest.raises(ValueError, match="No analysis with id 42"):
        await server.speech_export(snapshot_id=42)


@pytest.mark.asyncio
async def test_speech_changes_summary(journey_db):
    result = await server.speech_changes()
    assert result["summary"] == "No analyses recorded yet."
    assert result["since_days"] == 7
