"""
Tests for the analysis service client. HTTP is served by httpx.MockTransport.
"""

from __future__ import annotations

import json
import logging
from datetime import date

import httpx
import pytest

from speakeasy.core.clients import analyzer
from speakeasy.core.clients.analyzer import AnalysisServiceError, UnsupportedAudioError

ANALYZE_URL = "https://analysis.test/api/analyze"


def _transport(handler):
    return httpx.MockTransport(handler)


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "talk.mp3"
    path.write_bytes(b"ID3" + b"\x00" * 64)
    return path


# --- Configuration ---


def test_analyze_url_defaults_and_override(monkeypatch):
    monkeypatch.delenv("SPEAKEASY_ANALYZE_URL", raising=False)
    assert analyzer.get_analyze_url() == analyzer.DEFAULT_ANALYZE_URL
    monkeypatch.setenv("SPEAKEASY_ANALYZE_URL", ANALYZE_URL)
    assert analyzer.get_analyze_url() == ANALYZE_URL


def test_invalid_timeout_is_rejected(monkeypatch):
    monkeypatch.setenv("ANALYZE_TIMEOUT_SECONDS", "soon")
    with pytest.raises(ValueError, match="ANALYZE_TIMEOUT_SECONDS"):
        analyzer.get_timeout_seconds()


# --- Audio acceptance ---


@pytest.mark.parametrize(
    "name, mime",
    [("talk.mp3", "audio/mpeg"), ("talk.WAV", "audio/wav"), ("memo.m4a", "audio/mp4"), ("take.flac", "audio/flac"), ("recording.webm", "audio/webm")],
)
def test_accept_audio_file(tmp_path, name, mime):
    path = tmp_path / name
    path.write_bytes(b"\x00" * 16)
    assert analyzer.accept_audio_file(path) == mime


def test_rejects_non_audio(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(UnsupportedAudioError, match="not an audio file"):
        analyzer.accept_audio_file(path)


def test_rejects_missing_and_empty_files(tmp_path):
    with pytest.raises(UnsupportedAudioError, match="not found"):
        analyzer.accept_audio_file(tmp_path / "missing.wav")
    empty = tmp_path / "empty.wav"
    empty.write_bytes(b"")
    with pytest.raises(UnsupportedAudioError, match="empty"):
        analyzer.accept_audio_file(empty)


def test_rejects_files_over_the_limit(audio_file, monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_MB", "0.00001")
    with pytest.raises(UnsupportedAudioError, match="limit"):
        analyzer.accept_audio_file(audio_file)


# --- Upload ---


@pytest.mark.asyncio
async def test_analyze_recording_returns_json():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["method"] = request.method
        seen["body"] = request.read()
        return httpx.Response(200, json={"clarity": "good", "wpm": 148})

    result = await analyzer.analyze_recording(b"webm-bytes", url=ANALYZE_URL, transport=_transport(handler))

    assert result == {"clarity": "good", "wpm": 148}
    assert seen["url"] == ANALYZE_URL
    assert seen["method"] == "POST"
    assert b'name="audio"' in seen["body"]
    assert b'filename="recording.webm"' in seen["body"]
    assert b"webm-bytes" in seen["body"]


@pytest.mark.asyncio
async def test_analyze_recording_returns_text_for_non_json():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="You spoke clearly.")

    result = await analyzer.analyze_recording(b"x", url=ANALYZE_URL, transport=_transport(handler))
    assert result == "You spoke clearly."


@pytest.mark.asyncio
async def test_http_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(AnalysisServiceError, match="HTTP error! status: 502"):
        await analyzer.analyze_recording(b"x", url=ANALYZE_URL, transport=_transport(handler))


@pytest.mark.asyncio
async def test_http_error_status_is_logged(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    with caplog.at_level(logging.WARNING, logger=analyzer.__name__):
        with pytest.raises(AnalysisServiceError):
            await analyzer.analyze_recording(b"x", filename="talk.wav", url=ANALYZE_URL, transport=_transport(handler))

    assert "Analysis service returned HTTP 503 for talk.wav" in caplog.text


@pytest.mark.asyncio
async def test_transport_error_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AnalysisServiceError, match="Failed to analyze recording: connection refused"):
        await analyzer.analyze_recording(b"x", url=ANALYZE_URL, transport=_transport(handler))


@pytest.mark.asyncio
async def test_malformed_json_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})

    with pytest.raises(AnalysisServiceError):
        await analyzer.analyze_recording(b"x", url=ANALYZE_URL, transport=_transport(handler))


@pytest.mark.asyncio
async def test_analyze_audio_uploads_file(audio_file):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.read()
        return httpx.Response(200, json={"confidence": 0.9})

    result = await analyzer.analyze_audio(audio_file, url=ANALYZE_URL, transport=_transport(handler))

    assert result == {"confidence": 0.9}
    assert b'filename="talk.mp3"' in seen["body"]
    assert b"Content-Type: audio/mpeg" in seen["body"]


@pytest.mark.asyncio
async def test_analyze_audio_rejects_before_upload(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("should not upload")

    path = tmp_path / "slides.pdf"
    path.write_bytes(b"%PDF")
    with pytest.raises(UnsupportedAudioError):
        await analyzer.analyze_audio(path, url=ANALYZE_URL, transport=_transport(handler))


# --- Export ---


def test_export_results(tmp_path):
    results = {"clarity": "good", "metrics": {"wpm": 150}}
    path = analyzer.export_results(results, tmp_path / "out", today=date(2026, 10, 19))
    assert path.name == "speakeasy-analysis-2026-10-19.json"
    assert json.loads(path.read_text()) == results
    assert path.read_text().startswith('{\n  "clarity"')
