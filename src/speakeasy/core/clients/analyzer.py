"""Client for the remote speech analysis service.

The service accepts a multipart upload with a single ``audio`` field and
answers with either a JSON object of metrics or plain text. Its response
shape is not guaranteed, so results are returned as-is and scored later.
"""

from __future__ import annotations

import json
import logging
import mimetypes
import os
from datetime import date
from pathlib import Path
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_ANALYZE_URL = "https://speakeasy-production-9013.up.railway.app/api/analyze"
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_UPLOAD_MB = 50.0

RECORDING_FILENAME = "recording.webm"
RECORDING_CONTENT_TYPE = "audio/webm"

# Formats the upload zone advertises; mimetypes is unreliable for some of them.
AUDIO_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".opus": "audio/opus",
    ".webm": "audio/webm",
    ".weba": "audio/webm",
    ".aiff": "audio/aiff",
    ".aif": "audio/aiff",
}


class AnalysisServiceError(RuntimeError):
    """The analysis service could not be reached or rejected the upload."""


class UnsupportedAudioError(ValueError):
    """The file cannot be sent for analysis."""


def get_analyze_url() -> str:
    return os.environ.get("SPEAKEASY_ANALYZE_URL", "") or DEFAULT_ANALYZE_URL


def get_timeout_seconds() -> float:
    raw = os.environ.get("ANALYZE_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"ANALYZE_TIMEOUT_SECONDS must be a number, got {raw!r}")


def get_max_upload_bytes() -> int:
    raw = os.environ.get("MAX_UPLOAD_MB", str(DEFAULT_MAX_UPLOAD_MB))
    try:
        return int(float(raw) * 1024 * 1024)
    except ValueError:
        raise ValueError(f"MAX_UPLOAD_MB must be a number, got {raw!r}")


def guess_audio_type(path: Path) -> Optional[str]:
    """Return the audio mime type for ``path``, or None if it is not audio."""
    mime = AUDIO_TYPES.get(path.suffix.lower())
    if mime is None:
        mime, _ = mimetypes.guess_type(path.name)
    if mime and mime.startswith("audio/"):
        return mime
    return None


def accept_audio_file(path: str | os.PathLike) -> str:
    """Check that ``path`` is an uploadable audio file and return its mime type."""
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise UnsupportedAudioError(f"Audio file not found: {file_path}")

    mime = guess_audio_type(file_path)
    if mime is None:
        raise UnsupportedAudioError(
            f"{file_path.name} is not an audio file. Supports MP3, WAV, M4A, FLAC, and other audio formats."
        )

    size = file_path.stat().st_size
    if size == 0:
        raise UnsupportedAudioError(f"{file_path.name} is empty")
    max_bytes = get_max_upload_bytes()
    if size > max_bytes:
        raise UnsupportedAudioError(
            f"{file_path.name} is {size / (1024 * 1024):.1f} MB, above the {max_bytes / (1024 * 1024):.0f} MB limit"
        )
    return mime


def _parse_response(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        return response.json()
    return response.text


async def analyze_recording(
    data: bytes,
    filename: str = RECORDING_FILENAME,
    content_type: str = RECORDING_CONTENT_TYPE,
    url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """Upload audio bytes and return the parsed JSON result, or the raw text body."""
    api_url = url or get_analyze_url()
    timeout = httpx.Timeout(get_timeout_seconds(), connect=10.0)
    files = {"audio": (filename, data, content_type)}
    logger.info("Analyzing %s (%.1f KB) via %s", filename, len(data) / 1024.0, api_url)

    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
        ) as client:
            response = await client.post(api_url, files=files)
            if response.is_error:
                logger.warning("Analysis service returned HTTP %d for %s", response.status_code, filename)
                raise AnalysisServiceError(f"Failed to analyze recording: HTTP error! status: {response.status_code}")
            result = _parse_response(response)
    except httpx.HTTPError as exc:
        logger.warning("Analysis request for %s failed: %s", filename, exc)
        raise AnalysisServiceError(f"Failed to analyze recording: {exc}") from exc
    except ValueError as exc:
        logger.warning("Analysis service returned malformed JSON for %s: %s", filename, exc)
        raise AnalysisServiceError(f"Failed to analyze recording: {exc}") from exc

    logger.info("Analysis of %s complete (%s)", filename, "json" if isinstance(result, (dict, list)) else "text")
    return result


async def analyze_audio(
    path: str | os.PathLike,
    url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """Validate and upload an audio file from disk."""
    mime = accept_audio_file(path)
    file_path = Path(path).expanduser()
    return await analyze_recording(
        file_path.read_bytes(),
        filename=file_path.name,
        content_type=mime,
        url=url,
        transport=transport,
    )


def export_filename(today: Optional[date] = None) -> str:
    return f"speakeasy-analysis-{(today or date.today()).isoformat()}.json"


def export_results(
    results: Any,
    directory: str | os.PathLike,
    today: Optional[date] = None,
) -> Path:
    """Write a raw analysis result to ``speakeasy-analysis-YYYY-MM-DD.json``."""
    out_dir = Path(directory).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / export_filename(today)
    out_path.write_text(json.dumps(results, indent=2), encoding="utf-8")
    logger.info("Exported analysis results to %s", out_path)
    return out_path
