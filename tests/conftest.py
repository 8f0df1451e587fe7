"""
Pytest fixtures for SpeakEasy tests. The journey store uses a temporary SQLite DB.
"""

from __future__ import annotations

import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def journey_db(tmp_path, monkeypatch):
    """
    Point the journey store at a temporary DATA_DIR and create the tables.
    Closes any cached engine first so each test gets a fresh DB.
    """
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))

    from speakeasy import db

    await db.close_db()
    await db.init_db()
    yield db
    await db.close_db()


@pytest.fixture
def full_result():
    """A realistic payload from the analysis service."""
    return {
        "transcript": "Thanks everyone for coming today.",
        "clarity": 4,
        "confidence": "good",
        "wpm": 140,
        "fillerWordRate": 0.01,
    }
