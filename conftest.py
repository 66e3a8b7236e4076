"""
Pytest configuration and shared fixtures for the Yogik test suite.

Sessions run on a ManualClock and a RecordingPromptSink, so nothing here
depends on wall-clock time or audio binaries.
"""

import sys
from pathlib import Path

import pytest

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from yogik.db_manager import DatabaseManager  # noqa: E402
from yogik.yk_audio import RecordingPromptSink  # noqa: E402
from yogik.yk_clock import ManualClock  # noqa: E402
from yogik.yk_models import PracticeSettings  # noqa: E402


@pytest.fixture
def db(tmp_path):
    """Fresh sqlite store in a temporary directory."""
    return DatabaseManager(str(tmp_path / "yogik.db"))


@pytest.fixture
def sink():
    return RecordingPromptSink()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def settings():
    """Settings with a 1 second prep so tests reach Active quickly."""
    return PracticeSettings(prep_seconds=1)


@pytest.fixture
def activate(clock):
    """Advance through the prep countdown so a started session becomes Active."""
    def _activate(session):
        clock.advance(session.settings.prep_seconds)
    return _activate
