"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import date
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.adaptive.models import QuizItem, SpacedRepetitionState  # noqa: E402
from src.adaptive.settings import EngineSettings  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Scheduler + state store flows")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def today():
    """A fixed review date; nothing in the engine reads the clock."""
    return date(2024, 3, 1)


@pytest.fixture
def settings():
    """Default settings, isolated from any .env file."""
    return EngineSettings(_env_file=None)


@pytest.fixture
def sm2_state(today):
    """A brand-new SM-2 state."""
    return SpacedRepetitionState.new_sm2("learner-1", "item-1", today)


@pytest.fixture
def leitner_state(today):
    """A brand-new Leitner state."""
    return SpacedRepetitionState.new_leitner("learner-1", "item-1", today)


@pytest.fixture
def sample_item():
    """Provide a sample quiz item for testing."""
    return QuizItem(item_id="item-1", topic="Algebra", content_ref="decks/algebra.json#1")
