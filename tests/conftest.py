"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from cadence.ability.estimation import EstimationConfig  # noqa: E402
from cadence.ability.irt_model import ItemParameter  # noqa: E402
from cadence.core.dimensions import SkillDimension  # noqa: E402
from cadence.memory.fsrs import FSRSParameters, FSRSScheduler  # noqa: E402
from cadence.priority.engine import PriorityConfig, PriorityEngine  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed evaluation time."""
    return datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def estimation_config():
    """Default estimation settings, independent of the environment."""
    return EstimationConfig()


@pytest.fixture
def scheduler():
    """FSRS scheduler with default weights."""
    return FSRSScheduler(FSRSParameters())


@pytest.fixture
def priority_engine():
    """Priority engine with the default band table."""
    return PriorityEngine(PriorityConfig())


@pytest.fixture
def item_bank():
    """Nine 2PL items spread across the difficulty range."""
    return [
        ItemParameter(item_id=f"item-{i}", a=1.0 + 0.1 * (i % 3), b=-2.0 + 0.5 * i,
                      dimension=SkillDimension.LEXICAL)
        for i in range(9)
    ]
