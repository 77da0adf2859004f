"""
Pytest configuration and shared fixtures for the anchoring engine tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_common = importlib.import_module("fixtures.common")

make_donation = _common.make_donation
make_donations = _common.make_donations
make_three_donations = _common.make_three_donations
make_store = _common.make_store
make_controller = _common.make_controller
ManualClock = _common.ManualClock

from core.ledger import FakeLedger  # noqa: E402


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep GIVEGOOD_* variables from the host out of every test."""
    import os
    for name in list(os.environ):
        if name.startswith("GIVEGOOD_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def donation():
    """Provide the reference donation row."""
    return make_donation()


@pytest.fixture
def three_donations():
    """Provide INR 100/200/300 donations in creation order."""
    return make_three_donations()


@pytest.fixture
def store(three_donations):
    """Provide a store seeded with the three donations."""
    return make_store(three_donations)


@pytest.fixture
def ledger():
    """Provide a FakeLedger."""
    return FakeLedger()


@pytest.fixture
def clock():
    """Provide a manual clock for finality timeouts."""
    return ManualClock()


@pytest.fixture
def controller(store, ledger, clock):
    """Provide a controller over the seeded store and fake ledger."""
    return make_controller(store=store, ledger=ledger, clock=clock)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
