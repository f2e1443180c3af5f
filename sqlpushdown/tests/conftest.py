"""
Pytest configuration for sqlpushdown tests.

Every test starts from default settings and an empty telemetry buffer.
"""

import pytest

from sqlpushdown import config
from sqlpushdown.telemetry import telemetry


@pytest.fixture(autouse=True)
def clean_state():
    """Restore default config and clear recorded telemetry around each test."""
    config.reset()
    telemetry.clear()
    yield
    config.reset()
    telemetry.clear()
