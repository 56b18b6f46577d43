"""
Pytest configuration and fixtures for supply-countdown tests.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


class ScriptedFeed:
    """Feed stand-in returning pre-baked results in order."""

    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    def fetch(self):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def target_height():
    """Bitcoin height at which 20M BTC have been issued."""
    return 939_999


@pytest.fixture
def make_blocks():
    """
    Factory for block windows, most recent first.

    make_blocks(tip_height, tip_time, interval, count)
    """
    from supply_countdown.issuance.rate_estimator import BlockSample

    def _make(tip_height=870_000, tip_time=1_730_000_000, interval=600, count=10):
        return tuple(
            BlockSample(height=tip_height - i, timestamp=tip_time - i * interval)
            for i in range(count)
        )

    return _make


@pytest.fixture
def make_feed():
    """Factory for ScriptedFeed instances."""
    return ScriptedFeed


@pytest.fixture
def default_config(tmp_path):
    """Daemon configuration with the status file under tmp_path."""
    return {
        'schedule': {
            'initial_amount': 50,
            'era_length': 210000,
            'unit_scale': 100_000_000,
            'target_amount': 20_000_000,
            'supply_cap': 21_000_000,
        },
        'timing': {
            'poll_interval': 30.0,
            'display_interval': 1.0,
            'nominal_block_time': 600.0,
        },
        'estimate': {'mode': 'average'},
        'output': {'status_path': str(tmp_path / 'supply_countdown.json')},
    }
