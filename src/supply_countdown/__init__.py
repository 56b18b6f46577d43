"""
supply-countdown: Issuance Milestone Countdown Daemon

This package estimates when a fixed-supply token's cumulative issuance will
cross a milestone (by default, 20 million BTC), from a block feed that
reports the tip height and recent block timestamps.

Architecture:
    block feed → FeedUpdateCoordinator → EstimateState → status file / HTTP

It provides:
    1. Closed-form halving schedule accounting (issuance at a height and
       the first height reaching a threshold)
    2. A trailing-average block time estimate with a fixed nominal fallback
    3. A projected wall-clock instant for the milestone block, refreshed only
       when the feed reports something material

Version: 1.0.0
"""

__version__ = "1.0.0"

from .interfaces.countdown_result import CountdownResult
from .issuance.issuance_model import (
    EraSchedule,
    UnreachableThresholdError,
    cumulative_issuance_at,
    counter_value_for_threshold,
)
from .issuance.projection import EstimateState, RateMode

__all__ = [
    "CountdownResult",
    "EraSchedule",
    "UnreachableThresholdError",
    "cumulative_issuance_at",
    "counter_value_for_threshold",
    "EstimateState",
    "RateMode",
    "__version__",
]
