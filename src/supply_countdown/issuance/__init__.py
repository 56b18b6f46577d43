"""
Issuance arithmetic for supply-countdown.

Halving schedule accounting, block-time estimation and milestone projection.
"""

from .issuance_model import (
    EraSchedule,
    BITCOIN_SCHEDULE,
    UnreachableThresholdError,
    cumulative_issuance_at,
    counter_value_for_threshold,
)
from .rate_estimator import BlockSample, RateEstimator, average_block_interval
from .projection import EstimateState, RateMode, project, needs_reprojection, reproject

__all__ = [
    'EraSchedule', 'BITCOIN_SCHEDULE', 'UnreachableThresholdError',
    'cumulative_issuance_at', 'counter_value_for_threshold',
    'BlockSample', 'RateEstimator', 'average_block_interval',
    'EstimateState', 'RateMode', 'project', 'needs_reprojection', 'reproject',
]
