"""
Rate Estimator - trailing average block interval

Derives the empirical time-per-block from the feed's most recent block
window. Intervals that are zero or negative (duplicate or out-of-order
timestamps, which the feed does produce) are dropped rather than failing
the whole window.

The estimator keeps no history beyond the last adopted average. When a
window yields nothing usable the previous average stays active; before the
first usable window the nominal block time is used.
"""

from dataclasses import dataclass
from typing import Optional, Sequence
import logging
import numpy as np

from .constants import FALLBACK_BLOCK_TIME_S

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockSample:
    """One (height, timestamp) record from the block feed."""
    height: int
    timestamp: int  # Unix seconds


def _valid_intervals(samples: Sequence[BlockSample]) -> np.ndarray:
    """Strictly positive adjacent timestamp deltas (most-recent-first input)."""
    stamps = np.array([s.timestamp for s in samples], dtype=np.float64)
    deltas = stamps[:-1] - stamps[1:]
    return deltas[deltas > 0]


def average_block_interval(samples: Sequence[BlockSample]) -> Optional[float]:
    """
    Mean positive interval between adjacent samples.

    Args:
        samples: Block samples, most recent first

    Returns:
        Average seconds per block, or None if the window is unusable
    """
    if samples is None or len(samples) < 2:
        return None

    valid = _valid_intervals(samples)
    if valid.size == 0:
        return None

    return float(valid.mean())


class RateEstimator:
    """
    Holds the active empirical block time.

    Usage:
        estimator = RateEstimator(nominal_block_time=600.0)
        estimator.update(samples)
        seconds_per_block = estimator.block_time
    """

    def __init__(self, nominal_block_time: float = FALLBACK_BLOCK_TIME_S):
        """
        Args:
            nominal_block_time: Seconds per block used until a window is usable
        """
        if nominal_block_time <= 0:
            raise ValueError(f"nominal_block_time must be > 0, got {nominal_block_time}")
        self.nominal_block_time = float(nominal_block_time)
        self._average: Optional[float] = None
        self._sample_count = 0

    @property
    def block_time(self) -> float:
        """Last adopted average, else the nominal block time."""
        return self._average if self._average is not None else self.nominal_block_time

    @property
    def has_estimate(self) -> bool:
        return self._average is not None

    @property
    def sample_count(self) -> int:
        """Valid intervals behind the current average."""
        return self._sample_count

    def update(self, samples: Sequence[BlockSample]) -> Optional[float]:
        """
        Recompute from a fresh window.

        Returns:
            The new average if adopted, None if the previous rate was retained
        """
        valid = _valid_intervals(samples) if samples is not None and len(samples) >= 2 else None
        if valid is None or valid.size == 0:
            logger.debug(f"Rate window unusable ({len(samples or ())} samples), keeping {self.block_time:.1f}s")
            return None

        average = float(valid.mean())
        self._average = average
        self._sample_count = int(valid.size)
        logger.debug(f"Average block time {average:.1f}s over {self._sample_count} intervals")
        return average

    def reset(self):
        """Forget the empirical average."""
        self._average = None
        self._sample_count = 0
