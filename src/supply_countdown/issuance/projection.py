"""
Projection Engine

Turns "blocks remaining" into an estimated wall-clock instant:

    projected_time = anchor_time + max(0, remaining) * block_time

The anchor is the timestamp of the most recently trusted block (or the
fallback response time when only a bare height is available).

Recompute policy:
    The projection is rebuilt only when the height, the anchor, the rate
    mode or the rate value changed, or when no projection exists yet.
    Re-projecting on every poll with unchanged inputs would only shift the
    target date around and make the countdown jitter.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class RateMode(str, Enum):
    """Which block time drives the projection."""
    AVERAGE = "average"   # Trailing empirical average
    FIXED = "fixed"       # Nominal block time


@dataclass(frozen=True)
class EstimateState:
    """
    Immutable estimate snapshot.

    Replaced as a whole by the feed coordinator; readers only ever see a
    complete snapshot.
    """
    height: int                        # Current block height
    target_height: int                 # Height at which the milestone is met
    anchor_time: float                 # Unix seconds, zero point of the projection
    rate_mode: RateMode
    block_time: float                  # Active seconds per block
    projected_time: Optional[float]    # Unix seconds of the milestone estimate
    updated_at: Optional[float] = None # Wall clock of the last successful poll

    @property
    def blocks_remaining(self) -> int:
        return blocks_remaining(self.target_height, self.height)

    @property
    def is_reached(self) -> bool:
        return self.height >= self.target_height

    def touched(self, updated_at: float) -> "EstimateState":
        """Same estimate, newer poll time."""
        return replace(self, updated_at=updated_at)


def blocks_remaining(target_height: int, current_height: int) -> int:
    """Blocks until the target, clamped at zero."""
    return max(0, target_height - current_height)


def project(remaining_blocks: int, anchor_time: float, block_time: float) -> float:
    """
    Projected instant of the target block.

    Args:
        remaining_blocks: Blocks left (negative values clamp to 0)
        anchor_time: Unix seconds of the anchor block
        block_time: Seconds per block

    Returns:
        Unix seconds; exactly anchor_time when nothing remains
    """
    remaining = max(0, remaining_blocks)
    if remaining == 0:
        return anchor_time
    return anchor_time + remaining * block_time


def needs_reprojection(
    previous: Optional[EstimateState],
    height: int,
    anchor_time: float,
    rate_mode: RateMode,
    block_time: float
) -> bool:
    """Whether a new snapshot materially differs from the previous one."""
    if previous is None or previous.projected_time is None:
        return True
    return (
        previous.height != height or
        previous.anchor_time != anchor_time or
        previous.rate_mode != rate_mode or
        previous.block_time != block_time
    )


def reproject(
    height: int,
    target_height: int,
    anchor_time: float,
    rate_mode: RateMode,
    block_time: float,
    updated_at: Optional[float] = None
) -> EstimateState:
    """Build a fresh snapshot with a newly computed projection."""
    projected = project(
        blocks_remaining(target_height, height),
        anchor_time,
        block_time
    )
    return EstimateState(
        height=height,
        target_height=target_height,
        anchor_time=anchor_time,
        rate_mode=rate_mode,
        block_time=block_time,
        projected_time=projected,
        updated_at=updated_at
    )
