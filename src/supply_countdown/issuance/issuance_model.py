"""
Issuance Model - halving-based subsidy accounting

Computes cumulative issuance at a block height and the inverse: the first
height at which a target cumulative issuance is reached.

================================================================================
CONVENTIONS
================================================================================
Heights are 0-indexed and issuance is credited upon completion of a block,
so cumulative issuance "at" height h covers heights 0..h inclusive, i.e.
h + 1 blocks. The threshold solver therefore returns
(blocks consumed) + (blocks needed in the crossing era) - 1.

All amounts are integers in the smallest indivisible unit (sats for Bitcoin).
Per-block amounts halve with integer floor division, so the schedule ends
after a finite number of eras and total issuance is exact.
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple
import logging

from .constants import INITIAL_SUBSIDY_SATS, HALVING_INTERVAL

logger = logging.getLogger(__name__)


class UnreachableThresholdError(ValueError):
    """Target threshold exceeds the schedule's total finite issuance."""


@dataclass(frozen=True)
class EraSchedule:
    """
    Halving issuance schedule.

    Attributes:
        initial_amount: Per-block amount in era 0 (base units)
        era_length: Blocks per era (constant, positive)
    """
    initial_amount: int = INITIAL_SUBSIDY_SATS
    era_length: int = HALVING_INTERVAL

    def __post_init__(self):
        if self.initial_amount < 0:
            raise ValueError(f"initial_amount must be >= 0, got {self.initial_amount}")
        if self.era_length <= 0:
            raise ValueError(f"era_length must be > 0, got {self.era_length}")

    def eras(self) -> Iterator[Tuple[int, int]]:
        """Yield (era_length, per-block amount) until the amount reaches zero."""
        amount = self.initial_amount
        while amount > 0:
            yield self.era_length, amount
            amount //= 2

    def era_supply(self, amount: int) -> int:
        """Total issued over one full era at the given per-block amount."""
        return amount * self.era_length

    def total_issuance(self) -> int:
        """Sum of all era supplies."""
        return sum(self.era_supply(amount) for _, amount in self.eras())

    def amount_at(self, height: int) -> int:
        """Per-block amount in force at a height (0 once issuance has ended)."""
        if height < 0:
            return 0
        # Repeated floor halving == right shift
        return self.initial_amount >> (height // self.era_length)


BITCOIN_SCHEDULE = EraSchedule()


def cumulative_issuance_at(
    height: Optional[int],
    schedule: EraSchedule = BITCOIN_SCHEDULE
) -> int:
    """
    Total units issued through and including a height.

    Args:
        height: Block height (None or negative -> nothing issued)
        schedule: Issuance schedule

    Returns:
        Cumulative issuance in base units
    """
    if height is None or height < 0:
        return 0

    remaining_blocks = height + 1
    total = 0

    for era_length, amount in schedule.eras():
        if remaining_blocks <= 0:
            break
        blocks_this_era = min(remaining_blocks, era_length)
        total += blocks_this_era * amount
        remaining_blocks -= blocks_this_era

    return total


def counter_value_for_threshold(
    threshold: int,
    schedule: EraSchedule = BITCOIN_SCHEDULE
) -> int:
    """
    Find the first height whose cumulative issuance >= threshold.

    Args:
        threshold: Target cumulative issuance (base units)
        schedule: Issuance schedule

    Returns:
        Block height at which the threshold is first met

    Raises:
        UnreachableThresholdError: If the schedule never issues that much
    """
    if threshold <= 0:
        return 0

    remaining = threshold
    blocks = 0

    for era_length, amount in schedule.eras():
        era_supply = schedule.era_supply(amount)
        if remaining > era_supply:
            remaining -= era_supply
            blocks += era_length
            continue

        # Ceiling division on integers
        blocks_needed = -(-remaining // amount)
        return blocks + blocks_needed - 1

    raise UnreachableThresholdError(
        f"Threshold {threshold} exceeds total issuance {schedule.total_issuance()} "
        f"(initial_amount={schedule.initial_amount}, era_length={schedule.era_length})"
    )
