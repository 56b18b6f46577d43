"""
Countdown Result Data Model

This dataclass is the contract between supply-countdown and its consumers.
It is rebuilt on every display tick from the current estimate snapshot,
serialized to JSON for the status file and the /status endpoint, and never
causes a feed request.

Contract Version: 1.0.0
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Tuple
import json
import time

from ..issuance.issuance_model import EraSchedule, cumulative_issuance_at
from ..issuance.projection import EstimateState, RateMode, blocks_remaining


@dataclass
class CountdownResult:
    """
    Everything a presentation layer needs for one refresh.

    current_height is None while the feed is failing (the error indicator);
    every estimate-derived field still carries the last known values.
    """
    version: str = "1.0.0"
    generated_at: float = field(default_factory=time.time)

    # Feed
    feed_status: str = "WAITING"              # WAITING, OK, ERROR
    current_height: Optional[int] = None
    last_update: Optional[float] = None       # Last successful poll (Unix s)

    # Milestone
    target_height: int = 0
    blocks_remaining: Optional[int] = None
    amount_remaining: Optional[int] = None    # Base units
    issued_amount: Optional[int] = None       # Base units
    progress_percent: Optional[float] = None
    unit_scale: int = 100_000_000             # Base units per coin

    # Projection
    projected_time: Optional[float] = None    # Unix s
    seconds_remaining: Optional[float] = None
    reached: bool = False

    # Rate
    rate_mode: str = RateMode.AVERAGE.value
    block_time_seconds: Optional[float] = None

    def countdown_parts(self) -> Optional[Tuple[int, int, int, int]]:
        """(days, hours, minutes, seconds) left, or None without a projection."""
        if self.seconds_remaining is None:
            return None
        total = int(self.seconds_remaining)
        return total // 86400, (total % 86400) // 3600, (total % 3600) // 60, total % 60

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        """Serialize to JSON for the status file or HTTP."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "CountdownResult":
        """Deserialize from JSON, ignoring unknown keys."""
        data = json.loads(json_str)
        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in data.items() if k in known})


def build_countdown_result(
    state: Optional[EstimateState],
    feed_status: str,
    target_height: int,
    target_amount: int,
    schedule: EraSchedule,
    supply_cap: int,
    rate_mode: RateMode,
    block_time: float,
    now: Optional[float] = None,
    unit_scale: int = 100_000_000
) -> CountdownResult:
    """
    Display-only view of the current snapshot.

    Args:
        state: Current estimate snapshot (None before the first good poll)
        feed_status: Coordinator feed status ("WAITING", "OK", "ERROR")
        target_height: Milestone height
        target_amount: Milestone issuance (base units)
        schedule: Issuance schedule
        supply_cap: Denominator of the progress fraction (base units)
        rate_mode: Active rate mode
        block_time: Active seconds per block
        now: Wall clock (default: time.time())
        unit_scale: Base units per coin

    Returns:
        CountdownResult for this tick
    """
    now = time.time() if now is None else now
    result = CountdownResult(
        generated_at=now,
        feed_status=feed_status,
        target_height=target_height,
        unit_scale=unit_scale,
        rate_mode=RateMode(rate_mode).value,
        block_time_seconds=block_time,
    )

    if state is None:
        return result

    issued = cumulative_issuance_at(state.height, schedule)
    progress = min(issued / supply_cap * 100.0, 100.0) if supply_cap > 0 else 100.0

    result.current_height = None if feed_status == "ERROR" else state.height
    result.last_update = state.updated_at
    result.blocks_remaining = blocks_remaining(target_height, state.height)
    result.issued_amount = issued
    result.amount_remaining = max(0, target_amount - issued)
    result.progress_percent = progress
    result.reached = result.blocks_remaining == 0
    result.projected_time = state.projected_time

    if result.reached:
        result.seconds_remaining = 0.0
    elif state.projected_time is not None:
        result.seconds_remaining = max(0.0, state.projected_time - now)

    return result
