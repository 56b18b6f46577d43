#!/usr/bin/env python3
"""
Feed Update Coordinator

Owns the single EstimateState snapshot. Each poll cycle hands it one feed
result; the coordinator decides whether the anchor and projection must be
refreshed and, if so, swaps in a new snapshot. Readers (display loop, status
server) only ever read the current reference.

Poll cycle:
    ┌──────────────┐  ok   ┌───────────────────────────────────────────┐
    │ block batch  │──────▶│ sort by height, tip = max, update rate,   │
    └──────────────┘       │ anchor = tip timestamp, reproject if      │
           │ fail          │ height/anchor/mode/rate changed           │
           ▼               └───────────────────────────────────────────┘
    ┌──────────────┐  ok   ┌───────────────────────────────────────────┐
    │ tip height   │──────▶│ no rate update; if height changed or no   │
    └──────────────┘       │ estimate: anchor = response time and      │
           │ fail          │ reproject                                 │
           │               └───────────────────────────────────────────┘
           ▼
    feed error flag set, last estimate kept (stale but displayed)

Ordering:
    Polls are numbered as they begin. A result is applied only if no newer
    poll has completed yet; otherwise it is discarded as SUPERSEDED so a slow
    stale response can never roll the state back.
"""

import logging
import threading
from typing import Any, Dict, Optional

from ..interfaces.feed_result import (
    FallbackResult,
    FeedFailure,
    FeedResult,
    PollStatus,
    PrimaryResult,
)
from ..issuance.constants import FIXED_BLOCK_TIME_S
from ..issuance.projection import (
    EstimateState,
    RateMode,
    blocks_remaining,
    needs_reprojection,
    reproject,
)
from ..issuance.rate_estimator import RateEstimator

logger = logging.getLogger(__name__)


class FeedUpdateCoordinator:
    """
    Ingests feed results and maintains the estimate snapshot.
    """

    def __init__(
        self,
        target_height: int,
        estimator: Optional[RateEstimator] = None,
        rate_mode: RateMode = RateMode.AVERAGE,
        nominal_block_time: float = FIXED_BLOCK_TIME_S
    ):
        """
        Args:
            target_height: Height at which the milestone is met (fixed)
            estimator: Empirical block-time estimator
            rate_mode: Initial rate mode
            nominal_block_time: Seconds per block in FIXED mode
        """
        self.target_height = target_height
        self.estimator = estimator or RateEstimator(nominal_block_time)
        self.nominal_block_time = float(nominal_block_time)

        self._lock = threading.Lock()
        self._rate_mode = RateMode(rate_mode)
        self._state: Optional[EstimateState] = None
        self._feed_ok: Optional[bool] = None
        self._last_error: Optional[str] = None

        # Poll ordering
        self._next_sequence = 0
        self._latest_completed = 0

        self.stats = {
            'polls': 0,
            'primary': 0,
            'fallback': 0,
            'failures': 0,
            'superseded': 0,
            'reprojections': 0,
        }

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> Optional[EstimateState]:
        """Latest snapshot (None until a poll has succeeded)."""
        return self._state

    @property
    def rate_mode(self) -> RateMode:
        return self._rate_mode

    @property
    def block_time(self) -> float:
        """Active seconds per block for the current mode."""
        if self._rate_mode == RateMode.FIXED:
            return self.nominal_block_time
        return self.estimator.block_time

    @property
    def feed_ok(self) -> Optional[bool]:
        """True/False after the last applied poll, None before any."""
        return self._feed_ok

    @property
    def feed_status(self) -> str:
        if self._feed_ok is None:
            return "WAITING"
        return "OK" if self._feed_ok else "ERROR"

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    # ------------------------------------------------------------------
    # Poll cycle
    # ------------------------------------------------------------------

    def begin_poll(self) -> int:
        """Reserve the next poll sequence number."""
        with self._lock:
            self._next_sequence += 1
            self.stats['polls'] += 1
            return self._next_sequence

    def poll(self, feed: Any) -> PollStatus:
        """
        Run one full poll cycle against a feed.

        The request runs outside the lock; only applying the result is
        serialized. Nothing raised by the feed escapes this call.

        Args:
            feed: Object with fetch() -> FeedResult

        Returns:
            PollStatus for this cycle
        """
        sequence = self.begin_poll()
        try:
            result = feed.fetch()
        except Exception as e:
            logger.exception(f"Feed raised unexpectedly: {e}")
            result = FeedFailure(primary_error=str(e), fallback_error="not attempted")
        return self.apply(sequence, result)

    def apply(self, sequence: int, result: FeedResult) -> PollStatus:
        """
        Apply a feed result from poll `sequence`.

        Returns:
            PollStatus describing what happened
        """
        with self._lock:
            if sequence < self._latest_completed:
                self.stats['superseded'] += 1
                logger.debug(f"Discarding poll #{sequence} (poll #{self._latest_completed} already applied)")
                return PollStatus.SUPERSEDED
            self._latest_completed = sequence

            if isinstance(result, PrimaryResult):
                return self._apply_primary(result)
            if isinstance(result, FallbackResult):
                return self._apply_fallback(result)
            return self._apply_failure(result)

    def _apply_primary(self, result: PrimaryResult) -> PollStatus:
        ordered = sorted(result.samples, key=lambda s: s.height, reverse=True)
        tip = ordered[0]
        previous = self._state

        self.estimator.update(ordered)

        anchor_time = float(tip.timestamp)
        block_time = self.block_time

        if needs_reprojection(previous, tip.height, anchor_time, self._rate_mode, block_time):
            self._state = reproject(
                height=tip.height,
                target_height=self.target_height,
                anchor_time=anchor_time,
                rate_mode=self._rate_mode,
                block_time=block_time,
                updated_at=result.received_at
            )
            self.stats['reprojections'] += 1
            if previous is None or previous.height != tip.height:
                logger.info(
                    f"Block {tip.height:,}: {blocks_remaining(self.target_height, tip.height):,} to target, "
                    f"block time {block_time:.1f}s ({self._rate_mode.value})"
                )
        else:
            self._state = previous.touched(result.received_at)

        self._mark_ok()
        self.stats['primary'] += 1
        return PollStatus.PRIMARY

    def _apply_fallback(self, result: FallbackResult) -> PollStatus:
        previous = self._state

        if previous is None or previous.projected_time is None or previous.height != result.height:
            self._state = reproject(
                height=result.height,
                target_height=self.target_height,
                anchor_time=result.received_at,
                rate_mode=self._rate_mode,
                block_time=self.block_time,
                updated_at=result.received_at
            )
            self.stats['reprojections'] += 1
            logger.info(f"Block {result.height:,} (fallback height, anchored to response time)")
        else:
            self._state = previous.touched(result.received_at)

        self._mark_ok()
        self.stats['fallback'] += 1
        return PollStatus.FALLBACK

    def _apply_failure(self, result: FeedFailure) -> PollStatus:
        self._feed_ok = False
        self._last_error = str(result)
        self.stats['failures'] += 1
        logger.warning(f"Feed unavailable, keeping last estimate: {result}")
        return PollStatus.FAILED

    def _mark_ok(self):
        self._feed_ok = True
        self._last_error = None

    # ------------------------------------------------------------------
    # Rate mode control
    # ------------------------------------------------------------------

    def set_rate_mode(self, mode) -> Optional[EstimateState]:
        """
        Switch rate mode and reproject from the existing anchor.

        Args:
            mode: RateMode or its string value

        Returns:
            The new snapshot (None if no estimate exists yet)
        """
        with self._lock:
            self._rate_mode = RateMode(mode)
            current = self._state
            if current is not None:
                self._state = reproject(
                    height=current.height,
                    target_height=self.target_height,
                    anchor_time=current.anchor_time,
                    rate_mode=self._rate_mode,
                    block_time=self.block_time,
                    updated_at=current.updated_at
                )
                self.stats['reprojections'] += 1
            logger.info(f"Rate mode: {self._rate_mode.value} ({self.block_time:.1f}s/block)")
            return self._state

    def toggle_rate_mode(self) -> Optional[EstimateState]:
        """Flip between AVERAGE and FIXED."""
        other = RateMode.FIXED if self._rate_mode == RateMode.AVERAGE else RateMode.AVERAGE
        return self.set_rate_mode(other)

    def get_status(self) -> Dict[str, Any]:
        """Coordinator summary for status endpoints."""
        return {
            'feed_status': self.feed_status,
            'last_error': self._last_error,
            'rate_mode': self._rate_mode.value,
            'block_time_seconds': self.block_time,
            'empirical_samples': self.estimator.sample_count,
            'stats': dict(self.stats),
        }
