"""
Block Feed Client (mempool.space-compatible REST API)

Endpoints:
    GET {blocks_url}   - JSON list of recent blocks, each with at least
                         'height' (int >= 0) and 'timestamp' (Unix seconds)
    GET {height_url}   - Current tip height as a bare number

One call to fetch() is one poll attempt: the block batch first, the bare
height only if that fails. There are no retries here; the next scheduled
poll is the retry. Every request carries a timeout so a hung endpoint can
only delay a poll, not stall it.

Usage:
    feed = MempoolFeed()
    result = feed.fetch()   # PrimaryResult | FallbackResult | FeedFailure
"""

import logging
import math
import time
from typing import Any, Callable, Optional, Tuple

import requests

from ..interfaces.feed_result import (
    FeedError,
    FeedResult,
    FallbackResult,
    FeedFailure,
    PrimaryResult,
)
from ..issuance.constants import BLOCKS_API_URL, HEIGHT_API_URL, FEED_TIMEOUT_S
from ..issuance.rate_estimator import BlockSample

logger = logging.getLogger(__name__)


def _as_int(value: Any) -> Optional[int]:
    """Integral JSON number as int, else None (bools are rejected)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return None


def parse_blocks(payload: Any) -> Tuple[BlockSample, ...]:
    """
    Validate a block batch payload.

    Raises:
        FeedError: Payload is not a non-empty list of well-formed records
    """
    if not isinstance(payload, list) or not payload:
        raise FeedError("Invalid blocks response")

    samples = []
    for record in payload:
        if not isinstance(record, dict):
            raise FeedError(f"Malformed block record: {record!r}")
        height = _as_int(record.get('height'))
        timestamp = _as_int(record.get('timestamp'))
        if height is None or height < 0 or timestamp is None:
            raise FeedError(f"Malformed block record: {record!r}")
        samples.append(BlockSample(height=height, timestamp=timestamp))

    return tuple(samples)


def parse_height(payload: Any) -> int:
    """
    Validate a bare tip height payload.

    Raises:
        FeedError: Value is absent, non-finite, non-integral or negative
    """
    if payload is None or isinstance(payload, bool):
        raise FeedError("Invalid height response")
    try:
        value = float(payload)
    except (TypeError, ValueError):
        raise FeedError(f"Invalid height response: {payload!r}")
    if not math.isfinite(value) or not value.is_integer() or value < 0:
        raise FeedError(f"Invalid height response: {payload!r}")
    return int(value)


class MempoolFeed:
    """
    Primary/fallback block feed.
    """

    def __init__(
        self,
        blocks_url: str = BLOCKS_API_URL,
        height_url: str = HEIGHT_API_URL,
        timeout: float = FEED_TIMEOUT_S,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            blocks_url: Primary endpoint (recent block batch)
            height_url: Fallback endpoint (tip height)
            timeout: Per-request timeout in seconds
            session: HTTP session (injected in tests)
            clock: Wall clock used to stamp responses
        """
        self.blocks_url = blocks_url
        self.height_url = height_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock

    def _get_json(self, url: str) -> Any:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise FeedError(f"{url}: {e}") from e
        except ValueError as e:
            # Body was not JSON
            raise FeedError(f"{url}: invalid JSON ({e})") from e

    def fetch_blocks(self) -> Tuple[BlockSample, ...]:
        """Recent blocks from the primary endpoint."""
        return parse_blocks(self._get_json(self.blocks_url))

    def fetch_tip_height(self) -> int:
        """Tip height from the fallback endpoint."""
        return parse_height(self._get_json(self.height_url))

    def fetch(self) -> FeedResult:
        """
        One poll attempt.

        Returns:
            PrimaryResult, FallbackResult or FeedFailure; never raises FeedError
        """
        try:
            samples = self.fetch_blocks()
            return PrimaryResult(samples=samples, received_at=self.clock())
        except FeedError as e:
            primary_error = str(e)
            logger.warning(f"Error fetching block data: {primary_error}")

        try:
            height = self.fetch_tip_height()
            return FallbackResult(height=height, received_at=self.clock(), primary_error=primary_error)
        except FeedError as e:
            logger.error(f"Error fetching block height: {e}")
            return FeedFailure(primary_error=primary_error, fallback_error=str(e))

    def close(self):
        """Release pooled connections."""
        self.session.close()
