"""
Feed Result Data Models

One poll cycle produces exactly one of these. The primary endpoint is tried
first; the fallback only when it fails. Keeping the outcome as a value
(rather than nested exception handling) makes the priority explicit to the
coordinator that consumes it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

from ..issuance.rate_estimator import BlockSample


class FeedError(Exception):
    """A feed request failed or returned an unusable payload."""


class PollStatus(str, Enum):
    """How a poll cycle ended."""
    PRIMARY = "PRIMARY"         # Block batch accepted
    FALLBACK = "FALLBACK"       # Bare tip height accepted
    FAILED = "FAILED"           # Both endpoints failed, state kept
    SUPERSEDED = "SUPERSEDED"   # A newer poll already completed, discarded


@dataclass(frozen=True)
class PrimaryResult:
    """Recent block batch from the primary endpoint (unordered)."""
    samples: Tuple[BlockSample, ...]
    received_at: float


@dataclass(frozen=True)
class FallbackResult:
    """Bare tip height from the fallback endpoint."""
    height: int
    received_at: float
    primary_error: str = ""


@dataclass(frozen=True)
class FeedFailure:
    """Both endpoints failed."""
    primary_error: str
    fallback_error: str

    def __str__(self) -> str:
        return f"primary: {self.primary_error}; fallback: {self.fallback_error}"


FeedResult = Union[PrimaryResult, FallbackResult, FeedFailure]
