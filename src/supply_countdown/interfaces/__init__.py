"""Data contracts between the feed, the estimator and consumers."""

from .countdown_result import CountdownResult, build_countdown_result
from .feed_result import (
    FeedError,
    FeedFailure,
    FeedResult,
    FallbackResult,
    PollStatus,
    PrimaryResult,
)

__all__ = [
    'CountdownResult', 'build_countdown_result',
    'FeedError', 'FeedFailure', 'FeedResult', 'FallbackResult',
    'PollStatus', 'PrimaryResult',
]
