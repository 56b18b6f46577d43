"""Estimate engine - feed ingestion and snapshot ownership.

Contains:
- FeedUpdateCoordinator: applies poll results and rate-mode changes
"""

from .feed_coordinator import FeedUpdateCoordinator

__all__ = ['FeedUpdateCoordinator']
