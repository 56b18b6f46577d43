"""Block feed client - primary block batch with tip-height fallback."""

from .mempool_feed import MempoolFeed, parse_blocks, parse_height

__all__ = ['MempoolFeed', 'parse_blocks', 'parse_height']
