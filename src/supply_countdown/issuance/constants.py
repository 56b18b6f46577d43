#!/usr/bin/env python3
"""
Supply Countdown Shared Constants

================================================================================
PURPOSE
================================================================================
Single source of truth for the issuance schedule, the milestone target and
the feed/polling defaults used across the package. Every value here can be
overridden from the TOML configuration; these are the defaults for Bitcoin.

================================================================================
ISSUANCE SCHEDULE
================================================================================
Bitcoin block subsidy:
    Base unit:        1 BTC = 100,000,000 sats
    Initial subsidy:  50 BTC per block
    Halving interval: 210,000 blocks
    Halving rule:     subsidy = floor(subsidy / 2) each era

    Era  Heights              Subsidy       Era supply
    0    0 .. 209,999         50 BTC        10,500,000 BTC
    1    210,000 .. 419,999   25 BTC         5,250,000 BTC
    2    420,000 .. 629,999   12.5 BTC       2,625,000 BTC
    3    630,000 .. 839,999   6.25 BTC       1,312,500 BTC
    4    840,000 .. 1,049,999 3.125 BTC        656,250 BTC
    ...
    The subsidy reaches 0 sats after 33 halvings; total issuance is
    20,999,999.9769 BTC.

================================================================================
MILESTONE
================================================================================
    Target: 20,000,000 BTC issued -> first reached at height 939,999
    (issuance is credited through and including a block's height).
"""

# =============================================================================
# UNITS
# =============================================================================

SATS_PER_BTC = 100_000_000

# =============================================================================
# ISSUANCE SCHEDULE
# =============================================================================

INITIAL_SUBSIDY_SATS = 50 * SATS_PER_BTC
HALVING_INTERVAL = 210_000

# =============================================================================
# MILESTONE
# =============================================================================

TARGET_BTC = 20_000_000
TOTAL_BTC_SUPPLY = 21_000_000    # Nominal cap used for the progress fraction

# =============================================================================
# RATE ESTIMATION
# =============================================================================

FIXED_BLOCK_TIME_S = 10 * 60     # Nominal 10-minute blocks
FALLBACK_BLOCK_TIME_S = FIXED_BLOCK_TIME_S

# =============================================================================
# FEED & POLLING
# =============================================================================

BLOCKS_API_URL = "https://mempool.space/api/blocks"
HEIGHT_API_URL = "https://mempool.space/api/blocks/tip/height"

API_POLL_INTERVAL_S = 30.0       # Feed poll cadence
DISPLAY_INTERVAL_S = 1.0         # Display-only recompute cadence
FEED_TIMEOUT_S = 10.0            # Per-request timeout
