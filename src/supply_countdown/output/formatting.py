"""
Console formatting for countdown results.
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..interfaces.countdown_result import CountdownResult
from ..issuance.projection import RateMode


def format_number(num: int) -> str:
    """Thousands-separated integer."""
    return f"{num:,}"


def format_amount(base_units: int, unit_scale: int = 100_000_000, max_decimals: int = 8) -> str:
    """Base units as coins, up to max_decimals, trailing zeros dropped."""
    value = Decimal(base_units) / Decimal(unit_scale)
    text = f"{value:,.{max_decimals}f}"
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def format_duration_short(seconds: Optional[float]) -> str:
    """'9m 58s' style; '--' when unknown or non-positive."""
    if seconds is None or not math.isfinite(seconds) or seconds <= 0:
        return '--'
    total = int(seconds + 0.5)
    return f"{total // 60}m {total % 60:02d}s"


def format_countdown(result: CountdownResult) -> str:
    """'DDd HH:MM:SS' or '--d --:--:--' without a projection."""
    parts = result.countdown_parts()
    if parts is None:
        return '--d --:--:--'
    days, hours, mins, secs = parts
    return f"{days:02d}d {hours:02d}:{mins:02d}:{secs:02d}"


def format_estimated_date(timestamp: float) -> str:
    """Local date/time of a Unix timestamp."""
    return datetime.fromtimestamp(timestamp).astimezone().strftime('%a, %b %d, %Y, %I:%M %p %Z')


def mode_label(rate_mode, sample_count: int = 0, nominal_block_time: float = 600.0) -> str:
    if RateMode(rate_mode) == RateMode.FIXED:
        return f"fixed {nominal_block_time / 60:g}-minute blocks"
    if sample_count:
        return f"the last {sample_count + 1} blocks average time"
    return "average block time"


def render_summary(result: CountdownResult, unit_symbol: str = "BTC") -> str:
    """One-line console summary of a countdown result."""
    if result.feed_status == "ERROR":
        current = "API Error"
    elif result.current_height is None:
        current = "--"
    else:
        current = format_number(result.current_height)

    if result.blocks_remaining is None:
        return f"Block {current} | target {format_number(result.target_height)} | waiting for feed"

    if result.reached:
        eta = "Reached"
    elif result.projected_time is not None:
        eta = format_estimated_date(result.projected_time)
    else:
        eta = "--"

    return (
        f"Block {current} | target {format_number(result.target_height)} | "
        f"{format_number(result.blocks_remaining)} blocks, "
        f"{format_amount(result.amount_remaining, result.unit_scale)} {unit_symbol} left | "
        f"ETA {eta} | {format_countdown(result)} | "
        f"issued {format_amount(result.issued_amount, result.unit_scale)} {unit_symbol} "
        f"({result.progress_percent:.2f}%) | "
        f"{format_duration_short(result.block_time_seconds)}/block ({result.rate_mode})"
    )
