"""
Tests for the countdown result view and console formatting.
"""

import pytest


SATS = 100_000_000
NOW = 1_730_000_000.0


def _build(state, feed_status="OK", target_height=939_999, now=NOW):
    from supply_countdown.interfaces.countdown_result import build_countdown_result
    from supply_countdown.issuance.issuance_model import BITCOIN_SCHEDULE
    from supply_countdown.issuance.projection import RateMode

    return build_countdown_result(
        state=state,
        feed_status=feed_status,
        target_height=target_height,
        target_amount=20_000_000 * SATS,
        schedule=BITCOIN_SCHEDULE,
        supply_cap=21_000_000 * SATS,
        rate_mode=RateMode.AVERAGE,
        block_time=600.0,
        now=now,
    )


def _state(height, anchor=NOW - 100.0, target_height=939_999):
    from supply_countdown.issuance.projection import RateMode, reproject
    return reproject(height, target_height, anchor, RateMode.AVERAGE, 600.0, updated_at=NOW - 10.0)


class TestBuildCountdownResult:
    """Test build_countdown_result."""

    def test_waiting(self):
        """Before any poll all estimate fields are empty."""
        result = _build(None, feed_status="WAITING")

        assert result.feed_status == "WAITING"
        assert result.current_height is None
        assert result.blocks_remaining is None
        assert result.seconds_remaining is None
        assert result.target_height == 939_999
        assert result.reached is False

    def test_live_estimate(self):
        """Derived amounts and countdown for a live snapshot."""
        from supply_countdown.issuance.issuance_model import cumulative_issuance_at

        result = _build(_state(900_000))
        issued = cumulative_issuance_at(900_000)

        assert result.current_height == 900_000
        assert result.blocks_remaining == 39_999
        assert result.issued_amount == issued == 1_987_500_312_500_000
        assert result.amount_remaining == 20_000_000 * SATS - issued
        assert result.progress_percent == pytest.approx(issued / (21_000_000 * SATS) * 100)
        assert result.projected_time == NOW - 100.0 + 39_999 * 600.0
        assert result.seconds_remaining == pytest.approx(39_999 * 600.0 - 100.0)
        assert result.last_update == NOW - 10.0
        assert result.block_time_seconds == 600.0
        assert result.rate_mode == "average"

    def test_feed_error_hides_height(self):
        """Feed failure blanks the height but keeps the last estimate."""
        result = _build(_state(900_000), feed_status="ERROR")

        assert result.current_height is None
        assert result.blocks_remaining == 39_999
        assert result.projected_time is not None

    def test_reached(self):
        """At the target nothing remains."""
        result = _build(_state(940_100))

        assert result.reached is True
        assert result.blocks_remaining == 0
        assert result.amount_remaining == 0
        assert result.seconds_remaining == 0.0

    def test_overdue_clamps_to_zero(self):
        """A projection in the past counts down to zero, not below."""
        result = _build(_state(939_998, anchor=NOW - 5000.0))

        assert result.reached is False
        assert result.seconds_remaining == 0.0

    def test_progress_capped(self):
        """Progress never exceeds 100% even with a small cap."""
        from supply_countdown.interfaces.countdown_result import build_countdown_result
        from supply_countdown.issuance.issuance_model import BITCOIN_SCHEDULE
        from supply_countdown.issuance.projection import RateMode

        result = build_countdown_result(
            _state(900_000), "OK", 939_999, 20_000_000 * SATS, BITCOIN_SCHEDULE,
            supply_cap=1_000 * SATS, rate_mode=RateMode.FIXED, block_time=600.0, now=NOW
        )
        assert result.progress_percent == 100.0
        assert result.rate_mode == "fixed"


class TestCountdownResult:
    """Test the dataclass helpers."""

    def test_countdown_parts(self):
        from supply_countdown.interfaces.countdown_result import CountdownResult

        result = CountdownResult(seconds_remaining=90061.7)
        assert result.countdown_parts() == (1, 1, 1, 1)
        assert CountdownResult().countdown_parts() is None

    def test_json_round_trip(self):
        from supply_countdown.interfaces.countdown_result import CountdownResult

        result = _build(_state(900_000))
        restored = CountdownResult.from_json(result.to_json())
        assert restored == result

    def test_from_json_ignores_unknown_keys(self):
        from supply_countdown.interfaces.countdown_result import CountdownResult

        restored = CountdownResult.from_json('{"target_height": 5, "extra": true}')
        assert restored.target_height == 5


class TestFormatting:
    """Console formatting helpers."""

    def test_format_amount(self):
        from supply_countdown.output.formatting import format_amount

        assert format_amount(20_000_000 * SATS) == "20,000,000"
        assert format_amount(150_000_000) == "1.5"
        assert format_amount(1) == "0.00000001"
        assert format_amount(0) == "0"

    def test_format_duration_short(self):
        from supply_countdown.output.formatting import format_duration_short

        assert format_duration_short(598.4) == "9m 58s"
        assert format_duration_short(600.0) == "10m 00s"
        assert format_duration_short(0) == "--"
        assert format_duration_short(None) == "--"
        assert format_duration_short(float('nan')) == "--"

    def test_format_countdown(self):
        from supply_countdown.interfaces.countdown_result import CountdownResult
        from supply_countdown.output.formatting import format_countdown

        assert format_countdown(CountdownResult(seconds_remaining=90061.0)) == "01d 01:01:01"
        assert format_countdown(CountdownResult()) == "--d --:--:--"

    def test_mode_label(self):
        from supply_countdown.output.formatting import mode_label

        assert mode_label("fixed") == "fixed 10-minute blocks"
        assert mode_label("average", sample_count=9) == "the last 10 blocks average time"
        assert mode_label("average") == "average block time"

    def test_render_summary_states(self):
        from supply_countdown.output.formatting import render_summary

        assert "waiting for feed" in render_summary(_build(None, feed_status="WAITING"))
        assert "API Error" in render_summary(_build(_state(900_000), feed_status="ERROR"))
        assert "Reached" in render_summary(_build(_state(940_000)))

        live = render_summary(_build(_state(900_000)))
        assert "Block 900,000" in live
        assert "39,999 blocks" in live
        assert "BTC" in live
