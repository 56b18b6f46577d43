"""
Unit tests for the Projection Engine.
"""

import pytest


class TestProject:
    """Test the projection formula."""

    def test_zero_remaining_returns_anchor(self):
        """With nothing remaining the anchor is returned exactly."""
        from supply_countdown.issuance.projection import project

        anchor = 1_730_000_123.25
        for rate in (0.0, 1.0, 597.3, 600.0, 1e9):
            assert project(0, anchor, rate) == anchor

    def test_negative_remaining_clamps(self):
        """Past the target the projection stays at the anchor."""
        from supply_countdown.issuance.projection import project

        assert project(-5, 1000.0, 600.0) == 1000.0

    def test_linear(self):
        """Projection is anchor + remaining * rate."""
        from supply_countdown.issuance.projection import project

        assert project(10, 1000.0, 600.0) == 7000.0
        assert project(69_999, 1_730_000_000.0, 590.5) == pytest.approx(
            1_730_000_000.0 + 69_999 * 590.5
        )

    def test_blocks_remaining_clamped(self):
        """blocks_remaining never goes negative."""
        from supply_countdown.issuance.projection import blocks_remaining

        assert blocks_remaining(939_999, 870_000) == 69_999
        assert blocks_remaining(939_999, 939_999) == 0
        assert blocks_remaining(939_999, 950_000) == 0


class TestEstimateState:
    """Test EstimateState snapshots."""

    def test_reproject_builds_snapshot(self, target_height):
        """reproject fills in the projected time."""
        from supply_countdown.issuance.projection import RateMode, reproject

        state = reproject(870_000, target_height, 1_730_000_000.0, RateMode.AVERAGE, 600.0, updated_at=5.0)

        assert state.blocks_remaining == 69_999
        assert state.projected_time == 1_730_000_000.0 + 69_999 * 600.0
        assert state.is_reached is False
        assert state.updated_at == 5.0

    def test_reached_projects_anchor(self, target_height):
        """At or past the target the projection equals the anchor."""
        from supply_countdown.issuance.projection import RateMode, reproject

        state = reproject(target_height + 3, target_height, 42.0, RateMode.FIXED, 600.0)
        assert state.is_reached is True
        assert state.blocks_remaining == 0
        assert state.projected_time == 42.0

    def test_touched_keeps_projection(self, target_height):
        """touched only refreshes updated_at."""
        from supply_countdown.issuance.projection import RateMode, reproject

        state = reproject(870_000, target_height, 100.0, RateMode.AVERAGE, 600.0, updated_at=1.0)
        newer = state.touched(2.0)

        assert newer.updated_at == 2.0
        assert newer.projected_time == state.projected_time
        assert newer.height == state.height
        assert state.updated_at == 1.0

    def test_rate_mode_values(self):
        """Rate modes parse from their string values."""
        from supply_countdown.issuance.projection import RateMode

        assert RateMode("average") is RateMode.AVERAGE
        assert RateMode("fixed") is RateMode.FIXED
        with pytest.raises(ValueError):
            RateMode("median")


class TestNeedsReprojection:
    """Test the recompute policy."""

    @pytest.fixture
    def state(self, target_height):
        from supply_countdown.issuance.projection import RateMode, reproject
        return reproject(870_000, target_height, 1000.0, RateMode.AVERAGE, 600.0)

    def test_no_previous(self):
        """Without a previous snapshot a projection is always needed."""
        from supply_countdown.issuance.projection import RateMode, needs_reprojection

        assert needs_reprojection(None, 870_000, 1000.0, RateMode.AVERAGE, 600.0)

    def test_missing_projection(self, state):
        """A snapshot without a projected time needs one."""
        from dataclasses import replace
        from supply_countdown.issuance.projection import needs_reprojection

        empty = replace(state, projected_time=None)
        assert needs_reprojection(empty, state.height, state.anchor_time, state.rate_mode, state.block_time)

    def test_identical_inputs(self, state):
        """Unchanged inputs do not trigger a recompute."""
        from supply_countdown.issuance.projection import needs_reprojection

        assert not needs_reprojection(state, 870_000, 1000.0, state.rate_mode, 600.0)

    def test_each_input_triggers(self, state):
        """Height, anchor, mode and rate each trigger a recompute."""
        from supply_countdown.issuance.projection import RateMode, needs_reprojection

        assert needs_reprojection(state, 870_001, 1000.0, RateMode.AVERAGE, 600.0)
        assert needs_reprojection(state, 870_000, 1600.0, RateMode.AVERAGE, 600.0)
        assert needs_reprojection(state, 870_000, 1000.0, RateMode.FIXED, 600.0)
        assert needs_reprojection(state, 870_000, 1000.0, RateMode.AVERAGE, 598.2)
