"""Tests for segment definition, unit distribution and per-segment layout."""

import pytest

from floorplate.generators.flexibility import derive_behaviors
from floorplate.generators.segments import (
    WRAP_END,
    WRAP_START,
    Segment,
    define_segments,
    distribute_units,
    mirror_premium_corners,
)
from floorplate.generators.units import PlacedUnit, layout_segment, order_units
from floorplate.models.config import (
    DEFAULT_CORRIDOR_WIDTH,
    DEFAULT_UNIT_CONFIG,
    STRATEGY_PROFILES,
    Pattern,
    Side,
    Strategy,
)

RENTABLE_DEPTH = (20.0 - DEFAULT_CORRIDOR_WIDTH) / 2


@pytest.fixture
def behaviors():
    return derive_behaviors(DEFAULT_UNIT_CONFIG, RENTABLE_DEPTH)


class TestDefineSegments:
    def test_two_cores(self):
        profile = STRATEGY_PROFILES[Strategy.BALANCED]
        core_segs, clear_segs = define_segments(60.0, [(15.0, 4.0), (41.0, 4.0)], 12.0, Side.NORTH, profile)

        assert [(s.start, s.length) for s in core_segs] == [(0.0, 15.0), (19.0, 22.0), (45.0, 15.0)]
        assert core_segs[0].is_corner and core_segs[0].is_left_end
        assert core_segs[2].is_corner and core_segs[2].is_right_end
        assert not core_segs[1].is_corner
        assert all(s.side is Side.NORTH for s in core_segs)

        assert [(s.start, s.length) for s in clear_segs] == [(0.0, 12.0), (12.0, 36.0), (48.0, 12.0)]
        assert all(s.side is Side.SOUTH for s in clear_segs)
        assert clear_segs[1].pattern is Pattern.VALLEY_INVERTED

    def test_wrap_ends(self):
        profile = STRATEGY_PROFILES[Strategy.BALANCED]
        core_segs, clear_segs = define_segments(60.0, [(15.0, 4.0), (41.0, 4.0)], 12.0, Side.SOUTH, profile)
        # Every core wraps the unit to its left except the rightmost
        assert core_segs[0].wrap_end == WRAP_END
        assert core_segs[1].wrap_end == WRAP_END
        assert core_segs[2].wrap_end == WRAP_START
        assert all(s.wrap_end is None for s in clear_segs)

    def test_three_cores(self):
        profile = STRATEGY_PROFILES[Strategy.MIX_OPTIMIZED]
        core_segs, _ = define_segments(100.0, [(20.0, 4.0), (50.0, 4.0), (76.0, 4.0)], 20.0, Side.NORTH, profile)
        assert len(core_segs) == 4
        assert [s.pattern for s in core_segs] == [Pattern.DESC, Pattern.ASC, Pattern.ASC, Pattern.DESC]

    def test_clear_corner_capped_at_half(self):
        profile = STRATEGY_PROFILES[Strategy.BALANCED]
        _, clear_segs = define_segments(20.0, [(5.0, 4.0), (11.0, 4.0)], 15.0, Side.NORTH, profile)
        assert clear_segs[0].length == 10.0
        assert clear_segs[1].length == 0.0


class TestDistributeUnits:
    def test_total_conserved(self, behaviors):
        counts = {"studio": 2, "1br": 3, "2br": 2, "3br": 1}
        segments = [
            Segment(start=0, length=16, is_corner=True, is_left_end=True),
            Segment(start=16, length=30),
            Segment(start=46, length=16, is_corner=True, is_right_end=True),
        ]
        result = distribute_units(counts, segments, behaviors)
        for tid, n in counts.items():
            assert sum(r[tid] for r in result) == n

    def test_corners_get_premium_units(self, behaviors):
        counts = {"studio": 2, "1br": 3, "2br": 2, "3br": 1}
        segments = [
            Segment(start=0, length=16, is_corner=True, is_left_end=True),
            Segment(start=16, length=30),
            Segment(start=46, length=16, is_corner=True, is_right_end=True),
        ]
        result = distribute_units(counts, segments, behaviors)
        assert result[0]["3br"] == 1
        assert result[2]["2br"] >= 1

    def test_overflow_still_placed(self, behaviors):
        counts = {"studio": 3, "1br": 0, "2br": 0, "3br": 0}
        result = distribute_units(counts, [Segment(start=0, length=10)], behaviors)
        assert result[0]["studio"] == 3

    def test_empty_segment_receives_donor_unit(self, behaviors):
        counts = {"studio": 3, "1br": 0, "2br": 0, "3br": 0}
        segments = [
            Segment(start=0, length=30),
            Segment(start=30, length=6.5),
        ]
        result = distribute_units(counts, segments, behaviors)
        assert sum(result[1].values()) >= 1
        assert sum(r["studio"] for r in result) == 3

    def test_no_segments(self, behaviors):
        assert distribute_units({"studio": 2}, [], behaviors) == []


class TestMirrorPremiumCorners:
    def test_stacks_premium_type(self, behaviors):
        segments_a = [
            Segment(start=0, length=16, is_corner=True, is_left_end=True),
            Segment(start=16, length=30),
            Segment(start=46, length=16, is_corner=True, is_right_end=True),
        ]
        segments_b = [
            Segment(start=0, length=16, is_corner=True, is_left_end=True),
            Segment(start=16, length=30),
            Segment(start=46, length=16, is_corner=True, is_right_end=True),
        ]
        side_a = [
            {"studio": 0, "1br": 0, "2br": 0, "3br": 1},
            {"studio": 1, "1br": 2, "2br": 0, "3br": 0},
            {"studio": 0, "1br": 0, "2br": 1, "3br": 0},
        ]
        side_b = [
            {"studio": 0, "1br": 0, "2br": 1, "3br": 0},
            {"studio": 1, "1br": 1, "2br": 0, "3br": 1},
            {"studio": 0, "1br": 0, "2br": 1, "3br": 0},
        ]
        totals_b = {tid: sum(s[tid] for s in side_b) for tid in behaviors}

        mirror_premium_corners(side_a, side_b, segments_a, segments_b, behaviors)

        assert side_b[0]["3br"] == 1
        assert side_b[0]["2br"] == 0
        assert side_b[1]["2br"] == 1
        assert {tid: sum(s[tid] for s in side_b) for tid in behaviors} == totals_b


class TestOrderUnits:
    SEQ = ["3br", "3br", "2br", "1br", "studio"]

    def test_desc(self):
        assert order_units(self.SEQ, Pattern.DESC) == self.SEQ

    def test_asc(self):
        assert order_units(self.SEQ, Pattern.ASC) == list(reversed(self.SEQ))

    def test_valley(self):
        assert order_units(self.SEQ, Pattern.VALLEY) == ["3br", "2br", "studio", "1br", "3br"]

    def test_valley_inverted(self):
        assert order_units(self.SEQ, Pattern.VALLEY_INVERTED) == ["3br", "1br", "studio", "2br", "3br"]

    def test_keeps_every_unit(self):
        for pattern in Pattern:
            assert sorted(order_units(self.SEQ, pattern)) == sorted(self.SEQ)


class TestLayoutSegment:
    def test_units_contiguous_and_within_segment(self, behaviors):
        seg = Segment(start=0, length=30, is_corner=True, is_left_end=True, pattern=Pattern.VALLEY)
        units = layout_segment(seg, {"studio": 1, "1br": 1, "2br": 1}, behaviors, y=0, depth=RENTABLE_DEPTH)

        assert units[0].x == 0
        for a, b in zip(units, units[1:]):
            assert b.x == pytest.approx(a.right)
        assert units[-1].right <= seg.end + 1e-9
        for u in units:
            assert u.width >= behaviors[u.type_id].min_width - 1e-9
            assert u.width <= behaviors[u.type_id].max_width + 1e-9
            assert u.depth == RENTABLE_DEPTH
        assert behaviors[units[0].type_id].corner_eligible

    def test_right_end_flush_with_building(self, behaviors):
        seg = Segment(start=40, length=20, is_corner=True, is_right_end=True)
        units = layout_segment(seg, {"3br": 1}, behaviors, y=0, depth=RENTABLE_DEPTH)
        assert len(units) == 1
        assert units[0].right == pytest.approx(60.0)
        assert units[0].width == pytest.approx(behaviors["3br"].max_width)

    def test_overflow_drops_non_corner_unit(self, behaviors):
        seg = Segment(start=0, length=14)
        units = layout_segment(seg, {"2br": 1, "studio": 1}, behaviors, y=0, depth=RENTABLE_DEPTH)
        assert [u.type_id for u in units] == ["2br"]
        assert units[0].width == pytest.approx(14.0)

    def test_wide_segment_splits_units(self, behaviors):
        seg = Segment(start=0, length=40)
        units = layout_segment(seg, {"studio": 1}, behaviors, y=0, depth=RENTABLE_DEPTH)
        assert len(units) == 4
        assert all(u.type_id == "studio" for u in units)
        assert all(u.width <= behaviors["studio"].max_width + 1e-9 for u in units)

    def test_l_shape_unit_moved_next_to_wrapped_core(self, behaviors):
        seg = Segment(start=10, length=20, wrap_end=WRAP_END)
        counts = {"1br": 1, "studio": 1}

        plain = layout_segment(seg, counts, behaviors, y=0, depth=RENTABLE_DEPTH)
        assert plain[0].type_id == "1br"

        wrapped = layout_segment(seg, counts, behaviors, y=0, depth=RENTABLE_DEPTH, wrap_expected=True)
        assert wrapped[-1].type_id == "1br"
        assert wrapped[-1].right == pytest.approx(30.0)

    def test_empty_counts(self, behaviors):
        assert layout_segment(Segment(start=0, length=10), {}, behaviors, y=0, depth=RENTABLE_DEPTH) == []

    def test_zero_length(self, behaviors):
        assert layout_segment(Segment(start=0, length=0), {"studio": 1}, behaviors, y=0, depth=RENTABLE_DEPTH) == []

    def test_side_and_band(self, behaviors):
        seg = Segment(start=0, length=10, side=Side.SOUTH)
        units = layout_segment(seg, {"studio": 1}, behaviors, y=11.0, depth=RENTABLE_DEPTH)
        assert isinstance(units[0], PlacedUnit)
        assert units[0].side is Side.SOUTH
        assert units[0].y == 11.0
