"""Tests for egress distance evaluation."""

import pytest

from floorplate.models.config import EGRESS_SPRINKLERED, EGRESS_UNSPRINKLERED, Side
from floorplate.models.floorplan import ComplianceStatus, Core, CoreKind
from floorplate.validators.egress import evaluate_egress

CORE_WIDTH = 3.6576
RENTABLE_DEPTH = 9.0856
CORRIDOR = 1.8288


def _cores(*xs, width=CORE_WIDTH):
    return [
        Core(id=f"core-{k}", x=x, y=0.0, width=width, depth=8.0, kind=CoreKind.END, side=Side.NORTH)
        for k, x in enumerate(xs)
    ]


class TestEvaluateEgress:
    def test_compliant_two_cores(self):
        result = evaluate_egress(
            _cores(15.0, 60.0 - 15.0 - CORE_WIDTH), 60.0, RENTABLE_DEPTH, CORRIDOR, EGRESS_SPRINKLERED,
        )
        assert result.max_dead_end == pytest.approx(15.0)
        assert result.max_travel_distance == pytest.approx(15.0)
        assert result.max_common_path == pytest.approx(15.0 + RENTABLE_DEPTH)
        assert result.compliant
        assert result.num_cores == 2

    def test_dead_end_fails(self):
        result = evaluate_egress(_cores(20.0, 36.0), 60.0, RENTABLE_DEPTH, CORRIDOR, EGRESS_SPRINKLERED)
        assert result.dead_end_status is ComplianceStatus.FAIL
        assert result.failures >= 1

    def test_alcove_exemption(self):
        # A dead end shorter than 2.5 corridor widths is an alcove
        result = evaluate_egress(_cores(20.0, 36.0), 60.0, RENTABLE_DEPTH, 10.0, EGRESS_SPRINKLERED)
        assert result.dead_end_status is ComplianceStatus.PASS

    def test_voids_shorten_dead_end(self):
        result = evaluate_egress(
            _cores(20.0, 36.0), 60.0, RENTABLE_DEPTH, CORRIDOR, EGRESS_SPRINKLERED,
            left_void=10.0, right_void=10.0,
        )
        assert result.max_dead_end == pytest.approx(60.0 - 36.0 - CORE_WIDTH - 10.0)
        assert result.dead_end_status is ComplianceStatus.PASS

    def test_travel_distance_is_half_the_widest_gap(self):
        two = evaluate_egress(_cores(10.0, 186.0), 200.0, RENTABLE_DEPTH, CORRIDOR, EGRESS_SPRINKLERED)
        assert two.max_travel_distance == pytest.approx((186.0 - 10.0 - CORE_WIDTH) / 2)
        assert two.travel_distance_status is ComplianceStatus.FAIL

        three = evaluate_egress(_cores(10.0, 98.0, 186.0), 200.0, RENTABLE_DEPTH, CORRIDOR, EGRESS_SPRINKLERED)
        assert three.max_travel_distance < two.max_travel_distance
        assert three.travel_distance_status is ComplianceStatus.PASS

    def test_core_order_does_not_matter(self):
        a = evaluate_egress(_cores(15.0, 41.0), 60.0, RENTABLE_DEPTH, CORRIDOR, EGRESS_SPRINKLERED)
        b = evaluate_egress(_cores(41.0, 15.0), 60.0, RENTABLE_DEPTH, CORRIDOR, EGRESS_SPRINKLERED)
        assert a == b

    def test_unsprinklered_is_stricter(self):
        cores = _cores(10.0, 60.0 - 10.0 - CORE_WIDTH)
        assert evaluate_egress(cores, 60.0, RENTABLE_DEPTH, CORRIDOR, EGRESS_SPRINKLERED).compliant
        strict = evaluate_egress(cores, 60.0, RENTABLE_DEPTH, CORRIDOR, EGRESS_UNSPRINKLERED)
        assert strict.dead_end_status is ComplianceStatus.FAIL

    def test_no_cores_fails_everything(self):
        result = evaluate_egress([], 60.0, RENTABLE_DEPTH, CORRIDOR, EGRESS_SPRINKLERED)
        assert result.failures == 3
        assert result.num_cores == 0
