"""End-to-end tests for floor plan generation and the layout validators."""

import random

import pytest
from pydantic import ValidationError as ModelValidationError

from floorplate.generators import (
    LayoutInputError,
    generate,
    generate_from_request,
    generate_variants,
    variants_from_request,
)
from floorplate.generators.flexibility import derive_behaviors
from floorplate.generators.pipeline import CLEAR_SIDE_SEGMENTS, layout_attempts
from floorplate.generators.unit_counts import calculate_global_counts
from floorplate.models.config import (
    DEFAULT_CORE_WIDTH,
    DEFAULT_CORRIDOR_WIDTH,
    DEFAULT_UNIT_CONFIG,
    DEFAULT_UNIT_TYPES,
    EGRESS_SPRINKLERED,
    EGRESS_UNSPRINKLERED,
    BuildingFootprint,
    LayoutRequest,
    LayoutSettings,
    Side,
    Strategy,
    UnitMix,
    UnitTypeSpec,
)
from floorplate.models.floorplan import ComplianceStatus, FloorPlan, SavedLayout
from floorplate.validators.egress import validate_egress
from floorplate.validators.layout import (
    validate_coverage,
    validate_floorplan,
    validate_no_overlap,
    validate_no_shrink,
)

FOOTPRINT = BuildingFootprint(width=60.0, depth=20.0)


def _errors(found):
    return [e for e in found if e.severity == "error"]


def _walls(plan: FloorPlan, side: Side) -> list[float]:
    units = plan.units_on(side)
    return [b.x for a, b in zip(units, units[1:]) if abs(a.right - b.x) <= 1e-6]


def _on_edges(plan: FloorPlan, walls: list[float], side: Side) -> int:
    edges = [e for u in plan.units_on(side) for e in (u.x, u.right)]
    return sum(1 for x in walls if any(abs(x - e) <= 1e-6 for e in edges))


class TestScenarios:
    def test_sixty_by_twenty(self):
        plan = generate(FOOTPRINT)

        assert len(plan.cores) == 2
        assert plan.egress.dead_end_status is ComplianceStatus.PASS
        assert plan.egress.compliant
        assert 0.70 <= plan.stats.efficiency <= 0.90
        assert plan.stats.total_units == len(plan.units)
        assert plan.units_on(Side.NORTH) and plan.units_on(Side.SOUTH)

    def test_long_building_gets_three_cores(self):
        plan = generate(BuildingFootprint(width=200.0, depth=20.0))
        assert len(plan.cores) >= 3
        assert plan.egress.max_travel_distance <= EGRESS_SPRINKLERED.travel_distance_limit
        assert [c.id for c in plan.cores][0] == "core-left"
        assert [c.id for c in plan.cores][-1] == "core-right"

    def test_studio_only_mix(self):
        mix = UnitMix(types=[UnitTypeSpec(id="studio", name="Studio", percentage=100, area=55.0)])
        plan = generate(FOOTPRINT, unit_config=mix)
        assert plan.units
        assert all(u.type_id == "studio" for u in plan.units)
        assert not any(u.is_l_shaped for u in plan.units)
        assert _errors(validate_floorplan(plan, mix)) == []

    def test_cores_on_south_side(self):
        plan = generate(FOOTPRINT, core_side=Side.SOUTH)
        assert all(c.side is Side.SOUTH for c in plan.cores)
        assert set(plan.target_counts) == {Side.NORTH, Side.SOUTH}
        assert _errors(validate_floorplan(plan, DEFAULT_UNIT_CONFIG)) == []

    def test_unsprinklered_failures_are_reported(self):
        plan = generate(BuildingFootprint(width=120.0, depth=20.0), egress_config=EGRESS_UNSPRINKLERED)
        assert plan.egress.num_cores == len(plan.cores)
        assert (validate_egress(plan) == []) == plan.egress.compliant


class TestInvariants:
    def test_generated_plans_validate(self):
        rng = random.Random(7)
        strategies = list(Strategy)
        for _ in range(12):
            footprint = BuildingFootprint(width=rng.uniform(40.0, 150.0), depth=rng.uniform(17.0, 24.0))
            strategy = rng.choice(strategies)
            plan = generate(footprint, strategy=strategy, alignment_tolerance=rng.choice([0.0, 0.5, 1.0]))

            assert _errors(validate_no_shrink(plan, DEFAULT_UNIT_CONFIG)) == [], footprint
            assert _errors(validate_no_overlap(plan)) == [], footprint
            assert _errors(validate_coverage(plan)) == [], footprint
            assert _errors(validate_floorplan(plan, DEFAULT_UNIT_CONFIG)) == [], footprint

    def test_centered_coordinates(self):
        plan = generate(FOOTPRINT)
        half_l, half_d = 30.0 + 1e-6, 10.0 + 1e-6
        rects = [r for u in plan.units for r in u.rects()]
        rects += [c.rect for c in plan.cores] + [f.rect for f in plan.fillers] + [plan.corridor.rect]
        for r in rects:
            assert -half_l <= r.x and r.right <= half_l
            assert -half_d <= r.y and r.top <= half_d

    def test_unit_area_matches_parts(self):
        plan = generate(FOOTPRINT)
        for unit in plan.units:
            assert unit.area == pytest.approx(sum(r.area for r in unit.rects()))
            if unit.is_l_shaped:
                assert unit.polygon is not None
                assert len(unit.parts) >= 2
            else:
                assert unit.polygon is None

    def test_stats_consistent(self):
        plan = generate(FOOTPRINT)
        assert plan.stats.gsf == pytest.approx(60.0 * 20.0)
        assert plan.stats.nrsf == pytest.approx(sum(u.area for u in plan.units))
        assert sum(plan.stats.unit_counts.values()) == len(plan.units)

    def test_unit_ids_ordered_by_x(self):
        plan = generate(FOOTPRINT)
        for side in Side:
            units = plan.units_on(side)
            assert [u.id for u in units] == [f"unit-{side.value.lower()}-{k}" for k in range(len(units))]

    def test_deterministic(self):
        a = generate(FOOTPRINT, strategy=Strategy.MIX_OPTIMIZED)
        b = generate(FOOTPRINT, strategy=Strategy.MIX_OPTIMIZED)
        assert a.model_dump_json() == b.model_dump_json()

    def test_egress_revalidation_agrees(self):
        plan = generate(FOOTPRINT)
        assert validate_egress(plan) == []
        assert validate_egress(plan, EGRESS_SPRINKLERED) == []


class TestAlignment:
    def test_disabled(self):
        plan = generate(FOOTPRINT, alignment_tolerance=0.0)
        assert plan.aligned_walls == 0

    def test_strict_puts_every_clear_wall_on_core_side_edge(self):
        for length in (60.0, 120.0):
            plan = generate(BuildingFootprint(width=length, depth=20.0), alignment_tolerance=1.0)
            walls = _walls(plan, Side.SOUTH)
            assert walls
            assert _on_edges(plan, walls, Side.NORTH) == len(walls)
            assert plan.aligned_walls == len(walls)

    def test_strict_changes_clear_side(self):
        loose = generate(FOOTPRINT, alignment_tolerance=0.0)
        strict = generate(FOOTPRINT, alignment_tolerance=1.0)
        assert [u.x for u in loose.units_on(Side.SOUTH)] != [u.x for u in strict.units_on(Side.SOUTH)]
        # core side is laid out the same way in both
        assert [(u.x, u.width) for u in loose.units_on(Side.NORTH)] == [
            (u.x, u.width) for u in strict.units_on(Side.NORTH)
        ]

    def test_reported_count_matches_layout(self):
        for tolerance in (0.2, 0.5):
            plan = generate(FOOTPRINT, alignment_tolerance=tolerance)
            walls = _walls(plan, Side.SOUTH)
            assert plan.aligned_walls == _on_edges(plan, walls, Side.NORTH)

    def test_strict_plans_validate(self):
        for strategy in Strategy:
            plan = generate(FOOTPRINT, strategy=strategy, alignment_tolerance=1.0)
            assert _errors(validate_no_shrink(plan, DEFAULT_UNIT_CONFIG)) == []
            assert _errors(validate_no_overlap(plan)) == []
            assert _errors(validate_coverage(plan)) == []


class TestTargetCounts:
    def test_sides_add_up_to_building_counts(self):
        behaviors = derive_behaviors(DEFAULT_UNIT_CONFIG, (20.0 - DEFAULT_CORRIDOR_WIDTH) / 2)
        for strategy in Strategy:
            plan = generate(FOOTPRINT, strategy=strategy)
            n = len(plan.cores)
            expected = calculate_global_counts(
                60.0 - n * DEFAULT_CORE_WIDTH + 60.0, behaviors, strategy,
                min_units=n + 1 + CLEAR_SIDE_SEGMENTS,
            )
            north, south = plan.target_counts[Side.NORTH], plan.target_counts[Side.SOUTH]
            assert {tid: north.get(tid, 0) + south.get(tid, 0) for tid in expected} == expected
            assert set(north) | set(south) <= set(expected)


class TestEgressMonotonicity:
    def test_extra_core_never_worsens_egress(self):
        for length in (50.0, 55.0, 80.0, 120.0, 170.0, 230.0):
            for strategy in Strategy:
                for tolerance in (0.5, 1.0):
                    attempts = layout_attempts(
                        BuildingFootprint(width=length, depth=20.0),
                        strategy=strategy,
                        alignment_tolerance=tolerance,
                        stop_when_compliant=False,
                    )
                    for a, b in zip(attempts, attempts[1:]):
                        label = (length, strategy, tolerance, a.num_cores)
                        assert b.num_cores == a.num_cores + 1, label
                        assert b.egress.max_dead_end <= a.egress.max_dead_end + 1e-9, label
                        assert b.egress.max_travel_distance <= a.egress.max_travel_distance + 1e-9, label

    def test_retries_keep_end_cores(self):
        attempts = layout_attempts(BuildingFootprint(width=120.0, depth=20.0), stop_when_compliant=False)
        assert len(attempts) >= 2
        for a, b in zip(attempts, attempts[1:]):
            assert b.cores[0].x == pytest.approx(a.cores[0].x)
            assert b.cores[-1].x == pytest.approx(a.cores[-1].x)
            assert b.core_corners == a.core_corners
            assert b.clear_corners == a.clear_corners


class TestColors:
    def test_configured_colors(self):
        plan = generate(FOOTPRINT, unit_config=DEFAULT_UNIT_TYPES)
        colors = {t.id: t.color for t in DEFAULT_UNIT_TYPES.types}
        assert all(u.color == colors[u.type_id] for u in plan.units)

    def test_override(self):
        plan = generate(FOOTPRINT, color_overrides={"studio": "#000000"})
        studios = [u for u in plan.units if u.type_id == "studio"]
        assert studios
        assert all(u.color == "#000000" for u in studios)

    def test_palette_fallback(self):
        mix = UnitMix(types=[
            UnitTypeSpec(id="a", percentage=50, area=55.0),
            UnitTypeSpec(id="b", percentage=50, area=100.0),
        ])
        plan = generate(FOOTPRINT, unit_config=mix)
        assert all(u.color.startswith("#") and len(u.color) == 7 for u in plan.units)


class TestInputErrors:
    def test_corridor_wider_than_building(self):
        with pytest.raises(LayoutInputError):
            generate(BuildingFootprint(width=60.0, depth=1.5))

    def test_short_building_degrades(self):
        plan = generate(BuildingFootprint(width=10.0, depth=20.0))
        assert plan.units == []
        assert plan.cores == []
        assert {f.side for f in plan.fillers} == {Side.NORTH, Side.SOUTH}
        assert plan.corridor.width == pytest.approx(10.0)
        assert plan.stats.total_units == 0
        assert not plan.egress.compliant
        assert plan.egress.num_cores == 0
        assert validate_coverage(plan) == []
        assert validate_egress(plan) != []

    def test_alignment_out_of_range(self):
        with pytest.raises(LayoutInputError):
            generate(FOOTPRINT, alignment_tolerance=1.5)

    def test_unknown_color_override(self):
        with pytest.raises(LayoutInputError):
            generate(FOOTPRINT, color_overrides={"penthouse": "#ffffff"})

    def test_bad_color_override(self):
        with pytest.raises(LayoutInputError):
            generate(FOOTPRINT, color_overrides={"studio": "blue"})

    def test_non_positive_core(self):
        with pytest.raises(LayoutInputError):
            generate(FOOTPRINT, core_width=0.0)

    def test_invalid_models(self):
        with pytest.raises(ModelValidationError):
            BuildingFootprint(width=0.0, depth=20.0)
        with pytest.raises(ModelValidationError):
            UnitMix(types=[])
        with pytest.raises(ModelValidationError):
            UnitMix(types=[UnitTypeSpec(id="studio", percentage=0, area=50.0)])
        with pytest.raises(ModelValidationError):
            UnitMix(types=[
                UnitTypeSpec(id="studio", percentage=50, area=50.0),
                UnitTypeSpec(id="studio", percentage=50, area=60.0),
            ])

    def test_deep_core_is_clamped(self):
        plan = generate(FOOTPRINT, core_depth=15.0)
        rentable_depth = (20.0 - plan.corridor.depth) / 2
        assert all(c.depth == pytest.approx(rentable_depth) for c in plan.cores)
        assert not any(f.id.startswith("filler-core") for f in plan.fillers)


class TestVariants:
    def test_three_labelled_options(self):
        options = generate_variants(FOOTPRINT)
        assert [o.id for o in options] == ["option-1", "option-2", "option-3"]
        assert [o.strategy for o in options] == [
            Strategy.BALANCED, Strategy.MIX_OPTIMIZED, Strategy.EFFICIENCY_OPTIMIZED,
        ]
        assert [o.label for o in options] == ["Balanced", "Mix Optimized", "Efficiency"]
        assert all(o.floorplan.strategy is o.strategy for o in options)

    def test_from_request(self):
        request = LayoutRequest(
            footprint=FOOTPRINT,
            settings=LayoutSettings(alignment_tolerance=0.0, core_side=Side.SOUTH),
        )
        plan = generate_from_request(request, Strategy.EFFICIENCY_OPTIMIZED)
        assert plan.strategy is Strategy.EFFICIENCY_OPTIMIZED
        assert plan.aligned_walls == 0
        assert all(c.side is Side.SOUTH for c in plan.cores)

        options = variants_from_request(request)
        assert len(options) == 3

    def test_saved_layout_roundtrip(self, tmp_path):
        request = LayoutRequest(footprint=FOOTPRINT)
        saved = SavedLayout(request=request, options=variants_from_request(request))
        path = tmp_path / "layout.json"
        saved.save(path)

        loaded = SavedLayout.load(path)
        assert loaded.option(2).id == "option-2"
        assert loaded.option(1).floorplan == saved.option(1).floorplan
        with pytest.raises(IndexError):
            loaded.option(4)
