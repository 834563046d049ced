"""Floorplate layout pipeline.

Generates a double-loaded corridor floor for a rectangular footprint:

1.  Core count from the travel-distance limit
2.  Building-wide unit counts, split between the two sides
3.  Corner-length search for the core side and the clear side
4.  Core placement
5.  Segments on both sides, units dealt out to them
6.  Unit geometry per segment
7.  Wall alignment across the corridor (snapped, or mirrored when strict)
8.  Core wrapping and corridor-void absorption (L-shapes)
9.  Fillers for whatever is left
10. Statistics and egress; retry with one more core while egress fails
11. Shift to building-centered coordinates

A retry keeps the end cores and both sides' corner units of the previous
attempt and only inserts middle cores, so an extra core never lengthens
a dead end or a travel distance. A building too short for two cores and
a unit gets no cores and no units: it is all fillers and fails egress.

Layouts are built in a local frame with the origin at the lower-left
building corner and x along the corridor. The output is centered on the
building; the world placement is carried separately in `Transform`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from floorplate.generators.alignment import STRICT_ALIGNMENT, align_walls, count_aligned, mirror_core_side
from floorplate.generators.cores import determine_core_count, place_cores, search_corner_length
from floorplate.generators.fillers import band_y, detect_fillers
from floorplate.generators.flexibility import UnitTypeBehavior, derive_behaviors
from floorplate.generators.segments import (
    Segment,
    define_segments,
    distribute_units,
    mirror_premium_corners,
)
from floorplate.generators.unit_counts import (
    SideCounts,
    apply_core_side_bias,
    calculate_global_counts,
    split_side_counts,
)
from floorplate.generators.units import PlacedUnit, layout_segment
from floorplate.generators.wrapping import (
    MIN_WRAP_GAP,
    absorb_corridor_voids,
    effective_core_depth,
    wrap_cores,
)
from floorplate.models.config import (
    DEFAULT_CORE_DEPTH,
    DEFAULT_CORE_WIDTH,
    DEFAULT_CORRIDOR_WIDTH,
    DEFAULT_FLOOR_HEIGHT,
    DEFAULT_UNIT_CONFIG,
    EGRESS_SPRINKLERED,
    HEX_COLOR,
    MAX_CORES,
    MIN_UNIT_WIDTH,
    STRATEGY_ORDER,
    STRATEGY_PROFILES,
    BuildingFootprint,
    EgressConfig,
    LayoutRequest,
    LayoutSettings,
    Side,
    Strategy,
    UnitMix,
)
from floorplate.models.floorplan import (
    Core,
    Corridor,
    EgressResult,
    Filler,
    FloorPlan,
    FloorStats,
    LayoutOption,
    Transform,
    Unit,
)
from floorplate.models.geometry import rect_union_outline
from floorplate.validators.egress import evaluate_egress

logger = logging.getLogger(__name__)

# Cycled by type position when a type has no color of its own
DEFAULT_PALETTE = ["#3b82f6", "#22c55e", "#f97316", "#a855f7", "#ef4444", "#14b8a6", "#eab308", "#ec4899"]

CLEAR_SIDE_SEGMENTS = 3


class LayoutInputError(ValueError):
    """Raised when generation parameters describe no buildable floor."""


@dataclass
class LayoutAttempt:
    """One pass through the pipeline with a fixed core count."""

    num_cores: int
    cores: list[Core]
    units: list[PlacedUnit]
    fillers: list[Filler]
    corridor: Corridor
    egress: EgressResult
    split: SideCounts
    aligned_walls: int = 0
    core_corner: float = 0.0
    clear_corner: float = 0.0
    # Per-type counts of the (left, right) corner segments on each side
    core_corners: tuple[dict[str, int], dict[str, int]] = field(default_factory=lambda: ({}, {}))
    clear_corners: tuple[dict[str, int], dict[str, int]] = field(default_factory=lambda: ({}, {}))


def _check_inputs(
    footprint: BuildingFootprint,
    unit_config: UnitMix,
    corridor_width: float,
    core_width: float,
    core_depth: float,
    alignment_tolerance: float,
    color_overrides: dict[str, str],
) -> None:
    for name, value in (
        ("corridor_width", corridor_width),
        ("core_width", core_width),
        ("core_depth", core_depth),
    ):
        if value <= 0:
            raise LayoutInputError(f"{name} must be positive, got {value}")
    if corridor_width >= footprint.depth:
        raise LayoutInputError(
            f"Corridor width {corridor_width:.2f}m leaves no rentable depth "
            f"in a {footprint.depth:.2f}m deep building"
        )
    if not 0 <= alignment_tolerance <= 1:
        raise LayoutInputError(f"alignment_tolerance must be within [0, 1], got {alignment_tolerance}")
    known = set(unit_config.ids())
    for type_id, color in color_overrides.items():
        if type_id not in known:
            raise LayoutInputError(f"Color override for unknown unit type '{type_id}'")
        if not HEX_COLOR.match(color):
            raise LayoutInputError(f"Color override for '{type_id}' must be #rrggbb, got {color!r}")


def generate(
    footprint: BuildingFootprint,
    unit_config: UnitMix = DEFAULT_UNIT_CONFIG,
    egress_config: EgressConfig = EGRESS_SPRINKLERED,
    corridor_width: float = DEFAULT_CORRIDOR_WIDTH,
    core_width: float = DEFAULT_CORE_WIDTH,
    core_depth: float = DEFAULT_CORE_DEPTH,
    core_side: Side = Side.NORTH,
    strategy: Strategy = Strategy.BALANCED,
    alignment_tolerance: float = 0.5,
    color_overrides: dict[str, str] | None = None,
) -> FloorPlan:
    """Generate one floor layout.

    Args:
        footprint: Building footprint; `width` runs along the corridor.
        unit_config: Unit types and their target shares.
        egress_config: Egress distance limits.
        corridor_width: Corridor width (m).
        core_width: Core extent along the corridor (m).
        core_depth: Core extent across the corridor (m); clamped to the
            rentable depth.
        core_side: Corridor side the cores sit on.
        strategy: Optimization strategy.
        alignment_tolerance: Wall snap window as a fraction of the average
            unit width, 0 to disable. Above 0.6 the clear side mirrors the
            core side.
        color_overrides: Display color per unit type id.

    Returns:
        The floor plan. An infeasible egress configuration, or a building
        too short to hold any unit, is reported in `plan.egress`, never
        raised.

    Raises:
        LayoutInputError: If the parameters describe no buildable floor.
    """
    color_overrides = dict(color_overrides or {})
    _check_inputs(
        footprint, unit_config, corridor_width, core_width, core_depth,
        alignment_tolerance, color_overrides,
    )

    attempts = layout_attempts(
        footprint, unit_config, egress_config, corridor_width, core_width, core_depth,
        core_side, strategy, alignment_tolerance,
    )
    compliant = [a for a in attempts if a.egress.compliant]
    if compliant:
        best = compliant[0]
    else:
        best = min(attempts, key=lambda a: (a.egress.failures, a.num_cores))
        logger.warning(
            "No egress-compliant layout up to %d cores; keeping %d cores with %d failed checks",
            MAX_CORES, best.num_cores, best.egress.failures,
        )

    behaviors = derive_behaviors(unit_config, (footprint.depth - corridor_width) / 2)
    plan = _to_floorplan(
        best, footprint, behaviors, strategy, color_overrides, core_side,
    )
    logger.info(
        "%s: %d units, %d cores, %d fillers, efficiency %.1f%%",
        strategy.value, plan.stats.total_units, len(plan.cores), len(plan.fillers),
        plan.stats.efficiency * 100,
    )
    return plan


def layout_attempts(
    footprint: BuildingFootprint,
    unit_config: UnitMix = DEFAULT_UNIT_CONFIG,
    egress_config: EgressConfig = EGRESS_SPRINKLERED,
    corridor_width: float = DEFAULT_CORRIDOR_WIDTH,
    core_width: float = DEFAULT_CORE_WIDTH,
    core_depth: float = DEFAULT_CORE_DEPTH,
    core_side: Side = Side.NORTH,
    strategy: Strategy = Strategy.BALANCED,
    alignment_tolerance: float = 0.5,
    stop_when_compliant: bool = True,
) -> list[LayoutAttempt]:
    """Lay the floor out with the initial core count, then one more core at a time.

    Each retry builds on the attempt before it. Retries stop at MAX_CORES,
    when no further core fits between the end cores, or, with
    `stop_when_compliant`, at the first attempt that passes egress.
    Parameters are as for `generate`, which validates them.
    """
    length = footprint.width
    rentable_depth = (footprint.depth - corridor_width) / 2
    depth = effective_core_depth(core_depth, rentable_depth)
    behaviors = derive_behaviors(unit_config, rentable_depth)

    if length < 2 * core_width + MIN_UNIT_WIDTH:
        logger.warning(
            "Building length %.2fm is shorter than two cores plus one unit (%.2fm); no cores or units placed",
            length, 2 * core_width + MIN_UNIT_WIDTH,
        )
        return [_bare_attempt(length, rentable_depth, corridor_width, behaviors, egress_config)]

    num_cores = determine_core_count(length, core_width, egress_config.travel_distance_limit)
    attempts: list[LayoutAttempt] = []
    previous: LayoutAttempt | None = None
    for n in range(num_cores, MAX_CORES + 1):
        if previous is not None:
            middle = length - 2 * previous.core_corner - 2 * core_width
            if middle < (n - 2) * core_width + (n - 1) * MIN_UNIT_WIDTH:
                logger.info("No room for %d cores between the end cores", n)
                break
        attempt = _layout_attempt(
            n, length, rentable_depth, corridor_width, core_width, depth, core_side,
            strategy, alignment_tolerance, behaviors, egress_config, previous,
        )
        attempts.append(attempt)
        if stop_when_compliant and attempt.egress.compliant:
            break
        if not attempt.egress.compliant:
            logger.info(
                "Egress fails with %d cores (%d checks); %s",
                n, attempt.egress.failures, "retrying" if n < MAX_CORES else "giving up",
            )
        previous = attempt
    return attempts


def _bare_attempt(
    length: float,
    rentable_depth: float,
    corridor_width: float,
    behaviors: dict[str, UnitTypeBehavior],
    egress_config: EgressConfig,
) -> LayoutAttempt:
    """Corridor and fillers only, for a building that holds no unit."""
    return LayoutAttempt(
        num_cores=0,
        cores=[],
        units=[],
        fillers=detect_fillers([], [], length, rentable_depth, corridor_width),
        corridor=Corridor(x=0.0, y=rentable_depth, width=length, depth=corridor_width),
        egress=evaluate_egress([], length, rentable_depth, corridor_width, egress_config),
        split=SideCounts(core={tid: 0 for tid in behaviors}, clear={tid: 0 for tid in behaviors}),
    )


def _keep_corners(
    counts: dict[str, int],
    corners: tuple[dict[str, int], dict[str, int]],
    segments: list[Segment],
    behaviors: dict[str, UnitTypeBehavior],
) -> list[dict[str, int]]:
    """Reuse corner counts and deal what is left of `counts` to the middle segments."""
    left, right = corners
    rest = {tid: max(0, counts.get(tid, 0) - left.get(tid, 0) - right.get(tid, 0)) for tid in behaviors}
    middle = distribute_units(rest, segments[1:-1], behaviors)
    return [dict(left), *middle, dict(right)]


def _layout_attempt(
    num_cores: int,
    length: float,
    rentable_depth: float,
    corridor_width: float,
    core_width: float,
    core_depth: float,
    core_side: Side,
    strategy: Strategy,
    alignment_tolerance: float,
    behaviors: dict[str, UnitTypeBehavior],
    egress_config: EgressConfig,
    previous: LayoutAttempt | None = None,
) -> LayoutAttempt:
    profile = STRATEGY_PROFILES[strategy]

    # ── Counts ────────────────────────────────────────────────────
    core_length = length - num_cores * core_width
    min_units = (num_cores + 1) + CLEAR_SIDE_SEGMENTS
    counts = calculate_global_counts(core_length + length, behaviors, strategy, min_units=min_units)
    split = split_side_counts(counts, behaviors, core_length, length)
    split = apply_core_side_bias(split, behaviors, num_cores)
    logger.debug("%d cores: core side %s, clear side %s", num_cores, split.core, split.clear)

    # ── Cores ─────────────────────────────────────────────────────
    if previous is None:
        core_search = search_corner_length(
            core_length, num_cores - 1, split.core, behaviors, profile,
            dead_end_limit=egress_config.dead_end_limit,
        )
        clear_corner = search_corner_length(
            length, 0, split.clear, behaviors, profile, continuous=True,
        ).corner_length
    else:
        core_search = search_corner_length(
            core_length, num_cores - 1, split.core, behaviors, profile,
            fixed_corner=previous.core_corner,
        )
        clear_corner = previous.clear_corner
    cores = place_cores(
        length, num_cores, core_search.corner_length, core_search.mid_offset,
        core_width, core_depth, core_side, rentable_depth, corridor_width,
    )

    # ── Segments and units ────────────────────────────────────────
    core_segments, clear_segments = define_segments(
        length, [(c.x, c.width) for c in cores], clear_corner, core_side, profile,
    )
    if previous is None:
        core_dist = distribute_units(split.core, core_segments, behaviors)
        clear_dist = distribute_units(split.clear, clear_segments, behaviors)
        mirror_premium_corners(core_dist, clear_dist, core_segments, clear_segments, behaviors)
    else:
        core_dist = _keep_corners(split.core, previous.core_corners, core_segments, behaviors)
        clear_dist = _keep_corners(split.clear, previous.clear_corners, clear_segments, behaviors)

    wrap_expected = rentable_depth - core_depth > MIN_WRAP_GAP
    core_units: list[PlacedUnit] = []
    for segment, seg_counts in zip(core_segments, core_dist):
        core_units.extend(
            layout_segment(
                segment, seg_counts, behaviors,
                y=band_y(core_side, rentable_depth, corridor_width),
                depth=rentable_depth,
                wrap_expected=wrap_expected,
            )
        )

    # ── Alignment ─────────────────────────────────────────────────
    clear_y = band_y(core_side.opposite, rentable_depth, corridor_width)
    if alignment_tolerance > STRICT_ALIGNMENT:
        clear_units = mirror_core_side(core_units, cores, behaviors, clear_y)
        aligned = count_aligned(core_units, clear_units)
    else:
        clear_units = []
        for segment, seg_counts in zip(clear_segments, clear_dist):
            clear_units.extend(
                layout_segment(segment, seg_counts, behaviors, y=clear_y, depth=rentable_depth)
            )
        aligned = align_walls(core_units, clear_units, behaviors, alignment_tolerance)
    units = core_units + clear_units

    # ── Geometry adjustments ──────────────────────────────────────
    core_fillers = wrap_cores(cores, units, behaviors, rentable_depth, corridor_width)
    corridor, left_void, right_void = absorb_corridor_voids(
        units, behaviors, length, rentable_depth, corridor_width,
    )
    fillers = detect_fillers(units, cores, length, rentable_depth, corridor_width) + core_fillers

    egress = evaluate_egress(
        cores, length, rentable_depth, corridor_width, egress_config,
        left_void=left_void, right_void=right_void,
    )
    return LayoutAttempt(
        num_cores=num_cores,
        cores=cores,
        units=units,
        fillers=fillers,
        corridor=corridor,
        egress=egress,
        split=split,
        aligned_walls=aligned,
        core_corner=core_search.corner_length,
        clear_corner=clear_corner,
        core_corners=(core_dist[0], core_dist[-1]),
        clear_corners=(clear_dist[0], clear_dist[-1]),
    )


def _unit_color(
    type_id: str,
    behaviors: dict[str, UnitTypeBehavior],
    color_overrides: dict[str, str],
) -> str:
    if type_id in color_overrides:
        return color_overrides[type_id]
    if behaviors[type_id].color:
        return behaviors[type_id].color
    return DEFAULT_PALETTE[list(behaviors).index(type_id) % len(DEFAULT_PALETTE)]


def _to_floorplan(
    attempt: LayoutAttempt,
    footprint: BuildingFootprint,
    behaviors: dict[str, UnitTypeBehavior],
    strategy: Strategy,
    color_overrides: dict[str, str],
    core_side: Side,
) -> FloorPlan:
    """Shift an attempt to building-centered coordinates and compute stats."""
    length, depth = footprint.width, footprint.depth
    dx, dy = -length / 2, -depth / 2

    units: list[Unit] = []
    for side in (Side.NORTH, Side.SOUTH):
        placed = sorted((u for u in attempt.units if u.side is side), key=lambda u: u.x)
        for k, pu in enumerate(placed):
            parts = [r.translated(dx, dy) for r in pu.rects]
            behavior = behaviors[pu.type_id]
            units.append(
                Unit(
                    id=f"unit-{side.value.lower()}-{k}",
                    type_id=pu.type_id,
                    type_name=behavior.name,
                    x=pu.x + dx,
                    y=pu.y + dy,
                    width=pu.width,
                    depth=pu.depth,
                    area=sum(r.area for r in parts),
                    color=_unit_color(pu.type_id, behaviors, color_overrides),
                    side=side,
                    parts=parts,
                    polygon=rect_union_outline(parts) if pu.is_l_shaped else None,
                    is_l_shaped=pu.is_l_shaped,
                )
            )

    cores = [c.model_copy(update={"x": c.x + dx, "y": c.y + dy}) for c in attempt.cores]
    fillers = [f.model_copy(update={"x": f.x + dx, "y": f.y + dy}) for f in attempt.fillers]
    corridor = attempt.corridor.model_copy(update={"x": attempt.corridor.x + dx, "y": attempt.corridor.y + dy})

    gsf = length * depth
    nrsf = sum(u.area for u in units)
    unit_counts = {tid: 0 for tid in behaviors}
    for u in units:
        unit_counts[u.type_id] += 1

    return FloorPlan(
        units=units,
        cores=cores,
        fillers=fillers,
        corridor=corridor,
        building_length=length,
        building_depth=depth,
        floor_elevation=footprint.floor_z,
        floor_height=DEFAULT_FLOOR_HEIGHT,
        transform=Transform(
            center_x=footprint.center_x,
            center_y=footprint.center_y,
            rotation=footprint.rotation,
        ),
        stats=FloorStats(
            gsf=gsf,
            nrsf=nrsf,
            efficiency=nrsf / gsf,
            unit_counts=unit_counts,
            total_units=len(units),
        ),
        egress=attempt.egress,
        strategy=strategy,
        target_counts={
            core_side: dict(attempt.split.core),
            core_side.opposite: dict(attempt.split.clear),
        },
        aligned_walls=attempt.aligned_walls,
    )


def generate_variants(
    footprint: BuildingFootprint,
    unit_config: UnitMix = DEFAULT_UNIT_CONFIG,
    egress_config: EgressConfig = EGRESS_SPRINKLERED,
    settings: LayoutSettings | None = None,
) -> list[LayoutOption]:
    """Generate the three strategy options: balanced, mix, efficiency.

    Without `settings`, walls are aligned with the full snap window.
    """
    if settings is None:
        settings = LayoutSettings(alignment_tolerance=1.0)
    options = []
    for index, strategy in enumerate(STRATEGY_ORDER, start=1):
        profile = STRATEGY_PROFILES[strategy]
        plan = generate(
            footprint,
            unit_config,
            egress_config,
            corridor_width=settings.corridor_width,
            core_width=settings.core_width,
            core_depth=settings.core_depth,
            core_side=settings.core_side,
            strategy=strategy,
            alignment_tolerance=settings.alignment_tolerance,
            color_overrides=settings.color_overrides,
        )
        options.append(
            LayoutOption(
                id=f"option-{index}",
                strategy=strategy,
                label=profile.label,
                description=profile.description,
                floorplan=plan,
            )
        )
    return options


def generate_from_request(request: LayoutRequest, strategy: Strategy = Strategy.BALANCED) -> FloorPlan:
    settings = request.settings
    return generate(
        request.footprint,
        request.unit_mix,
        request.egress,
        corridor_width=settings.corridor_width,
        core_width=settings.core_width,
        core_depth=settings.core_depth,
        core_side=settings.core_side,
        strategy=strategy,
        alignment_tolerance=settings.alignment_tolerance,
        color_overrides=settings.color_overrides,
    )


def variants_from_request(request: LayoutRequest) -> list[LayoutOption]:
    return generate_variants(request.footprint, request.unit_mix, request.egress, request.settings)
