"""L-shape wrapping: core gaps and corridor-end voids.

A core shallower than the rentable depth leaves a gap between it and the
facade. An adjacent L-eligible unit takes the gap over:

    facade ────────────────────────────
           │  unit   ┌────┐│            ◄ gap wrapped by the unit
           │         │core││
    ───────┴─────────┴────┴┴──── corridor

At the building ends the corridor can stop short of the facade; the two
end units split the void between them, each taking half the corridor width.
"""

from __future__ import annotations

import logging

from floorplate.generators.flexibility import UnitTypeBehavior
from floorplate.generators.units import PlacedUnit
from floorplate.models.config import FEET_TO_METERS, Side
from floorplate.models.floorplan import Core, Corridor, Filler
from floorplate.models.geometry import Rect

logger = logging.getLogger(__name__)

MIN_WRAP_GAP = 1.0
MIN_GAP = 0.01
END_OVERLAP = 6 * FEET_TO_METERS
TOUCH_EPSILON = 1e-6


def effective_core_depth(core_depth: float, rentable_depth: float) -> float:
    """Core depth clamped to the rentable depth."""
    if core_depth > rentable_depth:
        logger.warning(
            "Core depth %.2fm exceeds rentable depth %.2fm; clamping", core_depth, rentable_depth
        )
        return rentable_depth
    return core_depth


def core_gap_rect(core: Core, rentable_depth: float, corridor_width: float) -> Rect:
    """Strip between the facade and the back of a core."""
    height = max(0.0, rentable_depth - core.depth)
    if core.side is Side.NORTH:
        y = 0.0
    else:
        y = rentable_depth + corridor_width + core.depth
    return Rect(x=core.x, y=y, width=core.width, depth=height)


def _wrap_candidate(core: Core, rightmost: bool, units: list[PlacedUnit]) -> PlacedUnit | None:
    for unit in units:
        if rightmost and abs(unit.x - (core.x + core.width)) <= TOUCH_EPSILON:
            return unit
        if not rightmost and abs(unit.right - core.x) <= TOUCH_EPSILON:
            return unit
    return None


def wrap_cores(
    cores: list[Core],
    units: list[PlacedUnit],
    behaviors: dict[str, UnitTypeBehavior],
    rentable_depth: float,
    corridor_width: float,
) -> list[Filler]:
    """Give each core gap to its neighbouring unit, or turn it into a filler.

    The rightmost core wraps the unit to its right; every other core wraps
    the unit to its left. Wrapping happens only when the gap is deeper than
    1 m and the neighbour is L-shape eligible. Units are modified in place.

    Returns:
        Fillers for the core gaps that were not wrapped.
    """
    fillers: list[Filler] = []
    if not cores:
        return fillers
    side = cores[0].side
    side_units = [u for u in units if u.side is side]

    for index, core in enumerate(cores):
        gap = core_gap_rect(core, rentable_depth, corridor_width)
        if gap.depth <= MIN_GAP:
            continue

        unit = None
        if gap.depth > MIN_WRAP_GAP:
            unit = _wrap_candidate(core, index == len(cores) - 1, side_units)
            if unit is not None and not behaviors[unit.type_id].l_shape_eligible:
                logger.debug("%s: neighbour %s is not L-shape eligible", core.id, unit.type_id)
                unit = None

        if unit is not None:
            unit.extra_rects.append(gap)
            logger.debug("%s wrapped by %s unit at x=%.2f (+%.2fm²)", core.id, unit.type_id, unit.x, gap.area)
        else:
            fillers.append(
                Filler(
                    id=f"filler-core-{core.id}",
                    x=gap.x,
                    y=gap.y,
                    width=gap.width,
                    depth=gap.depth,
                    side=side,
                )
            )
    return fillers


def absorb_corridor_voids(
    units: list[PlacedUnit],
    behaviors: dict[str, UnitTypeBehavior],
    length: float,
    rentable_depth: float,
    corridor_width: float,
) -> tuple[Corridor, float, float]:
    """Let the end units take over the corridor ends.

    At each building end, both end units (one per side) must be corner and
    L-shape eligible. The void is the narrower end unit's width less 6 ft,
    so the corridor still reaches past both units' entries. Units are
    modified in place.

    Returns:
        (corridor, left_void, right_void).
    """
    half = corridor_width / 2

    def end_units(left: bool) -> list[PlacedUnit]:
        found = []
        for side in (Side.NORTH, Side.SOUTH):
            for unit in units:
                if unit.side is not side:
                    continue
                at_end = abs(unit.x) <= TOUCH_EPSILON if left else abs(unit.right - length) <= TOUCH_EPSILON
                if at_end:
                    found.append(unit)
                    break
        return found

    voids = []
    for left in (True, False):
        pair = end_units(left)
        void = 0.0
        if len(pair) == 2 and all(
            behaviors[u.type_id].corner_eligible and behaviors[u.type_id].l_shape_eligible for u in pair
        ):
            narrowest = min(u.width for u in pair)
            if narrowest > END_OVERLAP:
                void = narrowest - END_OVERLAP
        if void > 0:
            x = 0.0 if left else length - void
            for unit in pair:
                y = rentable_depth if unit.side is Side.NORTH else rentable_depth + half
                unit.extra_rects.append(Rect(x=x, y=y, width=void, depth=half))
            logger.debug("%s corridor void of %.2fm absorbed", "Left" if left else "Right", void)
        voids.append(void)

    left_void, right_void = voids
    corridor = Corridor(
        x=left_void,
        y=rentable_depth,
        width=max(0.0, length - left_void - right_void),
        depth=corridor_width,
    )
    return corridor, left_void, right_void
