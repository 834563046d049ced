"""Wall alignment across the corridor.

Partition walls on the two sides rarely line up after independent layout.
The core side keeps its partitions; clear-side walls are brought onto the
core-side unit edges, which shifts the shared edge of the two units on
each side of the wall:

    Core   ┌──────┬────────┐         ┌──────┬────────┐
           │  A   │   B    │   ──►   │  A   │   B    │
           ├──────┴────────┤         ├──────┴────────┤
           │   corridor    │         │   corridor    │
           ├────────┬──────┤         ├──────┬────────┤
    Clear  │   C    │  D   │         │  C   │   D    │
           └────────┴──────┘         └──────┴────────┘

Up to STRICT_ALIGNMENT the walls snap: every edge of every core-side unit,
including those against a core, is a target, and the window is
`tolerance` × the average unit width. Above it the clear side is rebuilt
as a mirror of the core side, with each core's width given to the
clear-side unit beside it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from floorplate.generators.flexibility import UnitTypeBehavior, types_by_area_desc
from floorplate.generators.units import PlacedUnit
from floorplate.models.floorplan import Core

logger = logging.getLogger(__name__)

STRICT_ALIGNMENT = 0.6
TOUCH_EPSILON = 1e-6


@dataclass
class Wall:
    """Partition between two touching units on one side."""

    left: PlacedUnit
    right: PlacedUnit

    @property
    def position(self) -> float:
        return self.right.x

    def can_move_to(self, x: float, behaviors: dict[str, UnitTypeBehavior]) -> bool:
        """Both units stay within their width range; a unit already past its maximum may only shrink."""
        return _width_ok(self.left, x - self.left.x, behaviors) and _width_ok(
            self.right, self.right.right - x, behaviors
        )

    def move_to(self, x: float) -> None:
        right_edge = self.right.right
        self.left.width = x - self.left.x
        self.right.x = x
        self.right.width = right_edge - x


def _width_ok(unit: PlacedUnit, width: float, behaviors: dict[str, UnitTypeBehavior]) -> bool:
    behavior = behaviors[unit.type_id]
    return behavior.min_width - 1e-9 <= width <= max(behavior.max_width, unit.width) + 1e-9


def interior_walls(units: list[PlacedUnit]) -> list[Wall]:
    """Walls between consecutive touching units, ordered by x."""
    ordered = sorted(units, key=lambda u: u.x)
    return [
        Wall(left=a, right=b)
        for a, b in zip(ordered, ordered[1:])
        if abs(a.right - b.x) <= TOUCH_EPSILON
    ]


def unit_edges(units: list[PlacedUnit]) -> list[float]:
    """Left and right edges of `units`, sorted, near-duplicates dropped."""
    edges: list[float] = []
    for x in sorted(e for u in units for e in (u.x, u.right)):
        if not edges or x - edges[-1] > TOUCH_EPSILON:
            edges.append(x)
    return edges


def count_aligned(core_units: list[PlacedUnit], clear_units: list[PlacedUnit]) -> int:
    """Clear-side partitions that sit on a core-side unit edge."""
    edges = unit_edges(core_units)
    return sum(
        1
        for wall in interior_walls(clear_units)
        if any(abs(wall.position - e) <= TOUCH_EPSILON for e in edges)
    )


def align_walls(
    core_units: list[PlacedUnit],
    clear_units: list[PlacedUnit],
    behaviors: dict[str, UnitTypeBehavior],
    tolerance: float,
) -> int:
    """Snap clear-side partitions onto core-side unit edges. Modifies clear units in place.

    Candidate (wall, edge) pairs are taken closest first; each wall and each
    edge is used at most once. A move is skipped when it would take either
    unit outside its width range. The outermost clear unit at each end
    keeps its width, since it may carry the corridor-end void.

    Returns:
        Number of clear-side partitions on a core-side edge afterwards.
    """
    if tolerance <= 0 or not core_units or not clear_units:
        return 0

    all_units = core_units + clear_units
    window = tolerance * sum(u.width for u in all_units) / len(all_units)
    edges = unit_edges(core_units)

    ordered = sorted(clear_units, key=lambda u: u.x)
    first, last = ordered[0], ordered[-1]
    walls = [w for w in interior_walls(clear_units) if w.left is not first and w.right is not last]

    done: set[int] = set()
    taken: set[int] = set()
    candidates = []
    for i, wall in enumerate(walls):
        for j, edge in enumerate(edges):
            gap = abs(wall.position - edge)
            if gap <= TOUCH_EPSILON:
                done.add(i)
                taken.add(j)
            elif gap <= window:
                candidates.append((gap, i, j))

    for _, i, j in sorted(candidates):
        if i in done or j in taken:
            continue
        if walls[i].can_move_to(edges[j], behaviors):
            walls[i].move_to(edges[j])
            done.add(i)
            taken.add(j)

    aligned = count_aligned(core_units, clear_units)
    logger.debug(
        "Aligned %d clear-side walls (window %.2fm, %d movable walls, %d core-side edges)",
        aligned, window, len(walls), len(edges),
    )
    return aligned


def _retype(unit: PlacedUnit, behaviors: dict[str, UnitTypeBehavior]) -> None:
    """Largest active type whose target area the unit now holds."""
    area = unit.width * unit.depth
    current = behaviors[unit.type_id].area
    for tid in types_by_area_desc(behaviors):
        behavior = behaviors[tid]
        if behavior.active and current <= behavior.area <= area + 1e-9:
            if tid != unit.type_id:
                logger.debug("Mirrored %s at x=%.2f retyped to %s (%.1fm²)", unit.type_id, unit.x, tid, area)
                unit.type_id = tid
            return


def mirror_core_side(
    core_units: list[PlacedUnit],
    cores: list[Core],
    behaviors: dict[str, UnitTypeBehavior],
    y: float,
) -> list[PlacedUnit]:
    """Clear-side units copied from the core-side partitions.

    Each core's width is added to a neighbouring mirrored unit: the one
    after the rightmost core, the one before every other core, as in core
    wrapping. Without that neighbour the unit on the other side of the
    core takes it. The widened unit becomes the largest type its area now
    holds, never a smaller one. A core with no unit on either side leaves
    its strip to the fillers.

    Returns:
        New clear-side units, ordered by x.
    """
    if not core_units or not cores:
        return []
    side = cores[0].side.opposite
    mirrored = [
        PlacedUnit(type_id=u.type_id, x=u.x, y=y, width=u.width, depth=u.depth, side=side)
        for u in sorted(core_units, key=lambda u: u.x)
    ]

    ordered = sorted(cores, key=lambda c: c.x)
    for index, core in enumerate(ordered):
        core_right = core.x + core.width
        before = next((u for u in mirrored if abs(u.right - core.x) <= TOUCH_EPSILON), None)
        after = next((u for u in mirrored if abs(u.x - core_right) <= TOUCH_EPSILON), None)
        if index == len(ordered) - 1 and after is not None:
            before = None
        if before is not None:
            before.width += core.width
            widened = before
        elif after is not None:
            after.x = core.x
            after.width += core.width
            widened = after
        else:
            logger.warning("Mirror: no clear-side unit next to %s at x=%.2f", core.id, core.x)
            continue
        _retype(widened, behaviors)

    logger.debug("Mirrored %d core-side units across %d cores", len(mirrored), len(cores))
    return mirrored
