"""Unit generation within a segment.

Turns a segment's per-type counts into concrete rectangles laid out along
the segment: order by pattern, move premium units to the facade, drop
units that cannot fit at minimum width, split when the leftover would make
a unit too wide, then hand out the remaining width by expansion weight.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from floorplate.generators.flexibility import (
    UnitTypeBehavior,
    distribute_expansion,
    types_by_area_desc,
)
from floorplate.generators.segments import FIT_EPSILON, WRAP_START, Segment
from floorplate.models.config import Pattern, Side
from floorplate.models.geometry import Rect

logger = logging.getLogger(__name__)

MAX_SPLITS = 50


@dataclass
class PlacedUnit:
    """Working record of a unit while the pipeline adjusts geometry."""

    type_id: str
    x: float
    y: float
    width: float
    depth: float
    side: Side
    extra_rects: list[Rect] = field(default_factory=list)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def main_rect(self) -> Rect:
        return Rect(x=self.x, y=self.y, width=self.width, depth=self.depth)

    @property
    def rects(self) -> list[Rect]:
        return [self.main_rect, *self.extra_rects]

    @property
    def area(self) -> float:
        return sum(r.area for r in self.rects)

    @property
    def is_l_shaped(self) -> bool:
        return bool(self.extra_rects)


def order_units(type_ids: list[str], pattern: Pattern) -> list[str]:
    """Arrange a largest-first unit list by pattern.

    desc:             3 3 2 1 0
    asc:              0 1 2 3 3
    valley:           3 2 0 1 3   (large at both ends)
    valley-inverted:  3 1 0 2 3   (odd positions lead)
    """
    if pattern is Pattern.DESC:
        return list(type_ids)
    if pattern is Pattern.ASC:
        return list(reversed(type_ids))
    evens = type_ids[0::2]
    odds = type_ids[1::2]
    if pattern is Pattern.VALLEY:
        return evens + list(reversed(odds))
    return odds + list(reversed(evens))


def _swap_to(
    sequence: list[str],
    target: int,
    candidates: Iterable[int],
    wanted: Callable[[str], bool],
) -> bool:
    for i in candidates:
        if wanted(sequence[i]):
            sequence[target], sequence[i] = sequence[i], sequence[target]
            return True
    return False


def layout_segment(
    segment: Segment,
    counts: dict[str, int],
    behaviors: dict[str, UnitTypeBehavior],
    y: float,
    depth: float,
    wrap_expected: bool = False,
) -> list[PlacedUnit]:
    """Place a segment's units left to right.

    Args:
        segment: Segment to fill.
        counts: Units of each type assigned to this segment.
        behaviors: Sizing rules per type.
        y: Lower edge of the unit band.
        depth: Unit depth (the rentable depth).
        wrap_expected: The adjacent core will be wrapped, so an L-shape
            eligible unit is preferred at the core end.

    Returns:
        Units ordered by x. Right building-end segments are flush with the
        building end; all other segments start at the segment start. Any
        width no unit could absorb is left as a gap for filler detection.
    """
    if segment.length <= FIT_EPSILON:
        return []

    inventory = [tid for tid in types_by_area_desc(behaviors) for _ in range(counts.get(tid, 0))]
    if not inventory:
        if segment.length > 0.01:
            logger.warning("Segment at x=%.2f has no units; gap left for fillers", segment.start)
        return []

    sequence = order_units(inventory, segment.pattern)
    n = len(sequence)

    if wrap_expected and segment.wrap_end and n > 1:
        wrap_idx = 0 if segment.wrap_end == WRAP_START else n - 1
        if not behaviors[sequence[wrap_idx]].l_shape_eligible:
            # Never disturb the facade unit of an end segment
            lo = 1 if segment.is_left_end else 0
            hi = n - 1 if segment.is_right_end else n
            pool = [i for i in range(lo, hi) if i != wrap_idx]
            pool.sort(key=lambda i: abs(i - wrap_idx))
            _swap_to(sequence, wrap_idx, pool, lambda t: behaviors[t].l_shape_eligible)

    if segment.is_left_end and not behaviors[sequence[0]].corner_eligible:
        _swap_to(sequence, 0, range(1, n), lambda t: behaviors[t].corner_eligible)
    if segment.is_right_end and not behaviors[sequence[-1]].corner_eligible:
        stop = 0 if segment.is_left_end else -1
        _swap_to(sequence, n - 1, range(n - 2, stop, -1), lambda t: behaviors[t].corner_eligible)

    sequence = _remove_overflow(sequence, segment, behaviors)
    if not sequence:
        return []

    sequence = _split_wide_units(sequence, segment, behaviors)

    mins = [behaviors[t].min_width for t in sequence]
    maxes = [behaviors[t].max_width for t in sequence]
    weights = [behaviors[t].expansion_weight for t in sequence]
    widths, leftover = distribute_expansion(mins, maxes, weights, segment.length - sum(mins))

    x = segment.start + leftover if segment.is_right_end and not segment.is_left_end else segment.start
    units: list[PlacedUnit] = []
    for tid, w in zip(sequence, widths):
        units.append(PlacedUnit(type_id=tid, x=x, y=y, width=w, depth=depth, side=segment.side))
        x += w
    if leftover > 0.01:
        logger.debug("Segment at x=%.2f leaves %.2fm unabsorbed", segment.start, leftover)
    return units


def _remove_overflow(
    sequence: list[str],
    segment: Segment,
    behaviors: dict[str, UnitTypeBehavior],
) -> list[str]:
    """Drop units until the minimum widths fit; the facade unit goes last."""
    sequence = list(sequence)

    def protected() -> int | None:
        if segment.is_left_end and not segment.is_right_end:
            return 0
        if segment.is_right_end and not segment.is_left_end:
            return len(sequence) - 1
        return None

    while sequence and sum(behaviors[t].min_width for t in sequence) > segment.length + FIT_EPSILON:
        keep = protected() if len(sequence) > 1 else None
        candidates = [i for i in reversed(range(len(sequence))) if i != keep]
        remove = next((i for i in candidates if not behaviors[sequence[i]].corner_eligible), candidates[0])
        logger.warning(
            "Segment at x=%.2f overflows: dropping %s", segment.start, sequence[remove]
        )
        del sequence[remove]
    return sequence


def _split_wide_units(
    sequence: list[str],
    segment: Segment,
    behaviors: dict[str, UnitTypeBehavior],
) -> list[str]:
    """Duplicate a unit when the width left after capped expansion could hold another.

    A unit that would have to span more than its maximum width becomes two
    adjacent units of the same type. The smallest type that fits in the
    unabsorbed width is split first.
    """
    sequence = list(sequence)
    for _ in range(MAX_SPLITS):
        mins = [behaviors[t].min_width for t in sequence]
        maxes = [behaviors[t].max_width for t in sequence]
        weights = [behaviors[t].expansion_weight for t in sequence]
        _, leftover = distribute_expansion(mins, maxes, weights, segment.length - sum(mins))
        candidates = sorted(
            {t for t in sequence if behaviors[t].min_width <= leftover + FIT_EPSILON},
            key=lambda t: (behaviors[t].min_width, t),
        )
        if not candidates:
            break
        tid = candidates[0]
        positions = [i for i, t in enumerate(sequence) if t == tid]
        # Insert next to a non-facade copy so facade units stay at the ends
        at = positions[-1] + 1
        if segment.is_right_end and at == len(sequence):
            at = positions[-1]
        sequence.insert(at, tid)
        logger.debug("Split %s in segment at x=%.2f (%.2fm unabsorbed)", tid, segment.start, leftover)
    return sequence

