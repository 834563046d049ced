"""Segment definition and unit distribution.

A segment is a stretch of one corridor side between two cores, or between
a core and a building end. Each side is cut into segments; per-type unit
counts for the side are then dealt out to its segments.

Core side (cores at x1, x2):

    0        x1  x1+w        x2  x2+w         L
    ├─corner─┤core├────mid────┤core├──corner──┤

Clear side:

    0          c                   L-c         L
    ├──corner──┼────────mid────────┼──corner───┤
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from floorplate.generators.flexibility import UnitTypeBehavior, types_by_area_desc
from floorplate.models.config import CLEAR_SIDE_MID_PATTERN, Pattern, Side, StrategyProfile

logger = logging.getLogger(__name__)

FIT_EPSILON = 1e-6
MIN_REMAINING = 0.5

# Which end of a segment touches a core that wraps its neighbour
WRAP_START = "start"
WRAP_END = "end"


@dataclass
class Segment:
    """One stretch of frontage that receives a batch of units."""

    start: float
    length: float
    side: Side = Side.NORTH
    is_corner: bool = False
    is_left_end: bool = False
    is_right_end: bool = False
    pattern: Pattern = Pattern.DESC
    wrap_end: str | None = None

    @property
    def end(self) -> float:
        return self.start + self.length


def define_segments(
    length: float,
    core_spans: list[tuple[float, float]],
    clear_corner: float,
    core_side: Side,
    profile: StrategyProfile,
) -> tuple[list[Segment], list[Segment]]:
    """Cut both corridor sides into segments.

    Args:
        length: Building length along the corridor.
        core_spans: (x, width) of each core, sorted by x.
        clear_corner: Corner reservation length on the clear side.
        core_side: Side the cores sit on.
        profile: Strategy profile supplying unit ordering patterns.

    Returns:
        (core_side_segments, clear_side_segments), each ordered by x.
    """
    core_segments: list[Segment] = []
    edges = [0.0]
    for x, width in core_spans:
        edges.extend([x, x + width])
    edges.append(length)

    n = len(core_spans) + 1
    for k in range(n):
        start, end = edges[2 * k], edges[2 * k + 1]
        left_end = k == 0
        right_end = k == n - 1
        if left_end:
            pattern = profile.left_corner_pattern
        elif right_end:
            pattern = profile.right_corner_pattern
        else:
            pattern = profile.mid_pattern
        # The rightmost core wraps the unit to its right, all others the unit to their left.
        wrap = WRAP_START if right_end else WRAP_END
        core_segments.append(
            Segment(
                start=start,
                length=max(0.0, end - start),
                side=core_side,
                is_corner=left_end or right_end,
                is_left_end=left_end,
                is_right_end=right_end,
                pattern=pattern,
                wrap_end=wrap,
            )
        )

    clear_side = core_side.opposite
    corner = max(0.0, min(clear_corner, length / 2))
    clear_segments = [
        Segment(
            start=0.0, length=corner, side=clear_side, is_corner=True,
            is_left_end=True, pattern=profile.left_corner_pattern,
        ),
        Segment(
            start=corner, length=length - 2 * corner, side=clear_side,
            pattern=CLEAR_SIDE_MID_PATTERN,
        ),
        Segment(
            start=length - corner, length=corner, side=clear_side, is_corner=True,
            is_right_end=True, pattern=profile.right_corner_pattern,
        ),
    ]
    return core_segments, clear_segments


# ── Distribution ──────────────────────────────────────────────────────


def distribute_units(
    counts: dict[str, int],
    segments: list[Segment],
    behaviors: dict[str, UnitTypeBehavior],
) -> list[dict[str, int]]:
    """Deal a side's unit counts out to its segments.

    Pass 0 reserves one corner-eligible unit per corner segment, largest
    types first. Pass 1 fills segments round-robin (corners first, then by
    length) with the largest unit that still fits. Pass 2 places whatever
    is left in the least dense segment. Pass 3 moves a unit into any segment
    left empty, taken from the fullest segment, if one fits there.

    The total handed out always equals the total of `counts`.
    """
    result: list[dict[str, int]] = [{tid: 0 for tid in behaviors} for _ in segments]
    if not segments:
        return result

    inventory = {tid: counts.get(tid, 0) for tid in behaviors}
    fill = [0.0] * len(segments)
    by_size = types_by_area_desc(behaviors)

    def width(tid: str) -> float:
        return behaviors[tid].min_width

    def fits(idx: int, tid: str) -> bool:
        return segments[idx].length - fill[idx] >= width(tid) - FIT_EPSILON

    def place(idx: int, tid: str) -> None:
        result[idx][tid] += 1
        inventory[tid] -= 1
        fill[idx] += width(tid)

    order = sorted(
        range(len(segments)),
        key=lambda i: (not segments[i].is_corner, -segments[i].length, i),
    )
    corner_idx = [i for i in order if segments[i].is_corner]

    # Pass 0: premium types claim the corners
    for tid in by_size:
        if not behaviors[tid].corner_eligible:
            continue
        for idx in corner_idx:
            if sum(result[idx].values()) == 0 and inventory[tid] > 0 and fits(idx, tid):
                place(idx, tid)
    for idx in corner_idx:
        if sum(result[idx].values()) == 0:
            logger.debug("No corner-eligible unit fits corner segment at x=%.2f", segments[idx].start)

    # Pass 1: iterative fill
    progress = True
    while progress and any(v > 0 for v in inventory.values()):
        progress = False
        for idx in order:
            if segments[idx].length - fill[idx] <= MIN_REMAINING:
                continue
            tid = _pick_type(inventory, by_size, behaviors, segments[idx].is_corner, lambda t: fits(idx, t))
            if tid is not None:
                place(idx, tid)
                progress = True

    # Pass 2: overflow goes where it hurts least
    smallest = by_size[-1]

    def density(i: int) -> float:
        total = sum(result[i].values())
        rigid = result[i][smallest] / total if total else 0.0
        base = fill[i] / segments[i].length if segments[i].length > 0 else float("inf")
        return base + rigid * 0.5

    while any(v > 0 for v in inventory.values()):
        idx = min(range(len(segments)), key=lambda i: (density(i), i))
        tid = next(t for t in by_size if inventory[t] > 0)
        place(idx, tid)
        logger.debug("Overflow: %s placed in segment at x=%.2f", tid, segments[idx].start)

    # Pass 3: no empty segments if a donor can spare a unit that fits
    for idx, seg in enumerate(segments):
        if sum(result[idx].values()) > 0 or seg.length <= FIT_EPSILON:
            continue
        donors = [
            i for i in range(len(segments))
            if i != idx and sum(result[i].values()) > 1
        ]
        if not donors:
            logger.warning("Segment at x=%.2f left empty: no donor segment", seg.start)
            continue
        donor = max(donors, key=lambda i: (sum(result[i].values()), -i))
        if seg.is_corner:
            steal_order = [t for t in by_size if behaviors[t].corner_eligible]
            steal_order += [t for t in by_size if t not in steal_order]
        else:
            steal_order = list(reversed(by_size))
        for tid in steal_order:
            if result[donor][tid] > 0 and width(tid) <= seg.length + FIT_EPSILON:
                result[donor][tid] -= 1
                fill[donor] -= width(tid)
                result[idx][tid] += 1
                fill[idx] += width(tid)
                logger.debug("Moved one %s into empty segment at x=%.2f", tid, seg.start)
                break
        else:
            logger.warning("Segment at x=%.2f (%.2fm) left empty: no unit fits", seg.start, seg.length)

    return result


def _pick_type(
    inventory: dict[str, int],
    by_size: list[str],
    behaviors: dict[str, UnitTypeBehavior],
    is_corner: bool,
    fits: Callable[[str], bool],
) -> str | None:
    available = [t for t in by_size if inventory[t] > 0]
    if is_corner:
        for tid in available:
            if behaviors[tid].corner_eligible and fits(tid):
                return tid
    for tid in available:
        if fits(tid):
            return tid
    return None


def mirror_premium_corners(
    side_a: list[dict[str, int]],
    side_b: list[dict[str, int]],
    segments_a: list[Segment],
    segments_b: list[Segment],
    behaviors: dict[str, UnitTypeBehavior],
) -> None:
    """Stack the premium (largest) type on both sides of each building end.

    When a corner segment on one side holds the premium type and the
    matching corner on the other side doesn't, one premium unit is pulled
    from a middle segment of the other side and the corner gives back its
    next-largest unit. Counts per side are unchanged. Modifies in place.
    """
    active = [t for t in types_by_area_desc(behaviors) if behaviors[t].active]
    if not active:
        return
    premium = active[0]
    if not behaviors[premium].corner_eligible:
        return

    def stack(src: list[dict[str, int]], dst: list[dict[str, int]], dst_segments: list[Segment], end: int) -> None:
        corner = len(dst) - 1 if end < 0 else 0
        if src[end][premium] == 0 or dst[corner][premium] > 0:
            return
        middle = [i for i, s in enumerate(dst_segments) if not s.is_corner]
        donor = next((i for i in middle if dst[i][premium] > 0), None)
        if donor is None:
            return
        give_back = next((t for t in active[1:] if dst[corner][t] > 0), None)
        trial = dict(dst[corner])
        trial[premium] += 1
        if give_back is not None:
            trial[give_back] -= 1
        needed = sum(n * behaviors[t].min_width for t, n in trial.items())
        if needed > dst_segments[corner].length + FIT_EPSILON:
            return
        dst[donor][premium] -= 1
        dst[corner][premium] += 1
        if give_back is not None:
            dst[corner][give_back] -= 1
            dst[donor][give_back] += 1
        logger.debug("Stacked %s at %s corner", premium, "right" if end < 0 else "left")

    stack(side_a, side_b, segments_b, 0)
    stack(side_b, side_a, segments_a, 0)
    stack(side_a, side_b, segments_b, -1)
    stack(side_b, side_a, segments_a, -1)
