"""Filler detection.

After every geometric adjustment each side band is scanned along x; any
stretch not covered by a unit (or, on the core side, a core column) becomes
a full-depth service filler.
"""

from __future__ import annotations

import logging

from floorplate.generators.units import PlacedUnit
from floorplate.models.config import Side
from floorplate.models.floorplan import Core, Filler

logger = logging.getLogger(__name__)

MIN_FILLER_WIDTH = 0.01


def merge_intervals(intervals: list[tuple[float, float]], tolerance: float = MIN_FILLER_WIDTH) -> list[tuple[float, float]]:
    """Merge overlapping or nearly touching [start, end) intervals."""
    merged: list[tuple[float, float]] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1] + tolerance:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def band_y(side: Side, rentable_depth: float, corridor_width: float) -> float:
    return 0.0 if side is Side.NORTH else rentable_depth + corridor_width


def detect_fillers(
    units: list[PlacedUnit],
    cores: list[Core],
    length: float,
    rentable_depth: float,
    corridor_width: float,
) -> list[Filler]:
    """Fillers for every uncovered stretch wider than MIN_FILLER_WIDTH.

    Core gaps toward the facade are handled by core wrapping, so a core
    counts as covering its whole column here.
    """
    fillers: list[Filler] = []
    for side in (Side.NORTH, Side.SOUTH):
        occupied = [(u.x, u.right) for u in units if u.side is side]
        occupied += [(c.x, c.x + c.width) for c in cores if c.side is side]
        covered = merge_intervals(occupied)

        gaps = []
        cursor = 0.0
        for start, end in covered:
            if start - cursor > MIN_FILLER_WIDTH:
                gaps.append((cursor, start))
            cursor = max(cursor, end)
        if length - cursor > MIN_FILLER_WIDTH:
            gaps.append((cursor, length))

        y = band_y(side, rentable_depth, corridor_width)
        for k, (start, end) in enumerate(gaps, start=1):
            fillers.append(
                Filler(
                    id=f"filler-{side.value.lower()}-{k}",
                    x=start,
                    y=y,
                    width=end - start,
                    depth=rentable_depth,
                    side=side,
                )
            )
        if gaps:
            logger.debug("%s side: %d filler(s), %.2fm total", side.value, len(gaps), sum(e - s for s, e in gaps))
    return fillers
