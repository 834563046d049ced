"""Core count, corner-length search and core placement.

Cores sit on the core side of the corridor. The two end cores are placed
`corner_length` in from each building end; middle cores split the space
between them:

    0   c        c+w                       L-c-w   L-c      L
    ├───┤ core-left ├───── mid spans ─────┤ core-right ├────┤
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from floorplate.generators.flexibility import UnitTypeBehavior
from floorplate.generators.segments import Segment, distribute_units
from floorplate.models.config import FEET_TO_METERS, Side, StrategyProfile
from floorplate.models.floorplan import Core, CoreKind

logger = logging.getLogger(__name__)

MIN_CORNER = 20 * FEET_TO_METERS
MAX_CORNER = 65 * FEET_TO_METERS
CORNER_STEP = 2 * FEET_TO_METERS
MIN_MID_MARGIN = 15 * FEET_TO_METERS
CORNER_SOFT_CAP = 0.35

MID_OFFSET_STEP = 4 * FEET_TO_METERS
MAX_MID_OFFSET = 30 * FEET_TO_METERS
MID_OFFSET_FRACTION = 0.15

MIX_MULTIPLIER = 100.0
EFFICIENCY_MULTIPLIER = 200.0
SAFETY_MULTIPLIER = 500.0
DEAD_END_PENALTY = 1e4


def determine_core_count(length: float, core_width: float, travel_limit: float) -> int:
    """Initial number of cores: 2, or 3 when a long building would breach travel distance.

    The worst case assumes minimal 20 ft corners, leaving the whole middle
    between two cores; half of that is the longest walk to a core.
    """
    worst = (length - 2 * MIN_CORNER - 2 * core_width) / 2
    return 3 if worst > travel_limit else 2


@dataclass
class CornerSearchResult:
    corner_length: float
    mid_offset: float
    score: float


def _mid_spans(available: float, corner: float, num_mid_spans: int, offset: float) -> list[float]:
    """Split what is left between the corners into mid spans (core widths excluded)."""
    total = available - 2 * corner
    if num_mid_spans <= 0:
        return []
    if num_mid_spans == 2:
        half = total / 2
        return [half + offset, half - offset]
    return [total / num_mid_spans] * num_mid_spans


def _score_distribution(
    segments: list[Segment],
    counts: dict[str, int],
    behaviors: dict[str, UnitTypeBehavior],
    profile: StrategyProfile,
) -> float:
    distribution = distribute_units(counts, segments, behaviors)
    score = 0.0
    for seg, seg_counts in zip(segments, distribution):
        placed = [tid for tid, n in seg_counts.items() if n > 0]
        ideal = sum(n * behaviors[tid].min_width for tid, n in seg_counts.items())
        diff = seg.length - ideal
        overflow = max(0.0, -diff)
        slack = max(0.0, diff)
        flex = max(sum(n * behaviors[tid].expansion_weight for tid, n in seg_counts.items()), 0.1)
        smallest = min((behaviors[tid].min_width for tid in placed), default=1.0)

        score += profile.mix_weight * MIX_MULTIPLIER * overflow / smallest
        score += profile.efficiency_weight * slack * EFFICIENCY_MULTIPLIER / flex
        score += profile.safety_weight * overflow * SAFETY_MULTIPLIER / flex
    return score


def search_corner_length(
    available: float,
    num_mid_spans: int,
    counts: dict[str, int],
    behaviors: dict[str, UnitTypeBehavior],
    profile: StrategyProfile,
    dead_end_limit: float | None = None,
    continuous: bool = False,
    fixed_corner: float | None = None,
) -> CornerSearchResult:
    """Pick the corner length (and mid-core offset) that best fits `counts`.

    Args:
        available: Frontage to split. For the core side this excludes the
            core widths; for the clear side it is the full building length.
        num_mid_spans: Spans between cores (cores − 1). Ignored when
            `continuous`.
        counts: Units the side has to hold.
        behaviors: Sizing rules per type.
        profile: Strategy weights.
        dead_end_limit: Penalise corners longer than this (core side only).
        continuous: Clear side: one corner / middle / corner run.
        fixed_corner: Keep this corner length and search the mid-core
            offset only.

    Returns:
        The lowest-scoring candidate. Ties keep the earliest candidate.
    """
    corner_widths = [
        behaviors[tid].min_width
        for tid, n in counts.items()
        if n > 0 and behaviors[tid].corner_eligible
    ]
    min_c = max([MIN_CORNER, *corner_widths])
    min_c = min(min_c, max(MIN_CORNER, CORNER_SOFT_CAP * available))
    max_c = max(min(MAX_CORNER, available / 2 - MIN_MID_MARGIN), min_c)

    candidates: list[float] = []
    c = min_c
    while c <= max_c + 1e-9:
        candidates.append(min(c, available / 2))
        c += CORNER_STEP
    if fixed_corner is not None:
        candidates = [fixed_corner]

    spans = 1 if continuous else num_mid_spans
    best: CornerSearchResult | None = None
    for corner in candidates:
        offsets = [0.0]
        if not continuous and spans == 2:
            total_mid = available - 2 * corner
            limit = min(MAX_MID_OFFSET, math.floor(MID_OFFSET_FRACTION * max(total_mid, 0.0)))
            step = MID_OFFSET_STEP
            while step <= limit + 1e-9:
                offsets.extend([step, -step])
                step += MID_OFFSET_STEP

        for offset in offsets:
            lengths = [corner, *_mid_spans(available, corner, spans, offset), corner]
            segments: list[Segment] = []
            x = 0.0
            for k, seg_len in enumerate(lengths):
                segments.append(
                    Segment(
                        start=x,
                        length=max(0.0, seg_len),
                        is_corner=k in (0, len(lengths) - 1),
                        is_left_end=k == 0,
                        is_right_end=k == len(lengths) - 1,
                    )
                )
                x += max(0.0, seg_len)

            score = _score_distribution(segments, counts, behaviors, profile)
            if dead_end_limit is not None and not continuous:
                score += DEAD_END_PENALTY * max(0.0, corner - dead_end_limit)

            if best is None or score < best.score:
                best = CornerSearchResult(corner_length=corner, mid_offset=offset, score=score)

    if best is None:
        best = CornerSearchResult(corner_length=min(min_c, available / 2), mid_offset=0.0, score=math.inf)
    logger.debug(
        "Corner search (%s): corner=%.2fm offset=%.2fm score=%.1f over %d candidates",
        "clear" if continuous else "core", best.corner_length, best.mid_offset, best.score, len(candidates),
    )
    return best


def core_y(core_side: Side, rentable_depth: float, core_depth: float, corridor_width: float) -> float:
    """Lower edge of the cores: against the corridor on the core side."""
    if core_side is Side.NORTH:
        return rentable_depth - core_depth
    return rentable_depth + corridor_width


def place_cores(
    length: float,
    num_cores: int,
    corner_length: float,
    mid_offset: float,
    core_width: float,
    core_depth: float,
    core_side: Side,
    rentable_depth: float,
    corridor_width: float,
) -> list[Core]:
    """Position `num_cores` cores along the corridor, ordered by x.

    With three cores the middle one shifts by `mid_offset` from center;
    with four the two middle cores split the middle run evenly.
    """
    num_cores = max(2, num_cores)
    y = core_y(core_side, rentable_depth, core_depth, corridor_width)
    left_x = corner_length
    right_x = length - corner_length - core_width

    xs = [left_x]
    available = length - num_cores * core_width
    mids = _mid_spans(available, corner_length, num_cores - 1, mid_offset)
    x = left_x + core_width
    for span in mids[:-1]:
        x += span
        xs.append(x)
        x += core_width
    xs.append(right_x)

    mid_ids = ["core-mid"] + [f"core-mid-{k}" for k in range(2, num_cores - 1)]
    ids = ["core-left", *mid_ids[: num_cores - 2], "core-right"]
    cores = [
        Core(
            id=core_id,
            x=cx,
            y=y,
            width=core_width,
            depth=core_depth,
            kind=CoreKind.END if k in (0, num_cores - 1) else CoreKind.MID,
            side=core_side,
        )
        for k, (core_id, cx) in enumerate(zip(ids, xs))
    ]
    logger.debug("Placed %d cores at x=%s", len(cores), [round(c.x, 2) for c in cores])
    return cores
