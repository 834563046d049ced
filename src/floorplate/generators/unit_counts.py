"""Unit-count distribution.

Turns target percentages into integer per-type counts for the whole
building using the largest-remainder (Hamilton) method, then splits them
between the two corridor sides.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from floorplate.generators.flexibility import UnitTypeBehavior, types_by_area_desc
from floorplate.models.config import MIN_UNIT_WIDTH, STRATEGY_PROFILES, Strategy

logger = logging.getLogger(__name__)

FIT_TOLERANCE = 0.05


def apportion(total: int, weights: list[float]) -> list[int]:
    """Largest-remainder apportionment of `total` seats over `weights`.

    Each share gets the floor of its exact quota; the seats left over go one
    at a time to the largest fractional remainders. Equal remainders are
    resolved by input order. The result always sums to `total` when any
    weight is positive.

    >>> apportion(10, [20, 40, 30, 10])
    [2, 4, 3, 1]
    """
    if total <= 0 or not weights:
        return [0] * len(weights)
    weight_sum = sum(w for w in weights if w > 0)
    if weight_sum <= 0:
        return [0] * len(weights)

    quotas = [total * max(w, 0.0) / weight_sum for w in weights]
    counts = [math.floor(q) for q in quotas]
    deficit = total - sum(counts)
    order = sorted(range(len(weights)), key=lambda i: (-(quotas[i] - counts[i]), i))
    eligible = [i for i in order if weights[i] > 0]
    k = 0
    while deficit > 0:
        counts[eligible[k % len(eligible)]] += 1
        deficit -= 1
        k += 1
    return counts


def min_width_sum(counts: dict[str, int], behaviors: dict[str, UnitTypeBehavior]) -> float:
    return sum(n * behaviors[tid].min_width for tid, n in counts.items())


def calculate_global_counts(
    total_length: float,
    behaviors: dict[str, UnitTypeBehavior],
    strategy: Strategy = Strategy.BALANCED,
    min_units: int = 1,
) -> dict[str, int]:
    """Building-wide unit counts for `total_length` meters of frontage.

    The estimate starts at usable length / percentage-weighted average width
    and then grows while the minimum widths of the apportioned counts still
    fit. Every type with a positive share gets at least one unit.
    """
    type_ids = list(behaviors)
    counts = {tid: 0 for tid in type_ids}
    percentages = [behaviors[tid].percentage for tid in type_ids]
    total_mix = sum(percentages)
    if total_mix <= 0 or total_length < MIN_UNIT_WIDTH:
        return counts

    avg_width = sum(behaviors[tid].percentage * behaviors[tid].min_width for tid in type_ids) / total_mix
    usable = total_length * STRATEGY_PROFILES[strategy].safety_factor
    max_physical = math.floor(total_length / MIN_UNIT_WIDTH)
    start = max(min(math.floor(usable / avg_width), max_physical), min_units)
    if start <= 0:
        return counts

    def counts_for(n: int) -> dict[str, int]:
        return dict(zip(type_ids, apportion(n, percentages)))

    best = counts_for(start)
    for n in range(start + 1, max_physical + 1):
        candidate = counts_for(n)
        if min_width_sum(candidate, behaviors) > usable + FIT_TOLERANCE:
            break
        best = candidate
    counts = best

    # At least one of every active type, taken from the most abundant one.
    active = [tid for tid in types_by_area_desc(behaviors) if behaviors[tid].active]
    for tid in active:
        if counts[tid] > 0:
            continue
        donors = sorted(
            (d for d in active if counts[d] > 1),
            key=lambda d: (-counts[d], type_ids.index(d)),
        )
        if donors:
            counts[donors[0]] -= 1
            counts[tid] = 1

    logger.debug("Global counts for %.1fm (%s): %s", total_length, strategy.value, counts)
    return counts


@dataclass
class SideCounts:
    """Per-type counts for the core side and the clear (coreless) side."""

    core: dict[str, int] = field(default_factory=dict)
    clear: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.core.values()) + sum(self.clear.values())


def split_side_counts(
    counts: dict[str, int],
    behaviors: dict[str, UnitTypeBehavior],
    core_length: float,
    clear_length: float,
) -> SideCounts:
    """Split building-wide counts between the two sides.

    Each type is split in proportion to the sides' frontage by largest
    remainder. Corner-eligible units are then rebalanced so each side has
    one for each of its two building corners where the totals allow it;
    every move is paired with a swap back to keep both side totals.
    """
    ratio = [core_length, clear_length] if core_length + clear_length > 0 else [1.0, 1.0]
    split = SideCounts(core={}, clear={})
    for tid, n in counts.items():
        core_n, clear_n = apportion(n, ratio)
        split.core[tid] = core_n
        split.clear[tid] = clear_n

    corner_types = [tid for tid in types_by_area_desc(behaviors) if behaviors[tid].corner_eligible]
    filler_types = [tid for tid in reversed(types_by_area_desc(behaviors)) if not behaviors[tid].corner_eligible]

    def corner_total(side: dict[str, int]) -> int:
        return sum(side[t] for t in corner_types)

    for _ in range(sum(counts.values())):
        core_c, clear_c = corner_total(split.core), corner_total(split.clear)
        if core_c < 2 and clear_c > 2:
            poor, rich = split.core, split.clear
        elif clear_c < 2 and core_c > 2:
            poor, rich = split.clear, split.core
        else:
            break
        give = next((t for t in corner_types if rich[t] > 0), None)
        back = next((t for t in filler_types if poor[t] > 0), None)
        if give is None or back is None:
            break
        rich[give] -= 1
        poor[give] += 1
        poor[back] -= 1
        rich[back] += 1

    return split


def apply_core_side_bias(
    split: SideCounts,
    behaviors: dict[str, UnitTypeBehavior],
    num_cores: int,
) -> SideCounts:
    """Nudge the core side toward the smallest unit type.

    Cores eat frontage, so the core side takes up to one extra smallest-type
    unit per core from the clear side, swapped against one next-smallest
    unit. Side totals and building totals are unchanged.
    """
    active = [tid for tid in reversed(types_by_area_desc(behaviors)) if behaviors[tid].active]
    if len(active) < 2:
        return split
    small, next_small = active[0], active[1]
    shifts = max(0, min(num_cores, split.clear.get(small, 0), split.core.get(next_small, 0)))
    for _ in range(shifts):
        split.clear[small] -= 1
        split.core[small] += 1
        split.core[next_small] -= 1
        split.clear[next_small] += 1
    if shifts:
        logger.debug("Core-side bias: moved %d x %s to the core side", shifts, small)
    return split
