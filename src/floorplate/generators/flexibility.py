"""Unit flexibility model.

Derives per-type sizing behaviour from the configured unit mix:
- Minimum width = target area / rentable depth. Never relaxed.
- Maximum width = the next-larger type's minimum width, so a 1BR can never
  grow wider than a 2BR; the largest type may grow 25% beyond its minimum.
- Expansion weight: how much leftover segment width a type absorbs.
- Corner and L-shape eligibility.

Everything is data driven from UnitTypeSpec records; no unit type is
special-cased by id.
"""

from __future__ import annotations

from dataclasses import dataclass

from floorplate.models.config import SQ_FEET_TO_SQ_METERS, UnitMix

SMALL_UNIT_MAX_AREA = 590 * SQ_FEET_TO_SQ_METERS
LARGE_UNIT_MIN_AREA = 1180 * SQ_FEET_TO_SQ_METERS
L_SHAPE_MIN_AREA = 850 * SQ_FEET_TO_SQ_METERS

SIZE_TOLERANCE_RANGE = (0.0, 0.25)
EXPANSION_WEIGHT_RANGE = (1.0, 40.0)
COMPRESSION_WEIGHT_RANGE = (0.5, 10.0)
PLACEMENT_PRIORITY_RANGE = (10.0, 100.0)

LARGEST_TYPE_EXPANSION = 1.25
SMALLEST_TYPE_WEIGHT = 0.1


@dataclass(frozen=True)
class SmartDefaults:
    size_tolerance: float
    expansion_weight: float
    compression_weight: float
    placement_priority: int
    l_shape_eligible: bool
    corner_eligible: bool


def calculate_smart_defaults(area: float) -> SmartDefaults:
    """Interpolate behaviour defaults from a unit's target area.

    Units at or below 590 sf behave like studios, units at or above 1180 sf
    like two-bedrooms; anything between is linearly interpolated.
    """
    t = (area - SMALL_UNIT_MAX_AREA) / (LARGE_UNIT_MIN_AREA - SMALL_UNIT_MAX_AREA)
    t = max(0.0, min(1.0, t))

    def lerp(bounds: tuple[float, float]) -> float:
        return bounds[0] + t * (bounds[1] - bounds[0])

    return SmartDefaults(
        size_tolerance=lerp(SIZE_TOLERANCE_RANGE),
        expansion_weight=float(int(lerp(EXPANSION_WEIGHT_RANGE) + 0.5)),
        compression_weight=round(lerp(COMPRESSION_WEIGHT_RANGE), 2),
        placement_priority=int(lerp(PLACEMENT_PRIORITY_RANGE) + 0.5),
        l_shape_eligible=t >= 0.5,
        corner_eligible=t > 0.5,
    )


@dataclass(frozen=True)
class UnitTypeBehavior:
    """Derived sizing rules for one unit type at a given rentable depth."""

    type_id: str
    name: str
    area: float
    min_width: float
    max_width: float
    expansion_weight: float
    compression_weight: float
    corner_eligible: bool
    l_shape_eligible: bool
    percentage: float
    color: str | None = None

    @property
    def active(self) -> bool:
        return self.percentage > 0


def derive_behaviors(mix: UnitMix, rentable_depth: float) -> dict[str, UnitTypeBehavior]:
    """Build the behaviour table for every configured type, in mix order."""
    active = sorted(mix.active_types, key=lambda t: t.area)
    smallest_id = active[0].id if active else None
    by_area_desc = sorted(active, key=lambda t: -t.area)
    top_two = {t.id for t in by_area_desc[:2]}

    behaviors: dict[str, UnitTypeBehavior] = {}
    for spec in mix.types:
        min_width = spec.area / rentable_depth

        larger = [t for t in active if t.area > spec.area]
        if larger:
            max_width = larger[0].area / rentable_depth
        else:
            max_width = min_width * LARGEST_TYPE_EXPANSION

        if spec.corner_eligible is not None:
            corner = spec.corner_eligible
        else:
            corner = spec.id in top_two

        if spec.l_shape_eligible is not None:
            l_shape = spec.l_shape_eligible
        else:
            l_shape = spec.id != smallest_id and spec.area > L_SHAPE_MIN_AREA

        if spec.expansion_weight is not None:
            weight = spec.expansion_weight
        elif spec.id == smallest_id:
            weight = SMALLEST_TYPE_WEIGHT
        else:
            weight = calculate_smart_defaults(spec.area).expansion_weight

        behaviors[spec.id] = UnitTypeBehavior(
            type_id=spec.id,
            name=spec.display_name,
            area=spec.area,
            min_width=min_width,
            max_width=max(max_width, min_width),
            expansion_weight=weight,
            compression_weight=0.0,
            corner_eligible=corner,
            l_shape_eligible=l_shape,
            percentage=spec.percentage,
            color=spec.color,
        )
    return behaviors


def types_by_area_desc(behaviors: dict[str, UnitTypeBehavior]) -> list[str]:
    """Type ids, largest first. Ties keep configured order."""
    order = list(behaviors)
    return sorted(order, key=lambda tid: (-behaviors[tid].area, order.index(tid)))


def distribute_expansion(
    min_widths: list[float],
    max_widths: list[float],
    weights: list[float],
    extra: float,
    passes: int = 5,
) -> tuple[list[float], float]:
    """Spread `extra` width over units in proportion to their weights.

    Units stop at their maximum width; what they can't take is handed to
    the remaining uncapped units on the next pass. Width is never removed,
    so a negative `extra` leaves every unit at its minimum.

    Returns:
        (widths, leftover) where leftover is the width nobody could absorb.
    """
    widths = list(min_widths)
    remaining = max(0.0, extra)
    capped: set[int] = set()

    for _ in range(passes):
        if remaining <= 1e-9:
            break
        uncapped_weight = sum(w for i, w in enumerate(weights) if i not in capped)
        if uncapped_weight <= 0:
            break
        pool = remaining
        for i, weight in enumerate(weights):
            if i in capped:
                continue
            share = pool * weight / uncapped_weight
            room = max_widths[i] - widths[i]
            if share >= room:
                widths[i] = max_widths[i]
                remaining -= room
                capped.add(i)
            else:
                widths[i] += share
                remaining -= share

    # Float residue after all passes goes to any unit with room left
    if remaining > 1e-9:
        for i in sorted(range(len(widths)), key=lambda k: -weights[k]):
            room = max_widths[i] - widths[i]
            if room > 0:
                take = min(room, remaining)
                widths[i] += take
                remaining -= take
            if remaining <= 1e-9:
                break

    return widths, max(0.0, remaining)
